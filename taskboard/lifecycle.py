"""Create/read/update/delete orchestration for users, boards, lists and cards.

Each operation authorizes its target through the ownership resolver, works
out positions through the ordering engine and persists through the store.
Conditional writes that hit no row after a successful check mean the
entity disappeared in between and are reported as not found.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from .auth import Authenticator, Identity, get_authenticator
from .db import Board, BoardList, Card, User
from .errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from .ids import EntityId, parse_id
from .ordering import PositionOrderingEngine
from .ownership import OwnershipResolver, TargetKind
from .schemas import (
    BoardCreate,
    BoardUpdate,
    CardCreate,
    CardUpdate,
    ListCreate,
    ListUpdate,
    UserLogin,
    UserRegister,
)
from .storage import Storage, get_storage

logger = logging.getLogger(__name__)

BOARD_NOT_FOUND = "Board not found or not authorized."
LIST_NOT_FOUND = "List not found."
LIST_FORBIDDEN = "Not authorized to access this list."
CARD_NOT_FOUND = "Card not found."
CARD_FORBIDDEN = "Not authorized to access this card."
NOTHING_TO_UPDATE = "At least one field must be provided for the update."


def _reject_nulls(changes: dict[str, Any], *fields: str) -> None:
    for name in fields:
        if name in changes and changes[name] is None:
            raise ValidationError(f"Field '{name}' cannot be null.")


def _require_changes(changes: dict[str, Any]) -> None:
    if not changes:
        raise ValidationError(NOTHING_TO_UPDATE)


def _found(entity, message: str):
    if entity is None:
        raise NotFoundError(message)
    return entity


class UserLifecycle:
    def __init__(self, storage: Storage, authenticator: Authenticator) -> None:
        self.storage = storage
        self.authenticator = authenticator

    def register(self, payload: UserRegister) -> tuple[User, str]:
        if self.storage.find_user(payload.username, payload.email) is not None:
            raise ConflictError("Username or email is already registered.")
        password_hash = self.authenticator.hash_password(payload.password)
        try:
            user = self.storage.insert_user(payload.username, payload.email, password_hash, payload.full_name)
        except IntegrityError:
            # Lost a race against a concurrent registration.
            raise ConflictError("Username or email is already registered.")
        logger.info("Registered user %s", user.id)
        return user, self.authenticator.issue_token(user.id)

    def login(self, payload: UserLogin) -> tuple[User, str]:
        user = self.storage.get_user_by_email(payload.email)
        if user is None or not self.authenticator.verify_password(user.password_hash, payload.password):
            logger.warning("Failed login attempt")
            raise UnauthorizedError("Invalid credentials.")
        return user, self.authenticator.issue_token(user.id)

    def me(self, identity: Identity) -> User:
        return _found(self.storage.get_user(identity.id), "User not found.")


class BoardLifecycle:
    def __init__(self, storage: Storage, resolver: OwnershipResolver) -> None:
        self.storage = storage
        self.resolver = resolver

    def _require(self, identity: Identity, raw_id) -> EntityId:
        board_id = parse_id(raw_id)
        self.resolver.require(identity.id, TargetKind.BOARD, board_id, BOARD_NOT_FOUND, BOARD_NOT_FOUND)
        return board_id

    def create(self, identity: Identity, payload: BoardCreate) -> Board:
        board = self.storage.insert_board(identity.id, payload.title, payload.description, payload.is_public)
        logger.info("User %s created board %s", identity.id, board.id)
        return board

    def list_owned(self, identity: Identity) -> list[Board]:
        return self.storage.boards_for_owner(identity.id)

    def get(self, identity: Identity, raw_id) -> Board:
        board_id = self._require(identity, raw_id)
        return _found(self.storage.get_board(board_id), BOARD_NOT_FOUND)

    def update(self, identity: Identity, raw_id, payload: BoardUpdate) -> Board:
        changes = payload.changes()
        _require_changes(changes)
        _reject_nulls(changes, "title", "is_public")
        board_id = self._require(identity, raw_id)
        if self.storage.update_board(board_id, identity.id, changes) == 0:
            raise NotFoundError(BOARD_NOT_FOUND)
        return _found(self.storage.get_board(board_id), BOARD_NOT_FOUND)

    def delete(self, identity: Identity, raw_id) -> None:
        board_id = self._require(identity, raw_id)
        if self.storage.delete_board(board_id, identity.id) == 0:
            raise NotFoundError(BOARD_NOT_FOUND)
        logger.info("User %s deleted board %s with its lists and cards", identity.id, board_id)


class ListLifecycle:
    def __init__(self, storage: Storage, resolver: OwnershipResolver, ordering: PositionOrderingEngine) -> None:
        self.storage = storage
        self.resolver = resolver
        self.ordering = ordering

    def _require(self, identity: Identity, raw_id, conceal: bool = False) -> EntityId:
        list_id = parse_id(raw_id)
        self.resolver.require(identity.id, TargetKind.LIST, list_id, LIST_NOT_FOUND, LIST_FORBIDDEN, conceal)
        return list_id

    def create(self, identity: Identity, payload: ListCreate) -> BoardList:
        board_id = parse_id(payload.board_id)
        self.resolver.require(identity.id, TargetKind.BOARD, board_id, BOARD_NOT_FOUND, BOARD_NOT_FOUND)
        position = self.ordering.append_list_position(board_id)
        board_list = self.storage.insert_list(board_id, payload.title, position)
        logger.info("User %s created list %s on board %s", identity.id, board_list.id, board_id)
        return board_list

    def for_board(self, identity: Identity, raw_board_id) -> list[BoardList]:
        board_id = parse_id(raw_board_id)
        self.resolver.require(identity.id, TargetKind.BOARD, board_id, BOARD_NOT_FOUND, BOARD_NOT_FOUND)
        return self.storage.lists_for_board(board_id)

    def get(self, identity: Identity, raw_id) -> BoardList:
        list_id = self._require(identity, raw_id)
        return _found(self.storage.get_list(list_id), LIST_NOT_FOUND)

    def update(self, identity: Identity, raw_id, payload: ListUpdate) -> BoardList:
        changes = payload.changes()
        _require_changes(changes)
        _reject_nulls(changes, "title", "order_index")
        if "order_index" in changes:
            changes["order_index"] = self.ordering.reposition_explicit(changes["order_index"])
        # Writes answer 404 for lists on someone else's board.
        list_id = self._require(identity, raw_id, conceal=True)
        if self.storage.update_list(list_id, identity.id, changes) == 0:
            raise NotFoundError(LIST_NOT_FOUND)
        return _found(self.storage.get_list(list_id), LIST_NOT_FOUND)

    def delete(self, identity: Identity, raw_id) -> None:
        list_id = self._require(identity, raw_id, conceal=True)
        if self.storage.delete_list(list_id, identity.id) == 0:
            raise NotFoundError(LIST_NOT_FOUND)
        logger.info("User %s deleted list %s with its cards", identity.id, list_id)


class CardLifecycle:
    def __init__(self, storage: Storage, resolver: OwnershipResolver, ordering: PositionOrderingEngine) -> None:
        self.storage = storage
        self.resolver = resolver
        self.ordering = ordering

    def _require(self, identity: Identity, raw_id) -> EntityId:
        card_id = parse_id(raw_id)
        self.resolver.require(identity.id, TargetKind.CARD, card_id, CARD_NOT_FOUND, CARD_FORBIDDEN)
        return card_id

    def _require_list(self, identity: Identity, raw_list_id, not_found: str, forbidden: str) -> EntityId:
        list_id = parse_id(raw_list_id)
        self.resolver.require(identity.id, TargetKind.LIST, list_id, not_found, forbidden)
        return list_id

    def for_list(self, identity: Identity, raw_list_id) -> list[Card]:
        list_id = self._require_list(
            identity, raw_list_id, LIST_NOT_FOUND, "Not authorized to view the cards of this list."
        )
        return self.storage.cards_for_list(list_id)

    def create(self, identity: Identity, payload: CardCreate) -> Card:
        list_id = self._require_list(
            identity, payload.list_id, "Target list does not exist.", "Not authorized to add cards to this list."
        )
        position = self.ordering.append_card_position(list_id)
        card = self.storage.insert_card(
            list_id, identity.id, payload.title, payload.description, payload.due_date, position
        )
        logger.info("User %s created card %s in list %s", identity.id, card.id, list_id)
        return card

    def get(self, identity: Identity, raw_id) -> Card:
        card_id = self._require(identity, raw_id)
        return _found(self.storage.get_card(card_id), CARD_NOT_FOUND)

    def update(self, identity: Identity, raw_id, payload: CardUpdate) -> Card:
        """Apply a partial update, moving the card when ``list_id`` is sent.

        A move authorizes both the card and the destination list. Without an
        ``order_index`` the card goes to the end of the destination; with one
        the index is stored as given.
        """
        changes = payload.changes()
        _require_changes(changes)
        _reject_nulls(changes, "title", "list_id", "order_index")
        card_id = self._require(identity, raw_id)

        if "list_id" in changes:
            new_list_id = self._require_list(
                identity,
                changes.pop("list_id"),
                "Destination list does not exist.",
                "Not authorized to move the card to that list.",
            )
            explicit_index: Optional[int] = changes.pop("order_index", None)
            updated = self.ordering.move_across_parent(
                card_id, identity.id, new_list_id, explicit_index, changes
            )
            if updated:
                logger.info("User %s moved card %s to list %s", identity.id, card_id, new_list_id)
        else:
            if "order_index" in changes:
                changes["order_index"] = self.ordering.reposition_explicit(changes["order_index"])
            updated = self.storage.update_card(card_id, identity.id, changes)

        if updated == 0:
            raise NotFoundError(CARD_NOT_FOUND)
        return _found(self.storage.get_card(card_id), CARD_NOT_FOUND)

    def delete(self, identity: Identity, raw_id) -> None:
        card_id = self._require(identity, raw_id)
        if self.storage.delete_card(card_id, identity.id) == 0:
            raise NotFoundError(CARD_NOT_FOUND)
        logger.info("User %s deleted card %s", identity.id, card_id)


# === Dependency providers ===


def get_users(
    storage: Storage = Depends(get_storage),
    authenticator: Authenticator = Depends(get_authenticator),
) -> UserLifecycle:
    return UserLifecycle(storage, authenticator)


def get_boards(storage: Storage = Depends(get_storage)) -> BoardLifecycle:
    return BoardLifecycle(storage, OwnershipResolver(storage))


def get_lists(storage: Storage = Depends(get_storage)) -> ListLifecycle:
    return ListLifecycle(storage, OwnershipResolver(storage), PositionOrderingEngine(storage))


def get_cards(storage: Storage = Depends(get_storage)) -> CardLifecycle:
    return CardLifecycle(storage, OwnershipResolver(storage), PositionOrderingEngine(storage))
