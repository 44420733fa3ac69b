"""Ownership resolution along the board -> list -> card containment chain.

A board belongs to exactly one user and everything reachable through it
inherits that owner. Resolving a target reads the entity together with its
owning board in one query, so existence and ownership are judged from the
same snapshot.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ForbiddenError, NotFoundError
from .ids import EntityId
from .storage import Storage

logger = logging.getLogger(__name__)


class TargetKind(str, enum.Enum):
    BOARD = "board"
    LIST = "list"
    CARD = "card"


class Outcome(str, enum.Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class Resolution:
    outcome: Outcome
    owner_id: Optional[int] = None
    board_id: Optional[int] = None
    list_id: Optional[int] = None

    @property
    def authorized(self) -> bool:
        return self.outcome is Outcome.AUTHORIZED


NOT_FOUND = Resolution(Outcome.NOT_FOUND)


class OwnershipResolver:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def resolve(self, caller_id: int, kind: TargetKind, target_id: Optional[EntityId]) -> Resolution:
        if target_id is None:
            return NOT_FOUND
        if kind is TargetKind.BOARD:
            board = self.storage.get_board(target_id)
            if board is None:
                return NOT_FOUND
            return self._judge(caller_id, board.owner_id, board_id=board.id)
        if kind is TargetKind.LIST:
            found = self.storage.get_list_with_board(target_id)
            if found is None:
                return NOT_FOUND
            board_list, board = found
            return self._judge(caller_id, board.owner_id, board_id=board.id, list_id=board_list.id)
        found = self.storage.get_card_with_list_and_board(target_id)
        if found is None:
            return NOT_FOUND
        _, board_list, board = found
        return self._judge(caller_id, board.owner_id, board_id=board.id, list_id=board_list.id)

    @staticmethod
    def _judge(caller_id: int, owner_id: int, **chain) -> Resolution:
        outcome = Outcome.AUTHORIZED if owner_id == caller_id else Outcome.FORBIDDEN
        return Resolution(outcome, owner_id=owner_id, **chain)

    def require(
        self,
        caller_id: int,
        kind: TargetKind,
        target_id: Optional[EntityId],
        not_found: str,
        forbidden: str,
        conceal: bool = False,
    ) -> Resolution:
        """Resolve the target and raise unless the caller owns it.

        Boards are looked up by owner, so someone else's board is reported
        exactly like a missing one. Lists and cards report the two cases
        separately unless ``conceal`` is set.
        """
        resolution = self.resolve(caller_id, kind, target_id)
        if resolution.outcome is Outcome.NOT_FOUND:
            raise NotFoundError(not_found)
        if resolution.outcome is Outcome.FORBIDDEN:
            logger.warning("User %s denied access to %s %s", caller_id, kind.value, target_id)
            if conceal or kind is TargetKind.BOARD:
                raise NotFoundError(not_found)
            raise ForbiddenError(forbidden)
        return resolution
