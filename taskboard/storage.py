from __future__ import annotations

from typing import Any, Iterator, Optional

from fastapi import Request
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .db import Board, BoardList, Card, User


def _owned_board_ids(owner_id: int):
    return select(Board.id).where(Board.owner_id == owner_id)


def _owned_list_ids(owner_id: int):
    return select(BoardList.id).join(Board, BoardList.board_id == Board.id).where(Board.owner_id == owner_id)


class Storage:
    """Relational store for users, boards, lists and cards.

    Every write that touches an existing row carries the owner predicate in
    its WHERE clause and reports the number of affected rows, so a row that
    vanished or changed hands after the ownership check is simply not
    touched.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _insert(self, obj):
        self.session.add(obj)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(obj)
        return obj

    def _write(self, stmt) -> int:
        try:
            result = self.session.execute(stmt.execution_options(synchronize_session=False))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return result.rowcount

    # === User operations ===
    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.scalars(select(User).where(User.email == email)).first()

    def find_user(self, username: str, email: str) -> Optional[User]:
        stmt = select(User).where((User.username == username) | (User.email == email))
        return self.session.scalars(stmt).first()

    def insert_user(self, username: str, email: str, password_hash: str, full_name: str) -> User:
        return self._insert(
            User(username=username, email=email, password_hash=password_hash, full_name=full_name)
        )

    # === Board operations ===
    def get_board(self, board_id: int) -> Optional[Board]:
        return self.session.get(Board, board_id)

    def boards_for_owner(self, owner_id: int) -> list[Board]:
        stmt = (
            select(Board)
            .where(Board.owner_id == owner_id)
            .order_by(Board.created_at.desc(), Board.id.desc())
        )
        return list(self.session.scalars(stmt))

    def insert_board(self, owner_id: int, title: str, description: Optional[str], is_public: bool) -> Board:
        return self._insert(
            Board(owner_id=owner_id, title=title, description=description, is_public=is_public)
        )

    def update_board(self, board_id: int, owner_id: int, changes: dict[str, Any]) -> int:
        return self._write(
            update(Board).where(Board.id == board_id, Board.owner_id == owner_id).values(**changes)
        )

    def delete_board(self, board_id: int, owner_id: int) -> int:
        return self._write(delete(Board).where(Board.id == board_id, Board.owner_id == owner_id))

    # === List operations ===
    def get_list(self, list_id: int) -> Optional[BoardList]:
        return self.session.get(BoardList, list_id)

    def get_list_with_board(self, list_id: int) -> Optional[tuple[BoardList, Board]]:
        stmt = (
            select(BoardList, Board)
            .join(Board, BoardList.board_id == Board.id)
            .where(BoardList.id == list_id)
        )
        row = self.session.execute(stmt).first()
        return (row[0], row[1]) if row else None

    def lists_for_board(self, board_id: int) -> list[BoardList]:
        stmt = (
            select(BoardList)
            .where(BoardList.board_id == board_id)
            .order_by(BoardList.order_index.asc(), BoardList.id.asc())
        )
        return list(self.session.scalars(stmt))

    def insert_list(self, board_id: int, title: str, order_index: int) -> BoardList:
        return self._insert(BoardList(board_id=board_id, title=title, order_index=order_index))

    def update_list(self, list_id: int, owner_id: int, changes: dict[str, Any]) -> int:
        stmt = (
            update(BoardList)
            .where(BoardList.id == list_id, BoardList.board_id.in_(_owned_board_ids(owner_id)))
            .values(**changes)
        )
        return self._write(stmt)

    def delete_list(self, list_id: int, owner_id: int) -> int:
        stmt = delete(BoardList).where(
            BoardList.id == list_id, BoardList.board_id.in_(_owned_board_ids(owner_id))
        )
        return self._write(stmt)

    def max_order(self, board_id: int) -> Optional[int]:
        stmt = select(func.max(BoardList.order_index)).where(BoardList.board_id == board_id)
        return self.session.scalar(stmt)

    # === Card operations ===
    def get_card(self, card_id: int) -> Optional[Card]:
        return self.session.get(Card, card_id)

    def get_card_with_list_and_board(self, card_id: int) -> Optional[tuple[Card, BoardList, Board]]:
        stmt = (
            select(Card, BoardList, Board)
            .join(BoardList, Card.list_id == BoardList.id)
            .join(Board, BoardList.board_id == Board.id)
            .where(Card.id == card_id)
        )
        row = self.session.execute(stmt).first()
        return (row[0], row[1], row[2]) if row else None

    def cards_for_list(self, list_id: int) -> list[Card]:
        stmt = (
            select(Card)
            .where(Card.list_id == list_id)
            .order_by(Card.order_index.asc(), Card.id.asc())
        )
        return list(self.session.scalars(stmt))

    def count_siblings(self, list_id: int) -> int:
        stmt = select(func.count()).select_from(Card).where(Card.list_id == list_id)
        return self.session.scalar(stmt) or 0

    def insert_card(
        self,
        list_id: int,
        creator_id: int,
        title: str,
        description: Optional[str],
        due_date,
        order_index: int,
    ) -> Card:
        card = Card(
            list_id=list_id,
            creator_id=creator_id,
            title=title,
            description=description,
            due_date=due_date,
            order_index=order_index,
        )
        return self._insert(card)

    def update_card(self, card_id: int, owner_id: int, changes: dict[str, Any]) -> int:
        """Apply ``changes`` to a card the owner controls.

        When ``changes`` moves the card (``list_id``), the destination list
        must belong to the same owner as well; both conditions sit in the one
        UPDATE statement together with the new parent and position.
        """
        stmt = update(Card).where(Card.id == card_id, Card.list_id.in_(_owned_list_ids(owner_id)))
        if "list_id" in changes:
            destination = _owned_list_ids(owner_id).where(BoardList.id == changes["list_id"])
            stmt = stmt.where(destination.exists())
        return self._write(stmt.values(**changes))

    def delete_card(self, card_id: int, owner_id: int) -> int:
        stmt = delete(Card).where(Card.id == card_id, Card.list_id.in_(_owned_list_ids(owner_id)))
        return self._write(stmt)


def get_storage(request: Request) -> Iterator[Storage]:
    """Yield a store bound to one session for the duration of a request."""
    session = request.app.state.session_factory()
    try:
        yield Storage(session)
    finally:
        session.close()
