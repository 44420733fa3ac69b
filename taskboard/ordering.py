"""Sibling ordering for lists within a board and cards within a list.

``order_index`` is a plain integer sort key. Values are neither renumbered
nor required to be unique: an explicit index is stored as given, and two
appends racing on the same parent may pick the same value. Readers sort by
``(order_index, id)`` so ties fall back to insertion order.
"""
from __future__ import annotations

from typing import Optional

from .storage import Storage

# Lists start counting at 1, cards at 0.
FIRST_LIST_POSITION = 1


class PositionOrderingEngine:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def append_list_position(self, board_id: int) -> int:
        # An empty board (or one whose lists all sit at 0) starts at 1.
        return (self.storage.max_order(board_id) or 0) + FIRST_LIST_POSITION

    def append_card_position(self, list_id: int) -> int:
        return self.storage.count_siblings(list_id)

    @staticmethod
    def reposition_explicit(index: int) -> int:
        return index

    def move_across_parent(
        self,
        card_id: int,
        owner_id: int,
        new_list_id: int,
        explicit_index: Optional[int] = None,
        changes: Optional[dict] = None,
    ) -> int:
        """Move a card under ``new_list_id`` in a single UPDATE.

        Without ``explicit_index`` the card lands at the end of the
        destination list. Any other pending field ``changes`` ride along in
        the same statement. Returns the number of rows updated.
        """
        if explicit_index is None:
            position = self.append_card_position(new_list_id)
        else:
            position = self.reposition_explicit(explicit_index)
        values = dict(changes or {})
        values.update(list_id=new_list_id, order_index=position)
        return self.storage.update_card(card_id, owner_id, values)
