"""Identifier helpers.

Entity ids are unsigned integers issued by the database. They leave the
service as decimal strings so JavaScript clients never lose precision on
large values, and they come back in as strings (or, leniently, integers).
"""
from __future__ import annotations

from typing import Annotated, NewType, Optional, Union

from pydantic import PlainSerializer

EntityId = NewType("EntityId", int)

# Largest value a BIGINT column can hold.
MAX_ID = 2**63 - 1


def parse_id(raw: Union[str, int, None]) -> Optional[EntityId]:
    """Return the id encoded by ``raw`` or ``None`` if it is not a valid id.

    Values past ``MAX_ID`` can never name a stored row and parse as invalid.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            return None
        value = int(text)
    if value < 1 or value > MAX_ID:
        return None
    return EntityId(value)


def format_id(value: int) -> str:
    return str(value)


# Response models declare ids with this type so they serialize as strings.
IdOut = Annotated[int, PlainSerializer(format_id, return_type=str)]
