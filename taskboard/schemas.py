from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from .ids import IdOut

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=140)]
CardTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Description = Annotated[str, StringConstraints(max_length=8000)]
OrderIndex = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]
# Ids arrive as decimal strings; bare integers are accepted too.
IdIn = Union[int, str]


class PatchModel(BaseModel):
    """Update payload whose fields are each independently present or absent.

    ``changes()`` only returns the fields the client actually sent, so an
    explicit ``null`` is kept apart from a missing key.
    """

    model_config = ConfigDict(extra="ignore")

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class Health(BaseModel):
    status: str = "ok"


class Message(BaseModel):
    message: str


# === Users ===


class UserRegister(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255)]
    password: str = Field(min_length=1, max_length=1024)
    full_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)] = Field(
        alias="fullName"
    )


class UserLogin(BaseModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: IdOut
    username: str
    email: str
    full_name: Optional[str] = None


class AuthOut(UserOut):
    token: str


# === Boards ===


class BoardCreate(BaseModel):
    title: Title
    description: Optional[Description] = None
    is_public: bool = False


class BoardUpdate(PatchModel):
    title: Optional[Title] = None
    description: Optional[Description] = None
    is_public: Optional[bool] = None


class BoardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: IdOut
    title: str
    description: Optional[str]
    is_public: bool
    owner_id: IdOut
    created_at: datetime


# === Lists ===


class ListCreate(BaseModel):
    board_id: IdIn
    title: Title


class ListUpdate(PatchModel):
    title: Optional[Title] = None
    order_index: Optional[OrderIndex] = None


class ListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: IdOut
    board_id: IdOut
    title: str
    order_index: int
    created_at: datetime


# === Cards ===


class CardCreate(BaseModel):
    list_id: IdIn
    title: CardTitle
    description: Optional[Description] = None
    due_date: Optional[datetime] = None


class CardUpdate(PatchModel):
    title: Optional[CardTitle] = None
    description: Optional[Description] = None
    due_date: Optional[datetime] = None
    list_id: Optional[IdIn] = None
    order_index: Optional[OrderIndex] = None


class CardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: IdOut
    list_id: IdOut
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    order_index: int
    creator_id: IdOut
    created_at: datetime
    updated_at: datetime
