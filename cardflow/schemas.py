from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ErrorEnvelope(BaseModel):
    detail: str


class Health(BaseModel):
    status: str = "ok"


# === Records as the gateway sends them ===
#
# Lenient on purpose: every optional field may be absent or null. Only
# EntityFactory.from_remote turns these into domain objects.


class RemoteCard(BaseModel):
    id: str
    list_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    position: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RemoteList(BaseModel):
    id: str
    title: Optional[str] = None
    position: Optional[int] = None
    cards: Optional[list[RemoteCard]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# === Service API schemas ===


class ListIn(BaseModel):
    title: str = Field(min_length=1, max_length=80)


class ListOut(BaseModel):
    id: str
    title: str
    position: int
    created_at: datetime
    updated_at: datetime


class ListDeleted(BaseModel):
    id: str
    message: str
    deleted_list: ListOut


class CardIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    list_id: str
    description: Optional[str] = Field(default=None, max_length=8000)


class CardPatch(BaseModel):
    list_id: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)


class CardOut(BaseModel):
    id: str
    list_id: str
    title: str
    description: str
    position: int
    created_at: datetime
    updated_at: datetime
