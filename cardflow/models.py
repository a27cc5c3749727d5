from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Union


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


# === Identity ===


@dataclass(frozen=True)
class Draft:
    """Locally synthesized id, never acknowledged by the gateway."""

    id: str


@dataclass(frozen=True)
class Confirmed:
    """Id assigned by the gateway; safe to send back to it."""

    id: str


EntityRef = Union[Draft, Confirmed]


# === Domain objects used by the optimistic store ===


@dataclass
class Card:
    ref: EntityRef
    title: str
    list_id: str
    description: str = ""
    position: int = 0
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @property
    def id(self) -> str:
        return self.ref.id

    @property
    def is_draft(self) -> bool:
        return isinstance(self.ref, Draft)


@dataclass
class CardList:
    ref: EntityRef
    title: str
    position: int = 0
    cards: List[Card] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @property
    def id(self) -> str:
        return self.ref.id

    @property
    def is_draft(self) -> bool:
        return isinstance(self.ref, Draft)


@dataclass
class Board:
    ref: EntityRef
    title: str
    description: str = ""
    lists: List[CardList] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @property
    def id(self) -> str:
        return self.ref.id

    @property
    def is_draft(self) -> bool:
        return isinstance(self.ref, Draft)
