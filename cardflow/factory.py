from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from .errors import RecordFormatError
from .models import Board, Card, CardList, Confirmed, Draft, now_utc
from .schemas import RemoteCard, RemoteList

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
RANDOM_DIGITS = 8

RawRecord = Union[Mapping[str, Any], RemoteCard, RemoteList]


def to_base36(value: int) -> str:
    if value == 0:
        return ALPHABET[0]
    out: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        out.append(ALPHABET[rem])
    return "".join(reversed(out))


class EntityFactory:
    """Builds, clones, normalizes and validates boards, lists and cards.

    Everything created here carries a :class:`Draft` ref. Only
    :meth:`from_remote` produces :class:`Confirmed` entities.
    """

    # === Drafts ===

    @classmethod
    def create_card(
        cls,
        title: str,
        list_id: str,
        description: str = "",
        position: int = 0,
    ) -> Card:
        now = now_utc()
        return Card(
            ref=Draft(cls.generate_id("card")),
            title=title.strip(),
            list_id=list_id,
            description=description or "",
            position=position,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def create_list(cls, title: str, position: int = 0) -> CardList:
        now = now_utc()
        return CardList(
            ref=Draft(cls.generate_id("list")),
            title=title.strip(),
            position=position,
            cards=[],
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def create_board(cls, title: str, description: str = "") -> Board:
        now = now_utc()
        return Board(
            ref=Draft(cls.generate_id("board")),
            title=title.strip(),
            description=description or "",
            lists=[],
            created_at=now,
            updated_at=now,
        )

    # === Clones ===

    @classmethod
    def clone_card(
        cls,
        card: Card,
        *,
        title: Optional[str] = None,
        list_id: Optional[str] = None,
        description: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Card:
        return cls.create_card(
            title=title if title is not None else card.title,
            list_id=list_id if list_id is not None else card.list_id,
            description=description if description is not None else card.description,
            position=position if position is not None else card.position,
        )

    @classmethod
    def clone_list(
        cls,
        card_list: CardList,
        *,
        title: Optional[str] = None,
        position: Optional[int] = None,
    ) -> CardList:
        new_list = cls.create_list(
            title=title if title is not None else f"{card_list.title} (copy)",
            position=position if position is not None else card_list.position,
        )
        new_list.cards = [cls.clone_card(card, list_id=new_list.id) for card in card_list.cards]
        return new_list

    # === Remote records ===

    @classmethod
    def from_remote(cls, raw: RawRecord) -> Union[Card, CardList]:
        """Normalize a gateway record into a confirmed card or list.

        Records that reference a list (``list_id``) are cards; anything else
        is treated as a list.
        """
        if isinstance(raw, RemoteCard):
            return cls.card_from_remote(raw)
        if isinstance(raw, RemoteList):
            return cls.list_from_remote(raw)
        if "list_id" in raw:
            return cls.card_from_remote(raw)
        return cls.list_from_remote(raw)

    @classmethod
    def card_from_remote(cls, raw: Union[Mapping[str, Any], RemoteCard]) -> Card:
        record = _parse(RemoteCard, raw)
        created_at, updated_at = _timestamps(record.created_at, record.updated_at)
        return Card(
            ref=Confirmed(record.id),
            title=(record.title or "").strip(),
            list_id=record.list_id,
            description=record.description or "",
            position=record.position or 0,
            created_at=created_at,
            updated_at=updated_at,
        )

    @classmethod
    def list_from_remote(cls, raw: Union[Mapping[str, Any], RemoteList]) -> CardList:
        record = _parse(RemoteList, raw)
        created_at, updated_at = _timestamps(record.created_at, record.updated_at)
        return CardList(
            ref=Confirmed(record.id),
            title=(record.title or "").strip(),
            position=record.position or 0,
            cards=[cls.card_from_remote(card) for card in record.cards or []],
            created_at=created_at,
            updated_at=updated_at,
        )

    # === Validation ===

    @classmethod
    def validate_card(cls, card: Any) -> List[str]:
        """Return every violated constraint; an empty list means valid."""
        errors: List[str] = []
        title = _field(card, "title")
        if not isinstance(title, str) or not title.strip():
            errors.append("card title must not be empty")
        if not _field(card, "list_id"):
            errors.append("card must belong to a list")
        if not _is_position(_field(card, "position")):
            errors.append("card position must be a non-negative number")
        return errors

    @classmethod
    def validate_list(cls, card_list: Any) -> List[str]:
        errors: List[str] = []
        title = _field(card_list, "title")
        if not isinstance(title, str) or not title.strip():
            errors.append("list title must not be empty")
        if not _is_position(_field(card_list, "position")):
            errors.append("list position must be a non-negative number")
        return errors

    # === Ids ===

    @staticmethod
    def generate_id(prefix: str) -> str:
        """``<prefix>_<ms timestamp>_<random>``, both parts in base 36.

        Collision-free in practice within one session; not a global unique
        key. Drafts are re-keyed by the gateway on confirmation.
        """
        timestamp = to_base36(time.time_ns() // 1_000_000)
        random_part = to_base36(secrets.randbelow(36**RANDOM_DIGITS)).rjust(RANDOM_DIGITS, "0")
        return f"{prefix}_{timestamp}_{random_part}"


def _parse(model: type[BaseModel], raw: Any) -> Any:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise RecordFormatError(f"malformed {model.__name__} record: {exc}") from exc


def _timestamps(created_at: Optional[datetime], updated_at: Optional[datetime]) -> tuple[datetime, datetime]:
    created = _aware(created_at) if created_at else now_utc()
    return created, _aware(updated_at) if updated_at else created


def _aware(value: datetime) -> datetime:
    # offset-less remote timestamps are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _is_position(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value >= 0
