from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from .errors import PersistenceError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class Gateway(Protocol):
    """Remote persistence used by the optimistic store.

    Every method returns records in the remote shape (snake_case keys, ISO
    timestamp strings) and raises :class:`PersistenceError` on failure.
    """

    async def list_lists(self) -> List[Record]: ...

    async def list_cards(self) -> List[Record]: ...

    async def create_list(self, title: str) -> Record: ...

    async def create_card(self, title: str, list_id: str) -> Record: ...

    async def update_card(
        self,
        card_id: str,
        *,
        list_id: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Record: ...

    async def delete_list(self, list_id: str) -> None: ...

    async def delete_card(self, card_id: str) -> None: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class InMemoryGateway:
    """Dict-backed gateway for offline use and tests."""

    def __init__(self) -> None:
        self.lists: Dict[str, Record] = {}
        self.cards: Dict[str, Record] = {}

    # === List operations ===
    async def list_lists(self) -> List[Record]:
        return [dict(r) for r in sorted(self.lists.values(), key=lambda r: r["position"])]

    async def create_list(self, title: str) -> Record:
        now = _now_iso()
        record = {
            "id": str(uuid.uuid4()),
            "title": title.strip(),
            "position": len(self.lists),
            "created_at": now,
            "updated_at": now,
        }
        self.lists[record["id"]] = record
        return dict(record)

    async def delete_list(self, list_id: str) -> None:
        if list_id not in self.lists:
            raise PersistenceError("delete_list", f"list {list_id} not found", status_code=404)
        # remove list and its cards
        to_remove = [cid for cid, c in self.cards.items() if c["list_id"] == list_id]
        for cid in to_remove:
            del self.cards[cid]
        del self.lists[list_id]
        logger.debug(f"Deleted list {list_id} with {len(to_remove)} cards")

    # === Card operations ===
    async def list_cards(self) -> List[Record]:
        ordered = sorted(self.cards.values(), key=lambda r: (r["list_id"], r["position"]))
        return [dict(r) for r in ordered]

    async def create_card(self, title: str, list_id: str) -> Record:
        if list_id not in self.lists:
            raise PersistenceError("create_card", f"list {list_id} not found", status_code=404)
        now = _now_iso()
        record = {
            "id": str(uuid.uuid4()),
            "title": title.strip(),
            "description": "",
            "position": sum(1 for c in self.cards.values() if c["list_id"] == list_id),
            "list_id": list_id,
            "created_at": now,
            "updated_at": now,
        }
        self.cards[record["id"]] = record
        return dict(record)

    async def update_card(
        self,
        card_id: str,
        *,
        list_id: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Record:
        record = self.cards.get(card_id)
        if record is None:
            raise PersistenceError("update_card", f"card {card_id} not found", status_code=404)
        if list_id is not None:
            if list_id not in self.lists:
                raise PersistenceError("update_card", f"list {list_id} not found", status_code=404)
            record["list_id"] = list_id
        if position is not None:
            record["position"] = position
        record["updated_at"] = _now_iso()
        return dict(record)

    async def delete_card(self, card_id: str) -> None:
        if self.cards.pop(card_id, None) is None:
            raise PersistenceError("delete_card", f"card {card_id} not found", status_code=404)
