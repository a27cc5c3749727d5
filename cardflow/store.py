from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, MutableSequence, Optional, TypeVar

from .errors import DraftEntityError, PartialMoveError, PersistenceError
from .factory import EntityFactory
from .gateway import Gateway
from .models import Board, Card, CardList, now_utc
from .ordering import reindex, reindex_lists

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticStore:
    """Owns one board and keeps it in step with a remote gateway.

    Every mutation is applied to local state before its first ``await``, so
    callers see the change immediately; the gateway result then confirms the
    draft or the store discards it and re-raises.

    Two independent operations running concurrently are not ordered against
    each other: the gateway keeps whichever write lands last.
    """

    def __init__(self, gateway: Gateway, board: Optional[Board] = None) -> None:
        self.gateway = gateway
        self.board = board if board is not None else EntityFactory.create_board("My Board")
        self.is_loading = False

    # === Lookups ===

    def find_list(self, list_id: str) -> Optional[CardList]:
        for card_list in self.board.lists:
            if card_list.id == list_id:
                return card_list
        return None

    def find_card(self, card_id: str) -> Optional[Card]:
        for card_list in self.board.lists:
            for card in card_list.cards:
                if card.id == card_id:
                    return card
        return None

    # === Board ===

    async def fetch_board(self) -> Board:
        """Replace local lists and cards with the gateway's current view."""
        self.is_loading = True
        try:
            list_records, card_records = await asyncio.gather(
                self.gateway.list_lists(), self.gateway.list_cards()
            )
        except PersistenceError as exc:
            logger.error(f"Failed to fetch board {self.board.id}: {exc}")
            raise
        finally:
            self.is_loading = False

        lists = sorted(
            (EntityFactory.list_from_remote(r) for r in list_records),
            key=lambda l: l.position,
        )
        cards_by_list: Dict[str, List[Card]] = defaultdict(list)
        for record in card_records:
            card = EntityFactory.card_from_remote(record)
            cards_by_list[card.list_id].append(card)

        for card_list in lists:
            card_list.cards = sorted(cards_by_list.pop(card_list.id, []), key=lambda c: c.position)
        for list_id, orphans in cards_by_list.items():
            logger.warning(f"Dropping {len(orphans)} cards that reference unknown list {list_id}")

        reindex(lists)
        reindex_lists(lists)
        self.board.lists = lists
        logger.info(f"Loaded {len(lists)} lists into board {self.board.id}")
        return self.board

    # === List operations ===

    async def create_list(self, title: str) -> Optional[CardList]:
        draft = EntityFactory.create_list(title, position=len(self.board.lists))
        errors = EntityFactory.validate_list(draft)
        if errors:
            logger.warning(f"Not creating list: {'; '.join(errors)}")
            return None

        self.board.lists.append(draft)
        logger.debug(f"Draft list {draft.id} added to board {self.board.id}")
        try:
            record = await self.gateway.create_list(draft.title)
            confirmed = EntityFactory.list_from_remote(record)
        except Exception as exc:
            _discard(self.board.lists, draft)
            reindex(self.board.lists)
            logger.error(f"Failed to create list {draft.title!r}, draft discarded: {exc}")
            if isinstance(exc, PersistenceError):
                raise
            raise PersistenceError("create_list", str(exc) or type(exc).__name__) from exc

        if not _replace(self.board.lists, draft, confirmed):
            logger.warning(f"Draft list {draft.id} was removed before {confirmed.id} was confirmed")
            return confirmed
        reindex(self.board.lists)
        logger.info(f"List {draft.id} confirmed as {confirmed.id}")
        return confirmed

    async def remove_list(self, list_id: str) -> Optional[CardList]:
        card_list = self.find_list(list_id)
        if card_list is None:
            logger.warning(f"remove_list: list {list_id} not found")
            return None
        if card_list.is_draft:
            raise DraftEntityError(f"list {list_id} is not confirmed yet")

        _discard(self.board.lists, card_list)
        reindex(self.board.lists)
        try:
            await self.gateway.delete_list(card_list.id)
        except PersistenceError as exc:
            # The list and its cards stay removed locally; exc.entity allows a restore.
            logger.error(f"Failed to delete list {list_id}; local state was not restored: {exc}")
            raise PersistenceError(
                "delete_list", exc.message, status_code=exc.status_code, entity=card_list
            ) from exc
        logger.info(f"List {list_id} deleted with {len(card_list.cards)} cards")
        return card_list

    # === Card operations ===

    async def create_card(self, list_id: str, title: str) -> Optional[Card]:
        card_list = self.find_list(list_id)
        if card_list is None:
            logger.warning(f"create_card: list {list_id} not found")
            return None
        if card_list.is_draft:
            raise DraftEntityError(f"list {list_id} is not confirmed yet")

        draft = EntityFactory.create_card(title, list_id=list_id, position=len(card_list.cards))
        errors = EntityFactory.validate_card(draft)
        if errors:
            logger.warning(f"Not creating card: {'; '.join(errors)}")
            return None

        card_list.cards.append(draft)
        logger.debug(f"Draft card {draft.id} added to list {list_id}")
        try:
            record = await self.gateway.create_card(draft.title, list_id)
            confirmed = EntityFactory.card_from_remote(record)
        except Exception as exc:
            _discard(card_list.cards, draft)
            reindex(card_list.cards)
            logger.error(f"Failed to create card {draft.title!r} in list {list_id}, draft discarded: {exc}")
            if isinstance(exc, PersistenceError):
                raise
            raise PersistenceError("create_card", str(exc) or type(exc).__name__) from exc

        if not any(l is card_list for l in self.board.lists) or not _replace(card_list.cards, draft, confirmed):
            logger.warning(f"Draft card {draft.id} was removed before {confirmed.id} was confirmed")
            return confirmed
        confirmed.list_id = card_list.id
        reindex(card_list.cards)
        logger.info(f"Card {draft.id} confirmed as {confirmed.id}")
        return confirmed

    async def remove_card(self, list_id: str, card_id: str) -> Optional[Card]:
        card_list = self.find_list(list_id)
        card = None
        if card_list is not None:
            card = next((c for c in card_list.cards if c.id == card_id), None)
        if card_list is None or card is None:
            logger.warning(f"remove_card: card {card_id} not found in list {list_id}")
            return None
        if card.is_draft:
            raise DraftEntityError(f"card {card_id} is not confirmed yet")

        _discard(card_list.cards, card)
        reindex(card_list.cards)
        try:
            await self.gateway.delete_card(card_id)
        except PersistenceError as exc:
            logger.error(f"Failed to delete card {card_id}; local state was not restored: {exc}")
            raise PersistenceError(
                "delete_card", exc.message, status_code=exc.status_code, entity=card
            ) from exc
        logger.info(f"Card {card_id} deleted from list {list_id}")
        return card

    async def move_card(
        self,
        from_list_id: str,
        to_list_id: str,
        card_index: int,
        new_index: Optional[int] = None,
    ) -> Optional[Card]:
        """Move a card and persist the position of every card in the lists it touched.

        ``new_index`` of ``None`` (or past the end) appends. The updates are
        sent concurrently and are not transactional: if some fail, local
        state keeps the new layout and :class:`PartialMoveError` reports
        which cards did and did not reach the gateway.
        """
        from_list = self.find_list(from_list_id)
        to_list = self.find_list(to_list_id)
        if from_list is None or to_list is None:
            logger.warning(f"move_card: list {from_list_id} or {to_list_id} not found")
            return None
        if not 0 <= card_index < len(from_list.cards):
            logger.warning(f"move_card: no card at index {card_index} in list {from_list_id}")
            return None
        card = from_list.cards[card_index]
        if card.is_draft or to_list.is_draft:
            raise DraftEntityError(f"cannot move card {card.id} before it and its target list are confirmed")

        del from_list.cards[card_index]
        if new_index is None or new_index >= len(to_list.cards):
            to_list.cards.append(card)
        else:
            to_list.cards.insert(max(new_index, 0), card)
        card.list_id = to_list.id
        card.updated_at = now_utc()
        affected = reindex_lists([from_list, to_list])
        logger.debug(f"Moved card {card.id} from {from_list_id}[{card_index}] to {to_list_id}[{card.position}]")

        await self._persist_positions(affected)
        return card

    async def _persist_positions(self, lists: Iterable[CardList]) -> None:
        targets: List[Card] = []
        for card_list in lists:
            for card in card_list.cards:
                if card.is_draft:
                    logger.warning(f"Skipping position update for draft card {card.id}")
                    continue
                targets.append(card)

        results = await asyncio.gather(
            *(self.gateway.update_card(c.id, list_id=c.list_id, position=c.position) for c in targets),
            return_exceptions=True,
        )
        failures: Dict[str, BaseException] = {}
        applied: List[str] = []
        for card, result in zip(targets, results):
            if isinstance(result, Exception):
                failures[card.id] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                applied.append(card.id)
        if failures:
            logger.error(
                f"Move partially applied: {len(failures)} of {len(targets)} position updates failed "
                f"({', '.join(failures)})"
            )
            raise PartialMoveError(failures, applied)

    # === Local edits ===

    def update_card_title(self, card_id: str, title: str) -> Optional[Card]:
        card = self.find_card(card_id)
        if card is None:
            logger.warning(f"update_card_title: card {card_id} not found")
            return None
        errors = EntityFactory.validate_card({"title": title, "list_id": card.list_id, "position": card.position})
        if errors:
            logger.warning(f"Not renaming card {card_id}: {'; '.join(errors)}")
            return None
        card.title = title.strip()
        card.updated_at = now_utc()
        return card

    def update_card_description(self, card_id: str, description: str) -> Optional[Card]:
        card = self.find_card(card_id)
        if card is None:
            logger.warning(f"update_card_description: card {card_id} not found")
            return None
        card.description = description
        card.updated_at = now_utc()
        return card


def _discard(items: MutableSequence[T], item: T) -> bool:
    for index, candidate in enumerate(items):
        if candidate is item:
            del items[index]
            return True
    return False


def _replace(items: MutableSequence[T], old: T, new: T) -> bool:
    for index, candidate in enumerate(items):
        if candidate is old:
            items[index] = new
            return True
    return False
