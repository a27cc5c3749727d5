from __future__ import annotations

from typing import Iterable, List, MutableSequence, Protocol, Sequence

from .models import CardList


class Positioned(Protocol):
    position: int


def reindex(items: MutableSequence[Positioned]) -> None:
    """Set ``position`` to the index of each item, in place.

    Must run after the splice that changed the sequence, not instead of it:
    shifting neighbours by one breaks when a drag reorders inside one list.
    """
    for index, item in enumerate(items):
        item.position = index


def reindex_lists(lists: Iterable[CardList]) -> List[CardList]:
    """Reindex the cards of every distinct list, returning those lists.

    A move inside a single list passes it twice; it is renumbered once.
    """
    seen: set[str] = set()
    touched: List[CardList] = []
    for card_list in lists:
        if card_list.id in seen:
            continue
        seen.add(card_list.id)
        reindex(card_list.cards)
        touched.append(card_list)
    return touched


def is_contiguous(items: Sequence[Positioned]) -> bool:
    return all(item.position == index for index, item in enumerate(items))
