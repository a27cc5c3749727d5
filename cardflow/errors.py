from __future__ import annotations

from typing import Any, Dict, List, Optional


class CardflowError(Exception):
    """Base class for errors raised by cardflow."""


class PersistenceError(CardflowError):
    """A gateway call failed.

    ``entity`` is set when the failing operation had already changed local
    state (e.g. an optimistic delete) and the caller may want to restore it.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        entity: Any = None,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code
        self.entity = entity


class PartialMoveError(PersistenceError):
    """Some of the per-card position updates of a move failed.

    Local state keeps the moved layout; the gateway holds a mix of old and
    new positions for the affected lists.
    """

    def __init__(self, failures: Dict[str, BaseException], applied: List[str]) -> None:
        super().__init__(
            "move_card",
            f"{len(failures)} of {len(failures) + len(applied)} position updates failed",
        )
        self.failures = failures
        self.applied = applied


class DraftEntityError(CardflowError, ValueError):
    """An operation tried to send a draft id to the gateway."""


class RecordFormatError(CardflowError, ValueError):
    """A remote record could not be normalized."""
