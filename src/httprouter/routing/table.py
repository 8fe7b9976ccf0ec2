"""
Route table: the ordered list of registered entries.

Insertion order is match priority. Entries are never reordered, merged
or deduplicated, and there is no removal API. The table is written
during application setup and only read once requests are being served;
freeze() turns that convention into an error for late registrations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple
import logging

from ..errors import RouteTableFrozenError
from ..middleware.base import Action, action_name
from .matcher import PathPattern, RouterMethod, matches


logger = logging.getLogger(__name__)


class ActionKind(Enum):
    """
    Documentation-only distinction: both kinds are invoked identically.
    It only decides how a pattern is compiled (EXACT vs PREFIX).
    """

    HANDLER = "handler"
    MIDDLEWARE = "middleware"


@dataclass(frozen=True)
class RouteEntry:
    """One registered (method filter, optional pattern, action) tuple."""

    method: RouterMethod
    pattern: Optional[PathPattern]
    action: Action
    kind: ActionKind = ActionKind.HANDLER

    @property
    def name(self) -> str:
        return action_name(self.action)

    @property
    def path(self) -> Optional[str]:
        return self.pattern.source if self.pattern is not None else None

    def matches(self, request_method: str, request_path: str) -> Optional[Dict[str, str]]:
        return matches(self.method, self.pattern, request_method, request_path)

    def describe(self) -> str:
        return f"{self.method.value:7} {self.path or '*':30} {self.kind.value:10} {self.name}"


class RouteTable:
    """
    Append-only, ordered sequence of RouteEntry.

        table = RouteTable()
        table.register(RouteEntry(RouterMethod.GET, PathPattern.compile("/"), home))
        for entry in table.entries():
            ...
    """

    def __init__(self):
        self._entries: Tuple[RouteEntry, ...] = ()
        self._frozen = False

    def register(self, entry: RouteEntry) -> RouteEntry:
        """
        Append an entry.

        Raises:
            RouteTableFrozenError: If freeze() has been called.
        """
        if self._frozen:
            raise RouteTableFrozenError(
                f"Cannot register {entry.describe().strip()}: route table is frozen"
            )
        # Readers hold on to the old tuple, so an append never changes a
        # sequence that a dispatch is iterating.
        self._entries = self._entries + (entry,)
        logger.debug("Registered route %d: %s", len(self._entries) - 1, entry.describe())
        return entry

    def entries(self) -> Tuple[RouteEntry, ...]:
        """Snapshot of the entries in registration order."""
        return self._entries

    def freeze(self) -> None:
        """Reject further registrations. Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> RouteEntry:
        return self._entries[index]
