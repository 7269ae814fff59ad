"""Filesystem event classification and debouncing."""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, NamedTuple


class EventKind(str, Enum):
    """What happened to a path.

    ``watchfiles`` only reports added, modified and deleted paths, so
    ``FileWatcher`` produces ``CREATE``, ``WRITE``, ``REMOVE`` and ``CHMOD``.
    A rename arrives as a ``REMOVE`` plus a ``CREATE``. ``RENAME``, ``RESCAN``
    and ``NOTICE`` cover sources that report those directly.
    """

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    CHMOD = "chmod"
    RESCAN = "rescan"
    NOTICE = "notice"

    @property
    def is_change(self) -> bool:
        """Whether this kind of event means file contents actually changed."""
        return self in _CHANGES


_CHANGES = frozenset(
    {EventKind.CREATE, EventKind.WRITE, EventKind.REMOVE, EventKind.RENAME}
)


class FileEvent(NamedTuple):
    kind: EventKind
    path: str


class Debouncer:
    """Collapses a burst of change events into a single signal.

    A signal is due once ``delay`` seconds pass without a new change, or once
    ``max_delay`` seconds pass since the first change of the burst, whichever
    comes first.
    """

    def __init__(
        self,
        delay: float,
        max_delay: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.delay = delay
        self.max_delay = max_delay
        self.clock = clock
        self._first: float | None = None
        self._last: float | None = None

    @property
    def pending(self) -> bool:
        return self._first is not None

    def observe(self, event: FileEvent) -> bool:
        """Record ``event``; return True if it counts as a change."""
        if not event.kind.is_change:
            return False

        now = self.clock()
        if self._first is None:
            self._first = now
        self._last = now
        return True

    def poll(self) -> bool:
        """Return True, and reset, if a pending burst is due."""
        if self._first is None or self._last is None:
            return False

        now = self.clock()
        quiet = now - self._last >= self.delay
        overdue = self.max_delay is not None and now - self._first >= self.max_delay
        if quiet or overdue:
            self._first = self._last = None
            return True

        return False

    def rearm(self) -> None:
        """Schedule another signal one window from now."""
        now = self.clock()
        if self._first is None:
            self._first = now
        self._last = now
