"""Filesystem notifications for the assets directory."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Iterator

from watchfiles import Change, DefaultFilter, watch

from uwu.watcher.debounce import EventKind, FileEvent


class FileWatcher:
    """Turns ``watchfiles`` notifications into batches of ``FileEvent``.

    An empty batch is yielded every ``tick`` seconds without changes so the
    consumer can check its debounce deadline.
    """

    def __init__(
        self,
        watch_dir: Path,
        tick: float = 0.25,
        force_polling: bool | None = None,
    ):
        self.watch_dir = watch_dir
        self.tick = tick
        self.force_polling = force_polling
        self.logger = logging.getLogger("uwu.watcher")
        self._stop_event = threading.Event()
        self._seen: dict[str, tuple[int, int]] = {}

    def stop(self) -> None:
        """Stop watching."""
        self._stop_event.set()

    def __iter__(self) -> Iterator[list[FileEvent]]:
        tick_ms = max(int(self.tick * 1000), 1)
        for changes in watch(
            self.watch_dir,
            watch_filter=DefaultFilter(),
            debounce=tick_ms,
            step=min(50, tick_ms),
            rust_timeout=tick_ms,
            yield_on_timeout=True,
            stop_event=self._stop_event,
            force_polling=self.force_polling,
        ):
            events = [self.classify(change, path) for change, path in changes]
            for event in events:
                self.logger.debug(f"{event.kind.value}: {event.path}")
            yield events

    def classify(self, change: Change, path: str) -> FileEvent:
        """Map a notification onto an event kind.

        A modification that leaves size and mtime alone only touched
        attributes, so it is reported as ``CHMOD``.
        """
        if change == Change.added:
            self._remember(path)
            return FileEvent(EventKind.CREATE, path)
        elif change == Change.deleted:
            self._seen.pop(path, None)
            return FileEvent(EventKind.REMOVE, path)

        previous = self._seen.get(path)
        current = self._remember(path)
        if previous is not None and previous == current:
            return FileEvent(EventKind.CHMOD, path)
        return FileEvent(EventKind.WRITE, path)

    def _remember(self, path: str) -> tuple[int, int] | None:
        try:
            stat = os.stat(path)
        except OSError:
            self._seen.pop(path, None)
            return None
        signature = (stat.st_size, stat.st_mtime_ns)
        self._seen[path] = signature
        return signature
