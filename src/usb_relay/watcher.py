"""Directory watch source producing ordered batches of file events.

The daemon consumes the ``StateWatcher`` interface only. ``PollingWatcher``
is the bundled implementation: it snapshots the directory at a fixed
interval and diffs consecutive snapshots.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from .errors import WatchSourceError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.2


class EventKind(Enum):
    CREATED = "created"
    DELETED = "deleted"


@dataclass(frozen=True)
class WatchEvent:
    """A single change observed in the watched directory."""

    kind: EventKind
    name: str
    is_directory: bool = False


class StateWatcher(Protocol):
    def scan(self) -> set[str]:
        """Return the names of all entries currently in the directory."""

    def next_batch(self) -> list[WatchEvent]:
        """Block until at least one event is available and return them in order."""


class PollingWatcher:
    """Watches a directory by periodically diffing its listing.

    Usage::

        watcher = PollingWatcher("/tmp")
        present = watcher.scan()
        for event in watcher.next_batch():
            ...

    ``next_batch`` returns an empty list only when ``stop_event`` is set.
    """

    def __init__(
        self,
        directory: str | os.PathLike,
        interval: float = DEFAULT_POLL_INTERVAL,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._directory = Path(directory)
        self._interval = interval
        self._stop_event = stop_event or threading.Event()
        self._snapshot: dict[str, bool] | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _list(self) -> dict[str, bool]:
        try:
            with os.scandir(self._directory) as entries:
                return {
                    entry.name: entry.is_dir(follow_symlinks=False)
                    for entry in entries
                }
        except OSError as e:
            raise WatchSourceError(
                f"Cannot list watched directory {self._directory}: {e}"
            ) from e

    def scan(self) -> set[str]:
        """Take a fresh snapshot and return the names of non-directory entries.

        The snapshot becomes the baseline for the next ``next_batch`` call.
        """
        self._snapshot = self._list()
        return {name for name, is_dir in self._snapshot.items() if not is_dir}

    def next_batch(self) -> list[WatchEvent]:
        if self._snapshot is None:
            self.scan()

        while not self._stop_event.is_set():
            current = self._list()
            events = diff_snapshots(self._snapshot, current)
            self._snapshot = current
            if events:
                return events
            self._stop_event.wait(self._interval)

        return []


def diff_snapshots(
    before: dict[str, bool], after: dict[str, bool]
) -> list[WatchEvent]:
    """Compute the events turning ``before`` into ``after``.

    Events are sorted by name. An entry replaced by one of a different
    type yields a deletion followed by a creation.
    """
    events: list[WatchEvent] = []
    for name in sorted(before.keys() | after.keys()):
        old = before.get(name)
        new = after.get(name)
        if old is not None and (new is None or new != old):
            events.append(WatchEvent(EventKind.DELETED, name, old))
        if new is not None and (old is None or new != old):
            events.append(WatchEvent(EventKind.CREATED, name, new))
    return events
