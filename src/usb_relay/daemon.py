"""Reconciliation loop keeping the board in sync with marker files.

The loop is a three-state machine::

    CONNECTING --open ok--> RECONCILING --apply ok--> SYNCED
        ^                        |                      |
        +---- apply/watch error -+----------------------+

It never terminates on device or watch errors; only the stop event
(or the process being killed) ends ``run()``.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

from .controller import RelayController
from .errors import DeviceNotFoundError, TransportFailureError, WatchSourceError
from .models.relay_state import DesiredState, format_mask
from .watcher import StateWatcher

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_S = 1.0


class DaemonState(Enum):
    CONNECTING = "connecting"
    RECONCILING = "reconciling"
    SYNCED = "synced"


class RelayDaemon:
    """Folds directory events into a relay mask and applies it.

    All device writes happen on the thread calling ``run``/``step``.
    """

    def __init__(
        self,
        controller: RelayController,
        watcher: StateWatcher,
        backoff: float = DEFAULT_BACKOFF_S,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._controller = controller
        self._watcher = watcher
        self._backoff = backoff
        self._stop_event = stop_event or threading.Event()
        self.state = DaemonState.CONNECTING
        self.desired = DesiredState()
        self.apply_count = 0

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stop(self) -> None:
        """Ask ``run`` to return after the current step."""
        self._stop_event.set()

    def run(self) -> None:
        logger.info("Relay daemon starting")
        while not self._stop_event.is_set():
            self.step()
        logger.info("Relay daemon stopped")

    def step(self) -> DaemonState:
        """Run one state transition and return the new state."""
        handler = {
            DaemonState.CONNECTING: self._connect,
            DaemonState.RECONCILING: self._reconcile,
            DaemonState.SYNCED: self._wait_for_events,
        }[self.state]
        new_state = handler()
        if new_state is not self.state:
            logger.debug("State %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        return new_state

    def _connect(self) -> DaemonState:
        try:
            self._controller.ensure_connected()
        except DeviceNotFoundError as e:
            logger.warning("%s; retrying in %.1fs", e, self._backoff)
            self._stop_event.wait(self._backoff)
            return DaemonState.CONNECTING
        return DaemonState.RECONCILING

    def _reconcile(self) -> DaemonState:
        try:
            names = self._watcher.scan()
        except WatchSourceError as e:
            logger.warning("Initial scan failed: %s", e)
            self._stop_event.wait(self._backoff)
            return DaemonState.CONNECTING

        self.desired = DesiredState.from_names(names)
        logger.info("Initial scan: desired mask %s", format_mask(self.desired.mask))
        return self._apply_desired(DaemonState.SYNCED, backoff_on_failure=True)

    def _wait_for_events(self) -> DaemonState:
        try:
            events = self._watcher.next_batch()
        except WatchSourceError as e:
            logger.warning("Watch source failed: %s; resynchronizing", e)
            self._stop_event.wait(self._backoff)
            return DaemonState.CONNECTING

        if not events:
            return DaemonState.SYNCED

        for event in events:
            self.desired.apply_event(event)
        return self._apply_desired(DaemonState.SYNCED)

    def _apply_desired(
        self, on_success: DaemonState, backoff_on_failure: bool = False
    ) -> DaemonState:
        mask = self.desired.mask
        try:
            self._controller.apply(mask)
        except (TransportFailureError, DeviceNotFoundError) as e:
            logger.warning("Applying mask %s failed: %s", format_mask(mask), e)
            # Reconcile failures would otherwise reopen the board in a tight loop.
            if backoff_on_failure:
                self._stop_event.wait(self._backoff)
            return DaemonState.CONNECTING
        self.apply_count += 1
        return on_success
