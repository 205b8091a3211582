"""Observable peripheral state owned by the core."""

from __future__ import annotations

import logging
from collections.abc import Callable

from gattecho.core.lifecycle import LifecycleMachine
from gattecho.core.model import EchoLogEntry, PeripheralSnapshot
from gattecho.core.registry import SessionRegistry

LOGGER = logging.getLogger(__name__)

Observer = Callable[[PeripheralSnapshot], None]


class EchoLog:
    """Append-only log of echo traffic, kept in arrival order."""

    def __init__(self) -> None:
        self._entries: list[EchoLogEntry] = []

    def append(self, entry: EchoLogEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> tuple[EchoLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class StateStore:
    """Holds lifecycle, sessions and echo log and broadcasts snapshots.

    Only the peripheral's event path mutates the store. Observers receive
    immutable :class:`PeripheralSnapshot` copies, synchronously, once per
    processed event and only when something visible changed.
    """

    def __init__(self, device_name: str) -> None:
        self.device_name = device_name
        self.lifecycle = LifecycleMachine()
        self.sessions = SessionRegistry()
        self.echo_log = EchoLog()
        self._observers: list[Observer] = []
        self._published: PeripheralSnapshot | None = None

    def snapshot(self) -> PeripheralSnapshot:
        return PeripheralSnapshot(
            device_name=self.device_name,
            power=self.lifecycle.power,
            advertising=self.lifecycle.advertising,
            last_error=self.lifecycle.last_error,
            sessions=self.sessions.list(),
            echo_log=self.echo_log.entries(),
        )

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer``; it is called immediately with the current state."""
        self._observers.append(observer)
        observer(self.snapshot())

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def publish(self) -> bool:
        snapshot = self.snapshot()
        if snapshot == self._published:
            return False
        self._published = snapshot
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                LOGGER.exception("State observer %r failed", observer)
        return True
