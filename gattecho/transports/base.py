"""Radio-stack interface the peripheral core depends on."""

from __future__ import annotations

from collections.abc import Collection
from typing import Protocol

from gattecho.core.events import EventSink


class RadioStack(Protocol):
    def attach(self, sink: EventSink) -> None:
        """Register where power, traffic and advertising results are reported."""

    def start_advertising(self, service_uuid: str, characteristic_uuid: str, local_name: str) -> None:
        """Register the service and start advertising.

        Completion is reported through ``ServiceAdded`` and
        ``AdvertisingStarted`` events.
        """

    def stop_advertising(self) -> None:
        """Stop advertising; no completion event follows."""

    def notify(self, characteristic_uuid: str, payload: bytes, recipients: Collection[str]) -> bool:
        """Queue a notification; False when the outbound queue is full."""
