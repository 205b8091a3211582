"""Notification delivery with a single delayed retry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from enum import Enum
from typing import Any

from gattecho.core.codec import Message, describe, encode
from gattecho.transports.base import RadioStack

LOGGER = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_S = 0.1

Scheduler = Callable[[float, Callable[[], None]], Any]


class DeliveryOutcome(Enum):
    SENT = "sent"
    RETRY_SCHEDULED = "retry_scheduled"


class NotificationEngine:
    """Pushes encoded responses to subscribed centrals.

    When the radio refuses a notification the same bytes are replayed to the
    same recipients exactly once after ``retry_delay_s``. The retry is never
    cancelled and its result is not reported back.
    """

    def __init__(
        self,
        radio: RadioStack,
        characteristic_uuid: str,
        *,
        schedule: Scheduler,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
    ) -> None:
        self.radio = radio
        self.characteristic_uuid = characteristic_uuid
        self.retry_delay_s = retry_delay_s
        self._schedule = schedule
        self.attempts = 0

    def deliver(self, message: Message, recipients: Collection[str]) -> DeliveryOutcome:
        data = encode(message)
        targets = frozenset(recipients)
        if self._send(data, targets):
            LOGGER.debug("Sent %s to %s", describe(message), ", ".join(sorted(targets)))
            return DeliveryOutcome.SENT

        LOGGER.info(
            "Radio rejected %s; retrying in %.0f ms", describe(message), self.retry_delay_s * 1000
        )
        self._schedule(self.retry_delay_s, lambda: self._retry(data, targets))
        return DeliveryOutcome.RETRY_SCHEDULED

    def _send(self, data: bytes, recipients: frozenset[str]) -> bool:
        self.attempts += 1
        return bool(self.radio.notify(self.characteristic_uuid, data, recipients))

    def _retry(self, data: bytes, recipients: frozenset[str]) -> None:
        if not self._send(data, recipients):
            LOGGER.warning("Retry of %s also rejected; dropping notification", data.hex())
