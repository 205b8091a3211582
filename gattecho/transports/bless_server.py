"""GATT server radio stack backed by ``bless``."""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import threading
from collections.abc import Collection
from typing import Any

from gattecho.core.errors import RadioUnavailableError
from gattecho.core.events import (
    AdvertisingStarted,
    ClientSubscribed,
    ClientUnsubscribed,
    EventSink,
    PowerChanged,
    ReadReceived,
    ServiceAdded,
    WriteReceived,
)
from gattecho.core.model import RadioPower

LOGGER = logging.getLogger(__name__)

ANONYMOUS_CENTRAL = "central"


def _sender_identity(kwargs: dict[str, Any]) -> str:
    for key in ("central", "device", "address"):
        value = kwargs.get(key)
        if value:
            return str(getattr(value, "identifier", value))
    return ANONYMOUS_CENTRAL


class BlessRadio:
    """Adapter exposing :class:`bless.BlessServer` as a radio stack.

    bless reports neither subscriptions nor the writing central on every
    backend. The first write from an unseen central is reported as a
    subscription, and stopping advertising reports every known central as
    unsubscribed. Notifications go to all subscribed centrals.
    """

    def __init__(self) -> None:
        self._sink: EventSink | None = None
        self._server: Any = None
        self._service_uuid: str | None = None
        self._characteristic_uuid: str | None = None
        self._centrals: list[str] = []
        self._centrals_lock = threading.Lock()
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()

    def attach(self, sink: EventSink) -> None:
        self._sink = sink
        available = importlib.util.find_spec("bless") is not None
        if not available:
            LOGGER.warning("bless is not installed; GATT server unavailable")
        self._emit(PowerChanged(power=RadioPower.ON if available else RadioPower.UNSUPPORTED))

    def start_advertising(self, service_uuid: str, characteristic_uuid: str, local_name: str) -> None:
        self._generation += 1
        self._spawn(self._start(self._generation, service_uuid, characteristic_uuid, local_name))

    def stop_advertising(self) -> None:
        # A start still awaiting bless sees the new generation and backs out.
        self._generation += 1
        server, self._server = self._server, None
        with self._centrals_lock:
            centrals, self._centrals = self._centrals, []
            for identity in centrals:
                self._emit(ClientUnsubscribed(identity=identity))
        if server is not None:
            self._spawn(self._stop(server))

    def notify(self, characteristic_uuid: str, payload: bytes, recipients: Collection[str]) -> bool:
        server = self._server
        if server is None or self._service_uuid is None:
            return False
        characteristic = server.get_characteristic(characteristic_uuid)
        if characteristic is None:
            return False
        characteristic.value = bytearray(payload)
        return bool(server.update_value(self._service_uuid, characteristic_uuid))

    def _emit(self, event: Any) -> None:
        if self._sink is not None:
            self._sink(event)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _start(self, generation: int, service_uuid: str, characteristic_uuid: str, local_name: str) -> None:
        try:
            from bless import (  # type: ignore
                BlessServer,
                GATTAttributePermissions,
                GATTCharacteristicProperties,
            )
        except ImportError as exc:
            error = RadioUnavailableError("GATT server requires 'bless'. Install dependency and retry.")
            LOGGER.error("%s (%s)", error, exc)
            self._emit(ServiceAdded(error=str(error)))
            self._emit(AdvertisingStarted(error=str(error)))
            return

        self._service_uuid = service_uuid
        self._characteristic_uuid = characteristic_uuid
        try:
            server = BlessServer(name=local_name, loop=asyncio.get_running_loop())
            server.read_request_func = self._on_read
            server.write_request_func = self._on_write
            await server.add_new_service(service_uuid)
            await server.add_new_characteristic(
                service_uuid,
                characteristic_uuid,
                GATTCharacteristicProperties.notify
                | GATTCharacteristicProperties.read
                | GATTCharacteristicProperties.write
                | GATTCharacteristicProperties.write_without_response,
                None,
                GATTAttributePermissions.readable | GATTAttributePermissions.writeable,
            )
        except Exception as exc:
            if generation == self._generation:
                self._emit(ServiceAdded(error=str(exc)))
                self._emit(AdvertisingStarted(error=str(exc)))
            return
        if generation != self._generation:
            LOGGER.info("Advertising stopped during service registration; not starting GATT server")
            return
        self._emit(ServiceAdded())

        try:
            started = await server.start()
        except Exception as exc:
            if generation == self._generation:
                self._emit(AdvertisingStarted(error=str(exc)))
            return
        if generation != self._generation:
            LOGGER.info("Advertising stopped while GATT server was starting; shutting it down")
            if started is not False:
                await self._stop(server)
            return
        if started is False:
            self._emit(AdvertisingStarted(error="GATT server refused to start"))
            return

        self._server = server
        self._emit(AdvertisingStarted())

    async def _stop(self, server: Any) -> None:
        try:
            await server.stop()
        except Exception as exc:
            LOGGER.warning("GATT server stop failed: %s", exc)

    def _matches(self, characteristic: Any) -> bool:
        uuid = str(getattr(characteristic, "uuid", "")).lower()
        return uuid == (self._characteristic_uuid or "").lower()

    def _on_read(self, characteristic: Any, **kwargs: Any) -> bytearray:
        if self._matches(characteristic):
            self._emit(ReadReceived(sender=_sender_identity(kwargs)))
        return bytearray()

    def _on_write(self, characteristic: Any, value: Any, **kwargs: Any) -> None:
        # May run on the backend's dispatch thread, concurrently with stop_advertising.
        if not self._matches(characteristic) or value is None:
            return
        sender = _sender_identity(kwargs)
        with self._centrals_lock:
            if sender not in self._centrals:
                self._centrals.append(sender)
                self._emit(ClientSubscribed(identity=sender))
            self._emit(WriteReceived(data=bytes(value), sender=sender))
