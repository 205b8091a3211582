"""Peripheral core: one serialized event path over the protocol state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from gattecho.core.codec import (
    EchoRequest,
    EchoResponse,
    VersionRequest,
    VersionResponse,
    decode,
    describe,
)
from gattecho.core.delivery import DeliveryOutcome, NotificationEngine, Scheduler
from gattecho.core.errors import DecodeError
from gattecho.core.events import (
    AdvertisingStarted,
    ClearEchoLogRequested,
    ClientSubscribed,
    ClientUnsubscribed,
    DismissErrorRequested,
    Event,
    PowerChanged,
    ReadReceived,
    RetryDue,
    ServiceAdded,
    StartAdvertisingRequested,
    StopAdvertisingRequested,
    ToggleAdvertisingRequested,
    WriteReceived,
)
from gattecho.core.model import (
    AdvertisingState,
    DeviceSession,
    Direction,
    EchoLogEntry,
    PeripheralConfig,
    PeripheralSnapshot,
)
from gattecho.core.state import Observer, StateStore
from gattecho.transports.base import RadioStack

LOGGER = logging.getLogger(__name__)

INVALID_TEXT = "Invalid message"

_STOP = object()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Peripheral:
    """Emulated peripheral exposing the version/echo protocol.

    Radio callbacks, retry timers and user commands all become events on one
    bounded queue drained by :meth:`run`. :meth:`handle` processes a single
    event and publishes the resulting snapshot before returning, so observers
    never see a half-applied update.
    """

    def __init__(
        self,
        config: PeripheralConfig,
        radio: RadioStack,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config
        self.radio = radio
        self.store = StateStore(config.device_name)
        self.engine = NotificationEngine(
            radio,
            config.characteristic_uuid,
            schedule=scheduler or self._schedule_retry,
            retry_delay_s=config.retry_delay_s,
        )
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=config.event_queue_size)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._handlers: dict[type, Callable[[object], None]] = {
            PowerChanged: self._on_power_changed,
            WriteReceived: self._on_write,
            ReadReceived: self._on_read,
            ClientSubscribed: self._on_subscribed,
            ClientUnsubscribed: self._on_unsubscribed,
            ServiceAdded: self._on_service_added,
            AdvertisingStarted: self._on_advertising_started,
            StartAdvertisingRequested: self._on_start_requested,
            StopAdvertisingRequested: self._on_stop_requested,
            ToggleAdvertisingRequested: self._on_toggle_requested,
            ClearEchoLogRequested: self._on_clear_log_requested,
            DismissErrorRequested: self._on_dismiss_error_requested,
            RetryDue: self._on_retry_due,
        }
        radio.attach(self.post)

    # -- observation ----------------------------------------------------

    def snapshot(self) -> PeripheralSnapshot:
        return self.store.snapshot()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        return self.store.subscribe(observer)

    # -- commands for the presentation layer ----------------------------

    def toggle_advertising(self) -> None:
        self.post(ToggleAdvertisingRequested())

    def start_advertising(self) -> None:
        self.post(StartAdvertisingRequested())

    def stop_advertising(self) -> None:
        self.post(StopAdvertisingRequested())

    def clear_echo_log(self) -> None:
        self.post(ClearEchoLogRequested())

    def dismiss_error(self) -> None:
        self.post(DismissErrorRequested())

    def read_value(self, sender: str) -> bytes:
        """Value returned to a central reading the characteristic."""
        self.post(ReadReceived(sender=sender))
        return b""

    # -- event queue ----------------------------------------------------

    def post(self, event: Event) -> None:
        """Enqueue ``event``; safe to call from any thread."""
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._enqueue, event)
        else:
            self._enqueue(event)

    def _enqueue(self, item: object) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            if isinstance(item, RetryDue):
                # A scheduled retry always fires. It only touches the radio, and
                # this runs on the loop thread, so no handler is mid-flight.
                LOGGER.warning("Event queue full (%d); running retry inline", self._queue.maxsize)
                item.callback()
                return
            LOGGER.error("Event queue full (%d); dropping %r", self._queue.maxsize, item)

    def stop(self) -> None:
        """Ask :meth:`run` to return once already-queued events are handled."""
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._queue.put_nowait, _STOP)
        else:
            self._queue.put_nowait(_STOP)

    async def run(self) -> None:
        self._loop = asyncio.get_running_loop()
        self.store.publish()
        try:
            while True:
                item = await self._queue.get()
                if item is _STOP:
                    return
                self.handle(item)
        finally:
            self._loop = None

    def _schedule_retry(self, delay_s: float, callback: Callable[[], None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        loop.call_later(delay_s, self.post, RetryDue(callback=callback))

    def handle(self, event: Event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event {event!r}")
        handler(event)
        self.store.publish()

    # -- handlers -------------------------------------------------------

    def _on_power_changed(self, event: PowerChanged) -> None:
        self.store.lifecycle.power_changed(event.power)

    def _on_start_requested(self, _: StartAdvertisingRequested) -> None:
        if not self.store.lifecycle.request_start():
            LOGGER.warning("Start advertising rejected: %s", self.store.lifecycle.last_error)
            return
        LOGGER.info("Advertising as '%s' (service %s)", self.config.device_name, self.config.service_uuid)
        self.radio.start_advertising(
            self.config.service_uuid,
            self.config.characteristic_uuid,
            self.config.device_name,
        )

    def _on_stop_requested(self, _: StopAdvertisingRequested) -> None:
        self.radio.stop_advertising()
        self.store.lifecycle.request_stop()
        LOGGER.info("Advertising stopped")

    def _on_toggle_requested(self, _: ToggleAdvertisingRequested) -> None:
        if self.store.lifecycle.advertising is AdvertisingState.STOPPED:
            self._on_start_requested(StartAdvertisingRequested())
        else:
            self._on_stop_requested(StopAdvertisingRequested())

    def _on_service_added(self, event: ServiceAdded) -> None:
        if event.error:
            LOGGER.error("Service registration failed: %s", event.error)
        self.store.lifecycle.service_added(event.error)

    def _on_advertising_started(self, event: AdvertisingStarted) -> None:
        if event.error:
            LOGGER.error("Advertising failed to start: %s", event.error)
        self.store.lifecycle.advertising_started(event.error)

    def _on_subscribed(self, event: ClientSubscribed) -> None:
        session = DeviceSession(
            identity=event.identity,
            name=event.name or event.identity,
            connected_at=_now(),
        )
        if self.store.sessions.add(session):
            LOGGER.info("Central %s subscribed", event.identity)

    def _on_unsubscribed(self, event: ClientUnsubscribed) -> None:
        self.store.sessions.remove(event.identity)
        # The echo log is shared by all centrals; any unsubscribe resets it.
        self.store.echo_log.clear()
        LOGGER.info("Central %s unsubscribed", event.identity)

    def _on_clear_log_requested(self, _: ClearEchoLogRequested) -> None:
        self.store.echo_log.clear()

    def _on_dismiss_error_requested(self, _: DismissErrorRequested) -> None:
        self.store.lifecycle.clear_error()

    def _on_read(self, event: ReadReceived) -> None:
        LOGGER.debug("Read from %s answered with empty value", event.sender)

    def _on_retry_due(self, event: RetryDue) -> None:
        event.callback()

    def _on_write(self, event: WriteReceived) -> None:
        try:
            message = decode(event.data)
        except DecodeError as exc:
            LOGGER.debug("Dropping frame %s from %s: %s", event.data.hex(), event.sender, exc)
            return

        LOGGER.debug("Received %s from %s", describe(message), event.sender)
        if isinstance(message, VersionRequest):
            self._answer_version(event.sender)
        elif isinstance(message, EchoRequest):
            self._answer_echo(message, event.sender)
        else:
            LOGGER.debug("Ignoring response-type frame from %s", event.sender)

    def _answer_version(self, sender: str) -> DeliveryOutcome:
        version = self.config.firmware_version
        self.store.sessions.update_version(sender, version)
        return self.engine.deliver(VersionResponse(version=version), {sender})

    def _answer_echo(self, request: EchoRequest, sender: str) -> DeliveryOutcome:
        try:
            text = request.payload.decode("utf-8")
        except UnicodeDecodeError:
            text = INVALID_TEXT
        self.store.echo_log.append(
            EchoLogEntry(
                device_name=self.store.sessions.display_name(sender),
                text=text,
                timestamp=_now(),
                direction=Direction.INCOMING,
            )
        )
        return self.engine.deliver(EchoResponse.for_request(request), {sender})
