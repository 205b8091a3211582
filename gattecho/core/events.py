"""Events consumed by the peripheral's single event-processing path."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from gattecho.core.model import RadioPower


@dataclass(frozen=True)
class PowerChanged:
    power: RadioPower


@dataclass(frozen=True)
class WriteReceived:
    data: bytes
    sender: str


@dataclass(frozen=True)
class ReadReceived:
    sender: str


@dataclass(frozen=True)
class ClientSubscribed:
    identity: str
    name: str | None = None


@dataclass(frozen=True)
class ClientUnsubscribed:
    identity: str


@dataclass(frozen=True)
class ServiceAdded:
    error: str | None = None


@dataclass(frozen=True)
class AdvertisingStarted:
    error: str | None = None


@dataclass(frozen=True)
class StartAdvertisingRequested:
    pass


@dataclass(frozen=True)
class StopAdvertisingRequested:
    pass


@dataclass(frozen=True)
class ToggleAdvertisingRequested:
    pass


@dataclass(frozen=True)
class ClearEchoLogRequested:
    pass


@dataclass(frozen=True)
class DismissErrorRequested:
    pass


@dataclass(frozen=True)
class RetryDue:
    callback: Callable[[], None]


Event = Union[
    PowerChanged,
    WriteReceived,
    ReadReceived,
    ClientSubscribed,
    ClientUnsubscribed,
    ServiceAdded,
    AdvertisingStarted,
    StartAdvertisingRequested,
    StopAdvertisingRequested,
    ToggleAdvertisingRequested,
    ClearEchoLogRequested,
    DismissErrorRequested,
    RetryDue,
]

EventSink = Callable[[Event], None]
