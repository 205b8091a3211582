"""Core data models shared by the codec, registry, state store and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class FirmwareVersion:
    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for field_name in ("major", "minor", "patch"):
            value = getattr(self, field_name)
            if not isinstance(value, int) or not 0 <= value <= 0xFF:
                raise ValueError(f"FirmwareVersion.{field_name} must be in 0..255, got {value!r}")

    @classmethod
    def from_bytes(cls, data: bytes) -> FirmwareVersion:
        if len(data) != 3:
            raise ValueError(f"FirmwareVersion needs exactly 3 bytes, got {len(data)}")
        return cls(major=data[0], minor=data[1], patch=data[2])

    @classmethod
    def parse(cls, text: str) -> FirmwareVersion:
        parts = text.strip().split(".")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Firmware version must look like 'major.minor.patch', got {text!r}")
        return cls(*(int(p) for p in parts))

    @property
    def is_unset(self) -> bool:
        """The all-zero version is reserved to mean "no version"."""
        return self.major == 0 and self.minor == 0 and self.patch == 0

    def to_bytes(self) -> bytes:
        return bytes((self.major, self.minor, self.patch))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class RadioPower(Enum):
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"
    UNAUTHORIZED = "unauthorized"
    OFF = "off"
    RESETTING = "resetting"
    ON = "on"


class AdvertisingState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    ACTIVE = "active"


class Direction(Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


@dataclass(frozen=True)
class DeviceSession:
    identity: str
    name: str
    connected_at: datetime
    version: FirmwareVersion | None = None

    @property
    def version_label(self) -> str:
        return str(self.version) if self.version else "Unknown"


@dataclass(frozen=True)
class EchoLogEntry:
    device_name: str
    text: str
    timestamp: datetime
    direction: Direction = Direction.INCOMING


@dataclass(frozen=True)
class PeripheralConfig:
    device_name: str
    firmware_version: FirmwareVersion
    service_uuid: str
    characteristic_uuid: str
    retry_delay_s: float = 0.1
    event_queue_size: int = 256


@dataclass(frozen=True)
class PeripheralSnapshot:
    """Read-only copy of everything the presentation layer renders."""

    device_name: str
    power: RadioPower
    advertising: AdvertisingState
    last_error: str | None
    sessions: tuple[DeviceSession, ...]
    echo_log: tuple[EchoLogEntry, ...]

    @property
    def is_powered(self) -> bool:
        return self.power is RadioPower.ON

    @property
    def is_advertising(self) -> bool:
        return self.advertising is AdvertisingState.ACTIVE

    @property
    def advertising_button_title(self) -> str:
        return "Stop Advertising" if self.is_advertising else "Start Advertising"

    @property
    def status_text(self) -> str:
        if not self.is_powered:
            return "Bluetooth is not available"
        if self.is_advertising:
            return f"Advertising as '{self.device_name}' - {len(self.sessions)} device(s) connected"
        return "Not advertising"
