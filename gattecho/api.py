"""Stable public API for building frontends on top of gattecho.

This module is the supported integration surface for presentation layers
(GUI/TUI/scripts). Avoid importing from internal modules unless intentionally
depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from gattecho.core.codec import (
    EchoRequest,
    EchoResponse,
    Message,
    VersionRequest,
    VersionResponse,
    decode,
    encode,
)
from gattecho.core.config_loader import load_config
from gattecho.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    DecodeError,
    GattEchoError,
    RadioError,
    RadioUnavailableError,
)
from gattecho.core.model import (
    AdvertisingState,
    DeviceSession,
    Direction,
    EchoLogEntry,
    FirmwareVersion,
    PeripheralConfig,
    PeripheralSnapshot,
    RadioPower,
)
from gattecho.core.peripheral import Peripheral
from gattecho.transports.base import RadioStack
from gattecho.transports.bless_server import BlessRadio

__all__ = [
    "GattEchoError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DecodeError",
    "RadioError",
    "RadioUnavailableError",
    "AdvertisingState",
    "DeviceSession",
    "Direction",
    "EchoLogEntry",
    "FirmwareVersion",
    "PeripheralConfig",
    "PeripheralSnapshot",
    "RadioPower",
    "EchoRequest",
    "EchoResponse",
    "Message",
    "VersionRequest",
    "VersionResponse",
    "decode",
    "encode",
    "BlessRadio",
    "Simulator",
]


class Simulator:
    """Public handle on an emulated peripheral.

    A `Simulator` wraps configuration loading, the radio stack and the
    peripheral core. Frontends read state only through snapshots and change
    it only through the commands below.
    """

    def __init__(
        self,
        *,
        config: PeripheralConfig | None = None,
        config_path: Path | None = None,
        radio: RadioStack | None = None,
    ) -> None:
        warnings: tuple[str, ...] = ()
        if config is None:
            loaded = load_config(config_path)
            config, warnings = loaded.config, loaded.warnings
        self.config_warnings = warnings
        self._peripheral = Peripheral(config, radio or BlessRadio())

    @property
    def config(self) -> PeripheralConfig:
        return self._peripheral.config

    def snapshot(self) -> PeripheralSnapshot:
        return self._peripheral.snapshot()

    def subscribe(self, observer: Callable[[PeripheralSnapshot], None]) -> Callable[[], None]:
        return self._peripheral.subscribe(observer)

    def toggle_advertising(self) -> None:
        self._peripheral.toggle_advertising()

    def clear_echo_log(self) -> None:
        self._peripheral.clear_echo_log()

    def dismiss_error(self) -> None:
        self._peripheral.dismiss_error()

    async def run(self) -> None:
        await self._peripheral.run()

    def stop(self) -> None:
        self._peripheral.stop()
