"""Radio power x advertising state machine."""

from __future__ import annotations

import logging

from gattecho.core.model import AdvertisingState, RadioPower

LOGGER = logging.getLogger(__name__)

NOT_POWERED_ERROR = "Bluetooth is not powered on"
ALREADY_ADVERTISING_ERROR = "Advertising already in progress"

POWER_ERRORS: dict[RadioPower, str] = {
    RadioPower.OFF: "Bluetooth is powered off",
    RadioPower.UNAUTHORIZED: "Bluetooth permission denied",
    RadioPower.UNSUPPORTED: "Bluetooth is not supported",
    RadioPower.RESETTING: "Bluetooth is resetting",
    RadioPower.UNKNOWN: "Bluetooth state unknown",
}


class LifecycleMachine:
    """Tracks radio power and advertising state plus the user-facing error.

    Transitions are driven only by radio-stack events and user commands.
    Failures never raise; they land in ``last_error`` and the machine stays
    in a well-defined state.
    """

    def __init__(self) -> None:
        self.power = RadioPower.UNKNOWN
        self.advertising = AdvertisingState.STOPPED
        self.last_error: str | None = None

    def power_changed(self, power: RadioPower) -> None:
        LOGGER.info("Radio power %s -> %s", self.power.value, power.value)
        self.power = power
        if power is RadioPower.ON:
            self.last_error = None
            return
        self.advertising = AdvertisingState.STOPPED
        self.last_error = POWER_ERRORS[power]

    def request_start(self) -> bool:
        """Return True when the caller should ask the radio to advertise."""
        if self.power is not RadioPower.ON:
            self.last_error = NOT_POWERED_ERROR
            return False
        if self.advertising is not AdvertisingState.STOPPED:
            self.last_error = ALREADY_ADVERTISING_ERROR
            return False
        self.advertising = AdvertisingState.STARTING
        return True

    def service_added(self, error: str | None) -> None:
        if error:
            self.last_error = f"Failed to add service: {error}"

    def advertising_started(self, error: str | None) -> None:
        if error:
            self.advertising = AdvertisingState.STOPPED
            self.last_error = f"Failed to start advertising: {error}"
            return
        self.advertising = AdvertisingState.ACTIVE
        self.last_error = None

    def request_stop(self) -> None:
        self.advertising = AdvertisingState.STOPPED
        self.last_error = None

    def clear_error(self) -> None:
        self.last_error = None
