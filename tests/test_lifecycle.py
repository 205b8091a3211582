from __future__ import annotations

import pytest

from gattecho.core.lifecycle import NOT_POWERED_ERROR, LifecycleMachine
from gattecho.core.model import AdvertisingState, RadioPower


def _powered_on() -> LifecycleMachine:
    machine = LifecycleMachine()
    machine.power_changed(RadioPower.ON)
    return machine


def test_initial_state() -> None:
    machine = LifecycleMachine()
    assert machine.power is RadioPower.UNKNOWN
    assert machine.advertising is AdvertisingState.STOPPED
    assert machine.last_error is None


@pytest.mark.parametrize(
    ("power", "message"),
    [
        (RadioPower.OFF, "Bluetooth is powered off"),
        (RadioPower.UNAUTHORIZED, "Bluetooth permission denied"),
        (RadioPower.UNSUPPORTED, "Bluetooth is not supported"),
        (RadioPower.RESETTING, "Bluetooth is resetting"),
        (RadioPower.UNKNOWN, "Bluetooth state unknown"),
    ],
)
def test_power_loss_stops_advertising_and_sets_error(power: RadioPower, message: str) -> None:
    machine = _powered_on()
    assert machine.request_start()
    machine.advertising_started(None)

    machine.power_changed(power)
    assert machine.advertising is AdvertisingState.STOPPED
    assert machine.last_error == message

    machine.power_changed(RadioPower.ON)
    assert machine.last_error is None


def test_start_rejected_when_not_powered() -> None:
    machine = LifecycleMachine()
    machine.power_changed(RadioPower.OFF)
    assert machine.request_start() is False
    assert machine.advertising is AdvertisingState.STOPPED
    assert machine.last_error == NOT_POWERED_ERROR


def test_start_rejected_while_already_starting() -> None:
    machine = _powered_on()
    assert machine.request_start() is True
    assert machine.advertising is AdvertisingState.STARTING
    assert machine.request_start() is False
    assert machine.advertising is AdvertisingState.STARTING
    assert machine.last_error is not None


def test_advertising_start_failure() -> None:
    machine = _powered_on()
    machine.request_start()
    machine.advertising_started("adapter busy")
    assert machine.advertising is AdvertisingState.STOPPED
    assert machine.last_error == "Failed to start advertising: adapter busy"


def test_service_add_failure_reports_error() -> None:
    machine = _powered_on()
    machine.request_start()
    machine.service_added("duplicate service")
    assert machine.last_error == "Failed to add service: duplicate service"
    machine.service_added(None)
    assert machine.last_error == "Failed to add service: duplicate service"


def test_stop_always_accepted_and_clears_error() -> None:
    machine = _powered_on()
    machine.request_start()
    machine.advertising_started(None)
    machine.last_error = "stale"

    machine.request_stop()
    assert machine.advertising is AdvertisingState.STOPPED
    assert machine.last_error is None

    machine.request_stop()
    assert machine.advertising is AdvertisingState.STOPPED
