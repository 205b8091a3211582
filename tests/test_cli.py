from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from gattecho import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_decode_command() -> None:
    result = runner.invoke(cli.app, ["decode", "01 05 68656c6c6f"])
    assert result.exit_code == 0
    assert "EchoRequest payload=68656c6c6f" in result.stdout


def test_decode_command_error_is_clean() -> None:
    result = runner.invoke(cli.app, ["decode", "8003000000"])
    assert result.exit_code == 1
    assert "Error:" in result.stderr
    assert "Traceback" not in result.stdout


def test_decode_command_rejects_bad_hex() -> None:
    result = runner.invoke(cli.app, ["decode", "zz"])
    assert result.exit_code == 1
    assert "not valid hex" in result.stderr


def test_encode_command() -> None:
    result = runner.invoke(cli.app, ["encode", "echo", "hello"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "010568656c6c6f"

    result = runner.invoke(cli.app, ["encode", "version"])
    assert result.stdout.strip() == "0000"


def test_encode_command_unknown_kind() -> None:
    result = runner.invoke(cli.app, ["encode", "reboot"])
    assert result.exit_code == 1
    assert "unknown request kind" in result.stderr


def test_encode_command_oversized_echo() -> None:
    result = runner.invoke(cli.app, ["encode", "echo", "x" * 256])
    assert result.exit_code == 1
    assert "exceeds" in result.stderr


def test_config_command(tmp_path: Path) -> None:
    override = tmp_path / "cfg" / "gattecho" / "config.yaml"
    override.parent.mkdir(parents=True)
    override.write_text("device_name: Bench\n", encoding="utf-8")

    result = runner.invoke(cli.app, ["config"])
    assert result.exit_code == 0
    assert "device_name: Bench" in result.stdout
    assert "firmware_version: 2.1.9" in result.stdout
    assert "Warning: Config 'device_name' overridden" in result.stderr


def test_config_command_error_is_clean(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["config", "--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Error:" in result.stderr


def test_run_command_prints_status(monkeypatch: pytest.MonkeyPatch) -> None:
    from gattecho.core.events import AdvertisingStarted, ClientSubscribed, PowerChanged, WriteReceived
    from gattecho.core.model import RadioPower

    class ScriptedRadio:
        def attach(self, sink) -> None:
            self.sink = sink
            sink(PowerChanged(power=RadioPower.ON))

        def start_advertising(self, service_uuid, characteristic_uuid, local_name) -> None:
            self.sink(AdvertisingStarted())
            self.sink(ClientSubscribed(identity="phone"))
            self.sink(WriteReceived(data=b"\x01\x02hi", sender="phone"))
            raise KeyboardInterrupt

        def stop_advertising(self) -> None:
            pass

        def notify(self, characteristic_uuid, payload, recipients) -> bool:
            return True

    monkeypatch.setattr(cli, "BlessRadio", ScriptedRadio)
    result = runner.invoke(cli.app, ["run"])
    assert result.exit_code == 0
    assert "Status: Bluetooth is not available" in result.stdout
    assert "Stopped" in result.stdout
