from __future__ import annotations

from datetime import datetime, timezone

from gattecho.core.model import DeviceSession, FirmwareVersion
from gattecho.core.registry import SessionRegistry


def _session(identity: str, name: str | None = None) -> DeviceSession:
    return DeviceSession(
        identity=identity,
        name=name or identity,
        connected_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_add_is_idempotent_first_name_wins() -> None:
    registry = SessionRegistry()
    assert registry.add(_session("a", "first")) is True
    assert registry.add(_session("a", "second")) is False
    assert len(registry) == 1
    assert registry.list()[0].name == "first"


def test_remove_absent_identity_is_noop() -> None:
    registry = SessionRegistry()
    registry.add(_session("a"))
    assert registry.remove("missing") is False
    assert registry.remove("a") is True
    assert registry.list() == ()


def test_update_version_preserves_position() -> None:
    registry = SessionRegistry()
    for identity in ("a", "b", "c"):
        registry.add(_session(identity))

    assert registry.update_version("b", FirmwareVersion(2, 1, 9)) is True
    sessions = registry.list()
    assert [s.identity for s in sessions] == ["a", "b", "c"]
    assert sessions[1].version == FirmwareVersion(2, 1, 9)
    assert sessions[1].version_label == "2.1.9"
    assert sessions[0].version_label == "Unknown"


def test_update_version_absent_identity_is_noop() -> None:
    registry = SessionRegistry()
    assert registry.update_version("ghost", FirmwareVersion(1, 0, 0)) is False
    assert "ghost" not in registry


def test_readd_after_remove_moves_to_end() -> None:
    registry = SessionRegistry()
    registry.add(_session("a"))
    registry.add(_session("b"))
    registry.remove("a")
    registry.add(_session("a"))
    assert [s.identity for s in registry.list()] == ["b", "a"]


def test_display_name_falls_back_to_identity() -> None:
    registry = SessionRegistry()
    registry.add(_session("a", "Pixel"))
    assert registry.display_name("a") == "Pixel"
    assert registry.display_name("b") == "b"
