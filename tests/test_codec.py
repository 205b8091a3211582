from __future__ import annotations

import pytest

from gattecho.core.codec import (
    EchoRequest,
    EchoResponse,
    VersionRequest,
    VersionResponse,
    decode,
    describe,
    encode,
    is_response_tag,
)
from gattecho.core.errors import DecodeError
from gattecho.core.model import FirmwareVersion


@pytest.mark.parametrize(
    "message",
    [
        VersionRequest(),
        VersionResponse(version=FirmwareVersion(2, 1, 9)),
        EchoRequest(payload=b"hello"),
        EchoRequest(payload=b""),
        EchoResponse(payload=bytes(range(255))),
    ],
)
def test_round_trip(message) -> None:
    assert decode(encode(message)) == message


def test_wire_layout() -> None:
    assert encode(VersionRequest()) == bytes([0x00, 0x00])
    assert encode(VersionResponse(version=FirmwareVersion(2, 1, 9))) == bytes([0x80, 0x03, 2, 1, 9])
    assert encode(EchoRequest(payload=b"hello")) == b"\x01\x05hello"
    assert encode(EchoResponse(payload=b"hello")) == b"\x81\x05hello"


def test_echo_response_mirrors_request_payload() -> None:
    payload = "héllo ✓".encode("utf-8")
    request = decode(encode(EchoRequest(payload=payload)))
    response = decode(encode(EchoResponse.for_request(request)))
    assert isinstance(response, EchoResponse)
    assert response.payload == payload


def test_response_tags_have_high_bit() -> None:
    assert not is_response_tag(VersionRequest.tag)
    assert not is_response_tag(EchoRequest.tag)
    assert is_response_tag(VersionResponse.tag)
    assert is_response_tag(EchoResponse.tag)


def test_all_zero_version_rejected() -> None:
    with pytest.raises(DecodeError):
        decode(bytes([0x80, 0x03, 0, 0, 0]))


@pytest.mark.parametrize(
    "frame",
    [
        bytes([0x80, 0x03, 1, 2]),
        bytes([0x80, 0x03, 1, 2, 3, 4]),
        bytes([0x80, 0x02, 1, 2, 3]),
    ],
)
def test_version_response_requires_exact_frame(frame: bytes) -> None:
    with pytest.raises(DecodeError):
        decode(frame)


def test_version_request_exactness() -> None:
    assert decode(bytes([0x00, 0x00])) == VersionRequest()
    with pytest.raises(DecodeError):
        decode(bytes([0x00, 0x01, 0xFF]))
    with pytest.raises(DecodeError):
        decode(bytes([0x00, 0x00, 0x00]))


def test_echo_request_too_short_rejected() -> None:
    with pytest.raises(DecodeError):
        decode(b"\x01\x05hell")


def test_echo_request_ignores_trailing_bytes_but_response_does_not() -> None:
    # Requests only check that enough bytes follow the header; responses
    # require the declared length to match exactly.
    assert decode(b"\x01\x02hiXYZ") == EchoRequest(payload=b"hi")
    with pytest.raises(DecodeError):
        decode(b"\x81\x02hiXYZ")


@pytest.mark.parametrize("frame", [b"", b"\x01", b"\x7f\x00", b"\xff\x01a"])
def test_short_or_unknown_frames_rejected(frame: bytes) -> None:
    with pytest.raises(DecodeError):
        decode(frame)


def test_oversized_payload_is_precondition_violation() -> None:
    with pytest.raises(ValueError):
        EchoRequest(payload=bytes(256))
    with pytest.raises(ValueError):
        EchoResponse(payload=bytes(300))


def test_describe() -> None:
    assert describe(VersionResponse(version=FirmwareVersion(1, 0, 3))) == "VersionResponse version=1.0.3"
    assert describe(EchoRequest(payload=b"")) == "EchoRequest payload=<empty>"
