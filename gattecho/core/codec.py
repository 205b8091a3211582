"""TLV codec for the four messages exchanged over the echo characteristic.

Every frame is ``[tag:1][length:1][payload:length]``. Requests use tags with
the high bit clear, responses set it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from gattecho.core.errors import DecodeError
from gattecho.core.model import FirmwareVersion

VERSION_REQUEST_TAG = 0x00
ECHO_REQUEST_TAG = 0x01
VERSION_RESPONSE_TAG = 0x80
ECHO_RESPONSE_TAG = 0x81

HEADER_SIZE = 2
MAX_PAYLOAD_BYTES = 0xFF
_RESPONSE_BIT = 0x80


def _check_payload(payload: bytes) -> None:
    if len(payload) > MAX_PAYLOAD_BYTES:
        raise ValueError(f"Payload of {len(payload)} bytes exceeds {MAX_PAYLOAD_BYTES}-byte frame limit")


@dataclass(frozen=True)
class VersionRequest:
    tag = VERSION_REQUEST_TAG

    @property
    def payload(self) -> bytes:
        return b""


@dataclass(frozen=True)
class VersionResponse:
    tag = VERSION_RESPONSE_TAG

    version: FirmwareVersion

    @property
    def payload(self) -> bytes:
        return self.version.to_bytes()


@dataclass(frozen=True)
class EchoRequest:
    tag = ECHO_REQUEST_TAG

    payload: bytes = field(default=b"")

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))
        _check_payload(self.payload)


@dataclass(frozen=True)
class EchoResponse:
    tag = ECHO_RESPONSE_TAG

    payload: bytes = field(default=b"")

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))
        _check_payload(self.payload)

    @classmethod
    def for_request(cls, request: EchoRequest) -> EchoResponse:
        return cls(payload=request.payload)


Message = Union[VersionRequest, VersionResponse, EchoRequest, EchoResponse]
Request = Union[VersionRequest, EchoRequest]


def is_response_tag(tag: int) -> bool:
    return bool(tag & _RESPONSE_BIT)


def encode(message: Message) -> bytes:
    payload = message.payload
    _check_payload(payload)
    return bytes((message.tag, len(payload))) + payload


def _decode_version_request(data: bytes) -> VersionRequest:
    if len(data) != HEADER_SIZE or data[1] != 0:
        raise DecodeError(f"VersionRequest must be exactly 00 00, got {data.hex()}")
    return VersionRequest()


def _decode_version_response(data: bytes) -> VersionResponse:
    if len(data) != HEADER_SIZE + 3 or data[1] != 3:
        raise DecodeError(f"VersionResponse must be 5 bytes with length 3, got {data.hex()}")
    version = FirmwareVersion.from_bytes(data[HEADER_SIZE:])
    if version.is_unset:
        raise DecodeError("VersionResponse carries the reserved 0.0.0 version")
    return VersionResponse(version=version)


def _decode_echo_request(data: bytes) -> EchoRequest:
    # Lower-bound check only: bytes past the declared length are ignored.
    length = data[1]
    if len(data) < HEADER_SIZE + length:
        raise DecodeError(f"EchoRequest declares {length} bytes but carries {len(data) - HEADER_SIZE}")
    return EchoRequest(payload=data[HEADER_SIZE : HEADER_SIZE + length])


def _decode_echo_response(data: bytes) -> EchoResponse:
    length = data[1]
    if length != len(data) - HEADER_SIZE:
        raise DecodeError(f"EchoResponse declares {length} bytes but carries {len(data) - HEADER_SIZE}")
    return EchoResponse(payload=data[HEADER_SIZE:])


_DECODERS = {
    VERSION_REQUEST_TAG: _decode_version_request,
    ECHO_REQUEST_TAG: _decode_echo_request,
    VERSION_RESPONSE_TAG: _decode_version_response,
    ECHO_RESPONSE_TAG: _decode_echo_response,
}


def decode(data: bytes | bytearray) -> Message:
    """Decode one frame, raising :class:`DecodeError` if it is malformed."""
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise DecodeError(f"Frame too short ({len(data)} bytes)")
    decoder = _DECODERS.get(data[0])
    if decoder is None:
        raise DecodeError(f"Unknown message tag 0x{data[0]:02x}")
    return decoder(data)


def describe(message: Message) -> str:
    if isinstance(message, VersionRequest):
        return "VersionRequest"
    if isinstance(message, VersionResponse):
        return f"VersionResponse version={message.version}"
    if isinstance(message, EchoRequest):
        return f"EchoRequest payload={message.payload.hex() or '<empty>'}"
    if isinstance(message, EchoResponse):
        return f"EchoResponse payload={message.payload.hex() or '<empty>'}"
    raise TypeError(f"Not a protocol message: {message!r}")
