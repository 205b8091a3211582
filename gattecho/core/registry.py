"""In-memory table of subscribed centrals."""

from __future__ import annotations

import logging
from dataclasses import replace

from gattecho.core.model import DeviceSession, FirmwareVersion

LOGGER = logging.getLogger(__name__)


class SessionRegistry:
    """Sessions keyed by transport identity, iterated in insertion order.

    At most one session exists per identity. Adding an identity that is
    already present keeps the first session untouched.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, DeviceSession] = {}

    def add(self, session: DeviceSession) -> bool:
        if session.identity in self._sessions:
            LOGGER.debug("Session %s already registered; keeping existing entry", session.identity)
            return False
        self._sessions[session.identity] = session
        return True

    def remove(self, identity: str) -> bool:
        return self._sessions.pop(identity, None) is not None

    def update_version(self, identity: str, version: FirmwareVersion) -> bool:
        session = self._sessions.get(identity)
        if session is None:
            return False
        # dict assignment to an existing key keeps its position
        self._sessions[identity] = replace(session, version=version)
        return True

    def get(self, identity: str) -> DeviceSession | None:
        return self._sessions.get(identity)

    def display_name(self, identity: str) -> str:
        session = self._sessions.get(identity)
        return session.name if session else identity

    def list(self) -> tuple[DeviceSession, ...]:
        return tuple(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, identity: object) -> bool:
        return identity in self._sessions
