"""Exceptions raised by the bridge stores and tool operations."""

from __future__ import annotations

from pathlib import Path


class BridgeError(Exception):
    """Base class for all agent-bridge errors."""


class ConfigError(BridgeError):
    """Configuration is missing or invalid."""


class InvalidIdentifierError(BridgeError, ValueError):
    """An identifier cannot be used as a path segment."""

    def __init__(self, kind: str, value: object, reason: str) -> None:
        self.kind = kind
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {kind} {value!r}: {reason}")


class NotFoundError(BridgeError, LookupError):
    """A record required by the operation does not exist."""


class MessageNotFoundError(NotFoundError):
    def __init__(self, message_id: str, peer_id: str | None = None) -> None:
        self.message_id = message_id
        self.peer_id = peer_id
        where = f" in inbox of {peer_id}" if peer_id else ""
        super().__init__(f"Message {message_id} not found{where}")


class RoomNotFoundError(NotFoundError):
    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class ContextNotFoundError(NotFoundError):
    def __init__(self, room_id: str, key: str) -> None:
        self.room_id = room_id
        self.key = key
        super().__init__(f"Context {key} not found in room {room_id}")


class RoomClosedError(BridgeError):
    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room {room_id} is closed")


class RoomExistsError(BridgeError):
    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room {room_id} already exists")


class CorruptLogError(BridgeError):
    """A room log line is not a valid room message record."""

    def __init__(self, path: Path, line_no: int, reason: str) -> None:
        self.path = path
        self.line_no = line_no
        self.reason = reason
        super().__init__(f"{path}:{line_no}: {reason}")
