"""Identifier parsing.

Every id that reaches a store is used as a single path segment, so it is
parsed once at the boundary and carried around as an opaque NewType:

    peer_id = parse_peer_id(raw)      # raises InvalidIdentifierError
    store.get(peer_id)

Stores trust these values and never re-validate them.
"""

from __future__ import annotations

import secrets
import time
from typing import NewType

from agent_bridge.exceptions import InvalidIdentifierError

PeerId = NewType("PeerId", str)
MessageId = NewType("MessageId", str)
RoomId = NewType("RoomId", str)
ContextKey = NewType("ContextKey", str)

BROADCAST = "all"

_MAX_LEN = 128
_FORBIDDEN = ("/", "\\", "\x00")


def _check(kind: str, value: object) -> str:
    if not isinstance(value, str):
        raise InvalidIdentifierError(kind, value, "must be a string")
    if not value:
        raise InvalidIdentifierError(kind, value, "must not be empty")
    if len(value) > _MAX_LEN:
        raise InvalidIdentifierError(kind, value, f"longer than {_MAX_LEN} characters")
    if any(ch in value for ch in _FORBIDDEN):
        raise InvalidIdentifierError(kind, value, "contains a path separator")
    if value.startswith("."):
        # also rules out "." and ".."; dot-prefixed names are temp files
        raise InvalidIdentifierError(kind, value, "must not start with '.'")
    if value != value.strip():
        raise InvalidIdentifierError(kind, value, "has leading or trailing whitespace")
    return value


def parse_peer_id(value: object) -> PeerId:
    raw = _check("peer id", value)
    if raw == BROADCAST:
        raise InvalidIdentifierError("peer id", value, f"'{BROADCAST}' is reserved for broadcast")
    return PeerId(raw)


def parse_message_id(value: object) -> MessageId:
    return MessageId(_check("message id", value))


def parse_room_id(value: object) -> RoomId:
    return RoomId(_check("room id", value))


def parse_context_key(value: object) -> ContextKey:
    return ContextKey(_check("context key", value))


def new_message_id(prefix: str = "msg") -> MessageId:
    """Generate a sortable message id: <prefix>_<epoch ms>_<6 hex chars>."""
    return MessageId(f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)}")


def new_room_message_id() -> MessageId:
    return new_message_id("rm")
