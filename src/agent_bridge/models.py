"""Record types persisted by the bridge stores.

Records are dataclasses validated on construction, so a record read back from
disk either round-trips through ``from_dict`` or raises ``ValueError``.
On disk the keys are camelCase (``createdAt``, ``replyTo``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from agent_bridge.ids import (
    BROADCAST,
    MessageId,
    PeerId,
    RoomId,
    parse_message_id,
    parse_peer_id,
    parse_room_id,
)

MESSAGE_TYPES = ("question", "reply", "announcement", "context_share")
MESSAGE_STATUSES = ("unread", "read", "archived")
ROOM_STATUSES = ("open", "closed")
ROOM_MESSAGE_TYPES = ("update", "question", "answer", "decision", "blocker")


def now_iso() -> str:
    """Current UTC time as 2026-01-02T03:04:05.678Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 UTC instant. Raises ValueError otherwise."""
    if not isinstance(value, str):
        msg = f"timestamp must be a string, got {type(value).__name__}"
        raise ValueError(msg)
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None or dt.utcoffset() != timedelta(0):
        msg = f"timestamp must be UTC: {value!r}"
        raise ValueError(msg)
    return dt


def _opt_str(d: dict[str, Any], key: str) -> str | None:
    v = d.get(key)
    if v is not None and not isinstance(v, str):
        msg = f"{key} must be a string"
        raise ValueError(msg)
    return v


def _req_str(d: dict[str, Any], key: str) -> str:
    if key not in d:
        msg = f"missing field: {key}"
        raise ValueError(msg)
    v = d[key]
    if not isinstance(v, str):
        msg = f"{key} must be a string"
        raise ValueError(msg)
    return v


def _require_dict(d: object, kind: str) -> dict[str, Any]:
    if not isinstance(d, dict):
        msg = f"{kind} record must be a JSON object"
        raise ValueError(msg)
    return d


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class Peer:
    id: PeerId
    registered_at: str
    last_seen_at: str
    name: str | None = None
    project: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        parse_peer_id(self.id)
        parse_timestamp(self.registered_at)
        parse_timestamp(self.last_seen_at)

    @classmethod
    def from_dict(cls, d: object) -> Peer:
        d = _require_dict(d, "peer")
        return cls(
            id=parse_peer_id(_req_str(d, "id")),
            registered_at=_req_str(d, "registeredAt"),
            last_seen_at=_req_str(d, "lastSeenAt"),
            name=_opt_str(d, "name"),
            project=_opt_str(d, "project"),
            description=_opt_str(d, "description"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "project": self.project,
            "description": self.description,
            "registeredAt": self.registered_at,
            "lastSeenAt": self.last_seen_at,
        })


@dataclass(frozen=True)
class PeerUpsert:
    """Input to PeerStore.upsert. None means "keep what is stored"."""

    id: PeerId
    last_seen_at: str
    name: str | None = None
    project: str | None = None
    description: str | None = None
    registered_at: str | None = None


@dataclass(frozen=True)
class Message:
    """A direct message sitting in one peer's inbox (or archive)."""

    id: MessageId
    sender: PeerId
    to: str                          # peer id, or "all" for a broadcast
    type: str                        # question | reply | announcement | context_share
    content: str
    created_at: str
    status: str = "unread"           # unread | read | archived
    reply_to: MessageId | None = None

    def __post_init__(self) -> None:
        parse_message_id(self.id)
        parse_peer_id(self.sender)
        if self.to != BROADCAST:
            parse_peer_id(self.to)
        if self.type not in MESSAGE_TYPES:
            msg = f"unknown message type: {self.type!r}"
            raise ValueError(msg)
        if self.status not in MESSAGE_STATUSES:
            msg = f"unknown message status: {self.status!r}"
            raise ValueError(msg)
        if not isinstance(self.content, str):
            msg = "content must be a string"
            raise ValueError(msg)
        if self.reply_to is not None:
            parse_message_id(self.reply_to)
        parse_timestamp(self.created_at)

    @classmethod
    def from_dict(cls, d: object) -> Message:
        d = _require_dict(d, "message")
        reply_to = _opt_str(d, "replyTo")
        return cls(
            id=MessageId(_req_str(d, "id")),
            sender=PeerId(_req_str(d, "from")),
            to=_req_str(d, "to"),
            type=_req_str(d, "type"),
            content=_req_str(d, "content"),
            created_at=_req_str(d, "createdAt"),
            status=_req_str(d, "status"),
            reply_to=MessageId(reply_to) if reply_to is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "from": self.sender,
            "to": self.to,
            "type": self.type,
            "content": self.content,
            "replyTo": self.reply_to,
            "createdAt": self.created_at,
            "status": self.status,
        })


@dataclass(frozen=True)
class RoomMeta:
    id: RoomId
    created_by: PeerId
    created_at: str
    status: str = "open"
    description: str | None = None
    closed_at: str | None = None

    def __post_init__(self) -> None:
        parse_room_id(self.id)
        parse_peer_id(self.created_by)
        parse_timestamp(self.created_at)
        if self.status not in ROOM_STATUSES:
            msg = f"unknown room status: {self.status!r}"
            raise ValueError(msg)
        if self.closed_at is not None:
            parse_timestamp(self.closed_at)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @classmethod
    def from_dict(cls, d: object) -> RoomMeta:
        d = _require_dict(d, "room")
        return cls(
            id=RoomId(_req_str(d, "id")),
            created_by=PeerId(_req_str(d, "createdBy")),
            created_at=_req_str(d, "createdAt"),
            status=_req_str(d, "status"),
            description=_opt_str(d, "description"),
            closed_at=_opt_str(d, "closedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "description": self.description,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "status": self.status,
            "closedAt": self.closed_at,
        })


@dataclass(frozen=True)
class RoomMessage:
    """One line of a room's messages.jsonl."""

    id: MessageId
    sender: PeerId
    content: str
    type: str                        # update | question | answer | decision | blocker
    created_at: str

    def __post_init__(self) -> None:
        parse_message_id(self.id)
        parse_peer_id(self.sender)
        if self.type not in ROOM_MESSAGE_TYPES:
            msg = f"unknown room message type: {self.type!r}"
            raise ValueError(msg)
        if not isinstance(self.content, str):
            msg = "content must be a string"
            raise ValueError(msg)
        parse_timestamp(self.created_at)

    @classmethod
    def from_dict(cls, d: object) -> RoomMessage:
        d = _require_dict(d, "room message")
        return cls(
            id=MessageId(_req_str(d, "id")),
            sender=PeerId(_req_str(d, "from")),
            content=_req_str(d, "content"),
            type=_req_str(d, "type"),
            created_at=_req_str(d, "createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from": self.sender,
            "content": self.content,
            "type": self.type,
            "createdAt": self.created_at,
        }
