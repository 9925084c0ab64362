"""Tests for record validation and camelCase (de)serialization."""

import pytest

from agent_bridge.models import Message, Peer, RoomMessage, RoomMeta, now_iso, parse_timestamp


def _message_dict(**overrides: object) -> dict:
    d = {
        "id": "msg_1_abc123",
        "from": "frontend",
        "to": "backend",
        "type": "question",
        "content": "What does GET /users/:id return?",
        "createdAt": "2026-01-01T00:00:01.000Z",
        "status": "unread",
    }
    d.update(overrides)
    return d


# --- Timestamps ---


def test_now_iso_is_utc_millis() -> None:
    """now_iso() produces a parseable UTC instant with a Z suffix."""
    value = now_iso()
    assert value.endswith("Z")
    assert parse_timestamp(value).utcoffset().total_seconds() == 0


def test_parse_timestamp_rejects_naive_and_offset() -> None:
    """Only UTC instants are accepted."""
    with pytest.raises(ValueError):
        parse_timestamp("2026-01-01T00:00:00")
    with pytest.raises(ValueError):
        parse_timestamp("2026-01-01T00:00:00+02:00")
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")


# --- Message ---


def test_message_round_trips_camel_case() -> None:
    """from_dict/to_dict preserve the on-disk keys."""
    d = _message_dict(replyTo="msg_0_ffffff", type="reply")
    msg = Message.from_dict(d)
    assert msg.sender == "frontend"
    assert msg.reply_to == "msg_0_ffffff"
    assert msg.to_dict() == d


def test_message_without_reply_to_omits_key() -> None:
    """Absent optional fields are omitted, not written as null."""
    assert "replyTo" not in Message.from_dict(_message_dict()).to_dict()


def test_message_accepts_broadcast_recipient() -> None:
    """'all' is a valid recipient even though it is not a valid peer id."""
    assert Message.from_dict(_message_dict(to="all")).to == "all"


@pytest.mark.parametrize(
    "overrides",
    [
        {"type": "gossip"},
        {"status": "deleted"},
        {"from": "a/b"},
        {"createdAt": "not a time"},
        {"content": 7},
    ],
)
def test_message_rejects_invalid_fields(overrides: dict) -> None:
    """Invalid field values raise ValueError."""
    with pytest.raises(ValueError):
        Message.from_dict(_message_dict(**overrides))


def test_message_rejects_missing_field_and_non_object() -> None:
    """Missing required fields and non-object records raise ValueError."""
    d = _message_dict()
    del d["content"]
    with pytest.raises(ValueError, match="content"):
        Message.from_dict(d)
    with pytest.raises(ValueError):
        Message.from_dict(["not", "a", "dict"])


# --- Peer / Room ---


def test_peer_to_dict_drops_unset_fields() -> None:
    """Optional peer fields that were never set are not serialized."""
    peer = Peer(id="frontend", registered_at="2026-01-01T00:00:01.000Z", last_seen_at="2026-01-01T00:00:02.000Z")
    assert peer.to_dict() == {
        "id": "frontend",
        "registeredAt": "2026-01-01T00:00:01.000Z",
        "lastSeenAt": "2026-01-01T00:00:02.000Z",
    }
    assert Peer.from_dict(peer.to_dict()) == peer


def test_room_meta_status_and_closed_at() -> None:
    """Room metadata validates status and round-trips closedAt."""
    meta = RoomMeta.from_dict({
        "id": "user-feature",
        "createdBy": "frontend",
        "createdAt": "2026-01-01T00:00:01.000Z",
        "status": "closed",
        "closedAt": "2026-01-01T00:00:09.000Z",
    })
    assert not meta.is_open
    assert meta.to_dict()["closedAt"] == "2026-01-01T00:00:09.000Z"
    with pytest.raises(ValueError):
        RoomMeta(id="r", created_by="frontend", created_at="2026-01-01T00:00:01.000Z", status="archived")


def test_room_message_type_is_checked() -> None:
    """Room messages only accept the room message types."""
    with pytest.raises(ValueError):
        RoomMessage(id="rm_1_abcdef", sender="frontend", content="x", type="reply", created_at=now_iso())
    rm = RoomMessage(id="rm_1_abcdef", sender="frontend", content="x", type="decision", created_at=now_iso())
    assert RoomMessage.from_dict(rm.to_dict()) == rm
