"""Tool operations: one function per MCP tool, built on the stores.

These functions take raw strings from the outside world, parse identifiers
once, stamp timestamps from a clock, and call into the stores. They hold no
state of their own.

    bridge = Bridge("~/.agent-bridge")
    msg = send_message(bridge.messages, bridge.peers, sender="frontend",
                       to="backend", content="What does GET /users/:id return?")
    inbox = check_inbox(bridge.messages, "backend")
    reply(bridge.messages, sender="backend", message_id=msg.id, content="A User")
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from pathlib import Path

from agent_bridge.context_store import ContextStore
from agent_bridge.exceptions import MessageNotFoundError
from agent_bridge.ids import (
    BROADCAST,
    ContextKey,
    new_message_id,
    new_room_message_id,
    parse_context_key,
    parse_message_id,
    parse_peer_id,
    parse_room_id,
)
from agent_bridge.message_store import MessageStore
from agent_bridge.models import (
    Message,
    Peer,
    PeerUpsert,
    RoomMessage,
    RoomMeta,
    now_iso,
    parse_timestamp,
)
from agent_bridge.peer_store import PeerStore
from agent_bridge.room_store import RoomStore

logger = logging.getLogger("agent_bridge.tools")

Clock = Callable[[], str]


class Bridge:
    """The four stores of one bridge directory."""

    def __init__(self, base_dir: Path | str) -> None:
        base = Path(base_dir).expanduser()
        self.base_dir = base
        self.peers = PeerStore(base)
        self.messages = MessageStore(base)
        self.rooms = RoomStore(base)
        self.context = ContextStore(base)


# ---------------------------------------------------------------------------
# Peers
# ---------------------------------------------------------------------------


def register_peer(
    peers: PeerStore,
    peer_id: str,
    *,
    name: str | None = None,
    project: str | None = None,
    description: str | None = None,
    clock: Clock = now_iso,
) -> Peer:
    """Create or refresh a peer record. Also used as the per-call heartbeat."""
    return peers.upsert(PeerUpsert(
        id=parse_peer_id(peer_id),
        name=name,
        project=project,
        description=description,
        last_seen_at=clock(),
    ))


def list_peers(peers: PeerStore, self_id: str) -> list[Peer]:
    """Every registered peer except self_id."""
    me = parse_peer_id(self_id)
    return [p for p in peers.list() if p.id != me]


# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------


def send_message(
    messages: MessageStore,
    peers: PeerStore,
    *,
    sender: str,
    to: str,
    content: str,
    type: str = "question",  # noqa: A002
    reply_to: str | None = None,
    clock: Clock = now_iso,
) -> Message:
    """Deliver a message to one peer, or to every other known peer when to="all".

    Returns the message as sent; for a broadcast its ``to`` stays "all" while
    each delivered copy carries its recipient.
    """
    from_id = parse_peer_id(sender)
    msg = Message(
        id=new_message_id(),
        sender=from_id,
        to=BROADCAST if to == BROADCAST else parse_peer_id(to),
        type=type,
        content=content,
        reply_to=parse_message_id(reply_to) if reply_to else None,
        created_at=clock(),
        status="unread",
    )

    if msg.to == BROADCAST:
        recipients = [p for p in peers.list_ids() if p != from_id]
        for peer_id in recipients:
            messages.put_inbox(peer_id, dataclasses.replace(msg, to=peer_id))
        logger.info("broadcast %s from %s to %d peers", msg.id, from_id, len(recipients))
    else:
        recipient = parse_peer_id(msg.to)
        if peers.get(recipient) is None:
            logger.warning("sending %s to unregistered peer %s", msg.id, recipient)
        messages.put_inbox(recipient, msg)
    return msg


def check_inbox(messages: MessageStore, peer_id: str) -> list[Message]:
    """List the inbox oldest first, marking unread messages read.

    Messages that were already read are returned unchanged and not rewritten.
    """
    me = parse_peer_id(peer_id)
    result = []
    for msg in messages.list_inbox(me):
        if msg.status != "unread":
            result.append(msg)
            continue
        updated = messages.update_inbox(me, msg.id, status="read")
        # archived by a concurrent reply between list and update
        result.append(updated or dataclasses.replace(msg, status="read"))
    return result


def reply(
    messages: MessageStore,
    *,
    sender: str,
    message_id: str,
    content: str,
    clock: Clock = now_iso,
) -> Message:
    """Answer a message in the sender's own inbox, then archive the original."""
    me = parse_peer_id(sender)
    original_id = parse_message_id(message_id)
    original = messages.get_inbox(me, original_id)
    if original is None:
        raise MessageNotFoundError(original_id, me)

    answer = Message(
        id=new_message_id(),
        sender=me,
        to=original.sender,
        type="reply",
        content=content,
        reply_to=original_id,
        created_at=clock(),
        status="unread",
    )
    messages.put_inbox(original.sender, answer)
    messages.archive_inbox(me, original_id)
    return answer


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------


def open_room(
    rooms: RoomStore,
    *,
    room_id: str,
    created_by: str,
    description: str | None = None,
    clock: Clock = now_iso,
) -> RoomMeta:
    meta = RoomMeta(
        id=parse_room_id(room_id),
        created_by=parse_peer_id(created_by),
        created_at=clock(),
        status="open",
        description=description,
    )
    rooms.create(meta)
    logger.info("room %s opened by %s", meta.id, meta.created_by)
    return meta


def close_room(rooms: RoomStore, *, room_id: str, clock: Clock = now_iso) -> RoomMeta:
    meta = rooms.close(parse_room_id(room_id), clock())
    logger.info("room %s closed", meta.id)
    return meta


def list_rooms(rooms: RoomStore, *, include_closed: bool = False) -> list[RoomMeta]:
    return rooms.list(include_closed=include_closed)


def post_room_message(
    rooms: RoomStore,
    *,
    room_id: str,
    sender: str,
    content: str,
    type: str = "update",  # noqa: A002
    clock: Clock = now_iso,
) -> RoomMessage:
    msg = RoomMessage(
        id=new_room_message_id(),
        sender=parse_peer_id(sender),
        content=content,
        type=type,
        created_at=clock(),
    )
    rooms.append_message(parse_room_id(room_id), msg)
    return msg


def read_room_messages(
    rooms: RoomStore,
    *,
    room_id: str,
    since: str | None = None,
    last_n: int | None = None,
) -> list[RoomMessage]:
    """Room log in append order.

    since keeps messages created strictly after that instant; last_n then
    keeps only the newest N of what is left.
    """
    if last_n is not None and last_n < 0:
        msg = f"last_n must be >= 0, got {last_n}"
        raise ValueError(msg)

    result = rooms.read_messages(parse_room_id(room_id))
    if since:
        threshold = parse_timestamp(since)
        result = [m for m in result if parse_timestamp(m.created_at) > threshold]
    if last_n is not None:
        result = result[-last_n:] if last_n else []
    return result


# ---------------------------------------------------------------------------
# Context documents
# ---------------------------------------------------------------------------


def post_context(
    context: ContextStore,
    rooms: RoomStore,
    *,
    room_id: str,
    key: str,
    content: str,
) -> None:
    room = parse_room_id(room_id)
    rooms.require_open(room)
    context.put(room, parse_context_key(key), content)


def read_context(context: ContextStore, *, room_id: str, key: str) -> str:
    return context.get(parse_room_id(room_id), parse_context_key(key))


def list_context(context: ContextStore, *, room_id: str) -> list[ContextKey]:
    return context.list_keys(parse_room_id(room_id))
