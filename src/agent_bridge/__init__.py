"""File-based peer bulletin board: peers, inboxes, rooms and shared context.

Layout (under the bridge directory, default ~/.agent-bridge):
    peers/<peer_id>.json                        # one record per peer, merged on write
    inbox/<peer_id>/<message_id>.json           # pending direct messages
    inbox/<peer_id>/archive/<message_id>.json   # messages consumed by a reply
    rooms/<room_id>/meta.json                   # room metadata, open -> closed
    rooms/<room_id>/messages.jsonl              # append-only room log
    rooms/<room_id>/context/<key>.md            # shared markdown documents

Concurrent writes: every JSON record is replaced via write-temp-then-rename,
so readers never see a partial file. Read-modify-write (peer upsert, room
close) is last-write-wins; there are no locks. Room log appends are single
O_APPEND writes.
"""

from agent_bridge.config import BridgeConfig, init_config, load_config
from agent_bridge.context_store import ContextStore
from agent_bridge.message_store import MessageStore
from agent_bridge.models import Message, Peer, PeerUpsert, RoomMessage, RoomMeta
from agent_bridge.peer_store import PeerStore
from agent_bridge.room_store import RoomStore
from agent_bridge.tools import Bridge

__all__ = [
    "Bridge",
    "BridgeConfig",
    "ContextStore",
    "Message",
    "MessageStore",
    "Peer",
    "PeerStore",
    "PeerUpsert",
    "RoomMessage",
    "RoomMeta",
    "RoomStore",
    "init_config",
    "load_config",
]
