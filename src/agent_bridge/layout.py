"""Path layout of a bridge directory.

    <base>/
        peers/<peer_id>.json
        inbox/<peer_id>/<message_id>.json
        inbox/<peer_id>/archive/<message_id>.json
        rooms/<room_id>/meta.json
        rooms/<room_id>/messages.jsonl
        rooms/<room_id>/context/<key>.md
"""

from __future__ import annotations

from pathlib import Path

from agent_bridge.ids import ContextKey, MessageId, PeerId, RoomId

RECORD_SUFFIX = ".json"
CONTEXT_SUFFIX = ".md"


class Layout:
    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir)

    @property
    def peers_dir(self) -> Path:
        return self.base_dir / "peers"

    def peer_file(self, peer_id: PeerId) -> Path:
        return self.peers_dir / f"{peer_id}{RECORD_SUFFIX}"

    def inbox_dir(self, peer_id: PeerId) -> Path:
        return self.base_dir / "inbox" / peer_id

    def inbox_message_file(self, peer_id: PeerId, message_id: MessageId) -> Path:
        return self.inbox_dir(peer_id) / f"{message_id}{RECORD_SUFFIX}"

    def archive_dir(self, peer_id: PeerId) -> Path:
        return self.inbox_dir(peer_id) / "archive"

    def archive_message_file(self, peer_id: PeerId, message_id: MessageId) -> Path:
        return self.archive_dir(peer_id) / f"{message_id}{RECORD_SUFFIX}"

    @property
    def rooms_dir(self) -> Path:
        return self.base_dir / "rooms"

    def room_dir(self, room_id: RoomId) -> Path:
        return self.rooms_dir / room_id

    def room_meta_file(self, room_id: RoomId) -> Path:
        return self.room_dir(room_id) / "meta.json"

    def room_messages_file(self, room_id: RoomId) -> Path:
        return self.room_dir(room_id) / "messages.jsonl"

    def room_context_dir(self, room_id: RoomId) -> Path:
        return self.room_dir(room_id) / "context"

    def room_context_file(self, room_id: RoomId, key: ContextKey) -> Path:
        return self.room_context_dir(room_id) / f"{key}{CONTEXT_SUFFIX}"
