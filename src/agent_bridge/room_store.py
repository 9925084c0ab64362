"""Room records: rooms/<room_id>/meta.json and an append-only messages.jsonl.

Room lifecycle:

    create ──> open ──close──> closed   (terminal)

A closed room still serves reads. Appends and context writes go through
require_open(), which raises RoomNotFoundError / RoomClosedError.

messages.jsonl is written only by append_message, one JSON object per line.
Unlike peer and inbox records it is never hand-edited, so a line that fails
to parse is treated as corruption of the whole log (CorruptLogError) rather
than skipped.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path

from agent_bridge.atomic import atomic_create_json, atomic_write_json, read_json
from agent_bridge.exceptions import (
    CorruptLogError,
    InvalidIdentifierError,
    RoomClosedError,
    RoomExistsError,
    RoomNotFoundError,
)
from agent_bridge.ids import RoomId, parse_room_id
from agent_bridge.layout import Layout
from agent_bridge.models import RoomMessage, RoomMeta

logger = logging.getLogger("agent_bridge.rooms")


class RoomStore:
    def __init__(self, base_dir: Path | str) -> None:
        self.layout = Layout(base_dir)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def create(self, meta: RoomMeta) -> None:
        """Create the room directory, meta.json and an empty log.

        Raises RoomExistsError if the room already has metadata, also when
        another process wins a concurrent create.
        """
        try:
            atomic_create_json(self.layout.room_meta_file(meta.id), meta.to_dict())
        except FileExistsError:
            raise RoomExistsError(meta.id) from None
        # touch, not truncate: an append may already have landed
        self.layout.room_messages_file(meta.id).touch()
        logger.debug("room %s created by %s", meta.id, meta.created_by)

    def get(self, room_id: RoomId) -> RoomMeta | None:
        path = self.layout.room_meta_file(room_id)
        try:
            raw = read_json(path)
            if raw is None:
                return None
            return RoomMeta.from_dict(raw)
        except ValueError as exc:  # includes json.JSONDecodeError
            logger.warning("skipping corrupt room record %s: %s", path, exc)
            return None

    def list(self, include_closed: bool = False) -> list[RoomMeta]:
        try:
            names = sorted(p.name for p in self.layout.rooms_dir.iterdir() if p.is_dir())
        except FileNotFoundError:
            return []

        rooms = []
        for name in names:
            try:
                room_id = parse_room_id(name)
            except InvalidIdentifierError:
                continue
            room = self.get(room_id)
            if room is None:
                continue
            if include_closed or room.is_open:
                rooms.append(room)
        return rooms

    def close(self, room_id: RoomId, closed_at: str) -> RoomMeta:
        """Mark the room closed. Closing a closed room returns it unchanged."""
        room = self.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        if not room.is_open:
            return room
        closed = dataclasses.replace(room, status="closed", closed_at=closed_at)
        atomic_write_json(self.layout.room_meta_file(room_id), closed.to_dict())
        logger.debug("room %s closed at %s", room_id, closed_at)
        return closed

    def require_open(self, room_id: RoomId) -> RoomMeta:
        """Return the room metadata if the room accepts writes."""
        room = self.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        if not room.is_open:
            raise RoomClosedError(room_id)
        return room

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------

    def append_message(self, room_id: RoomId, message: RoomMessage) -> None:
        self.require_open(room_id)
        line = json.dumps(message.to_dict(), ensure_ascii=False, separators=(",", ":")) + "\n"
        # one write() per record on an O_APPEND handle
        with self.layout.room_messages_file(room_id).open("ab") as f:
            f.write(line.encode("utf-8"))

    def read_messages(self, room_id: RoomId) -> list[RoomMessage]:
        """All log entries in append order. [] if the room has no log."""
        path = self.layout.room_messages_file(room_id)
        try:
            f = path.open("rb")
        except FileNotFoundError:
            return []

        messages: list[RoomMessage] = []
        with f:
            for line_no, raw in enumerate(f, start=1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    messages.append(RoomMessage.from_dict(json.loads(raw.decode("utf-8"))))
                except ValueError as exc:  # includes UnicodeDecodeError
                    raise CorruptLogError(path, line_no, str(exc)) from exc
        return messages
