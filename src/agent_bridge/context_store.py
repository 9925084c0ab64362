"""Room context documents: rooms/<room_id>/context/<key>.md."""

from __future__ import annotations

import logging
from pathlib import Path

from agent_bridge.atomic import atomic_write_text, read_text
from agent_bridge.exceptions import ContextNotFoundError, InvalidIdentifierError
from agent_bridge.ids import ContextKey, RoomId, parse_context_key
from agent_bridge.layout import CONTEXT_SUFFIX, Layout

logger = logging.getLogger("agent_bridge.context")


class ContextStore:
    """Named markdown documents shared inside a room. Last write wins, no history.

    This store does not check the room lifecycle; callers gate writes with
    RoomStore.require_open() first.
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.layout = Layout(base_dir)

    def put(self, room_id: RoomId, key: ContextKey, content: str) -> None:
        atomic_write_text(self.layout.room_context_file(room_id, key), content)
        logger.debug("context %s/%s written (%d chars)", room_id, key, len(content))

    def get(self, room_id: RoomId, key: ContextKey) -> str:
        content = read_text(self.layout.room_context_file(room_id, key))
        if content is None:
            raise ContextNotFoundError(room_id, key)
        return content

    def list_keys(self, room_id: RoomId) -> list[ContextKey]:
        try:
            names = sorted(p.name for p in self.layout.room_context_dir(room_id).iterdir() if p.is_file())
        except FileNotFoundError:
            return []

        keys: list[ContextKey] = []
        for name in names:
            if not name.endswith(CONTEXT_SUFFIX):
                continue
            try:
                keys.append(parse_context_key(name.removesuffix(CONTEXT_SUFFIX)))
            except InvalidIdentifierError:
                continue
        return keys
