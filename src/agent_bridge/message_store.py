"""Inbox records: inbox/<peer_id>/<message_id>.json plus an archive/ subdir."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from agent_bridge.atomic import atomic_write_json, read_json
from agent_bridge.exceptions import InvalidIdentifierError, MessageNotFoundError
from agent_bridge.ids import MessageId, PeerId, parse_message_id
from agent_bridge.layout import RECORD_SUFFIX, Layout
from agent_bridge.models import Message, parse_timestamp

logger = logging.getLogger("agent_bridge.messages")


class MessageStore:
    """Per-peer inbox of direct messages.

    A message lives in exactly one place: the inbox while it is pending, the
    archive once a reply has consumed it. Archiving is a rename, not a copy.
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.layout = Layout(base_dir)

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def put_inbox(self, peer_id: PeerId, message: Message) -> None:
        atomic_write_json(self.layout.inbox_message_file(peer_id, message.id), message.to_dict())
        logger.debug("delivered %s to %s", message.id, peer_id)

    def get_inbox(self, peer_id: PeerId, message_id: MessageId) -> Message | None:
        return self._load(self.layout.inbox_message_file(peer_id, message_id))

    def list_inbox(self, peer_id: PeerId) -> list[Message]:
        """Messages currently in the inbox, oldest first."""
        messages = self._load_dir(self.layout.inbox_dir(peer_id))
        # stable sort: equal timestamps keep directory order
        return sorted(messages, key=lambda m: parse_timestamp(m.created_at))

    def update_inbox(self, peer_id: PeerId, message_id: MessageId, **patch: Any) -> Message | None:
        """Read-modify-write of some fields. None (and no write) if absent."""
        existing = self.get_inbox(peer_id, message_id)
        if existing is None:
            return None
        if "id" in patch and patch["id"] != message_id:
            msg = "update_inbox cannot change a message id"
            raise ValueError(msg)
        updated = dataclasses.replace(existing, **patch)
        atomic_write_json(self.layout.inbox_message_file(peer_id, message_id), updated.to_dict())
        return updated

    def archive_inbox(self, peer_id: PeerId, message_id: MessageId) -> None:
        """Move the message from the inbox into archive/."""
        src = self.layout.inbox_message_file(peer_id, message_id)
        dst = self.layout.archive_message_file(peer_id, message_id)
        dst.parent.mkdir(parents=True, exist_ok=True)
        try:
            src.replace(dst)
        except FileNotFoundError:
            raise MessageNotFoundError(message_id, peer_id) from None
        logger.debug("archived %s for %s", message_id, peer_id)

    # ------------------------------------------------------------------
    # Archive
    # ------------------------------------------------------------------

    def get_archived(self, peer_id: PeerId, message_id: MessageId) -> Message | None:
        return self._load(self.layout.archive_message_file(peer_id, message_id))

    def list_archive(self, peer_id: PeerId) -> list[Message]:
        messages = self._load_dir(self.layout.archive_dir(peer_id))
        return sorted(messages, key=lambda m: parse_timestamp(m.created_at))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self, path: Path) -> Message | None:
        try:
            raw = read_json(path)
            if raw is None:
                return None
            return Message.from_dict(raw)
        except ValueError as exc:  # includes json.JSONDecodeError
            logger.warning("skipping corrupt message record %s: %s", path, exc)
            return None

    def _load_dir(self, directory: Path) -> list[Message]:
        try:
            names = sorted(p.name for p in directory.iterdir() if p.is_file())
        except FileNotFoundError:
            return []

        messages = []
        for name in names:
            if not name.endswith(RECORD_SUFFIX):
                continue
            try:
                parse_message_id(name.removesuffix(RECORD_SUFFIX))
            except InvalidIdentifierError:
                continue
            message = self._load(directory / name)
            if message is not None:
                messages.append(message)
        return messages
