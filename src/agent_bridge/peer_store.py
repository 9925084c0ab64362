"""Peer records: peers/<peer_id>.json, merged on every write."""

from __future__ import annotations

import logging
from pathlib import Path

from agent_bridge.atomic import atomic_write_json, read_json
from agent_bridge.exceptions import InvalidIdentifierError
from agent_bridge.ids import PeerId, parse_peer_id
from agent_bridge.layout import RECORD_SUFFIX, Layout
from agent_bridge.models import Peer, PeerUpsert

logger = logging.getLogger("agent_bridge.peers")


def _merge(new: str | None, old: str | None) -> str | None:
    return new if new is not None else old


class PeerStore:
    """One JSON record per peer.

    A record that fails to parse reads as absent, so one hand-edited or
    truncated file never breaks listing or broadcast fan-out.
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.layout = Layout(base_dir)

    def get(self, peer_id: PeerId) -> Peer | None:
        path = self.layout.peer_file(peer_id)
        try:
            raw = read_json(path)
            if raw is None:
                return None
            return Peer.from_dict(raw)
        except ValueError as exc:  # includes json.JSONDecodeError
            logger.warning("skipping corrupt peer record %s: %s", path, exc)
            return None

    def upsert(self, data: PeerUpsert) -> Peer:
        """Merge data into the stored record.

        Optional fields left as None keep their stored value. registered_at is
        fixed by the first write; last_seen_at is always taken from data.
        """
        existing = self.get(data.id)
        peer = Peer(
            id=data.id,
            name=_merge(data.name, existing.name if existing else None),
            project=_merge(data.project, existing.project if existing else None),
            description=_merge(data.description, existing.description if existing else None),
            registered_at=(
                existing.registered_at if existing
                else data.registered_at or data.last_seen_at
            ),
            last_seen_at=data.last_seen_at,
        )
        atomic_write_json(self.layout.peer_file(data.id), peer.to_dict())
        logger.debug("peer %s written (new=%s)", peer.id, existing is None)
        return peer

    def list(self) -> list[Peer]:
        peers = []
        for peer_id in self.list_ids():
            peer = self.get(peer_id)
            if peer is not None:
                peers.append(peer)
        return peers

    def list_ids(self) -> list[PeerId]:
        """Ids of every <valid id>.json in peers/. Anything else is ignored."""
        try:
            names = sorted(p.name for p in self.layout.peers_dir.iterdir() if p.is_file())
        except FileNotFoundError:
            return []

        ids: list[PeerId] = []
        for name in names:
            if not name.endswith(RECORD_SUFFIX):
                continue
            try:
                ids.append(parse_peer_id(name.removesuffix(RECORD_SUFFIX)))
            except InvalidIdentifierError:
                continue
        return ids
