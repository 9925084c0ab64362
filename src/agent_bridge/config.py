"""BridgeConfig: who this peer is and where the shared bridge directory lives.

Resolution order for every field (first hit wins):

    1. explicit argument (CLI flag)
    2. environment: AGENT_BRIDGE_PEER_ID, AGENT_BRIDGE_DIR
    3. agent-bridge.toml, searched upward from the project root
    4. defaults: bridge dir ~/.agent-bridge, name = peer id, project = root

agent-bridge.toml example:

    [peer]
    id = "frontend"
    name = "Frontend App"
    description = "React client for the users API"

    [bridge]
    dir = "~/.agent-bridge"     # shared by every peer on this machine
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agent_bridge.exceptions import ConfigError, InvalidIdentifierError
from agent_bridge.ids import PeerId, parse_peer_id

_CONFIG_FILENAME = "agent-bridge.toml"
_DEFAULT_BRIDGE_DIR = "~/.agent-bridge"
_ENV_BRIDGE_DIR = "AGENT_BRIDGE_DIR"
_ENV_PEER_ID = "AGENT_BRIDGE_PEER_ID"


@dataclass
class BridgeConfig:
    """Resolved configuration for one peer."""

    peer_id: PeerId
    name: str
    project: str
    bridge_dir: Path
    root: Path                       # directory holding agent-bridge.toml (or cwd)
    description: str | None = None

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    def ensure_dirs(self) -> None:
        self.bridge_dir.mkdir(parents=True, exist_ok=True)


def load_config(
    root: Path | str | None = None,
    *,
    peer_id: str | None = None,
    name: str | None = None,
    project: str | None = None,
    bridge_dir: Path | str | None = None,
) -> BridgeConfig:
    """Resolve configuration. Raises ConfigError if no peer id can be found."""
    root_path = _find_root(Path(root).resolve() if root else Path.cwd())
    raw = _read_toml(root_path / _CONFIG_FILENAME)

    peer_section: dict[str, Any] = raw.get("peer", {})
    bridge_section: dict[str, Any] = raw.get("bridge", {})

    raw_id = peer_id or os.environ.get(_ENV_PEER_ID) or peer_section.get("id")
    if not raw_id:
        msg = f"peer id is required: pass --peer-id, set {_ENV_PEER_ID}, or add [peer] id to {_CONFIG_FILENAME}"
        raise ConfigError(msg)
    try:
        pid = parse_peer_id(raw_id)
    except InvalidIdentifierError as exc:
        raise ConfigError(str(exc)) from exc

    return BridgeConfig(
        peer_id=pid,
        name=name or peer_section.get("name") or pid,
        project=project or peer_section.get("project") or str(root_path),
        description=peer_section.get("description"),
        bridge_dir=_pick_bridge_dir(bridge_dir, bridge_section, root_path),
        root=root_path,
    )


def _pick_bridge_dir(explicit: Path | str | None, bridge_section: dict[str, Any], root: Path) -> Path:
    value = explicit or os.environ.get(_ENV_BRIDGE_DIR)
    if value:
        return Path(value).expanduser()
    # relative paths in agent-bridge.toml are relative to the file
    return root / Path(bridge_section.get("dir", _DEFAULT_BRIDGE_DIR)).expanduser()


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        msg = f"{path}: {exc}"
        raise ConfigError(msg) from exc


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for agent-bridge.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, peer_id: str, name: str | None = None) -> Path:
    """Write a default agent-bridge.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"{_CONFIG_FILENAME} already exists at {config_path}"
        raise FileExistsError(msg)

    pid = parse_peer_id(peer_id)
    content = f"""\
[peer]
id = {_toml_str(pid)}
name = {_toml_str(name or pid)}
# description = "what this peer works on"
# project = {_toml_str(str(root))}   # default: this directory

# [bridge]
# dir = "{_DEFAULT_BRIDGE_DIR}"   # or set {_ENV_BRIDGE_DIR}
"""
    config_path.write_text(content)
    return config_path


def resolve_bridge_dir(root: Path | str | None = None, bridge_dir: Path | str | None = None) -> Path:
    """Bridge directory alone, for commands that do not act as a peer."""
    root_path = _find_root(Path(root).resolve() if root else Path.cwd())
    return _pick_bridge_dir(bridge_dir, _read_toml(root_path / _CONFIG_FILENAME).get("bridge", {}), root_path)


def _toml_str(value: str) -> str:
    # a JSON string literal is a valid TOML basic string
    return json.dumps(value, ensure_ascii=False)
