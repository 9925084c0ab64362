"""Setup helpers: MCP registration and health checks.

Used by `agent-bridge install`.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_bridge.config import BridgeConfig

_MCP_SERVER_NAME = "agent-bridge"


def _serve_args(cfg: BridgeConfig) -> list[str]:
    return ["serve", "--peer-id", cfg.peer_id, "--bridge-dir", str(cfg.bridge_dir)]


def ensure_mcp_registered(cfg: BridgeConfig, scope: str = "project") -> tuple[bool, str]:
    """Register `agent-bridge serve --peer-id <id> --bridge-dir <dir>` as an MCP server. Idempotent.

    scope="project" → `claude mcp add --scope project` (writes .mcp.json in the project)
    scope="user"    → `claude mcp add --scope user`

    Peer identity is per project, so "project" is the default.
    Returns (success, message).
    """
    if not shutil.which("claude"):
        return False, "`claude` CLI not found — install Claude Code to register MCP server"

    bin_path = shutil.which("agent-bridge")
    if bin_path is None:
        return (
            False,
            "`agent-bridge` not found on PATH — install with `pip install agent-bridge`",
        )

    expected_args = _serve_args(cfg)

    if _registered_args(cfg.root) == expected_args:
        return True, f"MCP server '{_MCP_SERVER_NAME}' already registered"

    result = subprocess.run(
        ["claude", "mcp", "list"],
        capture_output=True,
        text=True,
        check=False,
        cwd=cfg.root,
    )
    if _MCP_SERVER_NAME in result.stdout:
        # stale args: remove before re-adding
        subprocess.run(
            ["claude", "mcp", "remove", _MCP_SERVER_NAME],
            capture_output=True,
            check=False,
            cwd=cfg.root,
        )

    result = subprocess.run(
        ["claude", "mcp", "add", "--scope", scope, _MCP_SERVER_NAME, "--", bin_path, *expected_args],
        capture_output=True,
        text=True,
        check=False,
        cwd=cfg.root,
    )
    if result.returncode == 0:
        return True, f"MCP server '{_MCP_SERVER_NAME}' registered as peer {cfg.peer_id} (scope={scope})"
    return False, f"Failed to register MCP: {result.stderr.strip()}"


def _registered_args(root: Path) -> list[str] | None:
    """Args recorded in <root>/.mcp.json for our server, if any."""
    mcp_json = root / ".mcp.json"
    if not mcp_json.exists():
        return None
    try:
        data = json.loads(mcp_json.read_text())
    except json.JSONDecodeError:
        return None
    entry = data.get("mcpServers", {}).get(_MCP_SERVER_NAME)
    if not isinstance(entry, dict):
        return None
    args = entry.get("args")
    return args if isinstance(args, list) else None


def mcp_health(cfg: BridgeConfig) -> str:
    """Quick health string."""
    args = _registered_args(cfg.root)
    if args is not None:
        if args == _serve_args(cfg):
            return f"registered in .mcp.json ('{_MCP_SERVER_NAME}')"
        return "registered in .mcp.json with stale args — run `agent-bridge install`"
    if not shutil.which("claude"):
        return "claude CLI not found"
    result = subprocess.run(
        ["claude", "mcp", "list"],
        capture_output=True,
        text=True,
        check=False,
        cwd=cfg.root,
    )
    if _MCP_SERVER_NAME in result.stdout:
        return f"registered ('{_MCP_SERVER_NAME}')"
    return "not registered — run `agent-bridge install` to register"
