"""agent-bridge CLI — peer coordination over a shared directory.

Commands:
    agent-bridge init PEER_ID         create agent-bridge.toml for this project
    agent-bridge serve                start stdio MCP server as this peer
    agent-bridge install              register `serve` with the claude CLI
    agent-bridge peers                list registered peers
    agent-bridge inbox PEER_ID        show a peer's inbox (or --archive)
    agent-bridge rooms                list rooms (--all includes closed)
    agent-bridge log ROOM             show a room's message log
    agent-bridge context ROOM [KEY]   list context keys, or print one document
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agent_bridge import tools
from agent_bridge.config import BridgeConfig, init_config, load_config, resolve_bridge_dir
from agent_bridge.exceptions import BridgeError
from agent_bridge.ids import parse_peer_id

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_root_option = click.option("--root", default=None, help="Project root (default: search upward from cwd)")
_bridge_dir_option = click.option(
    "--bridge-dir", default=None, envvar="AGENT_BRIDGE_DIR", help="Shared bridge directory"
)


def _load_cfg(root: str | None, **overrides: str | None) -> BridgeConfig:
    try:
        return load_config(root, **overrides)
    except BridgeError as exc:
        raise click.ClickException(str(exc)) from exc


def _bridge(root: str | None, bridge_dir: str | None) -> tools.Bridge:
    try:
        return tools.Bridge(resolve_bridge_dir(root, bridge_dir))
    except BridgeError as exc:
        raise click.ClickException(str(exc)) from exc


def _short(text: str, width: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 1] + "…"


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="agent-bridge")
def cli() -> None:
    """agent-bridge — peer messaging and shared rooms on the local filesystem."""


# ---------------------------------------------------------------------------
# agent-bridge init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("peer_id")
@click.option("--name", default=None, help="Display name (default: PEER_ID)")
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(peer_id: str, name: str | None, root: str) -> None:
    """Create agent-bridge.toml in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, peer_id, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("agent-bridge.toml already exists — skipping init")
    except BridgeError as exc:
        raise click.ClickException(str(exc)) from exc

    cfg = _load_cfg(str(root_path))
    cfg.ensure_dirs()
    click.echo(f"Peer       : {cfg.peer_id}")
    click.echo(f"Bridge dir : {cfg.bridge_dir}")


# ---------------------------------------------------------------------------
# agent-bridge serve / install
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--peer-id", default=None, help="This peer's id")
@click.option("--name", default=None, help="Display name")
@click.option("--project", default=None, help="Project path advertised to other peers")
@_bridge_dir_option
@_root_option
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
def serve(
    peer_id: str | None,
    name: str | None,
    project: str | None,
    bridge_dir: str | None,
    root: str | None,
    verbose: bool,
) -> None:
    """Start the stdio MCP server."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    cfg = _load_cfg(root, peer_id=peer_id, name=name, project=project, bridge_dir=bridge_dir)

    from agent_bridge.mcp import run_server
    run_server(cfg)


@cli.command()
@click.option("--peer-id", default=None, help="This peer's id")
@_bridge_dir_option
@_root_option
@click.option(
    "--scope",
    default="project",
    show_default=True,
    type=click.Choice(["project", "user"]),
    help="Where the claude CLI records the server",
)
def install(peer_id: str | None, bridge_dir: str | None, root: str | None, scope: str) -> None:
    """Register `agent-bridge serve` as an MCP server for this project."""
    from agent_bridge.install import ensure_mcp_registered, mcp_health

    cfg = _load_cfg(root, peer_id=peer_id, bridge_dir=bridge_dir)
    ok, message = ensure_mcp_registered(cfg, scope=scope)
    click.echo(message)
    if not ok:
        raise SystemExit(1)
    click.echo(f"MCP        : {mcp_health(cfg)}")


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@cli.command()
@_bridge_dir_option
@_root_option
def peers(bridge_dir: str | None, root: str | None) -> None:
    """List registered peers."""
    bridge = _bridge(root, bridge_dir)
    all_peers = bridge.peers.list()
    if not all_peers:
        click.echo("(no peers)")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Peer", no_wrap=True)
    table.add_column("Name")
    table.add_column("Project", style="dim")
    table.add_column("Last seen", no_wrap=True)
    for p in sorted(all_peers, key=lambda p: p.last_seen_at, reverse=True):
        table.add_row(escape(p.id), escape(p.name or ""), escape(p.project or ""), p.last_seen_at)
    Console().print(table)


@cli.command()
@click.argument("peer_id")
@click.option("--archive", is_flag=True, help="Show archived (replied-to) messages instead")
@click.option("--mark-read", is_flag=True, help="Mark unread messages read, as check_inbox does")
@_bridge_dir_option
@_root_option
def inbox(peer_id: str, archive: bool, mark_read: bool, bridge_dir: str | None, root: str | None) -> None:
    """Show PEER_ID's inbox, oldest first."""
    bridge = _bridge(root, bridge_dir)
    try:
        pid = parse_peer_id(peer_id)
    except BridgeError as exc:
        raise click.ClickException(str(exc)) from exc

    if archive:
        messages = bridge.messages.list_archive(pid)
    elif mark_read:
        messages = tools.check_inbox(bridge.messages, pid)
    else:
        messages = bridge.messages.list_inbox(pid)
    if not messages:
        click.echo("(empty)")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("From", no_wrap=True)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Content")
    for m in messages:
        status = f"[yellow]{m.status}[/yellow]" if m.status == "unread" else m.status
        table.add_row(m.id, escape(m.sender), m.type, status, escape(_short(m.content)))
    Console().print(table)


@cli.command()
@click.option("--all", "include_closed", is_flag=True, help="Include closed rooms")
@_bridge_dir_option
@_root_option
def rooms(include_closed: bool, bridge_dir: str | None, root: str | None) -> None:
    """List rooms."""
    bridge = _bridge(root, bridge_dir)
    found = tools.list_rooms(bridge.rooms, include_closed=include_closed)
    if not found:
        click.echo("(no rooms)")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Room", no_wrap=True)
    table.add_column("Status")
    table.add_column("Created by")
    table.add_column("Created", no_wrap=True)
    table.add_column("Description")
    for r in found:
        status = "[green]open[/green]" if r.is_open else f"[dim]closed {r.closed_at or ''}[/dim]"
        table.add_row(escape(r.id), status, escape(r.created_by), r.created_at, escape(r.description or ""))
    Console().print(table)


@cli.command()
@click.argument("room")
@click.option("--since", default=None, help="Only messages after this ISO timestamp")
@click.option("--last", "-n", "last_n", default=None, type=int, help="Only the newest N messages")
@_bridge_dir_option
@_root_option
def log(room: str, since: str | None, last_n: int | None, bridge_dir: str | None, root: str | None) -> None:
    """Print ROOM's message log in append order."""
    bridge = _bridge(root, bridge_dir)
    try:
        messages = tools.read_room_messages(bridge.rooms, room_id=room, since=since, last_n=last_n)
    except (BridgeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    if not messages:
        click.echo("(no messages)")
        return
    for m in messages:
        click.echo(f"{m.created_at}  {m.sender:<12} ({m.type}) {m.content}")


@cli.command()
@click.argument("room")
@click.argument("key", required=False)
@_bridge_dir_option
@_root_option
def context(room: str, key: str | None, bridge_dir: str | None, root: str | None) -> None:
    """List ROOM's context keys, or print the document KEY."""
    bridge = _bridge(root, bridge_dir)
    try:
        if key is None:
            keys = tools.list_context(bridge.context, room_id=room)
            click.echo("\n".join(keys) if keys else "(no context)")
        else:
            click.echo(tools.read_context(bridge.context, room_id=room, key=key))
    except BridgeError as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
