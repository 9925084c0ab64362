"""Stdio MCP server for agent-bridge.

Tools (all act as the peer the server was started for):
    register(name?, description?)                   → peer record
    list_peers()                                    → other peers
    send_message(to, content, type?)                → sent message (to="all" broadcasts)
    check_inbox(unread_only?)                       → inbox, oldest first
    reply(message_id, content)                      → reply message
    create_room(name, description?)                 → room metadata
    close_room(name)                                → room metadata
    list_rooms(include_closed?)                     → rooms
    send_room_message(room, content, type?)         → room message
    read_room_messages(room, since?, last_n?)       → room log
    post_context(room, key, content)                → {"ok": true, ...}
    read_context(room, key)                         → markdown text
    list_context(room)                              → context keys

Every call first refreshes this peer's lastSeenAt (heartbeat).

Protocol: JSON-RPC 2.0 over stdin/stdout (MCP spec). Each tools/call runs in
a worker thread as its own task, so a slow filesystem call does not hold up
the other requests.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from agent_bridge import tools
from agent_bridge.models import MESSAGE_TYPES, ROOM_MESSAGE_TYPES

if TYPE_CHECKING:
    from agent_bridge.config import BridgeConfig

_VERSION = "0.1.0"
_PROTOCOL_VERSION = "2024-11-05"

logger = logging.getLogger("agent_bridge.mcp")


def _tool_defs() -> list[dict[str, Any]]:
    room = {"type": "string", "description": "Room name"}
    return [
        {
            "name": "register",
            "description": "Update this peer's registration info (name, description).",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                },
            },
        },
        {
            "name": "list_peers",
            "description": "List all other registered peers.",
            "inputSchema": {"type": "object", "properties": {}},
        },
        {
            "name": "send_message",
            "description": 'Send a direct message to a peer (use to="all" for broadcast).',
            "inputSchema": {
                "type": "object",
                "properties": {
                    "to": {"type": "string"},
                    "content": {"type": "string"},
                    "type": {"type": "string", "enum": list(MESSAGE_TYPES), "default": "question"},
                },
                "required": ["to", "content"],
            },
        },
        {
            "name": "check_inbox",
            "description": "Check inbox for messages. Unread messages are marked read.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "unread_only": {
                        "type": "boolean",
                        "default": False,
                        "description": "Only return messages that were unread before this check",
                    },
                },
            },
        },
        {
            "name": "reply",
            "description": "Reply to a message in your inbox. The original is archived.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "message_id": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["message_id", "content"],
            },
        },
        {
            "name": "create_room",
            "description": "Create a shared room for group discussion and context sharing.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "name": room,
                    "description": {"type": "string"},
                },
                "required": ["name"],
            },
        },
        {
            "name": "close_room",
            "description": "Close a room. Closed rooms stay readable but accept no new messages or context.",
            "inputSchema": {
                "type": "object",
                "properties": {"name": room},
                "required": ["name"],
            },
        },
        {
            "name": "list_rooms",
            "description": "List rooms (open only unless include_closed).",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "include_closed": {"type": "boolean", "default": False},
                },
            },
        },
        {
            "name": "send_room_message",
            "description": "Send a message to a room.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "room": room,
                    "content": {"type": "string"},
                    "type": {"type": "string", "enum": list(ROOM_MESSAGE_TYPES), "default": "update"},
                },
                "required": ["room", "content"],
            },
        },
        {
            "name": "read_room_messages",
            "description": "Read messages from a room, oldest first.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "room": room,
                    "since": {"type": "string", "description": "ISO timestamp; only newer messages"},
                    "last_n": {"type": "integer", "description": "Only the newest N messages"},
                },
                "required": ["room"],
            },
        },
        {
            "name": "post_context",
            "description": "Post a markdown context document to a room's shared board.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "room": room,
                    "key": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["room", "key", "content"],
            },
        },
        {
            "name": "read_context",
            "description": "Read a context document from a room's shared board.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "room": room,
                    "key": {"type": "string"},
                },
                "required": ["room", "key"],
            },
        },
        {
            "name": "list_context",
            "description": "List all context keys in a room.",
            "inputSchema": {
                "type": "object",
                "properties": {"room": room},
                "required": ["room"],
            },
        },
    ]


def _dump(obj: Any) -> str:
    if isinstance(obj, list):
        return json.dumps([o.to_dict() if hasattr(o, "to_dict") else o for o in obj])
    if hasattr(obj, "to_dict"):
        return json.dumps(obj.to_dict())
    return json.dumps(obj)


class BridgeServer:
    def __init__(self, cfg: BridgeConfig) -> None:
        self._cfg = cfg
        self._cfg.ensure_dirs()
        self.bridge = tools.Bridge(cfg.bridge_dir)

    @property
    def peer_id(self) -> str:
        return self._cfg.peer_id

    def heartbeat(self) -> None:
        tools.register_peer(
            self.bridge.peers,
            self.peer_id,
            name=self._cfg.name,
            project=self._cfg.project,
            description=self._cfg.description,
        )

    def _call_register(self, args: dict[str, Any]) -> str:
        peer = tools.register_peer(
            self.bridge.peers,
            self.peer_id,
            name=args.get("name") or self._cfg.name,
            project=self._cfg.project,
            description=args.get("description"),
        )
        return _dump(peer)

    def _call_list_peers(self, args: dict[str, Any]) -> str:
        return _dump(tools.list_peers(self.bridge.peers, self.peer_id))

    def _call_send_message(self, args: dict[str, Any]) -> str:
        msg = tools.send_message(
            self.bridge.messages,
            self.bridge.peers,
            sender=self.peer_id,
            to=args["to"],
            content=args["content"],
            type=args.get("type") or "question",
        )
        return _dump(msg)

    def _call_check_inbox(self, args: dict[str, Any]) -> str:
        if args.get("unread_only"):
            was_unread = {m.id for m in self.bridge.messages.list_inbox(self.peer_id) if m.status == "unread"}
            messages = [m for m in tools.check_inbox(self.bridge.messages, self.peer_id) if m.id in was_unread]
        else:
            messages = tools.check_inbox(self.bridge.messages, self.peer_id)
        return _dump(messages)

    def _call_reply(self, args: dict[str, Any]) -> str:
        msg = tools.reply(
            self.bridge.messages,
            sender=self.peer_id,
            message_id=args["message_id"],
            content=args["content"],
        )
        return _dump(msg)

    def _call_create_room(self, args: dict[str, Any]) -> str:
        meta = tools.open_room(
            self.bridge.rooms,
            room_id=args["name"],
            created_by=self.peer_id,
            description=args.get("description"),
        )
        return _dump(meta)

    def _call_close_room(self, args: dict[str, Any]) -> str:
        return _dump(tools.close_room(self.bridge.rooms, room_id=args["name"]))

    def _call_list_rooms(self, args: dict[str, Any]) -> str:
        rooms = tools.list_rooms(self.bridge.rooms, include_closed=bool(args.get("include_closed", False)))
        return _dump(rooms)

    def _call_send_room_message(self, args: dict[str, Any]) -> str:
        msg = tools.post_room_message(
            self.bridge.rooms,
            room_id=args["room"],
            sender=self.peer_id,
            content=args["content"],
            type=args.get("type") or "update",
        )
        return _dump(msg)

    def _call_read_room_messages(self, args: dict[str, Any]) -> str:
        last_n = args.get("last_n")
        messages = tools.read_room_messages(
            self.bridge.rooms,
            room_id=args["room"],
            since=args.get("since"),
            last_n=int(last_n) if last_n is not None else None,
        )
        return _dump(messages)

    def _call_post_context(self, args: dict[str, Any]) -> str:
        tools.post_context(
            self.bridge.context,
            self.bridge.rooms,
            room_id=args["room"],
            key=args["key"],
            content=args["content"],
        )
        return _dump({"ok": True, "room": args["room"], "key": args["key"]})

    def _call_read_context(self, args: dict[str, Any]) -> str:
        return tools.read_context(self.bridge.context, room_id=args["room"], key=args["key"])

    def _call_list_context(self, args: dict[str, Any]) -> str:
        return _dump(tools.list_context(self.bridge.context, room_id=args["room"]))

    def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        dispatch = {
            "register": self._call_register,
            "list_peers": self._call_list_peers,
            "send_message": self._call_send_message,
            "check_inbox": self._call_check_inbox,
            "reply": self._call_reply,
            "create_room": self._call_create_room,
            "close_room": self._call_close_room,
            "list_rooms": self._call_list_rooms,
            "send_room_message": self._call_send_room_message,
            "read_room_messages": self._call_read_room_messages,
            "post_context": self._call_post_context,
            "read_context": self._call_read_context,
            "list_context": self._call_list_context,
        }
        if name not in dispatch:
            msg = f"Unknown tool: {name}"
            raise ValueError(msg)
        if name != "register":
            self.heartbeat()
        return dispatch[name](arguments)

    def handle(self, msg: dict[str, Any]) -> dict[str, Any] | None:
        """Answer one JSON-RPC request. None for notifications."""
        method = msg.get("method", "")
        msg_id = msg.get("id")

        if method == "initialize":
            return {
                "jsonrpc": "2.0",
                "id": msg_id,
                "result": {
                    "protocolVersion": _PROTOCOL_VERSION,
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": "agent-bridge", "version": _VERSION},
                },
            }

        if method == "tools/list":
            return {"jsonrpc": "2.0", "id": msg_id, "result": {"tools": _tool_defs()}}

        if method == "tools/call":
            params = msg.get("params", {})
            arguments = (params.get("arguments") or {}) if isinstance(params, dict) else None
            if not isinstance(arguments, dict):
                return {
                    "jsonrpc": "2.0",
                    "id": msg_id,
                    "error": {"code": -32602, "message": "Invalid params: expected an object with object arguments"},
                }
            tool_name = params.get("name", "")
            try:
                result_text = self.call_tool(tool_name, arguments)
            except Exception as exc:
                logger.info("tool %s failed: %s", tool_name, exc)
                return {
                    "jsonrpc": "2.0",
                    "id": msg_id,
                    "result": {
                        "content": [{"type": "text", "text": f"Error: {exc}"}],
                        "isError": True,
                    },
                }
            return {
                "jsonrpc": "2.0",
                "id": msg_id,
                "result": {
                    "content": [{"type": "text", "text": result_text}],
                    "isError": False,
                },
            }

        if msg_id is not None:
            return {
                "jsonrpc": "2.0",
                "id": msg_id,
                "error": {"code": -32601, "message": f"Method not found: {method}"},
            }
        return None  # notification, e.g. notifications/initialized


async def _run_server(cfg: BridgeConfig) -> None:
    server = BridgeServer(cfg)
    server.heartbeat()
    logger.info("agent-bridge: peer %r connected (bridge dir %s)", cfg.peer_id, cfg.bridge_dir)

    reader = asyncio.StreamReader()
    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    writer_transport, _ = await loop.connect_write_pipe(
        asyncio.BaseProtocol, sys.stdout.buffer
    )

    def write_json(obj: Any) -> None:
        line = json.dumps(obj) + "\n"
        writer_transport.write(line.encode())

    async def respond(msg: dict[str, Any]) -> None:
        try:
            response = await asyncio.to_thread(server.handle, msg)
        except Exception:
            logger.exception("request %r failed", msg.get("id"))
            if msg.get("id") is None:
                return
            response = {
                "jsonrpc": "2.0",
                "id": msg["id"],
                "error": {"code": -32603, "message": "Internal error"},
            }
        if response is not None:
            write_json(response)

    pending: set[asyncio.Task[None]] = set()
    while True:
        try:
            line = await reader.readline()
        except (asyncio.IncompleteReadError, EOFError):
            break
        if not line:
            break
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(msg, dict):
            continue

        task = asyncio.create_task(respond(msg))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


def run_server(cfg: BridgeConfig) -> None:
    """Entry point for `agent-bridge serve`."""
    asyncio.run(_run_server(cfg))
