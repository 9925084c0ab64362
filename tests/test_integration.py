"""End-to-end scenario: two project peers coordinate a feature through the bridge."""

from pathlib import Path

from agent_bridge import tools
from agent_bridge.tools import Bridge


def test_frontend_backend_feature(bridge_dir: Path) -> None:
    """Two peers with separate Bridge handles share one directory."""
    fe = Bridge(bridge_dir)
    be = Bridge(bridge_dir)

    tools.register_peer(fe.peers, "frontend", name="Frontend", project="/src/web")
    tools.register_peer(be.peers, "backend", name="Backend", project="/src/api")
    assert [p.id for p in tools.list_peers(fe.peers, "frontend")] == ["backend"]

    question = tools.send_message(
        fe.messages, fe.peers, sender="frontend", to="backend", content="What does GET /users/:id return?",
    )
    (received,) = tools.check_inbox(be.messages, "backend")
    assert received.id == question.id
    assert received.status == "read"

    answer = tools.reply(be.messages, sender="backend", message_id=question.id, content="See context user-schema")
    (got,) = tools.check_inbox(fe.messages, "frontend")
    assert got.id == answer.id
    assert got.reply_to == question.id

    tools.open_room(be.rooms, room_id="user-feature", created_by="backend", description="Users endpoint")
    tools.post_context(be.context, be.rooms, room_id="user-feature", key="user-schema", content="# User\n- id\n- name\n")
    tools.post_room_message(be.rooms, room_id="user-feature", sender="backend", content="schema posted")
    tools.post_room_message(
        fe.rooms, room_id="user-feature", sender="frontend", content="using it", type="decision",
    )

    assert tools.read_context(fe.context, room_id="user-feature", key="user-schema").startswith("# User")
    log = tools.read_room_messages(fe.rooms, room_id="user-feature")
    assert [(m.sender, m.type) for m in log] == [("backend", "update"), ("frontend", "decision")]

    tools.close_room(fe.rooms, room_id="user-feature")
    assert tools.list_rooms(be.rooms) == []
    assert len(tools.read_room_messages(be.rooms, room_id="user-feature", last_n=1)) == 1

    # nothing left behind but records
    assert list(bridge_dir.rglob(".tmp_*")) == []
