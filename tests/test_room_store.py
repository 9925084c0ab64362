"""Tests for RoomStore lifecycle and the append-only log, and ContextStore."""

import json
import threading
from pathlib import Path

import pytest

from agent_bridge.context_store import ContextStore
from agent_bridge.exceptions import (
    ContextNotFoundError,
    CorruptLogError,
    RoomClosedError,
    RoomExistsError,
    RoomNotFoundError,
)
from agent_bridge.models import RoomMessage, RoomMeta
from agent_bridge.room_store import RoomStore


@pytest.fixture
def rooms(bridge_dir: Path) -> RoomStore:
    return RoomStore(bridge_dir)


@pytest.fixture
def context(bridge_dir: Path) -> ContextStore:
    return ContextStore(bridge_dir)


def _meta(room_id: str = "user-feature") -> RoomMeta:
    return RoomMeta(id=room_id, created_by="frontend", created_at="2026-01-01T00:00:01.000Z", description="Users API")


def _rm(msg_id: str, created_at: str, content: str = "hello") -> RoomMessage:
    return RoomMessage(id=msg_id, sender="frontend", content=content, type="update", created_at=created_at)


# --- Metadata ---


def test_create_writes_meta_and_empty_log(rooms: RoomStore, bridge_dir: Path) -> None:
    """create() lays out meta.json and an empty messages.jsonl."""
    rooms.create(_meta())
    room_dir = bridge_dir / "rooms" / "user-feature"
    assert json.loads((room_dir / "meta.json").read_text())["createdBy"] == "frontend"
    assert (room_dir / "messages.jsonl").read_text() == ""
    assert rooms.get("user-feature") == _meta()


def test_create_twice_raises(rooms: RoomStore) -> None:
    """An existing room is never overwritten."""
    rooms.create(_meta())
    with pytest.raises(RoomExistsError):
        rooms.create(_meta())


def test_list_filters_closed(rooms: RoomStore, bridge_dir: Path) -> None:
    """Closed rooms are hidden unless include_closed; junk dirs are ignored."""
    rooms.create(_meta("a-room"))
    rooms.create(_meta("b-room"))
    rooms.close("a-room", "2026-01-01T00:00:05.000Z")
    (bridge_dir / "rooms" / "no-meta").mkdir()

    assert [r.id for r in rooms.list()] == ["b-room"]
    assert [r.id for r in rooms.list(include_closed=True)] == ["a-room", "b-room"]


def test_close_and_close_again(rooms: RoomStore) -> None:
    """close() stamps closedAt once; a second close changes nothing."""
    rooms.create(_meta())
    closed = rooms.close("user-feature", "2026-01-01T00:00:05.000Z")
    assert closed.status == "closed"
    assert closed.closed_at == "2026-01-01T00:00:05.000Z"
    again = rooms.close("user-feature", "2026-01-01T00:00:09.000Z")
    assert again.closed_at == "2026-01-01T00:00:05.000Z"


def test_close_unknown_raises(rooms: RoomStore) -> None:
    with pytest.raises(RoomNotFoundError):
        rooms.close("ghost", "2026-01-01T00:00:05.000Z")


# --- Log ---


def test_append_and_read_in_order(rooms: RoomStore, bridge_dir: Path) -> None:
    """Entries come back in append order, one JSON object per line."""
    rooms.create(_meta())
    rooms.append_message("user-feature", _rm("rm_1", "2026-01-01T00:00:02.000Z", "first"))
    rooms.append_message("user-feature", _rm("rm_2", "2026-01-01T00:00:03.000Z", "second"))

    assert [m.content for m in rooms.read_messages("user-feature")] == ["first", "second"]
    lines = (bridge_dir / "rooms" / "user-feature" / "messages.jsonl").read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["from"] == "frontend"


def test_append_rejects_missing_or_closed_room(rooms: RoomStore) -> None:
    """Appends require an existing open room."""
    with pytest.raises(RoomNotFoundError):
        rooms.append_message("ghost", _rm("rm_1", "2026-01-01T00:00:02.000Z"))
    rooms.create(_meta())
    rooms.close("user-feature", "2026-01-01T00:00:05.000Z")
    with pytest.raises(RoomClosedError):
        rooms.append_message("user-feature", _rm("rm_1", "2026-01-01T00:00:06.000Z"))


def test_closed_room_log_still_readable(rooms: RoomStore) -> None:
    rooms.create(_meta())
    rooms.append_message("user-feature", _rm("rm_1", "2026-01-01T00:00:02.000Z"))
    rooms.close("user-feature", "2026-01-01T00:00:05.000Z")
    assert len(rooms.read_messages("user-feature")) == 1


def test_read_missing_log_is_empty(rooms: RoomStore) -> None:
    assert rooms.read_messages("ghost") == []


def test_corrupt_log_line_raises(rooms: RoomStore, bridge_dir: Path) -> None:
    """A bad log line is reported with its line number."""
    rooms.create(_meta())
    rooms.append_message("user-feature", _rm("rm_1", "2026-01-01T00:00:02.000Z"))
    with (bridge_dir / "rooms" / "user-feature" / "messages.jsonl").open("a") as f:
        f.write("\n{not json\n")
    with pytest.raises(CorruptLogError) as excinfo:
        rooms.read_messages("user-feature")
    assert excinfo.value.line_no == 3


# --- Context ---


def test_context_put_get_overwrite(context: ContextStore, bridge_dir: Path) -> None:
    """Context documents are whole-file, last write wins."""
    context.put("user-feature", "schema", "# v1")
    context.put("user-feature", "schema", "# v2")
    assert context.get("user-feature", "schema") == "# v2"
    assert (bridge_dir / "rooms" / "user-feature" / "context" / "schema.md").read_text() == "# v2"


def test_context_missing_raises(context: ContextStore) -> None:
    with pytest.raises(ContextNotFoundError, match="schema"):
        context.get("user-feature", "schema")


def test_context_list_keys(context: ContextStore, bridge_dir: Path) -> None:
    """Only <valid key>.md files are listed, sorted."""
    assert context.list_keys("user-feature") == []
    context.put("user-feature", "schema", "s")
    context.put("user-feature", "api-contract", "a")
    (bridge_dir / "rooms" / "user-feature" / "context" / "notes.txt").write_text("x")
    assert context.list_keys("user-feature") == ["api-contract", "schema"]


def test_undecodable_log_line_raises(rooms: RoomStore, bridge_dir: Path) -> None:
    """Invalid UTF-8 in the log is reported as corruption with its line number."""
    rooms.create(_meta())
    rooms.append_message("user-feature", _rm("rm_1", "2026-01-01T00:00:02.000Z"))
    with (bridge_dir / "rooms" / "user-feature" / "messages.jsonl").open("ab") as f:
        f.write(b"\xff\xfe\n")
    with pytest.raises(CorruptLogError) as excinfo:
        rooms.read_messages("user-feature")
    assert excinfo.value.line_no == 2


def test_concurrent_create_has_one_winner(rooms: RoomStore) -> None:
    """Racing creators of one room: exactly one succeeds, the rest see RoomExistsError."""
    creators = [f"peer-{i}" for i in range(8)]
    barrier = threading.Barrier(len(creators))
    outcomes: dict[str, str] = {}

    def create(peer: str) -> None:
        meta = RoomMeta(id="race", created_by=peer, created_at="2026-01-01T00:00:01.000Z")
        barrier.wait()
        try:
            rooms.create(meta)
            outcomes[peer] = "created"
        except RoomExistsError:
            outcomes[peer] = "exists"

    threads = [threading.Thread(target=create, args=(p,)) for p in creators]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [p for p, o in outcomes.items() if o == "created"]
    assert len(winners) == 1
    assert list(outcomes.values()).count("exists") == len(creators) - 1
    assert rooms.get("race").created_by == winners[0]
    assert rooms.read_messages("race") == []


def test_create_keeps_existing_log(rooms: RoomStore, bridge_dir: Path) -> None:
    """Creating the room never truncates a log that is already there."""
    log = bridge_dir / "rooms" / "user-feature" / "messages.jsonl"
    log.parent.mkdir(parents=True)
    log.write_text(json.dumps(_rm("rm_0", "2026-01-01T00:00:00.500Z").to_dict()) + "\n")
    rooms.create(_meta())
    assert [m.id for m in rooms.read_messages("user-feature")] == ["rm_0"]
