"""Shared fixtures: an isolated bridge directory per test and a fake clock."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from agent_bridge.tools import Bridge


@pytest.fixture
def bridge_dir(tmp_path: Path) -> Path:
    return tmp_path / "bridge"


@pytest.fixture
def bridge(bridge_dir: Path) -> Bridge:
    return Bridge(bridge_dir)


def _ts(seconds: int) -> str:
    """Deterministic ISO timestamp: 2026-01-01T00:00:00.000Z + seconds."""
    dt = datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=seconds)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@pytest.fixture
def clock() -> Callable[[], str]:
    """Clock that advances one second per call."""
    state = {"t": 0}

    def tick() -> str:
        state["t"] += 1
        return _ts(state["t"])

    return tick


@pytest.fixture
def ts() -> Callable[[int], str]:
    """The timestamp the clock fixture returns on its Nth call."""
    return _ts
