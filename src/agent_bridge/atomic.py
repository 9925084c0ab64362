"""Crash-safe whole-file writes.

Every record in the bridge directory is replaced, never edited in place:
content goes to a uniquely named temp file next to the target, is fsynced,
and is then renamed over the target. Readers see the old file or the new
one, never a partial write. Temp files are dot-prefixed (``.tmp_<hex>``) so
directory scans that only accept valid identifiers skip them.
"""

from __future__ import annotations

import contextlib
import json
import os
import secrets
from pathlib import Path
from typing import Any


def atomic_write_text(path: Path, content: str) -> None:
    """Replace path with content (write temp, fsync, rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.parent / f".tmp_{secrets.token_hex(4)}"
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def atomic_write_json(path: Path, data: Any) -> None:
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def atomic_create_json(path: Path, data: Any) -> None:
    """Publish path only if it does not exist yet. Raises FileExistsError.

    The complete temp file is hard-linked into place, so of several racing
    creators exactly one wins and nobody sees a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.parent / f".tmp_{secrets.token_hex(4)}"
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.link(tmp, path)
    finally:
        with contextlib.suppress(OSError):
            tmp.unlink()


def read_text(path: Path) -> str | None:
    """File content, or None if the file does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def read_json(path: Path) -> Any:
    """Parsed JSON, or None if the file does not exist.

    json.JSONDecodeError propagates; callers that tolerate corrupt records
    catch it themselves.
    """
    content = read_text(path)
    if content is None:
        return None
    return json.loads(content)
