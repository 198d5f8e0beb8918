"""Whole-state JSON snapshot file.

Both services persist by rewriting one JSON document on every mutation
and reading it back on startup.  Cost is O(total credentials) per write,
which is fine at the scale these services run at; the contract that
matters is durable-before-acknowledge and a readable file after a crash.

Writes go to a temp file in the same directory, are fsynced, then
atomically renamed over the target.  A crash mid-write leaves either the
old snapshot or the new one, never a truncated mix.

File I/O is blocking, so the async methods hand it to a worker thread
to keep the event loop serving other requests.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class SnapshotError(Exception):
    """The backing file could not be read or written."""


class SnapshotCorruptError(SnapshotError):
    """The backing file exists but does not hold a JSON object."""


class JsonSnapshotFile:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def read(self) -> dict[str, Any] | None:
        """Return the stored state, or None when no snapshot exists yet."""
        return await asyncio.to_thread(self._read_sync)

    async def write(self, state: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, state)

    async def move_aside(self) -> Path:
        """Rename an unreadable snapshot so a fresh one can take its place."""
        return await asyncio.to_thread(self._move_aside_sync)

    def _read_sync(self) -> dict[str, Any] | None:
        try:
            with self._path.open("r", encoding="utf-8") as f:
                state = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise SnapshotCorruptError(f"{self._path}: {e}") from e
        except OSError as e:
            raise SnapshotError(f"cannot read {self._path}: {e}") from e

        if not isinstance(state, dict):
            raise SnapshotCorruptError(f"{self._path}: top-level value is not an object")
        return state

    def _write_sync(self, state: dict[str, Any]) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise SnapshotError(f"cannot write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def _move_aside_sync(self) -> Path:
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        target = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
        try:
            os.replace(self._path, target)
        except OSError as e:
            raise SnapshotError(f"cannot move aside {self._path}: {e}") from e
        return target
