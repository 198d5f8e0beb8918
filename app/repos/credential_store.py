"""Durable credential store: the issuance side's source of truth.

Holds every issued credential in memory and mirrors the full state to a
JSON snapshot (see snapshot.py) before any mutating call returns.  A
restart reloads the snapshot, so anything a caller saw acknowledged is
still there afterwards.

Snapshot layout:

    {
      "credentials": {"<id>": {"id": ..., "data": {...}, "issuedAt": ...}},
      "lastWorkerId": 7
    }

The worker counter is per store instance.  Two issuance replicas with
separate snapshots will both hand out worker-1, and neither sees the
other's credentials for duplicate detection.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from app.core.canonical import content_hash
from app.core.metrics import CREDENTIALS_HELD
from app.models.credential import Credential, new_credential_id
from app.repos.snapshot import JsonSnapshotFile, SnapshotCorruptError

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, path: Path) -> None:
        self._snapshot = JsonSnapshotFile(path)
        self._credentials: dict[str, Credential] = {}
        # content hash -> id, issued credentials only
        self._by_content: dict[str, str] = {}
        self._last_worker_id = 0
        self._initialized = False
        # Serializes snapshot writes so an older state never lands last
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._snapshot.path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def last_worker_id(self) -> int:
        return self._last_worker_id

    async def initialize(self) -> None:
        """Load the snapshot, or start empty and write one.

        Raises SnapshotError when the backing file cannot be written;
        the service must not start in that case.
        """
        if self._initialized:
            return

        try:
            state = await self._snapshot.read()
            if state is not None:
                self._load_state(state)
        except (
            SnapshotCorruptError,
            AttributeError,
            KeyError,
            TypeError,
            ValueError,
        ) as e:
            moved_to = await self._snapshot.move_aside()
            logger.error(
                "Credential snapshot unreadable (%s), moved to %s; starting empty",
                e,
                moved_to,
            )
            state = None

        if state is None:
            await self._save()
            logger.info("Credential store initialized empty at %s", self.path)
        else:
            logger.info(
                "Credential store loaded %d credentials (last worker=%d) from %s",
                len(self._credentials),
                self._last_worker_id,
                self.path,
            )

        self._initialized = True
        CREDENTIALS_HELD.labels(service="issuance").set(len(self._credentials))

    def get_next_worker_id(self) -> str:
        """Advance the counter and return worker-<n>.

        No await between read and increment, so concurrent callers on one
        event loop never see the same value.
        """
        self._last_worker_id += 1
        return f"worker-{self._last_worker_id}"

    async def issue_credential(self, data: dict[str, Any], worker_id: str) -> Credential:
        """Create, store and persist a credential with status=issued.

        The record is durable before this returns.  If the snapshot write
        fails the record is removed again and the error propagates.
        """
        credential_id = new_credential_id()
        while credential_id in self._credentials:
            credential_id = new_credential_id()

        credential = Credential.new(data=data, issued_by=worker_id, id=credential_id)
        digest = content_hash(data)

        self._credentials[credential.id] = credential
        self._by_content.setdefault(digest, credential.id)
        try:
            await self._save()
        except Exception:
            del self._credentials[credential.id]
            if self._by_content.get(digest) == credential.id:
                del self._by_content[digest]
            raise

        CREDENTIALS_HELD.labels(service="issuance").set(len(self._credentials))
        return credential

    async def get_credential(self, credential_id: str) -> Credential | None:
        return self._credentials.get(credential_id)

    async def credential_exists(self, credential_id: str) -> bool:
        return credential_id in self._credentials

    async def get_all_credentials(self) -> list[Credential]:
        return list(self._credentials.values())

    async def find_by_data(self, data: dict[str, Any]) -> Credential | None:
        """Return the issued credential whose data equals `data`, if any."""
        credential_id = self._by_content.get(content_hash(data))
        if credential_id is None:
            return None
        return self._credentials.get(credential_id)

    async def count(self) -> int:
        return len(self._credentials)

    async def clear_all(self) -> None:
        """Drop every credential and reset the worker counter to 0.

        If the snapshot write fails, the previous credentials and counter
        are restored and the error propagates.
        """
        previous = (self._credentials, self._by_content, self._last_worker_id)
        self._credentials = {}
        self._by_content = {}
        self._last_worker_id = 0
        try:
            await self._save()
        except Exception:
            self._credentials, self._by_content, self._last_worker_id = previous
            raise
        CREDENTIALS_HELD.labels(service="issuance").set(0)
        logger.warning("Credential store cleared at %s", self.path)

    # ------------------------------------------------------------------

    def _load_state(self, state: dict[str, Any]) -> None:
        credentials: dict[str, Credential] = {}
        by_content: dict[str, str] = {}
        for raw in (state.get("credentials") or {}).values():
            credential = Credential.from_dict(raw)
            credentials[credential.id] = credential
            if credential.is_issued:
                by_content.setdefault(content_hash(credential.data), credential.id)

        self._credentials = credentials
        self._by_content = by_content
        self._last_worker_id = int(state.get("lastWorkerId") or 0)

    def _dump_state(self) -> dict[str, Any]:
        return {
            "credentials": {cid: c.to_dict() for cid, c in self._credentials.items()},
            "lastWorkerId": self._last_worker_id,
        }

    async def _save(self) -> None:
        async with self._write_lock:
            await self._snapshot.write(self._dump_state())
