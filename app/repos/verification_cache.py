"""Verification cache: the verifier's replica of issued credentials.

The verifier never talks to the issuance store.  It only knows what the
issuer has pushed to /sync, so its view may lag behind, but it never
holds a credential the issuer did not send.

Two ways to apply a batch:

  sync_credentials   full replace.  Whatever the cache held before is
                     discarded; a short batch arriving after a long one
                     shrinks the cache.  Used for explicit resyncs.
  merge_credentials  upsert by id.  Used for the per-issuance push so
                     each new credential adds to what is already there.

Either way the resulting state is written to a snapshot before it
replaces the in-memory view, so a failed write leaves the cache serving
what it held before.  initialize() reloads the snapshot on startup.  Unlike the issuance store, a
missing or unreadable snapshot never stops the verifier from starting:
an empty cache is a valid state that the next resync repairs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from app.core.canonical import content_hash
from app.core.metrics import CREDENTIALS_HELD
from app.models.credential import Credential, VerificationResult
from app.repos.snapshot import JsonSnapshotFile, SnapshotError

logger = logging.getLogger(__name__)


class VerificationCache:
    def __init__(self, path: Path) -> None:
        self._snapshot = JsonSnapshotFile(path)
        self._credentials: dict[str, Credential] = {}
        self._by_content: dict[str, str] = {}
        self._initialized = False
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._snapshot.path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return

        try:
            state = await self._snapshot.read()
        except SnapshotError as e:
            logger.warning("Verification snapshot unreadable, starting empty: %s", e)
            state = None

        if state is None:
            logger.info("No synced credentials found for verification service")
        else:
            try:
                raw_items = (state.get("credentials") or {}).values()
                self._apply([Credential.from_dict(raw) for raw in raw_items])
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Verification snapshot malformed, starting empty: %s", e)
                self._apply(())
            else:
                logger.info(
                    "Verification cache loaded %d credentials from %s",
                    len(self._credentials),
                    self.path,
                )

        self._initialized = True
        CREDENTIALS_HELD.labels(service="verification").set(len(self._credentials))

    async def sync_credentials(self, credentials: Iterable[Credential]) -> None:
        """Replace the entire cache with `credentials`."""
        batch = list(credentials)
        async with self._write_lock:
            await self._commit(batch)

    async def merge_credentials(self, credentials: Iterable[Credential]) -> None:
        """Insert or overwrite each credential by id, keeping the rest."""
        batch = list(credentials)
        async with self._write_lock:
            merged = dict(self._credentials)
            for credential in batch:
                merged[credential.id] = credential
            await self._commit(merged.values())

    async def verify_credential_by_id(self, credential_id: str) -> VerificationResult:
        credential = self._credentials.get(credential_id)
        if credential is not None and credential.is_issued:
            return VerificationResult(is_valid=True, credential=credential)
        return VerificationResult(is_valid=False)

    async def verify_credential_by_data(self, data: dict[str, Any]) -> VerificationResult:
        credential_id = self._by_content.get(content_hash(data))
        if credential_id is None:
            return VerificationResult(is_valid=False)
        return VerificationResult(is_valid=True, credential=self._credentials[credential_id])

    async def get_all_credentials(self) -> list[Credential]:
        return list(self._credentials.values())

    async def count(self) -> int:
        return len(self._credentials)

    # ------------------------------------------------------------------

    async def _commit(self, credentials: Iterable[Credential]) -> None:
        """Persist `credentials`, then serve them.  Caller holds _write_lock."""
        by_id = {credential.id: credential for credential in credentials}
        await self._snapshot.write(
            {"credentials": {cid: c.to_dict() for cid, c in by_id.items()}}
        )
        self._apply(by_id.values())

    def _apply(self, credentials: Iterable[Credential]) -> None:
        by_id: dict[str, Credential] = {}
        for credential in credentials:
            by_id[credential.id] = credential

        # Rebuilt in insertion order so the first issued match wins;
        # duplicates are not rejected here, only at issuance.
        by_content: dict[str, str] = {}
        for credential in by_id.values():
            if credential.is_issued:
                by_content.setdefault(content_hash(credential.data), credential.id)

        self._credentials = by_id
        self._by_content = by_content
        CREDENTIALS_HELD.labels(service="verification").set(len(by_id))
