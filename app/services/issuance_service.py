"""Issuance orchestration: validate, reject duplicates, assign, persist.

Per request:

    received -> validated -> duplicate-checked -> id-assigned -> persisted

Replication to the verifier is scheduled by the HTTP layer once this
returns; nothing here waits on the verifier.

The duplicate check, worker-id assignment and snapshot write run under
one lock.  Without it two requests carrying identical data could both
pass the check before either is stored, and both would be issued.  The
lock also means a rejected duplicate never consumes a worker number.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from app.core.metrics import CREDENTIALS_ISSUED, DUPLICATE_REJECTIONS
from app.models.credential import Credential
from app.repos.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class CredentialValidationError(ValueError):
    pass


class DuplicateCredentialError(Exception):
    def __init__(self, existing_id: str) -> None:
        super().__init__("Credential with identical data has already been issued.")
        self.existing_id = existing_id


class IssuanceService:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def issue(self, data: Mapping[str, Any] | None) -> Credential:
        """Issue a credential for `data`.

        Raises CredentialValidationError when data is missing or not a
        mapping, DuplicateCredentialError when identical data was already
        issued.  Store failures (SnapshotError) propagate untouched.
        """
        if data is None:
            raise CredentialValidationError("Invalid request: credential data is required")
        if not isinstance(data, Mapping):
            raise CredentialValidationError("Invalid request: credential data must be an object")

        payload = dict(data)

        async with self._lock:
            existing = await self._store.find_by_data(payload)
            if existing is not None:
                DUPLICATE_REJECTIONS.inc()
                logger.warning(
                    "Rejected duplicate issuance  existing=%s",
                    existing.id,
                    extra={"credential_id": existing.id},
                )
                raise DuplicateCredentialError(existing.id)

            worker_id = self._store.get_next_worker_id()
            credential = await self._store.issue_credential(payload, worker_id)

        CREDENTIALS_ISSUED.inc()
        logger.info(
            "Issued credential=%s by %s",
            credential.id,
            worker_id,
            extra={"credential_id": credential.id, "worker_id": worker_id},
        )
        return credential

    async def get(self, credential_id: str) -> Credential | None:
        return await self._store.get_credential(credential_id)

    async def list_all(self) -> list[Credential]:
        return await self._store.get_all_credentials()

    async def clear(self) -> None:
        async with self._lock:
            await self._store.clear_all()
