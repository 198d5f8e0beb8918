from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Literal

from app.core.metrics import SYNC_BATCHES, VERIFICATIONS
from app.models.credential import Credential, VerificationResult
from app.repos.verification_cache import VerificationCache

logger = logging.getLogger(__name__)

INVALID_MESSAGE = "Credential is not valid or does not exist"


class VerificationRequestError(ValueError):
    pass


def localize_timestamp(issued_at: str) -> str:
    """Render an ISO timestamp as M/D/YYYY, h:mm:ss AM|PM in server local time."""
    try:
        moment = datetime.fromisoformat(issued_at).astimezone()
    except ValueError:
        return issued_at
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{moment.month}/{moment.day}/{moment.year}, {hour}:{moment:%M:%S} {meridiem}"


def verdict_message(result: VerificationResult) -> str:
    if result.is_valid and result.credential is not None:
        return (
            f"Credential is valid. Issued by {result.credential.issued_by} "
            f"on {localize_timestamp(result.credential.issued_at)}"
        )
    return INVALID_MESSAGE


class VerificationService:
    def __init__(self, cache: VerificationCache) -> None:
        self._cache = cache

    @property
    def cache(self) -> VerificationCache:
        return self._cache

    async def verify(
        self,
        *,
        credential_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> VerificationResult:
        """Look up by id when one is given, otherwise by exact data match.

        A miss is a normal negative verdict, not an error.
        """
        if not credential_id and data is None:
            raise VerificationRequestError(
                "Invalid request: either credential ID or data is required"
            )

        if credential_id:
            method = "id"
            result = await self._cache.verify_credential_by_id(credential_id)
        else:
            method = "data"
            result = await self._cache.verify_credential_by_data(data or {})

        verdict = "valid" if result.is_valid else "invalid"
        VERIFICATIONS.labels(method=method, verdict=verdict).inc()
        logger.info(
            "Verification by %s  verdict=%s",
            method,
            verdict,
            extra={"credential_id": result.credential.id if result.credential else credential_id},
        )
        return result

    async def sync(
        self,
        credentials: Sequence[Credential],
        *,
        mode: Literal["replace", "merge"] = "replace",
    ) -> int:
        if mode == "merge":
            await self._cache.merge_credentials(credentials)
        else:
            await self._cache.sync_credentials(credentials)

        SYNC_BATCHES.labels(mode=mode).inc()
        logger.info(
            "Applied sync batch  mode=%s size=%d held=%d",
            mode,
            len(credentials),
            await self._cache.count(),
            extra={"batch_size": len(credentials)},
        )
        return len(credentials)

    async def list_all(self) -> list[Credential]:
        return await self._cache.get_all_credentials()
