"""Replication channel: pushes issued credentials to the verifier.

One POST to `<VERIFICATION_BASE_URL>/sync` per call.  Delivery is
at-most-once: no retry, no backoff, no dead-letter queue.  If the
verifier is down when a credential is issued, it simply never hears
about that credential until someone runs a full resync
(POST /admin/resync on the issuer).

Nothing in here raises.  A timeout, a refused connection or a non-2xx
answer is logged, counted in `replication_attempts_total`, and reported
back as `False`.  The issuing request has already been answered by the
time a push runs, so there is no caller to surface an error to.

Two kinds of call:

  push(credential)     one-element batch, mode=merge.  The verifier
                       upserts it next to what it already holds.
  resync(credentials)  the full store, mode=replace.  The verifier
                       drops everything else.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal

import httpx

from app.core.metrics import REPLICATION_ATTEMPTS
from app.models.credential import Credential

logger = logging.getLogger(__name__)

SyncMode = Literal["replace", "merge"]


class ReplicationChannel:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        # Tests hand in an ASGITransport pointed at the verification app
        self._transport = transport

    @property
    def sync_url(self) -> str:
        return f"{self._base_url}/sync"

    async def push(self, credential: Credential) -> bool:
        return await self._send([credential], mode="merge", kind="push")

    async def resync(self, credentials: Sequence[Credential]) -> bool:
        return await self._send(credentials, mode="replace", kind="resync")

    async def _send(
        self, credentials: Sequence[Credential], *, mode: SyncMode, kind: str
    ) -> bool:
        url = self.sync_url
        log_extra = {"target_url": url, "batch_size": len(credentials)}
        if len(credentials) == 1:
            log_extra["credential_id"] = credentials[0].id

        logger.info(
            "Replicating %d credential(s) to %s  mode=%s",
            len(credentials),
            url,
            mode,
            extra=log_extra,
        )

        body = {"credentials": [c.to_dict() for c in credentials], "mode": mode}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=body)
        except httpx.TimeoutException:
            REPLICATION_ATTEMPTS.labels(kind=kind, result="error").inc()
            logger.error(
                "Replication to %s timed out after %.1fs", url, self._timeout, extra=log_extra
            )
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            REPLICATION_ATTEMPTS.labels(kind=kind, result="error").inc()
            logger.error("Network error replicating to %s: %s", url, e, extra=log_extra)
            return False
        except Exception:
            # Same outcome as a network error; the traceback is the only record
            REPLICATION_ATTEMPTS.labels(kind=kind, result="error").inc()
            logger.exception("Unexpected failure replicating to %s", url, extra=log_extra)
            return False

        if not response.is_success:
            REPLICATION_ATTEMPTS.labels(kind=kind, result="rejected").inc()
            logger.warning(
                "Replication to %s rejected  status=%d body=%s",
                url,
                response.status_code,
                response.text[:200],
                extra=log_extra,
            )
            return False

        REPLICATION_ATTEMPTS.labels(kind=kind, result="delivered").inc()
        logger.info(
            "Replication to %s delivered  status=%d", url, response.status_code, extra=log_extra
        )
        return True
