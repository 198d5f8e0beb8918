from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

CredentialStatus = Literal["issued", "pending", "failed"]

CREDENTIAL_STATUSES: tuple[str, ...] = ("issued", "pending", "failed")


def new_credential_id() -> str:
    # cred_<epoch millis>_<random suffix>; the store re-rolls on collision
    return f"cred_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2025-01-31T09:15:02.123Z"""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Credential:
    """An issued record: caller-supplied data plus issuance metadata.

    Never mutated after creation.  The wire and snapshot form uses the
    camelCase keys the HTTP contract exposes (issuedAt, issuedBy).
    """

    id: str
    data: dict[str, Any]
    issued_at: str
    issued_by: str  # worker-<n>
    status: CredentialStatus = "issued"

    @staticmethod
    def new(*, data: dict[str, Any], issued_by: str, id: str | None = None) -> Credential:
        return Credential(
            id=id or new_credential_id(),
            data=data,
            issued_at=utc_timestamp(),
            issued_by=issued_by,
            status="issued",
        )

    @property
    def is_issued(self) -> bool:
        return self.status == "issued"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "data": self.data,
            "issuedAt": self.issued_at,
            "issuedBy": self.issued_by,
            "status": self.status,
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> Credential:
        status = raw.get("status", "issued")
        if status not in CREDENTIAL_STATUSES:
            raise ValueError(f"unknown credential status {status!r}")
        return Credential(
            id=raw["id"],
            data=dict(raw["data"]),
            issued_at=raw["issuedAt"],
            issued_by=raw["issuedBy"],
            status=status,
        )


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of a cache lookup.  `credential` is set only when valid."""

    is_valid: bool
    credential: Credential | None = field(default=None)
