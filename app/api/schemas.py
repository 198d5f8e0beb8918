"""Request / response bodies shared by both services.

Field names follow the JSON contract the presentation layer consumes
(camelCase: issuedAt, workerId, isValid).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, field_validator

from app.core.canonical import check_json_data
from app.models.credential import Credential


class CredentialOut(BaseModel):
    id: str
    data: dict[str, Any]
    issuedAt: str
    issuedBy: str
    status: Literal["issued", "pending", "failed"]

    @field_validator("data")
    @classmethod
    def _round_trippable(cls, value: dict[str, Any]) -> dict[str, Any]:
        check_json_data(value)
        return value

    @staticmethod
    def from_credential(credential: Credential) -> CredentialOut:
        return CredentialOut(
            id=credential.id,
            data=credential.data,
            issuedAt=credential.issued_at,
            issuedBy=credential.issued_by,
            status=credential.status,
        )

    def to_credential(self) -> Credential:
        return Credential(
            id=self.id,
            data=self.data,
            issued_at=self.issuedAt,
            issued_by=self.issuedBy,
            status=self.status,
        )


class CredentialSummaryOut(BaseModel):
    """Verification view of a credential: metadata only, never the data."""

    id: str
    issuedAt: str
    issuedBy: str
    status: str

    @staticmethod
    def from_credential(credential: Credential) -> CredentialSummaryOut:
        return CredentialSummaryOut(
            id=credential.id,
            issuedAt=credential.issued_at,
            issuedBy=credential.issued_by,
            status=credential.status,
        )


class CredentialListOut(BaseModel):
    success: bool
    credentials: list[CredentialOut]
    count: int


class MessageOut(BaseModel):
    success: bool
    message: str
