"""Verification endpoints.

- POST /verify       verdict for an id or an exact data payload
- POST /sync         receiving end of the replication channel
- GET  /credentials  everything the cache currently holds

A negative verdict is still a successful call: /verify answers 200 with
isValid=false.  Only a request naming neither id nor data is a 400, and
only an infrastructure failure is a 500.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from app.api.dependencies import get_verification_service
from app.api.errors import ApiError
from app.api.schemas import CredentialListOut, CredentialOut, CredentialSummaryOut, MessageOut
from app.core.canonical import check_json_data
from app.repos.snapshot import SnapshotError
from app.services.verification_service import (
    VerificationRequestError,
    VerificationService,
    verdict_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["verification"])


class VerifyIn(BaseModel):
    id: str | None = None
    data: dict[str, Any] | None = None

    @field_validator("data")
    @classmethod
    def _round_trippable(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        if value is not None:
            check_json_data(value)
        return value


class VerifyOut(BaseModel):
    success: bool
    message: str
    isValid: bool
    credential: CredentialSummaryOut | None = None


class SyncIn(BaseModel):
    credentials: list[CredentialOut]
    mode: Literal["replace", "merge"] = "replace"


@router.post("/verify", response_model=VerifyOut, response_model_exclude_none=True)
async def verify_credential(
    body: VerifyIn,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> VerifyOut:
    try:
        result = await service.verify(credential_id=body.id, data=body.data)
    except VerificationRequestError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e), isValid=False) from None

    if result.is_valid and result.credential is not None:
        return VerifyOut(
            success=True,
            message=verdict_message(result),
            isValid=True,
            credential=CredentialSummaryOut.from_credential(result.credential),
        )
    return VerifyOut(success=True, message=verdict_message(result), isValid=False)


@router.post("/sync", response_model=MessageOut)
async def sync_credentials(
    body: SyncIn,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> MessageOut:
    credentials = [c.to_credential() for c in body.credentials]
    try:
        synced = await service.sync(credentials, mode=body.mode)
    except SnapshotError:
        logger.exception("Error syncing credentials")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error while syncing credentials",
        ) from None
    return MessageOut(success=True, message=f"Synced {synced} credentials")


@router.get("/credentials", response_model=CredentialListOut)
async def list_credentials(
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> CredentialListOut:
    credentials = await service.list_all()
    return CredentialListOut(
        success=True,
        credentials=[CredentialOut.from_credential(c) for c in credentials],
        count=len(credentials),
    )
