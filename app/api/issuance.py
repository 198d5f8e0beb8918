"""Issuance endpoints.

- POST /issue            issue a credential, replicate in the background
- GET  /credential/{id}  fetch one issued credential
- GET  /credentials      list everything the store holds

POST /issue answers 201 as soon as the credential is durable.  The push
to the verifier is attached as a background task, which Starlette runs
after the response has been sent, so a slow or dead verifier never
delays or fails issuance.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, field_validator

from app.api.dependencies import get_issuance_service, get_replication_channel
from app.api.errors import ApiError
from app.api.schemas import CredentialListOut, CredentialOut
from app.core.canonical import check_json_data
from app.repos.snapshot import SnapshotError
from app.services.issuance_service import (
    CredentialValidationError,
    DuplicateCredentialError,
    IssuanceService,
)
from app.services.replication import ReplicationChannel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["issuance"])


class IssueIn(BaseModel):
    data: dict[str, Any] | None = None

    @field_validator("data")
    @classmethod
    def _round_trippable(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        if value is not None:
            check_json_data(value)
        return value


class IssueOut(BaseModel):
    success: bool
    message: str
    credential: CredentialOut
    workerId: str


class CredentialFetchOut(BaseModel):
    success: bool
    credential: CredentialOut


@router.post("/issue", response_model=IssueOut, status_code=status.HTTP_201_CREATED)
async def issue_credential(
    body: IssueIn,
    background_tasks: BackgroundTasks,
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
    channel: Annotated[ReplicationChannel, Depends(get_replication_channel)],
) -> IssueOut:
    try:
        credential = await service.issue(body.data)
    except CredentialValidationError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(e)) from None
    except DuplicateCredentialError as e:
        raise ApiError(status.HTTP_409_CONFLICT, str(e)) from None
    except SnapshotError:
        logger.exception("Error issuing credential")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error occurred while issuing credential",
        ) from None

    background_tasks.add_task(channel.push, credential)

    return IssueOut(
        success=True,
        message=f"Credential issued by {credential.issued_by}",
        credential=CredentialOut.from_credential(credential),
        workerId=credential.issued_by,
    )


@router.get("/credential/{credential_id}", response_model=CredentialFetchOut)
async def get_credential(
    credential_id: str,
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> CredentialFetchOut:
    credential = await service.get(credential_id)
    if credential is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Credential not found")
    return CredentialFetchOut(success=True, credential=CredentialOut.from_credential(credential))


@router.get("/credentials", response_model=CredentialListOut)
async def list_credentials(
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> CredentialListOut:
    credentials = await service.list_all()
    return CredentialListOut(
        success=True,
        credentials=[CredentialOut.from_credential(c) for c in credentials],
        count=len(credentials),
    )
