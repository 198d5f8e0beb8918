"""Administrative endpoints on the issuance service.

Neither is part of the normal issue/verify flow:

- POST   /admin/resync       push the whole store to the verifier with
                             replace semantics.  This is the only way to
                             repair a verifier that missed pushes.
- DELETE /admin/credentials  wipe the store and reset the worker counter.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.api.dependencies import get_issuance_service, get_replication_channel
from app.api.errors import ApiError
from app.api.schemas import MessageOut
from app.repos.snapshot import SnapshotError
from app.services.issuance_service import IssuanceService
from app.services.replication import ReplicationChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class ResyncOut(BaseModel):
    success: bool
    message: str
    count: int


@router.post("/resync", response_model=ResyncOut)
async def resync_verifier(
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
    channel: Annotated[ReplicationChannel, Depends(get_replication_channel)],
) -> ResyncOut:
    credentials = await service.list_all()
    logger.info("Full resync requested  credentials=%d", len(credentials))

    delivered = await channel.resync(credentials)
    if not delivered:
        raise ApiError(
            status.HTTP_502_BAD_GATEWAY,
            f"Resync to {channel.sync_url} failed",
            count=len(credentials),
        )

    return ResyncOut(
        success=True,
        message=f"Resynced {len(credentials)} credentials",
        count=len(credentials),
    )


@router.delete("/credentials", response_model=MessageOut)
async def clear_credentials(
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> MessageOut:
    try:
        await service.clear()
    except SnapshotError:
        logger.exception("Error clearing credential store")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error while clearing credentials",
        ) from None
    return MessageOut(success=True, message="All credentials cleared")
