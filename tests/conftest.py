from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.main import issuance_app, verification_app
from app.models.credential import Credential
from app.repos.credential_store import CredentialStore
from app.repos.verification_cache import VerificationCache
from app.services.issuance_service import IssuanceService
from app.services.replication import ReplicationChannel
from app.services.verification_service import VerificationService

# Never resolves outside the test process; requests go through ASGITransport
VERIFIER_URL = "http://verification.test"


@pytest.fixture
def store(tmp_path_factory: pytest.TempPathFactory) -> CredentialStore:
    """Initialized issuance store backed by a per-test snapshot file."""
    s = CredentialStore(tmp_path_factory.mktemp("issuance") / "credentials.json")
    asyncio.run(s.initialize())
    return s


@pytest.fixture
def cache(tmp_path_factory: pytest.TempPathFactory) -> VerificationCache:
    """Initialized (empty) verification cache backed by a per-test snapshot file."""
    c = VerificationCache(tmp_path_factory.mktemp("verification") / "credentials.json")
    asyncio.run(c.initialize())
    return c


@pytest.fixture
def channel() -> ReplicationChannel:
    """Replication channel wired in-process to the verification app."""
    return ReplicationChannel(
        VERIFIER_URL,
        timeout=2.0,
        transport=httpx.ASGITransport(app=verification_app),
    )


@pytest.fixture(autouse=True)
def isolated_services(
    monkeypatch: pytest.MonkeyPatch,
    store: CredentialStore,
    cache: VerificationCache,
    channel: ReplicationChannel,
) -> None:
    """Swap every process singleton for a fresh per-test instance."""
    monkeypatch.setattr(dependencies, "credential_store", store)
    monkeypatch.setattr(dependencies, "issuance_service", IssuanceService(store))
    monkeypatch.setattr(dependencies, "replication_channel", channel)
    monkeypatch.setattr(dependencies, "verification_cache", cache)
    monkeypatch.setattr(dependencies, "verification_service", VerificationService(cache))


@pytest.fixture
def issuance_client() -> TestClient:
    return TestClient(issuance_app)


@pytest.fixture
def verification_client() -> TestClient:
    return TestClient(verification_app)


def make_credential(
    credential_id: str = "cred_1_abc",
    *,
    data: dict | None = None,
    status: str = "issued",
    issued_by: str = "worker-1",
    issued_at: str = "2025-01-31T09:15:02.123Z",
) -> Credential:
    return Credential(
        id=credential_id,
        data=data if data is not None else {"userId": credential_id, "role": "viewer"},
        issued_at=issued_at,
        issued_by=issued_by,
        status=status,  # type: ignore[arg-type]
    )
