from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.repos.credential_store import CredentialStore
from app.repos.snapshot import SnapshotError
from app.repos.verification_cache import VerificationCache
from app.services.replication import ReplicationChannel
from tests.conftest import make_credential


def test_resync_replaces_verifier_state(
    issuance_client: TestClient, cache: VerificationCache
) -> None:
    # stale entry the issuer never held
    asyncio.run(cache.sync_credentials([make_credential("cred_0_stale")]))
    issued = issuance_client.post("/issue", json={"data": {"userId": "u1"}}).json()["credential"]

    resp = issuance_client.post("/admin/resync")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Resynced 1 credentials", "count": 1}
    assert [c.id for c in asyncio.run(cache.get_all_credentials())] == [issued["id"]]


def test_resync_of_empty_store_empties_verifier(
    issuance_client: TestClient, cache: VerificationCache
) -> None:
    asyncio.run(cache.sync_credentials([make_credential("cred_0_stale")]))
    resp = issuance_client.post("/admin/resync")
    assert resp.json()["count"] == 0
    assert asyncio.run(cache.count()) == 0


def test_resync_to_unreachable_verifier_is_502(
    issuance_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(
        dependencies,
        "replication_channel",
        ReplicationChannel("http://verifier:3002", transport=httpx.MockTransport(refuse)),
    )
    issuance_client.post("/issue", json={"data": {"userId": "u1"}})

    resp = issuance_client.post("/admin/resync")
    assert resp.status_code == 502
    assert resp.json() == {
        "success": False,
        "message": "Resync to http://verifier:3002/sync failed",
        "count": 1,
    }


def test_clear_credentials(issuance_client: TestClient) -> None:
    issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    resp = issuance_client.delete("/admin/credentials")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "All credentials cleared"}
    assert issuance_client.get("/credentials").json()["count"] == 0

    # counter starts over and the same data is issuable again
    again = issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    assert again.status_code == 201
    assert again.json()["workerId"] == "worker-1"


def test_clear_storage_failure_is_500(
    issuance_client: TestClient, store: CredentialStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_write(_state: dict) -> None:
        raise SnapshotError("read-only filesystem")

    issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    monkeypatch.setattr(store._snapshot, "write", broken_write)
    resp = issuance_client.delete("/admin/credentials")
    assert resp.status_code == 500
    assert resp.json()["success"] is False

    assert issuance_client.get("/credentials").json()["count"] == 1
    assert store.last_worker_id == 1
    # the content index survived too
    assert issuance_client.post("/issue", json={"data": {"userId": "u1"}}).status_code == 409
