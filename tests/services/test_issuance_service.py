from __future__ import annotations

import asyncio

import pytest

from app.repos.credential_store import CredentialStore
from app.repos.snapshot import SnapshotError
from app.services.issuance_service import (
    CredentialValidationError,
    DuplicateCredentialError,
    IssuanceService,
)


def test_issue_assigns_sequential_workers(store: CredentialStore) -> None:
    service = IssuanceService(store)
    first = asyncio.run(service.issue({"userId": "u1"}))
    second = asyncio.run(service.issue({"userId": "u2"}))
    assert first.issued_by == "worker-1"
    assert second.issued_by == "worker-2"


def test_missing_data_is_rejected(store: CredentialStore) -> None:
    service = IssuanceService(store)
    with pytest.raises(CredentialValidationError, match="credential data is required"):
        asyncio.run(service.issue(None))


def test_non_mapping_data_is_rejected(store: CredentialStore) -> None:
    service = IssuanceService(store)
    with pytest.raises(CredentialValidationError, match="must be an object"):
        asyncio.run(service.issue(["userId", "u1"]))  # type: ignore[arg-type]


def test_empty_mapping_is_issuable(store: CredentialStore) -> None:
    credential = asyncio.run(IssuanceService(store).issue({}))
    assert credential.data == {}


def test_duplicate_is_rejected_and_does_not_consume_worker(store: CredentialStore) -> None:
    service = IssuanceService(store)
    original = asyncio.run(service.issue({"userId": "u1", "role": "admin"}))

    with pytest.raises(DuplicateCredentialError) as excinfo:
        asyncio.run(service.issue({"role": "admin", "userId": "u1"}))
    assert excinfo.value.existing_id == original.id
    assert str(excinfo.value) == "Credential with identical data has already been issued."

    nxt = asyncio.run(service.issue({"userId": "u2"}))
    assert nxt.issued_by == "worker-2"


def test_no_two_issued_credentials_share_content(store: CredentialStore) -> None:
    service = IssuanceService(store)
    payloads = [{"userId": f"u{i % 3}"} for i in range(9)]
    for payload in payloads:
        try:
            asyncio.run(service.issue(payload))
        except DuplicateCredentialError:
            pass

    issued = asyncio.run(store.get_all_credentials())
    assert sorted(c.data["userId"] for c in issued) == ["u0", "u1", "u2"]


def test_concurrent_identical_requests_issue_once(store: CredentialStore) -> None:
    service = IssuanceService(store)

    async def race() -> list[object]:
        return await asyncio.gather(
            *(service.issue({"userId": "same"}) for _ in range(5)),
            return_exceptions=True,
        )

    results = asyncio.run(race())
    issued = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, DuplicateCredentialError)]
    assert len(issued) == 1
    assert len(rejected) == 4
    assert asyncio.run(store.count()) == 1
    assert store.last_worker_id == 1


def test_concurrent_distinct_requests_get_distinct_workers(store: CredentialStore) -> None:
    service = IssuanceService(store)

    async def burst():
        return await asyncio.gather(*(service.issue({"userId": f"u{i}"}) for i in range(10)))

    credentials = asyncio.run(burst())
    assert sorted(int(c.issued_by.split("-")[1]) for c in credentials) == list(range(1, 11))
    assert len({c.id for c in credentials}) == 10


def test_store_failure_propagates(
    store: CredentialStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_write(_state: dict) -> None:
        raise SnapshotError("read-only filesystem")

    monkeypatch.setattr(store._snapshot, "write", broken_write)
    with pytest.raises(SnapshotError):
        asyncio.run(IssuanceService(store).issue({"userId": "u1"}))
    assert asyncio.run(store.count()) == 0


def test_clear_resets_store(store: CredentialStore) -> None:
    service = IssuanceService(store)
    asyncio.run(service.issue({"userId": "u1"}))
    asyncio.run(service.clear())
    assert asyncio.run(service.list_all()) == []
    assert asyncio.run(service.issue({"userId": "u1"})).issued_by == "worker-1"
