from __future__ import annotations

import re
from datetime import datetime

import pytest

from app.models.credential import Credential, new_credential_id, utc_timestamp


def test_new_credential_is_issued_with_fresh_id() -> None:
    a = Credential.new(data={"userId": "u1"}, issued_by="worker-1")
    b = Credential.new(data={"userId": "u1"}, issued_by="worker-1")
    assert a.status == "issued"
    assert a.is_issued
    assert a.issued_by == "worker-1"
    assert a.id != b.id


def test_credential_id_format() -> None:
    assert re.fullmatch(r"cred_\d{13}_[0-9a-f]{12}", new_credential_id())


def test_utc_timestamp_is_iso_with_millis_and_z() -> None:
    stamp = utc_timestamp()
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", stamp)
    assert datetime.fromisoformat(stamp).utcoffset().total_seconds() == 0


def test_credential_is_immutable() -> None:
    credential = Credential.new(data={"userId": "u1"}, issued_by="worker-1")
    with pytest.raises(AttributeError):
        credential.status = "failed"  # type: ignore[misc]


def test_wire_form_uses_camel_case_keys() -> None:
    credential = Credential(
        id="cred_1_abc",
        data={"role": "admin"},
        issued_at="2025-01-31T09:15:02.123Z",
        issued_by="worker-7",
        status="pending",
    )
    raw = credential.to_dict()
    assert raw == {
        "id": "cred_1_abc",
        "data": {"role": "admin"},
        "issuedAt": "2025-01-31T09:15:02.123Z",
        "issuedBy": "worker-7",
        "status": "pending",
    }
    assert Credential.from_dict(raw) == credential


def test_from_dict_defaults_missing_status_to_issued() -> None:
    credential = Credential.from_dict(
        {"id": "c", "data": {}, "issuedAt": "2025-01-01T00:00:00.000Z", "issuedBy": "worker-1"}
    )
    assert credential.status == "issued"


def test_from_dict_rejects_unknown_status() -> None:
    with pytest.raises(ValueError, match="unknown credential status"):
        Credential.from_dict(
            {
                "id": "c",
                "data": {},
                "issuedAt": "2025-01-01T00:00:00.000Z",
                "issuedBy": "worker-1",
                "status": "revoked",
            }
        )
