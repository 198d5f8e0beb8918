"""Prometheus metrics middleware and domain counters.

The default registry is global and counters only go up, so every test
reads a value before acting and asserts on the delta.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_is_labelled_by_service(
    issuance_client: TestClient, verification_client: TestClient
) -> None:
    issuance = {"service": "issuance", "method": "GET", "endpoint": "/health", "status_code": "200"}
    verification = {**issuance, "service": "verification"}
    before = _sample("http_requests_total", issuance), _sample("http_requests_total", verification)

    issuance_client.get("/health")
    issuance_client.get("/health")
    verification_client.get("/health")

    assert _sample("http_requests_total", issuance) - before[0] == 2
    assert _sample("http_requests_total", verification) - before[1] == 1


def test_error_status_is_recorded(issuance_client: TestClient) -> None:
    labels = {"service": "issuance", "method": "POST", "endpoint": "/issue", "status_code": "409"}
    issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    before = _sample("http_requests_total", labels)
    issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    assert _sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(verification_client: TestClient) -> None:
    labels = {"service": "verification", "method": "POST", "endpoint": "/verify"}
    before = _sample("http_request_duration_seconds_count", labels)
    verification_client.post("/verify", json={"id": "nope"})
    assert _sample("http_request_duration_seconds_count", labels) - before == 1


def test_domain_counters(issuance_client: TestClient, verification_client: TestClient) -> None:
    issued_before = _sample("credentials_issued_total")
    dupes_before = _sample("credential_duplicate_rejections_total")
    valid_labels = {"method": "id", "verdict": "valid"}
    valid_before = _sample("credential_verifications_total", valid_labels)

    credential = issuance_client.post("/issue", json={"data": {"userId": "u1"}}).json()["credential"]
    issuance_client.post("/issue", json={"data": {"userId": "u1"}})
    verification_client.post("/verify", json={"id": credential["id"]})

    assert _sample("credentials_issued_total") - issued_before == 1
    assert _sample("credential_duplicate_rejections_total") - dupes_before == 1
    assert _sample("credential_verifications_total", valid_labels) - valid_before == 1


def test_metrics_endpoint_returns_prometheus_format(issuance_client: TestClient) -> None:
    issuance_client.get("/health")
    resp = issuance_client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "replication_attempts_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(verification_client: TestClient) -> None:
    labels = {"service": "verification", "method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    verification_client.get("/metrics")
    verification_client.get("/metrics")
    assert _sample("http_requests_total", labels) == before
