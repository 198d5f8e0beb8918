"""Prometheus metric inventory for both services.

Every metric either service records is declared here; the owning module
imports it and increments/observes at the point of action.  Both ASGI
apps can live in one process (tests, local runs), so the HTTP metrics
carry a `service` label instead of being declared twice.

Replication health is the signal worth alerting on: the issuer never
surfaces a failed push to its caller, so a climbing
`replication_attempts_total{result="error"}` is the only evidence that
the verifier is drifting behind the store.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by service, method, endpoint, and status code",
    ["service", "method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["service", "method", "endpoint"],
    # /issue pays for a full snapshot write, so the upper buckets matter
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
    ["service"],
)

# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------

CREDENTIALS_ISSUED = Counter(
    "credentials_issued_total",
    "Credentials persisted by the issuance service",
)

DUPLICATE_REJECTIONS = Counter(
    "credential_duplicate_rejections_total",
    "Issuance requests rejected because identical data was already issued",
)

REPLICATION_ATTEMPTS = Counter(
    "replication_attempts_total",
    "Pushes to the verification service by kind and result",
    ["kind", "result"],  # kind: push|resync  result: delivered|rejected|error
)

# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

VERIFICATIONS = Counter(
    "credential_verifications_total",
    "Verification requests by lookup method and verdict",
    ["method", "verdict"],  # method: id|data  verdict: valid|invalid
)

SYNC_BATCHES = Counter(
    "credential_sync_batches_total",
    "Sync batches applied to the verification cache",
    ["mode"],  # replace|merge
)

CREDENTIALS_HELD = Gauge(
    "credentials_held",
    "Credentials currently held in memory",
    ["service"],
)
