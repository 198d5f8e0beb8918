"""Process-wide singletons and the FastAPI dependencies that hand them out.

Each service owns exactly one backing instance per process: the
issuance store (and the service wrapping it, whose lock must be shared
by every request), the replication channel, and the verification cache.

Routes and lifespans never touch the module attributes directly; they
go through the getters, which read the attribute at call time.  Tests
swap an attribute with monkeypatch and every consumer follows.
"""

from __future__ import annotations

from app.core.config import SETTINGS
from app.repos.credential_store import CredentialStore
from app.repos.verification_cache import VerificationCache
from app.services.issuance_service import IssuanceService
from app.services.replication import ReplicationChannel
from app.services.verification_service import VerificationService

# --- Issuance side ---------------------------------------------------------

credential_store = CredentialStore(SETTINGS.issuance_data_path)
issuance_service = IssuanceService(credential_store)
replication_channel = ReplicationChannel(
    SETTINGS.verification_base_url,
    timeout=SETTINGS.replication_timeout_seconds,
)

# --- Verification side -----------------------------------------------------

verification_cache = VerificationCache(SETTINGS.verification_data_path)
verification_service = VerificationService(verification_cache)


def get_credential_store() -> CredentialStore:
    return credential_store


def get_issuance_service() -> IssuanceService:
    return issuance_service


def get_replication_channel() -> ReplicationChannel:
    return replication_channel


def get_verification_cache() -> VerificationCache:
    return verification_cache


def get_verification_service() -> VerificationService:
    return verification_service
