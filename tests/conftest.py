from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bank_identity.api import routes
from bank_identity.api.errors import register_exception_handlers
from bank_identity.domain.account import AccountIdentity
from bank_identity.domain.contracts import IdentityDraft
from bank_identity.domain.errors import DuplicateAccountNumber, StoreUnavailable
from bank_identity.domain.service import RegistrationService
from bank_identity.security.rate_limit import InMemoryRateLimiter
from bank_identity.security.tokens import TokenIssuer

TEST_SECRET = "test-signing-secret-with-enough-length-for-hs256"


class FakeRepository:
    """In-memory repository mimicking the Postgres uniqueness constraint."""

    def __init__(self) -> None:
        self._identities: dict[str, AccountIdentity] = {}
        self._by_account_number: dict[str, str] = {}
        self._lock = threading.Lock()
        self.unavailable = False
        self.create_calls = 0

    def create(self, draft: IdentityDraft) -> AccountIdentity:
        self.create_calls += 1
        if self.unavailable:
            raise StoreUnavailable()
        identity = AccountIdentity(
            id=str(uuid.uuid4()),
            account_number=draft.account_number,
            routing_code=draft.routing_code,
            bank_name=draft.bank_name,
            branch=draft.branch,
            address=draft.address,
            city=draft.city,
            state_code=draft.state_code,
            routing_no=draft.routing_no,
            created_at=datetime.now(timezone.utc),
        )
        # the lock plays the role of the table's unique index
        with self._lock:
            if draft.account_number in self._by_account_number:
                raise DuplicateAccountNumber()
            self._by_account_number[draft.account_number] = identity.id
            self._identities[identity.id] = identity
        return identity

    def get(self, identity_id: str) -> AccountIdentity | None:
        if self.unavailable:
            raise StoreUnavailable()
        return self._identities.get(identity_id)

    def ping(self) -> bool:
        return not self.unavailable

    def __len__(self) -> int:
        return len(self._identities)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, lifetime_seconds=3600, issuer="bank-identity-test")


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository, issuer: TokenIssuer) -> RegistrationService:
    return RegistrationService(repository, issuer)


@pytest.fixture
def valid_payload() -> dict[str, str]:
    return {
        "account_number": "ACC123",
        "routing_code": "ABCD0123456",
        "bank_name": "Test Bank",
        "branch": "Main",
    }


@pytest.fixture
def api_client(service: RegistrationService, repository: FakeRepository):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(routes.router)
    app.state.registration_service = service
    app.state.repository = repository
    app.state.rate_limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)

    with TestClient(app) as client:
        yield client
