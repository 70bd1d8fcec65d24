"""HTTP route definitions for the identity service."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request, status
from prometheus_client import Counter
from pydantic import BaseModel

from ..domain.account import AccountIdentity, mask_account_number
from ..domain.contracts import RegistrationRequest
from ..domain.errors import IdentityServiceError, RateLimited, RejectionReason, TokenRejected
from ..domain.service import RegistrationService
from ..security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

REGISTRATIONS = Counter(
    "bank_identity_registrations_total",
    "Registration attempts by outcome.",
    ["outcome"],
)
TOKEN_VERIFICATIONS = Counter(
    "bank_identity_token_verifications_total",
    "Token verification attempts by outcome.",
    ["outcome"],
)


class IdentityResponse(BaseModel):
    """Serialised representation of an `AccountIdentity`."""

    id: str
    account_number: str
    routing_code: str
    bank_name: str
    branch: str
    address: str | None
    city: str | None
    state_code: str | None
    routing_no: str | None
    created_at: datetime

    @classmethod
    def from_domain(cls, identity: AccountIdentity) -> "IdentityResponse":
        """Build a response model from the domain entity."""
        return cls(
            id=identity.id,
            account_number=identity.account_number,
            routing_code=identity.routing_code,
            bank_name=identity.bank_name,
            branch=identity.branch,
            address=identity.address,
            city=identity.city,
            state_code=identity.state_code,
            routing_no=identity.routing_no,
            created_at=identity.created_at,
        )


class MaskedIdentityResponse(BaseModel):
    """Identity details returned to the token holder, account number masked."""

    id: str
    masked_account_number: str
    routing_code: str
    bank_name: str
    branch: str
    address: str | None
    city: str | None
    state_code: str | None
    routing_no: str | None

    @classmethod
    def from_domain(cls, identity: AccountIdentity) -> "MaskedIdentityResponse":
        return cls(
            id=identity.id,
            masked_account_number=mask_account_number(identity.account_number),
            routing_code=identity.routing_code,
            bank_name=identity.bank_name,
            branch=identity.branch,
            address=identity.address,
            city=identity.city,
            state_code=identity.state_code,
            routing_no=identity.routing_no,
        )


class RegisterRequest(BaseModel):
    """Registration payload; required-ness is checked by the validation engine."""

    account_number: str | None = None
    routing_code: str | None = None
    bank_name: str | None = None
    branch: str | None = None
    address: str | None = None
    city: str | None = None
    state_code: str | None = None
    routing_no: str | None = None

    def to_domain(self) -> RegistrationRequest:
        """Convert the payload into the raw domain request."""
        return RegistrationRequest(**self.model_dump())


class RegisterResponse(BaseModel):
    """Response returned after a successful registration."""

    identity: IdentityResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    subject: str


def get_service(request: Request) -> RegistrationService:
    """Resolve the `RegistrationService` stored on the FastAPI application state."""
    service: RegistrationService = request.app.state.registration_service
    return service


def get_rate_limiter(request: Request) -> RateLimiter:
    """Resolve the registration rate limiter stored on the application state."""
    limiter: RateLimiter = request.app.state.rate_limiter
    return limiter


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise TokenRejected(RejectionReason.malformed)
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise TokenRejected(RejectionReason.malformed)
    return token.strip()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    payload: RegisterRequest,
    service: RegistrationService = Depends(get_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RegisterResponse:
    """Register a bank-account holder and issue a bearer token for it."""
    client_host = request.client.host if request.client else "unknown"
    if not limiter.allow(f"register:{client_host}"):
        REGISTRATIONS.labels(outcome=RateLimited.kind).inc()
        raise RateLimited()
    try:
        registration = service.register(payload.to_domain())
    except IdentityServiceError as exc:
        REGISTRATIONS.labels(outcome=exc.kind).inc()
        raise
    REGISTRATIONS.labels(outcome="created").inc()
    return RegisterResponse(
        identity=IdentityResponse.from_domain(registration.identity),
        access_token=registration.token,
        expires_in=registration.expires_in,
    )


@router.post("/tokens/verify", response_model=VerifyTokenResponse)
def verify_token(
    payload: VerifyTokenRequest,
    service: RegistrationService = Depends(get_service),
) -> VerifyTokenResponse:
    """Check a token's signature and expiry and return its subject."""
    try:
        subject = service.verify_token(payload.token)
    except TokenRejected as exc:
        TOKEN_VERIFICATIONS.labels(outcome=exc.reason.value).inc()
        raise
    TOKEN_VERIFICATIONS.labels(outcome="valid").inc()
    return VerifyTokenResponse(subject=subject)


@router.get("/auth/info", response_model=MaskedIdentityResponse)
def auth_info(
    token: str = Depends(bearer_token),
    service: RegistrationService = Depends(get_service),
) -> MaskedIdentityResponse:
    """Return the caller's identity with the account number masked."""
    identity = service.resolve_identity(token)
    logger.info("returning info for identity %s", identity.id)
    return MaskedIdentityResponse.from_domain(identity)
