"""Issuing and verifying signed bearer tokens for registered identities."""

from __future__ import annotations

import hmac
import re
import time
from typing import Any, Callable

import jwt
from jwt.algorithms import HMACAlgorithm
from jwt.utils import base64url_encode

from ..config import Settings
from ..domain.errors import ConfigurationError, RejectionReason, TokenRejected, TokenSigningError

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iat", "exp"]
_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")


class TokenIssuer:
    """HS256 JWT issuer bound to a single immutable secret."""

    __slots__ = ("_secret", "_lifetime", "_issuer", "_clock", "_hmac", "_key")

    def __init__(
        self,
        secret: str,
        *,
        lifetime_seconds: int,
        issuer: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ConfigurationError("token signing secret must not be empty")
        if lifetime_seconds <= 0:
            raise ConfigurationError("token lifetime must be positive")
        self._secret = secret
        self._lifetime = lifetime_seconds
        self._issuer = issuer
        self._clock = clock
        self._hmac = HMACAlgorithm(HMACAlgorithm.SHA256)
        try:
            self._key = self._hmac.prepare_key(secret)
        except jwt.InvalidKeyError as exc:
            raise ConfigurationError("token signing secret is not a usable HMAC key") from exc

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            settings.jwt_secret,
            lifetime_seconds=settings.jwt_ttl_seconds,
            issuer=settings.jwt_issuer,
        )

    @property
    def lifetime_seconds(self) -> int:
        return self._lifetime

    def __repr__(self) -> str:
        return f"TokenIssuer(issuer={self._issuer!r}, lifetime_seconds={self._lifetime})"

    def issue(self, subject_id: str) -> str:
        """Create a signed JWT asserting ``subject_id``.

        Parameters
        ----------
        subject_id:
            Identity identifier to embed in the ``sub`` claim.

        Returns
        -------
        str
            The encoded token, valid for ``lifetime_seconds`` from now.

        Raises
        ------
        TokenSigningError
            When the claims cannot be encoded or signed.
        """
        now = int(self._clock())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": subject_id,
            "iat": now,
            "exp": now + self._lifetime,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise TokenSigningError("could not sign token") from exc

    def verify(self, token: str) -> str:
        """Check the signature and expiry of ``token`` and return its subject.

        Raises
        ------
        TokenRejected
            With ``invalid_signature``, ``expired`` or ``malformed`` as the reason.
            The signature is checked before anything inside the token is parsed,
            so any altered character of a well-formed token reads as
            ``invalid_signature``.
        """
        self._check_signature(token)
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                leeway=0,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenRejected(RejectionReason.invalid_signature) from exc
        except jwt.ExpiredSignatureError as exc:
            raise TokenRejected(RejectionReason.expired) from exc
        except jwt.PyJWTError as exc:
            raise TokenRejected(RejectionReason.malformed) from exc

        subject = claims["sub"]
        if not isinstance(subject, str) or not subject:
            raise TokenRejected(RejectionReason.malformed)
        return subject

    def _check_signature(self, token: str) -> None:
        """Reject tokens that are not three base64url segments or whose signature differs."""
        segments = token.split(".") if isinstance(token, str) else []
        if len(segments) != 3 or not all(_SEGMENT.fullmatch(segment) for segment in segments):
            raise TokenRejected(RejectionReason.malformed)
        header, payload, signature = segments
        expected = self._hmac.sign(f"{header}.{payload}".encode("ascii"), self._key)
        # compare the encoded form so padding bits in the last character count too
        if not hmac.compare_digest(base64url_encode(expected).decode("ascii"), signature):
            raise TokenRejected(RejectionReason.invalid_signature)
