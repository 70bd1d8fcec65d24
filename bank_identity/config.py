from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os
from typing import Mapping

from .domain.errors import ConfigurationError


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigurationError(f"{name} must be set")
    return value


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components.

    Built once at startup; the secret and connection string are excluded from
    the repr so the object can be logged safely.
    """

    database_url: str = field(repr=False)
    jwt_secret: str = field(repr=False)
    app_name: str = "bank-identity"
    version: str = "0.1.0"
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    jwt_issuer: str = "bank-identity"
    jwt_ttl_seconds: int = 86400
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_timeout_seconds: int = 5
    rate_limit_requests: int = 20
    rate_limit_window_seconds: int = 60
    rate_limit_backend: str = "memory"
    redis_url: str = field(default="", repr=False)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL must be set")
        if not self.jwt_secret:
            raise ConfigurationError("JWT_SECRET must be set")
        if self.jwt_ttl_seconds <= 0:
            raise ConfigurationError("JWT_TTL_SECONDS must be positive")
        if self.rate_limit_backend not in ("memory", "redis"):
            raise ConfigurationError("RATE_LIMIT_BACKEND must be 'memory' or 'redis'")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Read settings from environment variables, failing on missing required values."""
        env = os.environ if env is None else env
        return cls(
            database_url=_require(env, "DATABASE_URL"),
            jwt_secret=_require(env, "JWT_SECRET"),
            http_host=env.get("HTTP_HOST", "0.0.0.0"),
            http_port=_int(env, "HTTP_PORT", 8000),
            jwt_issuer=env.get("JWT_ISSUER", "bank-identity"),
            jwt_ttl_seconds=_int(env, "JWT_TTL_SECONDS", 86400),
            db_pool_min_size=_int(env, "DB_POOL_MIN_SIZE", 1),
            db_pool_max_size=_int(env, "DB_POOL_MAX_SIZE", 10),
            db_timeout_seconds=_int(env, "DB_TIMEOUT_SECONDS", 5),
            rate_limit_requests=_int(env, "RATE_LIMIT_REQUESTS", 20),
            rate_limit_window_seconds=_int(env, "RATE_LIMIT_WINDOW_SECONDS", 60),
            rate_limit_backend=env.get("RATE_LIMIT_BACKEND", "memory").lower(),
            redis_url=env.get("REDIS_URL", ""),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings.from_env()
