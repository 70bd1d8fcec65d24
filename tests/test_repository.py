"""Error translation in the Postgres repository, exercised with a stub pool."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

import psycopg
import pytest
from psycopg import errors as pg_errors
from psycopg_pool import PoolTimeout

from bank_identity.domain.contracts import IdentityDraft
from bank_identity.domain.errors import DuplicateAccountNumber, StoreUnavailable
from bank_identity.repository import IdentityRepository


class StubCursor:
    def __init__(self, conn: "StubConnection") -> None:
        self._conn = conn

    def __enter__(self) -> "StubCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, query: str, params=None) -> None:
        self._conn.statements.append((" ".join(query.split()), params))
        if self._conn.error is not None:
            raise self._conn.error

    def fetchone(self):
        return self._conn.row


class StubConnection:
    def __init__(self, error: Exception | None = None, row: tuple | None = None) -> None:
        self.error = error
        self.row = row
        self.statements: list[tuple[str, tuple | None]] = []
        self.committed = False

    def cursor(self, row_factory=None) -> StubCursor:
        return StubCursor(self)

    def execute(self, query: str, params=None) -> None:
        StubCursor(self).execute(query, params)

    def commit(self) -> None:
        self.committed = True


class StubPool:
    def __init__(self, conn: StubConnection | None = None, checkout_error: Exception | None = None) -> None:
        self.conn = conn or StubConnection()
        self.checkout_error = checkout_error

    @contextmanager
    def connection(self):
        if self.checkout_error is not None:
            raise self.checkout_error
        yield self.conn


def _draft() -> IdentityDraft:
    return IdentityDraft(
        account_number="ACC123",
        routing_code="ABCD0123456",
        bank_name="Test Bank",
        branch="Main",
        city="Pune",
    )


def _row(identity_id: str) -> tuple:
    return (
        uuid.UUID(identity_id),
        "ACC123",
        "ABCD0123456",
        "Test Bank",
        "Main",
        None,
        "Pune",
        None,
        None,
        datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def test_create_issues_single_insert_and_maps_row():
    identity_id = str(uuid.uuid4())
    conn = StubConnection(row=_row(identity_id))
    identity = IdentityRepository(StubPool(conn)).create(_draft())

    assert identity.id == identity_id
    assert identity.city == "Pune"
    assert conn.committed
    assert len(conn.statements) == 1
    statement, params = conn.statements[0]
    assert statement.startswith("INSERT INTO account_identities")
    uuid.UUID(params[0])
    assert params[1] == "ACC123"
    assert params[-1].tzinfo is not None


def test_unique_violation_becomes_duplicate_account_number():
    conn = StubConnection(error=pg_errors.UniqueViolation("duplicate key value"))
    with pytest.raises(DuplicateAccountNumber):
        IdentityRepository(StubPool(conn)).create(_draft())
    assert not conn.committed


@pytest.mark.parametrize(
    "error",
    [psycopg.OperationalError("connection lost"), PoolTimeout("no connection available")],
)
def test_connection_failures_become_store_unavailable(error):
    pool = StubPool(checkout_error=error)
    with pytest.raises(StoreUnavailable):
        IdentityRepository(pool).create(_draft())


def test_get_returns_none_for_unknown_or_malformed_id():
    repo = IdentityRepository(StubPool(StubConnection(row=None)))
    assert repo.get(str(uuid.uuid4())) is None
    assert repo.get("not-a-uuid") is None


def test_get_maps_row():
    identity_id = str(uuid.uuid4())
    repo = IdentityRepository(StubPool(StubConnection(row=_row(identity_id))))
    identity = repo.get(identity_id)
    assert identity is not None
    assert identity.account_number == "ACC123"


def test_ping_reports_outage():
    assert IdentityRepository(StubPool()).ping()
    assert not IdentityRepository(StubPool(checkout_error=PoolTimeout("timeout"))).ping()
