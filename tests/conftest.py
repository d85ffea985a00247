"""
Test fixtures for the Track Hub test suite.

This module provides shared fixtures used across all test files:

  - db_engine: Fresh in-memory SQLite database for each test
  - real_store: SqlRecordStore bound to that database
  - store: FaultyStore wrapping real_store (no faults armed by default)
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client carrying a bearer token for `user_id`
  - other_user_headers: Authorization header of a second user
  - make_wallet / balance_of: shortcuts used by most ledger tests

Key design decisions:
  - In-memory SQLite with StaticPool: every store call opens its own
    connection transaction, and StaticPool makes them all share the one
    in-memory database.
  - The app's get_store dependency is overridden with the FaultyStore, so
    tests can make specific store calls fail (or race) mid-mutation and
    check what the compensation left behind.
  - Tokens are minted with mint_access_token; there is no login flow.
"""

import os

# Must be set before trackhub.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("COMPENSATION_RETRY_DELAY_SECONDS", "0")
os.environ.setdefault("BALANCE_WRITE_RETRY_DELAY_SECONDS", "0")

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from trackhub.database import Base, get_store
from trackhub.exceptions import StoreReadFailedError, StoreWriteFailedError
from trackhub.main import app
from trackhub.security import mint_access_token
from trackhub.store import SqlRecordStore


TEST_DATABASE_URL = "sqlite+aiosqlite://"

# (filters, values) -> should this call fail?
Predicate = Callable[[dict, dict], bool]


# ---------------------------------------------------------------------------
# Fault injection
# ---------------------------------------------------------------------------

@dataclass
class _Fault:
    operation: str
    table: str
    when: Predicate | None
    remaining: int | None  # None = fail every matching call
    skip: int = 0  # matching calls let through before failing


def targets(record_id) -> Predicate:
    """Predicate matching calls whose filters address `record_id`."""
    expected = uuid.UUID(str(record_id))

    def predicate(filters: dict, values: dict) -> bool:
        return filters.get("id") == expected

    return predicate


class FaultyStore:
    """
    RecordStore wrapper that makes chosen calls fail.

    fail("update", "wallets", when=targets(wallet_id)) makes the next
    update of that wallet raise StoreWriteFailedError before it reaches the
    database. after=1 lets the first matching call through, so a forward
    write succeeds and only its compensation fails. interfere(wallet_id)
    simulates another client writing the same wallet between our read and
    our guarded update.
    """

    def __init__(self, inner: SqlRecordStore):
        self.inner = inner
        self._faults: list[_Fault] = []
        self._interference: dict[uuid.UUID, list] = {}

    def fail(
        self,
        operation: str,
        table: str,
        *,
        when: Predicate | None = None,
        times: int | None = 1,
        after: int = 0,
    ) -> None:
        self._faults.append(_Fault(operation, table, when, times, after))

    def interfere(self, wallet_id, *, delta_cents: int = 0, times: int | None = 1) -> None:
        """Before the next guarded balance write, bump the wallet from outside."""
        self._interference[uuid.UUID(str(wallet_id))] = [delta_cents, times]

    def clear(self) -> None:
        self._faults.clear()
        self._interference.clear()

    def _maybe_fail(self, operation: str, table: str, filters: dict, values: dict) -> None:
        for fault in self._faults:
            if fault.operation != operation or fault.table != table:
                continue
            if fault.remaining == 0:
                continue
            if fault.when is not None and not fault.when(filters, values):
                continue
            if fault.skip:
                fault.skip -= 1
                continue
            if fault.remaining is not None:
                fault.remaining -= 1
            if operation == "select":
                raise StoreReadFailedError(operation, table, "injected read failure")
            raise StoreWriteFailedError(operation, table, "injected write failure")

    async def _maybe_interfere(self, table: str, filters: dict) -> None:
        if table != "wallets" or "version" not in filters:
            return
        entry = self._interference.get(filters.get("id"))
        if entry is None or entry[1] == 0:
            return
        delta_cents, times = entry
        if times is not None:
            entry[1] = times - 1

        current = (await self.inner.select("wallets", {"id": filters["id"]}))[0]
        await self.inner.update(
            "wallets",
            {
                "balance_cents": current["balance_cents"] + delta_cents,
                "version": current["version"] + 1,
            },
            {"id": filters["id"]},
        )

    async def select(self, table: str, filters=None, **kwargs: Any) -> list[dict]:
        self._maybe_fail("select", table, dict(filters or {}), {})
        return await self.inner.select(table, filters, **kwargs)

    async def insert(self, table: str, record) -> dict:
        self._maybe_fail("insert", table, {}, dict(record))
        return await self.inner.insert(table, record)

    async def update(self, table: str, patch, filters) -> int:
        self._maybe_fail("update", table, dict(filters), dict(patch))
        await self._maybe_interfere(table, dict(filters))
        return await self.inner.update(table, patch, filters)

    async def delete(self, table: str, filters) -> int:
        self._maybe_fail("delete", table, dict(filters), {})
        return await self.inner.delete(table, filters)


# ---------------------------------------------------------------------------
# Database / store
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def real_store(db_engine):
    return SqlRecordStore(db_engine, Base.metadata)


@pytest.fixture
def store(real_store):
    return FaultyStore(real_store)


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID) -> dict:
    token = mint_access_token(str(user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_user_headers() -> dict:
    """Authorization header for a second, unrelated user."""
    return auth_headers(uuid.uuid4())


@pytest_asyncio.fixture
async def client(store):
    """
    Async HTTP test client with the test store injected.

    This overrides the get_store dependency so all requests hit the
    in-memory test database through the FaultyStore.
    """
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client, user_id):
    """Test client whose requests carry a valid token for `user_id`."""
    client.headers.update(auth_headers(user_id))
    return client


@pytest.fixture
def make_wallet(authenticated_client):
    """Factory creating a wallet through the API; returns its id."""

    async def _make(name: str = "Wallet", balance_cents: int = 0) -> str:
        response = await authenticated_client.post(
            "/wallets", json={"name": name, "balance_cents": balance_cents}
        )
        assert response.status_code == 201, response.text
        return response.json()["id"]

    return _make


@pytest.fixture
def balance_of(authenticated_client):
    """Reads a wallet's stored balance through the API."""

    async def _balance(wallet_id: str) -> int:
        response = await authenticated_client.get(f"/wallets/{wallet_id}")
        assert response.status_code == 200, response.text
        return response.json()["balance_cents"]

    return _balance
