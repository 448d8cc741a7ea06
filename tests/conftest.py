"""
tests/conftest.py -- Shared test fixtures for ZapMenu auth tests.

This module provides:
  - engine / identity / passcodes: a fresh in-memory database per test
  - token_service: a TokenService with a fixed test secret
  - seed: a hotel, an admin and a guest in that database
  - api_client: TestClient over the real app with a patched lifespan, wired to an
    isolated shared-memory database (one per test module)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

Environment must be set before any core/auth/api import:
  DEBUG=true                       -- auto-generate JWT_SECRET instead of raising
  AUTH_RATE_LIMIT=1000/minute      -- keep the per-IP limiter out of the way
  ALLOWED_HOSTS=["testserver"]     -- TestClient's Host header
  EXPOSE_PASSCODE_IN_RESPONSE=true -- login flow tests read the code from the response
"""

from __future__ import annotations

import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("EXPOSE_PASSCODE_IN_RESPONSE", "true")

from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import Admin, Guest, Hotel
from auth.schema import create_db_engine
from auth.store import IdentityStore, PasscodeStore
from auth.tokens import TokenService
from core.config import get_settings

TEST_SECRET = "test-secret-" + "x" * 40


# ---------------------------------------------------------------------------
# Unit-test fixtures -- one fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    e = create_db_engine("sqlite:///:memory:")
    yield e
    e.dispose()


@pytest.fixture
def identity(engine) -> IdentityStore:
    return IdentityStore(engine)


@pytest.fixture
def passcodes(engine) -> PasscodeStore:
    return PasscodeStore(engine)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET, expire_seconds=3600)


class Seed(NamedTuple):
    hotel_id: int
    other_hotel_id: int
    admin: Admin
    guest: Guest


@pytest.fixture
def seed(identity: IdentityStore) -> Seed:
    """Two hotels, one admin of the first, one guest with no orders."""
    hotel_id = identity.create_hotel(Hotel(name="Seaside Inn"))
    other_hotel_id = identity.create_hotel(Hotel(name="Mountain Lodge"))
    admin_id = identity.create_admin(
        Admin(name="Ana Admin", email="ana@seaside.example", phone="+15550100", hotel_id=hotel_id)
    )
    guest, _ = identity.find_or_create_guest("gus@guest.example", "Gus")
    return Seed(hotel_id, other_hotel_id, identity.get_admin_by_id(admin_id), guest)


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


class ApiHarness(NamedTuple):
    client: TestClient
    identity: IdentityStore
    passcodes: PasscodeStore
    tokens: TokenService
    admin_id: int
    hotel_id: int


def _patch_lifespan(engine):
    """Return an async context manager that replaces the real lifespan.

    Wires the real service graph onto the isolated test engine, so routes run
    the production code paths against a throwaway database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, get_settings(), engine)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for integration tests.

    Seeds seven hotels and one admin (id 1) belonging to hotel 7, matching the
    documented login scenario.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    engine = create_db_engine(f"sqlite:///file:test_zapmenu_{suffix}?mode=memory&cache=shared&uri=true")
    identity = IdentityStore(engine)

    hotel_ids = [identity.create_hotel(Hotel(name=f"Hotel {n}")) for n in range(1, 8)]
    hotel_id = hotel_ids[-1]
    admin_id = identity.create_admin(Admin(name="Ana Admin", email="a@hotel.com", phone="+15550100", hotel_id=hotel_id))

    app.router.lifespan_context = _patch_lifespan(engine)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            identity=identity,
            passcodes=PasscodeStore(engine),
            tokens=app.state.token_service,
            admin_id=admin_id,
            hotel_id=hotel_id,
        )

    engine.dispose()
