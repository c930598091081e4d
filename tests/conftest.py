"""Shared fixtures: in-memory local store, mocked remote API, signed-in clients."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_db
from seed_data import DEMO_ACCOUNTS, build_baseline
from services.local_store import LocalStore
from store.client import build_client

NOW = datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)


def offline_handler(request: httpx.Request) -> httpx.Response:
    """Remote API that is never reachable."""
    raise httpx.ConnectError("Connection refused", request=request)


@pytest.fixture
def session_factory():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def local_store(session_factory):
    return LocalStore(session_factory)


@pytest.fixture
def baseline():
    return build_baseline(NOW)


@pytest.fixture
def make_client(session_factory):
    """Factory for a client over the shared in-memory store; each call is a fresh process."""

    def _make(handler=offline_handler, dev_mode=True, device=None, load=True):
        client = build_client(
            session_factory=session_factory,
            transport=httpx.MockTransport(handler),
            device=device,
            dev_mode=dev_mode,
            baseline=build_baseline(NOW),
        )
        if load:
            client.start()
        return client

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def sign_in(client, username: str, token: str = "test-token") -> None:
    """Store a session for a demo account and restore it, as after an app restart."""
    store = client.auth.local_store
    store.set(store.key("auth_token"), token)
    store.set(store.key("user"), json.dumps(DEMO_ACCOUNTS[username].to_wire()))
    client.auth.load_stored_auth()


def login_offline(client, username: str) -> None:
    """Development-mode login against the demo accounts (no token)."""
    result = asyncio.run(client.auth.login(username, "password"))
    assert result.success, result.error


def run(coro):
    return asyncio.run(coro)
