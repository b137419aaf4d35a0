"""
Pytest configuration and fixtures for the slotswap test suite.

Tests run against a throw-away SQLite file so that several connections (and
threads) can share it. The database URL must be set before ``slotswap`` is
imported, since the engine is created at import time.
"""

import asyncio
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta

_TEST_DB_DIR = tempfile.mkdtemp(prefix="slotswap-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from slotswap.database import Base, SessionLocal, engine  # noqa: E402
from slotswap.main import app  # noqa: E402
from slotswap.models import Slot, SlotStatus, SwapOffer, User  # noqa: E402
from slotswap.security_utils import create_access_token  # noqa: E402

BASE_TIME = datetime(2030, 1, 7, 9, 0, 0)


@contextmanager
def session_scope():
    """
    A short-lived session.

    SQLite transactions hold the database write lock, so tests must never keep a
    session open while the app (or another thread) is writing.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def database():
    """Fresh tables for every test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    """Factory creating users; returns detached, fully loaded instances"""
    counter = {"n": 0}

    def _make_user(name: str = None) -> User:
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        with session_scope() as session:
            user = User(
                name=name,
                email=f"user{counter['n']}@example.com",
                password_hash="not-a-real-hash",
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    return _make_user


@pytest.fixture
def make_slot():
    """Factory creating slots directly in the database; returns the slot id"""
    counter = {"n": 0}

    def _make_slot(owner: User, status: str = SlotStatus.TRADABLE, title: str = None) -> int:
        counter["n"] += 1
        start = BASE_TIME + timedelta(hours=counter["n"])
        with session_scope() as session:
            slot = Slot(
                owner_id=owner.id,
                title=title or f"Slot {counter['n']}",
                start_time=start,
                end_time=start + timedelta(minutes=30),
                status=status,
            )
            session.add(slot)
            session.commit()
            return slot.id

    return _make_slot


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def read_slot(slot_id: int) -> dict:
    """Current (owner_id, status) of a slot, or None when it no longer exists"""
    with session_scope() as session:
        slot = session.query(Slot).filter(Slot.id == slot_id).first()
        if slot is None:
            return None
        return {"owner_id": slot.owner_id, "status": slot.status, "title": slot.title}


def read_offer(offer_id: int) -> dict:
    with session_scope() as session:
        offer = session.query(SwapOffer).filter(SwapOffer.id == offer_id).first()
        return {
            "status": offer.status,
            "proposer_owner_id": offer.proposer_owner_id,
            "target_owner_id": offer.target_owner_id,
            "resolved_at": offer.resolved_at,
        }


def count_open_offers() -> int:
    with session_scope() as session:
        return session.query(SwapOffer).filter(SwapOffer.status == "open").count()


def set_slot_status(slot_id: int, status: str) -> None:
    """Write a slot status directly, bypassing the status machine"""
    with session_scope() as session:
        session.query(Slot).filter(Slot.id == slot_id).update({"status": status})
        session.commit()


def send_concurrently(requests: list[tuple]) -> list[httpx.Response]:
    """
    Send ``(method, url, kwargs)`` requests to the app at the same time.

    Unlike ``TestClient``, which handles one request at a time, the requests
    share one event loop and overlap the way they do under a real server.
    """

    async def run():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await asyncio.gather(
                *(client.request(method, url, **kwargs) for method, url, kwargs in requests)
            )

    return asyncio.run(run())
