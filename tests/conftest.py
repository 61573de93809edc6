import os

# The application module creates its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hotel_booking_test_bootstrap.db")

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from hotel_booking.api.deps import get_now
from hotel_booking.core.database import build_engine, build_session_factory, init_db, drop_db, get_db
from hotel_booking.main import app
from hotel_booking.models import User, UserRole, RoomType, Room
from hotel_booking.services import Actor

# Fixed request clock: every stay in the tests lies after this day
NOW = datetime(2024, 2, 1, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh schema per test: a temporary SQLite file unless TEST_DATABASE_URL is set"""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'hotel_booking.db'}"
    test_engine = build_engine(url)

    await drop_db(test_engine)
    await init_db(test_engine)

    yield test_engine

    await drop_db(test_engine)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def seed(session_factory):
    """Two guests, one admin, a standard and a deluxe room type and four rooms"""
    async with session_factory() as session:
        alice = User(first_name="Alice", last_name="Guest", email="alice@example.com", role=UserRole.GUEST)
        bob = User(first_name="Bob", last_name="Traveller", email="bob@example.com", role=UserRole.GUEST)
        admin = User(first_name="Front", last_name="Desk", email="desk@example.com", role=UserRole.ADMIN)

        standard = RoomType(name="Standard", base_price=Decimal("100.00"), max_guests=2)
        deluxe = RoomType(name="Deluxe", base_price=Decimal("150.00"), max_guests=4)
        session.add_all([alice, bob, admin, standard, deluxe])
        await session.flush()

        room_101 = Room(room_number="101", room_type_id=standard.id, floor=1)
        room_102 = Room(room_number="102", room_type_id=standard.id, floor=1)
        room_201 = Room(room_number="201", room_type_id=deluxe.id, floor=2)
        room_202 = Room(room_number="202", room_type_id=deluxe.id, floor=2, is_active=False)
        session.add_all([room_101, room_102, room_201, room_202])
        await session.commit()

        return SimpleNamespace(
            alice=Actor(user_id=alice.id, role=UserRole.GUEST),
            bob=Actor(user_id=bob.id, role=UserRole.GUEST),
            admin=Actor(user_id=admin.id, role=UserRole.ADMIN),
            standard_room_id=room_101.id,
            second_standard_room_id=room_102.id,
            deluxe_room_id=room_201.id,
            inactive_room_id=room_202.id,
        )


@pytest_asyncio.fixture
async def db(session_factory, seed):
    async with session_factory() as session:
        yield session


@pytest.fixture
def auth():
    """Gateway headers identifying an actor"""

    def headers_for(actor: Actor) -> dict:
        return {"X-User-Id": str(actor.user_id), "X-User-Role": actor.role.value}

    return headers_for


@pytest_asyncio.fixture
async def client(session_factory, seed):
    """HTTP client bound to the test database and the fixed clock"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
