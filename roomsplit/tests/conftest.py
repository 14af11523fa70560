"""
Pytest configuration and fixtures for roomsplit tests.
"""
import os

# Must be set before roomsplit.config is imported
os.environ.setdefault("ROOMSPLIT_DATABASE_URL", "sqlite://")
os.environ.setdefault("ROOMSPLIT_SECRET_KEY", "roomsplit-test-secret-key-0123456789")

import jwt
import pytest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import Dict, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roomsplit.config import settings
from roomsplit.db.database import Base
import roomsplit.models.households  # noqa: F401
import roomsplit.models.expenses  # noqa: F401
import roomsplit.models.payment_statuses  # noqa: F401
import roomsplit.models.qr_codes  # noqa: F401
from roomsplit.schemas.household_schema import HouseholdCreate, RoomCreate, RoommateCreate
from roomsplit.services.household_service import create_household
from roomsplit.services.roommate_service import add_room, add_roommate
from roomsplit.utils.settlement_engine import ExpenseRecord, MemberRecord, Transfer

ADMIN_USER = "user-admin"
MEMBER_USER = "user-member"
OUTSIDER_USER = "user-outsider"


@pytest.fixture
def members() -> List[MemberRecord]:
    """Four roommates: A, B and C share room 101, D lives in 102."""
    return [
        MemberRecord(id="A", name="An", room="101"),
        MemberRecord(id="B", name="Binh", room="101"),
        MemberRecord(id="C", name="Chi", room="101"),
        MemberRecord(id="D", name="Dung", room="102"),
    ]


@pytest.fixture
def sample_expenses() -> List[ExpenseRecord]:
    """Expenses across two months, mixing equal and weighted splits."""
    return [
        ExpenseRecord(id="e1", amount=90000, paid_by="A", shared_with=("A", "B", "C"),
                      description="Electricity", date=datetime(2024, 3, 5)),
        ExpenseRecord(id="e2", amount=60000, paid_by="B", shared_with=("B", "C"),
                      multipliers={"C": 2}, description="Groceries", date=datetime(2024, 3, 18)),
        ExpenseRecord(id="e3", amount=40000, paid_by="D", shared_with=("A", "C", "D"),
                      description="Internet", date=datetime(2024, 4, 2)),
        ExpenseRecord(id="e4", amount=10000, paid_by="C", shared_with=(),
                      description="Forgotten split", date=datetime(2024, 4, 9)),
    ]


@pytest.fixture
def assert_settles():
    """Return a checker that applies transfers to balances and expects every member to end near zero."""
    def check(balances: Dict[str, int], transfers: List[Transfer], tolerance: int = 1) -> None:
        remaining = {member_id: Decimal(balance) for member_id, balance in balances.items()}
        for transfer in transfers:
            remaining[transfer.from_id] += transfer.amount
            remaining[transfer.to_id] -= transfer.amount

        for member_id, balance in remaining.items():
            assert abs(balance) <= tolerance, \
                f"Member {member_id} not settled: initial={balances[member_id]}, final={balance}"
    return check


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def household(db_session):
    """
    A household administered by ADMIN_USER with rooms 101 and 102,
    roommates alice and bob in 101 and carol in 102.
    """
    created = create_household(db_session, HouseholdCreate(name="Sunrise Apartment"), ADMIN_USER)
    add_room(db_session, created.id, RoomCreate(name="101"))
    add_room(db_session, created.id, RoomCreate(name="102"))
    alice = add_roommate(db_session, created.id, RoommateCreate(name="Alice", room="101"))
    bob = add_roommate(db_session, created.id, RoommateCreate(name="Bob", room="101"))
    carol = add_roommate(db_session, created.id, RoommateCreate(name="Carol", room="102"))
    return SimpleNamespace(id=created.id, model=created, alice=alice, bob=bob, carol=carol)


def make_token(user_id: str) -> str:
    return jwt.encode({"user_id": user_id}, settings.secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def auth_headers():
    """Return a factory building request headers for a user."""
    def build(user_id: str = ADMIN_USER) -> Dict[str, str]:
        return {"access-token": make_token(user_id)}
    return build


@pytest.fixture
def client(db_session):
    """HTTP client bound to the test database."""
    from fastapi.testclient import TestClient
    from roomsplit.db.database import get_db
    from roomsplit.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
