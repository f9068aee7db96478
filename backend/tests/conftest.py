"""Pytest configuration and fixtures."""

import os

# Point the app's own engine at a throwaway database before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from restohub.core.rbac import Principal, UserRole
from restohub.core.security import create_access_token
from restohub.db.base import Base
from restohub.db.session import build_engine, get_db
from restohub.main import app
# Import all models to ensure they're registered with Base.metadata
from restohub.models import *
from restohub.models.branch import Branch
from restohub.models.menu_item import MenuItem
from restohub.models.user import User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    # users <-> branches reference each other; dropping the in-memory database is enough
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from restohub.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def principal(user: User) -> Principal:
    """The Principal the auth layer would build for ``user``."""
    return Principal(id=user.id, role=user.role, email=user.email, name=user.name or "")


def auth_headers(user: User) -> dict:
    """Bearer headers for ``user``."""
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


def seed_world(db: Session) -> dict:
    """Two branches with managers, staff, customers and stock.

    Branch "downtown" sells a burger (12.00 x5) and fries (4.50 x10);
    branch "uptown" sells a salad (9.00 x3).
    """
    users = {
        "admin": User(email="admin@example.com", name="Ada Admin", role=UserRole.ADMIN),
        "hq": User(email="hq@example.com", name="Hank HQ", role=UserRole.HEADQUARTER_MANAGER),
        "bm1": User(email="bm1@example.com", name="Bea Manager", role=UserRole.BRANCH_MANAGER),
        "bm2": User(email="bm2@example.com", name="Bo Manager", role=UserRole.BRANCH_MANAGER),
        "bm_free": User(email="bm3@example.com", name="Free Manager", role=UserRole.BRANCH_MANAGER),
        "chef1": User(email="chef1@example.com", name="Carl Chef", role=UserRole.CHEF),
        "chef2": User(email="chef2@example.com", name="Cleo Chef", role=UserRole.CHEF),
        "cashier1": User(email="cash1@example.com", name="Cass Cashier", role=UserRole.CASHIER),
        "cashier2": User(email="cash2@example.com", name="Cody Cashier", role=UserRole.CASHIER),
        "cashier_unassigned": User(email="cash3@example.com", name="Nia New", role=UserRole.CASHIER),
        "customer": User(email="cust@example.com", name="Cara Customer", role=UserRole.CUSTOMER),
        "customer2": User(email="cust2@example.com", name="Cy Customer", role=UserRole.CUSTOMER),
    }
    db.add_all(users.values())
    db.flush()

    downtown = Branch(name="Downtown", address="1 Main St", phone="555-0101", manager_id=users["bm1"].id)
    uptown = Branch(name="Uptown", address="99 Hill Rd", phone="555-0102", manager_id=users["bm2"].id)
    db.add_all([downtown, uptown])
    db.flush()

    users["chef1"].branch_id = downtown.id
    users["cashier1"].branch_id = downtown.id
    users["chef2"].branch_id = uptown.id
    users["cashier2"].branch_id = uptown.id

    burger = MenuItem(name="Burger", price=Decimal("12.00"), quantity=5, branch_id=downtown.id)
    fries = MenuItem(name="Fries", price=Decimal("4.50"), quantity=10, branch_id=downtown.id)
    salad = MenuItem(name="Salad", price=Decimal("9.00"), quantity=3, branch_id=uptown.id)
    db.add_all([burger, fries, salad])
    db.commit()

    return {
        **users,
        "downtown": downtown,
        "uptown": uptown,
        "burger": burger,
        "fries": fries,
        "salad": salad,
    }


@pytest.fixture
def world(db_session: Session) -> dict:
    """Seeded branches, users and menu items."""
    return seed_world(db_session)


def stock_of(db: Session, item: MenuItem) -> int:
    db.expire(item)
    return item.quantity
