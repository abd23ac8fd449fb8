"""Pytest fixtures for testing"""

import os

# Must be set before the application settings are loaded
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["CREATE_SCHEMA"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from decimal import Decimal
from typing import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ddm_jewellers.api.main import create_app
from ddm_jewellers.auth.security import hash_password
from ddm_jewellers.domain.models import RateQuote
from ddm_jewellers.infrastructure.cache import response_cache
from ddm_jewellers.infrastructure.database.models import Base, MarketRate, Product, User
from ddm_jewellers.infrastructure.database.repositories import MarketRateRepository, ProductRepository, UserRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.utils.date_utils import utcnow

PASSWORD = "secret123"

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def clear_response_cache():
    """The read cache is process-wide; start every test cold"""
    response_cache.clear()
    yield
    response_cache.clear()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(db: Session) -> FastAPI:
    """FastAPI app bound to the test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Anonymous test client"""
    return TestClient(app)


@pytest.fixture
def create_user(db: Session) -> Callable[..., User]:
    """Factory for users with the shared test password"""

    def _create(email: str, role: str = "customer", **fields) -> User:
        user = UserRepository(db).create(
            email=email,
            password_hash=hash_password(PASSWORD),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            role=role,
            is_active=fields.pop("is_active", True),
            is_approved=fields.pop("is_approved", role != "wholesaler"),
            **fields,
        )
        db.commit()
        return user

    return _create


def sign_in(client: TestClient, email: str, password: str = PASSWORD) -> TestClient:
    response = client.post("/api/auth/signin", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def login(app: FastAPI) -> Callable[[User], TestClient]:
    """Factory for a fresh client signed in as the given user"""

    def _login(user: User) -> TestClient:
        return sign_in(TestClient(app), user.email)

    return _login


@pytest.fixture
def customer(create_user) -> User:
    return create_user("asha@ddm-jewellers.com", first_name="Asha", last_name="Rao")


@pytest.fixture
def customer_client(app: FastAPI, customer: User) -> TestClient:
    """Client signed in as a customer"""
    return sign_in(TestClient(app), customer.email)


@pytest.fixture
def admin_client(app: FastAPI, create_user) -> TestClient:
    """Client signed in as an administrator"""
    admin = create_user("admin@ddm-jewellers.com", role="admin")
    return sign_in(TestClient(app), admin.email)


@pytest.fixture
def market_rate(db: Session) -> MarketRate:
    """Persisted rate snapshot: 24k 6800, 22k 6200, 18k 5100, silver 82.50 per gram"""
    rate = MarketRateRepository(db).create(
        RateQuote(
            gold24k=Decimal("6800.00"),
            gold22k=Decimal("6200.00"),
            gold18k=Decimal("5100.00"),
            silver=Decimal("82.50"),
            source="Test Feed",
        ),
        currency="INR",
        effective_date=utcnow(),
    )
    db.commit()
    return rate


@pytest.fixture
def gold_ring(db: Session) -> Product:
    """10g 22K gold ring with 500 making charges"""
    product = ProductRepository(db).create(
        name="Temple Ring",
        product_type="real",
        material="22K Gold",
        weight=Decimal("10.000"),
        making_charges=Decimal("500.00"),
        stock=5,
    )
    db.commit()
    return product


@pytest.fixture
def imitation_necklace(db: Session) -> Product:
    product = ProductRepository(db).create(
        name="Kundan Necklace",
        product_type="imitation",
        material="Alloy",
        weight=Decimal("45.000"),
        price=Decimal("1499.00"),
        stock=20,
    )
    db.commit()
    return product
