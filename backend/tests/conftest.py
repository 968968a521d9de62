import os

# Configure an in-memory database and deterministic AI/payment behaviour
# before the application (and its settings) are imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LLM_PROVIDER"] = "mock"
os.environ["PAYMENT_CONFIRMATION_DELAY_SECONDS"] = "0"
os.environ["HEALTH_CHECK_ENABLED"] = "false"
os.environ.pop("WALLET_RPC_URL", None)

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from main import app
from fruitflow.api.deps import create_access_token, hash_password
from fruitflow.database import Base, SessionLocal, engine
from fruitflow.models.user import User, UserRole
from fruitflow.services.external_api_cache import clear_cache
from fruitflow.services.llm_client import reset_llm_client

ETH_USD_PRICE = 2500.0


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    reset_llm_client()
    clear_cache()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user():
    """Create a user directly in the database and return its id, name and auth headers."""

    def _make(
        name: str,
        role: UserRole,
        *,
        approved: bool = True,
        suspended: bool = False,
        address: str = "",
        password: str = "secret",
    ) -> SimpleNamespace:
        db = SessionLocal()
        try:
            user = User(
                name=name,
                password_hash=hash_password(password),
                role=role,
                is_approved=approved,
                is_suspended=suspended,
                address=address,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            token = create_access_token(user.id, user.name, user.role)
            return SimpleNamespace(
                id=user.id,
                name=user.name,
                headers={"Authorization": f"Bearer {token}"},
            )
        finally:
            db.close()

    return _make


@pytest.fixture
def manager(make_user):
    return make_user("boss", UserRole.MANAGER, address="1 Management Plaza")


@pytest.fixture
def supplier(make_user):
    return make_user("orchard", UserRole.SUPPLIER, address="12 Orchard Lane, Yakima, WA")


@pytest.fixture
def transporter(make_user):
    return make_user("trucker", UserRole.TRANSPORTER, address="5 Depot Street, Portland, OR")


@pytest.fixture
def customer(make_user):
    return make_user("shopper", UserRole.CUSTOMER, address="200 Market Street, San Francisco, CA")


@pytest.fixture
def sample_product_data():
    return {
        "name": "Honeycrisp Apples",
        "description": "Crisp, sweet apples picked at peak ripeness.",
        "price": 2.5,
        "unit": "kg",
        "stock_quantity": 100,
        "category": "Apples",
        "produced_date": "2024-09-01T00:00:00",
        "produced_area": "Yakima Valley, WA",
        "produced_by_organization": "Sunny Orchards Co-op",
    }


@pytest.fixture
def product(client, supplier, sample_product_data):
    response = client.post("/products", json=sample_product_data, headers=supplier.headers)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def eth_price():
    with patch(
        "fruitflow.services.payments.fetch_eth_usd_price",
        AsyncMock(return_value=(ETH_USD_PRICE, False)),
    ) as mocked:
        yield mocked
