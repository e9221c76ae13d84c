"""
Pytest configuration and shared fixtures.

Environment variables are set before any app module is imported so that
settings pick up the in-memory database and fixed JWT secrets.
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test_access_secret"
os.environ["JWT_REFRESH_SECRET"] = "test_refresh_secret"
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum cost keeps hashing fast in tests

import itertools
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.db import connection
from app.db.connection import create_engine_for_url, create_session_maker, create_tables
from app.db.models import UserRole
from app.main import app
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.utils.datetime_utils import today

DEFAULT_PASSWORD = "SecurePassword123!"

_vin_counter = itertools.count(1)


def next_vin() -> str:
    """Unique, valid 17-character VIN"""
    return f"1HGCM82633A{next(_vin_counter):06d}"


def _signed_in(body: dict) -> dict:
    return {
        "user": body["user"],
        "tokens": body["tokens"],
        "headers": {"Authorization": f"Bearer {body['tokens']['access_token']}"},
    }


class ApiHelper:
    """Shortcuts for building records through the HTTP API"""

    def __init__(self, client: TestClient):
        self.client = client

    def register(self, email: str, role: str = None, password: str = DEFAULT_PASSWORD, **extra) -> dict:
        payload = {
            "email": email,
            "password": password,
            "first_name": "Test",
            "last_name": "User",
            **extra,
        }
        if role:
            payload["role"] = role
        response = self.client.post("/auth/register", json=payload)
        assert response.status_code == 201, response.text
        return _signed_in(response.json())

    def create_staff(self, email: str, role: UserRole, password: str = DEFAULT_PASSWORD) -> dict:
        """Staff account created through AuthService (as the CLI does), then logged in over HTTP"""

        async def _create():
            async with connection.async_session_maker() as session:
                await AuthService(UserRepository(session)).register(
                    email=email,
                    password=password,
                    first_name="Staff",
                    last_name="User",
                    role=role,
                )
                await session.commit()

        # Runs on the app's event loop, where the in-memory database lives
        self.client.portal.call(_create)

        response = self.client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return _signed_in(response.json())

    def update_record(self, model, record_id: str, **fields) -> None:
        """Write columns the API never lets clients set, such as past policy dates"""

        async def _update():
            async with connection.async_session_maker() as session:
                record = await session.get(model, record_id)
                for name, value in fields.items():
                    setattr(record, name, value)
                await session.commit()

        self.client.portal.call(_update)

    def create_vehicle(self, headers: dict, **fields) -> dict:
        payload = {"vin": next_vin(), "make": "Honda", "model": "Accord", "year": 2020, **fields}
        response = self.client.post("/vehicles", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    def create_quote(self, headers: dict, vehicle_id: str, **fields) -> dict:
        payload = {
            "vehicle_id": vehicle_id,
            "base_premium": "1200.00",
            "discount_percentage": "10",
            "payment_frequency": "monthly",
            "effective_date": today().isoformat(),
            "coverage_details": {"liability": 100000, "collision": 25000},
            **fields,
        }
        response = self.client.post("/quotes", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    def bind_policy(self, headers: dict, **quote_fields) -> dict:
        """Vehicle, quote and accepted policy for the user behind headers"""
        vehicle = self.create_vehicle(headers)
        quote = self.create_quote(headers, vehicle["id"], **quote_fields)
        response = self.client.post(f"/quotes/{quote['id']}/accept", headers=headers)
        assert response.status_code == 201, response.text
        return response.json()


@pytest.fixture
def client():
    """TestClient with a fresh in-memory database (created by the app lifespan)"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api(client):
    return ApiHelper(client)


@pytest.fixture
def customer(api):
    return api.register("customer@example.com")


@pytest.fixture
def other_customer(api):
    return api.register("other@example.com")


@pytest.fixture
def agent(api):
    return api.create_staff("agent@example.com", UserRole.AGENT)


@pytest.fixture
def admin(api):
    return api.create_staff("admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def db_session():
    """Session on an isolated in-memory database"""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)

    async with create_session_maker(engine)() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def days():
    """Date relative to today: days(-3) is three days ago"""
    return lambda offset: today() + timedelta(days=offset)
