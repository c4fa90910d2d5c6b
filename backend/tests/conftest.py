"""Shared test fixtures for backend tests."""

import json
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from brewrewards.auth.jwt import create_access_token
from brewrewards.auth.principal import Principal
from brewrewards.config import Settings
from brewrewards.main import create_app
from brewrewards.services.identity import demo_directory
from brewrewards.services.rate_limiter import RateLimiter

TEST_SECRET = "test-secret"


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_principal(role="SHOP_STAFF", shop_id="shop_1", staff_role=None,
                   permissions=None, user_id="user_x") -> Principal:
    return Principal.from_claims(
        user_id=user_id, role=role, shop_id=shop_id,
        staff_role=staff_role, permissions=permissions,
    )


def identity_headers(user_id="user_x", role="SHOP_STAFF", shop_id=None,
                     staff_role=None, permissions=None) -> dict:
    """Trusted x-user-* headers as a gateway would forward them."""
    headers = {"x-user-id": user_id, "x-user-role": role}
    if shop_id:
        headers["x-user-shop-id"] = shop_id
    if staff_role:
        headers["x-user-staff-role"] = staff_role
    if permissions is not None:
        headers["x-user-permissions"] = json.dumps(permissions)
    return headers


def bearer(user_id="user_x", role="SHOP_STAFF", shop_id=None, staff_role=None,
           permissions=None) -> dict:
    token = create_access_token(
        user_id, f"{user_id}@example.com", role,
        shop_id=shop_id, staff_role=staff_role, permissions=permissions,
        secret=TEST_SECRET,
    )
    return {"Authorization": f"Bearer {token}"}


def _settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "jwt_secret": TEST_SECRET,
        "demo_directory_enabled": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def directory():
    return demo_directory()


@pytest.fixture
def gateway_app(limiter, directory):
    """App that verifies bearer tokens itself and ignores client identity headers."""
    return create_app(_settings(), rate_limiter=limiter, identity_provider=directory)


@pytest.fixture
def trusted_app(limiter, directory):
    """App deployed behind a gateway that already sets x-user-* headers."""
    return create_app(
        _settings(trust_forwarded_identity=True),
        rate_limiter=limiter, identity_provider=directory,
    )


@pytest_asyncio.fixture
async def client(gateway_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=gateway_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def trusted_client(trusted_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=trusted_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
