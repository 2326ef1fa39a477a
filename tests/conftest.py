import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from config import get_settings_for_testing
from core.rate_limiter import RateLimiter
from core.token_issuer import TokenIssuer
from core.user_store import InMemoryUserStore
from core.users_service import UsersService
from core.auth_service import AuthService


@pytest.fixture
def settings():
    return get_settings_for_testing(
        jwt_secret="test-secret",
        environment="test",
        database_url=None,
        rate_limit_enabled=True,
        rate_limit_storage_uri="memory://",
    )


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def token_issuer(settings):
    return TokenIssuer.from_settings(settings)


@pytest.fixture
def users_service(user_store):
    return UsersService(user_store)


@pytest.fixture
def auth_service(users_service, token_issuer):
    return AuthService(users_service, token_issuer)


@pytest.fixture
def rate_limiter():
    return RateLimiter()


@pytest.fixture
def app(settings, user_store, rate_limiter):
    return create_app(settings, user_store=user_store, rate_limiter=rate_limiter)


@pytest.fixture
def client(app):
    return TestClient(app)
