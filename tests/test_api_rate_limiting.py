"""Tests for rate limiting over HTTP."""

from fastapi.testclient import TestClient

from api.main import create_app
from config import get_settings_for_testing
from core.rate_limiter import RateLimiter
from core.user_store import InMemoryUserStore

LOGIN_PAYLOAD = {"email": "jane@example.com", "password": "wrong-password"}


def test_sixth_login_attempt_is_throttled(client):
    statuses = [client.post("/api/auth/login", json=LOGIN_PAYLOAD).status_code for _ in range(6)]

    assert statuses == [400] * 5 + [429]


def test_throttled_login_body_and_headers(client):
    for _ in range(5):
        client.post("/api/auth/login", json=LOGIN_PAYLOAD)

    response = client.post("/api/auth/login", json=LOGIN_PAYLOAD)

    assert response.status_code == 429
    assert response.json() == {
        "errors": [{"message": "Too many authentication attempts, please try again later"}]
    }
    assert response.headers["RateLimit-Limit"] == "5"
    assert response.headers["RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


def test_throttled_login_is_rejected_before_checking_credentials(client):
    client.post("/api/auth/register", json={"email": "jane@example.com", "password": "password123"})
    for _ in range(5):
        client.post("/api/auth/login", json=LOGIN_PAYLOAD)

    response = client.post(
        "/api/auth/login", json={"email": "jane@example.com", "password": "password123"}
    )
    assert response.status_code == 429


def test_fourth_registration_is_throttled(client):
    statuses = [
        client.post(
            "/api/auth/register",
            json={"email": f"user{i}@example.com", "password": "password123"},
        ).status_code
        for i in range(4)
    ]

    assert statuses == [201, 201, 201, 429]
    assert client.post(
        "/api/auth/register", json={"email": "late@example.com", "password": "password123"}
    ).json()["errors"][0]["message"] == "Too many registration attempts, please try again later"


def test_eleventh_refresh_is_throttled(client):
    statuses = [
        client.post("/api/auth/refresh", json={"refreshToken": "bad"}).status_code
        for _ in range(11)
    ]

    assert statuses == [400] * 10 + [429]


def test_endpoint_headers_report_endpoint_policy(client):
    response = client.post("/api/auth/login", json=LOGIN_PAYLOAD)

    assert response.headers["RateLimit-Limit"] == "5"
    assert response.headers["RateLimit-Remaining"] == "4"
    assert 0 < int(response.headers["RateLimit-Reset"]) <= 900


def test_general_policy_headers_on_other_routes(client):
    response = client.get("/api/health/live")

    assert response.status_code == 200
    assert response.headers["RateLimit-Limit"] == "100"
    assert response.headers["RateLimit-Remaining"] == "100"


def test_successful_responses_are_not_charged(client):
    for _ in range(5):
        client.get("/")

    assert client.get("/").headers["RateLimit-Remaining"] == "100"


def test_failed_responses_are_charged(client):
    client.get("/api/does-not-exist")
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.headers["RateLimit-Remaining"] == "98"


def test_unknown_routes_are_throttled_after_one_hundred_failures(client):
    statuses = [client.get("/api/does-not-exist").status_code for _ in range(110)]

    first_throttled = statuses.index(429)
    assert first_throttled <= 100
    assert set(statuses[:first_throttled]) == {404}
    assert set(statuses[first_throttled:]) == {429}

    response = client.get("/api/does-not-exist")
    assert response.json() == {"errors": [{"message": "Too many requests, please try again later"}]}
    assert "Retry-After" in response.headers


def test_general_policy_blocks_every_route_once_exhausted(client):
    for _ in range(100):
        client.get("/api/does-not-exist")

    assert client.get("/api/health/live").status_code == 429


def test_disabled_rate_limiting():
    settings = get_settings_for_testing(jwt_secret="test-secret", rate_limit_enabled=False)
    client = TestClient(create_app(settings, user_store=InMemoryUserStore()))

    statuses = [client.post("/api/auth/login", json=LOGIN_PAYLOAD).status_code for _ in range(10)]

    assert statuses == [400] * 10



class DownStorageLimiter(RateLimiter):
    """Limiter whose counter storage refuses every call."""

    def check_and_increment(self, policy, client_key):
        raise ConnectionError("counter storage down")

    def peek(self, policy, client_key):
        raise ConnectionError("counter storage down")

    def record(self, policy, client_key):
        raise ConnectionError("counter storage down")

    def is_healthy(self):
        raise ConnectionError("counter storage down")


def down_storage_client():
    settings = get_settings_for_testing(jwt_secret="test-secret")
    app = create_app(settings, user_store=InMemoryUserStore(), rate_limiter=DownStorageLimiter())
    return TestClient(app)


def test_storage_outage_admits_general_routes():
    client = down_storage_client()

    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["services"]["rate_limit_storage"] == {
        "status": "degraded",
        "message": "Counter storage unreachable",
        "latency_ms": None,
    }
    assert "RateLimit-Limit" not in response.headers


def test_storage_outage_keeps_json_error_bodies():
    client = down_storage_client()

    not_found = client.get("/api/does-not-exist")
    assert not_found.status_code == 404
    assert not_found.json() == {"errors": [{"message": "Resource not found"}]}

    login = client.post("/api/auth/login", json=LOGIN_PAYLOAD)
    assert login.status_code == 500
    assert login.json() == {"errors": [{"message": "Something went wrong"}]}
