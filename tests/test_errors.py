from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.errors import (
    AppError,
    is_foreign_key_violation,
    is_unique_violation,
    validation_errors_to_fields,
)
from app.core.rate_limit import RateLimiter, api_rate_limiter
from app.main import create_app
from app.models.user import UserRole

API = "/api/v1"


def test_status_is_derived_from_kind():
    assert AppError.bad_request().status_code == 400
    assert AppError.unauthorized().status_code == 401
    assert AppError.forbidden().status_code == 403
    assert AppError.not_found().status_code == 404
    assert AppError.conflict().status_code == 409
    assert AppError.validation({"field": ["bad"]}).status_code == 422
    assert AppError.too_many_requests().status_code == 429
    internal = AppError.internal()
    assert internal.status_code == 500
    assert internal.is_operational is False
    assert internal.message == "Internal server error"


def test_validation_errors_are_grouped_by_field():
    fields = validation_errors_to_fields(
        [
            {"loc": ("body", "email"), "msg": "value is not a valid email address"},
            {"loc": ("body", "email"), "msg": "field required"},
            {"loc": ("query", "limit"), "msg": "less than or equal to 50"},
            {"loc": ("body",), "msg": "invalid body"},
        ]
    )
    assert fields == {
        "email": ["value is not a valid email address", "field required"],
        "limit": ["less than or equal to 50"],
        "value": ["invalid body"],
    }


def test_constraint_violations_are_classified():
    unique = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
    foreign = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    assert is_unique_violation(unique)
    assert not is_foreign_key_violation(unique)
    assert is_foreign_key_violation(foreign)
    assert not is_unique_violation(foreign)


def test_missing_token_is_unauthorized(client: TestClient):
    response = client.get(f"{API}/auth/me")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "No token provided"}


def test_invalid_token_is_unauthorized(client: TestClient):
    response = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_wrong_role_is_forbidden(client: TestClient, make_user, headers_for):
    instructor = make_user("mentor@example.com", role=UserRole.INSTRUCTOR)
    response = client.get(f"{API}/users", headers=headers_for(instructor))
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_unknown_route_uses_envelope(client: TestClient):
    response = client.get(f"{API}/nothing-here")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_login_rate_limit(client: TestClient, make_user):
    make_user("bruteforce@example.com")
    payload = {"email": "bruteforce@example.com", "password": "wrong-password"}

    for _ in range(5):
        assert client.post(f"{API}/auth/login", json=payload).status_code == 401

    blocked = client.post(f"{API}/auth/login", json=payload)
    assert blocked.status_code == 429
    assert blocked.json()["message"] == "Too many login attempts, please try again after 15 minutes"

    # Лимит считается по паре IP + email
    other = client.post(f"{API}/auth/login", json={"email": "someone@example.com", "password": "x"})
    assert other.status_code == 401


def test_general_rate_limit(client: TestClient, monkeypatch):
    monkeypatch.setattr(api_rate_limiter, "max_requests", 3)

    statuses = [client.get(f"{API}/courses").status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]
    # Служебные маршруты вне API не лимитируются
    assert client.get("/health").status_code == 200


def test_rate_limiter_sets_window_on_first_hit(cache):
    limiter = RateLimiter("test", max_requests=2, window_seconds=60)
    assert limiter.hit(cache, "k") == 1
    assert cache.ttls["ratelimit:test:k"] == 60
    assert limiter.hit(cache, "k") == 2


def _app_with_failing_route(engine, cache):
    app = create_app(engine=engine, cache=cache)

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    return app


def test_unknown_error_exposes_details_outside_production(engine, cache):
    with TestClient(_app_with_failing_route(engine, cache), raise_server_exceptions=False) as client:
        response = client.get("/boom")
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "kaboom"
    assert "RuntimeError" in body["stack"]


def test_unknown_error_is_generic_in_production(engine, cache, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    with TestClient(_app_with_failing_route(engine, cache), raise_server_exceptions=False) as client:
        response = client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
