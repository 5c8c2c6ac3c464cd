from fastapi.testclient import TestClient

from app.models.user import UserRole

API = "/api/v1"


def register(client: TestClient, email: str, role: str = UserRole.STUDENT.value, password: str = "secret123"):
    return client.post(
        f"{API}/auth/register",
        json={"email": email, "password": password, "name": "Jane Doe", "role": role},
    )


def test_register_returns_tokens_and_user(client: TestClient):
    response = register(client, "student@example.com")
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Registration successful"
    data = body["data"]
    assert data["user"]["email"] == "student@example.com"
    assert data["user"]["role"] == UserRole.STUDENT.value
    assert "passwordHash" not in data["user"]
    assert data["accessToken"]
    assert data["refreshToken"]


def test_register_instructor_role_is_kept(client: TestClient):
    response = register(client, "mentor@example.com", role=UserRole.INSTRUCTOR.value)
    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == UserRole.INSTRUCTOR.value


def test_register_cannot_self_assign_admin(client: TestClient):
    response = register(client, "sneaky@example.com", role=UserRole.ADMIN.value)
    assert response.status_code == 422
    assert "role" in response.json()["errors"]


def test_duplicate_register_is_rejected(client: TestClient):
    first = register(client, "dup@example.com")
    assert first.status_code == 201
    second = register(client, "dup@example.com")
    assert second.status_code == 409
    assert second.json() == {"success": False, "message": "Email already registered"}


def test_register_validates_fields(client: TestClient):
    response = client.post(
        f"{API}/auth/register",
        json={"email": "not-an-email", "password": "short", "name": "J"},
    )
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert {"email", "password", "name"} <= set(errors)


def test_login_returns_tokens(client: TestClient):
    register(client, "login@example.com", role=UserRole.INSTRUCTOR.value)

    response = client.post(f"{API}/auth/login", json={"email": "login@example.com", "password": "secret123"})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["role"] == UserRole.INSTRUCTOR.value
    assert body["data"]["user"]["lastLoginAt"] is not None
    assert body["data"]["accessToken"]


def test_login_wrong_password_fails(client: TestClient):
    register(client, "wrongpass@example.com")

    response = client.post(f"{API}/auth/login", json={"email": "wrongpass@example.com", "password": "bad-password"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_unknown_email_uses_generic_message(client: TestClient):
    response = client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_deactivated_account(client: TestClient, make_user):
    make_user("inactive@example.com", is_active=False)

    response = client.post(f"{API}/auth/login", json={"email": "inactive@example.com", "password": "secret123"})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"


def test_login_social_account_without_password(client: TestClient, make_user):
    make_user("social@example.com", password=None)

    response = client.post(f"{API}/auth/login", json={"email": "social@example.com", "password": "secret123"})
    assert response.status_code == 401
    assert response.json()["message"] == "Please login with your social account"


def test_refresh_returns_new_tokens(client: TestClient):
    refresh_token = register(client, "refresh@example.com").json()["data"]["refreshToken"]

    response = client.post(f"{API}/auth/refresh", json={"refreshToken": refresh_token})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"]
    assert data["refreshToken"]

    # Токен не ротируется: старый refresh всё ещё действителен
    again = client.post(f"{API}/auth/refresh", json={"refreshToken": refresh_token})
    assert again.status_code == 200


def test_refresh_rejects_access_token(client: TestClient):
    access_token = register(client, "mixup@example.com").json()["data"]["accessToken"]

    response = client.post(f"{API}/auth/refresh", json={"refreshToken": access_token})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


def test_me_returns_profile_with_counts(client: TestClient):
    access_token = register(client, "me@example.com").json()["data"]["accessToken"]

    response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "me@example.com"
    assert data["counts"] == {"enrollments": 0, "instructorCourses": 0}
    assert data["enrollments"] == []


def test_change_password_then_login_with_new_one(client: TestClient):
    access_token = register(client, "change@example.com").json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {access_token}"}

    wrong = client.post(
        f"{API}/auth/change-password",
        json={"currentPassword": "nope-nope", "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Current password is incorrect"

    changed = client.post(
        f"{API}/auth/change-password",
        json={"currentPassword": "secret123", "newPassword": "brand-new-pass"},
        headers=headers,
    )
    assert changed.status_code == 200
    assert changed.json() == {"success": True, "message": "Password changed successfully"}

    old = client.post(f"{API}/auth/login", json={"email": "change@example.com", "password": "secret123"})
    assert old.status_code == 401
    new = client.post(f"{API}/auth/login", json={"email": "change@example.com", "password": "brand-new-pass"})
    assert new.status_code == 200


def test_logout_blacklists_refresh_token(client: TestClient):
    data = register(client, "logout@example.com").json()["data"]
    headers = {"Authorization": f"Bearer {data['accessToken']}"}

    response = client.post(f"{API}/auth/logout", json={"refreshToken": data["refreshToken"]}, headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    reuse = client.post(f"{API}/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert reuse.status_code == 401
    assert reuse.json()["message"] == "Invalid refresh token"
