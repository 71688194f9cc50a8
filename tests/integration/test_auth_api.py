"""Integration tests for auth API endpoints."""

from jose import jwt
from sqlalchemy import select

from coachdesk.kernel.models import User


REGISTRATION = {
    "email": "newuser@example.com",
    "password": "SecurePass123",
    "last_name": "Durand",
    "first_name": "Lea",
}


class TestRegisterAndLogin:

    async def test_register_new_user(self, client):
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["role"] == "user"
        assert "token" in response.cookies
        assert "refreshToken" in response.cookies

    async def test_register_duplicate_email(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)

        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 400

    async def test_register_weak_password(self, client):
        response = await client.post(
            "/api/v1/auth/register",
            json={**REGISTRATION, "password": "weakpass"},
        )

        assert response.status_code == 422

    async def test_login_wrong_password(self, client, test_user):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": "WrongPass123"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_me_with_cookie(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == "newuser@example.com"

    async def test_me_with_bearer(self, client, login, test_user):
        headers = await login(test_user.email)

        response = await client.get("/api/v1/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == test_user.id


class TestTokenFailures:

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_MISSING"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_INVALID"

    async def test_logged_out_token_is_revoked(self, client):
        registered = await client.post("/api/v1/auth/register", json=REGISTRATION)
        access_token = registered.json()["access_token"]

        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200

        client.cookies.clear()
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {access_token}"},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_REVOKED"

    async def test_logout_without_tokens_succeeds(self, client):
        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 200

    async def test_logout_with_forged_token_succeeds(self, client):
        forged = jwt.encode({"sub": "1", "exp": 10**30}, "someone-elses-key", algorithm="HS256")

        response = await client.post(
            "/api/v1/auth/logout",
            headers={"Authorization": f"Bearer {forged}"},
        )

        assert response.status_code == 200


class TestRefresh:

    async def test_refresh_from_cookie(self, client):
        await client.post("/api/v1/auth/register", json=REGISTRATION)

        response = await client.post("/api/v1/auth/refresh")

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "newuser@example.com"
        assert data["expires_in"] > 0
        assert "token" in response.cookies

    async def test_refresh_from_body(self, client):
        registered = await client.post("/api/v1/auth/register", json=REGISTRATION)
        refresh_token = registered.json()["refresh_token"]
        client.cookies.clear()

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token},
        )

        assert response.status_code == 200

    async def test_refresh_after_logout(self, client):
        registered = await client.post("/api/v1/auth/register", json=REGISTRATION)
        refresh_token = registered.json()["refresh_token"]
        await client.post("/api/v1/auth/logout")

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_REVOKED"

    async def test_refresh_without_token(self, client):
        response = await client.post("/api/v1/auth/refresh")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_MISSING"


class TestPasswords:

    async def test_change_password_ends_session(self, client, login, test_user):
        headers = await login(test_user.email)

        response = await client.post(
            "/api/v1/auth/change-password",
            headers=headers,
            json={"current_password": "Password123", "new_password": "NewPassword456"},
        )
        assert response.status_code == 200

        response = await client.get("/api/v1/auth/me", headers=headers)
        assert response.json()["detail"]["code"] == "TOKEN_REVOKED"

        await login(test_user.email, "NewPassword456")

    async def test_change_password_revokes_bearer_refresh_token(self, client, test_user):
        logged_in = await client.post(
            "/api/v1/auth/login",
            json={"email": test_user.email, "password": "Password123"},
        )
        tokens = logged_in.json()
        client.cookies.clear()

        response = await client.post(
            "/api/v1/auth/change-password",
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
            json={
                "current_password": "Password123",
                "new_password": "NewPassword456",
                "refresh_token": tokens["refresh_token"],
            },
        )
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": tokens["refresh_token"]},
        )
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "TOKEN_REVOKED"

    async def test_change_password_wrong_current(self, client, login, test_user):
        headers = await login(test_user.email)

        response = await client.post(
            "/api/v1/auth/change-password",
            headers=headers,
            json={"current_password": "WrongPass123", "new_password": "NewPassword456"},
        )

        assert response.status_code == 400

    async def test_forgot_password_does_not_reveal_accounts(self, client, mailer, test_user):
        known = await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
        unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(mailer.sent_to(test_user.email)) == 1
        assert mailer.sent_to("nobody@example.com") == []

    async def test_reset_password_flow(self, client, login, db_session, test_user):
        await client.post("/api/v1/auth/forgot-password", json={"email": test_user.email})
        result = await db_session.execute(select(User.reset_token).where(User.id == test_user.id))
        token = result.scalar_one()

        response = await client.post(
            f"/api/v1/auth/reset-password/{token}",
            json={"password": "ResetPass789"},
        )
        assert response.status_code == 200

        reused = await client.post(
            f"/api/v1/auth/reset-password/{token}",
            json={"password": "OtherPass789"},
        )
        assert reused.status_code == 400

        await login(test_user.email, "ResetPass789")


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
