"""
Tests for authentication endpoints.
"""
import pytest
from fastapi import status

from planejar.models import PasswordResetToken, Role


@pytest.mark.unit
class TestLogin:
    """Test login functionality."""

    def test_login_success(self, client, admin_user):
        """Test successful login."""
        response = client.post(
            "/auth/login",
            json={"email": "admin@test.com", "password": "admin123"}
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "admin@test.com"
        assert data["user"]["role"] == "administrator"
        assert "access_token" in response.cookies

    def test_login_is_case_insensitive_on_email(self, client, admin_user):
        response = client.post(
            "/auth/login",
            json={"email": "ADMIN@Test.com", "password": "admin123"}
        )
        assert response.status_code == status.HTTP_200_OK

    def test_login_invalid_email(self, client):
        """Test login with invalid email."""
        response = client.post(
            "/auth/login",
            json={"email": "nonexistent@test.com", "password": "password"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error_code"] == "AUTHENTICATION_ERROR"

    def test_login_invalid_password(self, client, admin_user):
        """Test login with invalid password."""
        response = client.post(
            "/auth/login",
            json={"email": "admin@test.com", "password": "wrongpassword"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_inactive_user(self, client, db_session):
        """Test login with inactive user."""
        from conftest import make_user

        make_user(db_session, "inactive@test.com", Role.CONSULTANT, password="password", is_active=False)
        response = client.post(
            "/auth/login",
            json={"email": "inactive@test.com", "password": "password"}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_provisional_password_requires_change(self, client, project, partners):
        """New clients log in with the default password and must change it."""
        response = client.post(
            "/auth/login",
            json={"email": "ana@test.com", "password": "mudar123"}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        body = response.json()
        assert body["error_code"] == "PASSWORD_CHANGE_REQUIRED"
        assert body["details"]["user_id"] == str(partners[0].id)


@pytest.mark.unit
class TestChangePassword:
    def test_change_provisional_password_logs_in(self, client, project, partners):
        response = client.post(
            "/auth/change-password",
            json={"user_id": str(partners[0].id), "current_password": "mudar123", "new_password": "novaSenha1"}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["requires_password_change"] is False
        assert response.json()["token"]

        login = client.post("/auth/login", json={"email": "ana@test.com", "password": "novaSenha1"})
        assert login.status_code == status.HTTP_200_OK

    def test_new_password_must_differ(self, client, project, partners):
        response = client.post(
            "/auth/change-password",
            json={"user_id": str(partners[0].id), "current_password": "mudar123", "new_password": "mudar123"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_provisional_account_needs_its_current_password(self, client, project, partners):
        response = client.post(
            "/auth/change-password",
            json={"user_id": str(partners[0].id), "new_password": "invasor1"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        wrong = client.post(
            "/auth/change-password",
            json={"user_id": str(partners[0].id), "current_password": "chute", "new_password": "invasor1"}
        )
        assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
        assert client.post("/auth/login", json={"email": "ana@test.com", "password": "invasor1"}).status_code == 401

    def test_current_password_required(self, client, consultant_user):
        response = client.post(
            "/auth/change-password",
            json={"user_id": str(consultant_user.id), "new_password": "outraSenha"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_wrong_current_password(self, client, consultant_user):
        response = client.post(
            "/auth/change-password",
            json={"user_id": str(consultant_user.id), "current_password": "errada", "new_password": "outraSenha"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.unit
class TestPasswordReset:
    def test_forgot_password_same_answer_for_unknown_email(self, client, consultant_user):
        known = client.post("/auth/forgot-password", json={"email": "consultor@test.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "ninguem@test.com"})
        assert known.status_code == unknown.status_code == status.HTTP_200_OK
        assert known.json() == unknown.json()

    def test_reset_with_token(self, client, db_session, consultant_user):
        client.post("/auth/forgot-password", json={"email": "consultor@test.com"})
        token = db_session.query(PasswordResetToken).filter_by(user_id=consultant_user.id).one().token

        response = client.post("/auth/reset-password", json={"token": token, "new_password": "resetada1"})
        assert response.status_code == status.HTTP_200_OK
        login = client.post("/auth/login", json={"email": "consultor@test.com", "password": "resetada1"})
        assert login.status_code == status.HTTP_200_OK

        reused = client.post("/auth/reset-password", json={"token": token, "new_password": "outra123"})
        assert reused.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.unit
class TestSession:
    def test_me(self, client, consultant_headers):
        response = client.get("/auth/me", headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == "consultor@test.com"

    def test_me_without_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_with_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer nao-e-um-jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout(self, client):
        response = client.post("/auth/logout")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Sessão encerrada"
