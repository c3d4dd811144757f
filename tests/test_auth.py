"""
Tests for registration, login, refresh rotation and password flows.
"""
import re
from datetime import timedelta

from dental_lab.models.user import RefreshSession, User
from dental_lab.utils.helpers import utcnow

TEST_PASSWORD = "Sup3rSecret!"


def register(client, email="new.user@example.com", password="Password123"):
    return client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "firstName": "New",
        "lastName": "User",
    })


def login(client, email, password=TEST_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


class TestRegister:
    def test_register_returns_token_pair_and_user_role(self, client, email_service):
        response = register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["accessToken"] and data["refreshToken"]
        assert data["expiresIn"] == 3600
        assert data["user"]["email"] == "new.user@example.com"
        assert data["user"]["roles"] == ["USER"]
        assert email_service.outbox[0]["to"] == "new.user@example.com"

    def test_duplicate_email_is_rejected_without_creating_a_row(self, client, db):
        register(client)
        response = register(client)

        assert response.status_code == 400
        assert response.json()["code"] == "EMAIL_ALREADY_EXISTS"
        assert db.query(User).filter(User.email == "new.user@example.com").count() == 1

    def test_short_password_fails_validation(self, client):
        response = register(client, password="short")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "password" for d in body["details"])

    def test_mail_outage_does_not_fail_registration(self, client, email_service):
        email_service.fail = True

        response = register(client)

        assert response.status_code == 201


class TestLogin:
    def test_login_issues_tokens_and_stamps_last_login(self, client, db, make_user):
        user = make_user(email="login@example.com")

        response = login(client, "login@example.com")

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user.id
        db.expire_all()
        assert db.get(User, user.id).last_login is not None

    def test_unknown_email_and_wrong_password_are_indistinguishable(self, client, make_user):
        make_user(email="known@example.com")

        wrong_password = login(client, "known@example.com", "WrongPassword1")
        unknown_email = login(client, "nobody@example.com")

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["code"] == "INVALID_CREDENTIALS"
        assert wrong_password.json()["message"] == "Invalid email or password"

    def test_account_without_password_cannot_log_in(self, client, make_user):
        make_user(email="provisioned@example.com", password=None)

        response = login(client, "provisioned@example.com", "")

        assert response.status_code in (400, 401)
        response = login(client, "provisioned@example.com", "anything-at-all")
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_inactive_account_is_forbidden(self, client, make_user):
        make_user(email="inactive@example.com", is_active=False)

        response = login(client, "inactive@example.com")

        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_INACTIVE"

    def test_login_keeps_previous_sessions(self, client, db, make_user):
        user = make_user(email="multi@example.com")

        login(client, "multi@example.com")
        login(client, "multi@example.com")

        assert db.query(RefreshSession).filter(RefreshSession.user_id == user.id).count() == 2

    def test_login_purges_expired_sessions(self, client, db, make_user, token_service):
        user = make_user(email="stale@example.com")
        token_service.issue_refresh_token(db, user.id)
        db.query(RefreshSession).update({RefreshSession.expires_at: utcnow() - timedelta(minutes=1)})
        db.commit()

        login(client, "stale@example.com")

        db.expire_all()
        sessions = db.query(RefreshSession).filter(RefreshSession.user_id == user.id).all()
        assert len(sessions) == 1
        assert sessions[0].expires_at > utcnow()


class TestRefreshAndLogout:
    def test_refresh_rotates_the_session(self, client, make_user):
        make_user(email="rotate@example.com")
        refresh_token = login(client, "rotate@example.com").json()["data"]["refreshToken"]

        first = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})
        replay = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})

        assert first.status_code == 200
        assert first.json()["data"]["refreshToken"] != refresh_token
        assert replay.status_code == 401
        assert replay.json()["code"] == "INVALID_REFRESH_TOKEN"

    def test_garbage_refresh_token_is_rejected(self, client):
        response = client.post("/api/auth/refresh-token", json={"refreshToken": "garbage"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_REFRESH_TOKEN"

    def test_refresh_for_deactivated_user_fails(self, client, db, make_user):
        user = make_user(email="gone@example.com")
        refresh_token = login(client, "gone@example.com").json()["data"]["refreshToken"]
        db.get(User, user.id).is_active = False
        db.commit()

        response = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})

        assert response.status_code == 401

    def test_logout_revokes_all_sessions(self, client, make_user, auth_headers):
        user = make_user(email="logout@example.com")
        tokens = [login(client, "logout@example.com").json()["data"]["refreshToken"] for _ in range(2)]

        response = client.post("/api/auth/logout", headers=auth_headers(user))

        assert response.status_code == 200
        for token in tokens:
            refreshed = client.post("/api/auth/refresh-token", json={"refreshToken": token})
            assert refreshed.status_code == 401


class TestPasswords:
    def test_update_password_requires_the_old_password(self, client, make_user, auth_headers):
        user = make_user(email="pw@example.com")

        response = client.post("/api/auth/update-password", headers=auth_headers(user), json={
            "oldPassword": "not-it-at-all",
            "newPassword": "BrandNew123",
            "confirmPassword": "BrandNew123",
        })

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_PASSWORD"

    def test_update_password_keeps_sessions(self, client, make_user, auth_headers):
        user = make_user(email="pw2@example.com")
        refresh_token = login(client, "pw2@example.com").json()["data"]["refreshToken"]

        response = client.post("/api/auth/update-password", headers=auth_headers(user), json={
            "oldPassword": TEST_PASSWORD,
            "newPassword": "BrandNew123",
            "confirmPassword": "BrandNew123",
        })

        assert response.status_code == 200
        assert login(client, "pw2@example.com", "BrandNew123").status_code == 200
        assert client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token}).status_code == 200

    def test_mismatched_confirmation_fails_validation(self, client, make_user, auth_headers):
        user = make_user()

        response = client.post("/api/auth/update-password", headers=auth_headers(user), json={
            "oldPassword": TEST_PASSWORD,
            "newPassword": "BrandNew123",
            "confirmPassword": "Different123",
        })

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_forgot_password_reply_is_neutral(self, client, make_user, email_service):
        make_user(email="forgot@example.com")

        known = client.post("/api/auth/forgot-password", json={"email": "forgot@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert [m["to"] for m in email_service.outbox] == ["forgot@example.com"]

    def test_reset_token_is_single_use(self, client, make_user, email_service):
        make_user(email="reset@example.com")
        client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
        token = re.search(r"token=([0-9a-f]+)", email_service.outbox[-1]["html"]).group(1)
        body = {"token": token, "newPassword": "ResetPass123", "confirmPassword": "ResetPass123"}

        first = client.post("/api/auth/reset-password", json=body)
        second = client.post("/api/auth/reset-password", json=body)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["code"] == "INVALID_RESET_TOKEN"
        assert login(client, "reset@example.com", "ResetPass123").status_code == 200


def test_me_returns_the_current_user(client, make_user, auth_headers):
    user = make_user(roles=("USER", "staff"), email="me@example.com")

    response = client.get("/api/auth/me", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "me@example.com"
    assert sorted(data["roles"]) == ["USER", "staff"]
    assert "password" not in data
