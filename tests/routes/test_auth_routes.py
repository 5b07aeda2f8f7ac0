from coachhub.core.enums import CoachStatus, UserRole
from coachhub.models.user import User

from tests.conftest import TEST_PASSWORD, make_coach, make_user

AUTH = "/api/v1/auth"


def _register_payload(**overrides):
    payload = {
        "email": "new.parent@example.com",
        "password": TEST_PASSWORD,
        "first_name": "Nina",
        "last_name": "New",
        "timezone": "Europe/Paris",
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    def test_register_parent(self, client, mock_resend):
        response = client.post(f"{AUTH}/register/parent", json=_register_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        assert body["data"]["role"] == "PARENT"
        assert body["data"]["is_verified"] is False

    def test_duplicate_email_for_same_role(self, client):
        client.post(f"{AUTH}/register/parent", json=_register_payload())
        response = client.post(f"{AUTH}/register/parent", json=_register_payload())

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_same_email_may_hold_a_coach_account(self, client):
        client.post(f"{AUTH}/register/parent", json=_register_payload())
        response = client.post(
            f"{AUTH}/register/coach", json=_register_payload(domain="Physics", languages=["en", "fr"])
        )

        assert response.status_code == 201
        assert response.json()["data"]["role"] == "COACH"

    def test_unknown_fields_are_rejected(self, client):
        response = client.post(f"{AUTH}/register/parent", json=_register_payload(role="ADMIN"))

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_invalid_timezone_rejected(self, client):
        response = client.post(f"{AUTH}/register/parent", json=_register_payload(timezone="Nowhere/City"))
        assert response.status_code == 400


class TestLogin:
    def test_parent_login_returns_tokens(self, client, parent):
        response = client.post(f"{AUTH}/login", json={"email": parent.email, "password": TEST_PASSWORD})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["id"] == parent.id

    def test_wrong_password(self, client, parent):
        response = client.post(f"{AUTH}/login", json={"email": parent.email, "password": "wrong-password"})

        assert response.status_code == 401
        assert response.json()["data"]["code"] == "INVALID_CREDENTIALS"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_lockout_after_five_failures(self, client, db, parent):
        statuses = [
            client.post(f"{AUTH}/login", json={"email": parent.email, "password": "nope-nope"}).status_code
            for _ in range(5)
        ]
        assert statuses == [401, 401, 401, 401, 423]

        response = client.post(f"{AUTH}/login", json={"email": parent.email, "password": TEST_PASSWORD})
        assert response.status_code == 423
        assert response.json()["data"]["code"] == "ACCOUNT_LOCKED"

    def test_pending_coach_cannot_login(self, client, db):
        pending = make_coach(db, "pending@example.com", CoachStatus.PENDING)

        response = client.post(f"{AUTH}/login", json={"email": pending.user.email, "password": TEST_PASSWORD})

        assert response.status_code == 403
        assert response.json()["data"]["code"] == "COACH_NOT_APPROVED"

    def test_shared_email_needs_a_role(self, client, db, parent):
        make_coach(db, parent.email)

        ambiguous = client.post(f"{AUTH}/login", json={"email": parent.email, "password": TEST_PASSWORD})
        as_coach = client.post(
            f"{AUTH}/login", json={"email": parent.email, "password": TEST_PASSWORD, "role": "COACH"}
        )

        assert ambiguous.status_code == 400
        assert ambiguous.json()["data"]["code"] == "ROLE_REQUIRED"
        assert as_coach.status_code == 200
        assert as_coach.json()["data"]["user"]["role"] == "COACH"

    def test_admin_uses_admin_login(self, client, admin):
        credentials = {"email": admin.email, "password": TEST_PASSWORD}

        assert client.post(f"{AUTH}/login", json=credentials).status_code == 401
        assert client.post(f"{AUTH}/admin/login", json=credentials).status_code == 200

    def test_deactivated_account(self, client, db):
        user = make_user(db, "inactive@example.com", UserRole.PARENT, is_active=False)
        response = client.post(f"{AUTH}/login", json={"email": user.email, "password": TEST_PASSWORD})
        assert response.status_code == 403


class TestTokens:
    def test_refresh_rotates_tokens(self, client, parent):
        login = client.post(f"{AUTH}/login", json={"email": parent.email, "password": TEST_PASSWORD}).json()
        refresh_token = login["data"]["refresh_token"]

        rotated = client.post(f"{AUTH}/refresh", json={"refresh_token": refresh_token})
        assert rotated.status_code == 200
        new_token = rotated.json()["data"]["refresh_token"]

        assert new_token != refresh_token
        replay = client.post(f"{AUTH}/refresh", json={"refresh_token": refresh_token})
        assert replay.status_code == 401

    def test_profile_requires_authentication(self, client):
        response = client.get(f"{AUTH}/profile")
        assert response.status_code == 401

    def test_profile_includes_coach(self, client, coach, coach_headers):
        response = client.get(f"{AUTH}/profile", headers=coach_headers)

        assert response.status_code == 200
        assert response.json()["data"]["coach"]["id"] == coach.id

    def test_verify_email(self, client, db):
        client.post(f"{AUTH}/register/parent", json=_register_payload())
        user = db.query(User).filter_by(email="new.parent@example.com").one()

        response = client.get(f"{AUTH}/verify-email/{user.verification_token}")

        assert response.status_code == 200
        assert response.json()["data"]["is_verified"] is True

    def test_forgot_password_never_reveals_accounts(self, client):
        response = client.post(f"{AUTH}/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
