import json
import unittest.mock

from pydantic import SecretStr

from coachhub.core.config import settings

from tests.conftest import auth_headers, future, make_package, make_session

PAYMENTS = "/api/v1/payments"


def test_config_reports_mock_mode(client):
    body = client.get(f"{PAYMENTS}/config").json()

    assert body["data"]["mock_mode"] is True
    assert body["data"]["currency"]


def test_session_payment_flow(client, db, course, parent, parent_headers):
    session = make_session(db, course, parent, future())

    created = client.post(PAYMENTS, json={"session_id": session.id}, headers=parent_headers)
    assert created.status_code == 201
    payment = created.json()["data"]
    assert payment["client_secret"] == f"mock_secret_{payment['id']}"
    assert payment["amount"] == 50.0

    confirmed = client.post(f"{PAYMENTS}/{payment['id']}/confirm", headers=parent_headers)
    assert confirmed.json()["data"]["status"] == "SUCCEEDED"

    refunded = client.post(
        f"{PAYMENTS}/{payment['id']}/refund", json={"amount": "10", "reason": "Partial"}, headers=parent_headers
    )
    assert refunded.status_code == 200
    assert refunded.json()["data"]["refund_amount"] == 10.0
    assert refunded.json()["data"]["status"] == "SUCCEEDED"

    rest = client.post(f"{PAYMENTS}/{payment['id']}/refund", headers=parent_headers)
    assert rest.json()["data"]["refund_amount"] == 50.0
    assert rest.json()["data"]["status"] == "REFUNDED"

    listing = client.get(PAYMENTS, params={"status": "REFUNDED"}, headers=parent_headers).json()["data"]
    assert listing["pagination"]["total"] == 1


def test_payments_are_private(client, db, course, parent, other_parent, parent_headers):
    session = make_session(db, course, parent, future())
    payment_id = client.post(PAYMENTS, json={"session_id": session.id}, headers=parent_headers).json()["data"]["id"]

    response = client.get(f"{PAYMENTS}/{payment_id}", headers=auth_headers(other_parent))

    assert response.status_code == 404


def test_admin_sees_every_payment(client, db, course, parent, parent_headers, admin_headers):
    session = make_session(db, course, parent, future())
    client.post(PAYMENTS, json={"session_id": session.id}, headers=parent_headers)

    listing = client.get(PAYMENTS, headers=admin_headers).json()["data"]

    assert listing["pagination"]["total"] == 1


def test_cancel_only_pending(client, db, course, parent, parent_headers):
    session = make_session(db, course, parent, future())
    payment_id = client.post(PAYMENTS, json={"session_id": session.id}, headers=parent_headers).json()["data"]["id"]

    assert client.post(f"{PAYMENTS}/{payment_id}/cancel", headers=parent_headers).status_code == 200
    again = client.post(f"{PAYMENTS}/{payment_id}/cancel", headers=parent_headers)
    assert again.status_code == 400
    assert again.json()["data"]["code"] == "INVALID_PAYMENT_STATUS"


class TestStripeWebhook:
    def _credit_payment(self, client, db, parent_headers):
        package = make_package(db)
        return client.post(f"{PAYMENTS}/credits", json={"package_id": package.id}, headers=parent_headers).json()[
            "data"
        ]

    def test_webhook_is_idempotent(self, client, db, parent, parent_headers, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
        payment = self._credit_payment(client, db, parent_headers)
        event = {"type": "payment_intent.succeeded", "data": {"object": {"id": payment["stripe_payment_id"]}}}
        headers = {"stripe-signature": "t=1,v1=signed"}

        with unittest.mock.patch("stripe.Webhook.construct_event", return_value=event) as construct:
            first = client.post(f"{PAYMENTS}/webhook/stripe", content=json.dumps(event), headers=headers)
            second = client.post(f"{PAYMENTS}/webhook/stripe", content=json.dumps(event), headers=headers)

        assert construct.call_args[0][2] == "whsec_test"
        assert first.json()["data"]["changed"] is True
        assert second.json()["data"]["changed"] is False
        balance = client.get(f"/api/v1/credits/balance/{parent.id}", headers=parent_headers).json()["data"]
        assert balance["balance"] == 110.0

    def test_missing_signature(self, client, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
        response = client.post(f"{PAYMENTS}/webhook/stripe", content=b"{}")

        assert response.status_code == 400
        assert response.json()["data"]["code"] == "INVALID_SIGNATURE"

    def test_unconfigured_secret(self, client):
        response = client.post(f"{PAYMENTS}/webhook/stripe", content=b"{}", headers={"stripe-signature": "x"})
        assert response.status_code == 500
