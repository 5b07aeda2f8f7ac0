from tests.conftest import make_child, make_package

CREDITS = "/api/v1/credits"


def _adjust(client, user_id, headers, **overrides):
    payload = {"type": "BONUS", "amount": "50", "description": "Welcome bonus"}
    payload.update(overrides)
    return client.put(f"{CREDITS}/balance/{user_id}", json=payload, headers=headers)


class TestBalances:
    def test_first_read_creates_zero_balance(self, client, parent, parent_headers):
        response = client.get(f"{CREDITS}/balance/{parent.id}", headers=parent_headers)

        assert response.status_code == 200
        assert response.json()["data"]["balance"] == 0.0

    def test_other_users_balance_is_forbidden(self, client, other_parent, parent_headers):
        response = client.get(f"{CREDITS}/balance/{other_parent.id}", headers=parent_headers)
        assert response.status_code == 403

    def test_admin_adjusts_balance(self, client, parent, admin_headers):
        response = _adjust(client, parent.id, admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["balance"]["balance"] == 50.0
        assert data["transaction"]["amount"] == 50.0
        assert data["transaction"]["type"] == "BONUS"

    def test_only_admins_adjust(self, client, parent, parent_headers):
        assert _adjust(client, parent.id, parent_headers).status_code == 403

    def test_overdraft_needs_override(self, client, parent, admin_headers):
        refused = _adjust(client, parent.id, admin_headers, type="EXPIRED", amount="5", description="Expiry")
        allowed = _adjust(
            client, parent.id, admin_headers, type="EXPIRED", amount="5", description="Expiry", allow_negative=True
        )

        assert refused.status_code == 400
        assert refused.json()["data"]["code"] == "INSUFFICIENT_CREDITS"
        assert allowed.json()["data"]["balance"]["balance"] == -5.0

    def test_negative_amount_rejected_by_schema(self, client, parent, admin_headers):
        assert _adjust(client, parent.id, admin_headers, amount="-5").status_code == 400

    def test_transactions_filter_by_type(self, client, parent, parent_headers, admin_headers):
        _adjust(client, parent.id, admin_headers)
        _adjust(client, parent.id, admin_headers, type="SPENT", amount="20", description="Manual spend")

        spent = client.get(
            f"{CREDITS}/transactions/{parent.id}", params={"type": "SPENT"}, headers=parent_headers
        ).json()["data"]

        assert spent["pagination"]["total"] == 1
        assert spent["items"][0]["amount"] == -20.0
        assert spent["items"][0]["balance"] == 30.0


class TestPackagesAndPurchases:
    def test_package_admin(self, client, parent_headers, admin_headers):
        payload = {"name": "Family", "credits": "200", "bonus_credits": "40", "price": "170"}

        assert client.post(f"{CREDITS}/packages", json=payload, headers=parent_headers).status_code == 403
        created = client.post(f"{CREDITS}/packages", json=payload, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["data"]["total_credits"] == 240.0

        package_id = created.json()["data"]["id"]
        client.put(f"{CREDITS}/packages/{package_id}", json={"is_active": False}, headers=admin_headers)
        visible = client.get(f"{CREDITS}/packages", headers=parent_headers).json()["data"]
        assert visible == []

    def test_purchase_stays_pending_without_payment(self, client, db, parent, parent_headers):
        package = make_package(db)

        response = client.post(
            f"{CREDITS}/purchase/{parent.id}", json={"package_id": package.id}, headers=parent_headers
        )
        balance = client.get(f"{CREDITS}/balance/{parent.id}", headers=parent_headers).json()["data"]

        assert response.status_code == 201
        assert response.json()["data"]["status"] == "PENDING"
        assert balance["balance"] == 0.0

    def test_parent_cannot_self_settle_purchase(self, client, db, parent, parent_headers):
        package = make_package(db)
        response = client.post(
            f"{CREDITS}/purchase/{parent.id}",
            json={"package_id": package.id, "payment_id": "pi_fake"},
            headers=parent_headers,
        )
        assert response.status_code == 403

    def test_admin_records_settled_purchase(self, client, db, parent, admin_headers):
        package = make_package(db)

        response = client.post(
            f"{CREDITS}/purchase/{parent.id}",
            json={"package_id": package.id, "payment_id": "pi_offline"},
            headers=admin_headers,
        )

        assert response.json()["data"]["status"] == "COMPLETED"
        purchases = client.get(f"{CREDITS}/purchases/{parent.id}", headers=admin_headers).json()["data"]
        assert purchases["pagination"]["total"] == 1


class TestEnrollment:
    def test_enroll_two_children(self, client, db, parent, course, parent_headers, admin_headers):
        _adjust(client, parent.id, admin_headers)
        first = make_child(db, parent, "Robin")
        second = make_child(db, parent, "Sam")

        response = client.post(
            f"{CREDITS}/enroll/{parent.id}",
            json={"course_id": course.id, "child_ids": [first.id, second.id]},
            headers=parent_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Enrolled 2 children"
        assert body["data"]["total_cost"] == 20.0
        assert body["data"]["balance"]["balance"] == 30.0
        assert len(body["data"]["enrollments"]) == 2

    def test_insufficient_credits(self, client, parent, course, child, parent_headers):
        response = client.post(
            f"{CREDITS}/enroll/{parent.id}",
            json={"course_id": course.id, "child_ids": [child.id]},
            headers=parent_headers,
        )

        assert response.status_code == 400
        assert response.json()["data"]["code"] == "INSUFFICIENT_CREDITS"

    def test_cannot_enroll_for_another_parent(self, client, other_parent, course, child, parent_headers):
        response = client.post(
            f"{CREDITS}/enroll/{other_parent.id}",
            json={"course_id": course.id, "child_ids": [child.id]},
            headers=parent_headers,
        )
        assert response.status_code == 403


class TestAdminReports:
    def test_replay_is_consistent(self, client, parent, admin_headers):
        _adjust(client, parent.id, admin_headers)
        _adjust(client, parent.id, admin_headers, type="SPENT", amount="15", description="Spend")

        replay = client.get(f"{CREDITS}/admin/replay/{parent.id}", headers=admin_headers).json()["data"]

        assert replay["consistent"] is True
        assert replay["ledger_balance"] == 35.0

    def test_stats_and_balances(self, client, parent, admin_headers, parent_headers):
        _adjust(client, parent.id, admin_headers)

        stats = client.get(f"{CREDITS}/admin/stats", headers=admin_headers).json()["data"]
        balances = client.get(f"{CREDITS}/admin/balances", headers=admin_headers).json()["data"]

        assert stats["transactions_by_type"]["BONUS"]["count"] == 1
        assert balances["items"][0]["email"] == parent.email
        assert client.get(f"{CREDITS}/admin/stats", headers=parent_headers).status_code == 403
