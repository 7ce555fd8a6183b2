"""
Transaction endpoints against the in-memory store
"""

from datetime import datetime, timedelta, timezone

import pytest


def _auth(key):
    return {"x-api-key": key}


def _create(client, api_key, amount, metadata=None):
    body = {"originalAmount": amount}
    if metadata is not None:
        body["metadata"] = metadata
    resp = client.post("/api/transactions", json=body, headers=_auth(api_key))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["transaction"]


class TestCreateTransaction:
    def test_round_up_is_computed(self, client, org_a):
        org_id, api_key = org_a

        txn = _create(client, api_key, "15.75", {"description": "Coffee"})

        assert txn["originalAmount"] == "15.75"
        assert txn["roundedAmount"] == "16.00"
        assert txn["donationAmount"] == "0.25"
        assert txn["organizationId"] == org_id
        assert txn["metadata"] == {"description": "Coffee"}
        assert "createdAt" in txn and "updatedAt" in txn

    def test_whole_amount_donates_nothing(self, client, org_a):
        _, api_key = org_a

        txn = _create(client, api_key, "10.00")

        assert txn["roundedAmount"] == "10.00"
        assert txn["donationAmount"] == "0.00"
        assert txn["metadata"] == {}

    def test_numeric_json_amount(self, client, org_a):
        _, api_key = org_a

        txn = _create(client, api_key, 10.5)

        assert txn["originalAmount"] == "10.50"
        assert txn["donationAmount"] == "0.50"

    @pytest.mark.parametrize(
        "amount, original, donation",
        [("15.755", "15.76", "0.24"), ("15.754", "15.75", "0.25"), (1.234, "1.23", "0.77"), ("0.005", "0.01", "0.99")],
    )
    def test_sub_cent_amounts_round_to_cents(self, client, org_a, amount, original, donation):
        _, api_key = org_a

        txn = _create(client, api_key, amount)

        assert txn["originalAmount"] == original
        assert txn["donationAmount"] == donation

    def test_owner_comes_from_the_key(self, client, org_a, org_b):
        org_a_id, key_a = org_a
        org_b_id, _ = org_b

        resp = client.post(
            "/api/transactions",
            json={"originalAmount": "1.50", "organizationId": org_b_id},
            headers=_auth(key_a),
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["transaction"]["organizationId"] == org_a_id

    @pytest.mark.parametrize("amount", [None, "", "abc", "-1", 0, "0.00", "0.004", "NaN", "Infinity", True, [1]])
    def test_invalid_amounts(self, client, org_a, amount):
        _, api_key = org_a

        resp = client.post("/api/transactions", json={"originalAmount": amount}, headers=_auth(api_key))

        assert resp.status_code == 400
        assert resp.json()["status"] == "fail"

    def test_missing_amount(self, client, org_a):
        _, api_key = org_a

        resp = client.post("/api/transactions", json={"metadata": {"a": 1}}, headers=_auth(api_key))

        assert resp.status_code == 400
        assert resp.json()["message"] == "originalAmount is required"

    def test_metadata_must_be_an_object(self, client, org_a):
        _, api_key = org_a

        resp = client.post(
            "/api/transactions",
            json={"originalAmount": "1.00", "metadata": ["not", "an", "object"]},
            headers=_auth(api_key),
        )

        assert resp.status_code == 400

    def test_requires_api_key(self, client):
        resp = client.post("/api/transactions", json={"originalAmount": "1.00"})

        assert resp.status_code == 401


class TestGetTransaction:
    def test_owner_reads_transaction(self, client, org_a):
        _, api_key = org_a
        txn = _create(client, api_key, "3.20")

        resp = client.get(f"/api/transactions/{txn['id']}", headers=_auth(api_key))

        assert resp.status_code == 200
        assert resp.json()["data"]["transaction"] == txn

    def test_foreign_transaction_looks_missing(self, client, org_a, org_b):
        _, key_a = org_a
        _, key_b = org_b
        txn = _create(client, key_a, "3.20")

        foreign = client.get(f"/api/transactions/{txn['id']}", headers=_auth(key_b))
        missing = client.get("/api/transactions/unknown-id", headers=_auth(key_b))

        assert foreign.status_code == 404
        assert foreign.json() == missing.json() == {"status": "fail", "message": "Transaction not found"}

    def test_admin_reads_any_transaction(self, client, admin_key, org_a):
        _, key_a = org_a
        txn = _create(client, key_a, "3.20")

        resp = client.get(f"/api/transactions/{txn['id']}", headers=_auth(admin_key))

        assert resp.status_code == 200


class TestListTransactions:
    def test_non_admin_only_sees_own(self, client, org_a, org_b):
        org_a_id, key_a = org_a
        _, key_b = org_b
        for amount in ("1.10", "2.20", "3.30"):
            _create(client, key_a, amount)
        for amount in ("4.40", "5.50"):
            _create(client, key_b, amount)

        resp = client.get("/api/transactions", params={"limit": 100}, headers=_auth(key_a))

        data = resp.json()["data"]
        assert resp.status_code == 200
        assert len(data["transactions"]) == 3
        assert {t["organizationId"] for t in data["transactions"]} == {org_a_id}
        assert data["pagination"] == {"page": 1, "limit": 100, "total": 3, "pages": 1}

    def test_admin_sees_all(self, client, admin_key, org_a, org_b):
        _create(client, org_a[1], "1.10")
        _create(client, org_b[1], "2.20")

        resp = client.get("/api/transactions", headers=_auth(admin_key))

        assert resp.json()["data"]["pagination"]["total"] == 2

    def test_sorting_and_paging(self, client, org_a):
        _, api_key = org_a
        for amount in ("5.25", "1.90", "3.01"):
            _create(client, api_key, amount)

        first = client.get(
            "/api/transactions",
            params={"sortBy": "originalAmount", "sortOrder": "asc", "limit": 2},
            headers=_auth(api_key),
        ).json()["data"]
        second = client.get(
            "/api/transactions",
            params={"sortBy": "originalAmount", "sortOrder": "asc", "limit": 2, "page": 2},
            headers=_auth(api_key),
        ).json()["data"]

        assert [t["originalAmount"] for t in first["transactions"]] == ["1.90", "3.01"]
        assert [t["originalAmount"] for t in second["transactions"]] == ["5.25"]
        assert first["pagination"]["pages"] == 2

        by_donation = client.get(
            "/api/transactions",
            params={"sortBy": "donationAmount", "sortOrder": "desc"},
            headers=_auth(api_key),
        ).json()["data"]
        assert [t["donationAmount"] for t in by_donation["transactions"]] == ["0.99", "0.75", "0.10"]

    def test_invalid_sort_field(self, client, org_a):
        resp = client.get("/api/transactions", params={"sortBy": "metadata"}, headers=_auth(org_a[1]))

        assert resp.status_code == 400

    def test_date_range(self, client, org_a):
        _, api_key = org_a
        _create(client, api_key, "1.50")
        now = datetime.now(timezone.utc)

        past = client.get(
            "/api/transactions",
            params={
                "startDate": (now - timedelta(days=1)).date().isoformat(),
                "endDate": (now + timedelta(days=1)).date().isoformat(),
            },
            headers=_auth(api_key),
        ).json()["data"]
        future = client.get(
            "/api/transactions",
            params={"startDate": (now + timedelta(days=2)).isoformat()},
            headers=_auth(api_key),
        ).json()["data"]

        assert past["pagination"]["total"] == 1
        assert future["pagination"]["total"] == 0

    def test_invalid_dates(self, client, org_a):
        _, api_key = org_a

        bad = client.get("/api/transactions", params={"startDate": "yesterday"}, headers=_auth(api_key))
        reversed_range = client.get(
            "/api/transactions",
            params={"startDate": "2024-02-01", "endDate": "2024-01-01"},
            headers=_auth(api_key),
        )

        assert bad.status_code == 400
        assert reversed_range.status_code == 400


class TestReport:
    def test_empty_report_has_zero_average(self, client, org_a):
        resp = client.get("/api/transactions/report", headers=_auth(org_a[1]))

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "totalTransactions": 0,
            "totalDonations": "0.00",
            "averageDonation": "0.00",
        }

    def test_report_aggregates_own_transactions(self, client, org_a, org_b):
        _, key_a = org_a
        for amount in ("15.75", "10.00", "2.10"):
            _create(client, key_a, amount)
        _create(client, org_b[1], "0.01")

        data = client.get("/api/transactions/report", headers=_auth(key_a)).json()["data"]

        # 0.25 + 0.00 + 0.90
        assert data == {"totalTransactions": 3, "totalDonations": "1.15", "averageDonation": "0.38"}

    def test_admin_report_is_unscoped(self, client, admin_key, org_a, org_b):
        _create(client, org_a[1], "15.75")
        _create(client, org_b[1], "0.01")

        data = client.get("/api/transactions/report", headers=_auth(admin_key)).json()["data"]

        assert data["totalTransactions"] == 2
        assert data["totalDonations"] == "1.24"

    def test_report_date_filter(self, client, org_a):
        _create(client, org_a[1], "15.75")

        data = client.get(
            "/api/transactions/report",
            params={"startDate": "2000-01-01", "endDate": "2000-12-31"},
            headers=_auth(org_a[1]),
        ).json()["data"]

        assert data["totalTransactions"] == 0
        assert data["averageDonation"] == "0.00"


class TestUpdateTransaction:
    def test_update_metadata(self, client, org_a):
        _, api_key = org_a
        txn = _create(client, api_key, "7.30", {"v": 1})

        resp = client.put(
            f"/api/transactions/{txn['id']}",
            json={"metadata": {"v": 2, "note": "edited"}},
            headers=_auth(api_key),
        )

        assert resp.status_code == 200
        updated = resp.json()["data"]["transaction"]
        assert updated["metadata"] == {"v": 2, "note": "edited"}
        assert updated["originalAmount"] == "7.30"
        assert updated["donationAmount"] == "0.70"

    @pytest.mark.parametrize("field", ["originalAmount", "roundedAmount", "donationAmount"])
    def test_financial_fields_are_immutable_even_when_unchanged(self, client, org_a, field):
        _, api_key = org_a
        txn = _create(client, api_key, "7.30")

        resp = client.put(
            f"/api/transactions/{txn['id']}",
            json={field: txn[field], "metadata": {"v": 2}},
            headers=_auth(api_key),
        )

        assert resp.status_code == 400
        assert resp.json()["message"] == "Financial fields are immutable"
        stored = client.get(f"/api/transactions/{txn['id']}", headers=_auth(api_key)).json()["data"]["transaction"]
        assert stored["metadata"] == {}

    def test_metadata_is_required(self, client, org_a):
        _, api_key = org_a
        txn = _create(client, api_key, "7.30")

        assert client.put(f"/api/transactions/{txn['id']}", json={}, headers=_auth(api_key)).status_code == 400
        assert client.put(
            f"/api/transactions/{txn['id']}", json={"metadata": "text"}, headers=_auth(api_key)
        ).status_code == 400

    def test_foreign_transaction_is_forbidden(self, client, org_a, org_b):
        txn = _create(client, org_a[1], "7.30")

        resp = client.put(f"/api/transactions/{txn['id']}", json={"metadata": {}}, headers=_auth(org_b[1]))

        assert resp.status_code == 403

    def test_missing_transaction(self, client, org_a):
        resp = client.put("/api/transactions/unknown", json={"metadata": {}}, headers=_auth(org_a[1]))

        assert resp.status_code == 404

    def test_admin_updates_any_transaction(self, client, admin_key, org_a):
        txn = _create(client, org_a[1], "7.30")

        resp = client.put(f"/api/transactions/{txn['id']}", json={"metadata": {"by": "admin"}}, headers=_auth(admin_key))

        assert resp.status_code == 200


class TestDeleteTransaction:
    def test_admin_deletes(self, client, admin_key, org_a):
        txn = _create(client, org_a[1], "7.30")

        first = client.delete(f"/api/transactions/{txn['id']}", headers=_auth(admin_key))
        second = client.delete(f"/api/transactions/{txn['id']}", headers=_auth(admin_key))

        assert first.status_code == 200
        assert second.status_code == 404
        assert client.get(f"/api/transactions/{txn['id']}", headers=_auth(org_a[1])).status_code == 404

    def test_owner_cannot_delete(self, client, org_a):
        txn = _create(client, org_a[1], "7.30")

        resp = client.delete(f"/api/transactions/{txn['id']}", headers=_auth(org_a[1]))

        assert resp.status_code == 403


def test_store_failure_is_hidden_from_caller(client, org_a, memory_store, monkeypatch):
    async def broken(query):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(memory_store, "summarize_transactions", broken)

    resp = client.get("/api/transactions/report", headers=_auth(org_a[1]))

    assert resp.status_code == 500
    assert resp.json()["status"] == "error"
    assert "connection reset" not in resp.json()["message"]


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nothing-here")

    assert resp.status_code == 404
    assert resp.json()["status"] == "fail"
