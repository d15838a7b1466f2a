"""
HTTP surface of the cashier API: status codes, error bodies, identity header.
"""

from conftest import ACTOR, DAY, MANAGER, actor_headers

DAY_URL = f"/api/cashier/daily/{DAY.isoformat()}"


def _initialize(client):
    response = client.post(
        f"{DAY_URL}/initialize",
        json={"primary_user_id": ACTOR, "secondary_user_ids": ["u-back"], "initial_fund": "200.00"},
        headers=actor_headers(MANAGER),
    )
    assert response.status_code == 201
    return response.get_json()


def _shift_id(payload, shift_type="morning"):
    return next(s["id"] for s in payload["shifts"] if s["shift_type"] == shift_type)


def test_mutations_require_identity(client, db_session):
    response = client.post(f"{DAY_URL}/initialize", json={"primary_user_id": ACTOR})
    assert response.status_code == 401
    assert response.get_json()["code"] == "CASHIER_ACTOR_REQUIRED"

    response = client.post(f"{DAY_URL}/initialize", json={"primary_user_id": ACTOR}, headers={"X-User-Id": "  "})
    assert response.status_code == 401


def test_unknown_day_is_404(client, db_session):
    response = client.get(DAY_URL)
    assert response.status_code == 404
    body = response.get_json()
    assert body["code"] == "CASHIER_DAY_NOT_FOUND"
    assert body["retryable"] is False


def test_initialize_then_duplicate(client, db_session):
    payload = _initialize(client)
    assert payload["status"] == "open"
    assert len(payload["shifts"]) == 4
    assert payload["shifts"][0]["initial_fund"] == "200.00"
    assert payload["can_close"] is False

    response = client.post(
        f"{DAY_URL}/initialize", json={"primary_user_id": ACTOR}, headers=actor_headers(MANAGER)
    )
    assert response.status_code == 409
    assert response.get_json()["code"] == "CASHIER_DAY_EXISTS"


def test_bad_date_is_400(client, db_session):
    response = client.get("/api/cashier/daily/10-01-2025")
    assert response.status_code == 400
    assert response.get_json()["code"] == "CASHIER_VALIDATION_ERROR"


def test_shift_workflow_over_http(client, db_session):
    shift_id = _shift_id(_initialize(client))
    url = f"/api/cashier/shifts/{shift_id}"

    response = client.patch(url, json={"income": "500.00", "comments": "busy morning"}, headers=actor_headers())
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "in_progress"
    assert body["cash_expected"] == "700.00"
    assert body["notes"] == "busy morning"

    response = client.put(
        f"{url}/denominations",
        json={"denominations": [{"denomination": 500, "quantity": 1}, {"denomination": "180", "quantity": 1}]},
        headers=actor_headers(),
    )
    assert response.status_code == 400

    response = client.put(
        f"{url}/denominations",
        json={"denominations": [
            {"denomination": 500, "quantity": 1},
            {"denomination": "100.00", "quantity": 1},
            {"denomination": 50, "quantity": 1},
            {"denomination": 20, "quantity": 1},
            {"denomination": 10, "quantity": 1},
        ]},
        headers=actor_headers(),
    )
    assert response.status_code == 200
    assert response.get_json()["cash_counted"] == "680.00"

    response = client.put(
        f"{url}/payments",
        json={"payments": [{"payment_method_id": 1, "amount": "42.10"}]},
        headers=actor_headers(),
    )
    assert response.status_code == 200
    assert response.get_json()["payments"][0]["payment_method_name"] == "card"

    response = client.patch(f"{url}/close", json={}, headers=actor_headers())
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "closed"
    assert body["difference"] == "-20.00"
    assert body["has_discrepancy"] is True

    response = client.patch(url, json={"income": "1.00"}, headers=actor_headers())
    assert response.status_code == 409
    assert response.get_json()["code"] == "CASHIER_INVALID_STATE"

    response = client.get(f"/api/cashier/history/shift/{shift_id}")
    assert response.status_code == 200
    assert len(response.get_json()["data"]) > 5


def test_stale_if_match_is_409_retryable(client, db_session):
    shift_id = _shift_id(_initialize(client), "night")
    url = f"/api/cashier/shifts/{shift_id}"
    version = client.get(url).get_json()["version_id"]

    first = client.put(
        f"{url}/payments",
        json={"payments": [{"payment_method_id": 2, "amount": "10.00"}]},
        headers=actor_headers(**{"If-Match": str(version)}),
    )
    assert first.status_code == 200

    second = client.put(
        f"{url}/payments",
        json={"payments": [{"payment_method_id": 2, "amount": "99.00"}], "version": version},
        headers=actor_headers("u-other"),
    )
    assert second.status_code == 409
    body = second.get_json()
    assert body["retryable"] is True
    assert client.get(url).get_json()["payments_total"] == "10.00"


def test_close_day_not_ready_lists_reasons(client, db_session):
    payload = _initialize(client)
    night = _shift_id(payload, "night")

    response = client.post(
        f"/api/cashier/shifts/{night}/vouchers",
        json={"amount": "50.00", "reason": "taxi"},
        headers=actor_headers(),
    )
    assert response.status_code == 201
    voucher_id = response.get_json()["voucher"]["id"]

    response = client.get(f"{DAY_URL}/can-close")
    assert response.get_json()["can_close"] is False

    response = client.patch(f"{DAY_URL}/close", json={}, headers=actor_headers(MANAGER))
    assert response.status_code == 422
    body = response.get_json()
    assert body["code"] == "CASHIER_DAY_NOT_READY"
    assert len(body["validation_errors"]) == 5

    for shift in payload["shifts"]:
        assert client.patch(f"/api/cashier/shifts/{shift['id']}/close", headers=actor_headers()).status_code == 200

    response = client.patch(f"/api/cashier/vouchers/{voucher_id}/justify", json={"shift_id": "x"}, headers=actor_headers())
    assert response.status_code == 400

    response = client.patch(
        f"/api/cashier/vouchers/{voucher_id}/justify",
        json={"shift_id": _shift_id(payload, "morning")},
        headers=actor_headers(),
    )
    assert response.status_code == 200
    assert response.get_json()["voucher"]["status"] == "justified"

    response = client.patch(f"{DAY_URL}/close", json={"notes": "done"}, headers=actor_headers(MANAGER))
    assert response.status_code == 200
    assert response.get_json()["daily"]["status"] == "closed"

    response = client.patch(f"{DAY_URL}/reopen", json={}, headers=actor_headers(MANAGER))
    assert response.status_code == 400


def test_voucher_endpoints(client, db_session):
    night = _shift_id(_initialize(client), "night")
    response = client.post(
        f"/api/cashier/shifts/{night}/vouchers",
        json={"amount": "12.00", "reason": "flowers"},
        headers=actor_headers(),
    )
    voucher_id = response.get_json()["voucher"]["id"]

    active = client.get("/api/cashier/vouchers").get_json()
    assert active["count"] == 1
    assert active["total_amount"] == "12.00"

    response = client.patch(f"/api/cashier/vouchers/{voucher_id}", json={"amount": "13.00"}, headers=actor_headers())
    assert response.status_code == 400

    response = client.patch(f"/api/cashier/vouchers/{voucher_id}/cancel", json={"reason": "returned"}, headers=actor_headers())
    assert response.status_code == 200

    stats = client.get("/api/cashier/vouchers/stats").get_json()
    assert stats["cancelled_count"] == 1
    assert stats["cancelled_amount"] == "12.00"

    assert client.get("/api/cashier/vouchers/999999").status_code == 404

    history = client.get("/api/cashier/reports/vouchers-history?status=cancelled").get_json()
    assert history["pagination"]["total"] == 1


def test_reports_and_history_endpoints(client, db_session):
    _initialize(client)

    response = client.get("/api/cashier/reports/monthly/2025/1")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert len(body["data"]["daily_breakdown"]) == 31

    assert client.get("/api/cashier/reports/monthly/2025/13").status_code == 400
    assert client.get("/api/cashier/reports/dashboard").status_code == 400

    dashboard = client.get(f"/api/cashier/reports/dashboard?date={DAY.isoformat()}").get_json()
    assert dashboard["data"]["today"]["total_shifts"] == 4

    history = client.get("/api/cashier/history?action=created&limit=2").get_json()
    assert history["total"] == 5
    assert len(history["data"]) == 2
    assert client.get("/api/cashier/history?limit=abc").status_code == 400

    stats = client.get("/api/cashier/history/stats").get_json()
    assert stats["data"]["total_entries"] == 5


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["database"]["details"]["days"] == 0


def test_oversized_cash_count_is_400(client, db_session):
    shift_id = _shift_id(_initialize(client), "night")
    response = client.put(
        f"/api/cashier/shifts/{shift_id}/denominations",
        json={"denominations": [{"denomination": 500, "quantity": 2 ** 31}]},
        headers=actor_headers(),
    )
    assert response.status_code == 400
    assert response.get_json()["code"] == "CASHIER_VALIDATION_ERROR"
