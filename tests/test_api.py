"""HTTP surface: status codes, error bodies and camelCase payloads."""

from conftest import order_signature, topup_signature


def _create_order(client, customer_id="c1", amount=500):
    resp = client.post(
        "/orders",
        json={"customerId": customer_id, "service": "Lehenga stitching", "amount": amount, "address": "7 Hill Road"},
    )
    assert resp.status_code == 200
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_metrics_exposes_request_counters(client):
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text


def test_trace_id_is_echoed(client):
    resp = client.get("/health", headers={"x-trace-id": "trace-123"})
    assert resp.headers["x-trace-id"] == "trace-123"


def test_wallet_add_pay_and_history(client):
    resp = client.post("/wallet/add", json={"userId": "u1", "amount": 100})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["balance"] == 100

    resp = client.post("/wallet/pay", json={"userId": "u1", "amount": 150})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "InsufficientBalance"

    resp = client.post("/wallet/pay", json={"userId": "u1", "amount": 40})
    assert resp.status_code == 200
    assert resp.json()["balance"] == 60

    history = client.get("/wallet/u1").json()
    assert history["balance"] == 60
    assert [(t["type"], t["amount"]) for t in history["transactions"]] == [("credit", 100), ("debit", 40)]
    assert "timestamp" in history["transactions"][0]


def test_wallet_history_of_unknown_user(client):
    resp = client.get("/wallet/nobody")
    assert resp.status_code == 200
    assert resp.json() == {"balance": 0, "transactions": []}


def test_wallet_rejects_invalid_payloads(client):
    for body in (
        {"userId": "u1", "amount": 0},
        {"userId": "u1", "amount": -3},
        {"userId": "u1", "amount": True},
        {"userId": "u1", "amount": 1.5},
        {"userId": "u1", "amount": "5"},
        {"amount": 5},
    ):
        resp = client.post("/wallet/add", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "ValidationError"
    assert client.get("/wallet/u1").json()["balance"] == 0


def test_wallet_reconciliation(client):
    client.post("/wallet/add", json={"userId": "u1", "amount": 80})
    client.post("/wallet/pay", json={"userId": "u1", "amount": 30})

    report = client.get("/wallet/u1/reconciliation").json()
    assert report == {
        "userId": "u1",
        "balance": 50,
        "computedBalance": 50,
        "transactionCount": 2,
        "balanced": True,
    }


def test_wallet_topup_is_idempotent(client):
    body = {"userId": "u1", "amount": 250, "paymentId": "pay_t1", "signature": topup_signature("u1", "pay_t1", 250)}

    first = client.post("/wallet/topup", json=body)
    second = client.post("/wallet/topup", json=body)
    assert first.status_code == second.status_code == 200
    assert first.json()["duplicate"] is False
    assert second.json()["duplicate"] is True
    assert client.get("/wallet/u1").json()["balance"] == 250

    forged = client.post("/wallet/topup", json={**body, "paymentId": "pay_t2"})
    assert forged.status_code == 400
    assert forged.json()["error"] == "VerificationFailed"


def test_create_and_query_orders(client):
    order = _create_order(client)
    assert order["status"] == "PendingPayment"
    assert order["customerId"] == "c1"
    assert order["paymentId"] is None
    assert "createdAt" in order

    _create_order(client, customer_id="c2")
    assert client.get(f"/orders/{order['id']}").json()["id"] == order["id"]
    assert [o["id"] for o in client.get("/orders/customer/c1").json()] == [order["id"]]
    assert len(client.get("/orders").json()) == 2


def test_create_order_rejects_bad_amount(client):
    for amount in (0, True, 499.5):
        resp = client.post(
            "/orders", json={"customerId": "c1", "service": "Hemming", "amount": amount, "address": "7 Hill Road"}
        )
        assert resp.status_code == 400
    assert client.get("/orders").json() == []


def test_missing_order_is_404(client):
    assert client.get("/orders/missing").status_code == 404
    resp = client.put("/orders/missing", json={"status": "Cancelled"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_status_updates_follow_the_graph(client):
    order = _create_order(client)

    resp = client.put(f"/orders/{order['id']}", json={"status": "Completed"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidTransition"

    verify = client.post(
        "/payment/verify",
        json={"orderId": order["id"], "paymentId": "pay_1", "signature": order_signature(order["id"], "pay_1")},
    )
    assert verify.status_code == 200

    resp = client.put(f"/orders/{order['id']}", json={"status": "InProgress"})
    assert resp.json() == {"id": order["id"], "status": "InProgress"}
    resp = client.post("/orders/update", json={"orderId": order["id"], "status": "Completed"})
    assert resp.json() == {"id": order["id"], "status": "Completed"}

    resp = client.put(f"/orders/{order['id']}", json={"status": "Cancelled"})
    assert resp.status_code == 400

    history = client.get(f"/orders/{order['id']}/history").json()
    assert [h["toStatus"] for h in history] == ["PendingPayment", "Pending", "InProgress", "Completed"]
    assert history[0]["fromStatus"] is None


def test_payment_verification_flow(client):
    order = _create_order(client)
    body = {"orderId": order["id"], "paymentId": "pay_1", "signature": order_signature(order["id"], "pay_1")}

    first = client.post("/payment/verify", json=body)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["orderId"] == order["id"]
    assert first.json()["duplicate"] is False

    second = client.post("/payment/verify", json=body)
    assert second.status_code == 200
    assert second.json()["duplicate"] is True

    stored = client.get(f"/orders/{order['id']}").json()
    assert stored["status"] == "Pending"
    assert stored["paymentId"] == "pay_1"


def test_payment_verification_rejects_bad_signature(client):
    order = _create_order(client)
    resp = client.post("/payment/verify", json={"orderId": order["id"], "paymentId": "pay_1", "signature": "bogus"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "VerificationFailed"
    assert client.get(f"/orders/{order['id']}").json()["status"] == "PendingPayment"


def test_payment_lookup_mode(client):
    order = _create_order(client)
    resp = client.post("/payment/verify", json={"paymentId": "pay_7", "customerId": "c1"})
    assert resp.status_code == 200
    assert resp.json()["orderId"] == order["id"]

    resp = client.post("/payment/verify", json={"paymentId": "pay_8", "customerId": "c1"})
    assert resp.status_code == 404


def test_payment_request_needs_mode_fields(client):
    resp = client.post("/payment/verify", json={"paymentId": "pay_1"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"


def test_notify_and_device_tokens(client, sender):
    payload = {"userId": "c1", "title": "Hello", "body": "Fitting at 5pm"}
    resp = client.post("/notify", json=payload)
    assert resp.status_code == 404

    assert client.put("/users/c1/device-token", json={"token": "device-a"}).json() == {"success": True}
    resp = client.post("/notify", json=payload)
    assert resp.status_code == 200
    assert sender.sent == [("device-a", "Hello", "Fitting at 5pm")]

    sender.fail = True
    resp = client.post("/notify", json=payload)
    assert resp.status_code == 502
    assert resp.json()["error"] == "DeliveryFailed"
