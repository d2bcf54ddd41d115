"""
Scenario: normal flow through the HTTP API.

Create order -> confirmed -> processing -> shipped -> delivered -> refunded.

Expect:
- every step accepted, tracking history recorded in order
- timeline fully completed once delivered, single step once refunded
- nothing accepted after the terminal refund
"""
from app.order_state import OrderStatus

EXPECTED_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.REFUNDED,
]


def test_normal_flow(client, store, admin_headers):
    resp = client.post(
        "/orders",
        json={
            "user_id": "user-normal",
            "items": [{"product_id": "prod-9", "product_name": "Lehenga", "quantity": 1, "price": "8000"}],
        },
    )
    assert resp.status_code == 201
    order_id = resp.json()["id"]
    assert resp.json()["totals"]["total"] == "9440.00"

    for status in ("confirmed", "processing", "shipped", "delivered"):
        resp = client.patch(f"/admin/orders/{order_id}/status", json={"status": status}, headers=admin_headers)
        assert resp.status_code == 200, resp.json()

    delivered = resp.json()["order"]
    assert delivered["delivered_at"] is not None

    timeline = client.get(f"/orders/{order_id}/timeline").json()
    assert all(step["completed"] for step in timeline["steps"])
    assert timeline["steps"][-1]["current"]

    resp = client.post(f"/admin/orders/{order_id}/refund", json={}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["refund_amount"] == "9440.00"

    timeline = client.get(f"/orders/{order_id}/timeline").json()
    assert [s["status"] for s in timeline["steps"]] == ["refunded"]
    assert [e["status"] for e in timeline["history"]] == [s.value for s in EXPECTED_SEQUENCE]

    resp = client.patch(f"/admin/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)
    assert resp.status_code == 409
