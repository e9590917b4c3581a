from unittest.mock import MagicMock

import pytest

from storefront.checkout.metadata import make_metadata
from storefront.products import repository as products_repository

REAL_GET_PRODUCTS_MAP = products_repository.get_products_map

USER = "test-user"

@pytest.fixture
def fake_stripe(monkeypatch):
    created = []
    sessions = {}

    def create_session(**kwargs):
        created.append(kwargs)
        session_id = f"cs_test_{len(created)}"
        amount_total = sum(li["price_data"]["unit_amount"] * li["quantity"] for li in kwargs["line_items"])
        sessions[session_id] = {
            "id": session_id, "payment_status": "paid", "amount_total": amount_total, "metadata": kwargs["metadata"],
        }
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    monkeypatch.setattr("storefront.checkout.stripe_client.create_session", create_session)
    monkeypatch.setattr("storefront.checkout.stripe_client.get_session", lambda sid: sessions[sid])
    return {"created": created, "sessions": sessions}

def _seed(store):
    store.add_product("p1", "Headphones", "199.99", 3)
    store.put_in_cart(USER, "p1", 1)

def _webhook_with(monkeypatch, event):
    async def fake_parse_event(request):
        return event
    monkeypatch.setattr("storefront.checkout.stripe_client.parse_event", fake_parse_event)

def test_create_checkout_session(client, store, fake_stripe, shipping):
    _seed(store)
    res = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping})

    assert res.status_code == 200
    assert res.json() == {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    kwargs = fake_stripe["created"][0]
    assert kwargs["success_url"] == "http://localhost:3000/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert kwargs["cancel_url"] == "http://localhost:3000/checkout"
    assert store.orders == {}

def test_create_checkout_session_empty_cart(client, fake_stripe, shipping):
    res = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping})
    assert res.status_code == 400
    assert fake_stripe["created"] == []

def test_webhook_finalizes_paid_session_once(client, store, monkeypatch, fake_stripe, shipping):
    _seed(store)
    session_id = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping}).json()["id"]
    event = {"type": "checkout.session.completed", "data": {"object": fake_stripe["sessions"][session_id]}}
    _webhook_with(monkeypatch, event)

    first = client.post("/api/v1/checkout/webhook", content=b"{}")
    second = client.post("/api/v1/checkout/webhook", content=b"{}")

    assert first.status_code == 200 and first.json()["status"] == "completed"
    assert second.json()["status"] == "already_completed"
    (order,) = store.orders.values()
    assert order["transaction_ref"] == session_id
    assert order["status"] == "completed"
    assert store.stock("p1") == 2

def test_confirm_after_webhook_is_idempotent(client, store, monkeypatch, fake_stripe, shipping):
    _seed(store)
    session_id = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping}).json()["id"]
    _webhook_with(monkeypatch, {"type": "checkout.session.completed", "data": {"object": fake_stripe["sessions"][session_id]}})
    client.post("/api/v1/checkout/webhook", content=b"{}")

    res = client.get("/api/v1/checkout/confirm", params={"session_id": session_id})

    assert res.status_code == 200
    assert res.json()["status"] == "already_completed"
    assert res.json()["order"]["transaction_ref"] == session_id
    assert len(store.orders) == 1

def test_confirm_other_users_session_is_404(client, store, fake_stripe, shipping):
    fake_stripe["sessions"]["cs_other"] = {
        "id": "cs_other", "payment_status": "paid", "metadata": make_metadata("someone-else", shipping),
    }
    res = client.get("/api/v1/checkout/confirm", params={"session_id": "cs_other"})
    assert res.status_code == 404

def test_webhook_ignores_other_events(client, monkeypatch):
    _webhook_with(monkeypatch, {"type": "customer.created", "data": {"object": {}}})
    res = client.post("/api/v1/checkout/webhook", content=b"{}")
    assert res.json() == {"status": "ignored"}

def test_webhook_rejects_invalid_signature(client):
    res = client.post(
        "/api/v1/checkout/webhook",
        content=b'{"type": "checkout.session.completed"}',
        headers={"stripe-signature": "t=1,v1=deadbeef"},
    )
    assert res.status_code == 400

def test_webhook_catalog_outage_is_500_so_stripe_retries(client, store, monkeypatch, fake_stripe, shipping):
    _seed(store)
    session_id = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping}).json()["id"]
    _webhook_with(monkeypatch, {"type": "checkout.session.completed", "data": {"object": fake_stripe["sessions"][session_id]}})
    broken = MagicMock()
    broken.table.side_effect = RuntimeError("connection reset")
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: broken)
    monkeypatch.setattr("storefront.products.repository.get_products_map", REAL_GET_PRODUCTS_MAP)

    res = client.post("/api/v1/checkout/webhook", content=b"{}")

    assert res.status_code == 500
    assert res.json() == {"detail": "Erreur de stockage"}
    assert store.orders == {}
    assert store.stock("p1") == 3

def test_webhook_rejects_cart_changed_after_session(client, store, monkeypatch, fake_stripe, shipping):
    _seed(store)
    session_id = client.post("/api/v1/checkout/create-checkout-session", json={"shipping": shipping}).json()["id"]
    store.put_in_cart(USER, "p1", 3)
    _webhook_with(monkeypatch, {"type": "checkout.session.completed", "data": {"object": fake_stripe["sessions"][session_id]}})

    res = client.post("/api/v1/checkout/webhook", content=b"{}")

    assert res.status_code == 200
    assert res.json()["status"] == "rejected"
    assert store.orders == {}
    assert store.stock("p1") == 3
