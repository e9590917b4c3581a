import pytest
import stripe

from storefront import config
from storefront.checkout import stripe_client
from storefront.errors import ProviderConfigurationError, ProviderError

def test_require_stripe_sets_api_key():
    mod = stripe_client.require_stripe()
    assert mod is stripe
    assert stripe.api_key == config.STRIPE_SECRET_KEY

def test_require_stripe_without_key(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "")
    with pytest.raises(ProviderConfigurationError):
        stripe_client.require_stripe()

def test_create_session_passes_card_payment_mode(monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    session = stripe_client.create_session(
        line_items=[{"quantity": 1}], success_url="ok", cancel_url="ko", metadata={"user_id": "u1"},
    )
    assert session["id"] == "cs_test_1"
    assert captured["mode"] == "payment"
    assert captured["payment_method_types"] == ["card"]
    assert captured["metadata"] == {"user_id": "u1"}

def test_create_session_wraps_stripe_errors(monkeypatch):
    def boom(**kwargs):
        raise stripe.StripeError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    with pytest.raises(ProviderError) as exc:
        stripe_client.create_session(line_items=[], success_url="ok", cancel_url="ko", metadata={"user_id": "u1"})
    assert exc.value.status_code == 502
    assert "network" not in exc.value.detail

def test_get_session_wraps_stripe_errors(monkeypatch):
    def boom(session_id):
        raise stripe.StripeError("no such session")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", boom)
    with pytest.raises(ProviderError):
        stripe_client.get_session("cs_missing")
