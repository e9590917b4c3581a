from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from storefront.checkout.finalizer import finalize
from storefront.errors import EmptyCartError, InsufficientStockError, StorageError, ValidationError

USER = "test-user"

@pytest.fixture
def kettle(store):
    return store.add_product("p1", "Kettle", "50.00", 10)

def test_finalize_creates_processing_order_and_consumes_cart(store, kettle, shipping):
    store.put_in_cart(USER, "p1", 2)

    order = finalize(USER, shipping, "wallet", transaction_reference="T20240101000000ABCDE")

    assert order["status"] == "processing"
    assert Decimal(order["total"]) == Decimal("100.00")
    assert order["payment_method"] == "wallet"
    assert order["transaction_ref"] == "T20240101000000ABCDE"
    assert order["shipping"] == shipping
    assert order["items"][0]["quantity"] == 2
    assert order["items"][0]["price"] == "50.00"
    assert order["items"][0]["product"]["name"] == "Kettle"
    assert order["user"]["id"] == USER
    assert store.stock("p1") == 8
    assert store.cart_of(USER) == []
    assert len(store.orders) == 1

def test_finalize_total_matches_line_items(store, shipping):
    store.add_product("a", "A", "19.99", 5)
    store.add_product("b", "B", "0.10", 5)
    store.put_in_cart(USER, "a", 3)
    store.put_in_cart(USER, "b", 3)

    order = finalize(USER, shipping, "card", transaction_reference="cs_test_1")

    expected = sum(Decimal(li["price"]) * li["quantity"] for li in order["items"])
    assert Decimal(order["total"]) == expected == Decimal("60.27")

def test_finalize_empty_cart(store, shipping):
    with pytest.raises(EmptyCartError):
        finalize(USER, shipping, "wallet")
    assert store.orders == {}

def test_finalize_empty_cart_checked_before_shipping(store):
    with pytest.raises(EmptyCartError):
        finalize(USER, {}, "wallet")

def test_finalize_invalid_shipping_leaves_state_untouched(store, kettle, shipping):
    store.put_in_cart(USER, "p1", 1)

    with pytest.raises(ValidationError) as exc:
        finalize(USER, dict(shipping, zip=""), "wallet")

    assert "zip" in exc.value.detail
    assert store.orders == {}
    assert store.stock("p1") == 10
    assert store.cart_of(USER) == [{"product_id": "p1", "quantity": 1}]

def test_finalize_unknown_payment_method(store, kettle, shipping):
    store.put_in_cart(USER, "p1", 1)
    with pytest.raises(ValidationError):
        finalize(USER, shipping, "cash")

def test_finalize_insufficient_stock(store, shipping):
    store.add_product("p1", "Lamp", "10.00", 2)
    store.put_in_cart(USER, "p1", 3)

    with pytest.raises(InsufficientStockError) as exc:
        finalize(USER, shipping, "wallet")

    assert exc.value.detail == "Seulement 2 Lamp en stock"
    assert store.orders == {}
    assert store.stock("p1") == 2
    assert store.cart_of(USER) == [{"product_id": "p1", "quantity": 3}]

def test_finalize_compensates_when_a_later_line_loses_the_race(store, monkeypatch, shipping):
    store.add_product("a", "A", "5.00", 5)
    store.add_product("b", "B", "7.00", 1)
    store.put_in_cart(USER, "a", 2)
    store.put_in_cart(USER, "b", 1)

    original = store.decrement_stock

    def racing_decrement(product_id, quantity):
        if product_id == "b":
            # Un autre checkout a pris le dernier B entre la vérification et l'écriture
            store.products["b"]["stock"] = 0
        return original(product_id, quantity)

    monkeypatch.setattr("storefront.products.repository.decrement_stock", racing_decrement)

    with pytest.raises(InsufficientStockError) as exc:
        finalize(USER, shipping, "wallet")

    assert exc.value.product_name == "B"
    assert exc.value.available == 0
    assert store.stock("a") == 5
    assert store.orders == {}
    assert len(store.cart_of(USER)) == 2

def test_finalize_compensates_on_storage_failure(store, shipping):
    store.add_product("a", "A", "5.00", 5)
    store.add_product("b", "B", "7.00", 5)
    store.put_in_cart(USER, "a", 1)
    store.put_in_cart(USER, "b", 1)
    store.fail_decrement_for = "b"

    with pytest.raises(StorageError):
        finalize(USER, shipping, "card")

    assert store.stock("a") == 5
    assert store.orders == {}

def test_finalize_keeps_order_when_cart_cannot_be_cleared(store, kettle, shipping):
    store.put_in_cart(USER, "p1", 1)
    store.fail_clear_cart = True

    order = finalize(USER, shipping, "wallet")

    assert order["status"] == "processing"
    assert store.stock("p1") == 9
    assert len(store.orders) == 1

def test_concurrent_finalize_never_oversells(store, shipping):
    store.add_product("last", "Last One", "25.00", 1)
    users = [f"user-{i}" for i in range(6)]
    for u in users:
        store.put_in_cart(u, "last", 1)

    def attempt(user_id):
        try:
            return finalize(user_id, shipping, "wallet", transaction_reference=f"ref-{user_id}")
        except InsufficientStockError:
            return None

    with ThreadPoolExecutor(max_workers=len(users)) as pool:
        results = list(pool.map(attempt, users))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert store.stock("last") == 0
    assert len(store.orders) == 1

def test_finalize_card_without_reference(store, kettle, shipping):
    store.put_in_cart(USER, "p1", 2)

    order = finalize(USER, shipping, "card")

    assert order["transaction_ref"] is None
    assert order["total"] == "100.00"
    assert order["status"] == "processing"
    assert store.stock("p1") == 8
