import copy
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

# Pas de Redis pendant les tests (le lifespan lit cette variable au démarrage)
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from storefront import config
from storefront.app import app as fastapi_app
from storefront.auth.models import AuthenticatedUser
from storefront.errors import StorageError
from storefront.utils.security import require_admin, require_user

TEST_USER_ID = "test-user"
TEST_SALT = "test-integrity-salt"

SHIPPING = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "address": "12 Mall Road",
    "city": "Lahore",
    "state": "Punjab",
    "zip": "54000",
}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)


class InMemoryStore:
    """
    Remplace les dépôts Supabase (produits, panier, commandes, profils) par des dicts.
    - decrement_stock reproduit le UPDATE ... WHERE stock >= quantité (sous verrou).
    - transaction_ref unique, comme la contrainte SQL.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.products: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, List[Dict[str, Any]]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.fail_decrement_for: Optional[str] = None
        self.fail_clear_cart = False

    # --- fixtures de données
    def add_product(self, product_id: str, name: str, price: str, stock: int, category: str = "general") -> Dict[str, Any]:
        self.products[product_id] = {
            "id": product_id, "name": name, "price": price, "stock": stock,
            "category": category, "description": "", "image": None, "alt": None, "rating": None,
        }
        return self.products[product_id]

    def put_in_cart(self, user_id: str, product_id: str, quantity: int) -> None:
        self.upsert_entry(user_id, product_id, quantity)

    def stock(self, product_id: str) -> int:
        return self.products[product_id]["stock"]

    def cart_of(self, user_id: str) -> List[Dict[str, Any]]:
        return self.get_cart(user_id)

    # --- products.repository
    def list_products(self, category=None):
        with self.lock:
            return [copy.deepcopy(p) for p in self.products.values() if not category or p.get("category") == category]

    def find_product(self, product_id):
        with self.lock:
            p = self.products.get(str(product_id))
            return copy.deepcopy(p) if p else None

    def get_products_map(self, ids):
        with self.lock:
            return {str(i): copy.deepcopy(self.products[str(i)]) for i in ids if i and str(i) in self.products}

    def decrement_stock(self, product_id, quantity):
        with self.lock:
            if self.fail_decrement_for == str(product_id):
                raise StorageError()
            product = self.products.get(str(product_id))
            if not product or product["stock"] < int(quantity):
                return False
            product["stock"] -= int(quantity)
            return True

    def increment_stock(self, product_id, quantity):
        with self.lock:
            product = self.products.get(str(product_id))
            if product:
                product["stock"] += int(quantity)

    # --- cart.repository
    def get_cart(self, user_id):
        with self.lock:
            return [dict(e) for e in self.carts.get(user_id, [])]

    def get_entry(self, user_id, product_id):
        for entry in self.get_cart(user_id):
            if entry["product_id"] == str(product_id):
                return entry
        return None

    def upsert_entry(self, user_id, product_id, quantity):
        with self.lock:
            lines = self.carts.setdefault(user_id, [])
            for line in lines:
                if line["product_id"] == str(product_id):
                    line["quantity"] = int(quantity)
                    return
            lines.append({"product_id": str(product_id), "quantity": int(quantity)})

    def remove_entry(self, user_id, product_id):
        with self.lock:
            self.carts[user_id] = [e for e in self.carts.get(user_id, []) if e["product_id"] != str(product_id)]

    def clear_cart(self, user_id):
        if self.fail_clear_cart:
            raise StorageError()
        with self.lock:
            self.carts.pop(user_id, None)

    # --- orders.repository
    def create_order(self, row):
        with self.lock:
            ref = row.get("transaction_ref")
            if ref and any(o.get("transaction_ref") == ref for o in self.orders.values()):
                raise StorageError()
            order = copy.deepcopy(row)
            order["id"] = str(uuid.uuid4())
            order["created_at"] = datetime.now(timezone.utc).isoformat()
            self.orders[order["id"]] = order
            return copy.deepcopy(order)

    def find_order_by_id(self, order_id):
        with self.lock:
            o = self.orders.get(order_id)
            return copy.deepcopy(o) if o else None

    def find_order_by_reference(self, transaction_ref):
        with self.lock:
            for o in self.orders.values():
                if transaction_ref and o.get("transaction_ref") == transaction_ref:
                    return copy.deepcopy(o)
            return None

    def update_order_status(self, order_id, status):
        with self.lock:
            if order_id not in self.orders:
                return None
            self.orders[order_id]["status"] = status
            return copy.deepcopy(self.orders[order_id])

    def delete_order(self, order_id):
        with self.lock:
            self.orders.pop(order_id, None)

    def list_orders(self, limit=100):
        with self.lock:
            return [copy.deepcopy(o) for o in list(self.orders.values())[:limit]]

    def list_user_orders(self, user_id, limit=50):
        with self.lock:
            return [copy.deepcopy(o) for o in self.orders.values() if o.get("user_id") == user_id][:limit]

    # --- users.repository
    def get_user_by_id(self, user_id):
        return copy.deepcopy(self.users.get(user_id)) if user_id else None


REPOSITORY_FUNCTIONS = {
    "storefront.products.repository": ("list_products", "find_product", "get_products_map", "decrement_stock", "increment_stock"),
    "storefront.cart.repository": ("get_cart", "get_entry", "upsert_entry", "remove_entry", "clear_cart"),
    "storefront.orders.repository": (
        "create_order", "find_order_by_id", "find_order_by_reference",
        "update_order_status", "delete_order", "list_orders", "list_user_orders",
    ),
    "storefront.users.repository": ("get_user_by_id",),
}


@pytest.fixture(scope="function", autouse=True)
def store(monkeypatch) -> InMemoryStore:
    """
    Aucun test n'atteint Supabase: clients remplacés par des MagicMock et
    fonctions de dépôt redirigées vers le store en mémoire.
    """
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())

    s = InMemoryStore()
    s.users[TEST_USER_ID] = {"id": TEST_USER_ID, "email": "test@example.com", "full_name": "Test User", "role": "user"}
    for module_path, names in REPOSITORY_FUNCTIONS.items():
        for name in names:
            monkeypatch.setattr(f"{module_path}.{name}", getattr(s, name))
    return s


@pytest.fixture(autouse=True)
def provider_settings(monkeypatch):
    """Configuration prestataires de test (valeurs fixes, jamais de vraies clés)."""
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_dummy")
    monkeypatch.setattr(config, "STRIPE_CURRENCY", "usd")
    monkeypatch.setattr(config, "JAZZ_MERCHANT_ID", "MC12345")
    monkeypatch.setattr(config, "JAZZ_PASSWORD", "pass123")
    monkeypatch.setattr(config, "JAZZ_INTEGRITY_SALT", TEST_SALT)
    monkeypatch.setattr(config, "JAZZ_SANDBOX_URL", "https://sandbox.jazzcash.test/CustomerPortal/transactionmanagement/merchantform/")
    monkeypatch.setattr(config, "JAZZ_RETURN_URL", "http://localhost:8000/api/v1/checkout/jazz/return")
    monkeypatch.setattr(config, "JAZZ_CURRENCY", "PKR")
    monkeypatch.setattr(config, "JAZZ_VERIFY_CALLBACK_HASH", True)
    monkeypatch.setattr(config, "CLIENT_URL", "http://localhost:3000")
    monkeypatch.setattr(config, "CHECKOUT_SUCCESS_PATH", "/checkout/success")
    monkeypatch.setattr(config, "CHECKOUT_CANCEL_PATH", "/checkout")


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def test_user() -> AuthenticatedUser:
    return AuthenticatedUser(id=TEST_USER_ID, email="test@example.com", role="user", token="fake-token")

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, test_user):
    app.dependency_overrides[require_user] = lambda: test_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def authenticated_admin_client(app, client):
    admin = AuthenticatedUser(id="admin-user-id", email="admin@example.com", role="admin")
    app.dependency_overrides[require_admin] = lambda: admin
    yield client
    app.dependency_overrides.pop(require_admin, None)

@pytest.fixture
def shipping() -> Dict[str, str]:
    return dict(SHIPPING)
