"""Cas d'usage du panier: consultation, ajout, mise à jour de quantité, retrait.
Les contrôles de stock ici sont indicatifs (confort UX); la garantie réelle
est le décrément conditionnel effectué à la finalisation de la commande.
"""
from typing import Any, Dict, List

from storefront.cart import repository as cart_repository
from storefront.products import repository as products_repository
from storefront.errors import InsufficientStockError, NotFoundError, ValidationError

def get_cart_view(user_id: str) -> List[Dict[str, Any]]:
    """Lignes du panier avec le produit résolu (product=None si supprimé du catalogue)."""
    entries = cart_repository.get_cart(user_id)
    products = products_repository.get_products_map(e["product_id"] for e in entries)
    return [
        {"product_id": e["product_id"], "quantity": e["quantity"], "product": products.get(e["product_id"])}
        for e in entries
    ]

def _require_product(product_id: str) -> Dict[str, Any]:
    product = products_repository.find_product(product_id)
    if not product:
        raise NotFoundError("Produit introuvable")
    return product

def _require_positive(quantity: int) -> int:
    if quantity is None or int(quantity) <= 0:
        raise ValidationError("La quantité doit être supérieure à 0")
    return int(quantity)

def add_to_cart(user_id: str, product_id: str, quantity: int) -> List[Dict[str, Any]]:
    """
    Ajoute (ou cumule) un produit au panier.
    - La quantité totale dans le panier ne peut dépasser le stock courant.
    """
    quantity = _require_positive(quantity)
    product = _require_product(product_id)
    stock = int(product.get("stock") or 0)
    existing = cart_repository.get_entry(user_id, product_id)
    wanted = quantity + (existing["quantity"] if existing else 0)
    if wanted > stock:
        raise InsufficientStockError(product.get("name") or "items", stock)
    cart_repository.upsert_entry(user_id, product_id, wanted)
    return get_cart_view(user_id)

def update_quantity(user_id: str, product_id: str, quantity: int) -> List[Dict[str, Any]]:
    quantity = _require_positive(quantity)
    product = _require_product(product_id)
    stock = int(product.get("stock") or 0)
    if quantity > stock:
        raise InsufficientStockError(product.get("name") or "items", stock)
    if not cart_repository.get_entry(user_id, product_id):
        raise NotFoundError("Article absent du panier")
    cart_repository.upsert_entry(user_id, product_id, quantity)
    return get_cart_view(user_id)

def remove_from_cart(user_id: str, product_id: str) -> List[Dict[str, Any]]:
    cart_repository.remove_entry(user_id, product_id)
    return get_cart_view(user_id)
