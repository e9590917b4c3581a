"""
Logique panier -> lignes de commande, pure (pas de Stripe, pas de DB).
Montants en Decimal, arrondi commercial (ROUND_HALF_UP) au centime.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from storefront.errors import InsufficientStockError, ValidationError

CENT = Decimal("0.01")

# module storefront.checkout.pricing
def to_decimal(value: Any) -> Decimal:
    """
    Convertit un prix str|float|int|Decimal en Decimal (via str pour éviter les artefacts float).
    Lève ValidationError si la valeur est absente, illisible ou non finie (jamais de prix à 0 par défaut).
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        amount = None
    if value is None or amount is None or not amount.is_finite():
        raise ValidationError(f"Prix invalide: {value!r}")
    return amount

def quantize_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

def format_money(value: Any) -> str:
    return f"{quantize_money(value):.2f}"

def to_minor_units(amount: Any) -> int:
    """Montant en plus petite unité (cents / paisa): 199.99 -> 19999."""
    return int((to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def check_stock(entries: Iterable[Dict[str, Any]], products_by_id: Dict[str, Dict[str, Any]]) -> None:
    """
    Vérifie, produit par produit, que le stock courant couvre la quantité demandée.
    Un produit disparu du catalogue compte comme stock 0.
    """
    for entry in entries:
        product = products_by_id.get(str(entry["product_id"]))
        available = int((product or {}).get("stock") or 0)
        if not product or available < int(entry["quantity"]):
            name = (product or {}).get("name") or str(entry["product_id"])
            raise InsufficientStockError(name, available)

def snapshot_line_items(entries: Iterable[Dict[str, Any]], products_by_id: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Fige les lignes {product_id, quantity, price} avec le prix *stocké* du produit
    (jamais un prix fourni par le client).
    """
    line_items: List[Dict[str, Any]] = []
    for entry in entries:
        product = products_by_id.get(str(entry["product_id"]))
        if not product:
            raise ValidationError("Un article du panier n'est plus disponible")
        line_items.append({
            "product_id": str(entry["product_id"]),
            "quantity": int(entry["quantity"]),
            "price": format_money(product.get("price")),
        })
    return line_items

def compute_total(line_items: Iterable[Dict[str, Any]]) -> Decimal:
    total = sum((to_decimal(li["price"]) * int(li["quantity"]) for li in line_items), Decimal("0"))
    return quantize_money(total)

def to_stripe_line_items(
    line_items: Iterable[Dict[str, Any]],
    products_by_id: Dict[str, Dict[str, Any]],
    currency: str,
) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data, unit_amount en centimes, product_data.name).
    """
    stripe_items: List[Dict[str, Any]] = []
    for li in line_items:
        product = products_by_id.get(li["product_id"]) or {}
        stripe_items.append({
            "quantity": li["quantity"],
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(li["price"]),
                "product_data": {"name": product.get("name") or "Article"},
            },
        })
    return stripe_items
