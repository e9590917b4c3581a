"""Finalisation: panier -> commande persistée + décrément de stock + panier vidé.

Appelée de façon synchrone par le parcours wallet (avant redirection, finalisation
optimiste) et par le rapprochement carte (session Stripe payée).

Enchaînement (saga avec compensation, pas de transaction inter-tables côté Supabase):
  1. panier vide -> EmptyCartError (aucune commande créée)
  2. livraison invalide -> ValidationError (panier et stock intacts)
  3. stock courant vérifié produit par produit -> InsufficientStockError;
     montant déjà encaissé (carte) comparé au total -> ValidationError si écart
  4. commande insérée en 'processing' (prix et total figés maintenant)
  5. décrément conditionnel atomique par ligne; un refus (checkout concurrent)
     ou une erreur de stockage remet en stock les lignes déjà décrémentées et
     supprime la commande avant de propager l'erreur
  6. panier vidé en entier (y compris des articles ajoutés entre-temps)
"""
from typing import Any, Dict, List, Optional
import logging

from storefront.cart import repository as cart_repository
from storefront.checkout import pricing
from storefront.checkout.schemas import validate_shipping
from storefront.errors import EmptyCartError, InsufficientStockError, StorageError, ValidationError
from storefront.orders import repository as orders_repository
from storefront.orders import service as orders_service
from storefront.orders.models import OrderStatus, PaymentMethod
from storefront.products import repository as products_repository

logger = logging.getLogger(__name__)

def finalize(
    user_id: str,
    shipping: Any,
    payment_method: str,
    transaction_reference: Optional[str] = None,
    expected_amount: Optional[int] = None,
) -> Dict[str, Any]:
    """
    expected_amount: montant déjà encaissé (plus petite unité). Si le total du
    panier courant diffère, ValidationError avant toute écriture.
    """
    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError("Moyen de paiement inconnu")

    entries = cart_repository.get_cart(user_id)
    if not entries:
        raise EmptyCartError()
    shipping_snapshot = validate_shipping(shipping)

    products = products_repository.get_products_map(e["product_id"] for e in entries)
    pricing.check_stock(entries, products)
    line_items = pricing.snapshot_line_items(entries, products)
    total = pricing.compute_total(line_items)
    if expected_amount is not None and pricing.to_minor_units(total) != int(expected_amount):
        logger.error(
            "finalizer.finalize amount mismatch user_id=%s ref=%s paid=%s cart=%s",
            user_id, transaction_reference, expected_amount, pricing.to_minor_units(total),
        )
        raise ValidationError("Le montant payé ne correspond plus au contenu du panier")

    order = orders_repository.create_order({
        "user_id": user_id,
        "items": line_items,
        "total": pricing.format_money(total),
        "shipping": shipping_snapshot,
        "payment_method": method.value,
        "transaction_ref": transaction_reference,
        "status": OrderStatus.PROCESSING.value,
    })

    _decrement_all_or_compensate(order, line_items, products)

    try:
        cart_repository.clear_cart(user_id)
    except StorageError:
        # La commande et le stock sont cohérents; un panier non vidé reste corrigeable par l'utilisateur
        logger.error("finalizer.finalize cart not cleared user_id=%s order_id=%s", user_id, order.get("id"))

    logger.info(
        "finalizer.finalize order_id=%s user_id=%s method=%s total=%s ref=%s items=%s",
        order.get("id"), user_id, method.value, order.get("total"), transaction_reference, len(line_items),
    )
    return orders_service.populate_order(order, products)

def _decrement_all_or_compensate(
    order: Dict[str, Any],
    line_items: List[Dict[str, Any]],
    products: Dict[str, Dict[str, Any]],
) -> None:
    decremented: List[Dict[str, Any]] = []
    try:
        for item in line_items:
            if not products_repository.decrement_stock(item["product_id"], item["quantity"]):
                current = products_repository.find_product(item["product_id"]) or products.get(item["product_id"]) or {}
                raise InsufficientStockError(current.get("name") or item["product_id"], int(current.get("stock") or 0))
            decremented.append(item)
    except Exception:
        _compensate(order, decremented)
        raise

def _compensate(order: Dict[str, Any], decremented: List[Dict[str, Any]]) -> None:
    """Annule une finalisation partielle: remise en stock puis suppression de la commande."""
    order_id = order.get("id")
    for item in decremented:
        try:
            products_repository.increment_stock(item["product_id"], item["quantity"])
        except StorageError:
            logger.critical(
                "finalizer.compensate restock failed order_id=%s product_id=%s qty=%s (correction manuelle requise)",
                order_id, item["product_id"], item["quantity"],
            )
    try:
        orders_repository.delete_order(order_id)
    except StorageError:
        logger.critical("finalizer.compensate delete failed order_id=%s (correction manuelle requise)", order_id)
    logger.warning("finalizer.compensate order_id=%s restocked=%s", order_id, len(decremented))
