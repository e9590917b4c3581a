"""Initiation des sessions de paiement (carte Stripe, wallet JazzCash).

- Carte: aucune écriture locale; la session Stripe porte user_id + livraison en
  métadonnées, la commande est créée au rapprochement (webhook ou /confirm).
- Wallet: finalisation optimiste avant redirection; la commande existe en
  'processing' avant que l'utilisateur ait payé, le rapprochement ne fait
  ensuite que basculer le statut.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront import config
from storefront.cart import repository as cart_repository
from storefront.checkout import finalizer, jazzcash, pricing, stripe_client
from storefront.checkout import metadata as meta
from storefront.checkout.schemas import validate_shipping
from storefront.errors import EmptyCartError
from storefront.orders.models import PaymentMethod
from storefront.products import repository as products_repository

def initiate_card_session(user_id: str, shipping: Any, success_url: str, cancel_url: str) -> Dict[str, Any]:
    """
    Prépare la session Stripe Checkout à partir du panier courant.
    - Prix unitaires relus en base (pas de prix client).
    - Pas de contrôle de stock ici: il est fait à la finalisation.
    Retour: {"id": <session_id>, "url": <url hébergée>}
    """
    entries = cart_repository.get_cart(user_id)
    if not entries:
        raise EmptyCartError()
    shipping_snapshot = validate_shipping(shipping)

    products = products_repository.get_products_map(e["product_id"] for e in entries)
    line_items = pricing.snapshot_line_items(entries, products)
    session = stripe_client.create_session(
        line_items=pricing.to_stripe_line_items(line_items, products, config.STRIPE_CURRENCY),
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=meta.make_metadata(user_id, shipping_snapshot),
    )
    return {"id": session.get("id"), "url": session.get("url")}

def initiate_wallet_session(user_id: str, shipping: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Crée la commande (finalisation synchrone) puis le formulaire JazzCash signé.
    - Configuration JazzCash vérifiée avant toute écriture.
    - pp_Amount = total de la commande en paisa.
    Retour: {"action": <url JazzCash>, "formData": {...}, "orderId": <id>}
    """
    jazzcash.require_jazzcash()
    now = now or datetime.now(timezone.utc)
    txn_ref = jazzcash.generate_txn_ref(now)

    order = finalizer.finalize(user_id, shipping, PaymentMethod.WALLET, transaction_reference=txn_ref)

    form_data = jazzcash.build_form_fields(
        txn_ref=txn_ref,
        amount=pricing.to_minor_units(order["total"]),
        now=now,
    )
    return {"action": config.JAZZ_SANDBOX_URL, "formData": form_data, "orderId": order.get("id")}
