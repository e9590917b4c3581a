"""
Accès aux données du panier (table cart_items: user_id, product_id, quantity).
Le panier est la source de vérité des lignes de commande jusqu'à la finalisation.
"""
from typing import Dict, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.errors import StorageError

logger = logging.getLogger(__name__)

# module storefront.cart.repository
def get_cart(user_id: str) -> List[Dict]:
    """
    Retourne [{product_id, quantity}] pour l'utilisateur (ordre d'ajout).
    - Ignore les lignes de quantité <= 0.
    """
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .select("product_id, quantity")
            .eq("user_id", user_id)
            .order("created_at", desc=False)
            .execute()
        )
    except Exception as e:
        logger.exception("cart.repository.get_cart failed user_id=%s", user_id)
        raise StorageError() from e
    return [
        {"product_id": str(row.get("product_id")), "quantity": int(row.get("quantity") or 0)}
        for row in (res.data or [])
        if int(row.get("quantity") or 0) > 0
    ]

def get_entry(user_id: str, product_id: str) -> Optional[Dict]:
    for entry in get_cart(user_id):
        if entry["product_id"] == str(product_id):
            return entry
    return None

def upsert_entry(user_id: str, product_id: str, quantity: int) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .upsert(
                {"user_id": user_id, "product_id": str(product_id), "quantity": int(quantity)},
                on_conflict="user_id,product_id",
            )
            .execute()
        )
    except Exception as e:
        logger.exception("cart.repository.upsert_entry failed user_id=%s product_id=%s", user_id, product_id)
        raise StorageError() from e

def remove_entry(user_id: str, product_id: str) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("cart_items")
            .delete()
            .eq("user_id", user_id)
            .eq("product_id", str(product_id))
            .execute()
        )
    except Exception as e:
        logger.exception("cart.repository.remove_entry failed user_id=%s product_id=%s", user_id, product_id)
        raise StorageError() from e

def clear_cart(user_id: str) -> None:
    """Vide tout le panier de l'utilisateur (pas seulement les lignes commandées)."""
    try:
        supabase_client.get_service_supabase().table("cart_items").delete().eq("user_id", user_id).execute()
    except Exception as e:
        logger.exception("cart.repository.clear_cart failed user_id=%s", user_id)
        raise StorageError() from e
