"""
Accès aux commandes (table orders).
Les lignes (items), le total et transaction_ref sont figés à la création;
seul status évolue ensuite. Écritures via le client service-role.
"""
from typing import Any, Dict, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.errors import StorageError

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "id, user_id, items, total, shipping, payment_method, transaction_ref, status, created_at"

# module storefront.orders.repository
def create_order(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère la commande et retourne la ligne créée (id, created_at renseignés par la base).
    """
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(row).execute()
    except Exception as e:
        logger.exception("orders.repository.create_order failed user_id=%s", row.get("user_id"))
        raise StorageError() from e
    rows = res.data or []
    if not rows:
        logger.error("orders.repository.create_order returned no row user_id=%s", row.get("user_id"))
        raise StorageError()
    return rows[0]

def find_order_by_id(order_id: str) -> Optional[dict]:
    if not order_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_COLUMNS)
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("orders.repository.find_order_by_id failed id=%s", order_id)
        return None

def find_order_by_reference(transaction_ref: str) -> Optional[dict]:
    """Recherche par référence prestataire (pp_TxnRefNo JazzCash ou id de session Stripe)."""
    if not transaction_ref:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_COLUMNS)
            .eq("transaction_ref", transaction_ref)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.find_order_by_reference failed ref=%s", transaction_ref)
        raise StorageError() from e
    rows = res.data or []
    return rows[0] if rows else None

def update_order_status(order_id: str, status: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update({"status": status})
            .eq("id", order_id)
            .execute()
        )
    except Exception as e:
        logger.exception("orders.repository.update_order_status failed id=%s status=%s", order_id, status)
        raise StorageError() from e
    rows = res.data or []
    return rows[0] if rows else None

def delete_order(order_id: str) -> None:
    try:
        supabase_client.get_service_supabase().table("orders").delete().eq("id", order_id).execute()
    except Exception as e:
        logger.exception("orders.repository.delete_order failed id=%s", order_id)
        raise StorageError() from e

def list_orders(limit: int = 100) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_orders failed")
        return []

def list_user_orders(user_id: str, limit: int = 50) -> List[dict]:
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_user_orders failed user_id=%s", user_id)
        return []
