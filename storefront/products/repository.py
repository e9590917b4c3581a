"""
Accès aux produits et au stock (registre d'inventaire).
- Lecture catalogue (list_products): client anon, erreur -> liste vide.
- Lectures unitaires et groupées (find_product, get_products_map): erreur -> StorageError,
  un produit illisible ne doit jamais passer pour un produit absent ou en rupture.
- Mouvements de stock: RPC Postgres atomiques (voir sql/schema.sql), client service-role.
  decrement_stock ne décrémente que si stock >= quantité; aucune ligne retournée = stock insuffisant.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.errors import StorageError

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, name, description, price, stock, category, image, alt, rating"

# module storefront.products.repository
def list_products(category: Optional[str] = None) -> List[dict]:
    try:
        query = supabase_client.get_supabase().table("products").select(PRODUCT_COLUMNS)
        if category:
            query = query.eq("category", category)
        res = query.order("created_at", desc=True).execute()
        return res.data or []
    except Exception:
        logger.exception("products.repository.list_products failed category=%s", category)
        return []

def find_product(product_id: str) -> Optional[dict]:
    if not product_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select(PRODUCT_COLUMNS)
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception as e:
        logger.exception("products.repository.find_product failed id=%s", product_id)
        raise StorageError() from e

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Retourne {id: produit} pour les IDs demandés (les IDs inconnus sont absents du dict).
    """
    id_list = [str(i) for i in ids if i]
    if not id_list:
        return {}
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select(PRODUCT_COLUMNS)
            .in_("id", id_list)
            .execute()
        )
        return {str(p.get("id")): p for p in (res.data or [])}
    except Exception as e:
        logger.exception("products.repository.get_products_map failed ids=%s", id_list)
        raise StorageError() from e

def decrement_stock(product_id: str, quantity: int) -> bool:
    """
    Décrément conditionnel atomique (UPDATE ... WHERE stock >= quantity).
    - True: stock décrémenté.
    - False: stock insuffisant au moment de l'écriture (aucune ligne modifiée).
    - StorageError: échec Supabase (l'appelant compense).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("decrement_stock", {"p_product_id": str(product_id), "p_quantity": int(quantity)})
            .execute()
        )
    except Exception as e:
        logger.exception("products.repository.decrement_stock failed id=%s qty=%s", product_id, quantity)
        raise StorageError() from e
    return res.data is not None

def increment_stock(product_id: str, quantity: int) -> None:
    """Remise en stock (compensation d'une finalisation interrompue)."""
    try:
        (
            supabase_client.get_service_supabase()
            .rpc("increment_stock", {"p_product_id": str(product_id), "p_quantity": int(quantity)})
            .execute()
        )
    except Exception as e:
        logger.exception("products.repository.increment_stock failed id=%s qty=%s", product_id, quantity)
        raise StorageError() from e
