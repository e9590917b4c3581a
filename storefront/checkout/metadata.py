"""
Sérialisation/désérialisation des métadonnées Stripe (user_id, adresse de livraison).
Stripe limite chaque valeur à 500 caractères: un champ de livraison = une clé
(shipping_name, shipping_email, ...), pas de JSON tronqué.
"""
from typing import Any, Dict, Optional, Tuple

from storefront.checkout.schemas import SHIPPING_FIELDS

SHIPPING_PREFIX = "shipping_"
METADATA_VALUE_MAX = 500

# module storefront.checkout.metadata
def make_metadata(user_id: str, shipping: Dict[str, str]) -> Dict[str, str]:
    """
    Métadonnées attachées à la session Checkout, relues au rapprochement
    (le parcours carte ne renvoie jamais l'adresse de lui-même).
    """
    metadata = {"user_id": str(user_id)}
    for field in SHIPPING_FIELDS:
        metadata[f"{SHIPPING_PREFIX}{field}"] = str(shipping.get(field) or "")[:METADATA_VALUE_MAX]
    return metadata

def extract_metadata_from_session(session: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, str]]:
    """
    Extrait (user_id, shipping) depuis une session Stripe Checkout.
    - Champs de livraison absents -> chaînes vides (la validation les signalera).
    """
    meta = (session or {}).get("metadata") or {}
    user_id = meta.get("user_id") or None
    shipping = {field: str(meta.get(f"{SHIPPING_PREFIX}{field}") or "") for field in SHIPPING_FIELDS}
    return user_id, shipping
