"""Lecture des profils utilisateurs (table users) pour enrichir les commandes."""
from typing import Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_user_by_id(user_id: str) -> Optional[dict]:
    """Récupère un utilisateur par id (table users).
    - Retour: dict utilisateur ou None si introuvable/erreur
    """
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select("id, email, full_name, role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("users.repository.get_user_by_id failed id=%s", user_id)
        return None
