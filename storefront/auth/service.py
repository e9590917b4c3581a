"""
Résolution d'un access token en utilisateur authentifié.
L'émission des tokens (login/signup) est gérée par Supabase Auth côté front.
"""
from typing import Any, Dict, Optional
import logging
import jwt

from storefront import config
from storefront.auth.models import AuthenticatedUser
from storefront.infra import supabase_client

logger = logging.getLogger(__name__)

def determine_role(metadata: Dict[str, Any] | None) -> str:
    role_lower = str((metadata or {}).get("role", "")).lower()
    if role_lower == "admin":
        return "admin"
    return "user"

def _decode_locally(token: str) -> Optional[Dict[str, Any]]:
    # Supabase signe ses JWT en HS256 avec le secret du projet
    claims = jwt.decode(
        token,
        config.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        options={"verify_aud": False},
    )
    if not claims.get("sub"):
        return None
    return {
        "id": claims.get("sub"),
        "email": claims.get("email"),
        "metadata": claims.get("user_metadata") or {},
    }

def _fetch_from_supabase(token: str) -> Optional[Dict[str, Any]]:
    res = supabase_client.get_supabase().auth.get_user(token)
    # supabase-py retourne un objet avec attribut 'user' ou un dict
    user = getattr(res, "user", None) or (res.get("user") if isinstance(res, dict) else None)
    if not user:
        return None
    if isinstance(user, dict):
        return {"id": user.get("id"), "email": user.get("email"), "metadata": user.get("user_metadata") or {}}
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "metadata": getattr(user, "user_metadata", None) or {},
    }

def get_user_from_token(token: str) -> Optional[AuthenticatedUser]:
    """
    Valide le token et construit l'AuthenticatedUser de la requête.
    - SUPABASE_JWT_SECRET défini: vérification locale (PyJWT), pas d'aller-retour réseau.
    - Sinon: délègue à supabase.auth.get_user(token).
    Retourne None si le token est invalide ou expiré.
    """
    if not token:
        return None
    try:
        if config.SUPABASE_JWT_SECRET:
            data = _decode_locally(token)
        else:
            data = _fetch_from_supabase(token)
    except jwt.PyJWTError as e:
        logger.info("auth.get_user_from_token invalid token: %s", e)
        return None
    except Exception:
        logger.exception("auth.get_user_from_token failed")
        return None
    if not data or not data.get("id"):
        return None
    return AuthenticatedUser(
        id=str(data["id"]),
        email=data.get("email"),
        role=determine_role(data.get("metadata")),
        token=token,
        metadata=data.get("metadata") or {},
    )
