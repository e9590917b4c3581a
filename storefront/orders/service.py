"""Couche service des commandes.
Rôles:
- Enrichir une commande (produits des lignes, utilisateur) pour l'affichage.
- Admin: lister et corriger le statut (seule voie de reprise d'un paiement wallet abandonné).
- Utilisateur: historique et page de confirmation par référence de transaction.
"""
from typing import Any, Dict, List, Optional
import logging

from storefront.auth.models import AuthenticatedUser
from storefront.errors import NotFoundError, ValidationError
from storefront.orders import repository as orders_repository
from storefront.orders.models import OrderStatus
from storefront.products import repository as products_repository
from storefront.users import repository as users_repository

logger = logging.getLogger(__name__)

def populate_order(order: Dict[str, Any], products: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Résout le produit de chaque ligne et l'utilisateur propriétaire.
    - Un produit supprimé du catalogue donne product=None; quantité et prix
      restent lisibles depuis l'instantané de la ligne.
    - products: carte {id: produit} déjà chargée (finalisation), évite une relecture.
    """
    items = order.get("items") or []
    if products is None:
        products = products_repository.get_products_map(i.get("product_id") for i in items)
    populated = dict(order)
    populated["items"] = [dict(i, product=products.get(str(i.get("product_id")))) for i in items]
    populated["user"] = users_repository.get_user_by_id(order.get("user_id"))
    return populated

def list_orders_for_admin(limit: int = 100) -> List[Dict[str, Any]]:
    return [populate_order(o) for o in orders_repository.list_orders(limit=limit)]

def change_order_status(order_id: str, status: str) -> Dict[str, Any]:
    """Correction manuelle du statut par un admin."""
    try:
        new_status = OrderStatus(str(status or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Statut invalide (attendu: {allowed})")
    order = orders_repository.find_order_by_id(order_id)
    if not order:
        raise NotFoundError("Commande introuvable")
    updated = orders_repository.update_order_status(order_id, new_status.value) or dict(order, status=new_status.value)
    logger.info("orders.change_order_status id=%s %s -> %s", order_id, order.get("status"), new_status.value)
    return populate_order(updated)

def list_orders_for_user(user: AuthenticatedUser) -> List[Dict[str, Any]]:
    return [populate_order(o) for o in orders_repository.list_user_orders(user.id)]

def get_user_order_by_reference(user: AuthenticatedUser, transaction_ref: str) -> Dict[str, Any]:
    order = orders_repository.find_order_by_reference(transaction_ref)
    # La commande d'un autre utilisateur est traitée comme introuvable
    if not order or str(order.get("user_id")) != user.id:
        raise NotFoundError("Commande introuvable")
    return populate_order(order)
