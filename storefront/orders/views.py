# module storefront.orders.views
"""Endpoints commandes.
- /api/v1/orders (admin): liste et correction du statut.
- /api/v1/orders/mine, /reference/{ref} (utilisateur): historique et confirmation.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storefront.auth.models import AuthenticatedUser
from storefront.orders import service as orders_service
from storefront.utils.security import require_admin, require_user

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

class OrderStatusUpdate(BaseModel):
    status: str

@router.get("")
def admin_list_orders(limit: int = 100, user: AuthenticatedUser = Depends(require_admin)):
    return {"items": orders_service.list_orders_for_admin(limit=limit)}

@router.get("/mine")
def my_orders(user: AuthenticatedUser = Depends(require_user)):
    return {"items": orders_service.list_orders_for_user(user)}

@router.get("/reference/{transaction_ref}")
def order_by_reference(transaction_ref: str, user: AuthenticatedUser = Depends(require_user)):
    return orders_service.get_user_order_by_reference(user, transaction_ref)

@router.put("/{order_id}")
def admin_update_order(order_id: str, body: OrderStatusUpdate, user: AuthenticatedUser = Depends(require_admin)):
    return orders_service.change_order_status(order_id, body.status)
