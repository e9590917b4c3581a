# module storefront.cart.views
"""Endpoints du panier (/api/v1/cart).
Chaque mutation renvoie le panier rafraîchi, produits résolus.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.auth.models import AuthenticatedUser
from storefront.cart import service as cart_service
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_user

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])

class CartItemRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = 1

@router.get("")
def get_cart(user: AuthenticatedUser = Depends(require_user)):
    return {"items": cart_service.get_cart_view(user.id)}

@router.post("/add", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def add_to_cart(body: CartItemRequest, user: AuthenticatedUser = Depends(require_user)):
    return {"items": cart_service.add_to_cart(user.id, body.product_id, body.quantity)}

@router.put("/update")
def update_cart_item(body: CartItemRequest, user: AuthenticatedUser = Depends(require_user)):
    return {"items": cart_service.update_quantity(user.id, body.product_id, body.quantity)}

@router.delete("/remove/{product_id}")
def remove_cart_item(product_id: str, user: AuthenticatedUser = Depends(require_user)):
    return {"items": cart_service.remove_from_cart(user.id, product_id)}
