from typing import Optional
from fastapi import APIRouter
from storefront.errors import NotFoundError
from storefront.products import repository as products_repository

router = APIRouter(prefix="/api/v1/products", tags=["Products API"])

# module storefront.products.views
@router.get("")
def list_products(category: Optional[str] = None):
    """Catalogue public (lecture seule), filtrable par catégorie."""
    return {"items": products_repository.list_products(category=category)}

@router.get("/{product_id}")
def get_product(product_id: str):
    product = products_repository.find_product(product_id)
    if not product:
        raise NotFoundError("Produit introuvable")
    return product
