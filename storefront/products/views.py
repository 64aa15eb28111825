from typing import Optional

from fastapi import APIRouter

from . import service as products_service

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get("")
async def list_products(
    query: Optional[str] = None,
    category: Optional[str] = None,
    season: Optional[str] = None,
    finish: Optional[str] = None,
    coverage: Optional[str] = None,
    concern: Optional[str] = None,
    sort: Optional[str] = None,
):
    """Catalogue filtré et trié -> {items, total} (total = produits correspondant aux filtres)."""
    return await products_service.list_products(
        sort,
        query=query,
        category=category,
        season=season,
        finish=finish,
        coverage=coverage,
        concern=concern,
    )


@router.get("/{slug}")
def get_product(slug: str):
    return products_service.get_product(slug)
