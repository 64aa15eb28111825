from typing import Optional

from pydantic import BaseModel


class Variant(BaseModel):
    sku: str
    name: str
    price_cents: int
    external_variant_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None


class CatalogLine(BaseModel):
    """Métadonnées d'une ligne de panier résolues depuis un identifiant de variante externe."""
    merchandise_id: str
    sku: Optional[str] = None
    title: str
    price_cents: int
    currency_code: str = "USD"
