from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# --- Forme canonique d'un panier ---

class CartLine(CamelModel):
    id: str
    merchandise_id: str
    title: str
    quantity: int
    sku: Optional[str] = None
    unit_price_cents: int
    line_total_cents: int
    currency_code: str = "USD"


class Cart(CamelModel):
    id: str
    checkout_url: Optional[str] = None
    items: List[CartLine] = Field(default_factory=list)
    subtotal_cents: int = 0
    currency_code: str = "USD"

    def snapshot(self) -> Dict[str, Any]:
        """Instantané conservé côté client (indicatif, remplacé au prochain fetch)."""
        return {
            "cartId": self.id if self.items else None,
            "checkoutUrl": self.checkout_url if self.items else None,
            "currencyCode": self.currency_code,
            "subtotalCents": self.subtotal_cents,
            "items": [item.to_public() for item in self.items],
        }


# --- Corps de requêtes /api/cart ---

class CartLineInput(CamelModel):
    merchandise_id: str = Field(min_length=1)
    # Validée par CartService (mode strict ou tolérant)
    quantity: Any = None


class CartLineUpdateInput(CamelModel):
    id: str = Field(min_length=1)
    quantity: Any = None


class AddLinesRequest(CamelModel):
    cart_id: Optional[str] = None
    lines: List[CartLineInput] = Field(min_length=1)


class UpdateLinesRequest(CamelModel):
    cart_id: str = Field(min_length=1)
    lines: List[CartLineUpdateInput] = Field(min_length=1)


class RemoveLinesRequest(CamelModel):
    cart_id: str = Field(min_length=1)
    line_ids: List[str] = Field(default_factory=list)
    clear: bool = False
