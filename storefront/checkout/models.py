from typing import Any, List

from pydantic import BaseModel, Field

from storefront.cart.models import CamelModel


class CheckoutItem(BaseModel):
    # SKU vide ou absent et quantités non positives sont écartés par normalize_items
    sku: Any = None
    qty: Any = 0


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(default_factory=list)


class CartCheckoutRequest(CamelModel):
    cart_id: str = Field(min_length=1)


class CheckoutResult(CamelModel):
    url: str
    checkout_id: str
    mock: bool = False
