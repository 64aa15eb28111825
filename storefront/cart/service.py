"""
Cas d'usage panier, communs aux deux backends.
- Validation des lignes (merchandiseId, quantité stricte ou tolérante)
- update: quantité <= 0 équivaut à un retrait de la ligne
- clear: retire toutes les lignes
"""
import logging
import math
from typing import Any, Dict, List, Optional

from storefront import config
from storefront.errors import NotFoundError, ValidationError
from .models import Cart, CartLineInput, CartLineUpdateInput
from .store import CartBackend

logger = logging.getLogger(__name__)


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        try:
            return _parse_int(float(value.strip()))
        except ValueError:
            return None
    return None


def coerce_add_quantity(value: Any, lenient: Optional[bool] = None) -> int:
    """
    Quantité d'ajout:
    - absente -> 1
    - invalide ou <= 0 -> ValidationError, ou 1 en mode tolérant (CART_LENIENT_QUANTITY)
    """
    lenient = config.CART_LENIENT_QUANTITY if lenient is None else lenient
    if value is None:
        return 1
    qty = _parse_int(value)
    if qty is None or qty <= 0:
        if lenient:
            return 1
        raise ValidationError("Quantity must be a positive integer.", fields={"quantity": [str(value)]})
    return qty


def coerce_update_quantity(value: Any, lenient: Optional[bool] = None) -> int:
    """Quantité de mise à jour: <= 0 conservée (retrait), invalide -> ValidationError ou 1 en mode tolérant."""
    lenient = config.CART_LENIENT_QUANTITY if lenient is None else lenient
    qty = _parse_int(value)
    if qty is None:
        if lenient:
            return 1
        raise ValidationError("Quantity must be an integer.", fields={"quantity": [str(value)]})
    return qty


class CartService:
    def __init__(self, backend: CartBackend):
        self.backend = backend

    def _lines(self, lines: List[CartLineInput]) -> List[Dict[str, Any]]:
        if not lines:
            raise ValidationError("Request must include at least one line.")
        return [
            {"merchandiseId": line.merchandise_id, "quantity": coerce_add_quantity(line.quantity)}
            for line in lines
        ]

    async def add(self, cart_id: Optional[str], lines: List[CartLineInput]) -> Cart:
        """Sans cartId: création du panier; sinon ajout des lignes."""
        payload = self._lines(lines)
        if cart_id:
            return await self.backend.add_lines(cart_id, payload)
        cart = await self.backend.create(payload)
        logger.info("cart created id=%s backend=%s", cart.id, self.backend.name)
        return cart

    async def update(self, cart_id: str, lines: List[CartLineUpdateInput]) -> Cart:
        if not cart_id or not lines:
            raise ValidationError("cartId and lines are required.")
        updates: List[Dict[str, Any]] = []
        removals: List[str] = []
        for line in lines:
            qty = coerce_update_quantity(line.quantity)
            if qty <= 0:
                removals.append(line.id)
            else:
                updates.append({"id": line.id, "quantity": qty})

        cart: Optional[Cart] = None
        if removals:
            cart = await self.backend.remove_lines(cart_id, removals)
        if updates:
            cart = await self.backend.update_lines(cart_id, updates)
        return cart

    async def remove(self, cart_id: str, line_ids: List[str]) -> Cart:
        if not cart_id:
            raise ValidationError("cartId is required.")
        if not line_ids:
            raise ValidationError("lineIds is required.")
        if any(not line_id for line_id in line_ids):
            raise ValidationError("lineIds must contain only valid values.")
        return await self.backend.remove_lines(cart_id, [str(i) for i in line_ids])

    async def clear(self, cart_id: str) -> Cart:
        cart = await self.get(cart_id)
        if not cart.items:
            return cart
        return await self.backend.remove_lines(cart_id, [item.id for item in cart.items])

    async def fetch(self, cart_id: str) -> Optional[Cart]:
        if not cart_id:
            raise ValidationError("Missing cartId parameter.")
        return await self.backend.fetch(cart_id)

    async def get(self, cart_id: str) -> Cart:
        cart = await self.fetch(cart_id)
        if cart is None:
            raise NotFoundError("Cart not found.")
        return cart
