"""
Normalisation d'un panier brut vers la forme canonique Cart.
Deux formes acceptées:
- panier GraphQL Storefront: lines.edges[].node, montants décimaux en chaîne
- enregistrement du panier mock: lines[] avec unitPriceCents déjà en centimes
Invariants: lineTotalCents == unitPriceCents * quantity et subtotalCents == Σ lineTotalCents.
"""
from typing import Any, Dict, List, Optional

from storefront.catalog.dummy_content import variant_display_title
from storefront.utils.money import to_cents, to_quantity
from .models import Cart, CartLine

DEFAULT_CURRENCY = "USD"


def _round_half_up_div(total: int, quantity: int) -> int:
    return (2 * total + quantity) // (2 * quantity)


def _money(node: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return node if isinstance(node, dict) else {}


def _remote_line(node: Dict[str, Any]) -> Optional[CartLine]:
    quantity = to_quantity(node.get("quantity"))
    if quantity <= 0:
        return None
    cost = _money(node.get("cost"))
    total = _money(cost.get("totalAmount"))
    per_unit = _money(cost.get("amountPerQuantity"))
    if per_unit.get("amount") is not None:
        unit_price = to_cents(per_unit.get("amount"))
    else:
        unit_price = _round_half_up_div(to_cents(total.get("amount")), quantity)
    merchandise = _money(node.get("merchandise"))
    product = _money(merchandise.get("product"))
    return CartLine(
        id=str(node.get("id") or ""),
        merchandise_id=str(merchandise.get("id") or ""),
        title=variant_display_title(product.get("title"), merchandise.get("title")),
        quantity=quantity,
        sku=merchandise.get("sku") or None,
        unit_price_cents=unit_price,
        line_total_cents=unit_price * quantity,
        currency_code=per_unit.get("currencyCode") or total.get("currencyCode") or DEFAULT_CURRENCY,
    )


def _mock_line(line: Dict[str, Any], currency: str) -> Optional[CartLine]:
    quantity = to_quantity(line.get("quantity"))
    if quantity <= 0:
        return None
    unit_price = max(0, int(line.get("unitPriceCents") or 0))
    return CartLine(
        id=str(line.get("id") or ""),
        merchandise_id=str(line.get("merchandiseId") or ""),
        title=line.get("title") or "Unknown item",
        quantity=quantity,
        sku=line.get("sku") or None,
        unit_price_cents=unit_price,
        line_total_cents=unit_price * quantity,
        currency_code=line.get("currencyCode") or currency,
    )


def normalize_cart(raw: Optional[Dict[str, Any]]) -> Optional[Cart]:
    """None -> None (« pas de panier »); panier sans lignes -> items [] et sous-total 0."""
    if not raw:
        return None

    lines = raw.get("lines")
    items: List[CartLine] = []
    subtotal_currency: Optional[str] = None
    if isinstance(lines, list):
        subtotal_currency = raw.get("currencyCode")
        for line in lines:
            item = _mock_line(line or {}, subtotal_currency or DEFAULT_CURRENCY)
            if item:
                items.append(item)
    else:
        edges = _money(lines).get("edges") or []
        for edge in edges:
            item = _remote_line(_money(_money(edge).get("node")))
            if item:
                items.append(item)
        subtotal = _money(_money(raw.get("cost")).get("subtotalAmount"))
        subtotal_currency = subtotal.get("currencyCode")

    currency = subtotal_currency or (items[0].currency_code if items else None) or DEFAULT_CURRENCY
    return Cart(
        id=str(raw.get("id") or ""),
        checkout_url=raw.get("checkoutUrl") or None,
        items=items,
        subtotal_cents=sum(item.line_total_cents for item in items),
        currency_code=currency,
    )
