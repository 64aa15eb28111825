"""
Cas d'usage 'checkout': orchestre catalogue, lignes et Stripe.
"""
import logging
import time
from typing import Any, Dict, Iterable, List

import stripe

from storefront import config
from storefront.cart.models import Cart
from storefront.catalog.service import resolve_variants_by_sku
from storefront.errors import UpstreamError, ValidationError
from . import items as checkout_items
from . import stripe_client
from .items import normalize_items
from .models import CheckoutResult

logger = logging.getLogger(__name__)


def _mock_checkout() -> CheckoutResult:
    checkout_id = f"mock-checkout-{int(time.time() * 1000)}"
    return CheckoutResult(url=f"{config.CHECKOUT_MOCK_BASE_URL}/{checkout_id}", checkout_id=checkout_id, mock=True)


def build_checkout(items: Iterable[Any]) -> CheckoutResult:
    """
    Construit une session de paiement pour [{sku, qty}, ...]:
    - doublons fusionnés, lignes vides écartées
    - chaque SKU résolu contre le catalogue; prix du catalogue uniquement
    - Stripe non configuré -> URL mock déterministe et mock=True
    """
    quantities = normalize_items(items)
    variants = resolve_variants_by_sku(quantities.keys())
    checkout_items.check_purchasable(quantities, variants)

    if not config.is_stripe_configured():
        result = _mock_checkout()
        logger.info("checkout mock session %s (%s skus)", result.checkout_id, len(quantities))
        return result

    line_items = checkout_items.to_line_items(variants, quantities, config.CHECKOUT_CURRENCY)
    try:
        session = stripe_client.create_session(
            line_items=line_items,
            success_url=config.CHECKOUT_SUCCESS_URL,
            cancel_url=config.CHECKOUT_CANCEL_URL,
            metadata=checkout_items.make_metadata(variants, quantities),
        )
    except stripe.StripeError as e:
        logger.exception("checkout.build_checkout stripe session failed")
        raise UpstreamError(getattr(e, "user_message", None) or str(e) or "Failed to create checkout session")

    url = session.get("url")
    if not url:
        raise UpstreamError("Checkout provider did not return a redirect URL")
    return CheckoutResult(url=url, checkout_id=str(session.get("id") or ""), mock=False)


def items_from_cart(cart: Cart) -> List[Dict[str, Any]]:
    """Lignes du panier normalisé -> [{sku, qty}]; une ligne sans SKU ne peut pas être payée."""
    without_sku = [item.merchandise_id for item in cart.items if not item.sku]
    if without_sku:
        raise ValidationError("Some cart lines have no SKU", unpurchasable=without_sku)
    return [{"sku": item.sku, "qty": item.quantity} for item in cart.items]


def build_checkout_from_cart(cart: Cart) -> CheckoutResult:
    if not cart.items:
        raise ValidationError("No items")
    return build_checkout(items_from_cart(cart))
