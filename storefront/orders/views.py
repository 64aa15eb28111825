import logging
from typing import Any, Dict

import stripe
from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from storefront import config
from storefront.catalog.sync import sync_products
from storefront.checkout import stripe_client
from storefront.errors import UpstreamError, ValidationError
from storefront.infra.shopify_client import ShopifyAdminClient
from storefront.utils.security import require_admin
from . import service as orders_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Orders"])


def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


@router.post("/shopify-webhook", include_in_schema=False)
async def shopify_webhook(request: Request):
    """
    Webhook commandes Shopify.
    - Corps lu brut: la signature est vérifiée avant tout parsing (401 / 500 si secret absent)
    - Topics non gérés: 200 {"ignored": true} (pas de retry côté Shopify)
    - Payload illisible ou sans id: 400; succès: {"received": true}
    """
    body = await request.body()
    return await run_in_threadpool(
        orders_service.ingest_shopify_webhook,
        body,
        request.headers.get("x-shopify-hmac-sha256"),
        request.headers.get("x-shopify-topic"),
    )


@router.post("/stripe/webhook", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Webhook Stripe (Checkout): consomme checkout.session.completed pour enregistrer la commande.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET
    - Réponses: {"received": true} (ou "ignored" pour les autres types)
    """
    if not config.is_stripe_webhook_configured():
        raise UpstreamError("Stripe webhook secret is not configured.")
    payload = await request.body()
    try:
        event = stripe_client.construct_event(payload, request.headers.get("stripe-signature"))
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("orders.stripe_webhook rejected: %s", e)
        raise ValidationError(f"Webhook Error: {e}")

    if event["type"] != "checkout.session.completed":
        return {"received": True, "ignored": True}
    session = _as_dict(event["data"]["object"])
    await run_in_threadpool(orders_service.order_from_stripe_session, session)
    return {"received": True}


@router.get("/orders")
async def list_orders(admin: Dict[str, Any] = Depends(require_admin)):
    """Polling: synchronise les commandes de l'API Admin (si configurée) puis liste le stockage, plus récentes d'abord."""
    if config.is_shopify_admin_configured():
        orders = await ShopifyAdminClient.from_config().fetch_orders()
        synced = await run_in_threadpool(orders_service.sync_orders, orders)
        logger.info("orders.poll synced=%s by=%s", synced, admin["email"])
    return {"orders": await run_in_threadpool(orders_service.list_orders_with_items)}


@router.post("/shopify/sync")
async def sync_shopify_products(admin: Dict[str, Any] = Depends(require_admin)):
    products = await ShopifyAdminClient.from_config().fetch_products()
    synced = await run_in_threadpool(sync_products, products)
    logger.info("catalog.sync synced=%s by=%s", synced, admin["email"])
    return {"synced": synced}
