"""
Ingestion des commandes: reçue -> vérifiée -> upsertée.
- Webhook Shopify: signature HMAC-SHA256 (base64) du corps brut, vérifiée avant tout parsing JSON
- Upsert idempotent par external_order_id: mise à jour + remplacement complet des lignes
- Polling: commandes de l'API Admin synchronisées puis relues depuis le stockage
- Webhook Stripe: checkout.session.completed -> commande « stripe:{session.id} »
"""
import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from storefront import config
from storefront.checkout.items import parse_metadata_items
from storefront.errors import AuthError, UpstreamError, ValidationError
from storefront.utils.money import to_cents, to_quantity
from . import repository as repo

logger = logging.getLogger(__name__)

SUPPORTED_TOPICS = frozenset({
    "orders/create",
    "orders/updated",
    "orders/paid",
    "orders/fulfilled",
})


def verify_shopify_signature(body: bytes, signature: Optional[str], secret: Optional[str] = None) -> None:
    """
    Recalcule HMAC-SHA256(secret, corps brut) et le compare (temps constant) à l'en-tête base64.
    - Secret absent -> UpstreamError (500)
    - En-tête absent ou signature différente -> AuthError (401)
    """
    secret = config.SHOPIFY_WEBHOOK_SECRET if secret is None else secret
    if not secret:
        raise UpstreamError("Shopify webhook secret is not configured.")
    if not signature:
        raise AuthError("Invalid webhook signature")
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    try:
        provided = base64.b64decode(signature, validate=True)
    except ValueError:
        raise AuthError("Invalid webhook signature")
    if not hmac.compare_digest(provided, digest):
        raise AuthError("Invalid webhook signature")


def parse_order_payload(body: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid payload")
    if not isinstance(payload, dict) or not payload.get("id"):
        raise ValidationError("Invalid payload")
    return payload


def transform_line_items(line_items: Any) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for item in line_items if isinstance(line_items, list) else []:
        item = item or {}
        items.append({
            "title": item.get("name") or item.get("title") or "Item",
            "sku": str(item["sku"]) if item.get("sku") else None,
            "quantity": to_quantity(item.get("quantity")),
            "price_cents": to_cents(item.get("price")),
            "external_line_item_id": str(item["id"]) if item.get("id") else None,
            "merchandise_id": str(item["variant_id"]) if item.get("variant_id") else None,
        })
    return items


def transform_order(order: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Commande Shopify (REST/webhook) -> (ligne orders, lignes order_items)."""
    if not order.get("id"):
        raise ValidationError("Order is missing an ID")
    subtotal = order.get("subtotal_price")
    row = {
        "external_order_id": str(order["id"]),
        "name": order.get("name"),
        "email": order.get("email"),
        "currency": order.get("currency") or "USD",
        "subtotal_cents": to_cents(subtotal if subtotal is not None else order.get("total_price")),
        "total_cents": to_cents(order.get("total_price")),
        "financial_status": order.get("financial_status") or "pending",
        "fulfillment_status": order.get("fulfillment_status"),
        "processed_at": order.get("processed_at") or None,
    }
    return row, transform_line_items(order.get("line_items"))


def _upsert(row: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    existing = repo.find_order_by_external_id(row["external_order_id"])
    if existing:
        order_id = existing["id"]
        # Re-livraison: anciennes lignes supprimées seulement après insertion des nouvelles.
        # Un échec d'insertion laisse la commande et ses lignes précédentes intactes.
        previous_ids = [it["id"] for it in repo.list_order_items([order_id])]
        repo.insert_order_items([{**item, "order_id": order_id} for item in items])
        repo.delete_order_items(previous_ids)
        repo.update_order(order_id, row)
        return {**existing, **row, "items": items}
    stored = repo.insert_order(row)
    repo.insert_order_items([{**item, "order_id": stored["id"]} for item in items])
    return {**stored, "items": items}


def upsert_order(payload: Dict[str, Any]) -> Dict[str, Any]:
    row, items = transform_order(payload)
    order = _upsert(row, items)
    logger.info("orders.upsert external_order_id=%s items=%s", row["external_order_id"], len(items))
    return order


def sync_orders(orders: List[Dict[str, Any]]) -> int:
    count = 0
    for order in orders:
        upsert_order(order)
        count += 1
    return count


def ingest_shopify_webhook(body: bytes, signature: Optional[str], topic: Optional[str]) -> Dict[str, Any]:
    """Signature d'abord (corps non parsé), puis filtre de topic, puis parsing et upsert."""
    verify_shopify_signature(body, signature)
    if (topic or "") not in SUPPORTED_TOPICS:
        logger.info("orders.webhook ignored topic=%s", topic)
        return {"ignored": True}
    payload = parse_order_payload(body)
    try:
        upsert_order(payload)
    except ValidationError:
        raise
    except Exception as e:
        logger.exception("orders.webhook failed to persist order id=%s", payload.get("id"))
        raise UpstreamError(str(e) or "Failed to persist order")
    return {"received": True}


def list_orders_with_items() -> List[Dict[str, Any]]:
    orders = repo.list_orders()
    items = repo.list_order_items([o["id"] for o in orders])
    by_order: Dict[Any, List[Dict[str, Any]]] = {}
    for item in items:
        by_order.setdefault(item.get("order_id"), []).append(item)
    return [{**o, "items": by_order.get(o["id"], [])} for o in orders]


def order_from_stripe_session(session: Dict[str, Any]) -> Dict[str, Any]:
    """Session Checkout terminée -> commande « stripe:{id} » (lignes issues des métadonnées)."""
    session_id = session.get("id")
    if not session_id:
        raise ValidationError("Stripe session is missing an ID")
    customer = session.get("customer_details") or {}
    total = int(session.get("amount_total") or 0)
    subtotal = session.get("amount_subtotal")
    row = {
        "external_order_id": f"stripe:{session_id}",
        "name": None,
        "email": customer.get("email") or session.get("customer_email"),
        "currency": str(session.get("currency") or config.CHECKOUT_CURRENCY).upper(),
        "subtotal_cents": int(subtotal) if subtotal is not None else total,
        "total_cents": total,
        "financial_status": "paid" if session.get("payment_status") == "paid" else "pending",
        "fulfillment_status": None,
        "processed_at": None,
    }
    items = [
        {
            "title": entry["sku"],
            "sku": entry["sku"],
            "quantity": entry["quantity"],
            "price_cents": entry["price_cents"],
            "external_line_item_id": None,
            "merchandise_id": None,
        }
        for entry in parse_metadata_items(session.get("metadata") or {})
    ]
    order = _upsert(row, items)
    logger.info("orders.stripe session=%s items=%s", session_id, len(items))
    return order
