import base64
import hashlib
import hmac
import json

import stripe

from storefront import config
from storefront.orders import views as orders_views

SECRET = "shpss_test_secret"


def _signed_post(client, payload, topic="orders/create", secret=SECRET):
    body = json.dumps(payload).encode()
    signature = base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()
    return client.post(
        "/api/shopify-webhook",
        content=body,
        headers={"x-shopify-hmac-sha256": signature, "x-shopify-topic": topic, "content-type": "application/json"},
    )


def _order(order_id=7001, status="paid"):
    return {
        "id": order_id,
        "name": "#7001",
        "total_price": "32.00",
        "financial_status": status,
        "line_items": [{"id": 1, "name": "Foundation", "sku": "FL-FOUND-03", "quantity": 1, "price": "32.00"}],
    }


def test_webhook_without_secret_is_500(client, fake_db):
    res = _signed_post(client, _order())
    assert res.status_code == 500


def test_webhook_bad_signature_is_401(client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    res = _signed_post(client, _order(), secret="wrong")
    assert res.status_code == 401
    assert fake_db.rows("orders") == []


def test_webhook_redelivery_is_idempotent(client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    assert _signed_post(client, _order()).json() == {"received": True}
    assert _signed_post(client, _order(status="refunded"), topic="orders/updated").status_code == 200
    (order,) = fake_db.rows("orders")
    assert order["financial_status"] == "refunded"
    assert len(fake_db.rows("order_items")) == 1


def test_webhook_ignored_topic(client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    res = _signed_post(client, _order(), topic="customers/create")
    assert res.status_code == 200
    assert res.json() == {"ignored": True}


def test_webhook_invalid_payload(client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    res = _signed_post(client, {"name": "no id"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid payload"}


def test_stripe_webhook_not_configured(client):
    assert client.post("/api/stripe/webhook", content=b"{}").status_code == 500


def test_stripe_webhook_bad_signature(client, monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_1")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_1")

    def reject(payload, sig_header):
        raise stripe.SignatureVerificationError("No signatures found", sig_header)

    monkeypatch.setattr(orders_views.stripe_client, "construct_event", reject)
    res = client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"})
    assert res.status_code == 400
    assert res.json()["error"].startswith("Webhook Error:")


def test_stripe_checkout_completed_records_order(client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_1")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_1")
    event = {
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_42",
            "amount_total": 3200,
            "currency": "usd",
            "payment_status": "paid",
            "metadata": {"items": '[["FL-FOUND-03",1,3200]]'},
        }},
    }
    monkeypatch.setattr(orders_views.stripe_client, "construct_event", lambda payload, sig: event)
    assert client.post("/api/stripe/webhook", content=b"{}").json() == {"received": True}
    assert fake_db.rows("orders")[0]["external_order_id"] == "stripe:cs_test_42"

    event["type"] = "payment_intent.created"
    assert client.post("/api/stripe/webhook", content=b"{}").json() == {"received": True, "ignored": True}


def test_orders_listing_requires_admin(client, fake_db):
    assert client.get("/api/orders").status_code == 401
    assert client.post("/api/shopify/sync").status_code == 401


def test_orders_listing_for_admin(admin_client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    _signed_post(admin_client, _order(order_id=1))
    _signed_post(admin_client, _order(order_id=2))
    orders = admin_client.get("/api/orders").json()["orders"]
    assert [o["external_order_id"] for o in orders] == ["2", "1"]
    assert orders[0]["items"][0]["sku"] == "FL-FOUND-03"


def test_product_sync_for_admin(admin_client, fake_db, monkeypatch):
    monkeypatch.setattr(config, "SHOPIFY_STORE_DOMAIN", "shop.test")
    monkeypatch.setattr(config, "SHOPIFY_ADMIN_ACCESS_TOKEN", "shpat_test")

    async def fake_fetch_products(self):
        return [{"id": 5, "title": "Glow Duo", "variants": [{"id": 50, "sku": "GD-1", "price": "24.00"}]}]

    monkeypatch.setattr(orders_views.ShopifyAdminClient, "fetch_products", fake_fetch_products)
    res = admin_client.post("/api/shopify/sync")
    assert res.status_code == 200
    assert res.json() == {"synced": 1}
    assert fake_db.rows("products")[0]["slug"] == "glow-duo"
    assert fake_db.rows("variants")[0]["external_variant_id"] == "50"
