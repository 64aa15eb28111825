import base64
import hashlib
import hmac
import json

import pytest

from storefront import config
from storefront.errors import AuthError, UpstreamError, ValidationError
from storefront.orders import service as orders_service

SECRET = "whsec_shopify"


def _sign(body: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def _order(**overrides):
    order = {
        "id": 4501,
        "name": "#1001",
        "email": "buyer@example.com",
        "currency": "USD",
        "subtotal_price": "58.00",
        "total_price": "62.50",
        "financial_status": "paid",
        "fulfillment_status": None,
        "processed_at": "2024-06-01T10:00:00Z",
        "line_items": [
            {"id": 1, "name": "Foundation - Sand", "sku": "FL-FOUND-03", "quantity": 1, "price": "32.00", "variant_id": 77},
            {"id": 2, "title": "Powder", "sku": "FL-POW-01", "quantity": 1, "price": "26.00"},
        ],
    }
    order.update(overrides)
    return order


def test_signature_verification():
    body = b'{"id": 1}'
    orders_service.verify_shopify_signature(body, _sign(body), secret=SECRET)
    with pytest.raises(AuthError):
        orders_service.verify_shopify_signature(body, _sign(b'{"id": 2}'), secret=SECRET)
    with pytest.raises(AuthError):
        orders_service.verify_shopify_signature(body, None, secret=SECRET)
    with pytest.raises(AuthError):
        orders_service.verify_shopify_signature(body, "%%%not-base64", secret=SECRET)
    with pytest.raises(UpstreamError):
        orders_service.verify_shopify_signature(body, _sign(body), secret="")


def test_transform_order():
    row, items = orders_service.transform_order(_order())
    assert row["external_order_id"] == "4501"
    assert row["subtotal_cents"] == 5800
    assert row["total_cents"] == 6250
    assert items[0] == {
        "title": "Foundation - Sand",
        "sku": "FL-FOUND-03",
        "quantity": 1,
        "price_cents": 3200,
        "external_line_item_id": "1",
        "merchandise_id": "77",
    }
    assert items[1]["merchandise_id"] is None


def test_transform_requires_id():
    with pytest.raises(ValidationError):
        orders_service.transform_order({"name": "#1"})


def test_upsert_is_idempotent(fake_db):
    orders_service.upsert_order(_order())
    orders_service.upsert_order(_order(financial_status="refunded"))
    assert len(fake_db.rows("orders")) == 1
    assert fake_db.rows("orders")[0]["financial_status"] == "refunded"
    assert len(fake_db.rows("order_items")) == 2


def test_redelivery_replaces_line_items(fake_db):
    orders_service.upsert_order(_order())
    orders_service.upsert_order(_order(line_items=[{"id": 9, "name": "Blush", "sku": "FL-BL-01", "quantity": 3, "price": "24.00"}]))
    items = fake_db.rows("order_items")
    assert [i["sku"] for i in items] == ["FL-BL-01"]


def test_failed_redelivery_keeps_previous_items(monkeypatch, fake_db):
    orders_service.upsert_order(_order())

    def failing_insert(items):
        raise RuntimeError("order_items unavailable")

    monkeypatch.setattr(orders_service.repo, "insert_order_items", failing_insert)
    with pytest.raises(RuntimeError):
        orders_service.upsert_order(_order(
            total_price="24.00",
            line_items=[{"id": 9, "name": "Blush", "sku": "FL-BL-01", "quantity": 1, "price": "24.00"}],
        ))

    (order,) = fake_db.rows("orders")
    assert order["total_cents"] == 6250
    assert sorted(i["sku"] for i in fake_db.rows("order_items")) == ["FL-FOUND-03", "FL-POW-01"]


def test_webhook_ignores_unsupported_topic(monkeypatch, fake_db):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    body = json.dumps(_order()).encode()
    assert orders_service.ingest_shopify_webhook(body, _sign(body), "products/update") == {"ignored": True}
    assert fake_db.rows("orders") == []


def test_webhook_rejects_payload_without_id(monkeypatch, fake_db):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    body = b'{"name": "#1"}'
    with pytest.raises(ValidationError):
        orders_service.ingest_shopify_webhook(body, _sign(body), "orders/create")


def test_webhook_storage_failure(monkeypatch, fake_db):
    monkeypatch.setattr(config, "SHOPIFY_WEBHOOK_SECRET", SECRET)
    fake_db.failing.add("orders")
    body = json.dumps(_order()).encode()
    with pytest.raises(UpstreamError):
        orders_service.ingest_shopify_webhook(body, _sign(body), "orders/create")


def test_order_from_stripe_session(fake_db):
    session = {
        "id": "cs_test_9",
        "amount_total": 5800,
        "amount_subtotal": 5800,
        "currency": "usd",
        "payment_status": "paid",
        "customer_details": {"email": "buyer@example.com"},
        "metadata": {"items": '[["FL-FOUND-03",1,3200],["FL-POW-01",1,2600]]'},
    }
    orders_service.order_from_stripe_session(session)
    orders_service.order_from_stripe_session(session)
    (order,) = fake_db.rows("orders")
    assert order["external_order_id"] == "stripe:cs_test_9"
    assert order["currency"] == "USD"
    assert order["financial_status"] == "paid"
    assert len(fake_db.rows("order_items")) == 2


def test_list_orders_newest_first(fake_db):
    orders_service.upsert_order(_order(id=1))
    orders_service.upsert_order(_order(id=2))
    listed = orders_service.list_orders_with_items()
    assert [o["external_order_id"] for o in listed] == ["2", "1"]
    assert len(listed[0]["items"]) == 2
