import json

import pytest
import stripe

from storefront import config
from storefront.cart.models import Cart, CartLine
from storefront.checkout import items as checkout_items
from storefront.checkout import service as checkout_service
from storefront.errors import UpstreamError, ValidationError


def test_normalize_items_merges_duplicates_and_drops_empty():
    quantities = checkout_items.normalize_items([
        {"sku": "FL-FOUND-01", "qty": 1},
        {"sku": "FL-FOUND-01", "qty": 2},
        {"sku": "", "qty": 3},
        {"sku": "FL-POW-01", "qty": 0},
    ])
    assert quantities == {"FL-FOUND-01": 3}


def test_normalize_items_rejects_empty_list():
    with pytest.raises(ValidationError) as exc:
        checkout_items.normalize_items([])
    assert exc.value.message == "No items"


def test_unknown_sku_is_reported():
    with pytest.raises(ValidationError) as exc:
        checkout_service.build_checkout([{"sku": "NOPE-1", "qty": 1}])
    assert exc.value.extra["missing"] == ["NOPE-1"]


def test_mock_checkout_without_stripe():
    result = checkout_service.build_checkout([{"sku": "FL-FOUND-01", "qty": 1}])
    assert result.mock is True
    assert result.checkout_id.startswith("mock-checkout-")
    assert result.url == f"https://checkout.storefront.test/{result.checkout_id}"
    assert result.to_public()["checkoutId"] == result.checkout_id


def test_stripe_session_uses_catalog_prices(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_123")
    captured = {}

    def fake_create_session(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_1", "url": "https://stripe.test/cs_test_1"}

    monkeypatch.setattr(checkout_service.stripe_client, "create_session", fake_create_session)

    result = checkout_service.build_checkout([
        {"sku": "FL-FOUND-01", "qty": 1},
        {"sku": "FL-FOUND-01", "qty": 1},
    ])
    assert result.mock is False
    assert result.url == "https://stripe.test/cs_test_1"
    (line,) = captured["line_items"]
    assert line["quantity"] == 2
    assert line["price_data"]["unit_amount"] == 3200
    assert line["price_data"]["currency"] == "usd"
    assert json.loads(captured["metadata"]["items"]) == [["FL-FOUND-01", 2, 3200]]
    assert captured["metadata"]["variants"] == "gid://shopify/ProductVariant/foundation-porcelain"


def test_stripe_failure_becomes_upstream_error(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_123")

    def failing(**kwargs):
        raise stripe.StripeError("card network down")

    monkeypatch.setattr(checkout_service.stripe_client, "create_session", failing)
    with pytest.raises(UpstreamError):
        checkout_service.build_checkout([{"sku": "FL-POW-01", "qty": 1}])


def test_metadata_round_trip_is_tolerant():
    assert checkout_items.parse_metadata_items({"items": "not json"}) == []
    assert checkout_items.parse_metadata_items({"items": '[["A",2,150]]'}) == [
        {"sku": "A", "quantity": 2, "price_cents": 150}
    ]


def test_cart_lines_without_sku_cannot_be_paid():
    cart = Cart(id="c1", items=[
        CartLine(id="l1", merchandise_id="gid://x/1", title="Mystery", quantity=1, sku=None,
                 unit_price_cents=100, line_total_cents=100),
    ], subtotal_cents=100)
    with pytest.raises(ValidationError) as exc:
        checkout_service.build_checkout_from_cart(cart)
    assert exc.value.extra["unpurchasable"] == ["gid://x/1"]


def test_empty_cart_cannot_be_paid():
    with pytest.raises(ValidationError):
        checkout_service.build_checkout_from_cart(Cart(id="c1"))
