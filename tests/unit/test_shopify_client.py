import json

import httpx
import pytest

from storefront.cart.store import RemoteCartBackend
from storefront.errors import UpstreamError
from storefront.infra.shopify_client import ShopifyAdminClient, ShopifyStorefrontClient


def _storefront(handler):
    return ShopifyStorefrontClient("shop.test", "token", "2024-04", transport=httpx.MockTransport(handler))


def _cart_payload(quantity=2):
    return {
        "id": "gid://shopify/Cart/1",
        "checkoutUrl": "https://shop.test/cart/c/1",
        "cost": {"subtotalAmount": {"amount": "64.00", "currencyCode": "USD"}},
        "lines": {"edges": [{"node": {
            "id": "gid://shopify/CartLine/1",
            "quantity": quantity,
            "cost": {
                "amountPerQuantity": {"amount": "32.0", "currencyCode": "USD"},
                "totalAmount": {"amount": "64.0", "currencyCode": "USD"},
            },
            "merchandise": {"id": "gid://shopify/ProductVariant/1", "sku": "FL-FOUND-03", "title": "Sand",
                            "product": {"title": "Weightless Mineral Foundation"}},
        }}]},
    }


@pytest.mark.asyncio
async def test_graphql_sends_token_and_returns_data():
    seen = {}

    def handler(request: httpx.Request):
        seen["token"] = request.headers["X-Shopify-Storefront-Access-Token"]
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"data": {"ok": True}})

    data = await _storefront(handler).graphql("{ shop { name } }")
    assert data == {"ok": True}
    assert seen["token"] == "token"
    assert seen["url"] == "https://shop.test/api/2024-04/graphql.json"


@pytest.mark.asyncio
async def test_graphql_errors_are_upstream_errors():
    client = _storefront(lambda r: httpx.Response(200, json={"errors": [{"message": "Throttled"}]}))
    with pytest.raises(UpstreamError) as exc:
        await client.graphql("{ shop { name } }")
    assert exc.value.message == "Throttled"

    client = _storefront(lambda r: httpx.Response(502, text="bad gateway"))
    with pytest.raises(UpstreamError):
        await client.graphql("{ shop { name } }")


@pytest.mark.asyncio
async def test_remote_backend_normalizes_cart():
    def handler(request: httpx.Request):
        body = json.loads(request.content)
        assert body["variables"]["input"]["lines"] == [{"merchandiseId": "gid://shopify/ProductVariant/1", "quantity": 2}]
        return httpx.Response(200, json={"data": {"cartCreate": {"cart": _cart_payload(), "userErrors": []}}})

    backend = RemoteCartBackend(_storefront(handler))
    cart = await backend.create([{"merchandiseId": "gid://shopify/ProductVariant/1", "quantity": 2}])
    assert cart.items[0].title == "Weightless Mineral Foundation – Sand"
    assert cart.subtotal_cents == 6400


@pytest.mark.asyncio
async def test_remote_backend_user_errors():
    payload = {"data": {"cartLinesAdd": {"cart": None, "userErrors": [{"message": "Out of stock"}, {"message": "Limit"}]}}}
    backend = RemoteCartBackend(_storefront(lambda r: httpx.Response(200, json=payload)))
    with pytest.raises(UpstreamError) as exc:
        await backend.add_lines("gid://shopify/Cart/1", [{"merchandiseId": "x", "quantity": 1}])
    assert exc.value.message == "Out of stock, Limit"


@pytest.mark.asyncio
async def test_admin_client_fetches_orders():
    def handler(request: httpx.Request):
        assert request.url.path == "/admin/api/2024-07/orders.json"
        assert request.url.params["status"] == "any"
        return httpx.Response(200, json={"orders": [{"id": 1}]})

    client = ShopifyAdminClient("shop.test", "admin-token", transport=httpx.MockTransport(handler))
    assert await client.fetch_orders() == [{"id": 1}]


def test_missing_credentials():
    with pytest.raises(UpstreamError):
        ShopifyStorefrontClient("", "")
    with pytest.raises(UpstreamError):
        ShopifyAdminClient("shop.test", "")
