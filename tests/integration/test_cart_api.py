SAND = "gid://shopify/ProductVariant/foundation-sand"
ROSE = "gid://shopify/ProductVariant/powder-rose"


def _add(client, lines, cart_id=None):
    body = {"lines": lines}
    if cart_id:
        body["cartId"] = cart_id
    return client.post("/api/cart", json=body)


def test_add_sets_cookie_and_returns_snapshot(client):
    res = _add(client, [{"merchandiseId": SAND}])
    assert res.status_code == 200
    body = res.json()
    cart = body["cart"]
    assert cart["items"][0]["quantity"] == 1
    assert cart["subtotalCents"] == 3200
    assert body["snapshot"]["cartId"] == cart["id"]
    assert client.cookies.get("storefront.cart") == cart["id"]


def test_get_uses_cookie_when_no_cart_id(client):
    cart_id = _add(client, [{"merchandiseId": SAND, "quantity": 2}]).json()["cart"]["id"]
    res = client.get("/api/cart")
    assert res.status_code == 200
    assert res.json()["cart"]["id"] == cart_id
    assert client.get("/api/cart", params={"cartId": cart_id}).json()["cart"]["subtotalCents"] == 6400


def test_missing_cart_id(client):
    res = client.get("/api/cart")
    assert res.status_code == 400
    assert res.json()["error"] == "Missing cartId parameter."


def test_unknown_cart_is_404(client):
    res = client.get("/api/cart", params={"cartId": "mock-cart-unknown"})
    assert res.status_code == 404
    assert res.json() == {"error": "Cart not found."}


def test_invalid_quantity_is_400(client):
    res = _add(client, [{"merchandiseId": SAND, "quantity": -3}])
    assert res.status_code == 400
    assert "quantity" in res.json()["fields"]


def test_body_validation_errors(client):
    res = client.post("/api/cart", json={"lines": []})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Invalid request body"
    assert "lines" in body["fields"]


def test_update_remove_and_clear(client):
    cart = _add(client, [{"merchandiseId": SAND}, {"merchandiseId": ROSE}]).json()["cart"]
    sand_line, rose_line = cart["items"]

    res = client.patch("/api/cart", json={"cartId": cart["id"], "lines": [{"id": sand_line["id"], "quantity": 3}]})
    assert res.json()["cart"]["subtotalCents"] == 3 * 3200 + 2600

    res = client.request("DELETE", "/api/cart", json={"cartId": cart["id"], "lineIds": [rose_line["id"]]})
    assert [i["merchandiseId"] for i in res.json()["cart"]["items"]] == [SAND]

    res = client.request("DELETE", "/api/cart", json={"cartId": cart["id"], "clear": True})
    body = res.json()
    assert body["cart"]["items"] == []
    assert body["snapshot"]["cartId"] is None
    assert client.cookies.get("storefront.cart") is None


def test_remove_requires_line_ids(client):
    cart = _add(client, [{"merchandiseId": SAND}]).json()["cart"]
    res = client.request("DELETE", "/api/cart", json={"cartId": cart["id"]})
    assert res.status_code == 400


def test_cart_responses_are_not_cached(client):
    res = _add(client, [{"merchandiseId": SAND}])
    assert "no-store" in res.headers["cache-control"]
