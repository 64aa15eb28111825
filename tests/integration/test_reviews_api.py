def _seed(db):
    product = db.add("products", {"slug": "glow-duo", "name": "Glow Duo", "live": True})
    db.add("reviews", {"product_id": product["id"], "name": "Ana", "rating": 5, "comment": "Love it", "status": "APPROVED"})
    pending = db.add("reviews", {"product_id": product["id"], "name": "Bo", "rating": 3, "comment": "Ok", "status": "PENDING"})
    return product, pending


def test_public_reviews_are_approved_only(client, fake_db):
    _seed(fake_db)
    res = client.get("/api/reviews", params={"slug": "glow-duo"})
    assert res.status_code == 200
    assert [r["comment"] for r in res.json()] == ["Love it"]


def test_queue_requires_admin(client, fake_db):
    _seed(fake_db)
    assert client.get("/api/reviews", params={"status": "pending"}).status_code == 401


def test_static_reviews_without_database(client):
    res = client.get("/api/reviews", params={"slug": "silk-veil-setting-powder"})
    assert res.status_code == 200
    assert res.json()[0]["name"] == "Jordan P."


def test_submit_review(client, fake_db):
    _seed(fake_db)
    res = client.post("/api/reviews", json={"slug": "glow-duo", "rating": 4, "comment": "Nice glow"})
    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Review submitted for moderation"
    assert body["review"]["status"] == "PENDING"


def test_submit_review_validation(client, fake_db):
    res = client.post("/api/reviews", json={"slug": "glow-duo", "rating": 9})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Missing required fields"
    assert {"rating", "comment"} <= set(body["fields"])

    res = client.post("/api/reviews", content=b"{not json", headers={"content-type": "application/json"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid JSON payload"


def test_moderation_requires_session(client, fake_db):
    _, pending = _seed(fake_db)
    res = client.patch(f"/api/reviews/{pending['id']}", json={"status": "APPROVED"})
    assert res.status_code == 401
    assert fake_db.rows("reviews")[1]["status"] == "PENDING"


def test_moderation_flow(admin_client, fake_db):
    _, pending = _seed(fake_db)
    res = admin_client.patch(f"/api/reviews/{pending['id']}", json={"status": "APPROVED"})
    assert res.status_code == 200
    assert res.json()["moderatedBy"] == "admin@example.com"

    public = admin_client.get("/api/reviews", params={"slug": "glow-duo"}).json()
    assert len(public) == 2

    res = admin_client.patch(f"/api/reviews/{pending['id']}", json={"status": "pending"})
    assert res.json()["moderatedAt"] is None

    res = admin_client.patch(f"/api/reviews/{pending['id']}", json={"status": "archived"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid status value"

    queue = admin_client.get("/api/reviews", params={"status": "all", "include": "product"}).json()
    assert all(r["product"]["slug"] == "glow-duo" for r in queue)
