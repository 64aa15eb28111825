"""
Listing et fiche produit.
- Produits live et agrégats de notes (avis approuvés) lus en parallèle puis joints
- Repli sur le catalogue statique si le stockage échoue
- Filtres (query, category, season, finish, coverage, concern) et tris
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from storefront import config
from storefront.catalog import dummy_content
from storefront.catalog import repository as catalog_repo
from storefront.errors import NotFoundError, ValidationError
from storefront.reviews import repository as reviews_repo

logger = logging.getLogger(__name__)

SORTS = ("featured", "price-asc", "price-desc", "rating", "popularity")

Ratings = Dict[str, Tuple[float, int]]


def _public_variant(v: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": v.get("id"),
        "name": v.get("name"),
        "sku": v.get("sku"),
        "priceCents": int(v.get("price_cents") or 0),
        "hex": v.get("hex"),
        "externalVariantId": v.get("external_variant_id"),
    }


def to_public(product: Dict[str, Any], season: Optional[str], ratings: Ratings) -> Dict[str, Any]:
    slug = product.get("slug") or ""
    variants = [_public_variant(v) for v in product.get("variants") or []]
    prices = [v["priceCents"] for v in variants if v["priceCents"] > 0]
    meta = dummy_content.get_product_meta(slug) or {}
    average, count = ratings.get(str(product.get("id")), ratings.get(slug, (0.0, 0)))
    return {
        "id": product.get("id"),
        "slug": slug,
        "name": product.get("name"),
        "kind": product.get("kind"),
        "description": product.get("description"),
        "ingredients": product.get("ingredients"),
        "season": season,
        "highlights": product.get("highlights") or [],
        "variants": variants,
        "attributes": {
            "finish": meta.get("finish"),
            "coverage": meta.get("coverage"),
            "texture": meta.get("texture"),
            "concerns": meta.get("concerns") or [],
            "bestFor": meta.get("best_for") or [],
        },
        "popularityScore": meta.get("popularity_score", 0),
        "averageRating": round(average, 2),
        "reviewCount": count,
        "minPriceCents": min(prices) if prices else 0,
    }


def aggregate_ratings(rows: List[Dict[str, Any]], key: str = "product_id") -> Ratings:
    totals: Dict[str, List[int]] = {}
    for row in rows:
        if row.get(key) is None or row.get("rating") is None:
            continue
        totals.setdefault(str(row[key]), []).append(int(row["rating"]))
    return {k: (sum(v) / len(v), len(v)) for k, v in totals.items()}


def _load_live_products() -> List[Dict[str, Any]]:
    products = catalog_repo.fetch_live_products()
    variants = catalog_repo.fetch_variants_for_products([str(p["id"]) for p in products])
    seasons = {str(c["id"]): c.get("season") for c in catalog_repo.fetch_collections()}
    by_product: Dict[str, List[Dict[str, Any]]] = {}
    for v in variants:
        by_product.setdefault(str(v.get("product_id")), []).append(v)
    return [
        {**p, "variants": by_product.get(str(p["id"]), []), "season": seasons.get(str(p.get("collection_id")))}
        for p in products
    ]


def static_products() -> List[Dict[str, Any]]:
    ratings = aggregate_ratings(dummy_content.DUMMY_REVIEWS, key="product_slug")
    return [to_public(p, (p.get("collection") or {}).get("season"), ratings) for p in dummy_content.get_dummy_products()]


async def load_products() -> List[Dict[str, Any]]:
    """Lectures concurrentes (produits, notes) jointes; stockage en échec -> catalogue statique."""
    if not config.is_database_configured():
        return static_products()
    try:
        products, rating_rows = await asyncio.gather(
            run_in_threadpool(_load_live_products),
            run_in_threadpool(reviews_repo.list_approved_ratings),
        )
    except Exception:
        logger.warning("products.load storage failed, using static catalog", exc_info=True)
        return static_products()
    ratings = aggregate_ratings(rating_rows)
    return [to_public(p, p.get("season"), ratings) for p in products]


def _matches(product: Dict[str, Any], filters: Dict[str, Optional[str]]) -> bool:
    query = (filters.get("query") or "").strip().lower()
    if query:
        haystack = " ".join(str(product.get(k) or "") for k in ("name", "description", "kind", "slug")).lower()
        if query not in haystack:
            return False
    attrs = product["attributes"]
    checks = (
        ("category", product.get("kind")),
        ("season", product.get("season")),
        ("finish", attrs.get("finish")),
        ("coverage", attrs.get("coverage")),
    )
    for name, value in checks:
        wanted = (filters.get(name) or "").strip().lower()
        if wanted and wanted != "all" and wanted != str(value or "").lower():
            return False
    concern = (filters.get("concern") or "").strip().lower()
    if concern and concern not in [c.lower() for c in attrs.get("concerns") or []]:
        return False
    return True


def sort_products(products: List[Dict[str, Any]], sort: str) -> List[Dict[str, Any]]:
    if sort == "price-asc":
        return sorted(products, key=lambda p: p["minPriceCents"])
    if sort == "price-desc":
        return sorted(products, key=lambda p: p["minPriceCents"], reverse=True)
    if sort == "rating":
        return sorted(products, key=lambda p: (p["averageRating"], p["reviewCount"]), reverse=True)
    if sort == "popularity":
        return sorted(products, key=lambda p: p["popularityScore"], reverse=True)
    return list(products)


async def list_products(sort: Optional[str] = None, **filters: Optional[str]) -> Dict[str, Any]:
    sort = (sort or "featured").strip().lower()
    if sort not in SORTS:
        raise ValidationError("Invalid sort option", fields={"sort": [f"expected one of {', '.join(SORTS)}"]})
    products = await load_products()
    matching = [p for p in products if _matches(p, filters)]
    items = sort_products(matching, sort)
    return {"items": items, "total": len(items)}


def _stored_product(slug: str) -> Optional[Dict[str, Any]]:
    product = catalog_repo.fetch_product_by_slug(slug)
    if not product:
        return None
    variants = catalog_repo.fetch_variants_for_products([str(product["id"])])
    seasons = {str(c["id"]): c.get("season") for c in catalog_repo.fetch_collections()}
    ratings = aggregate_ratings(
        [r for r in reviews_repo.list_approved_ratings() if str(r.get("product_id")) == str(product["id"])]
    )
    return to_public({**product, "variants": variants}, seasons.get(str(product.get("collection_id"))), ratings)


def get_product(slug: str) -> Dict[str, Any]:
    if config.is_database_configured():
        try:
            product = _stored_product(slug)
            if product is None:
                raise NotFoundError("Not found")
            return product
        except NotFoundError:
            raise
        except Exception:
            logger.warning("products.get storage failed for %s, using static catalog", slug, exc_info=True)
    for product in static_products():
        if product["slug"] == slug:
            return product
    raise NotFoundError("Not found")
