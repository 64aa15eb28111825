"""
Synchronisation du catalogue depuis l'API Admin Shopify (REST).
- Produit upserté par slug, variantes upsertées par SKU
- Variantes disparues du produit supprimées
"""
import logging
import re
import time
from typing import Any, Dict, List, Optional

import storefront.infra.supabase_client as supabase_client
from storefront.utils.money import to_cents

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    return re.sub(r"(^-+|-+$)", "", re.sub(r"[^a-z0-9]+", "-", value.lower()))


def ensure_slug(handle: Optional[str], title: Optional[str], product_id: Optional[Any]) -> str:
    if handle and handle.strip():
        return handle.strip()
    if title and title.strip():
        return slugify(title.strip())
    if product_id:
        return f"shopify-product-{product_id}"
    return f"shopify-product-{int(time.time() * 1000)}"


def variant_sku(variant: Dict[str, Any]) -> str:
    sku = str(variant.get("sku") or "").strip()
    if sku:
        return sku
    if variant.get("id"):
        return f"shopify-variant-{variant['id']}"
    return f"shopify-variant-{int(time.time() * 1000)}"


def _external_variant_id(variant: Dict[str, Any]) -> Optional[str]:
    # L'identifiant GraphQL est celui attendu par l'API Storefront (merchandiseId)
    gid = variant.get("admin_graphql_api_id")
    if gid:
        return str(gid)
    return str(variant["id"]) if variant.get("id") else None


def upsert_product(product: Dict[str, Any]) -> Dict[str, Any]:
    client = supabase_client.get_service_supabase()
    external_id = str(product["id"]) if product.get("id") else None
    slug = ensure_slug(product.get("handle"), product.get("title"), external_id)
    row = {
        "slug": slug,
        "name": product.get("title") or slug,
        "description": product.get("body_html"),
        "kind": product.get("product_type") or "product",
        "live": product.get("status") != "draft",
        "external_product_id": external_id,
    }
    res = client.table("products").upsert(row, on_conflict="slug").execute()
    stored = (res.data or [row])[0]
    product_id = stored.get("id")

    kept: List[str] = []
    for variant in product.get("variants") or []:
        sku = variant_sku(variant)
        kept.append(sku)
        stock = variant.get("inventory_quantity")
        client.table("variants").upsert(
            {
                "sku": sku,
                "name": variant.get("title") or "Default",
                "price_cents": to_cents(variant.get("price")),
                "stock_qty": stock if isinstance(stock, int) else 0,
                "external_variant_id": _external_variant_id(variant),
                "product_id": product_id,
            },
            on_conflict="sku",
        ).execute()

    if kept and product_id is not None:
        existing = client.table("variants").select("id, sku").eq("product_id", product_id).execute()
        stale = [v["id"] for v in (existing.data or []) if v.get("sku") not in kept]
        if stale:
            client.table("variants").delete().in_("id", stale).execute()
            logger.info("catalog.sync removed %s stale variants for %s", len(stale), slug)
    return stored


def sync_products(products: List[Dict[str, Any]]) -> int:
    count = 0
    for product in products:
        upsert_product(product)
        count += 1
    return count
