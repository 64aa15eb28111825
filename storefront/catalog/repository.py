"""
Accès aux données du catalogue (tables products, variants, collections).
Les erreurs de stockage remontent: le service décide du repli sur le catalogue statique.
"""
import logging
from typing import Any, Dict, List, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def fetch_variants_by_skus(skus: List[str]) -> List[Dict[str, Any]]:
    if not skus:
        return []
    res = (
        supabase_client.get_supabase()
        .table("variants")
        .select("*")
        .in_("sku", list(skus))
        .execute()
    )
    return res.data or []


def fetch_variant_by_external_id(external_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_supabase()
        .table("variants")
        .select("*")
        .eq("external_variant_id", external_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def fetch_variants_for_products(product_ids: List[str]) -> List[Dict[str, Any]]:
    if not product_ids:
        return []
    res = (
        supabase_client.get_supabase()
        .table("variants")
        .select("*")
        .in_("product_id", list(product_ids))
        .execute()
    )
    return res.data or []


def fetch_products_by_ids(product_ids: List[str]) -> List[Dict[str, Any]]:
    if not product_ids:
        return []
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("*")
        .in_("id", list(product_ids))
        .execute()
    )
    return res.data or []


def fetch_live_products() -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("*")
        .eq("live", True)
        .execute()
    )
    return res.data or []


def fetch_product_by_slug(slug: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("*")
        .eq("slug", slug)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def fetch_collections() -> List[Dict[str, Any]]:
    res = supabase_client.get_supabase().table("collections").select("*").execute()
    return res.data or []
