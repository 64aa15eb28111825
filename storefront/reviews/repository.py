"""
Accès aux données pour la feature 'reviews'.
Lectures publiques via le client anon, modération et dépôt via service-role.
"""
import logging
from typing import Any, Dict, List, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def get_product_id_by_slug(slug: str) -> Optional[str]:
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("id")
        .eq("slug", slug)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return str(rows[0]["id"]) if rows else None


def insert_review(row: Dict[str, Any]) -> Dict[str, Any]:
    res = supabase_client.get_service_supabase().table("reviews").insert(row).execute()
    rows = res.data or []
    if not rows:
        raise RuntimeError("review insert returned no row")
    return rows[0]


def list_reviews(product_id: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
    query = supabase_client.get_service_supabase().table("reviews").select("*")
    if product_id:
        query = query.eq("product_id", product_id)
    if status:
        query = query.eq("status", status)
    res = query.order("created_at", desc=True).execute()
    return res.data or []


def list_approved_ratings() -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_supabase()
        .table("reviews")
        .select("product_id, rating")
        .eq("status", "APPROVED")
        .execute()
    )
    return res.data or []


def get_review(review_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("reviews")
        .select("*")
        .eq("id", review_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def update_review(review_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    res = supabase_client.get_service_supabase().table("reviews").update(changes).eq("id", review_id).execute()
    rows = res.data or []
    return rows[0] if rows else {}


def fetch_products_summary(product_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    if not product_ids:
        return {}
    res = (
        supabase_client.get_supabase()
        .table("products")
        .select("id, name, slug")
        .in_("id", list(product_ids))
        .execute()
    )
    return {str(p["id"]): {"id": p["id"], "name": p.get("name"), "slug": p.get("slug")} for p in res.data or []}
