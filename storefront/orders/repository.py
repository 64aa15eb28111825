"""
Accès aux données pour la feature 'orders' (tables orders, order_items).
Écritures via le client service-role.
"""
import logging
from typing import Any, Dict, List, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def find_order_by_external_id(external_order_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*")
        .eq("external_order_id", external_order_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def insert_order(row: Dict[str, Any]) -> Dict[str, Any]:
    res = supabase_client.get_service_supabase().table("orders").insert(row).execute()
    rows = res.data or []
    if not rows:
        raise RuntimeError(f"order insert returned no row external_order_id={row.get('external_order_id')}")
    return rows[0]


def update_order(order_id: Any, row: Dict[str, Any]) -> None:
    supabase_client.get_service_supabase().table("orders").update(row).eq("id", order_id).execute()


def delete_order_items(item_ids: List[Any]) -> None:
    if not item_ids:
        return
    supabase_client.get_service_supabase().table("order_items").delete().in_("id", list(item_ids)).execute()


def insert_order_items(items: List[Dict[str, Any]]) -> None:
    if not items:
        return
    supabase_client.get_service_supabase().table("order_items").insert(items).execute()


def list_orders() -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select("*")
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []


def list_order_items(order_ids: List[Any]) -> List[Dict[str, Any]]:
    if not order_ids:
        return []
    res = (
        supabase_client.get_service_supabase()
        .table("order_items")
        .select("*")
        .in_("order_id", list(order_ids))
        .execute()
    )
    return res.data or []
