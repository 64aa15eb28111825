"""
Adaptateur catalogue: SKU / identifiant de variante externe -> métadonnées prix.
Source d'autorité: stockage (Supabase); repli sur le catalogue statique
pour les SKUs inconnus du stockage ou quand le stockage est indisponible.
"""
import logging
from typing import Dict, Iterable, Optional

from storefront import config
from . import dummy_content
from . import repository as repo
from .models import CatalogLine, Variant

logger = logging.getLogger(__name__)


def _variant_from_dummy(product: dict, variant: dict) -> Variant:
    return Variant(
        sku=variant["sku"],
        name=variant["name"],
        price_cents=int(variant["price_cents"]),
        external_variant_id=variant.get("external_variant_id"),
        product_id=product["id"],
        product_name=product["name"],
    )


def _variant_from_row(row: dict, product_names: Dict[str, str]) -> Variant:
    product_id = str(row.get("product_id") or "") or None
    return Variant(
        sku=row["sku"],
        name=row.get("name") or row["sku"],
        price_cents=int(row.get("price_cents") or 0),
        external_variant_id=row.get("external_variant_id") or None,
        product_id=product_id,
        product_name=product_names.get(product_id or ""),
    )


def _stored_variants(skus: list) -> Dict[str, Variant]:
    rows = repo.fetch_variants_by_skus(skus)
    product_ids = sorted({str(r["product_id"]) for r in rows if r.get("product_id")})
    products = repo.fetch_products_by_ids(product_ids)
    names = {str(p["id"]): p.get("name") for p in products}
    return {r["sku"]: _variant_from_row(r, names) for r in rows if r.get("sku")}


def resolve_variants_by_sku(skus: Iterable[str]) -> Dict[str, Variant]:
    """
    Résout chaque SKU en Variant.
    - Les SKUs absents du résultat sont inconnus des deux sources.
    """
    wanted = [s for s in dict.fromkeys(skus) if s]
    resolved: Dict[str, Variant] = {}
    if config.is_database_configured():
        try:
            resolved = _stored_variants(wanted)
        except Exception:
            logger.exception("catalog.resolve_variants_by_sku storage lookup failed, using static catalog")
            resolved = {}

    for sku in wanted:
        if sku in resolved:
            continue
        found = dummy_content.get_dummy_variant_by_sku(sku)
        if found:
            resolved[sku] = _variant_from_dummy(*found)
    return resolved


def lookup_line_item(merchandise_id: str) -> Optional[CatalogLine]:
    """Prix/titre/SKU d'une variante externe, utilisé par le panier mock."""
    if not merchandise_id:
        return None
    if config.is_database_configured():
        try:
            row = repo.fetch_variant_by_external_id(merchandise_id)
            if row:
                product_name = None
                if row.get("product_id"):
                    products = repo.fetch_products_by_ids([str(row["product_id"])])
                    product_name = products[0].get("name") if products else None
                return CatalogLine(
                    merchandise_id=merchandise_id,
                    sku=row.get("sku"),
                    title=dummy_content.variant_display_title(product_name, row.get("name")),
                    price_cents=int(row.get("price_cents") or 0),
                )
        except Exception:
            logger.exception("catalog.lookup_line_item storage lookup failed id=%s", merchandise_id)

    found = dummy_content.get_dummy_variant_by_external_id(merchandise_id)
    if not found:
        return None
    product, variant = found
    return CatalogLine(
        merchandise_id=merchandise_id,
        sku=variant["sku"],
        title=dummy_content.variant_display_title(product["name"], variant["name"]),
        price_cents=int(variant["price_cents"]),
        currency_code=dummy_content.DEFAULT_CURRENCY,
    )
