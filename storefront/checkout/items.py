"""
Logique pure de construction des lignes de checkout (pas de Stripe, pas de DB).
"""
import json
from typing import Any, Dict, Iterable, List

from storefront.catalog.models import Variant
from storefront.errors import ValidationError
from storefront.utils.money import to_quantity

STRIPE_METADATA_MAX = 500


def normalize_items(items: Iterable[Any]) -> Dict[str, int]:
    """
    Agrège [{sku, qty}, ...] en {sku: quantité totale}.
    - Ignore les lignes invalides (sku vide, qty <= 0).
    - ValidationError("No items") si aucune ligne valide n'est présente.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        sku = str(_get(it, "sku") or "").strip()
        qty = to_quantity(_get(it, "qty"))
        if not sku or qty <= 0:
            continue
        quantities[sku] = quantities.get(sku, 0) + qty
    if not quantities:
        raise ValidationError("No items")
    return quantities


def _get(item: Any, key: str) -> Any:
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def check_purchasable(quantities: Dict[str, int], variants: Dict[str, Variant]) -> None:
    """SKUs inconnus -> missing; variantes sans identifiant externe -> unpurchasable (400 dans les deux cas)."""
    missing = [sku for sku in quantities if sku not in variants]
    if missing:
        raise ValidationError(f"Unknown SKUs: {', '.join(missing)}", missing=missing)
    unpurchasable = [sku for sku in quantities if not variants[sku].external_variant_id]
    if unpurchasable:
        raise ValidationError(
            f"Variants cannot be purchased online: {', '.join(unpurchasable)}",
            unpurchasable=unpurchasable,
        )


def to_line_items(variants: Dict[str, Variant], quantities: Dict[str, int], currency: str) -> List[Dict[str, Any]]:
    """
    Lignes Stripe `price_data` au prix du catalogue (jamais un prix fourni par le client).
    """
    line_items: List[Dict[str, Any]] = []
    for sku, qty in quantities.items():
        variant = variants[sku]
        name = f"{variant.product_name} – {variant.name}" if variant.product_name else variant.name
        line_items.append({
            "price_data": {
                "currency": currency.lower(),
                "unit_amount": int(variant.price_cents),
                "product_data": {"name": name, "metadata": {"sku": sku}},
            },
            "quantity": qty,
        })
    return line_items


def make_metadata(variants: Dict[str, Variant], quantities: Dict[str, int]) -> Dict[str, str]:
    """
    Métadonnées de session: items = JSON [[sku, qty, prix_cents], ...], variants = identifiants externes.
    Stripe limite chaque valeur à 500 caractères.
    """
    items = [[sku, qty, int(variants[sku].price_cents)] for sku, qty in quantities.items()]
    external_ids = ",".join(str(variants[sku].external_variant_id) for sku in quantities)
    return {
        "items": json.dumps(items, separators=(",", ":"))[:STRIPE_METADATA_MAX],
        "variants": external_ids[:STRIPE_METADATA_MAX],
    }


def parse_metadata_items(metadata: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Inverse de make_metadata pour le webhook Stripe; tolérant (JSON illisible -> [])."""
    raw = (metadata or {}).get("items")
    try:
        rows = json.loads(raw) if raw else []
    except ValueError:
        return []
    items: List[Dict[str, Any]] = []
    for row in rows if isinstance(rows, list) else []:
        if isinstance(row, list) and len(row) == 3:
            items.append({"sku": str(row[0]), "quantity": to_quantity(row[1]), "price_cents": int(row[2] or 0)})
    return items
