"""
Catalogue statique de secours.
Utilisé quand Supabase ou Shopify ne répondent pas (ou ne sont pas configurés):
- produits + variantes (indexés par SKU et par identifiant de variante externe)
- avis de démonstration
- attributs produits (fini, couvrance, préoccupations, popularité)
"""
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_CURRENCY = "USD"

_PLACEHOLDER_IMAGE = "/images/placeholders/product-placeholder.svg"

DUMMY_PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": "prod-weightless-foundation",
        "slug": "weightless-mineral-foundation",
        "name": "Weightless Mineral Foundation",
        "kind": "foundation",
        "description": "An airy mineral foundation that blurs imperfections and nourishes skin with a satin, second-skin finish.",
        "ingredients": "Mica, Zinc Oxide, Rice Powder, Squalane, Aloe Leaf Extract, Vitamin E.",
        "collection": {"season": "Year-Round"},
        "image_path": _PLACEHOLDER_IMAGE,
        "variants": [
            {"id": "var-foundation-porcelain", "name": "Porcelain", "sku": "FL-FOUND-01", "price_cents": 3200, "hex": "#F7E6DB",
             "external_variant_id": "gid://shopify/ProductVariant/foundation-porcelain"},
            {"id": "var-foundation-vanilla", "name": "Vanilla", "sku": "FL-FOUND-02", "price_cents": 3200, "hex": "#F0D5C2",
             "external_variant_id": "gid://shopify/ProductVariant/foundation-vanilla"},
            {"id": "var-foundation-sand", "name": "Sand", "sku": "FL-FOUND-03", "price_cents": 3200, "hex": "#D9B093",
             "external_variant_id": "gid://shopify/ProductVariant/foundation-sand"},
            {"id": "var-foundation-mocha", "name": "Mocha", "sku": "FL-FOUND-04", "price_cents": 3200, "hex": "#8C5B45",
             "external_variant_id": "gid://shopify/ProductVariant/foundation-mocha"},
        ],
        "highlights": [
            "24-hour breathable wear",
            "Infused with calming botanicals",
            "Buildable sheer-to-medium coverage",
        ],
    },
    {
        "id": "prod-silk-veil-powder",
        "slug": "silk-veil-setting-powder",
        "name": "Silk Veil Setting Powder",
        "kind": "set",
        "description": "A translucent finishing powder that softens texture and locks in makeup without muting your glow.",
        "ingredients": "Kaolin Clay, Rice Bran, Hyaluronic Acid, Chamomile Flower Powder.",
        "collection": {"season": "Spring"},
        "image_path": _PLACEHOLDER_IMAGE,
        "variants": [
            {"id": "var-powder-translucent", "name": "Translucent", "sku": "FL-POW-01", "price_cents": 2600,
             "external_variant_id": "gid://shopify/ProductVariant/powder-translucent"},
            {"id": "var-powder-rose", "name": "Soft Rose", "sku": "FL-POW-02", "price_cents": 2600,
             "external_variant_id": "gid://shopify/ProductVariant/powder-rose"},
        ],
        "highlights": [
            "Blurs texture with photo-soft focus",
            "Controls shine without drying skin",
            "Infused with hyaluronic acid for comfort",
        ],
    },
    {
        "id": "prod-luminous-blush",
        "slug": "luminous-mineral-blush",
        "name": "Luminous Mineral Blush Duo",
        "kind": "blush",
        "description": "Silky mineral blushes baked with plant oils for a lit-from-within flush that melts into skin.",
        "ingredients": "Mica, Rosehip Oil, Shea Butter, Hibiscus Extract, Vitamin C.",
        "collection": {"season": "Summer"},
        "image_path": _PLACEHOLDER_IMAGE,
        "variants": [
            {"id": "var-blush-dawn", "name": "Soft Dawn", "sku": "FL-BLUSH-01", "price_cents": 2800, "hex": "#F5A0A9",
             "external_variant_id": "gid://shopify/ProductVariant/blush-dawn"},
            {"id": "var-blush-horizon", "name": "Golden Horizon", "sku": "FL-BLUSH-02", "price_cents": 2800, "hex": "#EB7965",
             "external_variant_id": "gid://shopify/ProductVariant/blush-horizon"},
        ],
        "highlights": [
            "Baked minerals for a seamless blend",
            "Dual shades for custom colour",
            "Antioxidant-rich botanicals protect skin",
        ],
    },
    {
        "id": "prod-horizon-eye",
        "slug": "horizon-eye-quartet",
        "name": "Horizon Eye Quartet",
        "kind": "eyeshadow",
        "description": "Four weightless mineral shadows inspired by sunrise light, with buttery mattes and prismatic shimmers.",
        "ingredients": "Mica, Jojoba Oil, Sunflower Seed Wax, Calendula Extract.",
        "collection": {"season": "Fall"},
        "image_path": _PLACEHOLDER_IMAGE,
        "variants": [
            {"id": "var-eye-quartet", "name": "Sunrise Horizon", "sku": "FL-EYE-01", "price_cents": 4200,
             "external_variant_id": "gid://shopify/ProductVariant/eye-horizon"},
        ],
        "highlights": [
            "Feather-light mineral pigments",
            "Crease-resistant wear for 12 hours",
            "Shimmers infused with light-reflecting pearls",
        ],
    },
]

DUMMY_REVIEWS: List[Dict[str, Any]] = [
    {"id": "rev-1", "product_slug": "weightless-mineral-foundation", "name": "Amelia R.", "rating": 5,
     "comment": "My skin still feels like skin, just smoother. The coverage is buildable and never cakey.",
     "status": "APPROVED", "created_at": "2024-04-12T00:00:00+00:00"},
    {"id": "rev-2", "product_slug": "weightless-mineral-foundation", "name": "Priya S.", "rating": 4,
     "comment": "A beautiful base that wears all day. I love the calming ingredients inside.",
     "status": "APPROVED", "created_at": "2024-05-01T00:00:00+00:00"},
    {"id": "rev-3", "product_slug": "silk-veil-setting-powder", "name": "Jordan P.", "rating": 5,
     "comment": "Locks makeup in place without flattening my glow. A forever staple.",
     "status": "APPROVED", "created_at": "2024-03-22T00:00:00+00:00"},
    {"id": "rev-4", "product_slug": "luminous-mineral-blush", "name": "Stella M.", "rating": 5,
     "comment": "The duo compact makes it easy to switch from day to night. Melts into my skin!",
     "status": "APPROVED", "created_at": "2024-02-08T00:00:00+00:00"},
    {"id": "rev-5", "product_slug": "horizon-eye-quartet", "name": "Tessa W.", "rating": 4,
     "comment": "Feather-light pigment with zero fallout. The shimmers are stunning.",
     "status": "APPROVED", "created_at": "2024-01-18T00:00:00+00:00"},
]

PRODUCT_META: Dict[str, Dict[str, Any]] = {
    "weightless-mineral-foundation": {
        "finish": "satin",
        "coverage": "buildable",
        "texture": "Feather-light loose mineral powder",
        "concerns": ["sensitivity", "redness", "oil-control"],
        "best_for": ["sensitive skin", "acne-prone skin"],
        "popularity_score": 95,
    },
    "silk-veil-setting-powder": {
        "finish": "matte",
        "coverage": "sheer",
        "texture": "Ultra-fine finishing powder",
        "concerns": ["shine", "texture"],
        "best_for": ["combination skin", "oily skin"],
        "popularity_score": 82,
    },
    "luminous-mineral-blush": {
        "finish": "luminous",
        "coverage": "buildable",
        "texture": "Baked mineral duo compact",
        "concerns": ["dullness"],
        "best_for": ["all skin types"],
        "popularity_score": 76,
    },
    "horizon-eye-quartet": {
        "finish": "radiant",
        "coverage": "medium",
        "texture": "Pressed mineral shadows",
        "concerns": ["creasing"],
        "best_for": ["sensitive eyes"],
        "popularity_score": 68,
    },
}

# Index construits une fois à l'import
_VARIANT_BY_EXTERNAL_ID: Dict[str, Tuple[Dict[str, Any], Dict[str, Any]]] = {
    v["external_variant_id"]: (p, v) for p in DUMMY_PRODUCTS for v in p["variants"]
}
_VARIANT_BY_SKU: Dict[str, Tuple[Dict[str, Any], Dict[str, Any]]] = {
    v["sku"]: (p, v) for p in DUMMY_PRODUCTS for v in p["variants"]
}


def get_dummy_products() -> List[Dict[str, Any]]:
    return DUMMY_PRODUCTS


def get_dummy_product(slug: str) -> Optional[Dict[str, Any]]:
    return next((p for p in DUMMY_PRODUCTS if p["slug"] == slug), None)


def get_dummy_reviews(product_slug: str) -> List[Dict[str, Any]]:
    return [r for r in DUMMY_REVIEWS if r["product_slug"] == product_slug]


def get_dummy_variant_by_external_id(external_id: Optional[str]) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
    if not external_id:
        return None
    return _VARIANT_BY_EXTERNAL_ID.get(external_id)


def get_dummy_variant_by_sku(sku: Optional[str]) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
    if not sku:
        return None
    return _VARIANT_BY_SKU.get(sku)


DEFAULT_VARIANT_TITLES = ("Default Title", "Default")


def variant_display_title(product_name: Optional[str], variant_name: Optional[str]) -> str:
    """« Produit – Variante »; suffixe omis pour les titres de variante par défaut."""
    if not product_name:
        return variant_name or "Unknown item"
    if variant_name and variant_name not in DEFAULT_VARIANT_TITLES:
        return f"{product_name} – {variant_name}"
    return product_name


def get_dummy_variant_catalog() -> List[Dict[str, Any]]:
    """Vue « lignes de panier » du catalogue statique (merchandise_id, sku, titre, prix)."""
    return [
        {
            "merchandise_id": v["external_variant_id"],
            "sku": v["sku"],
            "title": variant_display_title(p["name"], v["name"]),
            "price_cents": v["price_cents"],
            "currency_code": DEFAULT_CURRENCY,
        }
        for p, v in _VARIANT_BY_EXTERNAL_ID.values()
    ]


def get_product_meta(slug: str) -> Optional[Dict[str, Any]]:
    return PRODUCT_META.get(slug)
