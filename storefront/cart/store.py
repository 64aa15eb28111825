"""
Stockage des paniers: une interface, deux implémentations choisies au démarrage.
- RemoteCartBackend: mutations GraphQL Storefront (cartCreate, cartLinesAdd, ...)
- MockCartBackend: paniers en mémoire (MockCartRepository, expiration TTL) au même contrat
Chaque opération retourne un Cart normalisé.
"""
import copy
import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from storefront import config
from storefront.catalog.models import CatalogLine
from storefront.catalog.service import lookup_line_item
from storefront.errors import NotFoundError, UpstreamError, ValidationError
from storefront.infra.shopify_client import ShopifyStorefrontClient
from .models import Cart
from .normalizer import normalize_cart

logger = logging.getLogger(__name__)

CART_FIELDS = """
  id
  checkoutUrl
  cost {
    subtotalAmount {
      amount
      currencyCode
    }
  }
  lines(first: 250) {
    edges {
      node {
        id
        quantity
        cost {
          amountPerQuantity {
            amount
            currencyCode
          }
          totalAmount {
            amount
            currencyCode
          }
        }
        merchandise {
          ... on ProductVariant {
            id
            sku
            title
            product {
              title
            }
          }
        }
      }
    }
  }
"""

CART_CREATE = f"""
mutation cartCreate($input: CartInput!) {{
  cartCreate(input: $input) {{
    cart {{ {CART_FIELDS} }}
    userErrors {{ message }}
  }}
}}
"""

CART_LINES_ADD = f"""
mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {{
  cartLinesAdd(cartId: $cartId, lines: $lines) {{
    cart {{ {CART_FIELDS} }}
    userErrors {{ message }}
  }}
}}
"""

CART_LINES_UPDATE = f"""
mutation cartLinesUpdate($cartId: ID!, $lines: [CartLineUpdateInput!]!) {{
  cartLinesUpdate(cartId: $cartId, lines: $lines) {{
    cart {{ {CART_FIELDS} }}
    userErrors {{ message }}
  }}
}}
"""

CART_LINES_REMOVE = f"""
mutation cartLinesRemove($cartId: ID!, $lineIds: [ID!]!) {{
  cartLinesRemove(cartId: $cartId, lineIds: $lineIds) {{
    cart {{ {CART_FIELDS} }}
    userErrors {{ message }}
  }}
}}
"""

CART_QUERY = f"""
query cartQuery($cartId: ID!) {{
  cart(id: $cartId) {{ {CART_FIELDS} }}
}}
"""


class CartBackend:
    """Contrat commun. `lines`: [{merchandiseId, quantity}], `updates`: [{id, quantity}]."""

    name = "abstract"

    async def create(self, lines: List[Dict[str, Any]]) -> Cart:
        raise NotImplementedError

    async def add_lines(self, cart_id: str, lines: List[Dict[str, Any]]) -> Cart:
        raise NotImplementedError

    async def update_lines(self, cart_id: str, updates: List[Dict[str, Any]]) -> Cart:
        raise NotImplementedError

    async def remove_lines(self, cart_id: str, line_ids: List[str]) -> Cart:
        raise NotImplementedError

    async def fetch(self, cart_id: str) -> Optional[Cart]:
        raise NotImplementedError


class RemoteCartBackend(CartBackend):
    name = "shopify"

    def __init__(self, client: ShopifyStorefrontClient):
        self.client = client

    async def _mutate(self, query: str, field: str, variables: Dict[str, Any], failure: str) -> Cart:
        data = await self.client.graphql(query, variables)
        payload = data.get(field) or {}
        errors = payload.get("userErrors") or []
        if errors:
            raise UpstreamError(", ".join(str(err.get("message") or err) for err in errors))
        cart = normalize_cart(payload.get("cart"))
        if cart is None:
            raise UpstreamError(failure)
        return cart

    async def create(self, lines):
        return await self._mutate(CART_CREATE, "cartCreate", {"input": {"lines": lines}},
                                  "Failed to create cart in Shopify.")

    async def add_lines(self, cart_id, lines):
        return await self._mutate(CART_LINES_ADD, "cartLinesAdd", {"cartId": cart_id, "lines": lines},
                                  "Failed to add lines to cart.")

    async def update_lines(self, cart_id, updates):
        return await self._mutate(CART_LINES_UPDATE, "cartLinesUpdate", {"cartId": cart_id, "lines": updates},
                                  "Failed to update cart lines.")

    async def remove_lines(self, cart_id, line_ids):
        return await self._mutate(CART_LINES_REMOVE, "cartLinesRemove", {"cartId": cart_id, "lineIds": line_ids},
                                  "Failed to remove cart lines.")

    async def fetch(self, cart_id):
        data = await self.client.graphql(CART_QUERY, {"cartId": cart_id})
        return normalize_cart(data.get("cart"))


class MockCartRepository:
    """
    Paniers mock en mémoire, un enregistrement par identifiant.
    - Un panier non modifié depuis `ttl_seconds` est oublié (évincé à l'accès)
    """

    def __init__(self, ttl_seconds: int = config.MOCK_CART_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Dict[str, Dict[str, Any]] = {}
        self._touched: Dict[str, float] = {}

    def _evict(self) -> None:
        now = self._clock()
        for cart_id, touched in list(self._touched.items()):
            if now - touched >= self.ttl_seconds:
                self._records.pop(cart_id, None)
                self._touched.pop(cart_id, None)

    def get(self, cart_id: str) -> Optional[Dict[str, Any]]:
        self._evict()
        return self._records.get(cart_id)

    def save(self, record: Dict[str, Any]) -> None:
        self._evict()
        self._records[record["id"]] = record
        self._touched[record["id"]] = self._clock()

    def delete(self, cart_id: str) -> None:
        self._records.pop(cart_id, None)
        self._touched.pop(cart_id, None)

    def __len__(self) -> int:
        self._evict()
        return len(self._records)


class MockCartBackend(CartBackend):
    name = "mock"

    def __init__(
        self,
        repository: MockCartRepository,
        lookup: Callable[[str], Optional[CatalogLine]] = lookup_line_item,
    ):
        self.repository = repository
        self.lookup = lookup

    def _load(self, cart_id: str) -> Dict[str, Any]:
        record = self.repository.get(cart_id)
        if record is None:
            raise NotFoundError("Cart not found.")
        # Copie de travail: une mutation en échec laisse le panier stocké intact
        return copy.deepcopy(record)

    async def _resolve(self, merchandise_id: str) -> CatalogLine:
        # Lookup catalogue bloquant (Supabase): exécuté hors boucle événementielle
        line = await run_in_threadpool(self.lookup, merchandise_id)
        if line is None:
            raise ValidationError(f"Unknown merchandise: {merchandise_id}")
        return line

    async def _add(self, record: Dict[str, Any], lines: List[Dict[str, Any]]) -> None:
        for line in lines:
            merchandise_id = line["merchandiseId"]
            quantity = int(line["quantity"])
            existing = next((l for l in record["lines"] if l["merchandiseId"] == merchandise_id), None)
            if existing:
                existing["quantity"] += quantity
                continue
            meta = await self._resolve(merchandise_id)
            record["lines"].append({
                "id": f"mock-line-{uuid.uuid4().hex[:12]}",
                "merchandiseId": merchandise_id,
                "title": meta.title,
                "sku": meta.sku,
                "quantity": quantity,
                "unitPriceCents": meta.price_cents,
                "currencyCode": meta.currency_code,
            })
            if len(record["lines"]) == 1:
                record["currencyCode"] = meta.currency_code

    def _save(self, record: Dict[str, Any]) -> Cart:
        self.repository.save(record)
        return normalize_cart(record)

    async def create(self, lines):
        record = {"id": f"mock-cart-{uuid.uuid4().hex}", "checkoutUrl": None, "currencyCode": "USD", "lines": []}
        await self._add(record, lines)
        return self._save(record)

    async def add_lines(self, cart_id, lines):
        record = self._load(cart_id)
        await self._add(record, lines)
        return self._save(record)

    async def update_lines(self, cart_id, updates):
        record = self._load(cart_id)
        for update in updates:
            line = next((l for l in record["lines"] if l["id"] == update["id"]), None)
            if line is None:
                raise NotFoundError(f"Cart line not found: {update['id']}")
            line["quantity"] = int(update["quantity"])
        # Même contrat que la plateforme: quantité <= 0 retire la ligne
        record["lines"] = [l for l in record["lines"] if l["quantity"] > 0]
        return self._save(record)

    async def remove_lines(self, cart_id, line_ids):
        record = self._load(cart_id)
        wanted = set(line_ids)
        record["lines"] = [l for l in record["lines"] if l["id"] not in wanted]
        return self._save(record)

    async def fetch(self, cart_id):
        return normalize_cart(self.repository.get(cart_id))


def select_cart_backend(transport: Optional[Any] = None) -> CartBackend:
    """Choix unique au démarrage: plateforme si les identifiants Storefront sont présents, sinon mock."""
    if config.is_shopify_storefront_configured():
        return RemoteCartBackend(ShopifyStorefrontClient.from_config(transport=transport))
    return MockCartBackend(MockCartRepository(ttl_seconds=config.MOCK_CART_TTL_SECONDS))
