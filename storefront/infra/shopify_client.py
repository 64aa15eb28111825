"""
Adaptateur Shopify: centralise les appels HTTP vers la plateforme e-commerce.
- ShopifyStorefrontClient: API GraphQL Storefront (paniers).
- ShopifyAdminClient: API REST Admin (produits, commandes) pour la synchro.
Les deux acceptent un transport httpx injecté (tests: httpx.MockTransport).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from storefront import config
from storefront.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ShopifyStorefrontClient:
    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-04",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not store_domain or not access_token:
            raise UpstreamError("Shopify storefront credentials are not configured.")
        self.endpoint = f"https://{store_domain}/api/{api_version}/graphql.json"
        self._headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": access_token,
        }
        self._transport = transport

    @classmethod
    def from_config(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ShopifyStorefrontClient":
        return cls(
            config.SHOPIFY_STORE_DOMAIN,
            config.SHOPIFY_STOREFRONT_ACCESS_TOKEN,
            config.SHOPIFY_STOREFRONT_API_VERSION,
            transport=transport,
        )

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Exécute une requête GraphQL et retourne `data`.
        - Statut HTTP non-2xx -> UpstreamError avec le statut
        - `errors` GraphQL -> UpstreamError avec les messages joints
        """
        async with httpx.AsyncClient(transport=self._transport, timeout=DEFAULT_TIMEOUT) as client:
            try:
                res = await client.post(
                    self.endpoint,
                    json={"query": query, "variables": variables or {}},
                    headers=self._headers,
                )
            except httpx.HTTPError as e:
                logger.exception("shopify.storefront request failed")
                raise UpstreamError(f"Shopify storefront request failed: {e}") from e

        if res.status_code < 200 or res.status_code >= 300:
            raise UpstreamError(f"Shopify storefront request failed with status {res.status_code}")
        body = res.json()
        errors = body.get("errors") or []
        if errors:
            raise UpstreamError(", ".join(str(err.get("message") or err) for err in errors))
        data = body.get("data")
        if data is None:
            raise UpstreamError("Shopify storefront response did not include data.")
        return data


class ShopifyAdminClient:
    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-07",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not store_domain or not access_token:
            raise UpstreamError("Shopify admin credentials are not configured.")
        self.base_url = f"https://{store_domain}/admin/api/{api_version}"
        self._headers = {"X-Shopify-Access-Token": access_token, "Accept": "application/json"}
        self._transport = transport

    @classmethod
    def from_config(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ShopifyAdminClient":
        return cls(
            config.SHOPIFY_STORE_DOMAIN,
            config.SHOPIFY_ADMIN_ACCESS_TOKEN,
            config.SHOPIFY_ADMIN_API_VERSION,
            transport=transport,
        )

    async def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(transport=self._transport, timeout=DEFAULT_TIMEOUT) as client:
            try:
                res = await client.get(f"{self.base_url}/{resource}.json", params=params, headers=self._headers)
                res.raise_for_status()
            except httpx.HTTPError as e:
                logger.exception("shopify.admin GET %s failed", resource)
                raise UpstreamError(f"Shopify admin request failed: {e}") from e
        return res.json()

    async def fetch_products(self) -> List[Dict[str, Any]]:
        body = await self._get("products", {"limit": 250})
        return body.get("products") or []

    async def fetch_orders(self) -> List[Dict[str, Any]]:
        body = await self._get("orders", {"status": "any", "limit": 250})
        return body.get("orders") or []
