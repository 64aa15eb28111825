"""
État de configuration et santé des dépendances.
- status_report(): prêt / en attente par sous-système (base, admin, Shopify, Stripe)
- health_supabase_info(): résolution DNS et lecture d'une ligne par table
"""
import socket
from typing import Any, Callable, Dict, List
from urllib.parse import urlparse

from storefront import config
import storefront.infra.supabase_client as supabase_client

STATUS_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "id": "database",
        "label": "Database connection",
        "configured": config.is_database_configured,
        "help": "Set SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_KEY) to read the live catalog.",
        "category": "platform",
    },
    {
        "id": "reviewAdmin",
        "label": "Review admin access",
        "configured": config.is_admin_configured,
        "help": "Populate REVIEW_ADMIN_EMAIL, REVIEW_ADMIN_PASSWORD_HASH and REVIEW_ADMIN_SECRET so moderation login works.",
        "category": "platform",
    },
    {
        "id": "shopifyStorefront",
        "label": "Shopify Storefront API",
        "configured": config.is_shopify_storefront_configured,
        "help": "Set SHOPIFY_STORE_DOMAIN and SHOPIFY_STOREFRONT_ACCESS_TOKEN to use live carts.",
        "category": "shopify",
    },
    {
        "id": "shopifyAdmin",
        "label": "Shopify Admin API",
        "configured": config.is_shopify_admin_configured,
        "help": "Set SHOPIFY_ADMIN_ACCESS_TOKEN to enable product and order syncing.",
        "category": "shopify",
    },
    {
        "id": "shopifyWebhooks",
        "label": "Shopify webhooks",
        "configured": config.is_shopify_webhook_configured,
        "help": "Set SHOPIFY_WEBHOOK_SECRET to verify webhooks from your Shopify admin app.",
        "category": "shopify",
    },
    {
        "id": "stripeCheckout",
        "label": "Stripe Checkout",
        "configured": config.is_stripe_configured,
        "help": "Set STRIPE_SECRET_KEY to create real checkout sessions instead of mock URLs.",
        "category": "payments",
    },
    {
        "id": "stripeWebhooks",
        "label": "Stripe webhooks",
        "configured": config.is_stripe_webhook_configured,
        "help": "Set STRIPE_WEBHOOK_SECRET to record orders from completed checkout sessions.",
        "category": "payments",
    },
]


def status_report() -> Dict[str, Any]:
    statuses = []
    for definition in STATUS_DEFINITIONS:
        configured: Callable[[], bool] = definition["configured"]
        statuses.append({
            "id": definition["id"],
            "label": definition["label"],
            "category": definition["category"],
            "configured": bool(configured()),
            "help": definition["help"],
        })
    pending = [s for s in statuses if not s["configured"]]
    summary = {
        "ready": not pending,
        "pending": [s["id"] for s in pending],
        "shopifyReady": all(s["category"] != "shopify" for s in pending),
        "paymentsReady": all(s["category"] != "payments" for s in pending),
    }
    return {"statuses": statuses, "summary": summary}


def _check_table(client, name: str):
    try:
        res = client.table(name).select("*").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}


def health_supabase_info():
    effective_url = config.SUPABASE_URL
    parsed = urlparse(effective_url) if effective_url else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": effective_url,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_supabase()
        for t in ["products", "variants", "reviews", "orders"]:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info
