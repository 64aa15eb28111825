# storefront.config
from pathlib import Path
import os
import re
from typing import List
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Shopify, Stripe, admin)
- Fournit les prédicats « configuré ? » utilisés pour choisir les modes mock/live
- validate_env(): contrôle de cohérence, journalisé au démarrage
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

def _env_int(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or str(default)))
    except ValueError:
        return default

# Supabase (stockage relationnel via PostgREST)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Shopify: Storefront GraphQL (panier) et Admin REST (synchro produits/commandes)
SHOPIFY_STORE_DOMAIN = _clean_env(os.getenv("SHOPIFY_STORE_DOMAIN") or "")
SHOPIFY_STOREFRONT_ACCESS_TOKEN = _clean_env(os.getenv("SHOPIFY_STOREFRONT_ACCESS_TOKEN") or "")
SHOPIFY_STOREFRONT_API_VERSION = _clean_env(os.getenv("SHOPIFY_STOREFRONT_API_VERSION") or "") or "2024-04"
SHOPIFY_ADMIN_ACCESS_TOKEN = _clean_env(os.getenv("SHOPIFY_ADMIN_ACCESS_TOKEN") or "")
SHOPIFY_ADMIN_API_VERSION = _clean_env(os.getenv("SHOPIFY_ADMIN_API_VERSION") or "") or "2024-07"
SHOPIFY_WEBHOOK_SECRET = _clean_env(os.getenv("SHOPIFY_WEBHOOK_SECRET") or "")

# Stripe: fournisseur de paiement du checkout
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")
CHECKOUT_SUCCESS_URL = _clean_env(os.getenv("CHECKOUT_SUCCESS_URL") or "") or f"{BASE_URL}/cart?checkout=success"
CHECKOUT_CANCEL_URL = _clean_env(os.getenv("CHECKOUT_CANCEL_URL") or "") or f"{BASE_URL}/cart?checkout=cancel"
CHECKOUT_MOCK_BASE_URL = (_clean_env(os.getenv("CHECKOUT_MOCK_BASE_URL") or "") or "https://checkout.storefront.test").rstrip("/")
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "") or "usd"

# Admin de modération des avis (session signée, sans stockage serveur)
REVIEW_ADMIN_EMAIL = _clean_env(os.getenv("REVIEW_ADMIN_EMAIL") or os.getenv("ADMIN_EMAIL") or "")
REVIEW_ADMIN_PASSWORD_HASH = _clean_env(os.getenv("REVIEW_ADMIN_PASSWORD_HASH") or os.getenv("ADMIN_PASSWORD_HASH") or "")
REVIEW_ADMIN_SECRET = _clean_env(os.getenv("REVIEW_ADMIN_SECRET") or "")
SESSION_TTL_SECONDS = _env_int("SESSION_TTL_SECONDS", 60 * 60 * 24 * 7)
ADMIN_SECRET_MIN_LENGTH = 32

# Cookies / sécurité HTTP
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Panier
CART_LENIENT_QUANTITY = _env_flag("CART_LENIENT_QUANTITY")
MOCK_CART_TTL_SECONDS = _env_int("MOCK_CART_TTL_SECONDS", 60 * 60 * 24 * 7)

# Rate limiting
LOGIN_RATE_LIMIT_ATTEMPTS = _env_int("LOGIN_RATE_LIMIT_ATTEMPTS", 5)
LOGIN_RATE_LIMIT_WINDOW_SECONDS = _env_int("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 60)
RATE_LIMIT_BACKEND = (_clean_env(os.getenv("RATE_LIMIT_BACKEND") or "") or "memory").lower()
RATE_LIMIT_REDIS_URL = _clean_env(os.getenv("RATE_LIMIT_REDIS_URL") or "") or "redis://127.0.0.1:6379/0"

ENFORCE_ENV_VALIDATION = _env_flag("ENFORCE_ENV_VALIDATION")

# --- Prédicats de disponibilité (lus à l'appel pour rester patchables en test) ---

def is_database_configured() -> bool:
    return bool(SUPABASE_URL and (SUPABASE_ANON or SUPABASE_SERVICE_KEY))

def is_shopify_storefront_configured() -> bool:
    return bool(SHOPIFY_STORE_DOMAIN and SHOPIFY_STOREFRONT_ACCESS_TOKEN)

def is_shopify_admin_configured() -> bool:
    return bool(SHOPIFY_STORE_DOMAIN and SHOPIFY_ADMIN_ACCESS_TOKEN)

def is_shopify_webhook_configured() -> bool:
    return bool(SHOPIFY_WEBHOOK_SECRET)

def is_stripe_configured() -> bool:
    return bool(STRIPE_SECRET_KEY)

def is_stripe_webhook_configured() -> bool:
    return bool(STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET)

def is_admin_configured() -> bool:
    return bool(
        REVIEW_ADMIN_EMAIL
        and REVIEW_ADMIN_PASSWORD_HASH
        and REVIEW_ADMIN_SECRET
        and len(REVIEW_ADMIN_SECRET) >= ADMIN_SECRET_MIN_LENGTH
    )

# --- Validation de l'environnement ---

_API_VERSION_RE = re.compile(r"^20\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HEX64_RE = re.compile(r"^[a-fA-F0-9]{64}$")

def _check_password_hash(name: str, value: str, errors: List[str]) -> None:
    if value.startswith("sha256:"):
        digest = value[len("sha256:"):]
        if "$" in digest:
            salt, _, digest = digest.partition("$")
            if not salt:
                errors.append(f'{name} must include a salt before "$"')
        if not _HEX64_RE.match(digest):
            errors.append(f'{name} must contain a hexadecimal SHA-256 digest after "sha256:"')
    elif value.startswith("bcrypt:") or value.startswith("$2"):
        if len(value) <= len("bcrypt:"):
            errors.append(f'{name} must include a bcrypt hash after "bcrypt:"')
    elif value.startswith("plain:"):
        if len(value) <= len("plain:"):
            errors.append(f'{name} must include a password after "plain:"')
    else:
        errors.append(f'{name} must be prefixed with "sha256:", "bcrypt:" or "plain:"')

def validate_env() -> List[str]:
    """
    Vérifie la configuration et retourne la liste des erreurs (vide si tout est cohérent).
    - Les sections absentes (Shopify, Stripe) ne sont pas des erreurs: l'app passe en mode mock.
    - Les sections présentes mais mal formées sont signalées.
    """
    errors: List[str] = []
    if SUPABASE_URL and not (SUPABASE_ANON or SUPABASE_SERVICE_KEY):
        errors.append("SUPABASE_ANON_KEY or SUPABASE_SERVICE_KEY is required when SUPABASE_URL is set")
    for name, value in (
        ("SHOPIFY_STOREFRONT_API_VERSION", SHOPIFY_STOREFRONT_API_VERSION),
        ("SHOPIFY_ADMIN_API_VERSION", SHOPIFY_ADMIN_API_VERSION),
    ):
        if not _API_VERSION_RE.match(value):
            errors.append(f"{name} must follow YYYY-MM format")
    if REVIEW_ADMIN_EMAIL and not _EMAIL_RE.match(REVIEW_ADMIN_EMAIL):
        errors.append("REVIEW_ADMIN_EMAIL must be a valid email address")
    if REVIEW_ADMIN_PASSWORD_HASH:
        _check_password_hash("REVIEW_ADMIN_PASSWORD_HASH", REVIEW_ADMIN_PASSWORD_HASH, errors)
    if REVIEW_ADMIN_SECRET and len(REVIEW_ADMIN_SECRET) < ADMIN_SECRET_MIN_LENGTH:
        errors.append(f"REVIEW_ADMIN_SECRET must be at least {ADMIN_SECRET_MIN_LENGTH} characters long")
    if RATE_LIMIT_BACKEND not in ("memory", "redis"):
        errors.append('RATE_LIMIT_BACKEND must be "memory" or "redis"')
    return errors
