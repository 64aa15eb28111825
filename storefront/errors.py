"""
Taxonomie des erreurs métier de la boutique.
Chaque erreur porte son code HTTP; le handler (app_setup.exceptions) la traduit en {"error": ..., **extra}.
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    status_code = 500
    default_message = "Erreur interne"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(StorefrontError):
    status_code = 400
    default_message = "Requête invalide"


class AuthError(StorefrontError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(StorefrontError):
    status_code = 404
    default_message = "Not found"


class RateLimitError(StorefrontError):
    status_code = 429
    default_message = "Too many attempts. Try again later."


class UpstreamError(StorefrontError):
    """Échec d'un service distant (Shopify, Stripe, Supabase); le message est relayé tel quel."""
    status_code = 500
    default_message = "Upstream service failure"
