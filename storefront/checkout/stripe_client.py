"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
from typing import Any, Dict, List, Optional

import stripe

from storefront import config


def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe


def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    session = stripe.checkout.Session.create(
        line_items=line_items,
        mode=mode,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
    )
    return session.to_dict() if hasattr(session, "to_dict") else dict(session)


def construct_event(payload: bytes, sig_header: Optional[str]):
    """
    Valide un événement Stripe signé (webhook) via Webhook.construct_event (STRIPE_WEBHOOK_SECRET).
    Lève stripe.error.SignatureVerificationError / ValueError si invalide.
    """
    require_stripe()
    return stripe.Webhook.construct_event(payload, sig_header or "", config.STRIPE_WEBHOOK_SECRET)
