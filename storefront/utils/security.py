import time
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.responses import Response

from storefront import config
from storefront.auth.service import session_from_token
from storefront.errors import AuthError

ADMIN_COOKIE_NAME = "storefront.admin"
CART_COOKIE_NAME = "storefront.cart"
CART_COOKIE_MAX_AGE = 60 * 60 * 24 * 30


def set_admin_cookie(response: Response, token: str, expires_ms: int):
    max_age = max(0, int(expires_ms / 1000 - time.time()))
    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def clear_admin_cookie(response: Response):
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")


def set_cart_cookie(response: Response, cart_id: str):
    response.set_cookie(
        key=CART_COOKIE_NAME,
        value=cart_id,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        max_age=CART_COOKIE_MAX_AGE,
        path="/",
    )


def clear_cart_cookie(response: Response):
    response.delete_cookie(CART_COOKIE_NAME, path="/")


def get_admin_session(request: Request) -> Optional[Dict[str, Any]]:
    """Session admin optionnelle: None si cookie absent, invalide, expiré ou admin non configuré."""
    return session_from_token(request.cookies.get(ADMIN_COOKIE_NAME))


def require_admin(session: Optional[Dict[str, Any]] = Depends(get_admin_session)) -> Dict[str, Any]:
    if not session:
        raise AuthError("Unauthorized")
    return session
