"""
Session admin sans état serveur.
- Jeton: base64url(json{email, expires}) + "." + base64url(HMAC-SHA256(secret, payload encodé))
- Vérification: signature recalculée, comparaison à temps constant, expiration en epoch-ms
- Mot de passe: sha256 salé ou non, bcrypt, plain (déprécié)
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

import bcrypt

from storefront import config
from storefront.errors import AuthError, UpstreamError

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(encoded: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), encoded.encode("ascii"), hashlib.sha256).digest()
    return _b64url_encode(digest)


def safe_compare(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def issue(email: str, secret: str, now_ms: Optional[int] = None, ttl_seconds: Optional[int] = None) -> str:
    ttl = config.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    now = _now_ms() if now_ms is None else now_ms
    payload = {"email": email, "expires": now + ttl * 1000}
    encoded = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{encoded}.{_sign(encoded, secret)}"


def verify(token: Optional[str], secret: str, now_ms: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Retourne {email, expires} si le jeton est intact et non expiré, sinon None.
    Aucune exception ne remonte: un jeton mal formé est simplement invalide.
    """
    if not token or not secret:
        return None
    encoded, sep, signature = token.partition(".")
    if not sep or not encoded or not signature:
        return None
    if not safe_compare(signature, _sign(encoded, secret)):
        return None
    try:
        payload = json.loads(_b64url_decode(encoded).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        logger.warning("admin session payload could not be decoded")
        return None
    if not isinstance(payload, dict):
        return None
    expires = payload.get("expires")
    email = payload.get("email")
    now = _now_ms() if now_ms is None else now_ms
    if not isinstance(expires, (int, float)) or expires < now or not isinstance(email, str):
        return None
    return {"email": email, "expires": int(expires)}


def hash_password(password: str, scheme: str = "sha256", salt: Optional[str] = None) -> str:
    """Produit une valeur REVIEW_ADMIN_PASSWORD_HASH (utilisée par generate_hash.py)."""
    if scheme == "bcrypt":
        return "bcrypt:" + bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    if salt:
        digest = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
        return f"sha256:{salt}${digest}"
    return "sha256:" + hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, stored: str) -> bool:
    if not password or not stored:
        return False
    if stored.startswith("sha256:"):
        digest = stored[len("sha256:"):]
        salt = ""
        if "$" in digest:
            salt, _, digest = digest.partition("$")
        if not digest:
            return False
        hashed = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
        return safe_compare(hashed, digest.lower())
    if stored.startswith("bcrypt:") or stored.startswith("$2"):
        hashed = stored[len("bcrypt:"):] if stored.startswith("bcrypt:") else stored
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            logger.exception("invalid bcrypt hash in REVIEW_ADMIN_PASSWORD_HASH")
            return False
    if stored.startswith("plain:"):
        logger.warning('REVIEW_ADMIN_PASSWORD_HASH uses the deprecated "plain:" format')
        return safe_compare(password, stored[len("plain:"):])

    logger.error('Unsupported admin password hash format. Expected "sha256:", "bcrypt:" or "plain:".')
    return False


def admin_secret() -> str:
    if not config.is_admin_configured():
        raise UpstreamError("Administrative credentials are not fully configured.")
    return config.REVIEW_ADMIN_SECRET


def authenticate(email: str, password: str) -> bool:
    if not config.is_admin_configured():
        raise UpstreamError("Administrative credentials are not fully configured.")
    if not safe_compare(config.REVIEW_ADMIN_EMAIL.lower(), (email or "").strip().lower()):
        return False
    return verify_password(password, config.REVIEW_ADMIN_PASSWORD_HASH)


def login(email: str, password: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """Connexion: identifiants vérifiés -> {token, email, expires}; sinon AuthError."""
    if not authenticate(email, password):
        raise AuthError("Invalid credentials")
    secret = admin_secret()
    token = issue(config.REVIEW_ADMIN_EMAIL, secret, now_ms=now_ms)
    session = verify(token, secret, now_ms=now_ms)
    if session is None:
        raise UpstreamError("Unable to create admin session")
    logger.info("admin login for %s", session["email"])
    return {"token": token, **session}


def session_from_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    if not token or not config.is_admin_configured():
        return None
    return verify(token, config.REVIEW_ADMIN_SECRET)
