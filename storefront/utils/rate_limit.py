"""
Limitation de débit.
- AttemptStore: compteur de tentatives par clé sur une fenêtre glissante
  (InMemoryAttemptStore pour un seul process, RedisAttemptStore pour plusieurs instances).
- LoginRateLimiter: garde du login admin (5 tentatives / 60 s par défaut).
- optional_rate_limit: dépendance FastAPI pour les routes publiques mutatives
  (fastapi-limiter si Redis est prêt, fallback mémoire local si demandé).
"""
import hashlib
import logging
import os
import secrets
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from fastapi import HTTPException, Request, Response

from storefront import config
from storefront.errors import RateLimitError
from storefront.utils.security import ADMIN_COOKIE_NAME

logger = logging.getLogger(__name__)


class AttemptStore:
    """Interface: `hit` enregistre une tentative et retourne le nombre de tentatives dans la fenêtre."""

    async def hit(self, key: str, window_seconds: int) -> int:
        raise NotImplementedError


class InMemoryAttemptStore(AttemptStore):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}

    def _evict(self, now: float, window_seconds: int) -> None:
        # Les entrées dont toutes les tentatives sont expirées disparaissent
        for key in list(self._hits):
            fresh = [t for t in self._hits[key] if now - t < window_seconds]
            if fresh:
                self._hits[key] = fresh
            else:
                del self._hits[key]

    async def hit(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        self._evict(now, window_seconds)
        hits = self._hits.setdefault(key, [])
        hits.append(now)
        return len(hits)

    def __len__(self) -> int:
        return len(self._hits)


class RedisAttemptStore(AttemptStore):
    """
    Compteur partagé sur fenêtre glissante: un sorted set par clé (score = horodatage).
    Les commandes d'une tentative passent dans une seule transaction MULTI.
    """

    def __init__(self, redis_client: Any, prefix: str = "storefront:attempts", clock: Callable[[], float] = time.time):
        self._redis = redis_client
        self._prefix = prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def hit(self, key: str, window_seconds: int) -> int:
        full_key = self._key(key)
        now = self._clock()
        member = f"{now:.6f}:{secrets.token_hex(4)}"
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(full_key, "-inf", now - window_seconds)
            pipe.zadd(full_key, {member: now})
            pipe.zcard(full_key)
            pipe.expire(full_key, window_seconds)
            _, _, count, _ = await pipe.execute()
        return int(count)


def client_identifier(request: Request) -> str:
    """
    Identifiant du client pour la limitation:
    x-forwarded-for (premier saut) > x-real-ip > pair TCP > "anonymous".
    """
    forwarded = request.headers.get("x-forwarded-for") or ""
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


class LoginRateLimiter:
    def __init__(
        self,
        store: AttemptStore,
        attempts: int = config.LOGIN_RATE_LIMIT_ATTEMPTS,
        window_seconds: int = config.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    ):
        self.store = store
        self.attempts = attempts
        self.window_seconds = window_seconds

    async def check(self, identifier: str) -> None:
        """Compte la tentative; au-delà du quota -> RateLimitError (429)."""
        count = await self.store.hit(f"login:{identifier}", self.window_seconds)
        if count > self.attempts:
            logger.warning("login rate limit exceeded for %s (%s attempts)", identifier, count)
            raise RateLimitError()


def build_attempt_store(redis_client: Optional[Any] = None) -> AttemptStore:
    if redis_client is not None:
        return RedisAttemptStore(redis_client)
    return InMemoryAttemptStore()


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    limiter = getattr(request.app.state, "login_rate_limiter", None)
    if limiter is None:
        limiter = LoginRateLimiter(InMemoryAttemptStore())
        request.app.state.login_rate_limiter = limiter
    return limiter


def _request_key(req: Request) -> str:
    # Priorité: session admin (hashée) puis IP
    token = req.cookies.get(ADMIN_COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"admin:{h}:{path}"
    return f"ip:{client_identifier(req)}:{path}"


def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            store = getattr(request.app.state, "_rl_store", None)
            if store is None:
                store = InMemoryAttemptStore()
                request.app.state._rl_store = store
            if await store.hit(_request_key(request), seconds) > times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            return

        # Respecter le flag global
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _request_key(req)

        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception as e:
            # Redis indisponible: pas de 429 en prod, LOCAL_RATE_LIMIT_FALLBACK=1 en dev
            logger.warning("fastapi-limiter unavailable, request not limited: %s", e)
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    from fastapi_limiter import FastAPILimiter
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    backend = "redis" if limiter_ready else None

    login_limiter = getattr(request.app.state, "login_rate_limiter", None)
    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
        "loginStore": type(login_limiter.store).__name__ if login_limiter else None,
    }

    if backend == "redis" and config.RATE_LIMIT_REDIS_URL:
        p = urlparse(config.RATE_LIMIT_REDIS_URL)
        info["redis"] = {
            "scheme": p.scheme,
            "host": p.hostname,
            "port": p.port,
        }

    return info
