"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Crée le store de tentatives du login (mémoire ou Redis) et le LoginRateLimiter.
- Choisit une fois le backend panier (Shopify ou mock).
- Journalise la validation de l'environnement (fatale si ENFORCE_ENV_VALIDATION).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
"""
import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront import config
from storefront.cart.store import select_cart_backend
from storefront.utils.rate_limit import LoginRateLimiter, build_attempt_store

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except ImportError:
    FakeRedis = None


def _redis_client(use_fake: bool):
    if use_fake:
        if not FakeRedis:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        return FakeRedis(decode_responses=True)
    return aioredis.from_url(config.RATE_LIMIT_REDIS_URL, encoding="utf-8", decode_responses=True)


async def _init_rate_limiter(app: FastAPI, logger: logging.Logger):
    """
    Configure le rate limiting et gère les fallbacks.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    - Retourne le client Redis utilisable (ou None).
    """
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return None
    try:
        r = _redis_client(os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1")
        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
        return r
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            app.state.rate_limit_enabled = False
            logger.warning("Rate limiting disabled due to init error: %s", e)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")

    errors = config.validate_env()
    for err in errors:
        logger.warning("Environment validation: %s", err)
    if errors and config.ENFORCE_ENV_VALIDATION:
        raise RuntimeError("Invalid environment configuration: " + "; ".join(errors))

    redis_client = await _init_rate_limiter(app, logger)

    # Compteur du login: partagé via Redis si demandé et disponible, sinon mémoire du process
    use_redis_store = config.RATE_LIMIT_BACKEND == "redis" and redis_client is not None
    store = build_attempt_store(redis_client if use_redis_store else None)
    app.state.login_rate_limiter = LoginRateLimiter(store)
    logger.info("Login rate limiter store: %s", type(store).__name__)

    app.state.cart_backend = select_cart_backend()
    logger.info("Cart backend: %s", app.state.cart_backend.name)

    yield

    if redis_client is not None:
        await FastAPILimiter.close()
