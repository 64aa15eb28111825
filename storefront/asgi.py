"""
ASGI entrypoint: expose `app` pour les process managers.

- En production, uvicorn/gunicorn importe `storefront.asgi:app`.
- Toute la configuration (routes, middlewares, lifespan) est centralisée dans storefront.app_setup.
"""

from storefront.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "storefront.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
