"""
Registre central des routers.
- API: auth (session admin), cart, checkout, orders (webhooks + admin), reviews, products
- Health: /health, /health/supabase, /api/status
"""
from fastapi import FastAPI

from storefront.auth.views import router as auth_router
from storefront.cart.views import router as cart_router
from storefront.checkout.views import router as checkout_router
from storefront.health.router import router as health_router
from storefront.orders.views import router as orders_router
from storefront.products.views import router as products_router
from storefront.reviews.views import router as reviews_router


def register_routers(app: FastAPI) -> None:
    app.include_router(auth_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(reviews_router)
    app.include_router(products_router)
    # Health & monitoring
    app.include_router(health_router)
