from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from storefront.cart.service import CartService
from storefront.cart.views import get_cart_service
from storefront.utils.rate_limit import optional_rate_limit
from .models import CartCheckoutRequest, CheckoutRequest
from .service import build_checkout, build_checkout_from_cart

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(req: CheckoutRequest):
    """Checkout depuis une liste explicite {items: [{sku, qty}]} -> {url, checkoutId, mock}."""
    return build_checkout(req.items).to_public()


@router.post("/cart", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_from_cart(req: CartCheckoutRequest, svc: CartService = Depends(get_cart_service)):
    cart = await svc.get(req.cart_id)
    result = await run_in_threadpool(build_checkout_from_cart, cart)
    return result.to_public()
