from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import CART_COOKIE_NAME, clear_cart_cookie, set_cart_cookie
from .models import AddLinesRequest, Cart, RemoveLinesRequest, UpdateLinesRequest
from .service import CartService
from .store import select_cart_backend

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def get_cart_service(request: Request) -> CartService:
    backend = getattr(request.app.state, "cart_backend", None)
    if backend is None:
        backend = select_cart_backend()
        request.app.state.cart_backend = backend
    return CartService(backend)


def _cart_response(cart: Cart) -> JSONResponse:
    """{cart, snapshot} + cookie storefront.cart (posé si le panier a des lignes, effacé sinon)."""
    response = JSONResponse({"cart": cart.to_public(), "snapshot": cart.snapshot()})
    if cart.items:
        set_cart_cookie(response, cart.id)
    else:
        clear_cart_cookie(response)
    return response


@router.get("")
async def get_cart(
    request: Request,
    cart_id: Optional[str] = Query(None, alias="cartId"),
    svc: CartService = Depends(get_cart_service),
):
    cart_id = cart_id or request.cookies.get(CART_COOKIE_NAME)
    cart = await svc.fetch(cart_id or "")
    if cart is None:
        response = JSONResponse({"error": "Cart not found."}, status_code=404)
        clear_cart_cookie(response)
        return response
    return _cart_response(cart)


@router.post("", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
async def add_lines(req: AddLinesRequest, svc: CartService = Depends(get_cart_service)):
    """Ajout de lignes (création du panier si cartId absent)."""
    return _cart_response(await svc.add(req.cart_id, req.lines))


@router.patch("", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
async def update_lines(req: UpdateLinesRequest, svc: CartService = Depends(get_cart_service)):
    return _cart_response(await svc.update(req.cart_id, req.lines))


@router.delete("", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
async def remove_lines(req: RemoveLinesRequest, svc: CartService = Depends(get_cart_service)):
    if req.clear:
        return _cart_response(await svc.clear(req.cart_id))
    return _cart_response(await svc.remove(req.cart_id, req.line_ids))
