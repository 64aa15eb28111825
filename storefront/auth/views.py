import logging

from fastapi import APIRouter, Depends, Request, Response

from storefront.utils.rate_limit import LoginRateLimiter, client_identifier, get_login_rate_limiter
from storefront.utils.security import clear_admin_cookie, get_admin_session, set_admin_cookie
from storefront.utils.validators import parse_model, read_json
from .models import LoginRequest
from .service import login as svc_login

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth API"])


@router.post("/login")
async def api_login(
    request: Request,
    response: Response,
    limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
):
    """Connexion admin (JSON).
    - Rate limit par identifiant client avant toute lecture du corps (429).
    - Corps validé ensuite (400), puis identifiants (401).
    - Succès: cookie HTTP-only signé storefront.admin.
    """
    await limiter.check(client_identifier(request))
    payload = parse_model(LoginRequest, await read_json(request), message="Invalid credentials")
    session = svc_login(payload.email, payload.password)
    set_admin_cookie(response, session["token"], session["expires"])
    return {"message": "Signed in", "email": session["email"], "expires": session["expires"]}


@router.post("/logout")
def api_logout(response: Response):
    clear_admin_cookie(response)
    return {"message": "Signed out"}


@router.get("/session")
def api_session(session=Depends(get_admin_session)):
    if not session:
        return {"authenticated": False}
    return {"authenticated": True, "email": session["email"], "expires": session["expires"]}
