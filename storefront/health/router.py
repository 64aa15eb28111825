from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from storefront.health.service import health_supabase_info, status_report
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_root(request: Request):
    backend = getattr(request.app.state, "cart_backend", None)
    return {
        "ok": True,
        "rateLimit": rate_limit_health_info(request),
        "cartBackend": backend.name if backend else None,
    }


@router.get("/health/supabase")
def health_supabase():
    return JSONResponse(health_supabase_info())


@router.get("/api/status")
def api_status():
    """Configuration prête / en attente pour chaque sous-système."""
    return status_report()
