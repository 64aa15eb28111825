from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_admin_session, require_admin
from storefront.utils.validators import parse_model, read_json
from . import service as reviews_service
from .models import ReviewCreate, ReviewStatusUpdate

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("")
def list_reviews(
    slug: Optional[str] = None,
    status: Optional[str] = None,
    include: List[str] = Query([]),
    session: Optional[Dict[str, Any]] = Depends(get_admin_session),
):
    """Avis approuvés d'un produit (public) ou file de modération (admin, status=pending|rejected|all)."""
    return reviews_service.list_reviews(slug, status, "product" in include, is_admin=bool(session))


@router.post("", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def submit_review(request: Request):
    payload = parse_model(ReviewCreate, await read_json(request), message="Missing required fields")
    review = await run_in_threadpool(reviews_service.submit_review, payload)
    return JSONResponse({"message": "Review submitted for moderation", "review": review}, status_code=201)


@router.patch("/{review_id}")
async def moderate_review(review_id: str, request: Request, admin: Dict[str, Any] = Depends(require_admin)):
    """Transition de statut (admin uniquement; la session est vérifiée avant la lecture du corps)."""
    payload = parse_model(ReviewStatusUpdate, await read_json(request), message="Invalid status value")
    return await run_in_threadpool(reviews_service.moderate, review_id, payload.status, admin["email"])
