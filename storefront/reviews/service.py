"""
Modération des avis.
Cycle de vie: PENDING (dépôt public) -> APPROVED | REJECTED, retour possible en PENDING.
Seule une session admin fait transiter un avis; moderated_by / moderated_at sont effacés au retour en PENDING.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from storefront import config
from storefront.catalog import dummy_content
from storefront.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from . import repository as repo
from .models import ReviewCreate, ReviewStatus

logger = logging.getLogger(__name__)

_STATUS_FILTERS = {
    "approved": ReviewStatus.APPROVED,
    "pending": ReviewStatus.PENDING,
    "rejected": ReviewStatus.REJECTED,
}


def parse_status(value: Optional[str]) -> ReviewStatus:
    try:
        return ReviewStatus((value or "").strip().upper())
    except ValueError:
        raise ValidationError("Invalid status value")


def transition(review: Dict[str, Any], status: ReviewStatus, moderator: str,
               now: Optional[datetime] = None) -> Dict[str, Any]:
    """Changements à appliquer à un avis pour le passer à `status`."""
    if status is ReviewStatus.PENDING:
        return {"status": status.value, "moderated_by": None, "moderated_at": None}
    moment = now or datetime.now(timezone.utc)
    return {"status": status.value, "moderated_by": moderator, "moderated_at": moment.isoformat()}


def to_public(row: Dict[str, Any], product: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    review = {
        "id": row.get("id"),
        "productId": row.get("product_id"),
        "productSlug": row.get("product_slug"),
        "name": row.get("name"),
        "rating": row.get("rating"),
        "comment": row.get("comment"),
        "status": row.get("status"),
        "moderatedBy": row.get("moderated_by"),
        "moderatedAt": row.get("moderated_at"),
        "createdAt": row.get("created_at"),
    }
    if product is not None:
        review["product"] = product
    return review


def submit_review(payload: ReviewCreate) -> Dict[str, Any]:
    if not config.is_database_configured():
        raise UpstreamError("Unable to save review right now")
    try:
        product_id = repo.get_product_id_by_slug(payload.slug)
    except Exception:
        logger.exception("reviews.submit product lookup failed slug=%s", payload.slug)
        raise UpstreamError("Unable to save review right now")
    if not product_id:
        raise NotFoundError("Product not found")
    try:
        row = repo.insert_review({
            "product_id": product_id,
            "name": payload.name,
            "rating": int(math.floor(payload.rating + 0.5)),
            "comment": payload.comment,
            "status": ReviewStatus.PENDING.value,
        })
    except Exception:
        logger.exception("reviews.submit insert failed slug=%s", payload.slug)
        raise UpstreamError("Unable to save review right now")
    return {"id": row.get("id"), "status": row.get("status") or ReviewStatus.PENDING.value}


def _static_reviews(slug: str) -> List[Dict[str, Any]]:
    if not dummy_content.get_dummy_product(slug):
        raise NotFoundError("Product not found")
    return [to_public(r) for r in dummy_content.get_dummy_reviews(slug)]


def list_reviews(slug: Optional[str], status: Optional[str], include_product: bool,
                 is_admin: bool) -> List[Dict[str, Any]]:
    """
    Lecture des avis:
    - sans slug: réservé à l'admin (401)
    - filtre de statut: approved (défaut) | pending | rejected | all; invalide -> 400
    - non-admin: uniquement approved
    - stockage en échec: avis statiques avec slug, [] sans slug
    """
    status_param = (status or "approved").strip().lower()
    if not slug and not is_admin:
        raise AuthError("Unauthorized")
    requested = None if status_param == "all" else _STATUS_FILTERS.get(status_param)
    if requested is None and status_param != "all":
        raise ValidationError("Invalid status filter")
    if not is_admin and status_param != "approved":
        raise AuthError("Unauthorized")

    try:
        if not config.is_database_configured():
            raise RuntimeError("database not configured")
        product_id = None
        if slug:
            product_id = repo.get_product_id_by_slug(slug)
            if not product_id:
                raise NotFoundError("Product not found")
        rows = repo.list_reviews(product_id, requested.value if requested else None)
        products: Dict[str, Dict[str, Any]] = {}
        if include_product:
            products = repo.fetch_products_summary(sorted({str(r["product_id"]) for r in rows if r.get("product_id")}))
        return [to_public(r, products.get(str(r.get("product_id"))) if include_product else None) for r in rows]
    except NotFoundError:
        raise
    except Exception:
        if slug:
            logger.warning("Falling back to static reviews for %s", slug, exc_info=True)
        else:
            logger.warning("Unable to load reviews; returning empty set.", exc_info=True)

    if not slug:
        return []
    return _static_reviews(slug)


def moderate(review_id: str, status_value: Optional[str], moderator: str) -> Dict[str, Any]:
    status = parse_status(status_value)
    try:
        review = repo.get_review(review_id)
    except Exception:
        logger.exception("reviews.moderate lookup failed id=%s", review_id)
        raise UpstreamError("Unable to update review")
    if not review:
        raise NotFoundError("Review not found")
    changes = transition(review, status, moderator)
    try:
        updated = repo.update_review(review_id, changes)
    except Exception:
        logger.exception("reviews.moderate update failed id=%s", review_id)
        raise UpstreamError("Unable to update review")
    logger.info("review %s moved to %s by %s", review_id, status.value, moderator)
    row = {**review, **changes, **updated}
    product = repo.fetch_products_summary([str(row["product_id"])]).get(str(row["product_id"])) if row.get("product_id") else None
    return to_public(row, product)
