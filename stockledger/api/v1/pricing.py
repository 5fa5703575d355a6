"""
Pricing API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry
from stockledger.schemas.pricing import CanonicalPriceResponse, ReconcileRequest
from stockledger.services.marketplace.feeds import PriceQuote, PromotionPrice
from stockledger.services.marketplace.price_reconciler import PriceReconcilerService

router = APIRouter()


def _promotion(request: ReconcileRequest):
    if request.promotion is None:
        return None
    return PromotionPrice(amount=request.promotion.amount, regular_amount=request.promotion.regular_amount)


@router.post("/reconcile", response_model=CanonicalPriceResponse)
def reconcile_price(request: ReconcileRequest):
    """
    Normalize a reported price into cents and check the stored discount.

    A diverging discount is reported in ``inconsistency``; it never fails
    the request.
    """
    result = PriceReconcilerService().reconcile(
        request.standard_price,
        _promotion(request),
        stored_discount_pct=request.stored_discount_pct,
        reference=request.reference
    )
    return CanonicalPriceResponse.model_validate(result)


@router.post("/listings/{listing_id}/reconcile", response_model=CanonicalPriceResponse)
def reconcile_listing_price(
    listing_id: int,
    request: ReconcileRequest,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Reconcile a quote fetched by the caller and store it on the listing.
    """
    service = PriceReconcilerService(db, owner_id)
    quote = PriceQuote(standard_price=request.standard_price, promotion=_promotion(request))
    result = run_with_retry(lambda: service.reconcile_listing(listing_id, quote))
    return CanonicalPriceResponse.model_validate(result)
