"""
Price Reconciler Service
Normalizes marketplace prices into cents and checks stored discount consistency
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy.orm import Session

from stockledger.core.database import transaction
from stockledger.core.exceptions import (
    NotFoundError, PriceInconsistency, StockLedgerError, ValidationError
)
from stockledger.models import MarketplaceListing
from stockledger.services.marketplace.feeds import (
    FeedFailure, MajorAmount, MarketplaceFeed, PriceQuote, PromotionPrice, fetch_in_batches
)

logger = logging.getLogger(__name__)

CENTS = Decimal(100)


def to_minor_units(value: Optional[MajorAmount]) -> Optional[int]:
    """
    Convert a decimal major-unit amount to integer cents

    The one place major units become minor units. Floats go through their
    repr so 49.90 is read as written, then the amount is scaled by 100 and
    rounded half up exactly once.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid price {value!r}")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid price {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid price {value!r}")
    if amount < 0:
        raise ValidationError(f"Price cannot be negative: {value}")
    return int((amount * CENTS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def discount_percent(regular_cents: int, promotion_cents: int) -> int:
    """round((regular - promotion) / regular * 100), half up, on cents"""
    if regular_cents <= 0:
        raise ValidationError("Regular price must be positive to compute a discount")
    ratio = Decimal((regular_cents - promotion_cents) * 100) / Decimal(regular_cents)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass
class CanonicalPrice:
    price_cents: int
    standard_price_cents: Optional[int]
    promotion_price_cents: Optional[int] = None
    regular_price_cents: Optional[int] = None
    discount_pct: Optional[int] = None
    has_promotion: bool = False
    inconsistency: Optional[PriceInconsistency] = None


@dataclass
class ListingPrice:
    listing_id: int
    external_id: str
    price: CanonicalPrice


@dataclass
class ReconciliationReport:
    results: List[ListingPrice] = field(default_factory=list)
    errors: List[FeedFailure] = field(default_factory=list)

    @property
    def inconsistencies(self) -> List[ListingPrice]:
        return [r for r in self.results if r.price.inconsistency is not None]


class PriceReconcilerService:
    """
    Marketplace Price Reconciler

    ``reconcile`` is pure. ``reconcile_listing`` and ``reconcile_batch``
    store the result on marketplace listings; batch fetching from the feed
    is finished before the write transaction opens.
    """

    def __init__(self, db: Optional[Session] = None, owner_id: Optional[int] = None):
        self.db = db
        self.owner_id = owner_id

    def reconcile(
        self,
        raw_standard_price: Optional[MajorAmount],
        raw_promotion_price: Optional[PromotionPrice] = None,
        stored_discount_pct: Optional[int] = None,
        reference: Optional[str] = None
    ) -> CanonicalPrice:
        standard_cents = to_minor_units(raw_standard_price)

        promotion_cents = regular_cents = discount = None
        if raw_promotion_price is not None:
            promotion_cents = to_minor_units(raw_promotion_price.amount)
            regular_cents = to_minor_units(raw_promotion_price.regular_amount)
            if promotion_cents is None:
                raise ValidationError("Promotion price has no amount")
            if regular_cents:
                discount = discount_percent(regular_cents, promotion_cents)

        if promotion_cents is not None:
            price_cents = promotion_cents
        elif standard_cents is not None:
            price_cents = standard_cents
        else:
            raise ValidationError("A standard or promotion price is required")

        result = CanonicalPrice(
            price_cents=price_cents,
            standard_price_cents=standard_cents,
            promotion_price_cents=promotion_cents,
            regular_price_cents=regular_cents,
            discount_pct=discount,
            has_promotion=promotion_cents is not None
        )

        # A promotion without a regular amount gives no discount to compare
        comparable = discount is not None or promotion_cents is None
        if stored_discount_pct is not None and comparable:
            computed = discount or 0
            if stored_discount_pct != computed:
                result.inconsistency = PriceInconsistency(stored_discount_pct, computed, reference)
                logger.warning(f"Price inconsistency on {reference or 'quote'}: {result.inconsistency.message}")

        return result

    def reconcile_listing(self, listing_id: int, quote: PriceQuote) -> CanonicalPrice:
        """Reconcile a fetched quote against the listing and store the canonical price"""
        with transaction(self.db):
            listing = self._get_listing(listing_id, for_update=True)
            result = self._apply(listing, quote)
        return result

    def reconcile_batch(
        self,
        feed: MarketplaceFeed,
        listing_ids: Optional[Sequence[int]] = None
    ) -> ReconciliationReport:
        """
        Fetch prices for many listings and store them

        Feed failures and bad quotes are reported per listing; the rest of
        the batch is still stored.
        """
        query = self.db.query(MarketplaceListing.id, MarketplaceListing.external_id)
        if self.owner_id is not None:
            query = query.filter(MarketplaceListing.owner_id == self.owner_id)
        if listing_ids is not None:
            query = query.filter(MarketplaceListing.id.in_(list(listing_ids)))
        targets: List[Tuple[int, str]] = [tuple(row) for row in query.order_by(MarketplaceListing.id).all()]

        quotes, failures = fetch_in_batches([external_id for _, external_id in targets], feed.fetch_price)
        report = ReconciliationReport(errors=failures)

        with transaction(self.db):
            for listing_id, external_id in targets:
                if external_id not in quotes:
                    continue
                listing = self._get_listing(listing_id, for_update=True)
                try:
                    price = self._apply(listing, quotes[external_id])
                except StockLedgerError as e:
                    report.errors.append(FeedFailure(key=external_id, message=e.message))
                    continue
                report.results.append(ListingPrice(listing_id=listing_id, external_id=external_id, price=price))

        logger.info(
            f"Reconciled {len(report.results)} of {len(targets)} listings, "
            f"{len(report.inconsistencies)} inconsistent, {len(report.errors)} errors"
        )
        return report

    def _apply(self, listing: MarketplaceListing, quote: PriceQuote) -> CanonicalPrice:
        result = self.reconcile(
            quote.standard_price,
            quote.promotion,
            stored_discount_pct=listing.discount_pct,
            reference=listing.external_id
        )
        listing.price_cents = result.price_cents
        listing.standard_price_cents = result.standard_price_cents
        listing.regular_price_cents = result.regular_price_cents
        listing.discount_pct = result.discount_pct
        listing.has_promotion = result.has_promotion
        listing.synced_at = datetime.now(timezone.utc)
        return result

    def _get_listing(self, listing_id: int, for_update: bool = False) -> MarketplaceListing:
        query = self.db.query(MarketplaceListing).filter(MarketplaceListing.id == listing_id)
        if self.owner_id is not None:
            query = query.filter(MarketplaceListing.owner_id == self.owner_id)
        if for_update:
            query = query.with_for_update()
        listing = query.first()
        if listing is None:
            raise NotFoundError(f"Marketplace listing {listing_id} not found", {"listing_id": str(listing_id)})
        return listing
