"""
Marketplace Feed Adapters
Contract for the external sales/price feed and batched, rate-limited fetching
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Hashable, List, Optional, Protocol, Sequence, Tuple, TypeVar, Union
import logging
import time

from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.database import transaction
from stockledger.models import MarketplaceListing

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

MajorAmount = Union[Decimal, str, int, float]


@dataclass
class PromotionPrice:
    """Promotion as reported by the marketplace, in decimal major units"""
    amount: MajorAmount
    regular_amount: Optional[MajorAmount] = None


@dataclass
class PriceQuote:
    standard_price: Optional[MajorAmount]
    promotion: Optional[PromotionPrice] = None


class MarketplaceFeed(Protocol):
    """Implemented by the host application around its marketplace client"""

    def fetch_sales(self, external_id: str, window_days: int) -> int:
        ...

    def fetch_price(self, external_id: str) -> PriceQuote:
        ...


@dataclass
class FeedFailure:
    key: str
    message: str


def fetch_in_batches(
    keys: Sequence[K],
    fetch: Callable[[K], V],
    batch_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep
) -> Tuple[Dict[K, V], List[FeedFailure]]:
    """
    Call fetch for every key, batch_size at a time, pausing between batches

    A failing key is recorded and skipped; it never stops the run.
    """
    batch_size = batch_size or settings.MARKETPLACE_BATCH_SIZE
    delay = settings.MARKETPLACE_BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds

    results: Dict[K, V] = {}
    failures: List[FeedFailure] = []

    for start in range(0, len(keys), batch_size):
        if start and delay > 0:
            sleep(delay)
        for key in keys[start:start + batch_size]:
            try:
                results[key] = fetch(key)
            except Exception as e:
                logger.warning(f"Marketplace fetch failed for {key}: {e}")
                failures.append(FeedFailure(key=str(key), message=str(e)))

    return results, failures


@dataclass
class SalesSnapshot:
    window_days: int
    sales_by_product: Dict[int, int] = field(default_factory=dict)
    errors: List[FeedFailure] = field(default_factory=list)


class SalesSnapshotCollector:
    """
    Pull trailing-window sales for linked listings

    All feed calls finish before the listing rows are touched. Products
    whose every listing failed are left out of the snapshot, which the
    analyzer treats as zero velocity.
    """

    def __init__(self, db: Session, feed: MarketplaceFeed, owner_id: int):
        self.db = db
        self.feed = feed
        self.owner_id = owner_id

    def collect(self, product_ids: Optional[Sequence[int]] = None, window_days: Optional[int] = None) -> SalesSnapshot:
        window = window_days or settings.SALES_WINDOW_DAYS

        query = self.db.query(MarketplaceListing).filter(MarketplaceListing.owner_id == self.owner_id)
        if product_ids is not None:
            query = query.filter(MarketplaceListing.product_id.in_(list(product_ids)))
        # Plain values only; no row is held across the feed calls
        product_by_external = {
            listing.external_id: listing.product_id
            for listing in query.order_by(MarketplaceListing.id).all()
        }
        external_ids = list(product_by_external)
        sold, failures = fetch_in_batches(
            external_ids,
            lambda external_id: int(self.feed.fetch_sales(external_id, window))
        )

        snapshot = SalesSnapshot(window_days=window, errors=failures)
        for external_id, units in sold.items():
            product_id = product_by_external[external_id]
            snapshot.sales_by_product[product_id] = snapshot.sales_by_product.get(product_id, 0) + units

        if sold:
            now = datetime.now(timezone.utc)
            with transaction(self.db):
                listings = self.db.query(MarketplaceListing).filter(
                    MarketplaceListing.external_id.in_(list(sold))
                ).with_for_update().all()
                for listing in listings:
                    listing.sold_in_window = sold[listing.external_id]
                    listing.synced_at = now

        logger.info(
            f"Collected {window}-day sales for {len(sold)} of {len(external_ids)} listings "
            f"({len(failures)} failures)"
        )
        return snapshot
