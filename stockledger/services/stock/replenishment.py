"""
Replenishment Service
Restock urgency and reorder quantities from stock levels and sales velocity
"""
from dataclasses import dataclass, field
from fractions import Fraction
from math import ceil, floor
from typing import Dict, List, Optional
import enum
import logging

from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.database import transaction
from stockledger.core.exceptions import StockLedgerError, ValidationError
from stockledger.models import ReplenishmentConfig, StockRecord
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.stock_ledger import StockLedgerService

logger = logging.getLogger(__name__)

ANALYSIS_PERIODS = (30, 60, 90)


class Priority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"critical": 4, "high": 3, "medium": 2, "low": 1}[self.value]


@dataclass
class ReplenishmentParameters:
    avg_delivery_days: int = 7
    full_release_days: int = 3
    safety_stock: Optional[int] = None
    min_coverage_days: int = 30
    analysis_period_days: int = 30
    is_default: bool = True

    @classmethod
    def defaults(cls) -> "ReplenishmentParameters":
        return cls(
            avg_delivery_days=settings.REPLENISHMENT_AVG_DELIVERY_DAYS,
            full_release_days=settings.REPLENISHMENT_FULL_RELEASE_DAYS,
            safety_stock=settings.REPLENISHMENT_SAFETY_STOCK,
            min_coverage_days=settings.REPLENISHMENT_MIN_COVERAGE_DAYS,
            analysis_period_days=settings.SALES_WINDOW_DAYS,
        )

    @classmethod
    def from_config(cls, config: ReplenishmentConfig) -> "ReplenishmentParameters":
        return cls(
            avg_delivery_days=config.avg_delivery_days,
            full_release_days=config.full_release_days,
            safety_stock=config.safety_stock,
            min_coverage_days=config.min_coverage_days,
            analysis_period_days=config.analysis_period_days,
            is_default=False,
        )


@dataclass
class RestockSuggestion:
    product_id: int
    warehouse_id: int
    current_stock: int
    sales_in_window: int
    daily_velocity: float
    safety_floor: int
    days_until_stockout: Optional[int]  # None means no sales, unbounded runway
    priority: Priority
    needs_attention: bool
    suggested_restock: int
    order_by_days: Optional[int]


@dataclass
class ItemError:
    product_id: int
    error: str
    message: str


@dataclass
class ReplenishmentReport:
    warehouse_id: int
    analyzed: int = 0
    suggestions: List[RestockSuggestion] = field(default_factory=list)
    errors: List[ItemError] = field(default_factory=list)


def classify(days_until_stockout: Optional[int], min_coverage_days: int) -> Priority:
    if days_until_stockout is None:
        return Priority.LOW
    if days_until_stockout <= 3:
        return Priority.CRITICAL
    if days_until_stockout <= 7:
        return Priority.HIGH
    if days_until_stockout <= min_coverage_days:
        return Priority.MEDIUM
    return Priority.LOW


def suggestion_sort_key(suggestion: RestockSuggestion):
    runway = suggestion.days_until_stockout
    return (-suggestion.priority.rank, runway is None, runway or 0)


class ReplenishmentService:
    """
    Replenishment Analyzer

    Pure computation over a snapshot of the ledger; never writes stock.
    Velocity is exact (a Fraction) so floors and ceilings land on whole
    units the way the arithmetic says they should.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id
        self.catalog = CatalogService(db, owner_id)
        self.ledger = StockLedgerService(db)

    def analyze(
        self,
        product_id: int,
        warehouse_id: int,
        sales_in_window: Optional[int],
        config: Optional[ReplenishmentParameters] = None
    ) -> RestockSuggestion:
        """
        Compute the restock suggestion for one product in one warehouse

        Missing sales data counts as no sales. ``config`` defaults to the
        product's stored parameters, or the settings defaults.
        """
        params = config or self.get_config(product_id)
        sales = sales_in_window or 0
        if sales < 0:
            raise ValidationError(f"Sales for product {product_id} cannot be negative")

        record = self.db.query(StockRecord).filter(
            StockRecord.product_id == product_id,
            StockRecord.warehouse_id == warehouse_id
        ).first()
        current_stock = record.quantity if record else 0

        velocity = Fraction(sales, params.analysis_period_days)

        if params.safety_stock is not None:
            safety_floor = params.safety_stock
        else:
            safety_floor = ceil(velocity * params.full_release_days)

        if velocity == 0:
            days_until_stockout = None
        else:
            days_until_stockout = floor(current_stock / velocity)

        priority = classify(days_until_stockout, params.min_coverage_days)
        comfortable_runway = days_until_stockout is None or days_until_stockout > params.min_coverage_days
        needs_attention = not (comfortable_runway and current_stock > safety_floor)

        suggested_restock = ceil(max(
            Fraction(safety_floor - current_stock),
            velocity * params.min_coverage_days
        ))

        return RestockSuggestion(
            product_id=product_id,
            warehouse_id=warehouse_id,
            current_stock=current_stock,
            sales_in_window=sales,
            daily_velocity=round(float(velocity), 4),
            safety_floor=safety_floor,
            days_until_stockout=days_until_stockout,
            priority=priority,
            needs_attention=needs_attention,
            suggested_restock=max(0, suggested_restock),
            order_by_days=(
                days_until_stockout - params.avg_delivery_days
                if days_until_stockout is not None else None
            )
        )

    def analyze_warehouse(
        self,
        warehouse_id: int,
        sales_by_product: Dict[int, int],
        product_ids: Optional[List[int]] = None
    ) -> ReplenishmentReport:
        """
        Analyze every stocked product of a warehouse (or the given ones)

        Only products needing attention with a positive restock quantity are
        reported, most urgent first.
        A product that fails is recorded in ``errors`` and the rest continue.
        """
        self.catalog.get_warehouse(warehouse_id)

        if product_ids is None:
            stocked = [r.product_id for r in self.ledger.list_records(warehouse_id=warehouse_id)]
            product_ids = list(dict.fromkeys(stocked + list(sales_by_product)))

        report = ReplenishmentReport(warehouse_id=warehouse_id)
        for product_id in product_ids:
            try:
                product = self.catalog.get_product(product_id)
                if product.is_kit:
                    continue
                suggestion = self.analyze(product_id, warehouse_id, sales_by_product.get(product_id))
            except StockLedgerError as e:
                logger.warning(f"Replenishment analysis failed for product {product_id}: {e.message}")
                report.errors.append(ItemError(product_id=product_id, error=e.error_type, message=e.message))
                continue

            report.analyzed += 1
            # Nothing to order means nothing to act on
            if suggestion.needs_attention and suggestion.suggested_restock > 0:
                report.suggestions.append(suggestion)

        report.suggestions.sort(key=suggestion_sort_key)
        logger.info(
            f"Replenishment for warehouse {warehouse_id}: {report.analyzed} analyzed, "
            f"{len(report.suggestions)} need attention, {len(report.errors)} errors"
        )
        return report

    def get_config(self, product_id: int) -> ReplenishmentParameters:
        config = self._stored_config(product_id)
        if config is None:
            return ReplenishmentParameters.defaults()
        return ReplenishmentParameters.from_config(config)

    def save_config(
        self,
        product_id: int,
        avg_delivery_days: Optional[int] = None,
        full_release_days: Optional[int] = None,
        safety_stock: Optional[int] = None,
        min_coverage_days: Optional[int] = None,
        analysis_period_days: Optional[int] = None
    ) -> ReplenishmentParameters:
        """Create or replace the product's parameters; omitted values take the defaults"""
        self.catalog.get_product(product_id)
        defaults = ReplenishmentParameters.defaults()

        values = {
            "avg_delivery_days": defaults.avg_delivery_days if avg_delivery_days is None else avg_delivery_days,
            "full_release_days": defaults.full_release_days if full_release_days is None else full_release_days,
            "min_coverage_days": defaults.min_coverage_days if min_coverage_days is None else min_coverage_days,
            "analysis_period_days": (
                defaults.analysis_period_days if analysis_period_days is None else analysis_period_days
            ),
            "safety_stock": safety_stock,
        }
        for name in ("avg_delivery_days", "full_release_days", "min_coverage_days"):
            if values[name] <= 0:
                raise ValidationError(f"{name} must be positive", {"field": name})
        if values["analysis_period_days"] not in ANALYSIS_PERIODS:
            raise ValidationError(
                f"analysis_period_days must be one of {', '.join(map(str, ANALYSIS_PERIODS))}",
                {"field": "analysis_period_days"}
            )
        if safety_stock is not None and safety_stock < 0:
            raise ValidationError("safety_stock cannot be negative", {"field": "safety_stock"})

        with transaction(self.db):
            config = self._stored_config(product_id)
            if config is None:
                config = ReplenishmentConfig(owner_id=self.owner_id, product_id=product_id)
                self.db.add(config)
            for name, value in values.items():
                setattr(config, name, value)
            self.db.flush()
            params = ReplenishmentParameters.from_config(config)

        return params

    def delete_config(self, product_id: int) -> bool:
        """Drop stored parameters so the product falls back to the defaults"""
        with transaction(self.db):
            config = self._stored_config(product_id)
            if config is None:
                return False
            self.db.delete(config)
        return True

    def _stored_config(self, product_id: int) -> Optional[ReplenishmentConfig]:
        return self.db.query(ReplenishmentConfig).filter(
            ReplenishmentConfig.owner_id == self.owner_id,
            ReplenishmentConfig.product_id == product_id
        ).first()
