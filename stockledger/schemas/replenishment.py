"""
Stockledger Replenishment Schemas
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from stockledger.services.stock.replenishment import Priority

from .common import ExternalId, OrmModel


class ReplenishmentConfigIn(BaseModel):
    avg_delivery_days: Optional[int] = Field(None, gt=0)
    full_release_days: Optional[int] = Field(None, gt=0)
    safety_stock: Optional[int] = Field(None, ge=0)
    min_coverage_days: Optional[int] = Field(None, gt=0)
    analysis_period_days: Optional[int] = Field(None, description="30, 60 or 90")


class ReplenishmentConfigResponse(OrmModel):
    product_id: ExternalId
    avg_delivery_days: int
    full_release_days: int
    safety_stock: Optional[int] = None
    min_coverage_days: int
    analysis_period_days: int
    is_default: bool


class AnalyzeRequest(BaseModel):
    warehouse_id: ExternalId
    sales_by_product: Dict[int, int] = Field(
        default_factory=dict,
        description="Units sold per product id over the analysis window; missing means no sales"
    )
    product_ids: Optional[List[ExternalId]] = None


class RestockSuggestionResponse(OrmModel):
    product_id: ExternalId
    warehouse_id: ExternalId
    current_stock: int
    sales_in_window: int
    daily_velocity: float
    safety_floor: int
    days_until_stockout: Optional[int] = Field(None, description="null when the product has no sales")
    priority: Priority
    needs_attention: bool
    suggested_restock: int
    order_by_days: Optional[int] = None


class ItemErrorResponse(OrmModel):
    product_id: ExternalId
    error: str
    message: str


class ReplenishmentReportResponse(OrmModel):
    warehouse_id: ExternalId
    analyzed: int
    suggestions: List[RestockSuggestionResponse]
    errors: List[ItemErrorResponse]
