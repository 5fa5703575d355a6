"""
Replenishment API endpoints
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry
from stockledger.schemas.replenishment import (
    AnalyzeRequest, ReplenishmentConfigIn, ReplenishmentConfigResponse, ReplenishmentReportResponse
)
from stockledger.services.stock.replenishment import ReplenishmentService

router = APIRouter()


@router.get("/config/{product_id}", response_model=ReplenishmentConfigResponse)
def get_replenishment_config(
    product_id: int,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Restock parameters of a product; the defaults when none are stored.
    """
    service = ReplenishmentService(db, owner_id)
    service.catalog.get_product(product_id)
    return ReplenishmentConfigResponse(product_id=product_id, **asdict(service.get_config(product_id)))


@router.put("/config/{product_id}", response_model=ReplenishmentConfigResponse)
def save_replenishment_config(
    product_id: int,
    config: ReplenishmentConfigIn,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    service = ReplenishmentService(db, owner_id)
    params = run_with_retry(lambda: service.save_config(product_id, **config.model_dump()))
    return ReplenishmentConfigResponse(product_id=product_id, **asdict(params))


@router.delete("/config/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_replenishment_config(
    product_id: int,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Drop stored parameters; the product falls back to the defaults.
    """
    service = ReplenishmentService(db, owner_id)
    service.catalog.get_product(product_id)
    service.delete_config(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/analyze", response_model=ReplenishmentReportResponse)
def analyze_replenishment(
    request: AnalyzeRequest,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Restock suggestions for one warehouse, most urgent first.

    Sales figures come from the caller's marketplace snapshot; products
    without figures are treated as not selling.
    """
    report = ReplenishmentService(db, owner_id).analyze_warehouse(
        request.warehouse_id,
        request.sales_by_product,
        product_ids=request.product_ids
    )
    return ReplenishmentReportResponse.model_validate(report)
