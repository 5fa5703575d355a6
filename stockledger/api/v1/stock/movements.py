"""
Stock Movements API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.stock import StockMovementResponse
from stockledger.services.stock.stock_ledger import StockLedgerService

router = APIRouter()


@router.get("/movements", response_model=List[StockMovementResponse])
def list_movements(
    product_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    correlation_id: Optional[str] = None,
    kind: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Ledger entries of the caller's warehouses, oldest first.
    """
    return StockLedgerService(db).list_movements(
        product_id=product_id,
        warehouse_id=warehouse_id,
        correlation_id=correlation_id,
        kind=kind,
        owner_id=owner_id,
        skip=skip,
        limit=limit
    )
