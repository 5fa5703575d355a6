"""
Stock Records API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry, transaction
from stockledger.schemas.stock import SafetyStockUpdate, StockRecordResponse
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.stock_ledger import StockLedgerService

router = APIRouter()


@router.get("/records", response_model=List[StockRecordResponse])
def list_stock_records(
    warehouse_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    List stock records of the caller's warehouses, optionally filtered.
    """
    if warehouse_id is not None:
        CatalogService(db, owner_id).get_warehouse(warehouse_id)

    return StockLedgerService(db).list_records(
        owner_id=owner_id,
        warehouse_id=warehouse_id,
        product_id=product_id
    )


@router.put("/records/safety-stock", response_model=StockRecordResponse)
def update_safety_stock(
    update: SafetyStockUpdate,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Set the safety stock threshold of an existing stock record.
    """
    catalog = CatalogService(db, owner_id)
    catalog.get_product(update.product_id)
    catalog.get_warehouse(update.warehouse_id)
    ledger = StockLedgerService(db)

    def apply():
        with transaction(db):
            ledger.set_safety_stock(update.product_id, update.warehouse_id, update.safety_stock)
        return ledger.get_record(update.product_id, update.warehouse_id)

    return run_with_retry(apply)


@router.delete("/records", status_code=status.HTTP_204_NO_CONTENT)
def delete_stock_record(
    product_id: int = Query(...),
    warehouse_id: int = Query(...),
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Delete a stock record. Refused once the pair has outbound history.
    """
    catalog = CatalogService(db, owner_id)
    catalog.get_product(product_id)
    catalog.get_warehouse(warehouse_id)
    ledger = StockLedgerService(db)

    def apply():
        with transaction(db):
            ledger.delete_record(product_id, warehouse_id)

    run_with_retry(apply)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
