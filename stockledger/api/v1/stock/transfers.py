"""
Stock Transfers API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry
from stockledger.schemas.stock import TransferReceiptResponse, TransferRequest, TransferResponse
from stockledger.services.stock.stock_transfer import StockTransferService, TransferItem

router = APIRouter()


@router.post("/transfers", response_model=TransferReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    request: TransferRequest,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Move stock between two warehouses. All lines succeed or none do.
    """
    service = StockTransferService(db, owner_id)
    items = [TransferItem(product_id=line.product_id, quantity=line.quantity) for line in request.lines]

    receipt = run_with_retry(lambda: service.transfer(
        request.source_warehouse_id,
        request.destination_warehouse_id,
        items,
        notes=request.notes
    ))
    return TransferReceiptResponse.model_validate(receipt)


@router.get("/transfers", response_model=List[TransferResponse])
def list_transfers(
    warehouse_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Transfer history, newest first.
    """
    return StockTransferService(db, owner_id).list_transfers(warehouse_id=warehouse_id, skip=skip, limit=limit)


@router.get("/transfers/{transfer_id}", response_model=TransferResponse)
def get_transfer(
    transfer_id: int,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    return StockTransferService(db, owner_id).get_transfer(transfer_id)
