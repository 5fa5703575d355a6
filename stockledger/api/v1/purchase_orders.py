"""
Purchase Orders API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry
from stockledger.schemas.purchase import (
    FulfillmentResponse, PurchaseOrderCreate, PurchaseOrderResponse, ReceiveRequest
)
from stockledger.services.stock.stock_receipts import OrderItem, PurchaseOrderService, ReceivedItem

router = APIRouter()


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    order: PurchaseOrderCreate,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Create a pending purchase order.
    """
    service = PurchaseOrderService(db, owner_id)
    items = [
        OrderItem(product_id=line.product_id, quantity=line.quantity, unit_cost=line.unit_cost)
        for line in order.lines
    ]
    return service.create_order(
        order.supplier_id,
        items,
        destination_warehouse_id=order.destination_warehouse_id,
        notes=order.notes
    )


@router.get("", response_model=List[PurchaseOrderResponse])
def list_purchase_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="pending or confirmed"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    return PurchaseOrderService(db, owner_id).list_orders(status=status_filter, skip=skip, limit=limit)


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
def get_purchase_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    return PurchaseOrderService(db, owner_id).get_order(order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Delete a pending purchase order. Confirmed orders are immutable.
    """
    service = PurchaseOrderService(db, owner_id)
    run_with_retry(lambda: service.delete_order(order_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{order_id}/receive", response_model=FulfillmentResponse)
def receive_purchase_order(
    order_id: int,
    request: ReceiveRequest,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Receive goods against a pending order.

    The order is confirmed; any shortfall is carried over to a new pending
    order returned as ``remainder_order``.
    """
    service = PurchaseOrderService(db, owner_id)
    items = [
        ReceivedItem(product_id=line.product_id, quantity=line.quantity, unit_cost=line.unit_cost)
        for line in request.lines
    ]
    result = run_with_retry(lambda: service.receive(order_id, request.destination_warehouse_id, items))
    return FulfillmentResponse.model_validate(result)
