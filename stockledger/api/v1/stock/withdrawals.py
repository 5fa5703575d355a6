"""
Stock Withdrawals API endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.core.database import run_with_retry
from stockledger.schemas.stock import WithdrawalReceiptResponse, WithdrawalRequest
from stockledger.services.stock.stock_withdrawals import StockWithdrawalService, WithdrawalItem

router = APIRouter()


@router.post("/withdrawals", response_model=WithdrawalReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_withdrawal(
    request: WithdrawalRequest,
    db: Session = Depends(deps.get_db),
    owner_id: int = Depends(deps.get_owner_id)
):
    """
    Withdraw stock for a sale or consumption event, decomposing kits.

    Fails with 409 and the shortfall detail when any product is short;
    nothing is withdrawn in that case.
    """
    service = StockWithdrawalService(db, owner_id)
    items = [
        WithdrawalItem(sku=line.sku, quantity=line.quantity, is_kit=line.is_kit)
        for line in request.lines
    ]
    receipt = run_with_retry(lambda: service.withdraw(request.warehouse_id, items))
    return WithdrawalReceiptResponse.model_validate(receipt)
