"""
Main API Router - Consolidates all module routes
"""
from fastapi import APIRouter

from stockledger.api.v1 import pricing, purchase_orders, replenishment, stock

api_router = APIRouter()

# Stock ledger routes
api_router.include_router(stock.records.router, prefix="/stock", tags=["stock-records"])
api_router.include_router(stock.movements.router, prefix="/stock", tags=["stock-movements"])
api_router.include_router(stock.transfers.router, prefix="/stock", tags=["stock-transfers"])
api_router.include_router(stock.withdrawals.router, prefix="/stock", tags=["stock-withdrawals"])

# Purchasing
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])

# Replenishment and marketplace pricing
api_router.include_router(replenishment.router, prefix="/replenishment", tags=["replenishment"])
api_router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
