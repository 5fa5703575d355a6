"""
Stockledger FastAPI Main Application
Entry point for the inventory ledger REST API
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from stockledger.api.v1.api_router import api_router
from stockledger.core.config import settings
from stockledger.core.database import check_db_connection, init_db
from stockledger.core.exceptions import KitCycleError, KitTooDeep, StockLedgerError, StorageContention
from stockledger.core.logging import setup_logging
from stockledger.schemas.common import ErrorResponse

setup_logging()

logger = logging.getLogger("stockledger.api")

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Stockledger API

    Multi-warehouse inventory ledger and replenishment engine.

    ### Key Features:
    - **Stock Ledger**: per-warehouse quantities with an append-only movement log
    - **Withdrawals**: sales-driven outbound stock with kit decomposition
    - **Transfers**: atomic moves between warehouses
    - **Purchase Orders**: receipts with automatic remainder orders
    - **Replenishment**: restock urgency tiers and reorder quantities
    - **Pricing**: marketplace price normalization into cents

    Identifiers are returned as strings. The owning account is taken from
    the `X-Owner-Id` header set by the authenticating gateway.
    """,
    docs_url=settings.DOCS_URL,
    openapi_url=settings.OPENAPI_URL,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
            "debug": settings.DEBUG
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    """
    System information endpoint
    """
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "docs_url": settings.DOCS_URL,
        "kit_max_depth": settings.KIT_MAX_DEPTH,
        "sales_window_days": settings.SALES_WINDOW_DAYS,
        "features": [
            "Stock Ledger",
            "Kit Composition",
            "Inter-warehouse Transfers",
            "Purchase Order Fulfillment",
            "Outbound Withdrawals",
            "Replenishment Analysis",
            "Marketplace Price Reconciliation"
        ]
    }


# Application startup event
@app.on_event("startup")
async def startup_event():
    """
    Application startup tasks

    Verify the database and create missing tables
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")

    logger.info("Database connection established")
    init_db()
    logger.info("Application startup completed successfully")


# Application shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


@app.exception_handler(StockLedgerError)
async def stockledger_exception_handler(request: Request, exc: StockLedgerError):
    """
    Map ledger errors to their HTTP status with a structured body
    """
    if isinstance(exc, StorageContention):
        logger.warning(f"{request.method} {request.url.path} gave up after storage contention: {exc.message}")
    elif isinstance(exc, (KitTooDeep, KitCycleError)):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

    body = ErrorResponse(error=exc.error_type, message=exc.message, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "server_error",
            "message": str(exc) if settings.DEBUG else "An unexpected error occurred",
            "detail": {}
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "stockledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
