"""
Test Configuration and Fixtures
Shared testing infrastructure for the stock ledger
"""
import os

# Must be set before stockledger.core.config builds its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")

from dataclasses import dataclass
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger import models  # noqa: F401
from stockledger.core.database import Base, get_db, transaction
from stockledger.main import app
from stockledger.models import MovementKind, Product, Warehouse
from stockledger.services.catalog import CatalogService
from stockledger.services.stock.stock_ledger import StockLedgerService

OWNER_ID = 1
OTHER_OWNER_ID = 2

# In-memory SQLite shared by every connection of the test engine
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers() -> Dict[str, str]:
    return {"X-Owner-Id": str(OWNER_ID)}


@pytest.fixture
def catalog(db_session: Session) -> CatalogService:
    return CatalogService(db_session, OWNER_ID)


@dataclass
class Warehouses:
    a: Warehouse
    b: Warehouse


@pytest.fixture
def warehouses(catalog: CatalogService) -> Warehouses:
    """Two warehouses of the test owner"""
    return Warehouses(a=catalog.create_warehouse("Main"), b=catalog.create_warehouse("Overflow"))


@dataclass
class Products:
    x: Product
    y: Product
    kit: Product  # 2 x X + 1 x Y


@pytest.fixture
def products(catalog: CatalogService) -> Products:
    """Two simple products and a kit built from them"""
    x = catalog.create_product("SKU-X", "Widget X")
    y = catalog.create_product("SKU-Y", "Widget Y")
    kit = catalog.create_kit("KIT-XY", "X/Y bundle", [(x.id, 2), (y.id, 1)])
    return Products(x=x, y=y, kit=kit)


@pytest.fixture
def stock(db_session: Session):
    """Seed on-hand stock through the ledger: stock(product, warehouse, qty)"""
    ledger = StockLedgerService(db_session)

    def _seed(product: Product, warehouse: Warehouse, quantity: int, unit_cost=None):
        with transaction(db_session):
            ledger.adjust(
                product.id, warehouse.id, quantity,
                MovementKind.PURCHASE_RECEIPT, "seed", unit_cost=unit_cost
            )

    return _seed


@pytest.fixture
def ledger(db_session: Session) -> StockLedgerService:
    return StockLedgerService(db_session)
