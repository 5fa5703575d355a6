"""
Stockledger Replenishment Config Model
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func

from stockledger.core.database import Base, IdType


class ReplenishmentConfig(Base):
    """Per-product restock parameters; products without one use the settings defaults"""
    __tablename__ = "replenishment_configs"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    product_id = Column(IdType, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    avg_delivery_days = Column(Integer, nullable=False, default=7, doc="Supplier lead time")
    full_release_days = Column(Integer, nullable=False, default=3, doc="Days of sales the safety floor covers")
    safety_stock = Column(Integer, nullable=True, doc="Explicit safety floor, overrides the derived one")
    min_coverage_days = Column(Integer, nullable=False, default=30)
    analysis_period_days = Column(Integer, nullable=False, default=30)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp()
    )

    __table_args__ = (
        UniqueConstraint('owner_id', 'product_id', name='uq_replenishment_configs_owner_product'),
        CheckConstraint('analysis_period_days IN (30, 60, 90)', name='valid_analysis_period'),
        CheckConstraint('safety_stock IS NULL OR safety_stock >= 0', name='non_negative_safety_stock'),
    )
