"""
Stockledger Warehouse Model
"""
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func

from stockledger.core.database import Base, IdType


class Warehouse(Base):
    """Stock location; created by the host application"""
    __tablename__ = "warehouses"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    __table_args__ = (
        Index('idx_warehouses_owner', 'owner_id'),
    )

    def __repr__(self):
        return f"<Warehouse(id={self.id}, name='{self.name}')>"
