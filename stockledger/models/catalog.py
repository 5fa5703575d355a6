"""
Stockledger Catalog Models
Products and kit composition
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime,
    ForeignKey, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockledger.core.database import Base, IdType


class Product(Base):
    """
    Catalog product

    Either simple or a kit. A kit owns an ordered list of components, each
    pointing at another product (simple or kit) with a per-unit multiplier.
    """
    __tablename__ = "products"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False, doc="Owning seller account")
    sku = Column(String(60), nullable=False, doc="Stock keeping unit, unique per owner")
    name = Column(String(200), nullable=False, default='')
    gtin = Column(String(14), nullable=True, doc="Global trade item number")
    is_kit = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    components = relationship(
        "KitComponent",
        foreign_keys="KitComponent.kit_id",
        back_populates="kit",
        order_by="KitComponent.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint('owner_id', 'sku', name='uq_products_owner_sku'),
        Index('idx_products_owner', 'owner_id'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}', kit={self.is_kit})>"


class KitComponent(Base):
    """One component line of a kit"""
    __tablename__ = "kit_components"

    id = Column(IdType, primary_key=True, autoincrement=True)
    kit_id = Column(IdType, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    component_id = Column(IdType, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, doc="Units of the component per kit unit")
    position = Column(Integer, nullable=False, default=0)

    kit = relationship("Product", foreign_keys=[kit_id], back_populates="components")
    component = relationship("Product", foreign_keys=[component_id])

    __table_args__ = (
        UniqueConstraint('kit_id', 'component_id', name='uq_kit_components_kit_component'),
        CheckConstraint('quantity > 0', name='positive_quantity'),
        CheckConstraint('kit_id <> component_id', name='not_self'),
    )

    def __repr__(self):
        return f"<KitComponent(kit={self.kit_id}, component={self.component_id}, qty={self.quantity})>"
