"""
Stockledger Marketplace Listing Model
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Index

from stockledger.core.database import Base, IdType


class MarketplaceListing(Base):
    """
    Link between a catalog product and an external marketplace listing

    Holds the last reconciled price snapshot, in cents.
    """
    __tablename__ = "marketplace_listings"

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(IdType, nullable=False)
    product_id = Column(IdType, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    external_id = Column(String(40), nullable=False, unique=True, doc="Listing id on the marketplace")

    price_cents = Column(Integer, nullable=True, doc="Canonical price (promotion when active)")
    standard_price_cents = Column(Integer, nullable=True)
    regular_price_cents = Column(Integer, nullable=True, doc="Pre-discount amount of the promotion")
    discount_pct = Column(Integer, nullable=True)
    has_promotion = Column(Boolean, nullable=False, default=False)
    sold_in_window = Column(Integer, nullable=True, doc="Units sold over the trailing sales window")
    synced_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_marketplace_listings_product', 'product_id'),
    )

    def __repr__(self):
        return f"<MarketplaceListing(external_id='{self.external_id}', price={self.price_cents})>"
