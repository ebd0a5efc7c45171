"""Catalog item and price history models"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, utcnow


class Item(Base, TimestampMixin):
    """Catalog item tracked for price changes"""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(500), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    category = Column(String(100), index=True)
    source = Column(String(100), index=True)

    # Not persisted: joined from the latest PriceHistory row at read time
    current_price = None

    # Relationships
    prices = relationship("PriceHistory", back_populates="item", cascade="all, delete-orphan")
    behaviors = relationship("UserBehavior", back_populates="item", cascade="all, delete-orphan")
    watchers = relationship("WatchListEntry", back_populates="item", cascade="all, delete-orphan")
    recommendations = relationship("Recommendation", back_populates="item", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Item(id={self.id}, name='{self.name}')>"


class PriceHistory(Base):
    """Append-only price observations"""

    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)
    checked_at = Column(DateTime, default=utcnow, nullable=False)

    item = relationship("Item", back_populates="prices")

    __table_args__ = (
        Index('ix_price_item_checked', 'item_id', 'checked_at'),
    )

    def __repr__(self):
        return f"<PriceHistory(item_id={self.item_id}, price={self.price})>"
