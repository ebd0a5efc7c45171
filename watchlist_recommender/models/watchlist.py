"""Watch list model"""

from sqlalchemy import Column, Integer, Float, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class WatchListEntry(Base, TimestampMixin):
    """An item a user tracks for price changes"""

    __tablename__ = "watch_list"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    threshold = Column(Float)  # Notify when price drops below

    user = relationship("User", back_populates="watch_list")
    item = relationship("Item", back_populates="watchers")

    __table_args__ = (
        Index('ix_watch_user_item', 'user_id', 'item_id'),
    )

    def __repr__(self):
        return f"<WatchListEntry(user_id={self.user_id}, item_id={self.item_id})>"
