"""User behavior log model"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class UserBehavior(Base):
    """Append-only log of user actions against items"""

    __tablename__ = "user_behaviors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    behavior_type = Column(String(50), nullable=False)  # VIEW, WATCH_ADD, WATCH_REMOVE, NOTIFICATION_CLICK
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="behaviors")
    item = relationship("Item", back_populates="behaviors")

    __table_args__ = (
        Index('ix_behavior_user_item', 'user_id', 'item_id'),
        Index('ix_behavior_type', 'behavior_type'),
    )

    def __repr__(self):
        return f"<UserBehavior(user_id={self.user_id}, item_id={self.item_id}, type='{self.behavior_type}')>"
