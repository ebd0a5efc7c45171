"""Recommendation model"""

from sqlalchemy import Column, Integer, Float, String, Boolean, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class Recommendation(Base, TimestampMixin):
    """Stored recommendations, at most one row per (user, item)"""

    __tablename__ = "recommendations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False)
    algorithm = Column(String(50), nullable=False)  # CONTENT_BASED, COLLABORATIVE, ..., HYBRID
    is_viewed = Column(Boolean, nullable=False, default=False)

    # Relationships
    user = relationship("User", back_populates="recommendations")
    item = relationship("Item", back_populates="recommendations")

    __table_args__ = (
        UniqueConstraint('user_id', 'item_id', name='uq_recommendation_user_item'),
        Index('ix_recommendation_user_score', 'user_id', 'score'),
    )

    def __repr__(self):
        return f"<Recommendation(user_id={self.user_id}, item_id={self.item_id}, algorithm='{self.algorithm}')>"
