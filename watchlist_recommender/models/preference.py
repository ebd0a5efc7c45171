"""User category preference model"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class UserPreference(Base, TimestampMixin):
    """Per-user category weight in [0, 1]"""

    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(100), nullable=False)
    weight = Column(Float, nullable=False, default=0.5)

    user = relationship("User", back_populates="preferences")

    __table_args__ = (
        UniqueConstraint('user_id', 'category', name='uq_preference_user_category'),
    )

    def __repr__(self):
        return f"<UserPreference(user_id={self.user_id}, category='{self.category}', weight={self.weight})>"
