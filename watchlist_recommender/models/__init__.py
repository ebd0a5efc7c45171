"""Database models"""

from .base import Base
from .user import User
from .item import Item, PriceHistory
from .behavior import UserBehavior
from .preference import UserPreference
from .watchlist import WatchListEntry
from .recommendation import Recommendation

__all__ = [
    "Base",
    "User",
    "Item",
    "PriceHistory",
    "UserBehavior",
    "UserPreference",
    "WatchListEntry",
    "Recommendation",
]
