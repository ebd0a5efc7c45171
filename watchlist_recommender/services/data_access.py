"""Shared read helpers over the behavior log, watch list and price history"""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Item, PriceHistory, UserBehavior, UserPreference, WatchListEntry
from ..schemas.behavior import ENGAGEMENT_TYPES

ENGAGEMENT_VALUES = [t.value for t in ENGAGEMENT_TYPES]


def get_user_preferences(db: Session, user_id: int) -> List[UserPreference]:
    """All preference rows for a user"""
    return db.query(UserPreference).filter(UserPreference.user_id == user_id).all()


def get_user_behaviors(db: Session, user_id: int, engagement_only: bool = False) -> List[UserBehavior]:
    """Behavior events of one user, oldest first"""

    query = db.query(UserBehavior).filter(UserBehavior.user_id == user_id)
    if engagement_only:
        query = query.filter(UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES))
    return query.order_by(UserBehavior.created_at, UserBehavior.id).all()


def get_all_behaviors(db: Session, engagement_only: bool = False) -> List[UserBehavior]:
    """Behavior events across all users"""

    query = db.query(UserBehavior)
    if engagement_only:
        query = query.filter(UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES))
    return query.order_by(UserBehavior.id).all()


def get_item_behaviors(db: Session, item_id: int) -> List[UserBehavior]:
    """Behavior events against one item"""
    return db.query(UserBehavior).filter(UserBehavior.item_id == item_id).all()


def get_watched_item_ids(db: Session, user_id: int) -> Set[int]:
    """Items already on the user's watch list"""

    rows = db.query(WatchListEntry.item_id).filter(WatchListEntry.user_id == user_id).all()
    return {item_id for (item_id,) in rows}


def count_item_occurrences(rows: Iterable) -> Counter:
    """Count rows per item_id"""
    return Counter(row.item_id for row in rows)


def get_latest_prices(db: Session, item_ids: Optional[Iterable[int]] = None) -> Dict[int, float]:
    """
    Current price per item

    The current price is the observation with the greatest checked_at.
    """

    latest = (
        db.query(
            PriceHistory.item_id.label("item_id"),
            func.max(PriceHistory.checked_at).label("checked_at"),
        )
        .group_by(PriceHistory.item_id)
    )
    if item_ids is not None:
        latest = latest.filter(PriceHistory.item_id.in_(list(item_ids)))
    latest = latest.subquery()

    rows = (
        db.query(PriceHistory.item_id, PriceHistory.price)
        .join(
            latest,
            (PriceHistory.item_id == latest.c.item_id)
            & (PriceHistory.checked_at == latest.c.checked_at),
        )
        .order_by(PriceHistory.id)
        .all()
    )

    # Same-timestamp observations: the later insert wins
    return {item_id: price for item_id, price in rows}


def attach_current_prices(db: Session, items: List[Item]) -> List[Item]:
    """Set the transient current_price attribute on each item"""

    prices = get_latest_prices(db, [item.id for item in items])
    for item in items:
        item.current_price = prices.get(item.id)
    return items


def get_items(db: Session, item_ids: Iterable[int]) -> Dict[int, Item]:
    """Load items by id, keyed by id"""

    item_ids = list(item_ids)
    if not item_ids:
        return {}
    return {item.id: item for item in db.query(Item).filter(Item.id.in_(item_ids)).all()}
