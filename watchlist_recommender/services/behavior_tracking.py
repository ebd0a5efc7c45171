"""Append-only behavior event recording"""

from typing import Optional

from sqlalchemy.orm import Session

from ..models import User, UserBehavior
from ..schemas.behavior import BehaviorType
from ..utils.logging import get_logger
from ..utils.metrics import record_behavior
from .realtime import RecommendationCache

logger = get_logger(__name__)


class BehaviorTrackingService:
    """Records user behavior events and keeps the recommendation cache honest"""

    def __init__(self, db: Session, cache: Optional[RecommendationCache] = None):
        self.db = db
        self.cache = cache

    def track(self, user_id: int, item_id: int, behavior_type: BehaviorType, commit: bool = True) -> UserBehavior:
        """
        Append one behavior event

        Args:
            user_id: Acting user
            item_id: Item acted on
            behavior_type: Kind of event
            commit: Commit immediately; callers batching writes pass False

        Returns:
            The stored event
        """

        behavior = UserBehavior(
            user_id=user_id,
            item_id=item_id,
            behavior_type=BehaviorType(behavior_type).value,
        )
        self.db.add(behavior)
        if commit:
            self.db.commit()
            self.db.refresh(behavior)
        else:
            self.db.flush()

        record_behavior(behavior.behavior_type)
        if self.cache is not None:
            self.cache.invalidate_user(user_id)

        logger.info(
            "Behavior recorded",
            user_id=user_id,
            item_id=item_id,
            behavior_type=behavior.behavior_type,
        )
        return behavior

    def track_view(self, user_id: int, item_id: int, commit: bool = True) -> UserBehavior:
        return self.track(user_id, item_id, BehaviorType.VIEW, commit=commit)

    def track_watch_add(self, user_id: int, item_id: int) -> UserBehavior:
        return self.track(user_id, item_id, BehaviorType.WATCH_ADD)

    def track_watch_remove(self, user_id: int, item_id: int) -> UserBehavior:
        return self.track(user_id, item_id, BehaviorType.WATCH_REMOVE)

    def track_notification_click(self, user_id: int, item_id: int) -> UserBehavior:
        return self.track(user_id, item_id, BehaviorType.NOTIFICATION_CLICK)

    def get_behavior_count(
        self,
        user: User,
        behavior_type: BehaviorType,
        item_id: Optional[int] = None,
    ) -> int:
        """Number of events of one type for a user, optionally for one item"""

        query = self.db.query(UserBehavior).filter(
            UserBehavior.user_id == user.id,
            UserBehavior.behavior_type == BehaviorType(behavior_type).value,
        )
        if item_id is not None:
            query = query.filter(UserBehavior.item_id == item_id)
        return query.count()
