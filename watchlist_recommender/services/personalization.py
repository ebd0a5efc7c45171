"""Behavior-profile personalization"""

import numpy as np
from collections import Counter
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Item, User
from ..models.base import utcnow
from ..schemas.behavior import BehaviorType
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import (
    attach_current_prices,
    get_latest_prices,
    get_user_behaviors,
    get_user_preferences,
    get_watched_item_ids,
)
from .scoring import BaseScorer, Candidate, clamp, rank_candidates
from .temporal import day_part

logger = get_logger(__name__)

SOURCE_SHARE_WEIGHT = 0.3
PRICE_BONUS_CAP = 0.2
TIME_SHARE_WEIGHT = 0.1
ERROR_SCORE = 0.3


def _shares(counts: Counter) -> Dict[str, float]:
    total = sum(counts.values())
    if not total:
        return {}
    return {key: count / total for key, count in counts.items()}


class PersonalizationService:
    """
    Builds a behavioral profile of a user and scores items against it

    The profile covers when the user is active (time of day, day of week),
    which price band and sources they interact with, and how active they are.
    """

    def __init__(self, db: Session, now=None):
        self.db = db
        self.now = now

    def analyze_time_based_preferences(self, user: User) -> Dict[str, float]:
        """Share of the user's behaviors in each part of the day"""

        behaviors = get_user_behaviors(self.db, user.id)
        return _shares(Counter(day_part(b.created_at) for b in behaviors))

    def analyze_day_of_week_preferences(self, user: User) -> Dict[str, float]:
        """Share of the user's behaviors per weekday (MONDAY..SUNDAY)"""

        behaviors = get_user_behaviors(self.db, user.id)
        return _shares(Counter(b.created_at.strftime("%A").upper() for b in behaviors))

    def analyze_price_preferences(self, user: User) -> Dict[str, float]:
        """Min, max, average and range of current prices of interacted items"""

        behaviors = get_user_behaviors(self.db, user.id)
        prices = get_latest_prices(self.db, {b.item_id for b in behaviors})
        observed = np.array([prices[b.item_id] for b in behaviors if b.item_id in prices], dtype=float)
        if observed.size == 0:
            return {}

        min_price, max_price = float(observed.min()), float(observed.max())
        return {
            "min_price": min_price,
            "max_price": max_price,
            "avg_price": round(float(observed.mean()), 2),
            "price_range": max_price - min_price,
        }

    def analyze_source_preferences(self, user: User) -> Dict[str, float]:
        """Share of the user's behaviors per item source"""

        behaviors = get_user_behaviors(self.db, user.id)
        return _shares(Counter(b.item.source for b in behaviors if b.item is not None and b.item.source))

    def analyze_user_activity(self, user: User) -> Dict[str, float]:
        """Totals, active span and per-type counts of the user's behaviors"""

        behaviors = get_user_behaviors(self.db, user.id)
        if not behaviors:
            return {}

        days_active = (behaviors[-1].created_at - behaviors[0].created_at).days + 1
        type_counts = Counter(b.behavior_type for b in behaviors)

        return {
            "total_interactions": float(len(behaviors)),
            "days_active": float(days_active),
            "avg_daily_activity": len(behaviors) / days_active,
            "views": float(type_counts.get(BehaviorType.VIEW.value, 0)),
            "watch_adds": float(type_counts.get(BehaviorType.WATCH_ADD.value, 0)),
            "notification_clicks": float(type_counts.get(BehaviorType.NOTIFICATION_CLICK.value, 0)),
        }

    def build_user_profile(self, user: User) -> Dict[str, Dict[str, float]]:
        """All analyses for one user, keyed by aspect"""

        profile = {
            "time_of_day": self.analyze_time_based_preferences(user),
            "day_of_week": self.analyze_day_of_week_preferences(user),
            "price": self.analyze_price_preferences(user),
            "sources": self.analyze_source_preferences(user),
            "activity": self.analyze_user_activity(user),
        }
        logger.info("User profile built", user_id=user.id)
        return profile

    def calculate_personalized_score(
        self,
        item: Item,
        user: User,
        profile: Optional[Dict[str, Dict[str, float]]] = None,
        preferences=None,
    ) -> float:
        """
        Personalized score of one item for one user

        Args:
            item: Item to score; ``current_price`` is used when attached
            user: Target user
            profile: Precomputed ``build_user_profile`` output
            preferences: Precomputed preference rows

        Returns:
            Score in [0, 1], or 0.3 if scoring fails
        """

        try:
            if profile is None:
                profile = self.build_user_profile(user)
            if preferences is None:
                preferences = get_user_preferences(self.db, user.id)

            score = sum(
                pref.weight for pref in preferences
                if item.category is not None and pref.category == item.category
            )

            sources = profile["sources"]
            if item.source is not None and item.source in sources:
                score += sources[item.source] * SOURCE_SHARE_WEIGHT

            price = profile["price"]
            if item.current_price is not None and price and price["price_range"] > 0:
                price_diff = abs(item.current_price - price["avg_price"]) / price["price_range"]
                score += max(0.0, PRICE_BONUS_CAP - price_diff * PRICE_BONUS_CAP)

            current_part = day_part(self.now or utcnow())
            score += profile["time_of_day"].get(current_part, 0.0) * TIME_SHARE_WEIGHT

            return clamp(score)

        except Exception as e:
            logger.error(
                "Error calculating personalized score",
                item_id=item.id,
                user_id=user.id,
                error=str(e),
                exc_info=True,
            )
            return ERROR_SCORE


class PersonalizedScorer(BaseScorer):
    """Scores every untracked catalog item against the user's profile"""

    algorithm = AlgorithmType.PERSONALIZED

    def __init__(self, *args, personalization_service: Optional[PersonalizationService] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.personalization_service = personalization_service or PersonalizationService(self.db, now=self.now)

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        watched = get_watched_item_ids(self.db, user.id)
        items = [item for item in self.db.query(Item).order_by(Item.id).all() if item.id not in watched]
        if not items:
            return []

        attach_current_prices(self.db, items)
        profile = self.personalization_service.build_user_profile(user)
        preferences = get_user_preferences(self.db, user.id)

        candidates = []
        for item in items:
            score = self.personalization_service.calculate_personalized_score(
                item, user, profile=profile, preferences=preferences
            )
            if score >= self.config.min_personalized_score:
                candidates.append(self._candidate(item.id, score, item))

        logger.debug("Personalized candidates", user_id=user.id, count=len(candidates))
        return rank_candidates(candidates, limit)
