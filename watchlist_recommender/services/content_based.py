"""Content-Based Recommendation Algorithm"""

import numpy as np
from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..models import Item, User, UserBehavior, UserPreference, WatchListEntry
from ..schemas.behavior import BehaviorType
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import (
    ENGAGEMENT_VALUES,
    get_items,
    get_latest_prices,
    get_user_behaviors,
    get_user_preferences,
)
from .scoring import BaseScorer, Candidate

logger = get_logger(__name__)

NO_MATCH_SCORE = 0.3
SOURCE_BONUS_STEP = 0.05
SOURCE_BONUS_CAP = 0.2
PRICE_MATCH_BONUS = 0.15
PRICE_CHEAPER_BONUS = 0.1
PRICE_TOLERANCE = 0.2
POPULARITY_BONUS_STEP = 0.01
POPULARITY_BONUS_CAP = 0.2


class ContentBasedScorer(BaseScorer):
    """
    Content-based filtering over category preferences

    Scores every item that has seen engagement (or, failing that, every
    watch-listed item) against the user's category weights, then adds
    bonuses for a familiar source, a familiar price point and general
    popularity.
    """

    algorithm = AlgorithmType.CONTENT_BASED

    def get_recommendations(
        self,
        user: User,
        limit: int,
        preferences: Optional[Sequence[UserPreference]] = None,
    ) -> List[Candidate]:
        """
        Get content-based recommendations for a user

        Args:
            user: Target user
            limit: Number of recommendations to return
            preferences: Category preferences to score against; loaded from
                the store when omitted

        Returns:
            Candidates sorted by descending score
        """

        if preferences is None:
            preferences = get_user_preferences(self.db, user.id)

        items = self._candidate_items()
        if not items:
            return []

        user_behaviors = get_user_behaviors(self.db, user.id)
        prices = get_latest_prices(self.db)
        source_counts = self._source_counts(user_behaviors)
        user_avg_price = self._user_average_price(user_behaviors, prices)
        popularity = self._popularity_counts()

        candidates = []
        for item in items:
            score = self.calculate_score(
                item,
                preferences,
                source_counts=source_counts,
                item_price=prices.get(item.id),
                user_avg_price=user_avg_price,
                popularity=popularity.get(item.id, 0),
            )
            if score >= self.config.min_content_score:
                candidates.append(self._raw_candidate(item.id, score, item))

        logger.debug("Content-based candidates", user_id=user.id, count=len(candidates))
        return self._top(candidates, limit)

    def calculate_score(
        self,
        item: Item,
        preferences: Sequence[UserPreference],
        source_counts: Dict[str, int],
        item_price: Optional[float],
        user_avg_price: Optional[float],
        popularity: int,
    ) -> float:
        """Raw content score of one item; may exceed 1.0"""

        matching = [
            pref.weight for pref in preferences
            if item.category is not None and pref.category == item.category
        ]
        score = float(np.mean(matching)) if matching else NO_MATCH_SCORE

        score += self._source_bonus(item.source, source_counts)
        score += self._price_bonus(item_price, user_avg_price)
        score += min(POPULARITY_BONUS_CAP, popularity * POPULARITY_BONUS_STEP)

        return score

    def _candidate_items(self) -> List[Item]:
        """Items with any engagement, else every watch-listed item"""

        rows = (
            self.db.query(UserBehavior.item_id)
            .filter(UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES))
            .distinct()
            .all()
        )
        item_ids = {item_id for (item_id,) in rows}

        if not item_ids:
            rows = self.db.query(WatchListEntry.item_id).distinct().all()
            item_ids = {item_id for (item_id,) in rows}

        return list(get_items(self.db, item_ids).values())

    def _source_counts(self, behaviors: List[UserBehavior]) -> Dict[str, int]:
        return Counter(b.item.source for b in behaviors if b.item is not None and b.item.source)

    def _source_bonus(self, source: Optional[str], source_counts: Dict[str, int]) -> float:
        if not source:
            return 0.0
        return min(SOURCE_BONUS_CAP, source_counts.get(source, 0) * SOURCE_BONUS_STEP)

    def _user_average_price(
        self, behaviors: List[UserBehavior], prices: Dict[int, float]
    ) -> Optional[float]:
        """Mean current price of the items behind the user's behaviors"""

        user_prices = [prices[b.item_id] for b in behaviors if b.item_id in prices]
        if not user_prices:
            return None
        return float(np.mean(user_prices))

    def _price_bonus(self, item_price: Optional[float], user_avg_price: Optional[float]) -> float:
        if item_price is None or user_avg_price is None:
            return 0.0

        if abs(item_price - user_avg_price) <= user_avg_price * PRICE_TOLERANCE:
            return PRICE_MATCH_BONUS
        if item_price < user_avg_price:
            return PRICE_CHEAPER_BONUS
        return 0.0

    def _popularity_counts(self) -> Dict[int, int]:
        """VIEW and WATCH_ADD events per item across all users"""

        rows = (
            self.db.query(UserBehavior.item_id)
            .filter(UserBehavior.behavior_type.in_([BehaviorType.VIEW.value, BehaviorType.WATCH_ADD.value]))
            .all()
        )
        return Counter(item_id for (item_id,) in rows)
