"""Collaborative Filtering Recommendation Algorithm"""

from collections import defaultdict
from typing import Dict, List, Set, Tuple

from ..models import User, UserBehavior, UserPreference
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import ENGAGEMENT_VALUES, get_watched_item_ids
from .scoring import BaseScorer, Candidate, behavior_weight, user_similarity

logger = get_logger(__name__)


class CollaborativeFilteringScorer(BaseScorer):
    """
    User-based collaborative filtering

    Finds the users most similar to the target (by preference categories and
    behavior types), then sums their time-decayed engagement per item.
    """

    algorithm = AlgorithmType.COLLABORATIVE

    def find_similar_users(self, user: User) -> List[Tuple[int, float]]:
        """
        Most similar other users

        Args:
            user: Target user

        Returns:
            Up to ``max_similar_users`` (user_id, similarity) pairs with
            similarity at or above ``min_similarity``, most similar first
        """

        categories_by_user = self._preference_categories()
        own_categories = categories_by_user.get(user.id)
        if not own_categories:
            return []

        types_by_user = self._behavior_types()
        own_types = types_by_user.get(user.id, set())

        similar = []
        for other_id, other_categories in categories_by_user.items():
            if other_id == user.id:
                continue

            similarity = user_similarity(
                own_categories, other_categories, own_types, types_by_user.get(other_id, set())
            )
            if similarity >= self.config.min_similarity:
                similar.append((other_id, similarity))

        similar.sort(key=lambda pair: (-pair[1], pair[0]))
        return similar[:self.config.max_similar_users]

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        """
        Get collaborative recommendations for a user

        Args:
            user: Target user
            limit: Number of recommendations to return

        Returns:
            Candidates sorted by descending accumulated score
        """

        similar_users = self.find_similar_users(user)
        if not similar_users:
            return []

        similar_ids = [user_id for user_id, _ in similar_users]
        behaviors = (
            self.db.query(UserBehavior)
            .filter(
                UserBehavior.user_id.in_(similar_ids),
                UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES),
            )
            .all()
        )

        item_scores: Dict[int, float] = defaultdict(float)
        for behavior in behaviors:
            item_scores[behavior.item_id] += behavior_weight(
                behavior.behavior_type, behavior.created_at, now=self.now
            )

        # Exclude items the user already tracks
        watched = get_watched_item_ids(self.db, user.id)
        candidates = [
            self._raw_candidate(item_id, score)
            for item_id, score in item_scores.items()
            if item_id not in watched
        ]

        logger.debug(
            "Collaborative candidates",
            user_id=user.id,
            similar_users=len(similar_ids),
            count=len(candidates),
        )
        return self._top(candidates, limit)

    def _preference_categories(self) -> Dict[int, Set[str]]:
        categories = defaultdict(set)
        for user_id, category in self.db.query(UserPreference.user_id, UserPreference.category).all():
            categories[user_id].add(category)
        return categories

    def _behavior_types(self) -> Dict[int, Set[str]]:
        types = defaultdict(set)
        rows = self.db.query(UserBehavior.user_id, UserBehavior.behavior_type).distinct().all()
        for user_id, behavior_type in rows:
            types[user_id].add(behavior_type)
        return types
