"""Coarse user clustering and cluster popularity"""

from collections import Counter
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import User, UserBehavior, UserPreference
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import ENGAGEMENT_VALUES, get_watched_item_ids
from .scoring import BaseScorer, Candidate

logger = get_logger(__name__)

CLUSTER_SCORE = 0.6

# Upper preference-count bound for clusters 0..3; anything above is cluster 4
CLUSTER_BOUNDS = (2, 4, 6, 8)


def cluster_for_preference_count(count: int, cluster_k: int = 5) -> int:
    """Step function from a user's preference count to a cluster id"""

    cluster = len(CLUSTER_BOUNDS)
    for cluster_id, bound in enumerate(CLUSTER_BOUNDS):
        if count <= bound:
            cluster = cluster_id
            break
    return min(cluster, cluster_k - 1)


class ClusterPopularitySource:
    """Items most engaged with by the members of each cluster"""

    def __init__(self, db: Session, cluster_k: int = 5):
        self.db = db
        self.cluster_k = cluster_k

    def cluster_of(self, user_id: int) -> int:
        count = self.db.query(UserPreference).filter(UserPreference.user_id == user_id).count()
        return cluster_for_preference_count(count, self.cluster_k)

    def cluster_members(self, cluster_id: int) -> List[int]:
        """Ids of every user that falls into the cluster"""

        pref_counts = dict(
            self.db.query(UserPreference.user_id, func.count(UserPreference.id))
            .group_by(UserPreference.user_id)
            .all()
        )
        user_ids = [user_id for (user_id,) in self.db.query(User.id).all()]

        return [
            user_id for user_id in user_ids
            if cluster_for_preference_count(pref_counts.get(user_id, 0), self.cluster_k) == cluster_id
        ]

    def popular_items(self, cluster_id: int) -> List[int]:
        """Item ids ordered by engagement count within the cluster"""

        members = self.cluster_members(cluster_id)
        if not members:
            return []

        rows = (
            self.db.query(UserBehavior.item_id)
            .filter(
                UserBehavior.user_id.in_(members),
                UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES),
            )
            .all()
        )
        counts = Counter(item_id for (item_id,) in rows)
        return [item_id for item_id, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]


class ClusteringScorer(BaseScorer):
    """Recommends what is popular in the user's cluster at a flat score"""

    algorithm = AlgorithmType.CLUSTERING

    def __init__(self, *args, source: Optional[ClusterPopularitySource] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.source = source or ClusterPopularitySource(self.db, self.config.cluster_k)

    def find_user_cluster(self, user: User) -> int:
        return self.source.cluster_of(user.id)

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        cluster_id = self.find_user_cluster(user)
        watched = get_watched_item_ids(self.db, user.id)

        candidates = [
            self._candidate(item_id, CLUSTER_SCORE)
            for item_id in self.source.popular_items(cluster_id)
            if item_id not in watched
        ]

        logger.debug("Cluster candidates", user_id=user.id, cluster=cluster_id, count=len(candidates))
        return candidates[:limit]
