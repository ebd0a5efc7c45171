"""Popularity fallback when no strategy produces candidates"""

from typing import List

from sqlalchemy.orm import Session

from ..models import UserBehavior, WatchListEntry
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from ..utils.metrics import record_fallback
from .data_access import ENGAGEMENT_VALUES, count_item_occurrences
from .scoring import Candidate

logger = get_logger(__name__)

BASE_SCORE = 0.5
POPULARITY_SCORE = 0.5


class FallbackGenerator:
    """
    Globally popular items, tagged TREND_BASED

    Popularity is the number of engagement events per item across all users;
    with no engagement at all, the number of watch-list entries per item.
    """

    def __init__(self, db: Session):
        self.db = db

    def generate(self, limit: int) -> List[Candidate]:
        rows = (
            self.db.query(UserBehavior.item_id)
            .filter(UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES))
            .all()
        )
        counts = count_item_occurrences(rows)

        if not counts:
            counts = count_item_occurrences(self.db.query(WatchListEntry.item_id).all())

        if not counts:
            logger.info("Fallback found no popular items")
            return []

        max_count = max(counts.values())
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]

        record_fallback()
        logger.info("Fallback recommendations generated", count=len(ranked))

        return [
            Candidate(
                item_id=item_id,
                score=BASE_SCORE + POPULARITY_SCORE * count / max_count,
                algorithm=AlgorithmType.TREND_BASED,
            )
            for item_id, count in ranked
        ]
