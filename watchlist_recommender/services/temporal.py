"""Time-of-day pattern matching"""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import User
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import get_all_behaviors, get_user_behaviors, get_watched_item_ids
from .scoring import BaseScorer, Candidate

logger = get_logger(__name__)

TEMPORAL_SCORE = 0.5

MORNING = "morning"
AFTERNOON = "afternoon"
EVENING = "evening"
NIGHT = "night"


def day_part(moment: datetime) -> str:
    """Bucket a timestamp into morning, afternoon, evening or night"""

    hour = moment.hour
    if 6 <= hour < 12:
        return MORNING
    if 12 <= hour < 18:
        return AFTERNOON
    if 18 <= hour < 22:
        return EVENING
    return NIGHT


class TimePatternSource:
    """Items other users engage with during a given part of the day"""

    def __init__(self, db: Session):
        self.db = db

    def items_for(self, current_part: str, patterns: Dict[str, int], exclude_user_id: int) -> List[int]:
        """
        Item ids matching the current day part

        Only users who have been active in this part of the day before get
        matches; items are ordered by how often others engaged with them in it.
        """

        if not patterns.get(current_part):
            return []

        counts = Counter(
            b.item_id
            for b in get_all_behaviors(self.db, engagement_only=True)
            if b.user_id != exclude_user_id and day_part(b.created_at) == current_part
        )
        return [item_id for item_id, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]


class TemporalScorer(BaseScorer):
    """Recommends items that fit the user's habitual time of activity"""

    algorithm = AlgorithmType.TEMPORAL

    def __init__(self, *args, source: Optional[TimePatternSource] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.source = source or TimePatternSource(self.db)

    def analyze_time_patterns(self, user: User) -> Dict[str, int]:
        """Distribution of the user's behaviors over day parts"""
        return dict(Counter(day_part(b.created_at) for b in get_user_behaviors(self.db, user.id)))

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        patterns = self.analyze_time_patterns(user)
        current_part = day_part(self.now)
        watched = get_watched_item_ids(self.db, user.id)

        candidates = [
            self._candidate(item_id, TEMPORAL_SCORE)
            for item_id in self.source.items_for(current_part, patterns, user.id)
            if item_id not in watched
        ]

        logger.debug(
            "Temporal candidates",
            user_id=user.id,
            day_part=current_part,
            count=len(candidates),
        )
        return candidates[:limit]
