"""Behavior weighting, user similarity and the shared scorer types"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sklearn.metrics import jaccard_score
from sklearn.preprocessing import MultiLabelBinarizer
from sqlalchemy.orm import Session

from ..config import RecommendationConfig
from ..models import Item, User
from ..models.base import utcnow
from ..schemas.behavior import BehaviorType
from ..schemas.recommendation import AlgorithmType

BEHAVIOR_WEIGHTS = {
    BehaviorType.WATCH_ADD: 0.8,
    BehaviorType.NOTIFICATION_CLICK: 0.6,
    BehaviorType.VIEW: 0.5,
    BehaviorType.WATCH_REMOVE: 0.3,
}
DEFAULT_BEHAVIOR_WEIGHT = 0.3

CATEGORY_SIMILARITY_WEIGHT = 0.7
BEHAVIOR_SIMILARITY_WEIGHT = 0.3


def behavior_weight(
    behavior_type,
    created_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> float:
    """
    Weight of a single behavior event

    Fresh events count fully; each elapsed day removes 10% of the weight,
    bottoming out at half.

    Args:
        behavior_type: BehaviorType or its string value
        created_at: When the event happened; no decay if omitted
        now: Reference time (defaults to the current UTC time)

    Returns:
        Weight in (0, 0.8]
    """

    try:
        weight = BEHAVIOR_WEIGHTS[BehaviorType(behavior_type)]
    except ValueError:
        weight = DEFAULT_BEHAVIOR_WEIGHT

    if created_at is not None:
        now = now or utcnow()
        days_since = (now - created_at).days
        weight *= max(0.5, 1.0 - days_since * 0.1)

    return weight


def jaccard(first: Iterable, second: Iterable) -> float:
    """Jaccard index of two label sets, 0.0 if both are empty"""

    first, second = set(first), set(second)
    if not first and not second:
        return 0.0

    binarizer = MultiLabelBinarizer()
    vectors = binarizer.fit_transform([sorted(map(str, first)), sorted(map(str, second))])
    return float(jaccard_score(vectors[0], vectors[1], zero_division=0.0))


def user_similarity(
    categories_a: Iterable[str],
    categories_b: Iterable[str],
    types_a: Iterable,
    types_b: Iterable,
) -> float:
    """
    Similarity between two users

    0.7 x Jaccard of preference categories + 0.3 x Jaccard of the distinct
    behavior types each user has produced.
    """

    categories_a, categories_b = set(categories_a), set(categories_b)
    if not categories_a or not categories_b:
        return 0.0

    types_a, types_b = set(types_a), set(types_b)
    behavior_similarity = jaccard(types_a, types_b) if types_a and types_b else 0.0

    return (
        CATEGORY_SIMILARITY_WEIGHT * jaccard(categories_a, categories_b)
        + BEHAVIOR_SIMILARITY_WEIGHT * behavior_similarity
    )


def clamp(score: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a score into [lower, upper]"""
    return max(lower, min(upper, score))


@dataclass
class Candidate:
    """An (item, score) pair produced by one strategy before combination"""

    item_id: int
    score: float
    algorithm: AlgorithmType
    item: Optional[Item] = None


@dataclass
class ScorerResult:
    """Outcome of running one strategy: candidates, or the error it raised"""

    algorithm: AlgorithmType
    candidates: List[Candidate] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def rank_candidates(candidates: Iterable[Candidate], limit: Optional[int] = None) -> List[Candidate]:
    """Sort by score descending, item id ascending on ties, then truncate"""

    ranked = sorted(candidates, key=lambda c: (-c.score, c.item_id))
    return ranked if limit is None else ranked[:limit]


class BaseScorer:
    """
    One independent scoring strategy

    Subclasses implement ``get_recommendations(user, limit)`` and return
    candidates with scores clamped to [0, 1]. Scorers whose raw scores can
    exceed 1 rank on the raw value through ``_top`` and clamp afterwards.
    """

    algorithm: AlgorithmType

    def __init__(self, db: Session, config: RecommendationConfig, now: Optional[datetime] = None):
        self.db = db
        self.config = config
        self.now = now or utcnow()

    @property
    def name(self) -> str:
        return self.algorithm.value.lower()

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        raise NotImplementedError

    def _candidate(self, item_id: int, score: float, item: Optional[Item] = None) -> Candidate:
        return Candidate(item_id=item_id, score=clamp(score), algorithm=self.algorithm, item=item)

    def _raw_candidate(self, item_id: int, score: float, item: Optional[Item] = None) -> Candidate:
        return Candidate(item_id=item_id, score=score, algorithm=self.algorithm, item=item)

    def _top(self, candidates: Iterable[Candidate], limit: Optional[int]) -> List[Candidate]:
        """Rank and truncate on raw scores, then clamp the survivors"""

        ranked = rank_candidates(candidates, limit)
        for candidate in ranked:
            candidate.score = clamp(candidate.score)
        return ranked
