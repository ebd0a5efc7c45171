"""Recommendation pipeline: score, combine, fall back, focus, persist"""

import threading
from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..config import RecommendationConfig
from ..models import Item, Recommendation, User, UserPreference
from ..models.base import utcnow
from ..schemas.recommendation import AlgorithmType, RecommendationResponse
from ..utils.logging import get_logger
from ..utils.metrics import record_recommendation, record_scorer_failure, track_generation_time
from .behavior_tracking import BehaviorTrackingService
from .business_rules import BusinessRulesEngine, CategoryFocusRule
from .clustering import ClusteringScorer
from .collaborative_filtering import CollaborativeFilteringScorer
from .content_based import ContentBasedScorer
from .data_access import get_latest_prices, get_user_behaviors, get_user_preferences
from .fallback import FallbackGenerator
from .hybrid import HybridCombiner
from .matrix_factorization import MatrixFactorizationScorer
from .personalization import PersonalizationService, PersonalizedScorer
from .realtime import RecommendationCache
from .scoring import BaseScorer, Candidate, ScorerResult
from .temporal import TemporalScorer
from .trend_analysis import TrendAnalysisService, TrendBasedScorer

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Fixed pool; users sharing a stripe also share a lock
LOCK_STRIPES = 64
_user_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


def _user_lock(user_id: int) -> threading.Lock:
    """Process-wide lock serializing recommendation writes for one user"""
    return _user_locks[user_id % LOCK_STRIPES]


class RecommendationService:
    """
    Orchestrates recommendation generation for one database session

    Every strategy runs independently; a strategy that raises is logged,
    counted and contributes nothing. Results are combined, replaced by the
    popularity fallback when empty, focused on the user's dominant category
    and upserted so that a (user, item) pair is stored at most once.
    """

    def __init__(
        self,
        db: Session,
        config: Optional[RecommendationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        trend_service: Optional[TrendAnalysisService] = None,
        personalization_service: Optional[PersonalizationService] = None,
        cache: Optional[RecommendationCache] = None,
    ):
        self.db = db
        self.config = config or RecommendationConfig.from_settings()
        self.clock = clock or utcnow
        self.trend_service = trend_service or TrendAnalysisService(db, self.config.trend)
        self.personalization_service = personalization_service
        self.cache = cache
        self.combiner = HybridCombiner(self.config.weights)
        self.rules_engine = BusinessRulesEngine(
            db, rules=[CategoryFocusRule(boost_factor=self.config.category_focus_boost)]
        )
        self.fallback = FallbackGenerator(db)
        self.behavior_tracking = BehaviorTrackingService(db, cache=cache)

    @track_generation_time("pipeline")
    def generate_recommendations(self, user: User, limit: Optional[int] = None) -> List[RecommendationResponse]:
        """
        Generate and persist recommendations for a user

        Args:
            user: Target user
            limit: Maximum number of recommendations (config default if None)

        Returns:
            Persisted recommendations in ranked order; empty if the pipeline
            failed (the failure is logged and the session rolled back)
        """

        if limit is None:
            limit = self.config.default_limit
        logger.info("Generating recommendations", user_id=user.id, limit=limit)

        try:
            with _user_lock(user.id):
                candidates = self._build_candidates(user, limit)
                saved = self._save_recommendations(user, candidates)
                self.db.commit()

        except Exception as e:
            self.db.rollback()
            logger.error(
                "Recommendation generation failed",
                user_id=user.id,
                error=str(e),
                exc_info=True,
            )
            return []

        if self.cache is not None:
            self.cache.invalidate_user(user.id)

        for algorithm, count in Counter(c.algorithm.value for c in candidates).items():
            record_recommendation(algorithm, count)

        logger.info("Recommendations generated", user_id=user.id, count=len(saved))
        return saved

    def get_user_recommendations(self, user: User, limit: Optional[int] = None) -> List[RecommendationResponse]:
        """Persisted recommendations, best first"""

        if limit is None:
            limit = self.config.default_limit

        if self.cache is not None:
            cached = self.cache.get(user.id, limit)
            if cached is not None:
                return cached

        rows = (
            self.db.query(Recommendation)
            .filter(Recommendation.user_id == user.id)
            .order_by(Recommendation.score.desc(), Recommendation.item_id)
            .limit(limit)
            .all()
        )
        recommendations = self._to_responses(rows)

        if self.cache is not None:
            self.cache.set(user.id, limit, recommendations)
        return recommendations

    def mark_viewed(self, recommendation_id: int) -> bool:
        """
        Mark a recommendation as viewed and record a VIEW behavior

        Returns:
            False if no such recommendation exists
        """

        recommendation = self.db.query(Recommendation).filter(Recommendation.id == recommendation_id).first()
        if recommendation is None:
            return False

        recommendation.is_viewed = True
        recommendation.updated_at = utcnow()
        self.behavior_tracking.track_view(recommendation.user_id, recommendation.item_id, commit=False)
        self.db.commit()

        logger.info("Recommendation marked as viewed", recommendation_id=recommendation_id)
        return True

    def count_unviewed(self, user: User) -> int:
        return (
            self.db.query(Recommendation)
            .filter(Recommendation.user_id == user.id, Recommendation.is_viewed.is_(False))
            .count()
        )

    def update_user_preferences(self, user: User) -> List[UserPreference]:
        """
        Derive category weights from the user's behavior history

        Each category the user has touched gets weight min(1.0, 0.5 + 0.1 * n)
        where n counts the user's events on items of that category.
        Categories without events are left untouched.
        """

        counts = Counter(
            b.item.category
            for b in get_user_behaviors(self.db, user.id)
            if b.item is not None and b.item.category
        )

        existing = {pref.category: pref for pref in get_user_preferences(self.db, user.id)}
        for category, count in counts.items():
            weight = round(min(1.0, 0.5 + 0.1 * count), 2)
            preference = existing.get(category)
            if preference is None:
                preference = UserPreference(user_id=user.id, category=category, weight=weight)
                self.db.add(preference)
                existing[category] = preference
            else:
                preference.weight = weight

        self.db.commit()
        logger.info("User preferences updated", user_id=user.id, categories=len(counts))

        return sorted(existing.values(), key=lambda pref: pref.category)

    # Pipeline stages

    def _scorers(self, now: datetime) -> List[BaseScorer]:
        personalization_service = self.personalization_service or PersonalizationService(self.db, now=now)
        return [
            ContentBasedScorer(self.db, self.config, now=now),
            CollaborativeFilteringScorer(self.db, self.config, now=now),
            MatrixFactorizationScorer(self.db, self.config, now=now),
            ClusteringScorer(self.db, self.config, now=now),
            TemporalScorer(self.db, self.config, now=now),
            TrendBasedScorer(self.db, self.config, now=now, trend_service=self.trend_service),
            PersonalizedScorer(
                self.db, self.config, now=now, personalization_service=personalization_service
            ),
        ]

    def _content_preferences(self, user: User) -> List[UserPreference]:
        """The user's preferences, or neutral defaults for a user without any"""

        preferences = get_user_preferences(self.db, user.id)
        if preferences:
            return preferences

        return [
            UserPreference(
                user_id=user.id,
                category=category,
                weight=self.config.default_preference_weight,
            )
            for category in self.config.default_categories
        ]

    def _run_scorer(self, scorer: BaseScorer, user: User, limit: int, **kwargs) -> ScorerResult:
        try:
            candidates = scorer.get_recommendations(user, limit, **kwargs)
        except Exception as e:
            logger.error(
                "Scorer failed",
                user_id=user.id,
                scorer=scorer.name,
                error=str(e),
                exc_info=True,
            )
            record_scorer_failure(scorer.name)
            return ScorerResult(algorithm=scorer.algorithm, error=e)

        logger.debug("Scorer finished", user_id=user.id, scorer=scorer.name, count=len(candidates))
        return ScorerResult(algorithm=scorer.algorithm, candidates=candidates)

    def _build_candidates(self, user: User, limit: int) -> List[Candidate]:
        results = []
        for scorer in self._scorers(self.clock()):
            kwargs = {}
            if scorer.algorithm == AlgorithmType.CONTENT_BASED:
                kwargs["preferences"] = self._content_preferences(user)
            results.append(self._run_scorer(scorer, user, limit, **kwargs))

        combined = self.combiner.combine(results, limit)
        if not combined:
            logger.warning("All strategies returned nothing, using fallback", user_id=user.id)
            combined = self.fallback.generate(limit)

        return self.rules_engine.apply_rules(combined, user, context={"limit": limit})

    def _save_recommendations(self, user: User, candidates: List[Candidate]) -> List[RecommendationResponse]:
        """Upsert one row per candidate in a single statement"""

        if not candidates:
            return []

        now = utcnow()
        values = [
            {
                "user_id": user.id,
                "item_id": candidate.item_id,
                "score": float(candidate.score),
                "algorithm": candidate.algorithm.value,
                "is_viewed": False,
                "created_at": now,
                "updated_at": now,
            }
            for candidate in candidates
        ]

        dialect = self.db.get_bind().dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise NotImplementedError(f"Recommendation upsert is not supported on {dialect}")

        statement = _UPSERT_DIALECTS[dialect](Recommendation).values(values)
        statement = statement.on_conflict_do_update(
            index_elements=[Recommendation.user_id, Recommendation.item_id],
            set_={
                "score": statement.excluded.score,
                "algorithm": statement.excluded.algorithm,
                "updated_at": statement.excluded.updated_at,
            },
        )
        self.db.execute(statement)

        rows = (
            self.db.query(Recommendation)
            .populate_existing()
            .filter(
                Recommendation.user_id == user.id,
                Recommendation.item_id.in_([c.item_id for c in candidates]),
            )
            .all()
        )
        by_item = {row.item_id: row for row in rows}
        return self._to_responses([by_item[c.item_id] for c in candidates])

    def _to_responses(self, rows: List[Recommendation]) -> List[RecommendationResponse]:
        item_ids = [row.item_id for row in rows]
        items = {item.id: item for item in self.db.query(Item).filter(Item.id.in_(item_ids)).all()} if item_ids else {}
        prices = get_latest_prices(self.db, item_ids) if item_ids else {}

        responses = []
        for row in rows:
            item = items[row.item_id]
            responses.append(
                RecommendationResponse(
                    id=row.id,
                    item_id=item.id,
                    item_name=item.name,
                    item_url=item.url,
                    item_category=item.category,
                    item_source=item.source,
                    current_price=prices.get(item.id),
                    score=row.score,
                    algorithm=AlgorithmType(row.algorithm),
                    is_viewed=row.is_viewed,
                )
            )
        return responses
