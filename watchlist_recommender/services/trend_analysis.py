"""Price and popularity trend analysis"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..config import TrendSettings
from ..models import Item, PriceHistory, User, UserBehavior
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .data_access import get_items, get_watched_item_ids
from .scoring import BaseScorer, Candidate, clamp, rank_candidates

logger = get_logger(__name__)

PRICE_WINDOW = 10
PRICE_TREND_WEIGHT = 0.4
POPULARITY_TREND_WEIGHT = 0.4
SEASONALITY_WEIGHT = 0.2


def price_trend(prices: Sequence[float]) -> float:
    """
    Mean relative price change over the last observations

    Args:
        prices: Observed prices in chronological order

    Returns:
        Average of (p[i] - p[i-1]) / p[i-1] across the last ten
        observations, skipping non-positive previous prices
    """

    recent = np.asarray(prices[-PRICE_WINDOW:], dtype=float)
    if len(recent) < 2:
        return 0.0

    previous, current = recent[:-1], recent[1:]
    valid = previous > 0
    if not valid.any():
        return 0.0

    changes = (current[valid] - previous[valid]) / previous[valid]
    return round(float(changes.mean()), 4)


def popularity_trend(timestamps: Sequence) -> float:
    """
    Relative growth of daily interaction volume

    Daily counts are split chronologically into an early and a late half
    (the late half takes the extra day on odd lengths) and compared by mean.
    """

    if len(timestamps) == 0:
        return 0.0

    days = pd.to_datetime(pd.Series(timestamps)).dt.normalize()
    daily_counts = days.value_counts().sort_index()
    if len(daily_counts) < 2:
        return 0.0

    midpoint = len(daily_counts) // 2
    early_avg = daily_counts.iloc[:midpoint].mean()
    late_avg = daily_counts.iloc[midpoint:].mean()

    if early_avg == 0:
        return 0.0
    return float((late_avg - early_avg) / early_avg)


def seasonality(timestamps: Sequence) -> float:
    """Coefficient of variation of monthly interaction counts, capped at 1"""

    if len(timestamps) == 0:
        return 0.0

    months = pd.to_datetime(pd.Series(timestamps)).dt.month
    monthly_counts = months.value_counts().to_numpy(dtype=float)
    if len(monthly_counts) < 3:
        return 0.0

    mean = monthly_counts.mean()
    if mean == 0:
        return 0.0
    return float(min(1.0, np.std(monthly_counts) / mean))


class TrendAnalysisService:
    """
    Detects items whose price or interaction volume is moving

    All heuristics are deliberately simple: no statistical testing, just
    averages over recent history.
    """

    def __init__(self, db: Session, trend_settings: Optional[TrendSettings] = None):
        self.db = db
        self.settings = trend_settings or TrendSettings()

    def analyze_price_trend(self, item_id: int) -> float:
        rows = (
            self.db.query(PriceHistory.price)
            .filter(PriceHistory.item_id == item_id)
            .order_by(PriceHistory.checked_at, PriceHistory.id)
            .all()
        )
        return price_trend([price for (price,) in rows])

    def analyze_popularity_trend(self, item_id: int) -> float:
        return popularity_trend(self._behavior_timestamps(item_id))

    def analyze_seasonality(self, item_id: int) -> float:
        return seasonality(self._behavior_timestamps(item_id))

    def calculate_trend_score(self, item_id: int) -> float:
        """Weighted blend of price trend, popularity trend and seasonality in [0, 1]"""

        score = (
            PRICE_TREND_WEIGHT * self.analyze_price_trend(item_id)
            + POPULARITY_TREND_WEIGHT * self.analyze_popularity_trend(item_id)
            + SEASONALITY_WEIGHT * self.analyze_seasonality(item_id)
        )
        return clamp(score)

    def get_items_with_positive_price_trend(self) -> List[Item]:
        """Items whose recent prices rose more than the positive-trend threshold"""

        frame = self._price_frame()
        if frame.empty:
            return []

        trends = (
            frame.sort_values(["checked_at", "id"])
            .groupby("item_id")["price"]
            .apply(lambda prices: price_trend(prices.tolist()))
        )
        selected = trends[trends > self.settings.positive_trend_threshold].index
        return self._load_items(selected)

    def get_items_with_growing_popularity(self) -> List[Item]:
        """Items whose daily interaction volume grew more than the growth threshold"""

        trends = self._per_item_behavior_metric(popularity_trend)
        selected = [item_id for item_id, trend in trends.items()
                    if trend > self.settings.popularity_growth_threshold]
        return self._load_items(selected)

    def get_seasonal_items(self) -> List[Item]:
        """Items with strongly uneven monthly interaction counts"""

        values = self._per_item_behavior_metric(seasonality)
        selected = [item_id for item_id, value in values.items()
                    if value > self.settings.seasonality_threshold]
        return self._load_items(selected)

    def get_trending_items(self, limit: int = 10) -> List[tuple]:
        """(item, trend_score) pairs for the union of price and popularity risers"""

        items = {item.id: item for item in self.get_items_with_positive_price_trend()}
        items.update({item.id: item for item in self.get_items_with_growing_popularity()})

        scored = [(item, self.calculate_trend_score(item_id)) for item_id, item in items.items()]
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        return scored[:limit]

    # Helper methods

    def _behavior_timestamps(self, item_id: int) -> List:
        rows = self.db.query(UserBehavior.created_at).filter(UserBehavior.item_id == item_id).all()
        return [created_at for (created_at,) in rows]

    def _price_frame(self) -> pd.DataFrame:
        rows = self.db.query(
            PriceHistory.id, PriceHistory.item_id, PriceHistory.price, PriceHistory.checked_at
        ).all()
        return pd.DataFrame(rows, columns=["id", "item_id", "price", "checked_at"])

    def _per_item_behavior_metric(self, metric) -> Dict[int, float]:
        rows = self.db.query(UserBehavior.item_id, UserBehavior.created_at).all()
        frame = pd.DataFrame(rows, columns=["item_id", "created_at"])
        if frame.empty:
            return {}

        return {
            int(item_id): metric(group["created_at"].tolist())
            for item_id, group in frame.groupby("item_id")
        }

    def _load_items(self, item_ids) -> List[Item]:
        items = get_items(self.db, [int(item_id) for item_id in item_ids])
        return [items[item_id] for item_id in sorted(items)]


class TrendBasedScorer(BaseScorer):
    """Recommends items with a rising price or growing popularity"""

    algorithm = AlgorithmType.TREND_BASED

    def __init__(self, *args, trend_service: Optional[TrendAnalysisService] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.trend_service = trend_service or TrendAnalysisService(self.db, self.config.trend)

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        trending = {item.id: item for item in self.trend_service.get_items_with_positive_price_trend()}
        trending.update({item.id: item for item in self.trend_service.get_items_with_growing_popularity()})

        watched = get_watched_item_ids(self.db, user.id)
        candidates = [
            self._candidate(item_id, self.trend_service.calculate_trend_score(item_id), item)
            for item_id, item in trending.items()
            if item_id not in watched
        ]

        logger.debug("Trend candidates", user_id=user.id, count=len(candidates))
        return rank_candidates(candidates, limit)
