"""Tests for trend analysis and the trend scorer"""

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from watchlist_recommender.config import RecommendationConfig, TrendSettings
from watchlist_recommender.models.base import Base
from watchlist_recommender.models import Item, PriceHistory, User, UserBehavior, WatchListEntry
from watchlist_recommender.schemas.recommendation import AlgorithmType
from watchlist_recommender.services.trend_analysis import (
    TrendAnalysisService,
    TrendBasedScorer,
    popularity_trend,
    price_trend,
    seasonality,
)


@pytest.fixture
def db_session():
    """Create a test database session"""

    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def sample_data(db_session):
    """Item 1 gets pricier, item 2 is flat, item 3 gets busier"""

    db_session.add(User(id=1, email="user1@example.com"))
    db_session.add_all([
        Item(id=1, name="GPU", url="https://shop.test/1", category="electronics"),
        Item(id=2, name="Kettle", url="https://shop.test/2", category="home"),
        Item(id=3, name="Console", url="https://shop.test/3", category="electronics"),
    ])

    db_session.add_all([
        PriceHistory(item_id=1, price=100.0, checked_at=datetime(2024, 6, 1)),
        PriceHistory(item_id=1, price=110.0, checked_at=datetime(2024, 6, 2)),
        PriceHistory(item_id=1, price=121.0, checked_at=datetime(2024, 6, 3)),
        PriceHistory(item_id=2, price=50.0, checked_at=datetime(2024, 6, 1)),
        PriceHistory(item_id=2, price=50.0, checked_at=datetime(2024, 6, 2)),
    ])

    db_session.add(UserBehavior(user_id=1, item_id=3, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 10)))
    db_session.add_all([
        UserBehavior(user_id=1, item_id=3, behavior_type="VIEW", created_at=datetime(2024, 6, 2, hour))
        for hour in (9, 12, 18)
    ])

    db_session.commit()


def test_price_trend():
    assert price_trend([100.0, 110.0]) == 0.1
    assert price_trend([100.0, 110.0, 121.0]) == 0.1
    assert price_trend([100.0, 90.0]) == -0.1
    assert price_trend([100.0]) == 0.0
    assert price_trend([]) == 0.0


def test_price_trend_skips_non_positive_previous_price():
    assert price_trend([0.0, 10.0, 20.0]) == 1.0


def test_price_trend_only_looks_at_last_ten_observations():
    assert price_trend([1000.0] + [100.0] * 10) == 0.0


def test_popularity_trend_compares_early_and_late_days():
    timestamps = [datetime(2024, 6, 1, 9), datetime(2024, 6, 2, 9)]
    timestamps += [datetime(2024, 6, 3, h) for h in (8, 9, 10)]
    timestamps += [datetime(2024, 6, 4, h) for h in (8, 9, 10)]

    # Early mean 1, late mean 3
    assert popularity_trend(timestamps) == pytest.approx(2.0)


def test_popularity_trend_odd_day_count_puts_middle_day_late():
    timestamps = [datetime(2024, 6, 1, h) for h in (8, 9)]
    timestamps += [datetime(2024, 6, 2, h) for h in (8, 9)]
    timestamps += [datetime(2024, 6, 3, h) for h in (8, 9, 10, 11)]

    assert popularity_trend(timestamps) == pytest.approx(0.5)


def test_popularity_trend_needs_two_days():
    assert popularity_trend([datetime(2024, 6, 1, 9), datetime(2024, 6, 1, 10)]) == 0.0
    assert popularity_trend([]) == 0.0


def test_seasonality():
    timestamps = [datetime(2024, 1, 5), datetime(2024, 2, 5)]
    timestamps += [datetime(2024, 3, d) for d in (1, 2, 3, 4)]

    # Monthly counts 1, 1, 4: population std sqrt(2) over mean 2
    assert seasonality(timestamps) == pytest.approx(2 ** 0.5 / 2)


def test_seasonality_needs_three_months_and_is_capped():
    assert seasonality([datetime(2024, 1, 5), datetime(2024, 2, 5)]) == 0.0

    timestamps = [datetime(2024, 1, 5), datetime(2024, 2, 5), datetime(2024, 3, 5)]
    timestamps += [datetime(2024, 4, d) for d in range(1, 21)]
    assert seasonality(timestamps) == 1.0


def test_items_with_positive_price_trend(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings())

    assert [item.id for item in service.get_items_with_positive_price_trend()] == [1]
    assert service.analyze_price_trend(1) == 0.1
    assert service.analyze_price_trend(2) == 0.0


def test_items_with_growing_popularity(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings())

    assert [item.id for item in service.get_items_with_growing_popularity()] == [3]
    assert service.analyze_popularity_trend(3) == pytest.approx(2.0)


def test_no_seasonal_items_with_a_single_month(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings())
    assert service.get_seasonal_items() == []


def test_calculate_trend_score(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings())

    assert service.calculate_trend_score(1) == pytest.approx(0.04)
    assert service.calculate_trend_score(3) == pytest.approx(0.8)
    assert service.calculate_trend_score(2) == 0.0


def test_trending_items_ranked_by_trend_score(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings())

    trending = service.get_trending_items(limit=10)
    assert [(item.id, score) for item, score in trending] == [
        (3, pytest.approx(0.8)),
        (1, pytest.approx(0.04)),
    ]


def test_trend_scorer_excludes_watched_items(db_session, sample_data):
    db_session.add(WatchListEntry(user_id=1, item_id=3))
    db_session.commit()

    user = db_session.query(User).filter(User.id == 1).first()
    candidates = TrendBasedScorer(db_session, RecommendationConfig()).get_recommendations(user, 10)

    assert [c.item_id for c in candidates] == [1]
    assert candidates[0].score == pytest.approx(0.04)
    assert candidates[0].algorithm == AlgorithmType.TREND_BASED


def test_thresholds_are_configurable(db_session, sample_data):
    service = TrendAnalysisService(db_session, TrendSettings(positive_trend_threshold=0.2))
    assert service.get_items_with_positive_price_trend() == []
