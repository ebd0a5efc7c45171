"""Tests for the cluster and time-of-day scorers"""

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from watchlist_recommender.config import RecommendationConfig
from watchlist_recommender.models.base import Base
from watchlist_recommender.models import Item, User, UserBehavior, UserPreference, WatchListEntry
from watchlist_recommender.schemas.recommendation import AlgorithmType
from watchlist_recommender.services.clustering import ClusteringScorer, cluster_for_preference_count
from watchlist_recommender.services.temporal import TemporalScorer, day_part

# A Monday morning
NOW = datetime(2024, 6, 3, 9, 0)


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
def catalog(db_session):
    db_session.add_all([
        User(id=1, email="user1@example.com"),
        User(id=2, email="user2@example.com"),
        User(id=3, email="user3@example.com"),
    ])
    db_session.add_all([
        Item(id=i, name=f"Item {i}", url=f"https://shop.test/{i}", category="electronics")
        for i in range(1, 5)
    ])
    db_session.commit()


@pytest.mark.parametrize("count,expected", [
    (0, 0), (2, 0), (3, 1), (4, 1), (5, 2), (6, 2), (7, 3), (8, 3), (9, 4), (40, 4),
])
def test_cluster_for_preference_count(count, expected):
    assert cluster_for_preference_count(count) == expected


def test_cluster_id_respects_cluster_k():
    assert cluster_for_preference_count(9, cluster_k=3) == 2


def test_clustering_recommends_cluster_popular_items(db_session, catalog):
    """Users 1 and 2 share cluster 0; user 3 (five preferences) is in cluster 2"""

    db_session.add(UserPreference(user_id=1, category="electronics", weight=0.5))
    db_session.add_all([
        UserPreference(user_id=3, category=category, weight=0.5)
        for category in ("a", "b", "c", "d", "e")
    ])
    db_session.add_all([
        UserBehavior(user_id=2, item_id=1, behavior_type="VIEW"),
        UserBehavior(user_id=2, item_id=1, behavior_type="WATCH_ADD"),
        UserBehavior(user_id=2, item_id=2, behavior_type="VIEW"),
        UserBehavior(user_id=2, item_id=4, behavior_type="WATCH_REMOVE"),
    ] + [UserBehavior(user_id=3, item_id=3, behavior_type="VIEW") for _ in range(5)])
    db_session.add(WatchListEntry(user_id=1, item_id=2))
    db_session.commit()

    user = db_session.query(User).filter(User.id == 1).first()
    scorer = ClusteringScorer(db_session, RecommendationConfig())

    assert scorer.find_user_cluster(user) == 0

    candidates = scorer.get_recommendations(user, limit=10)
    assert [(c.item_id, c.score) for c in candidates] == [(1, 0.6)]
    assert candidates[0].algorithm == AlgorithmType.CLUSTERING


@pytest.mark.parametrize("hour,expected", [
    (6, "morning"), (11, "morning"), (12, "afternoon"), (17, "afternoon"),
    (18, "evening"), (21, "evening"), (22, "night"), (0, "night"), (5, "night"),
])
def test_day_part(hour, expected):
    assert day_part(datetime(2024, 6, 3, hour, 30)) == expected


def test_temporal_recommends_items_engaged_in_current_day_part(db_session, catalog):
    db_session.add_all([
        UserBehavior(user_id=1, item_id=1, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 8, 0)),
        UserBehavior(user_id=2, item_id=2, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 10, 0)),
        UserBehavior(user_id=2, item_id=2, behavior_type="VIEW", created_at=datetime(2024, 6, 2, 7, 0)),
        UserBehavior(user_id=2, item_id=3, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 20, 0)),
        UserBehavior(user_id=3, item_id=4, behavior_type="WATCH_ADD", created_at=datetime(2024, 6, 1, 7, 0)),
    ])
    db_session.commit()

    user = db_session.query(User).filter(User.id == 1).first()
    scorer = TemporalScorer(db_session, RecommendationConfig(), now=NOW)

    assert scorer.analyze_time_patterns(user) == {"morning": 1}

    candidates = scorer.get_recommendations(user, limit=10)
    assert [(c.item_id, c.score) for c in candidates] == [(2, 0.5), (4, 0.5)]
    assert all(c.algorithm == AlgorithmType.TEMPORAL for c in candidates)


def test_temporal_needs_history_in_current_day_part(db_session, catalog):
    db_session.add_all([
        UserBehavior(user_id=1, item_id=1, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 20, 0)),
        UserBehavior(user_id=2, item_id=2, behavior_type="VIEW", created_at=datetime(2024, 6, 1, 10, 0)),
    ])
    db_session.commit()

    user = db_session.query(User).filter(User.id == 1).first()
    scorer = TemporalScorer(db_session, RecommendationConfig(), now=NOW)

    assert scorer.get_recommendations(user, limit=10) == []
