"""Tests for the collaborative filtering scorer"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from watchlist_recommender.config import RecommendationConfig
from watchlist_recommender.models.base import Base
from watchlist_recommender.models import Item, User, UserBehavior, UserPreference, WatchListEntry
from watchlist_recommender.schemas.recommendation import AlgorithmType
from watchlist_recommender.services.collaborative_filtering import CollaborativeFilteringScorer

NOW = datetime(2024, 6, 3, 9, 0)


@pytest.fixture
def db_session():
    """Create a test database session"""

    # Use in-memory SQLite for tests
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture
def sample_data(db_session):
    """Users 1 and 2 share interests, user 3 does not"""

    users = [
        User(id=1, username="user1", email="user1@example.com"),
        User(id=2, username="user2", email="user2@example.com"),
        User(id=3, username="user3", email="user3@example.com"),
    ]
    db_session.add_all(users)

    items = [
        Item(id=1, name="Laptop", url="https://shop.test/1", category="electronics"),
        Item(id=2, name="Monitor", url="https://shop.test/2", category="electronics"),
        Item(id=3, name="Jacket", url="https://shop.test/3", category="clothing"),
    ]
    db_session.add_all(items)

    db_session.add_all([
        UserPreference(user_id=1, category="electronics", weight=0.8),
        UserPreference(user_id=1, category="books", weight=0.5),
        UserPreference(user_id=2, category="electronics", weight=0.6),
        UserPreference(user_id=2, category="books", weight=0.6),
        UserPreference(user_id=3, category="clothing", weight=0.9),
    ])

    db_session.add_all([
        UserBehavior(user_id=1, item_id=1, behavior_type="VIEW", created_at=NOW),
        UserBehavior(user_id=2, item_id=1, behavior_type="VIEW", created_at=NOW),
        UserBehavior(user_id=2, item_id=2, behavior_type="WATCH_ADD", created_at=NOW),
        UserBehavior(user_id=3, item_id=3, behavior_type="WATCH_ADD", created_at=NOW),
    ])

    db_session.add(WatchListEntry(user_id=1, item_id=1))

    db_session.commit()
    return users, items


def test_find_similar_users(db_session, sample_data):
    """Same categories and overlapping behavior types"""

    users, _ = sample_data
    scorer = CollaborativeFilteringScorer(db_session, RecommendationConfig(), now=NOW)

    similar = scorer.find_similar_users(users[0])

    # 0.7 * 1.0 (categories) + 0.3 * 0.5 (VIEW vs VIEW+WATCH_ADD)
    assert len(similar) == 1
    assert similar[0][0] == 2
    assert similar[0][1] == pytest.approx(0.85)


def test_user_without_preferences_has_no_neighbours(db_session, sample_data):
    db_session.add(User(id=4, email="user4@example.com"))
    db_session.commit()

    user = db_session.query(User).filter(User.id == 4).first()
    scorer = CollaborativeFilteringScorer(db_session, RecommendationConfig(), now=NOW)

    assert scorer.find_similar_users(user) == []
    assert scorer.get_recommendations(user, 10) == []


def test_recommendations_exclude_watched_items(db_session, sample_data):
    """Item 1 is on user 1's watch list; item 2 comes from user 2's WATCH_ADD"""

    users, _ = sample_data
    scorer = CollaborativeFilteringScorer(db_session, RecommendationConfig(), now=NOW)

    candidates = scorer.get_recommendations(users[0], limit=10)

    assert [c.item_id for c in candidates] == [2]
    assert candidates[0].score == pytest.approx(0.8)
    assert candidates[0].algorithm == AlgorithmType.COLLABORATIVE


def test_neighbour_behavior_is_time_decayed(db_session, sample_data):
    users, _ = sample_data
    scorer = CollaborativeFilteringScorer(
        db_session, RecommendationConfig(), now=NOW + timedelta(days=5)
    )

    candidates = scorer.get_recommendations(users[0], limit=10)

    assert candidates[0].score == pytest.approx(0.4)


def test_accumulated_score_is_clamped(db_session, sample_data):
    users, _ = sample_data
    db_session.add_all([
        UserBehavior(user_id=2, item_id=2, behavior_type="NOTIFICATION_CLICK", created_at=NOW),
        UserBehavior(user_id=2, item_id=2, behavior_type="VIEW", created_at=NOW),
    ])
    db_session.commit()

    scorer = CollaborativeFilteringScorer(db_session, RecommendationConfig(), now=NOW)
    candidates = scorer.get_recommendations(users[0], limit=10)

    assert candidates[0].item_id == 2
    assert candidates[0].score == 1.0


def test_min_similarity_threshold(db_session, sample_data):
    users, _ = sample_data
    config = RecommendationConfig(min_similarity=0.9)
    scorer = CollaborativeFilteringScorer(db_session, config, now=NOW)

    assert scorer.find_similar_users(users[0]) == []


def test_limit_keeps_highest_raw_scores(db_session, sample_data):
    """Both items pass 1.0; the one with more neighbour engagement still wins"""

    users, _ = sample_data
    db_session.add_all([
        Item(id=10, name="Camera", url="https://shop.test/10", category="electronics"),
        Item(id=20, name="Drone", url="https://shop.test/20", category="electronics"),
    ])
    db_session.add_all(
        [UserBehavior(user_id=2, item_id=10, behavior_type="WATCH_ADD", created_at=NOW) for _ in range(2)]
        + [UserBehavior(user_id=2, item_id=20, behavior_type="WATCH_ADD", created_at=NOW) for _ in range(6)]
    )
    db_session.commit()

    scorer = CollaborativeFilteringScorer(db_session, RecommendationConfig(), now=NOW)

    top = scorer.get_recommendations(users[0], limit=1)
    assert [(c.item_id, c.score) for c in top] == [(20, 1.0)]

    top_two = scorer.get_recommendations(users[0], limit=2)
    assert [c.item_id for c in top_two] == [20, 10]
