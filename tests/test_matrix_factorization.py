"""Tests for the factorization scorer"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from watchlist_recommender.config import RecommendationConfig
from watchlist_recommender.models.base import Base
from watchlist_recommender.models import Item, User, UserBehavior
from watchlist_recommender.schemas.recommendation import AlgorithmType
from watchlist_recommender.services.matrix_factorization import MatrixFactorizationScorer


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
    """Heavy engagement with item 1, a single view of item 2"""

    users = [
        User(id=1, email="user1@example.com"),
        User(id=2, email="user2@example.com"),
        User(id=3, email="user3@example.com"),
    ]
    db_session.add_all(users)
    db_session.add_all([
        Item(id=1, name="Laptop", url="https://shop.test/1", category="electronics"),
        Item(id=2, name="Novel", url="https://shop.test/2", category="books"),
    ])

    behaviors = [UserBehavior(user_id=1, item_id=1, behavior_type="WATCH_ADD") for _ in range(5)]
    behaviors += [UserBehavior(user_id=2, item_id=1, behavior_type="WATCH_ADD") for _ in range(5)]
    behaviors += [UserBehavior(user_id=2, item_id=1, behavior_type="VIEW") for _ in range(5)]
    behaviors.append(UserBehavior(user_id=1, item_id=2, behavior_type="VIEW"))
    db_session.add_all(behaviors)

    db_session.commit()
    return users


def test_build_user_item_matrix(db_session, sample_data):
    """Cells hold the summed undecayed weights"""

    scorer = MatrixFactorizationScorer(db_session, RecommendationConfig())
    matrix = scorer.build_user_item_matrix()

    assert matrix.shape == (2, 2)  # users without behavior are not in the matrix
    assert matrix[0, 0] == pytest.approx(4.0)
    assert matrix[0, 1] == pytest.approx(0.5)
    assert matrix[1, 0] == pytest.approx(6.5)
    assert scorer.item_factors() == pytest.approx([10.5, 0.5])


def test_scores_user_factor_times_item_factor(db_session, sample_data):
    """4.0 * 10.5 / 100 = 0.42 survives; 0.5 * 0.5 / 100 does not"""

    scorer = MatrixFactorizationScorer(db_session, RecommendationConfig())
    candidates = scorer.get_recommendations(sample_data[0], limit=10)

    assert [c.item_id for c in candidates] == [1]
    assert candidates[0].score == pytest.approx(0.42)
    assert candidates[0].algorithm == AlgorithmType.MATRIX_FACTORIZATION


def test_large_products_are_clamped(db_session, sample_data):
    scorer = MatrixFactorizationScorer(db_session, RecommendationConfig())
    candidates = scorer.get_recommendations(sample_data[1], limit=10)

    # 6.5 * 10.5 / 100 = 0.6825
    assert candidates[0].score == pytest.approx(0.6825)

    db_session.add_all([UserBehavior(user_id=2, item_id=1, behavior_type="WATCH_ADD") for _ in range(10)])
    db_session.commit()

    candidates = scorer.get_recommendations(sample_data[1], limit=10)
    assert candidates[0].score == 1.0


def test_user_without_behavior_gets_nothing(db_session, sample_data):
    scorer = MatrixFactorizationScorer(db_session, RecommendationConfig())
    assert scorer.get_recommendations(sample_data[2], limit=10) == []


def test_empty_matrix(db_session):
    db_session.add(User(id=1, email="user1@example.com"))
    db_session.commit()

    user = db_session.query(User).first()
    assert MatrixFactorizationScorer(db_session, RecommendationConfig()).get_recommendations(user, 10) == []


def test_limit_keeps_highest_raw_products(db_session, sample_data):
    """18.5 * 22.5 / 100 and 24.0 * 24.0 / 100 both exceed 1.0"""

    db_session.add(Item(id=3, name="Tablet", url="https://shop.test/3", category="electronics"))
    db_session.add_all([UserBehavior(user_id=2, item_id=1, behavior_type="WATCH_ADD") for _ in range(15)])
    db_session.add_all([UserBehavior(user_id=2, item_id=3, behavior_type="WATCH_ADD") for _ in range(30)])
    db_session.commit()

    scorer = MatrixFactorizationScorer(db_session, RecommendationConfig())
    candidates = scorer.get_recommendations(sample_data[1], limit=1)

    assert [(c.item_id, c.score) for c in candidates] == [(3, 1.0)]
