"""Tests for pipeline configuration"""

import pytest
from pydantic import ValidationError

from watchlist_recommender.config import RecommendationConfig, Settings, TrendSettings
from watchlist_recommender.schemas.recommendation import AlgorithmType


def default_weights():
    return dict(RecommendationConfig().weights)


def test_defaults():
    config = RecommendationConfig()

    assert config.min_similarity == 0.3
    assert config.min_content_score == 0.5
    assert config.default_limit == 10
    assert config.category_focus_boost == 1.5
    assert config.weights[AlgorithmType.CONTENT_BASED] == 0.25
    assert AlgorithmType.HYBRID not in config.weights
    assert sum(config.weights.values()) == pytest.approx(1.0)


def test_weights_must_sum_to_one():
    weights = default_weights()
    weights[AlgorithmType.CONTENT_BASED] = 0.5

    with pytest.raises(ValidationError):
        RecommendationConfig(weights=weights)


def test_small_rounding_is_tolerated():
    weights = default_weights()
    weights[AlgorithmType.CONTENT_BASED] = 0.255

    assert RecommendationConfig(weights=weights).weights[AlgorithmType.CONTENT_BASED] == 0.255


def test_hybrid_cannot_carry_a_weight():
    weights = default_weights()
    weights[AlgorithmType.PERSONALIZED] = 0.05
    weights[AlgorithmType.HYBRID] = 0.05

    with pytest.raises(ValidationError):
        RecommendationConfig(weights=weights)


def test_every_strategy_needs_a_weight():
    weights = default_weights()
    del weights[AlgorithmType.TEMPORAL]
    weights[AlgorithmType.CONTENT_BASED] = 0.35

    with pytest.raises(ValidationError):
        RecommendationConfig(weights=weights)


def test_negative_weight_rejected():
    weights = default_weights()
    weights[AlgorithmType.CLUSTERING] = -0.1
    weights[AlgorithmType.CONTENT_BASED] = 0.45

    with pytest.raises(ValidationError):
        RecommendationConfig(weights=weights)


@pytest.mark.parametrize("field, value", [
    ("min_similarity", 1.5),
    ("default_limit", 0),
    ("cluster_k", 0),
    ("min_personalized_score", -0.1),
])
def test_out_of_range_values_rejected(field, value):
    with pytest.raises(ValidationError):
        RecommendationConfig(**{field: value})


def test_config_is_frozen():
    config = RecommendationConfig()

    with pytest.raises(ValidationError):
        config.default_limit = 20


def test_from_settings():
    source = Settings(
        RECOMMENDATION_DEFAULT_LIMIT=25,
        RECOMMENDATION_MIN_SIMILARITY=0.4,
        TREND_POSITIVE_THRESHOLD=0.2,
    )

    config = RecommendationConfig.from_settings(source)

    assert config.default_limit == 25
    assert config.min_similarity == 0.4
    assert config.trend == TrendSettings(positive_trend_threshold=0.2)
    assert config.weights == default_weights()


def test_from_settings_validates_weights():
    with pytest.raises(ValidationError):
        RecommendationConfig.from_settings(Settings(WEIGHT_CONTENT_BASED=0.5))


def test_weights_are_read_only():
    config = RecommendationConfig()

    with pytest.raises(TypeError):
        config.weights[AlgorithmType.CONTENT_BASED] = 0.9

    assert config.weights[AlgorithmType.CONTENT_BASED] == 0.25


def test_caller_dict_does_not_leak_into_config():
    weights = default_weights()
    config = RecommendationConfig(weights=weights)

    weights[AlgorithmType.CONTENT_BASED] = 0.9

    assert config.weights[AlgorithmType.CONTENT_BASED] == 0.25
