"""Configuration settings for the watch-list recommender"""

from types import MappingProxyType

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import Mapping, Optional

from .schemas.recommendation import AlgorithmType


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Watch-list Recommender"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database Settings
    POSTGRES_USER: str = "recommender"
    POSTGRES_PASSWORD: str = "recommender_pass"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "watchlist_recommender"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis Settings
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    def redis_url(self, db: int) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{db}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{db}"

    @property
    def REDIS_URL(self) -> str:
        return self.redis_url(self.REDIS_DB)

    # Celery Settings (broker and results live on their own Redis databases)
    CELERY_BROKER_DB: int = 2
    CELERY_RESULT_DB: int = 3
    CELERY_TASK_TIME_LIMIT: int = 3600
    BATCH_GENERATION_HOUR: int = 4

    @property
    def CELERY_BROKER_URL(self) -> str:
        return self.redis_url(self.CELERY_BROKER_DB)

    @property
    def CELERY_RESULT_BACKEND(self) -> str:
        return self.redis_url(self.CELERY_RESULT_DB)

    # Recommendation Settings
    RECOMMENDATION_MIN_SIMILARITY: float = 0.3
    RECOMMENDATION_MIN_CONTENT_SCORE: float = 0.5
    RECOMMENDATION_MIN_FACTORIZATION_SCORE: float = 0.4
    RECOMMENDATION_MIN_PERSONALIZED_SCORE: float = 0.4
    RECOMMENDATION_DEFAULT_LIMIT: int = 10
    RECOMMENDATION_CLUSTER_K: int = 5

    # Combination weights (must sum to 1.0)
    WEIGHT_CONTENT_BASED: float = 0.25
    WEIGHT_COLLABORATIVE: float = 0.20
    WEIGHT_MATRIX_FACTORIZATION: float = 0.15
    WEIGHT_CLUSTERING: float = 0.10
    WEIGHT_TEMPORAL: float = 0.10
    WEIGHT_TREND_BASED: float = 0.10
    WEIGHT_PERSONALIZED: float = 0.10

    # Trend Settings
    TREND_POSITIVE_THRESHOLD: float = 0.05
    TREND_POPULARITY_GROWTH_THRESHOLD: float = 0.1
    TREND_SEASONALITY_THRESHOLD: float = 0.5

    # Cache Settings
    CACHE_TTL: int = 3600  # 1 hour

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


class TrendSettings(BaseModel):
    """Thresholds for the trend heuristics"""

    positive_trend_threshold: float = 0.05
    popularity_growth_threshold: float = 0.1
    seasonality_threshold: float = 0.5

    class Config:
        frozen = True


class RecommendationConfig(BaseModel):
    """
    Immutable tuning values handed to the recommendation pipeline

    Built once (usually from the environment via ``from_settings``) and
    passed into the orchestrator; never read from module state afterwards.
    """

    min_similarity: float = Field(0.3, ge=0, le=1)
    min_content_score: float = Field(0.5, ge=0)
    min_factorization_score: float = Field(0.4, ge=0)
    min_personalized_score: float = Field(0.4, ge=0, le=1)
    default_limit: int = Field(10, ge=1)
    cluster_k: int = Field(5, ge=1)
    max_similar_users: int = Field(10, ge=1)
    category_focus_boost: float = Field(1.5, gt=0)
    default_categories: tuple = ("electronics", "clothing", "books", "home")
    default_preference_weight: float = Field(0.5, ge=0, le=1)
    weights: Mapping[AlgorithmType, float] = Field(
        default_factory=lambda: {
            AlgorithmType.CONTENT_BASED: 0.25,
            AlgorithmType.COLLABORATIVE: 0.20,
            AlgorithmType.MATRIX_FACTORIZATION: 0.15,
            AlgorithmType.CLUSTERING: 0.10,
            AlgorithmType.TEMPORAL: 0.10,
            AlgorithmType.TREND_BASED: 0.10,
            AlgorithmType.PERSONALIZED: 0.10,
        },
        validate_default=True,
    )
    trend: TrendSettings = Field(default_factory=TrendSettings)

    class Config:
        frozen = True

    @field_validator("weights")
    @classmethod
    def freeze_weights(cls, weights):
        # Read-only after validation
        return MappingProxyType(dict(weights))

    @model_validator(mode="after")
    def check_weights(self):
        if AlgorithmType.HYBRID in self.weights:
            raise ValueError("HYBRID is a merge result and cannot carry a weight")

        missing = set(AlgorithmType) - {AlgorithmType.HYBRID} - set(self.weights)
        if missing:
            raise ValueError(f"Missing weights for: {sorted(a.value for a in missing)}")

        if any(w < 0 for w in self.weights.values()):
            raise ValueError("Algorithm weights must be non-negative")

        total = sum(self.weights.values())
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Algorithm weights must sum to 1.0, got {total:.4f}")

        return self

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "RecommendationConfig":
        """Build the pipeline configuration from environment settings"""

        source = source or settings
        return cls(
            min_similarity=source.RECOMMENDATION_MIN_SIMILARITY,
            min_content_score=source.RECOMMENDATION_MIN_CONTENT_SCORE,
            min_factorization_score=source.RECOMMENDATION_MIN_FACTORIZATION_SCORE,
            min_personalized_score=source.RECOMMENDATION_MIN_PERSONALIZED_SCORE,
            default_limit=source.RECOMMENDATION_DEFAULT_LIMIT,
            cluster_k=source.RECOMMENDATION_CLUSTER_K,
            weights={
                AlgorithmType.CONTENT_BASED: source.WEIGHT_CONTENT_BASED,
                AlgorithmType.COLLABORATIVE: source.WEIGHT_COLLABORATIVE,
                AlgorithmType.MATRIX_FACTORIZATION: source.WEIGHT_MATRIX_FACTORIZATION,
                AlgorithmType.CLUSTERING: source.WEIGHT_CLUSTERING,
                AlgorithmType.TEMPORAL: source.WEIGHT_TEMPORAL,
                AlgorithmType.TREND_BASED: source.WEIGHT_TREND_BASED,
                AlgorithmType.PERSONALIZED: source.WEIGHT_PERSONALIZED,
            },
            trend=TrendSettings(
                positive_trend_threshold=source.TREND_POSITIVE_THRESHOLD,
                popularity_growth_threshold=source.TREND_POPULARITY_GROWTH_THRESHOLD,
                seasonality_threshold=source.TREND_SEASONALITY_THRESHOLD,
            ),
        )
