"""Prometheus metrics configuration"""

from prometheus_client import Counter, Histogram, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator
from typing import Callable
import time
from functools import wraps

# Application info
app_info = Info('watchlist_recommender', 'Watch-list Recommender Information')
app_info.info({
    'version': '1.0.0',
    'service': 'watchlist-recommender'
})

# Recommendation metrics
recommendations_generated_total = Counter(
    'recommendations_generated_total',
    'Total recommendations persisted',
    ['algorithm']
)

recommendation_generation_duration_seconds = Histogram(
    'recommendation_generation_duration_seconds',
    'Time taken to generate recommendations',
    ['stage']
)

scorer_failures_total = Counter(
    'scorer_failures_total',
    'Scorers that raised and contributed no candidates',
    ['scorer']
)

fallback_used_total = Counter(
    'fallback_used_total',
    'Pipelines that fell back to popularity ranking'
)

# Behavior metrics
behaviors_recorded_total = Counter(
    'behaviors_recorded_total',
    'Total behavior events recorded',
    ['behavior_type']
)

# Cache metrics
cache_hits_total = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_type']
)

cache_misses_total = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_type']
)

# System gauges
active_users_gauge = Gauge(
    'active_users',
    'Number of users'
)

tracked_items_gauge = Gauge(
    'tracked_items',
    'Number of catalog items'
)

total_behaviors_gauge = Gauge(
    'total_behaviors',
    'Total number of behavior events'
)


def setup_metrics(app):
    """
    Setup Prometheus metrics for FastAPI app

    Args:
        app: FastAPI application instance
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True
    )

    instrumentator.instrument(app).expose(app, endpoint="/metrics")

    return instrumentator


def track_generation_time(stage: str):
    """
    Decorator to track how long a pipeline stage takes

    Usage:
        @track_generation_time("pipeline")
        def generate_recommendations():
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                recommendation_generation_duration_seconds.labels(
                    stage=stage
                ).observe(duration)

        return wrapper

    return decorator


def increment_cache_hit(cache_type: str = "redis"):
    """Increment cache hit counter"""
    cache_hits_total.labels(cache_type=cache_type).inc()


def increment_cache_miss(cache_type: str = "redis"):
    """Increment cache miss counter"""
    cache_misses_total.labels(cache_type=cache_type).inc()


def record_recommendation(algorithm: str, count: int = 1):
    """Record persisted recommendations"""
    recommendations_generated_total.labels(algorithm=algorithm).inc(count)


def record_scorer_failure(scorer: str):
    """Record a scorer that raised"""
    scorer_failures_total.labels(scorer=scorer).inc()


def record_fallback():
    """Record a pipeline run that used the popularity fallback"""
    fallback_used_total.inc()


def record_behavior(behavior_type: str):
    """Record behavior event creation"""
    behaviors_recorded_total.labels(behavior_type=behavior_type).inc()


def update_system_metrics(db):
    """
    Update system-wide metrics (call periodically)

    Args:
        db: Database session
    """
    from ..models import User, Item, UserBehavior

    active_users_gauge.set(db.query(User).count())
    tracked_items_gauge.set(db.query(Item).count())
    total_behaviors_gauge.set(db.query(UserBehavior).count())
