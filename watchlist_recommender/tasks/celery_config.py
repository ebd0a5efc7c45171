"""Celery application built from Settings, with the nightly schedule"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import after_setup_logger, after_setup_task_logger

from ..config import Settings, settings
from ..utils.logging import attach_json_handler

TASK_PREFIX = "watchlist_recommender.tasks.celery_tasks"


def beat_schedule(source: Settings) -> dict:
    """
    Nightly jobs plus the metrics refresh

    Preferences are refreshed one hour before batch generation so the batch
    scores against fresh weights.
    """
    generation_hour = source.BATCH_GENERATION_HOUR % 24

    return {
        'refresh-user-preferences': {
            'task': f'{TASK_PREFIX}.refresh_all_user_preferences',
            'schedule': crontab(hour=(generation_hour - 1) % 24, minute=0),
        },
        'generate-batch-recommendations': {
            'task': f'{TASK_PREFIX}.generate_batch_recommendations',
            'schedule': crontab(hour=generation_hour, minute=0),
        },
        'update-system-metrics': {
            'task': f'{TASK_PREFIX}.update_metrics_task',
            'schedule': crontab(minute='*/5'),
        },
    }


def create_celery_app(source: Settings = settings) -> Celery:
    app = Celery(
        "watchlist_recommender",
        broker=source.CELERY_BROKER_URL,
        backend=source.CELERY_RESULT_BACKEND,
    )

    app.conf.update(
        task_serializer='json',
        accept_content=['json'],
        result_serializer='json',
        timezone='UTC',
        enable_utc=True,
        task_track_started=True,
        task_time_limit=source.CELERY_TASK_TIME_LIMIT,
        task_soft_time_limit=int(source.CELERY_TASK_TIME_LIMIT * 5 / 6),
        # One long batch job per worker process at a time
        worker_prefetch_multiplier=1,
        beat_schedule=beat_schedule(source),
    )

    return app


celery_app = create_celery_app()


@after_setup_logger.connect
@after_setup_task_logger.connect
def use_json_logging(logger, *args, **kwargs):
    attach_json_handler(logger)
