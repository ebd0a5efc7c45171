"""Background task definitions"""

from .celery_config import TASK_PREFIX, celery_app

from ..models import User
from ..models.base import utcnow
from ..services.recommendation_service import RecommendationService
from ..utils.database import session_scope
from ..utils.logging import get_logger
from ..utils.metrics import update_system_metrics

logger = get_logger(__name__)


@celery_app.task(name=f"{TASK_PREFIX}.refresh_all_user_preferences")
def refresh_all_user_preferences():
    """
    Recompute category preference weights for every user

    Runs before the nightly batch so generation sees fresh weights.
    """
    logger.info("Starting preference refresh")

    try:
        with session_scope() as db:
            service = RecommendationService(db)
            users = db.query(User).all()

            for user in users:
                service.update_user_preferences(user)

    except Exception:
        logger.error("Error refreshing user preferences", exc_info=True)
        raise

    logger.info("Preference refresh completed", users_processed=len(users))

    return {
        "status": "success",
        "timestamp": utcnow().isoformat(),
        "users_processed": len(users),
        "message": "User preferences refreshed"
    }


@celery_app.task(name=f"{TASK_PREFIX}.generate_batch_recommendations")
def generate_batch_recommendations(limit: int = None):
    """
    Generate and persist recommendations for all users

    Failures for a single user are logged by the pipeline and yield no
    recommendations for that user; the batch continues.
    """
    logger.info("Starting batch recommendation generation")

    with session_scope() as db:
        service = RecommendationService(db)
        users = db.query(User).all()

        total_recommendations = 0
        for user in users:
            total_recommendations += len(service.generate_recommendations(user, limit))

    logger.info(
        "Batch recommendation generation completed",
        users_processed=len(users),
        recommendations=total_recommendations,
    )

    return {
        "status": "success",
        "timestamp": utcnow().isoformat(),
        "users_processed": len(users),
        "recommendations_generated": total_recommendations,
        "message": "Batch recommendations generated"
    }


@celery_app.task(name=f"{TASK_PREFIX}.update_metrics_task")
def update_metrics_task():
    """Refresh the system-wide Prometheus gauges"""

    try:
        with session_scope() as db:
            update_system_metrics(db)
    except Exception:
        logger.error("Error updating metrics", exc_info=True)
        raise

    return {
        "status": "success",
        "timestamp": utcnow().isoformat(),
        "message": "Metrics updated"
    }
