"""Shared FastAPI dependencies"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from ..config import RecommendationConfig
from ..models import User
from ..services.realtime import RecommendationCache, get_cache
from ..services.recommendation_service import RecommendationService


@lru_cache()
def get_config() -> RecommendationConfig:
    """Pipeline configuration, built once from the environment"""
    return RecommendationConfig.from_settings()


def get_recommendation_service(
    db: Session = Depends(get_db),
    config: RecommendationConfig = Depends(get_config),
    cache: Optional[RecommendationCache] = Depends(get_cache),
) -> RecommendationService:
    return RecommendationService(db, config=config, cache=cache)


def get_user_or_404(user_id: int, db: Session = Depends(get_db)) -> User:
    """
    Resolve the ``user_id`` path parameter to a user

    Raises:
        HTTPException: 404 if the user does not exist
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user
