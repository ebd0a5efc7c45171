"""Recommendation API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from ..config import RecommendationConfig
from ..models import User
from ..schemas.preference import PreferenceResponse, UserProfileResponse
from ..schemas.recommendation import RecommendationResponse, TrendingItemResponse
from ..services.personalization import PersonalizationService
from ..services.recommendation_service import RecommendationService
from ..services.trend_analysis import TrendAnalysisService
from ..utils.database import get_db
from ..utils.dependencies import get_config, get_recommendation_service, get_user_or_404
from ..utils.rate_limit import GENERATE_LIMIT, limiter

router = APIRouter()


@router.post("/users/{user_id}/generate", response_model=List[RecommendationResponse])
@limiter.limit(GENERATE_LIMIT)
def generate_recommendations(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: User = Depends(get_user_or_404),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Run every strategy for a user and persist the combined result

    Strategies that fail are skipped; if none produce anything the most
    popular items are used instead. The list is focused on the user's
    dominant category.
    """
    return service.generate_recommendations(user, limit)


@router.get("/users/{user_id}", response_model=List[RecommendationResponse])
def get_user_recommendations(
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: User = Depends(get_user_or_404),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Get the stored recommendations for a user, best first"""
    return service.get_user_recommendations(user, limit)


@router.post("/{recommendation_id}/view", status_code=status.HTTP_204_NO_CONTENT)
def mark_recommendation_viewed(
    recommendation_id: int,
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Mark a recommendation as viewed and record a VIEW behavior"""

    if not service.mark_viewed(recommendation_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recommendation not found"
        )


@router.get("/users/{user_id}/unviewed-count")
def get_unviewed_count(
    user: User = Depends(get_user_or_404),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Number of stored recommendations the user has not viewed yet"""
    return {"user_id": user.id, "unviewed": service.count_unviewed(user)}


@router.post("/users/{user_id}/preferences/refresh", response_model=List[PreferenceResponse])
def refresh_user_preferences(
    user: User = Depends(get_user_or_404),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Recompute category weights from the user's behavior history"""
    return service.update_user_preferences(user)


@router.get("/trending", response_model=List[TrendingItemResponse])
def get_trending_items(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    config: RecommendationConfig = Depends(get_config)
):
    """Items with a rising price or growing popularity"""

    trend_service = TrendAnalysisService(db, config.trend)
    return [
        TrendingItemResponse(
            item_id=item.id,
            name=item.name,
            category=item.category,
            trend_score=score
        )
        for item, score in trend_service.get_trending_items(limit)
    ]


@router.get("/users/{user_id}/profile", response_model=UserProfileResponse)
def get_user_profile(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db)
):
    """Behavioral profile: activity times, price band, sources, activity summary"""

    profile = PersonalizationService(db).build_user_profile(user)
    return UserProfileResponse(user_id=user.id, **profile)
