"""Behavior event API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional

from ..schemas.behavior import BehaviorCreate, BehaviorResponse
from ..models import Item, User, UserBehavior
from ..utils.database import get_db
from ..utils.dependencies import get_user_or_404
from ..services.behavior_tracking import BehaviorTrackingService
from ..services.realtime import RecommendationCache, get_cache

router = APIRouter()


@router.post("/", response_model=BehaviorResponse, status_code=status.HTTP_201_CREATED)
def create_interaction(
    behavior: BehaviorCreate,
    db: Session = Depends(get_db),
    cache: Optional[RecommendationCache] = Depends(get_cache)
):
    """Record a user behavior event against an item"""

    # Verify user exists
    user = db.query(User).filter(User.id == behavior.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    # Verify item exists
    item = db.query(Item).filter(Item.id == behavior.item_id).first()
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found"
        )

    service = BehaviorTrackingService(db, cache=cache)
    return service.track(behavior.user_id, behavior.item_id, behavior.behavior_type)


@router.get("/user/{user_id}", response_model=List[BehaviorResponse])
def get_user_interactions(
    skip: int = 0,
    limit: int = 100,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db)
):
    """Get behavior events for a specific user, newest first"""

    return (
        db.query(UserBehavior)
        .filter(UserBehavior.user_id == user.id)
        .order_by(UserBehavior.created_at.desc(), UserBehavior.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


@router.get("/stats/user/{user_id}")
def get_user_interaction_stats(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db)
):
    """Get behavior statistics for a user"""

    stats = (
        db.query(
            UserBehavior.behavior_type,
            func.count(UserBehavior.id).label('count')
        )
        .filter(UserBehavior.user_id == user.id)
        .group_by(UserBehavior.behavior_type)
        .all()
    )

    total = sum(count for _, count in stats)

    return {
        "user_id": user.id,
        "total_interactions": total,
        "by_type": {behavior_type: count for behavior_type, count in stats}
    }
