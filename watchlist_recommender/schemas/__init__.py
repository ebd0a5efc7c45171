"""Pydantic schemas for request/response validation"""

from .behavior import BehaviorType, BehaviorCreate, BehaviorResponse
from .preference import PreferenceResponse, UserProfileResponse
from .recommendation import (
    AlgorithmType,
    RecommendationResponse,
    TrendingItemResponse,
)

__all__ = [
    "BehaviorType",
    "BehaviorCreate",
    "BehaviorResponse",
    "PreferenceResponse",
    "UserProfileResponse",
    "AlgorithmType",
    "RecommendationResponse",
    "TrendingItemResponse",
]
