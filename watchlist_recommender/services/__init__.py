"""Recommendation services"""

from .behavior_tracking import BehaviorTrackingService
from .personalization import PersonalizationService
from .realtime import RecommendationCache
from .recommendation_service import RecommendationService
from .trend_analysis import TrendAnalysisService

__all__ = [
    "BehaviorTrackingService",
    "PersonalizationService",
    "RecommendationCache",
    "RecommendationService",
    "TrendAnalysisService",
]
