"""Recommendation schemas"""

from pydantic import BaseModel
from typing import Optional
from enum import Enum


class AlgorithmType(str, Enum):
    """Recommendation algorithm types"""

    CONTENT_BASED = "CONTENT_BASED"
    COLLABORATIVE = "COLLABORATIVE"
    MATRIX_FACTORIZATION = "MATRIX_FACTORIZATION"
    CLUSTERING = "CLUSTERING"
    TEMPORAL = "TEMPORAL"
    TREND_BASED = "TREND_BASED"
    PERSONALIZED = "PERSONALIZED"
    HYBRID = "HYBRID"


class RecommendationResponse(BaseModel):
    """A persisted recommendation joined with its item"""

    id: int
    item_id: int
    item_name: str
    item_url: str
    item_category: Optional[str]
    item_source: Optional[str]
    current_price: Optional[float] = None
    score: float
    algorithm: AlgorithmType
    is_viewed: bool

    class Config:
        from_attributes = True


class TrendingItemResponse(BaseModel):
    """An item with a positive price or popularity trend"""

    item_id: int
    name: str
    category: Optional[str]
    trend_score: float
