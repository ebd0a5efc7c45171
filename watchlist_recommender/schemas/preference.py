"""Preference schemas"""

from pydantic import BaseModel, Field
from typing import Dict


class PreferenceResponse(BaseModel):
    """Schema for a user's category preference"""

    id: int
    category: str
    weight: float = Field(..., ge=0, le=1)

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    """Behavioral profile of a user"""

    user_id: int
    time_of_day: Dict[str, float] = {}
    day_of_week: Dict[str, float] = {}
    price: Dict[str, float] = {}
    sources: Dict[str, float] = {}
    activity: Dict[str, float] = {}
