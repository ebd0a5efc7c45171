"""Behavior schemas"""

from pydantic import BaseModel
from datetime import datetime
from enum import Enum


class BehaviorType(str, Enum):
    """User actions recorded in the behavior log"""

    VIEW = "VIEW"
    WATCH_ADD = "WATCH_ADD"
    WATCH_REMOVE = "WATCH_REMOVE"
    NOTIFICATION_CLICK = "NOTIFICATION_CLICK"


# Behaviors that signal positive interest in an item
ENGAGEMENT_TYPES = (
    BehaviorType.VIEW,
    BehaviorType.WATCH_ADD,
    BehaviorType.NOTIFICATION_CLICK,
)


class BehaviorCreate(BaseModel):
    """Schema for recording a behavior event"""

    user_id: int
    item_id: int
    behavior_type: BehaviorType


class BehaviorResponse(BehaviorCreate):
    """Schema for behavior response"""

    id: int
    created_at: datetime

    class Config:
        from_attributes = True
