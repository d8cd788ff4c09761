"""Notification models"""
from typing import Optional, Any
from datetime import datetime
from pydantic import BaseModel


class Notification(BaseModel):
    """In-app notification row"""
    id: str
    user_id: str
    type: str  # xp_gained, level_up
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    read: bool = False
    created_at: datetime
