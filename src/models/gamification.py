"""Progression models: XP ledger, progress snapshot, streaks"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class XPSource(str, Enum):
    """What kind of action granted an XP ledger entry"""
    QUEST = "quest"
    GOAL = "goal"
    ACTIVITY = "activity"
    JOURNAL = "journal"
    STREAK = "streak"
    ACHIEVEMENT = "achievement"


class StreakBoundary(str, Enum):
    """How the gap between two events is measured in days"""
    CALENDAR = "calendar"  # consecutive calendar dates
    ELAPSED = "elapsed"  # floor(elapsed hours / 24)


class XPTransaction(BaseModel):
    """Immutable XP ledger entry"""
    id: str
    user_id: str
    amount: int = Field(..., gt=0)
    source: XPSource
    source_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class ProgressSnapshot(BaseModel):
    """Cached materialization of level_for_xp(xp) for one user"""
    user_id: str
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)


class AwardResult(BaseModel):
    """Outcome of a single award_xp call"""
    transaction_id: str
    xp_awarded: int
    old_xp: int
    new_xp: int
    old_level: int
    new_level: int
    leveled_up: bool


class StreakResult(BaseModel):
    """Current and longest consecutive-day runs"""
    current: int = Field(0, ge=0)
    longest: int = Field(0, ge=0)
