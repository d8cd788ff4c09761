"""Path, goal, activity, journal and quest models"""
from enum import Enum
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field


class GoalStatus(str, Enum):
    """Goal lifecycle states"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"


class QuestType(str, Enum):
    """Daily quest categories"""
    MEDITATION = "meditation"
    EXERCISE = "exercise"
    READING = "reading"
    JOURNALING = "journaling"
    CUSTOM = "custom"


class Path(BaseModel):
    """A growth area owned by a user"""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    color: str = "yasuke-crimson"
    progress: int = Field(0, ge=0, le=100)


class Goal(BaseModel):
    """An objective under a path"""
    id: str
    path_id: str
    title: str
    description: Optional[str] = None
    due_date: Optional[date] = None
    virtue: Optional[str] = None
    status: GoalStatus = GoalStatus.PENDING
    completed: bool = False
    xp_reward: int = 50


class Activity(BaseModel):
    """An actionable step toward a goal"""
    id: str
    goal_id: str
    note: str
    completed: bool = False
    xp_reward: int = 25


class JournalEntry(BaseModel):
    """Daily reflection"""
    id: str
    user_id: str
    title: Optional[str] = None
    content: str
    mood: Optional[int] = Field(None, ge=1, le=5)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime


class DailyQuest(BaseModel):
    """A small daily challenge"""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    quest_type: QuestType = QuestType.CUSTOM
    xp_reward: int = 30
    completed: bool = False
    completed_at: Optional[datetime] = None
