"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, StrictInt
from datetime import datetime

from src.models.gamification import AwardResult, StreakResult, XPSource, XPTransaction
from src.models.notification import Notification
from src.models.path import Activity, DailyQuest, Goal, JournalEntry


class LevelInfoResponse(BaseModel):
    """Level summary for a total XP value"""
    xp: int
    current_level: int
    xp_in_current_level: int
    xp_to_next_level: int
    total_xp_for_next_level: int
    progress_percent: int


class XPResponse(BaseModel):
    """Response with XP and level info"""
    user_id: str
    xp: int
    level: int
    xp_in_current_level: int
    xp_to_next_level: int
    total_xp_for_next_level: int
    progress_percent: int


class AwardXPRequest(BaseModel):
    """Request to award XP"""
    amount: StrictInt = Field(..., description="Positive amount of XP")
    source: XPSource = Field(..., description="What granted the XP")
    source_id: Optional[str] = Field(default=None, description="ID of the rewarded row")
    description: Optional[str] = Field(default=None, description="Human-readable description")


class AwardResponse(BaseModel):
    """Response with the outcome of an award"""
    user_id: str
    award: AwardResult


class XPHistoryResponse(BaseModel):
    """Response with recent ledger entries"""
    user_id: str
    days: int
    transactions: List[XPTransaction]


class StreakResponse(BaseModel):
    """Response with streak info"""
    user_id: str
    streaks: Dict[str, StreakResult]


class ProgressResponse(BaseModel):
    """Dashboard progress overview"""
    user_id: str
    xp: int
    level: int
    progress_percent: int
    xp_to_next_level: int
    total_xp_for_next_level: int
    streaks: Dict[str, StreakResult]
    weekly_activity: List[Dict[str, Any]]
    xp_by_source: Dict[str, int]


class GoalCompletionResponse(BaseModel):
    """Response after completing a goal"""
    goal: Goal
    award: Optional[AwardResult] = None
    already_completed: bool


class ActivityCompletionResponse(BaseModel):
    """Response after completing an activity"""
    activity: Activity
    award: Optional[AwardResult] = None
    already_completed: bool
    goal_progress: int
    all_activities_completed: bool


class JournalEntryRequest(BaseModel):
    """Request to write a journal entry"""
    content: str = Field(..., description="Entry text")
    title: Optional[str] = Field(default=None, description="Optional title")
    mood: Optional[StrictInt] = Field(default=None, description="Mood from 1 to 5")
    tags: Optional[List[str]] = Field(default=None, description="Free-form tags")


class JournalEntryResponse(BaseModel):
    """Response after writing a journal entry"""
    entry: JournalEntry
    award: AwardResult


class QuestCompletionResponse(BaseModel):
    """Response after completing a daily quest"""
    quest: DailyQuest
    award: Optional[AwardResult] = None
    already_completed: bool


class NotificationListResponse(BaseModel):
    """Response with notifications, newest first"""
    user_id: str
    notifications: List[Notification]


class UnreadCountResponse(BaseModel):
    """Response with the unread notification count"""
    user_id: str
    unread: int


class MarkAllReadResponse(BaseModel):
    """Response after marking all notifications read"""
    user_id: str
    marked: int


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str = Field(..., description="Error class name")
    message: str = Field(..., description="User-facing error message")
    request_id: str = Field(..., description="Request ID for tracing")
    timestamp: str = Field(..., description="When the error occurred")
