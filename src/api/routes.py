"""API routes for the progression service"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response

from src.api.models import (
    LevelInfoResponse, XPResponse,
    AwardXPRequest, AwardResponse, XPHistoryResponse,
    StreakResponse, ProgressResponse,
    GoalCompletionResponse, ActivityCompletionResponse,
    JournalEntryRequest, JournalEntryResponse, QuestCompletionResponse,
    NotificationListResponse, UnreadCountResponse, MarkAllReadResponse,
    HealthCheckResponse
)
from src.api.auth import verify_api_key
from src.api.middleware import limiter
from src.gamification.leveling import calculate_level_from_xp
from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()


def _services(request: Request) -> ServiceContainer:
    return request.app.state.container


# ==========================================
# XP and levels
# ==========================================

@router.get("/api/v1/users/{user_id}/xp", response_model=XPResponse)
@limiter.limit("30/minute")
async def get_xp(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Get user XP and level (Rate limit: 30/minute)"""
    xp_data = await _services(request).gamification_service.get_xp(user_id)
    return XPResponse(**xp_data)


@router.post("/api/v1/users/{user_id}/xp", response_model=AwardResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def award_xp_endpoint(
    request: Request,
    user_id: str,
    payload: AwardXPRequest,
    api_key: str = Depends(verify_api_key)
):
    """Award XP to a user (Rate limit: 30/minute)"""
    award = await _services(request).gamification_service.award(
        user_id,
        payload.amount,
        payload.source,
        source_id=payload.source_id,
        description=payload.description
    )
    return AwardResponse(user_id=user_id, award=award)


@router.get("/api/v1/users/{user_id}/xp/history", response_model=XPHistoryResponse)
@limiter.limit("30/minute")
async def get_xp_history_endpoint(
    request: Request,
    user_id: str,
    days: int = Query(7, ge=1, le=365),
    limit: int = Query(50, ge=1, le=500),
    api_key: str = Depends(verify_api_key)
):
    """Get recent XP ledger entries (Rate limit: 30/minute)"""
    transactions = await _services(request).gamification_service.get_xp_history(
        user_id, days=days, limit=limit
    )
    return XPHistoryResponse(user_id=user_id, days=days, transactions=transactions)


@router.get("/api/v1/levels/{xp}", response_model=LevelInfoResponse)
@limiter.limit("60/minute")
async def get_level_info(
    request: Request,
    xp: int,
    api_key: str = Depends(verify_api_key)
):
    """Level summary for a total XP value (Rate limit: 60/minute)"""
    return LevelInfoResponse(xp=xp, **calculate_level_from_xp(xp))


# ==========================================
# Streaks and progress
# ==========================================

@router.get("/api/v1/users/{user_id}/streaks", response_model=StreakResponse)
@limiter.limit("30/minute")
async def get_streaks_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Get journal and quest streaks (Rate limit: 30/minute)"""
    streaks = await _services(request).gamification_service.get_streaks(user_id)
    return StreakResponse(user_id=user_id, streaks=streaks)


@router.get("/api/v1/users/{user_id}/progress", response_model=ProgressResponse)
@limiter.limit("30/minute")
async def get_progress_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Get the dashboard progress overview (Rate limit: 30/minute)"""
    overview = await _services(request).gamification_service.get_progress_overview(user_id)
    return ProgressResponse(**overview)


# ==========================================
# Goals, activities, journal, quests
# ==========================================

@router.post("/api/v1/users/{user_id}/goals/{goal_id}/complete", response_model=GoalCompletionResponse)
@limiter.limit("30/minute")
async def complete_goal_endpoint(
    request: Request,
    user_id: str,
    goal_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Complete a goal and award its XP (Rate limit: 30/minute)"""
    result = await _services(request).path_service.complete_goal(user_id, goal_id)
    return GoalCompletionResponse(**result)


@router.post(
    "/api/v1/users/{user_id}/activities/{activity_id}/complete",
    response_model=ActivityCompletionResponse
)
@limiter.limit("30/minute")
async def complete_activity_endpoint(
    request: Request,
    user_id: str,
    activity_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Complete an activity and award its XP (Rate limit: 30/minute)"""
    result = await _services(request).path_service.complete_activity(user_id, activity_id)
    return ActivityCompletionResponse(**result)


@router.post(
    "/api/v1/users/{user_id}/journal",
    response_model=JournalEntryResponse,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit("20/minute")
async def create_journal_entry_endpoint(
    request: Request,
    user_id: str,
    payload: JournalEntryRequest,
    api_key: str = Depends(verify_api_key)
):
    """Write a journal entry and award journal XP (Rate limit: 20/minute)"""
    result = await _services(request).gamification_service.create_journal_entry(
        user_id,
        payload.content,
        title=payload.title,
        mood=payload.mood,
        tags=payload.tags
    )
    return JournalEntryResponse(**result)


@router.post("/api/v1/users/{user_id}/quests/{quest_id}/complete", response_model=QuestCompletionResponse)
@limiter.limit("30/minute")
async def complete_quest_endpoint(
    request: Request,
    user_id: str,
    quest_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Complete a daily quest and award its XP (Rate limit: 30/minute)"""
    result = await _services(request).gamification_service.complete_daily_quest(user_id, quest_id)
    return QuestCompletionResponse(**result)


# ==========================================
# Notifications
# ==========================================

@router.get("/api/v1/users/{user_id}/notifications", response_model=NotificationListResponse)
@limiter.limit("60/minute")
async def get_notifications_endpoint(
    request: Request,
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    api_key: str = Depends(verify_api_key)
):
    """List notifications, newest first (Rate limit: 60/minute)"""
    notifications = await _services(request).notification_service.get_notifications(user_id, limit)
    return NotificationListResponse(user_id=user_id, notifications=notifications)


@router.get("/api/v1/users/{user_id}/notifications/unread-count", response_model=UnreadCountResponse)
@limiter.limit("60/minute")
async def get_unread_count_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Count unread notifications (Rate limit: 60/minute)"""
    unread = await _services(request).notification_service.get_unread_count(user_id)
    return UnreadCountResponse(user_id=user_id, unread=unread)


@router.post("/api/v1/users/{user_id}/notifications/read", response_model=MarkAllReadResponse)
@limiter.limit("30/minute")
async def mark_all_read_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Mark every notification read (Rate limit: 30/minute)"""
    marked = await _services(request).notification_service.mark_all_as_read(user_id)
    return MarkAllReadResponse(user_id=user_id, marked=marked)


@router.post("/api/v1/notifications/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def mark_read_endpoint(
    request: Request,
    notification_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Mark one notification read (Rate limit: 60/minute)"""
    await _services(request).notification_service.mark_as_read(notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/api/v1/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_notification_endpoint(
    request: Request,
    notification_id: str,
    api_key: str = Depends(verify_api_key)
):
    """Delete a notification (Rate limit: 30/minute)"""
    await _services(request).notification_service.delete_notification(notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==========================================
# Health and metrics
# ==========================================

@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    try:
        async with request.app.state.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()

        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    return HealthCheckResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now()
    )


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes all application metrics in Prometheus text format.

    Returns:
        Metrics in Prometheus exposition format
    """
    from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
