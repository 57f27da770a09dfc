"""Low-stock notifications."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query, Request

from ledgerpulse.jobs.stock_monitor import mark_notification_read
from ledgerpulse.models.aggregates import Notification

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
async def list_notifications(
    request: Request,
    unread_only: bool = Query(False),
):
    return await request.app.state.aggregates.list_notifications(unread_only=unread_only)


@router.post("/{notification_id}/read")
async def mark_read(notification_id: int, request: Request):
    updated = await mark_notification_read(
        request.app.state.db, notification_id, datetime.now(timezone.utc)
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return {"status": "read", "id": notification_id}
