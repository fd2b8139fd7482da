"""Notification API routes."""

from fastapi import APIRouter, Depends, Query

from predictduel.api.dependencies import get_services
from predictduel.api.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
)
from predictduel.services.registry import ServiceRegistry

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    privy_id: str,
    limit: int = Query(50, ge=1, le=100),
    services: ServiceRegistry = Depends(get_services),
):
    caller = await services.duels.user_for_privy_id(privy_id)
    items, unread = await services.notifications.list_for_user(caller.id, limit=limit)
    return NotificationListResponse(notifications=items, unread_count=unread)


@router.put("", response_model=MarkReadResponse)
async def mark_notifications_read(
    body: MarkReadRequest, services: ServiceRegistry = Depends(get_services)
):
    caller = await services.duels.user_for_privy_id(body.privy_id)
    updated = await services.notifications.mark_read(
        caller.id, notification_id=body.notification_id, mark_all=body.mark_all
    )
    return MarkReadResponse(updated=updated)
