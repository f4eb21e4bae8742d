# src/huddle/api/v1/endpoints/notifications.py
"""Notification endpoints for the Huddle API."""

from fastapi import APIRouter

from huddle.schemas.notification import MarkedRead, NotificationList, NotificationResponse

from ..dependencies import CurrentUserDep, NotifierDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationList)
async def list_notifications(current_user: CurrentUserDep, notifier: NotifierDep) -> NotificationList:
    """Return the caller's latest notifications and their unread count."""
    notifications = notifier.list_for(current_user.id)
    return NotificationList(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=notifier.unread_count(current_user.id),
    )


@router.put("/read-all", response_model=MarkedRead)
async def mark_all_read(current_user: CurrentUserDep, notifier: NotifierDep) -> MarkedRead:
    """Mark all of the caller's notifications as read."""
    return MarkedRead(updated=notifier.mark_all_read(current_user.id))


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    current_user: CurrentUserDep,
    notifier: NotifierDep,
) -> dict[str, str]:
    """Mark one notification as read."""
    notifier.mark_read(notification_id, current_user.id)
    return {"status": "marked_as_read"}
