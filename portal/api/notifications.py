"""Notifications API router — multi-channel send and bulk templated email."""

from fastapi import APIRouter, Depends, Request

from portal.schemas.schemas import NotificationSendRequest, BulkEmailRequest
from portal.services.notification_router import (
    NotificationRouter, NotificationEvent, Recipients, get_notification_router,
)
from portal.models.user import User
from portal.core.exceptions import bad_request
from portal.core.permissions import Module, Operation
from portal.core.security import RequirePermission

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/send")
async def send_notification(
    body: NotificationSendRequest,
    request: Request,
    notifier: NotificationRouter = Depends(get_notification_router),
    actor: User = Depends(RequirePermission(Module.NOTIFICATIONS, Operation.SEND)),
):
    """Dispatch one event; channel failures are reported, not raised."""
    if not body.type or body.data is None:
        raise bad_request("Missing required fields: type, data")

    recipients = Recipients()
    if body.recipients:
        recipients = Recipients(
            user_ids=body.recipients.userIds,
            emails=body.recipients.emails,
            segments=body.recipients.segments,
            cohort=body.recipients.cohort,
        )
    event = NotificationEvent.build(body.type, body.data, body.channels, recipients)
    result = await notifier.dispatch(event, actor, request=request)
    return {
        "success": True,
        "notificationId": result.notification_id,
        "results": result.to_dict(),
    }


@router.post("/email")
async def send_bulk_email(
    body: BulkEmailRequest,
    request: Request,
    notifier: NotificationRouter = Depends(get_notification_router),
    actor: User = Depends(RequirePermission(Module.NOTIFICATIONS, Operation.SEND_EMAIL)),
):
    """Send a templated email to addresses or to a principal cohort."""
    return await notifier.send_bulk_email(
        body.type, body.recipients, body.data, actor, cohort=body.cohort, request=request,
    )
