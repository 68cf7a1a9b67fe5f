"""Notification router — fans one event out to push, real-time and email.

Channels are attempted independently: a failure or timeout in one is logged and
reported in the result, never raised. Exactly one activity record is written
per dispatch, after every attempted channel has settled.
"""

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from portal.adapters import email_provider, push_provider, realtime_provider
from portal.adapters.base import EmailProvider, PushProvider, PushTargeting, RealtimeProvider
from portal.core.config import settings
from portal.core.exceptions import ValidationError
from portal.db.session import get_db
from portal.models.audit_log import ActivityAction
from portal.models.user import User
from portal.services.audit_service import audit_service
from portal.services.notification_templates import (
    NotificationType, push_message_for, realtime_route_for, email_message_for,
)
from portal.services.user_service import user_service

logger = logging.getLogger("barangay_portal.notifications")


class DeliveryChannel(str, enum.Enum):
    PUSH = "push"
    REALTIME = "realtime"
    EMAIL = "email"


class Cohort(str, enum.Enum):
    ALL_USERS = "all-users"
    OFFICIALS = "officials"


@dataclass
class Recipients:
    user_ids: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    segments: List[str] = field(default_factory=list)
    cohort: Optional[Cohort] = None


@dataclass
class ResolvedRecipients:
    user_ids: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    segments: List[str] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "user_ids": len(self.user_ids),
            "emails": len(self.emails),
            "segments": len(self.segments),
        }


@dataclass
class NotificationEvent:
    type: NotificationType
    raw_type: str
    payload: Dict[str, Any]
    channels: List[DeliveryChannel]
    recipients: Recipients = field(default_factory=Recipients)

    @classmethod
    def build(
        cls,
        raw_type: str,
        payload: Dict[str, Any],
        channels: Optional[List[DeliveryChannel]] = None,
        recipients: Optional[Recipients] = None,
    ) -> "NotificationEvent":
        return cls(
            type=NotificationType.parse(raw_type),
            raw_type=raw_type,
            payload=dict(payload or {}),
            channels=[DeliveryChannel.PUSH, DeliveryChannel.REALTIME] if channels is None else list(channels),
            recipients=recipients or Recipients(),
        )


@dataclass
class ChannelOutcome:
    success: bool
    provider_id: Optional[str] = None
    count: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, provider_id: Optional[str] = None, count: Optional[int] = None) -> "ChannelOutcome":
        return cls(success=True, provider_id=provider_id, count=count)

    @classmethod
    def failed(cls, reason: str, count: Optional[int] = None) -> "ChannelOutcome":
        return cls(success=False, count=count, error=reason)

    def to_dict(self, channel: DeliveryChannel) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if channel == DeliveryChannel.PUSH:
            out["id"] = self.provider_id
        elif channel == DeliveryChannel.EMAIL:
            out["count"] = self.count or 0
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class DispatchResult:
    notification_id: str
    outcomes: Dict[DeliveryChannel, ChannelOutcome] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {channel.value: outcome.to_dict(channel) for channel, outcome in self.outcomes.items()}

    def success_counts(self) -> Dict[str, int]:
        counts = {}
        for channel, outcome in self.outcomes.items():
            if channel == DeliveryChannel.EMAIL:
                counts[channel.value] = outcome.count or 0
            else:
                counts[channel.value] = 1 if outcome.success else 0
        return counts


class NotificationRouter:
    """Delivers notification events through the configured providers."""

    def __init__(
        self,
        db: Session,
        push: PushProvider,
        realtime: RealtimeProvider,
        email: EmailProvider,
        channel_timeout: Optional[float] = None,
        email_delay: Optional[float] = None,
    ):
        self.db = db
        self.push = push
        self.realtime = realtime
        self.email = email
        self.channel_timeout = (
            settings.NOTIFY_CHANNEL_TIMEOUT_SECONDS if channel_timeout is None else channel_timeout
        )
        self.email_delay = settings.EMAIL_SEND_DELAY_SECONDS if email_delay is None else email_delay

    # ---- Recipients ----

    def resolve_recipients(self, recipients: Recipients) -> ResolvedRecipients:
        """Expand a cohort into push targets; explicit ids and emails pass through."""
        resolved = ResolvedRecipients(
            user_ids=[str(u) for u in recipients.user_ids],
            emails=list(recipients.emails),
            segments=list(recipients.segments),
        )
        if recipients.cohort is not None:
            principals = user_service.active_principals(
                self.db, officials_only=recipients.cohort == Cohort.OFFICIALS
            )
            known = set(resolved.user_ids)
            for principal in principals:
                if principal.external_id not in known:
                    resolved.user_ids.append(principal.external_id)
                    known.add(principal.external_id)
        return resolved

    def cohort_emails(self, cohort: Cohort) -> List[str]:
        principals = user_service.active_principals(self.db, officials_only=cohort == Cohort.OFFICIALS)
        return [p.email for p in principals if p.email]

    # ---- Channels ----

    async def _send_push(self, event: NotificationEvent, resolved: ResolvedRecipients, actor: User) -> ChannelOutcome:
        msg = push_message_for(event.type, event.raw_type, event.payload, actor.name)
        targeting = PushTargeting(
            user_ids=resolved.user_ids,
            segments=resolved.segments,
            url=event.payload.get("url"),
            data={**event.payload, **msg.tags, "type": event.raw_type},
        )
        response = await asyncio.wait_for(
            self.push.send(msg.title, msg.message, targeting), timeout=self.channel_timeout
        )
        return ChannelOutcome.ok(provider_id=(response or {}).get("id"))

    async def _send_realtime(self, event: NotificationEvent, actor: User) -> ChannelOutcome:
        msg = push_message_for(event.type, event.raw_type, event.payload, actor.name)
        event_name, channel = realtime_route_for(event.type, event.payload)
        body = dict(event.payload)
        body.update({
            "type": event.raw_type,
            "title": msg.title,
            "message": msg.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "userId": actor.id,
            "userName": actor.name,
        })
        await asyncio.wait_for(
            self.realtime.publish(channel, event_name, body), timeout=self.channel_timeout
        )
        return ChannelOutcome.ok()

    async def _send_emails(self, event: NotificationEvent, resolved: ResolvedRecipients, actor: User) -> ChannelOutcome:
        message = email_message_for(event.type, event.payload, actor.name)
        if message is None:
            return ChannelOutcome.failed(f"No email template for '{event.raw_type}'", count=0)
        if not resolved.emails:
            return ChannelOutcome.failed("Email delivery needs explicit addresses", count=0)

        sent = await self._deliver_each(resolved.emails, message)
        if sent == 0:
            return ChannelOutcome.failed("No email could be delivered", count=0)
        return ChannelOutcome.ok(count=sent)

    async def _deliver_each(self, addresses: List[str], message) -> int:
        """Send sequentially with a pause between sends; returns the success count."""
        sent = 0
        for i, address in enumerate(addresses):
            if i > 0 and self.email_delay:
                await asyncio.sleep(self.email_delay)
            try:
                await asyncio.wait_for(self.email.send(address, message), timeout=self.channel_timeout)
                sent += 1
            except asyncio.TimeoutError:
                logger.error("Email to %s timed out after %ss", address, self.channel_timeout)
            except Exception:
                logger.exception("Email to %s failed", address)
        return sent

    async def _guarded(self, channel: DeliveryChannel, attempt) -> ChannelOutcome:
        try:
            return await attempt
        except asyncio.TimeoutError:
            logger.error("%s delivery timed out after %ss", channel.value, self.channel_timeout)
            return ChannelOutcome.failed(f"{channel.value} delivery timed out")
        except Exception as e:
            logger.exception("%s delivery failed", channel.value)
            return ChannelOutcome.failed(str(e) or e.__class__.__name__)

    # ---- Dispatch ----

    def _audit(self, request: Optional[Request], **fields):
        if request is not None:
            return audit_service.record_from_request(self.db, request, **fields)
        return audit_service.record(self.db, **fields)

    async def dispatch(
        self, event: NotificationEvent, actor: User, request: Optional[Request] = None,
    ) -> DispatchResult:
        """Deliver ``event`` on each requested channel and write one audit record.

        Not idempotent: every call delivers again and is audited again.
        """
        resolved = self.resolve_recipients(event.recipients)
        result = DispatchResult(notification_id=f"notification-{uuid.uuid4()}")

        requested = []
        for channel in event.channels:
            if channel not in requested:
                requested.append(channel)

        attempts = []
        for channel in requested:
            if channel == DeliveryChannel.PUSH:
                attempts.append(self._send_push(event, resolved, actor))
            elif channel == DeliveryChannel.REALTIME:
                attempts.append(self._send_realtime(event, actor))
            else:
                attempts.append(self._send_emails(event, resolved, actor))

        outcomes = await asyncio.gather(
            *(self._guarded(channel, attempt) for channel, attempt in zip(requested, attempts))
        )
        for channel, outcome in zip(requested, outcomes):
            result.outcomes[channel] = outcome

        self._audit(
            request,
            actor_id=actor.id,
            action=ActivityAction.NOTIFICATION_SENT,
            description=f"Sent {event.raw_type} notification via {', '.join(c.value for c in requested) or 'no channels'}",
            entity_type="NOTIFICATION",
            entity_id=result.notification_id,
            metadata={
                "notification_type": event.raw_type,
                "channels": [c.value for c in requested],
                "results": result.to_dict(),
                "success_counts": result.success_counts(),
                "recipient_counts": resolved.counts(),
            },
        )
        logger.info("Dispatched %s (%s): %s", event.raw_type, result.notification_id, result.to_dict())
        return result

    async def send_bulk_email(
        self,
        template_type: str,
        recipients: List[str],
        payload: Dict[str, Any],
        actor: User,
        cohort: Optional[Cohort] = None,
        request: Optional[Request] = None,
    ) -> Dict[str, Any]:
        """Send one templated email per address; cohorts resolve to addresses here."""
        kind = NotificationType.parse(template_type)
        message = email_message_for(kind, payload or {}, actor.name)
        if message is None:
            raise ValidationError(f"Unknown email template '{template_type}'")

        addresses = list(recipients or [])
        if cohort is not None:
            addresses = self.cohort_emails(cohort)
        if not addresses:
            raise ValidationError("No email recipients")

        results = []
        for i, address in enumerate(addresses):
            if i > 0 and self.email_delay:
                await asyncio.sleep(self.email_delay)
            try:
                response = await asyncio.wait_for(
                    self.email.send(address, message), timeout=self.channel_timeout
                )
                results.append({"email": address, "success": True, "id": (response or {}).get("id")})
            except asyncio.TimeoutError:
                logger.error("Email to %s timed out", address)
                results.append({"email": address, "success": False, "error": "timed out"})
            except Exception as e:
                logger.exception("Email to %s failed", address)
                results.append({"email": address, "success": False, "error": str(e)})

        sent = sum(1 for r in results if r["success"])
        self._audit(
            request,
            actor_id=actor.id,
            action=ActivityAction.EMAIL_SENT,
            description=f"Sent {template_type} email to {sent} of {len(addresses)} recipients",
            entity_type="EMAIL",
            entity_id=f"email-{uuid.uuid4()}",
            metadata={
                "template_type": template_type,
                "cohort": cohort.value if cohort else None,
                "recipient_count": len(addresses),
                "success_count": sent,
            },
        )
        return {"success": sent > 0, "sent": sent, "total": len(addresses), "results": results}


def get_notification_router(db: Session = Depends(get_db)) -> NotificationRouter:
    return NotificationRouter(db, push_provider, realtime_provider, email_provider)
