"""Real-time channel subscription authorization.

Channel names encode their scope: ``private-user-<id>``, ``project-<id>``,
``task-<id>``; anything else is a shared channel open to every authenticated
principal. Ownership and membership are re-queried on every request.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional, Union, Dict, Any

from sqlalchemy.orm import Session

from portal.adapters.base import RealtimeProvider
from portal.models.user import User
from portal.services import channels
from portal.services.project_service import project_service
from portal.services.task_service import task_service

logger = logging.getLogger("barangay_portal.channels")


class ChannelScope(str, enum.Enum):
    PRIVATE_USER = "private_user"
    PROJECT = "project"
    TASK = "task"
    GLOBAL = "global"


@dataclass(frozen=True)
class ParsedChannel:
    scope: ChannelScope
    resource_id: Optional[str] = None


@dataclass
class SubscriptionGrant:
    channel: str
    user_id: int
    user_info: Dict[str, Any] = field(default_factory=dict)
    auth: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auth": self.auth,
            "channel": self.channel,
            "channel_data": {"user_id": self.user_id, "user_info": self.user_info},
        }


@dataclass
class SubscriptionDenial:
    channel: str
    reason: str


def parse_channel(name: str) -> ParsedChannel:
    for prefix, scope in (
        (channels.USER_PREFIX, ChannelScope.PRIVATE_USER),
        (channels.PROJECT_PREFIX, ChannelScope.PROJECT),
        (channels.TASK_PREFIX, ChannelScope.TASK),
    ):
        if name.startswith(prefix):
            return ParsedChannel(scope, name[len(prefix):])
    return ParsedChannel(ChannelScope.GLOBAL)


def _as_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


class ChannelAuthorizer:
    """Decides whether a principal may subscribe to a named channel."""

    def __init__(self, db: Session, realtime: RealtimeProvider):
        self.db = db
        self.realtime = realtime

    def check(self, principal: User, channel_name: str) -> Optional[str]:
        """Return None when allowed, otherwise the denial reason."""
        parsed = parse_channel(channel_name)

        if parsed.scope == ChannelScope.PRIVATE_USER:
            if parsed.resource_id != str(principal.id):
                return "Private channels belong to their owner only"
            return None

        if parsed.scope == ChannelScope.PROJECT:
            project_id = _as_id(parsed.resource_id)
            if project_id is None or not project_service.is_related(self.db, project_id, principal.id):
                return "Project access denied"
            return None

        if parsed.scope == ChannelScope.TASK:
            task_id = _as_id(parsed.resource_id)
            if task_id is None or not task_service.is_related(self.db, task_id, principal.id):
                return "Task access denied"
            return None

        return None

    def authorize(
        self, principal: User, channel_name: str, socket_id: str = ""
    ) -> Union[SubscriptionGrant, SubscriptionDenial]:
        """Grant a signed subscription or explain the denial."""
        reason = self.check(principal, channel_name)
        if reason is not None:
            logger.warning("Denied channel %s to principal %s: %s", channel_name, principal.id, reason)
            return SubscriptionDenial(channel=channel_name, reason=reason)

        grant = SubscriptionGrant(
            channel=channel_name,
            user_id=principal.id,
            user_info=principal.public_profile(),
        )
        grant.auth = self.realtime.authorize_subscription(
            socket_id,
            channel_name,
            {"user_id": grant.user_id, "user_info": grant.user_info},
        )
        return grant
