"""Notification kinds and their per-channel templates."""

import enum
from dataclasses import dataclass, field
from html import escape
from typing import Callable, Dict, Any, Optional, Tuple

from portal.adapters.base import EmailMessage
from portal.core.config import settings
from portal.services import channels
from portal.services.channels import RealtimeEvent


class NotificationType(str, enum.Enum):
    PROJECT_CREATED = "project-created"
    PROJECT_UPDATED = "project-updated"
    PROJECT_COMPLETED = "project-completed"
    PROJECT_ASSIGNED = "project-assigned"
    TASK_ASSIGNED = "task-assigned"
    TASK_UPDATED = "task-updated"
    EVENT_REMINDER = "event-reminder"
    EVENT_UPDATED = "event-updated"
    EVENT_CANCELLED = "event-cancelled"
    EVENT_INVITATION = "event-invitation"
    URGENT_ANNOUNCEMENT = "urgent-announcement"
    ANNOUNCEMENT_PUBLISHED = "announcement-published"
    GOAL_UPDATED = "goal-updated"
    GOAL_COMPLETED = "goal-completed"
    MILESTONE_ACHIEVED = "milestone-achieved"
    WELCOME = "welcome"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "NotificationType":
        """Map a free-form type tag to a known kind, or UNKNOWN. Never raises."""
        raw = (raw or "").strip().lower()
        raw = _ALIASES.get(raw, raw)
        try:
            kind = cls(raw)
        except ValueError:
            return cls.UNKNOWN
        return kind


_ALIASES = {
    "project-assignment": "project-assigned",
    "task-assignment": "task-assigned",
}


@dataclass
class PushMessage:
    title: str
    message: str
    tags: Dict[str, str] = field(default_factory=dict)


def _p(payload: Dict[str, Any], key: str, default: str = "") -> str:
    value = payload.get(key)
    return default if value is None else str(value)


# ---- Push ----

PushTemplate = Callable[[Dict[str, Any], str], PushMessage]

PUSH_TEMPLATES: Dict[NotificationType, PushTemplate] = {
    NotificationType.PROJECT_CREATED: lambda d, actor: PushMessage(
        "New Project Created",
        f"{actor} created a new project: {_p(d, 'projectTitle')}",
        {"notification_type": "project", "action": "created"},
    ),
    NotificationType.PROJECT_COMPLETED: lambda d, actor: PushMessage(
        "Project Completed!",
        f'Great news! "{_p(d, "projectTitle")}" has been successfully completed.',
        {"notification_type": "project", "action": "completed"},
    ),
    NotificationType.TASK_ASSIGNED: lambda d, actor: PushMessage(
        "New Task Assigned",
        f"You have been assigned to: {_p(d, 'taskTitle')}",
        {"notification_type": "task", "action": "assigned"},
    ),
    NotificationType.EVENT_REMINDER: lambda d, actor: PushMessage(
        "Event Reminder",
        f'Don\'t forget: "{_p(d, "eventTitle")}" is scheduled for {_p(d, "eventDate")}',
        {"notification_type": "event", "action": "reminder"},
    ),
    NotificationType.EVENT_CANCELLED: lambda d, actor: PushMessage(
        "Event Cancelled",
        f'"{_p(d, "eventTitle")}" has been cancelled. We apologize for any inconvenience.',
        {"notification_type": "event", "action": "cancelled"},
    ),
    NotificationType.URGENT_ANNOUNCEMENT: lambda d, actor: PushMessage(
        f"Urgent: {_p(d, 'title')}",
        _p(d, "excerpt"),
        {"notification_type": "announcement", "priority": "urgent"},
    ),
    NotificationType.ANNOUNCEMENT_PUBLISHED: lambda d, actor: PushMessage(
        _p(d, "title", "New Announcement"),
        _p(d, "excerpt"),
        {"notification_type": "announcement", "priority": "normal"},
    ),
    NotificationType.MILESTONE_ACHIEVED: lambda d, actor: PushMessage(
        "Milestone Achieved!",
        f'"{_p(d, "goalTitle")}": {_p(d, "milestone")} has been completed',
        {"notification_type": "goal", "action": "milestone"},
    ),
    NotificationType.GOAL_COMPLETED: lambda d, actor: PushMessage(
        "Goal Completed!",
        f'Congratulations! "{_p(d, "goalTitle")}" has been successfully achieved.',
        {"notification_type": "goal", "action": "completed"},
    ),
}


def push_message_for(kind: NotificationType, raw_type: str, payload: Dict[str, Any], actor_name: str) -> PushMessage:
    """Template lookup with a generic fallback built from the raw payload."""
    template = PUSH_TEMPLATES.get(kind)
    if template is not None:
        return template(payload, actor_name)
    return PushMessage(
        _p(payload, "title", "BarangayLink Notification"),
        _p(payload, "message", "You have a new update"),
        {"notification_type": raw_type},
    )


# ---- Real-time ----

_PROJECT_KINDS = {
    NotificationType.PROJECT_CREATED,
    NotificationType.PROJECT_UPDATED,
    NotificationType.PROJECT_COMPLETED,
}
_TASK_KINDS = {NotificationType.TASK_ASSIGNED, NotificationType.TASK_UPDATED}

_SHARED_ROUTES: Dict[NotificationType, Tuple[str, str]] = {
    NotificationType.GOAL_UPDATED: (RealtimeEvent.GOAL_UPDATED, channels.DASHBOARD),
    NotificationType.MILESTONE_ACHIEVED: (RealtimeEvent.MILESTONE_COMPLETED, channels.DASHBOARD),
    NotificationType.EVENT_UPDATED: (RealtimeEvent.EVENT_UPDATED, channels.DASHBOARD),
    NotificationType.ANNOUNCEMENT_PUBLISHED: (RealtimeEvent.ANNOUNCEMENT_PUBLISHED, channels.GLOBAL),
}


def realtime_route_for(kind: NotificationType, payload: Dict[str, Any]) -> Tuple[str, str]:
    """(event name, channel): resource channel when the payload names one."""
    if kind in _PROJECT_KINDS:
        project_id = payload.get("projectId")
        return RealtimeEvent.PROJECT_UPDATED, (
            channels.project_channel(project_id) if project_id else channels.DASHBOARD
        )
    if kind in _TASK_KINDS:
        task_id = payload.get("taskId")
        return RealtimeEvent.TASK_UPDATED, (
            channels.task_channel(task_id) if task_id else channels.DASHBOARD
        )
    return _SHARED_ROUTES.get(kind, (RealtimeEvent.NOTIFICATION_SENT, channels.DASHBOARD))


# ---- Email ----

def _layout(color: str, heading: str, body: str, button_url: str, button_label: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<div style="background: {color}; padding: 20px; text-align: center;">'
        f'<h1 style="color: white; margin: 0;">{heading}</h1></div>'
        f'<div style="padding: 30px; background: #f9fafb;">{body}'
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(button_url, quote=True)}" style="background: {color}; color: white; '
        'padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: bold;">'
        f"{button_label}</a></div></div></div>"
    )


def _project_assignment(d: Dict[str, Any], actor: str) -> EmailMessage:
    title = escape(_p(d, "projectTitle"))
    body = (
        f"<h2>Hello {escape(_p(d, 'userName'))}!</h2>"
        f"<p>You have been assigned to work on a new project: <strong>{title}</strong></p>"
        f"<p><strong>Assigned by:</strong> {escape(actor)}</p>"
    )
    return EmailMessage(
        subject=f"You've been assigned to: {_p(d, 'projectTitle')}",
        html=_layout("#3b82f6", "New Project Assignment", body, _p(d, "projectUrl"), "View Project Details"),
    )


def _task_assignment(d: Dict[str, Any], actor: str) -> EmailMessage:
    body = (
        f"<h2>Hello {escape(_p(d, 'userName'))}!</h2>"
        f"<p>You have been assigned a new task: <strong>{escape(_p(d, 'taskTitle'))}</strong></p>"
    )
    if d.get("dueDate"):
        body += f"<p><strong>Due Date:</strong> {escape(_p(d, 'dueDate'))}</p>"
    return EmailMessage(
        subject=f"New Task: {_p(d, 'taskTitle')}",
        html=_layout("#8b5cf6", "New Task Assignment", body, _p(d, "taskUrl"), "View Task"),
    )


def _event_invitation(d: Dict[str, Any], actor: str) -> EmailMessage:
    body = (
        f"<h2>Hello {escape(_p(d, 'userName'))}!</h2>"
        f"<p>You're invited to attend: <strong>{escape(_p(d, 'eventTitle'))}</strong></p>"
        f"<p><strong>Date:</strong> {escape(_p(d, 'eventDate'))}<br>"
        f"<strong>Location:</strong> {escape(_p(d, 'eventLocation'))}</p>"
    )
    return EmailMessage(
        subject=f"Event Invitation: {_p(d, 'eventTitle')}",
        html=_layout("#059669", "You're Invited!", body, _p(d, "eventUrl"), "View Event Details"),
    )


def _urgent_announcement(d: Dict[str, Any], actor: str) -> EmailMessage:
    body = (
        f"<h2 style=\"color: #dc2626;\">{escape(_p(d, 'title'))}</h2>"
        f"<p>{escape(_p(d, 'content'))}</p>"
    )
    return EmailMessage(
        subject=f"URGENT: {_p(d, 'title')}",
        html=_layout("#dc2626", "URGENT ANNOUNCEMENT", body, _p(d, "announcementUrl"), "Read Full Announcement"),
    )


def _welcome(d: Dict[str, Any], actor: str) -> EmailMessage:
    body = (
        f"<h2>Hello {escape(_p(d, 'userName'))}!</h2>"
        "<p>Welcome to BarangayLink, your barangay management system. "
        "You now have access to project management, event coordination and "
        "community engagement tools.</p>"
    )
    return EmailMessage(
        subject="Welcome to BarangayLink!",
        html=_layout(
            "#16a34a", "Welcome to BarangayLink", body,
            _p(d, "dashboardUrl", settings.DASHBOARD_URL), "Access Your Dashboard",
        ),
    )


EMAIL_TEMPLATES: Dict[NotificationType, Callable[[Dict[str, Any], str], EmailMessage]] = {
    NotificationType.PROJECT_ASSIGNED: _project_assignment,
    NotificationType.TASK_ASSIGNED: _task_assignment,
    NotificationType.EVENT_INVITATION: _event_invitation,
    NotificationType.URGENT_ANNOUNCEMENT: _urgent_announcement,
    NotificationType.WELCOME: _welcome,
}


def email_message_for(kind: NotificationType, payload: Dict[str, Any], actor_name: str) -> Optional[EmailMessage]:
    """Email for the kind, or None when the kind has no email template."""
    template = EMAIL_TEMPLATES.get(kind)
    return template(payload, actor_name) if template else None
