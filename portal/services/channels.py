"""Real-time channel names and event names."""

GLOBAL = "global"
DASHBOARD = "dashboard-updates"

USER_PREFIX = "private-user-"
PROJECT_PREFIX = "project-"
TASK_PREFIX = "task-"


def project_channel(project_id) -> str:
    return f"{PROJECT_PREFIX}{project_id}"


def task_channel(task_id) -> str:
    return f"{TASK_PREFIX}{task_id}"


class RealtimeEvent:
    PROJECT_UPDATED = "project-updated"
    TASK_UPDATED = "task-updated"
    NOTIFICATION_SENT = "notification-sent"
    GOAL_UPDATED = "goal-updated"
    MILESTONE_COMPLETED = "milestone-completed"
    EVENT_UPDATED = "event-updated"
    ANNOUNCEMENT_PUBLISHED = "announcement-published"
