"""Models package — import all models so metadata.create_all can discover them."""

from portal.models.user import User
from portal.models.project import Project, ProjectMember, ProjectStatus, Priority
from portal.models.task import Task, TaskStatus, task_assignees
from portal.models.audit_log import ActivityLog, ActivityAction

__all__ = [
    "User", "Project", "ProjectMember", "ProjectStatus", "Priority",
    "Task", "TaskStatus", "task_assignees",
    "ActivityLog", "ActivityAction",
]
