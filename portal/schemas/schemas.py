"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from portal.core.roles import Role
from portal.models.audit_log import ActivityAction
from portal.models.project import ProjectStatus, Priority
from portal.models.task import TaskStatus
from portal.services.notification_router import DeliveryChannel, Cohort


# ---- Auth / Principal ----
class SyncRequest(BaseModel):
    email: str = Field(..., min_length=3)
    name: str = Field(..., min_length=1)
    position: Optional[str] = None
    avatar_url: Optional[str] = None

class UserOut(BaseModel):
    id: int
    external_id: str
    email: str
    name: str
    position: Optional[str] = None
    role: Role
    avatar_url: Optional[str] = None
    is_active: bool = False
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MeOut(BaseModel):
    user: UserOut
    status: str
    access_level: str
    level: int

class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None


# ---- Project ----
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    location: Optional[str] = None
    is_public: bool = True
    manager_id: Optional[int] = None
    team_ids: List[int] = []
    notify: bool = False

class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    location: Optional[str] = None
    is_public: Optional[bool] = None
    manager_id: Optional[int] = None

class ProjectApproval(BaseModel):
    approved: bool

class ProjectMemberAdd(BaseModel):
    user_id: int

class ProjectMemberOut(BaseModel):
    id: int
    project_id: int
    user_id: int
    added_by: Optional[int] = None
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProjectOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    priority: Priority
    location: Optional[str] = None
    is_public: bool
    is_archived: bool
    created_by_id: int
    manager_id: Optional[int] = None
    members: List[ProjectMemberOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Task ----
class TaskCreate(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    assignee_ids: List[int] = []

class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    assignee_ids: Optional[List[int]] = None

class AssigneeOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class TaskOut(BaseModel):
    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: Priority
    due_date: Optional[datetime] = None
    created_by_id: int
    assignees: List[AssigneeOut] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Notifications ----
class RecipientsIn(BaseModel):
    userIds: List[str] = []
    emails: List[str] = []
    segments: List[str] = []
    cohort: Optional[Cohort] = None

class NotificationSendRequest(BaseModel):
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    channels: List[DeliveryChannel] = [DeliveryChannel.PUSH, DeliveryChannel.REALTIME]
    recipients: Optional[RecipientsIn] = None

class BulkEmailRequest(BaseModel):
    type: str = Field(..., min_length=1)
    recipients: List[str] = []
    cohort: Optional[Cohort] = None
    data: Dict[str, Any] = {}


# ---- Activity ----
class ActivityLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    action: ActivityAction
    description: str
    entity_type: str
    entity_id: str
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    metadata_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    success: bool = True
