"""Tests for notification kinds and per-channel templates."""

import pytest

from portal.services.notification_templates import (
    NotificationType, email_message_for, push_message_for, realtime_route_for,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("project-created", NotificationType.PROJECT_CREATED),
        ("task-assignment", NotificationType.TASK_ASSIGNED),
        ("project-assignment", NotificationType.PROJECT_ASSIGNED),
        ("  Urgent-Announcement ", NotificationType.URGENT_ANNOUNCEMENT),
        ("something-new", NotificationType.UNKNOWN),
        ("", NotificationType.UNKNOWN),
        (None, NotificationType.UNKNOWN),
    ],
)
def test_parse_never_raises(raw, expected):
    assert NotificationType.parse(raw) is expected


@pytest.mark.parametrize(
    "kind, payload, route",
    [
        (NotificationType.PROJECT_UPDATED, {"projectId": 4}, ("project-updated", "project-4")),
        (NotificationType.PROJECT_UPDATED, {}, ("project-updated", "dashboard-updates")),
        (NotificationType.TASK_ASSIGNED, {"taskId": 8}, ("task-updated", "task-8")),
        (NotificationType.MILESTONE_ACHIEVED, {}, ("milestone-completed", "dashboard-updates")),
        (NotificationType.ANNOUNCEMENT_PUBLISHED, {}, ("announcement-published", "global")),
        (NotificationType.UNKNOWN, {"projectId": 4}, ("notification-sent", "dashboard-updates")),
    ],
)
def test_realtime_routes(kind, payload, route):
    assert realtime_route_for(kind, payload) == route


def test_urgent_push_is_tagged_urgent():
    msg = push_message_for(NotificationType.URGENT_ANNOUNCEMENT, "urgent-announcement", {"title": "Flood"}, "Kap")
    assert msg.title == "Urgent: Flood"
    assert msg.tags["priority"] == "urgent"


def test_generic_push_tags_raw_type():
    msg = push_message_for(NotificationType.UNKNOWN, "fiesta", {}, "Kap")
    assert msg.title == "BarangayLink Notification"
    assert msg.tags == {"notification_type": "fiesta"}


def test_email_templates_escape_payload_values():
    message = email_message_for(
        NotificationType.PROJECT_ASSIGNED,
        {"projectTitle": "<script>x</script>", "userName": "Ana", "projectUrl": "https://x/p?a=1&b=2"},
        "Kap <Tan>",
    )
    assert "<script>" not in message.html
    assert "&lt;script&gt;" in message.html
    assert "Kap &lt;Tan&gt;" in message.html
    assert 'href="https://x/p?a=1&amp;b=2"' in message.html


def test_kinds_without_email_template():
    assert email_message_for(NotificationType.GOAL_UPDATED, {}, "Kap") is None
