"""API tests for task handlers."""

import pytest

from portal.core.roles import Role
from portal.models.audit_log import ActivityAction, ActivityLog
from portal.models.project import Project, ProjectMember
from portal.models.task import Task
from portal.models.user import User

from conftest import auth_headers


@pytest.fixture
def project(db, make_user):
    owner = make_user(Role.COUNCILOR, name="Owner")
    project = Project(name="Feeding program", created_by_id=owner.id, manager_id=owner.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def _join(db, project, user):
    db.add(ProjectMember(project_id=project.id, user_id=user.id, added_by=project.created_by_id))
    db.commit()


def test_staff_can_create_self_assigned_task(client, db, make_user, project, fake_push):
    staff = make_user(Role.STAFF)
    _join(db, project, staff)

    resp = client.post(
        "/api/tasks",
        json={"project_id": project.id, "title": "Buy rice", "assignee_ids": [staff.id]},
        headers=auth_headers(staff),
    )

    assert resp.status_code == 201
    assert [a["id"] for a in resp.json()["assignees"]] == [staff.id]
    assert fake_push.sent == []


def test_staff_cannot_assign_others(client, db, make_user, project):
    staff = make_user(Role.STAFF)
    _join(db, project, staff)
    colleague = make_user(Role.STAFF)

    resp = client.post(
        "/api/tasks",
        json={"project_id": project.id, "title": "Buy rice", "assignee_ids": [colleague.id]},
        headers=auth_headers(staff),
    )

    assert resp.status_code == 403
    assert db.query(Task).count() == 0


def test_assignment_notifies_assignees(client, db, make_user, project, fake_push, fake_realtime):
    owner = db.get(User, project.created_by_id)
    staff = make_user(Role.STAFF)

    resp = client.post(
        "/api/tasks",
        json={"project_id": project.id, "title": "Repack goods", "assignee_ids": [staff.id]},
        headers=auth_headers(owner),
    )

    assert resp.status_code == 201
    task_id = resp.json()["id"]
    assert fake_push.sent[0]["targeting"].user_ids == [staff.external_id]
    assert fake_push.sent[0]["message"] == "You have been assigned to: Repack goods"
    assert fake_realtime.published[0]["channel"] == f"task-{task_id}"
    actions = {row.action for row in db.query(ActivityLog).all()}
    assert actions == {ActivityAction.CREATED, ActivityAction.NOTIFICATION_SENT}


def test_unknown_project_is_404(client, make_user):
    councilor = make_user(Role.COUNCILOR)
    resp = client.post("/api/tasks", json={"project_id": 999, "title": "x"}, headers=auth_headers(councilor))
    assert resp.status_code == 404


def test_unrelated_principal_cannot_edit_task(client, db, make_user, project):
    assignee = make_user(Role.STAFF)
    stranger = make_user(Role.COUNCILOR)
    task = Task(title="Count sacks", project_id=project.id, created_by_id=project.created_by_id)
    task.assignees = [assignee]
    db.add(task)
    db.commit()

    denied = client.patch(f"/api/tasks/{task.id}", json={"status": "COMPLETED"}, headers=auth_headers(stranger))
    assert denied.status_code == 403

    resp = client.patch(f"/api/tasks/{task.id}", json={"status": "COMPLETED"}, headers=auth_headers(assignee))
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"


def test_reassignment_is_audited_as_assignment(client, db, make_user, project):
    manager = db.get(User, project.manager_id)
    first = make_user(Role.STAFF)
    second = make_user(Role.STAFF)
    task = Task(title="Deliver", project_id=project.id, created_by_id=manager.id)
    task.assignees = [first]
    db.add(task)
    db.commit()

    resp = client.patch(
        f"/api/tasks/{task.id}", json={"assignee_ids": [second.id]}, headers=auth_headers(manager)
    )

    assert resp.status_code == 200
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.ASSIGNED).count() == 1


def test_delete_needs_councilor(client, db, make_user, project):
    staff = make_user(Role.STAFF)
    task = Task(title="Temp", project_id=project.id, created_by_id=staff.id)
    db.add(task)
    db.commit()

    assert client.delete(f"/api/tasks/{task.id}", headers=auth_headers(staff)).status_code == 403

    manager_token = auth_headers(db.get(User, project.manager_id))
    assert client.delete(f"/api/tasks/{task.id}", headers=manager_token).status_code == 200
    assert db.query(Task).count() == 0


def test_list_tasks_only_returns_own(client, db, make_user, project):
    staff = make_user(Role.STAFF)
    mine = Task(title="Mine", project_id=project.id, created_by_id=project.created_by_id)
    mine.assignees = [staff]
    db.add_all([mine, Task(title="Not mine", project_id=project.id, created_by_id=project.created_by_id)])
    db.commit()

    resp = client.get("/api/tasks", headers=auth_headers(staff))

    assert [t["title"] for t in resp.json()["tasks"]] == ["Mine"]


def test_outsider_cannot_create_task_in_unrelated_project(client, db, make_user, project):
    project.is_public = False
    db.commit()
    outsider = make_user(Role.STAFF)

    resp = client.post(
        "/api/tasks",
        json={"project_id": project.id, "title": "Sneak in", "assignee_ids": [outsider.id]},
        headers=auth_headers(outsider),
    )

    assert resp.status_code == 403
    assert db.query(Task).count() == 0


def test_captain_can_create_task_in_any_project(client, make_user, project):
    captain = make_user(Role.BARANGAY_CAPTAIN)
    resp = client.post(
        "/api/tasks", json={"project_id": project.id, "title": "Inspect"}, headers=auth_headers(captain)
    )
    assert resp.status_code == 201


def test_unrelated_councilor_cannot_delete_task(client, db, make_user, project):
    stranger = make_user(Role.COUNCILOR)
    task = Task(title="Keep me", project_id=project.id, created_by_id=project.created_by_id)
    db.add(task)
    db.commit()

    resp = client.delete(f"/api/tasks/{task.id}", headers=auth_headers(stranger))

    assert resp.status_code == 403
    assert db.query(Task).count() == 1
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.DELETED).count() == 0
