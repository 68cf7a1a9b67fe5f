"""API tests for permission-gated project handlers."""

from unittest.mock import patch

from portal.core.roles import Role
from portal.models.audit_log import ActivityAction, ActivityLog
from portal.models.project import Project

from conftest import auth_headers


def test_staff_cannot_create_project_and_nothing_is_recorded(client, db, make_user):
    staff = make_user(Role.STAFF)

    resp = client.post("/api/projects", json={"name": "Street lights"}, headers=auth_headers(staff))

    assert resp.status_code == 403
    assert "Requires level 3+" in resp.json()["detail"]
    assert db.query(Project).count() == 0
    assert db.query(ActivityLog).count() == 0


def test_pending_principal_gets_pending_approval_code(client, make_user):
    pending = make_user(Role.ADMIN, is_active=False)

    resp = client.post("/api/projects", json={"name": "X"}, headers=auth_headers(pending))

    assert resp.status_code == 403
    assert resp.json()["code"] == "pending_approval"


def test_missing_token_is_401(client):
    assert client.get("/api/projects").status_code == 401


def test_unsynced_identity_is_404(client, make_user):
    from portal.models.user import User

    ghost = User(external_id="never-synced", email="ghost@x", name="Ghost", role=Role.ADMIN, is_active=True)
    resp = client.get("/api/projects", headers=auth_headers(ghost))
    assert resp.status_code == 404


def test_councilor_creates_project_with_audit_and_notification(client, db, make_user, fake_push, fake_realtime):
    councilor = make_user(Role.COUNCILOR, name="Kagawad Cruz")
    member = make_user(Role.STAFF)

    resp = client.post(
        "/api/projects",
        json={"name": "Drainage", "team_ids": [member.id], "notify": True},
        headers=auth_headers(councilor),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["manager_id"] == councilor.id
    assert [m["user_id"] for m in body["members"]] == [member.id]

    created = db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.CREATED).one()
    assert created.entity_id == str(body["id"])
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.NOTIFICATION_SENT).count() == 1
    assert fake_push.sent[0]["message"] == "Kagawad Cruz created a new project: Drainage"
    assert fake_realtime.published[0]["channel"] == f"project-{body['id']}"


def test_mutation_survives_audit_failure(client, db, make_user):
    councilor = make_user(Role.COUNCILOR)

    with patch("portal.services.audit_service.ActivityLog", side_effect=RuntimeError("db gone")):
        resp = client.post("/api/projects", json={"name": "Plaza"}, headers=auth_headers(councilor))

    assert resp.status_code == 201
    assert db.query(Project).count() == 1


def test_project_list_is_role_scoped(client, db, make_user):
    captain = make_user(Role.BARANGAY_CAPTAIN)
    councilor = make_user(Role.COUNCILOR)
    staff = make_user(Role.STAFF)
    db.add_all([
        Project(name="Public", created_by_id=councilor.id, is_public=True),
        Project(name="Private", created_by_id=councilor.id, is_public=False),
        Project(name="Captain only", created_by_id=captain.id, is_public=False),
    ])
    db.commit()

    def names(user):
        resp = client.get("/api/projects", headers=auth_headers(user))
        assert resp.status_code == 200
        return sorted(p["name"] for p in resp.json()["projects"])

    assert names(captain) == ["Captain only", "Private", "Public"]
    assert names(councilor) == ["Private", "Public"]
    assert names(staff) == ["Public"]


def test_private_project_detail_requires_relation(client, db, make_user):
    owner = make_user(Role.COUNCILOR)
    other = make_user(Role.COUNCILOR)
    project = Project(name="Budget review", created_by_id=owner.id, is_public=False)
    db.add(project)
    db.commit()

    assert client.get(f"/api/projects/{project.id}", headers=auth_headers(owner)).status_code == 200
    assert client.get(f"/api/projects/{project.id}", headers=auth_headers(other)).status_code == 403


def test_update_records_before_and_after(client, db, make_user):
    councilor = make_user(Role.COUNCILOR)
    project = Project(name="Old name", created_by_id=councilor.id)
    db.add(project)
    db.commit()

    resp = client.patch(
        f"/api/projects/{project.id}", json={"name": "New name"}, headers=auth_headers(councilor)
    )

    assert resp.status_code == 200
    entry = db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.UPDATED).one()
    assert '"Old name"' in entry.old_value_json
    assert '"New name"' in entry.new_value_json


def test_approval_needs_captain(client, db, make_user):
    secretary = make_user(Role.SECRETARY)
    captain = make_user(Role.BARANGAY_CAPTAIN)
    project = Project(name="Health center", created_by_id=secretary.id)
    db.add(project)
    db.commit()

    denied = client.post(f"/api/projects/{project.id}/approve", json={"approved": True}, headers=auth_headers(secretary))
    assert denied.status_code == 403

    resp = client.post(f"/api/projects/{project.id}/approve", json={"approved": True}, headers=auth_headers(captain))
    assert resp.status_code == 200
    assert resp.json()["status"] == "APPROVED"
    assert db.query(ActivityLog).filter(ActivityLog.action == ActivityAction.PROJECT_APPROVED).count() == 1


def test_delete_archives(client, db, make_user):
    captain = make_user(Role.BARANGAY_CAPTAIN)
    project = Project(name="Old program", created_by_id=captain.id)
    db.add(project)
    db.commit()

    resp = client.delete(f"/api/projects/{project.id}", headers=auth_headers(captain))

    assert resp.status_code == 200
    assert resp.json()["is_archived"] is True
    listed = client.get("/api/projects", headers=auth_headers(captain)).json()
    assert listed["total"] == 0


def test_duplicate_member_is_conflict(client, db, make_user):
    councilor = make_user(Role.COUNCILOR)
    staff = make_user(Role.STAFF)
    project = Project(name="Clinic", created_by_id=councilor.id)
    db.add(project)
    db.commit()

    url = f"/api/projects/{project.id}/members"
    assert client.post(url, json={"user_id": staff.id}, headers=auth_headers(councilor)).status_code == 201
    assert client.post(url, json={"user_id": staff.id}, headers=auth_headers(councilor)).status_code == 409
