import warnings

from sqlalchemy.exc import SAWarning

from taskflow.models import ProjectMember, Task, UserRole

from conftest import auth_headers


def _project(client, owner, **payload):
    payload.setdefault("name", "Plant A")
    resp = client.post("/api/v1/projects/", json=payload, headers=auth_headers(owner))
    assert resp.status_code == 201
    return resp.json()


def test_owner_is_never_stored_as_member(client, manager, worker):
    project = _project(client, manager, members=[manager.id, worker.id, worker.id])
    assert project["member_ids"] == [worker.id]


def test_unknown_member_is_rejected(client, manager):
    resp = client.post(
        "/api/v1/projects/",
        json={"name": "Plant A", "members": [777]},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "unknown_member"


def test_member_add_and_remove(client, db, manager, worker):
    project = _project(client, manager)
    url = f"/api/v1/projects/{project['id']}/members"
    headers = auth_headers(manager)

    resp = client.post(url, json={"user_id": worker.id}, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["member_ids"] == [worker.id]

    resp = client.post(url, json={"user_id": worker.id}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_member"
    assert db.query(ProjectMember).filter(ProjectMember.user_id == worker.id).count() == 1

    resp = client.post(url, json={"user_id": manager.id}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_owner"

    resp = client.post(url, json={"user_id": 31337}, headers=headers)
    assert resp.status_code == 404

    resp = client.delete(f"{url}/{manager.id}", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "cannot_remove_owner"

    resp = client.delete(f"{url}/{worker.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["member_ids"] == []

    resp = client.delete(f"{url}/{worker.id}", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "member_not_found"


def test_only_owner_or_elevated_manage_members(client, manager, worker, supervisor, make_user):
    project = _project(client, manager, members=[worker.id])
    url = f"/api/v1/projects/{project['id']}/members"
    newcomer = make_user()

    resp = client.post(url, json={"user_id": newcomer.id}, headers=auth_headers(worker))
    assert resp.status_code == 403
    assert resp.json()["error"] == "project_members_forbidden"

    other_manager = make_user(UserRole.MANAGER)
    assert client.post(url, json={"user_id": newcomer.id}, headers=auth_headers(other_manager)).status_code == 403

    assert client.post(url, json={"user_id": newcomer.id}, headers=auth_headers(supervisor)).status_code == 201


def test_supervisor_updates_but_only_owner_or_admin_deletes(client, manager, supervisor, admin):
    project = _project(client, manager)
    url = f"/api/v1/projects/{project['id']}"

    resp = client.put(url, json={"name": "Plant A (north)"}, headers=auth_headers(supervisor))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Plant A (north)"

    resp = client.delete(url, headers=auth_headers(supervisor))
    assert resp.status_code == 403
    assert resp.json()["error"] == "project_delete_forbidden"

    assert client.delete(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url, headers=auth_headers(admin)).status_code == 404


def test_project_listing_by_role(client, make_user, supervisor):
    owner = make_user(UserRole.MANAGER)
    other = make_user(UserRole.MANAGER)
    member = make_user()
    outsider = make_user()

    p1 = _project(client, owner, name="One", members=[member.id])
    _project(client, other, name="Two")

    assert [p["id"] for p in client.get("/api/v1/projects/", headers=auth_headers(owner)).json()] == [p1["id"]]
    assert [p["id"] for p in client.get("/api/v1/projects/", headers=auth_headers(member)).json()] == [p1["id"]]
    assert client.get("/api/v1/projects/", headers=auth_headers(outsider)).json() == []
    assert len(client.get("/api/v1/projects/", headers=auth_headers(supervisor)).json()) == 2

    resp = client.get(f"/api/v1/projects/{p1['id']}", headers=auth_headers(outsider))
    assert resp.status_code == 403
    assert resp.json()["error"] == "project_access_denied"


def test_member_can_create_tasks_in_project(client, manager, worker):
    project = _project(client, manager, members=[worker.id])
    resp = client.post(
        "/api/v1/tasks/",
        json={"title": "Check valves", "project_id": project["id"], "assignee_ids": [worker.id]},
        headers=auth_headers(worker),
    )
    assert resp.status_code == 201


def test_deleting_project_deletes_its_tasks(client, db, manager, worker):
    project = _project(client, manager)
    task = client.post(
        "/api/v1/tasks/",
        json={"title": "Check valves", "project_id": project["id"], "assignee_ids": [worker.id]},
        headers=auth_headers(manager),
    ).json()
    client.post(
        f"/api/v1/tasks/{task['id']}/comments/",
        json={"content": "On it"},
        headers=auth_headers(worker),
    )

    assert client.delete(f"/api/v1/projects/{project['id']}", headers=auth_headers(manager)).status_code == 200
    db.expire_all()
    assert db.query(Task).count() == 0
    assert client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers(manager)).status_code == 404


def test_update_members_replaces_set(client, manager, make_user):
    a, b = make_user(), make_user()
    project = _project(client, manager, members=[a.id])

    resp = client.put(
        f"/api/v1/projects/{project['id']}",
        json={"members": [b.id]},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 200
    assert resp.json()["member_ids"] == [b.id]

    resp = client.put(
        f"/api/v1/projects/{project['id']}",
        json={"members": None},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_members"


def test_member_replace_does_not_leave_stale_rows_in_session(db, manager, make_user):
    from taskflow.schemas.project import ProjectCreate, ProjectUpdate
    from taskflow.services.project_service import ProjectService

    a, b = make_user(), make_user()
    service = ProjectService(db)
    project = service.create_project(ProjectCreate(name="Plant D", members=[a.id]), manager)
    assert project.member_ids == [a.id]

    with warnings.catch_warnings():
        warnings.simplefilter("error", SAWarning)
        project = service.update_project(project.id, ProjectUpdate(members=[b.id]), manager)
        project = service.remove_member(project.id, b.id, manager)
        project = service.add_member(project.id, a.id, manager)

    assert project.member_ids == [a.id]
