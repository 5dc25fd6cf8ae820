from taskflow.models import Comment, Notification, Project, RefreshToken, Task, User, UserRole

from conftest import PASSWORD, auth_headers


def _login(client, user, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": user.email, "password": password})


def test_password_reset_revokes_every_session(client, db, admin, worker):
    first = _login(client, worker).json()
    _login(client, worker)
    assert db.query(RefreshToken).filter(RefreshToken.user_id == worker.id).count() == 2

    resp = client.post(
        f"/api/v1/users/{worker.id}/reset-password",
        json={"new_password": "brand-new-pw"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200

    assert db.query(RefreshToken).filter(RefreshToken.user_id == worker.id).count() == 0
    resp = client.post("/api/v1/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert resp.status_code == 401

    assert _login(client, worker).status_code == 401
    assert _login(client, worker, "brand-new-pw").status_code == 200


def test_password_reset_rules(client, admin, manager, worker):
    url = f"/api/v1/users/{worker.id}/reset-password"

    resp = client.post(url, json={"new_password": "longenough"}, headers=auth_headers(manager))
    assert resp.status_code == 403
    assert resp.json()["error"] == "admin_required"

    resp = client.post(url, json={"new_password": "abc"}, headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["error"] == "password_too_short"

    resp = client.post("/api/v1/users/999/reset-password", json={"new_password": "longenough"}, headers=auth_headers(admin))
    assert resp.status_code == 404


def test_role_changes(client, admin, supervisor, worker):
    url = f"/api/v1/users/{worker.id}/role"

    resp = client.put(url, json={"role": "manager"}, headers=auth_headers(supervisor))
    assert resp.status_code == 403

    resp = client.put(url, json={"role": "boss"}, headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_role"

    resp = client.put(url, json={"role": "manager"}, headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["role"] == "manager"

    resp = client.put(f"/api/v1/users/{admin.id}/role", json={"role": "worker"}, headers=auth_headers(admin))
    assert resp.status_code == 403
    assert resp.json()["error"] == "cannot_demote_self"


def test_admin_cannot_delete_self(client, admin):
    resp = client.delete(f"/api/v1/users/{admin.id}", headers=auth_headers(admin))
    assert resp.status_code == 403
    assert resp.json()["error"] == "cannot_delete_self"


def test_deleting_a_user_removes_their_work(client, db, admin, make_user):
    manager = make_user(UserRole.MANAGER, name="Leaving Manager")
    worker = make_user()
    headers = auth_headers(manager)

    project = client.post("/api/v1/projects/", json={"name": "Plant C", "members": [worker.id]}, headers=headers).json()
    task = client.post(
        "/api/v1/tasks/",
        json={"title": "Paint rails", "project_id": project["id"], "assignee_ids": [worker.id]},
        headers=headers,
    ).json()
    loose = client.post("/api/v1/tasks/", json={"title": "Loose", "assignee_ids": [worker.id]}, headers=headers).json()
    own = client.post("/api/v1/tasks/", json={"title": "Kept", "assignee_ids": [manager.id]}, headers=auth_headers(admin)).json()
    comment = client.post(
        f"/api/v1/tasks/{own['id']}/comments/", json={"content": "Will do"}, headers=headers
    ).json()
    client.post(
        f"/api/v1/tasks/{own['id']}/comments/",
        json={"content": "Great", "parent_id": comment["id"]},
        headers=auth_headers(admin),
    )
    _login(client, manager)
    manager_id = manager.id

    resp = client.delete(f"/api/v1/users/{manager_id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["message"] == "User Leaving Manager has been deleted successfully"

    db.expire_all()
    assert db.query(User).filter(User.id == manager_id).first() is None
    assert db.query(Project).count() == 0
    assert {t.id for t in db.query(Task).all()} == {own["id"]}
    assert db.query(Task).filter(Task.id.in_([task["id"], loose["id"]])).count() == 0
    assert db.query(Comment).count() == 0
    assert db.query(RefreshToken).filter(RefreshToken.user_id == manager_id).count() == 0
    assert db.query(Notification).filter(Notification.user_id == manager_id).count() == 0

    kept = db.query(Task).filter(Task.id == own["id"]).one()
    assert kept.assignee_ids == []


def test_list_users_sorted_by_name(client, make_user):
    make_user(name="Zed")
    make_user(name="Amy")
    viewer = make_user(name="Mo")
    names = [u["name"] for u in client.get("/api/v1/users/", headers=auth_headers(viewer)).json()]
    assert names == ["Amy", "Mo", "Zed"]


def test_events(client, manager, worker):
    resp = client.post(
        "/api/v1/events/",
        json={"title": "Safety drill", "event_date": "2099-01-15T09:00:00"},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 201
    event = resp.json()

    upcoming = client.get("/api/v1/events/", headers=auth_headers(worker)).json()
    assert [e["id"] for e in upcoming] == [event["id"]]

    ranged = client.get(
        "/api/v1/events/",
        params={"start_date": "2000-01-01T00:00:00", "end_date": "2000-12-31T00:00:00"},
        headers=auth_headers(worker),
    ).json()
    assert ranged == []

    resp = client.delete(f"/api/v1/events/{event['id']}", headers=auth_headers(worker))
    assert resp.status_code == 403
    assert resp.json()["error"] == "event_delete_forbidden"
    assert client.delete(f"/api/v1/events/{event['id']}", headers=auth_headers(manager)).status_code == 200


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "connected"


def test_cli_bootstraps_an_admin(db):
    from taskflow import cli

    assert cli.main(["create-user", "Boss@Company.com", "Boss", "s3cret-pw", "--role", "admin"]) == 0
    assert cli.main(["create-user", "boss@company.com", "Boss", "s3cret-pw"]) == 1
    assert cli.main(["set-role", "boss@company.com", "supervisor"]) == 0
    assert cli.main(["set-role", "ghost@company.com", "worker"]) == 1

    db.expire_all()
    boss = db.query(User).filter(User.email == "boss@company.com").one()
    assert boss.role == UserRole.SUPERVISOR
