import json

from conftest import auth_headers
from techblog.models.audit_log import AuditLog
from techblog.models.user import User


def _permission_id(client, headers, slug):
    resource = slug.split(".")[0]
    response = client.get("/api/admin/permissions/", params={"resource": resource}, headers=headers)
    return next(p["id"] for p in response.json() if p["slug"] == slug)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-Id" in response.headers


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-Id": "req-42"})

    assert response.headers["X-Request-Id"] == "req-42"


def test_missing_token_is_401(client, roles):
    response = client.get("/api/admin/roles/")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_401(client, roles):
    response = client.get("/api/admin/roles/", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_me_provisions_user_without_role(client, db):
    response = client.get("/api/auth/me", headers=auth_headers("new@techblog.vn", "Nguyễn Văn A"))

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "new@techblog.vn"
    assert body["user"]["name"] == "Nguyễn Văn A"
    assert body["user"]["role_id"] is None
    assert body["permissions"] == []
    assert body["is_admin"] is False
    assert db.query(User).filter(User.email == "new@techblog.vn").count() == 1


def test_me_for_admin(client, roles, make_user):
    make_user("admin@techblog.vn", roles["admin"])

    body = client.get("/api/auth/me", headers=auth_headers("admin@techblog.vn")).json()

    assert body["is_admin"] is True
    assert body["user"]["role"]["slug"] == "admin"
    assert "users.manage_roles" in body["permissions"]
    assert "roles.read" not in body["permissions"]


def test_signed_in_user_without_role_is_403(client, roles, make_user):
    make_user("reader@techblog.vn")

    response = client.get("/api/admin/permissions/", headers=auth_headers("reader@techblog.vn"))

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: User has no assigned role"}


def test_missing_permission_is_403(client, roles, make_user):
    make_user("author@techblog.vn", roles["author"])

    response = client.get("/api/admin/roles/", headers=auth_headers("author@techblog.vn"))

    assert response.status_code == 403
    assert response.json() == {"error": 'Forbidden: Missing permission "roles.read"'}


def test_permission_crud(client, db, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])
    headers = auth_headers("root@techblog.vn")

    created = client.post(
        "/api/admin/permissions/",
        json={"name": "Pin Posts", "resource": "posts", "action": "pin"},
        headers=headers,
    )
    assert created.status_code == 201
    permission = created.json()
    assert permission["slug"] == "posts.pin"

    duplicate = client.post(
        "/api/admin/permissions/",
        json={"name": "Pin again", "resource": "posts", "action": "pin"},
        headers=headers,
    )
    assert duplicate.status_code == 400

    fetched = client.get(f"/api/admin/permissions/{permission['id']}", headers=headers)
    assert fetched.json()["name"] == "Pin Posts"

    updated = client.put(
        f"/api/admin/permissions/{permission['id']}",
        json={"action": "sticky"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["slug"] == "posts.sticky"

    deleted = client.delete(f"/api/admin/permissions/{permission['id']}", headers=headers)
    assert deleted.json() == {"message": "Permission deleted successfully"}

    missing = client.get(f"/api/admin/permissions/{permission['id']}", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Permission not found"}

    actions = [log.action for log in db.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["permission.created", "permission.updated", "permission.deleted"]


def test_permission_slug_parts_are_validated(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])

    response = client.post(
        "/api/admin/permissions/",
        json={"name": "Bad", "resource": "Posts", "action": "pin"},
        headers=auth_headers("root@techblog.vn"),
    )

    assert response.status_code == 422


def test_role_crud(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])
    headers = auth_headers("root@techblog.vn")
    read_id = _permission_id(client, headers, "posts.read")

    created = client.post(
        "/api/admin/roles/",
        json={"name": "Content Reviewer", "permission_ids": [read_id]},
        headers=headers,
    )
    assert created.status_code == 201
    role = created.json()
    assert role["slug"] == "content-reviewer"
    assert role["permissions"] == ["posts.read"]
    assert role["is_system"] is False

    listed = client.get("/api/admin/roles/", headers=headers).json()
    assert {r["slug"] for r in listed} >= {"super-admin", "content-reviewer"}

    updated = client.put(
        f"/api/admin/roles/{role['id']}",
        json={"description": "Reviews drafts", "permission_ids": []},
        headers=headers,
    )
    assert updated.json()["description"] == "Reviews drafts"
    assert updated.json()["permissions"] == []

    duplicate = client.post("/api/admin/roles/", json={"name": "Content Reviewer"}, headers=headers)
    assert duplicate.status_code == 400

    deleted = client.delete(f"/api/admin/roles/{role['id']}", headers=headers)
    assert deleted.json() == {"message": "Role deleted successfully"}
    assert client.get(f"/api/admin/roles/{role['id']}", headers=headers).status_code == 404


def test_system_role_cannot_be_deleted(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])

    response = client.delete(
        f"/api/admin/roles/{roles['admin'].id}", headers=auth_headers("root@techblog.vn"),
    )

    assert response.status_code == 403
    assert "cannot be deleted" in response.json()["error"]


def test_role_permissions_replace_and_upsert(client, db, roles, make_user):
    make_user("admin@techblog.vn", roles["admin"])
    root = make_user("root@techblog.vn", roles["super-admin"])
    headers = auth_headers("root@techblog.vn")
    read_id = _permission_id(client, headers, "posts.read")
    publish_id = _permission_id(client, headers, "posts.publish")
    author_id = roles["author"].id

    replaced = client.put(
        f"/api/admin/roles/{author_id}/permissions",
        json={"permissions": [read_id, publish_id]},
        headers=auth_headers("admin@techblog.vn"),
    )
    assert replaced.status_code == 200
    assert sorted(row["permission"]["slug"] for row in replaced.json()) == ["posts.publish", "posts.read"]

    upserted = client.put(
        f"/api/admin/roles/{author_id}/permissions",
        json={"permissions": [{"permission_id": publish_id, "granted": False}]},
        headers=headers,
    )
    rows = {row["permission"]["slug"]: row["granted"] for row in upserted.json()}
    assert rows == {"posts.publish": False, "posts.read": True}

    listed = client.get(f"/api/admin/roles/{author_id}/permissions", headers=headers).json()
    assert len(listed) == 2
    assert client.get(f"/api/admin/roles/{author_id}", headers=headers).json()["permissions"] == ["posts.read"]

    logs = db.query(AuditLog).filter(AuditLog.resource_id == author_id).order_by(AuditLog.id).all()
    assert [log.action for log in logs] == ["role.permissions_set", "role.permissions_updated"]
    assert logs[1].actor_id == root.id
    assert json.loads(logs[1].new_value_json) == ["posts.read"]


def test_role_permissions_unknown_id_is_404(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])

    response = client.put(
        f"/api/admin/roles/{roles['author'].id}/permissions",
        json={"permissions": ["missing"]},
        headers=auth_headers("root@techblog.vn"),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Permission not found"}


def test_role_permissions_need_admin_role(client, roles, make_user):
    make_user("editor@techblog.vn", roles["editor"])

    response = client.get(
        f"/api/admin/roles/{roles['author'].id}/permissions",
        headers=auth_headers("editor@techblog.vn"),
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: Only Super Admin and Admin can access this resource"}


def test_assign_user_role(client, roles, make_user):
    make_user("admin@techblog.vn", roles["admin"])
    reader = make_user("reader@techblog.vn")
    headers = auth_headers("admin@techblog.vn")

    assigned = client.put(
        f"/api/admin/users/{reader.id}/role", json={"role_id": roles["editor"].id}, headers=headers,
    )
    assert assigned.status_code == 200
    assert assigned.json()["role"]["slug"] == "editor"

    me = client.get("/api/auth/me", headers=auth_headers("reader@techblog.vn")).json()
    assert "posts.publish" in me["permissions"]

    detached = client.put(f"/api/admin/users/{reader.id}/role", json={"role_id": None}, headers=headers)
    assert detached.json()["role_id"] is None

    unknown = client.put(
        f"/api/admin/users/{reader.id}/role", json={"role_id": "missing"}, headers=headers,
    )
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Role not found"}


def test_assign_user_role_requires_manage_roles(client, roles, make_user):
    make_user("editor@techblog.vn", roles["editor"])
    reader = make_user("reader@techblog.vn")

    response = client.put(
        f"/api/admin/users/{reader.id}/role",
        json={"role_id": roles["editor"].id},
        headers=auth_headers("editor@techblog.vn"),
    )

    assert response.status_code == 403
    assert response.json() == {
        "error": "Forbidden: Missing any of permissions [users.manage_roles, roles.update]",
    }


def test_list_users(client, roles, make_user):
    make_user("admin@techblog.vn", roles["admin"])
    make_user("reader@techblog.vn")
    headers = auth_headers("admin@techblog.vn")

    body = client.get("/api/admin/users/", headers=headers).json()
    assert body["total"] == 2

    filtered = client.get("/api/admin/users/", params={"email": "reader@techblog.vn"}, headers=headers).json()
    assert [u["email"] for u in filtered["users"]] == ["reader@techblog.vn"]


def test_stats_and_audit(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])
    make_user("reader@techblog.vn")
    headers = auth_headers("root@techblog.vn")
    client.post("/api/admin/roles/", json={"name": "Reviewer"}, headers=headers)

    stats = client.get("/api/admin/stats", headers=headers).json()
    assert stats["total_users"] == 2
    assert stats["users_without_role"] == 1
    assert stats["total_roles"] == 6
    assert stats["active_roles"] == 6

    audit = client.get("/api/admin/audit", params={"resource_type": "role"}, headers=headers).json()
    assert audit["total"] == 1
    assert audit["logs"][0]["action"] == "role.created"
    assert audit["logs"][0]["actor_email"] == "root@techblog.vn"

    by_prefix = client.get("/api/admin/audit", params={"action": "role."}, headers=headers).json()
    assert by_prefix["total"] == 1
    role_id = by_prefix["logs"][0]["resource_id"]
    by_resource = client.get("/api/admin/audit", params={"resource_id": role_id}, headers=headers).json()
    assert [log["action"] for log in by_resource["logs"]] == ["role.created"]


def test_stats_need_admin_role(client, roles, make_user):
    make_user("author@techblog.vn", roles["author"])

    response = client.get("/api/admin/stats", headers=auth_headers("author@techblog.vn"))

    assert response.status_code == 403


def test_permission_update_ignores_null_for_required_fields(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])
    headers = auth_headers("root@techblog.vn")
    permission_id = _permission_id(client, headers, "tags.read")

    response = client.put(
        f"/api/admin/permissions/{permission_id}",
        json={"resource": None, "name": None, "description": None},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "tags.read"
    assert body["name"] == "Read Tags"
    assert body["description"] is None


def test_role_update_can_clear_description(client, roles, make_user):
    make_user("root@techblog.vn", roles["super-admin"])

    response = client.put(
        f"/api/admin/roles/{roles['editor'].id}",
        json={"description": None},
        headers=auth_headers("root@techblog.vn"),
    )

    assert response.status_code == 200
    assert response.json()["description"] is None
    assert response.json()["name"] == "Editor"
