import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.models.enums import Role
from tasksetu.models.user import User
from tasksetu.rbac.deps import require_perm
from tasksetu.rbac.perms import (
    allowed_routes,
    can_access_route,
    can_grant_role,
    has_permission,
    has_role_level,
    normalize_role,
    redirect_path,
    role_level,
)

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200
    token = r.json().get("token")
    assert token, f"no token returned: {r.json()}"

    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def join_org(db: Session, email: str, org_id: uuid.UUID, role: Role) -> None:
    user = db.scalar(select(User).where(User.email == email.lower()))
    assert user is not None

    user.org_id = org_id
    user.role = role
    db.commit()

def test_role_levels_are_ordered():
    assert role_level(Role.individual) == role_level(Role.member) == 1
    assert role_level(Role.employee) < role_level(Role.manager) < role_level(Role.admin)
    assert role_level(Role.admin) == role_level(Role.org_admin)
    assert role_level(Role.super_admin) == 5
    assert role_level(None) == 0
    assert role_level("nonsense") == 0

def test_legacy_superadmin_spelling_is_accepted():
    assert normalize_role("superadmin") == Role.super_admin
    assert has_permission("superadmin", "system_admin")

def test_permission_matrix():
    assert has_permission(Role.employee, "create_task")
    assert not has_permission(Role.employee, "assign_task")
    assert has_permission(Role.manager, "assign_task")
    assert not has_permission(Role.manager, "invite_users")
    assert has_permission(Role.org_admin, "invite_users")
    assert not has_permission(Role.org_admin, "system_admin")
    assert has_permission(Role.super_admin, "system_admin")
    assert not has_permission(None, "create_task")

def test_role_level_comparison():
    assert has_role_level(Role.org_admin, Role.admin)
    assert has_role_level(Role.manager, Role.employee)
    assert not has_role_level(Role.employee, Role.manager)

def test_route_access_uses_longest_prefix():
    assert can_access_route(Role.member, "/dashboard")
    assert can_access_route(Role.member, "/some/unregistered/page")
    assert not can_access_route(Role.employee, "/admin/user-management")
    assert can_access_route(Role.admin, "/admin/user-management/123")
    # /admin/users/<id> inherits view_users, not manage_users
    assert can_access_route(Role.employee, "/admin/users/123")
    assert not can_access_route(Role.org_admin, "/super-admin/companies")
    assert can_access_route(Role.super_admin, "/super-admin/companies/9")

def test_allowed_routes_grow_with_role():
    member = set(allowed_routes(Role.member))
    admin = set(allowed_routes(Role.admin))
    assert "/dashboard" in member
    assert "/admin/invite-users" not in member
    assert member < admin

def test_redirect_paths():
    assert redirect_path(Role.employee) == "/dashboard"
    assert redirect_path(Role.org_admin) == "/admin-dashboard"
    assert redirect_path(Role.super_admin) == "/super-admin"

def test_grantable_roles():
    assert can_grant_role(Role.org_admin, Role.admin)
    assert not can_grant_role(Role.org_admin, Role.org_admin)
    assert can_grant_role(Role.admin, Role.manager)
    assert not can_grant_role(Role.admin, Role.admin)
    assert can_grant_role(Role.manager, Role.employee)
    assert not can_grant_role(Role.manager, Role.manager)

def test_require_perm_rejects_unknown_permission():
    with pytest.raises(RuntimeError):
        require_perm("fly_to_the_moon")

def test_rbac_endpoints_follow_role(client, db_session: Session):
    owner = login(client, "rbac-owner@example.com")
    r = client.post("/api/organizations", json={"name": "rbac-org"}, headers=auth(owner))
    assert r.status_code == 201, r.text
    org_id = uuid.UUID(r.json()["id"])

    member = login(client, "rbac-member@example.com")
    join_org(db_session, "rbac-member@example.com", org_id, Role.member)

    r = client.get("/api/rbac/me", headers=auth(owner))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role"] == "org_admin"
    assert body["level"] == 4
    assert body["can_assign_to_others"] is True
    assert body["can_manage_visibility"] is True
    assert body["redirect_path"] == "/admin-dashboard"

    r = client.get("/api/rbac/me", headers=auth(member))
    body = r.json()
    assert body["role"] == "member"
    assert body["can_assign_to_others"] is False
    assert "/admin/invite-users" not in body["allowed_routes"]

    r = client.get("/api/rbac/check-route", params={"route": "/admin/settings"}, headers=auth(member))
    assert r.status_code == 200, r.text
    assert r.json() == {"route": "/admin/settings", "allowed": False}

    r = client.get("/api/rbac/check-route", params={"route": "/admin/settings"}, headers=auth(owner))
    assert r.json()["allowed"] is True

    r = client.get("/api/rbac/roles", headers=auth(member))
    assert r.status_code == 200, r.text
    roles = {x["role"]: x for x in r.json()}
    assert roles["super_admin"]["level"] == 5
    assert "system_admin" in roles["super_admin"]["permissions"]

def test_member_cannot_reach_admin_endpoints(client, db_session: Session):
    owner = login(client, "sweep-owner@example.com")
    r = client.post("/api/organizations", json={"name": "sweep-org"}, headers=auth(owner))
    assert r.status_code == 201, r.text
    org_id = uuid.UUID(r.json()["id"])

    member = login(client, "sweep-member@example.com")
    join_org(db_session, "sweep-member@example.com", org_id, Role.member)

    checks = [
        ("post", "/api/organization/users/invite", {"users": [{"email": "x@example.com"}]}),
        ("patch", "/api/organizations/current", {"name": "hacked"}),
        ("get", "/api/organizations", None),
        ("get", "/api/organization/users", None),
        ("post", "/api/forms", {"title": "f"}),
        ("post", "/api/licenses/upgrade", {"plan": "PLAN"}),
        ("post", "/api/recurring-tasks/generate", None),
    ]
    for method, path, body in checks:
        kwargs = {"headers": auth(member)}
        if body is not None:
            kwargs["json"] = body
        r = getattr(client, method)(path, **kwargs)
        assert r.status_code == 403, f"{method} {path}: {r.status_code} {r.text}"
