import uuid

from sqlalchemy.orm import Session

from tasksetu.models.enums import LicenseCode
from tasksetu.models.org import Organization

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def create_org(client, jwt: str, name: str) -> str:
    r = client.post("/api/organizations", json={"name": name}, headers=auth(jwt))
    assert r.status_code == 201, r.text
    return r.json()["id"]

def invite(client, jwt: str, *users: dict):
    return client.post("/api/organization/users/invite", json={"users": list(users)}, headers=auth(jwt))

def test_create_org_starts_trial_and_promotes_founder(client):
    owner = login(client, "founder@example.com")

    r = client.post("/api/organizations", json={"name": "Founders Inc"}, headers=auth(owner))
    assert r.status_code == 201, r.text
    org = r.json()
    assert org["slug"] == "founders-inc"
    assert org["plan"] == "EXPLORE"
    assert org["subscription_status"] == "trialing"
    assert org["trial_ends_at"] is not None

    me = client.get("/api/auth/me", headers=auth(owner)).json()
    assert me["role"] == "org_admin"
    assert me["org_id"] == org["id"]

    # one organization per user
    r = client.post("/api/organizations", json={"name": "Second"}, headers=auth(owner))
    assert r.status_code == 409, r.text

def test_duplicate_slug_is_conflict(client):
    a = login(client, "slug-a@example.com")
    b = login(client, "slug-b@example.com")

    r = client.post("/api/organizations", json={"name": "A", "slug": "shared"}, headers=auth(a))
    assert r.status_code == 201, r.text
    r = client.post("/api/organizations", json={"name": "B", "slug": "shared"}, headers=auth(b))
    assert r.status_code == 409, r.text

    # generated slugs are made unique instead
    r = client.post("/api/organizations", json={"name": "Shared"}, headers=auth(b))
    assert r.status_code == 201, r.text
    assert r.json()["slug"].startswith("shared-")

def test_update_current_org(client):
    owner = login(client, "orgedit@example.com")
    create_org(client, owner, "Edit Me")

    r = client.patch("/api/organizations/current", json={"industry": "logistics"}, headers=auth(owner))
    assert r.status_code == 200, r.text
    assert r.json()["industry"] == "logistics"
    assert r.json()["name"] == "Edit Me"

def test_individual_has_no_current_org(client):
    solo = login(client, "no-org@example.com")
    r = client.get("/api/organizations/current", headers=auth(solo))
    assert r.status_code == 403, r.text

def test_invite_batch_reports_each_address(client):
    owner = login(client, "inv-owner@example.com")
    create_org(client, owner, "Invite Co")

    r = invite(
        client,
        owner,
        {"email": "new-emp@example.com", "role": "employee", "first_name": "Nia"},
        {"email": "inv-owner@example.com", "role": "member"},
        {"email": "would-be-owner@example.com", "role": "org_admin"},
        {"email": "NEW-EMP@example.com", "role": "employee"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert (body["invited"], body["existing"], body["failed"]) == (1, 1, 1)

    by_email = {x["email"]: x for x in body["results"]}
    assert by_email["new-emp@example.com"]["status"] == "invited"
    assert by_email["inv-owner@example.com"]["status"] == "existing"
    assert by_email["would-be-owner@example.com"]["reason"] == "role_not_allowed"

    r = client.get("/api/organization/users", params={"status": "invited"}, headers=auth(owner))
    assert r.status_code == 200, r.text
    assert [u["email"] for u in r.json()] == ["new-emp@example.com"]
    assert r.json()[0]["first_name"] == "Nia"

    # first sign-in activates the invited account
    emp = login(client, "new-emp@example.com")
    me = client.get("/api/auth/me", headers=auth(emp)).json()
    assert me["status"] == "active"
    assert me["role"] == "employee"

def test_individual_user_can_be_invited(client):
    owner = login(client, "adopt-owner@example.com")
    create_org(client, owner, "Adopt Co")
    solo = login(client, "adoptee@example.com")

    r = invite(client, owner, {"email": "adoptee@example.com", "role": "manager"})
    assert r.status_code == 200, r.text
    assert r.json()["invited"] == 1

    me = client.get("/api/auth/me", headers=auth(solo)).json()
    assert me["role"] == "manager"
    assert me["status"] == "active"

def test_employee_cannot_invite(client):
    owner = login(client, "noinv-owner@example.com")
    create_org(client, owner, "NoInvite Co")
    r = invite(client, owner, {"email": "noinv-emp@example.com", "role": "employee"})
    assert r.status_code == 200, r.text

    emp = login(client, "noinv-emp@example.com")
    r = invite(client, emp, {"email": "friend@example.com", "role": "member"})
    assert r.status_code == 403, r.text

def test_seat_limit_blocks_invites(client, db_session: Session):
    owner = login(client, "seats-owner@example.com")
    org_id = create_org(client, owner, "Seats Co")

    # explore allows 10 seats; the owner takes one
    users = [{"email": f"seat{i}@example.com", "role": "member"} for i in range(9)]
    r = invite(client, owner, *users)
    assert r.status_code == 200, r.text
    assert r.json()["invited"] == 9

    r = invite(client, owner, {"email": "seat-overflow@example.com", "role": "member"})
    assert r.status_code == 402, r.text
    assert r.json()["detail"] == "seat_limit_reached"

    org = db_session.get(Organization, uuid.UUID(org_id))
    org.plan = LicenseCode.plan
    db_session.commit()

    r = invite(client, owner, {"email": "seat-overflow@example.com", "role": "member"})
    assert r.status_code == 200, r.text

def test_role_changes_and_removal(client):
    owner = login(client, "roles-owner@example.com")
    create_org(client, owner, "Roles Co")
    r = invite(
        client,
        owner,
        {"email": "roles-admin@example.com", "role": "admin"},
        {"email": "roles-emp@example.com", "role": "employee"},
    )
    assert r.status_code == 200, r.text
    ids = {x["email"]: x["user_id"] for x in r.json()["results"]}
    owner_id = client.get("/api/auth/me", headers=auth(owner)).json()["id"]

    r = client.patch(f"/api/organization/users/{owner_id}", json={"role": "member"}, headers=auth(owner))
    assert r.status_code == 400, r.text

    r = client.patch(
        f"/api/organization/users/{ids['roles-emp@example.com']}",
        json={"role": "manager", "department": "ops"},
        headers=auth(owner),
    )
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "manager"
    assert r.json()["department"] == "ops"

    # an admin cannot promote to admin
    admin = login(client, "roles-admin@example.com")
    r = client.patch(
        f"/api/organization/users/{ids['roles-emp@example.com']}",
        json={"role": "admin"},
        headers=auth(admin),
    )
    assert r.status_code == 403, r.text

    r = client.post(f"/api/organization/users/{owner_id}/deactivate", headers=auth(owner))
    assert r.status_code == 400, r.text

    r = client.delete(f"/api/organization/users/{ids['roles-emp@example.com']}", headers=auth(owner))
    assert r.status_code == 200, r.text
    assert r.json()["removed"] is True

    emp = login(client, "roles-emp@example.com")
    me = client.get("/api/auth/me", headers=auth(emp)).json()
    assert me["org_id"] is None
    assert me["role"] == "individual"

def test_reactivate_restores_access(client):
    owner = login(client, "react-owner@example.com")
    create_org(client, owner, "React Co")
    r = invite(client, owner, {"email": "react-emp@example.com", "role": "employee"})
    emp_id = r.json()["results"][0]["user_id"]

    r = client.post(f"/api/organization/users/{emp_id}/deactivate", headers=auth(owner))
    assert r.status_code == 200, r.text
    assert r.json()["is_active"] is False

    r = client.post(f"/api/organization/users/{emp_id}/reactivate", headers=auth(owner))
    assert r.status_code == 200, r.text
    assert r.json()["is_active"] is True
    # never signed in, so still pending
    assert r.json()["status"] == "invited"

    emp = login(client, "react-emp@example.com")
    assert client.get("/api/auth/me", headers=auth(emp)).status_code == 200
