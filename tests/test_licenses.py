import uuid
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from tasksetu.models.enums import LicenseCode, Role, SubscriptionStatus
from tasksetu.models.org import Organization
from tasksetu.models.user import User
from tasksetu.time_utils import as_utc, now_utc

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def org_admin(client, prefix: str) -> tuple[str, str]:
    jwt = login(client, f"{prefix}@example.com")
    r = client.post("/api/organizations", json={"name": f"{prefix} org"}, headers=auth(jwt))
    assert r.status_code == 201, r.text
    return jwt, r.json()["id"]

def test_plan_catalog(client):
    r = client.get("/api/licenses/plans")
    assert r.status_code == 200, r.text
    plans = {p["code"]: p for p in r.json()}
    assert list(plans) == ["EXPLORE", "PLAN", "EXECUTE", "OPTIMIZE"]
    assert plans["EXPLORE"]["max_users"] == 10
    assert plans["EXPLORE"]["trial_days"] == 15
    assert plans["OPTIMIZE"]["max_users"] is None

    explore = {f["code"]: f for f in plans["EXPLORE"]["features"]}
    assert explore["TASK_BASIC"] == {
        "code": "TASK_BASIC",
        "name": "Basic task management",
        "enabled": True,
        "limit": 20,
        "period": "MONTH",
    }
    assert explore["TASK_MSTONE"]["enabled"] is False
    assert explore["FORM_CREATE"]["period"] == "LIFETIME"

    r = client.get("/api/licenses/plans/plan")
    assert r.status_code == 200, r.text
    assert r.json()["price_monthly"] == 19

    r = client.get("/api/licenses/plans/ENTERPRISE")
    assert r.status_code == 404, r.text

def test_subscription_on_trial(client):
    jwt, _ = org_admin(client, "lic-trial")

    r = client.get("/api/licenses/subscription", headers=auth(jwt))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["plan"] == "EXPLORE"
    assert body["subscription_status"] == "trialing"
    assert body["trial_days_left"] in (14, 15)
    assert body["writable"] is True
    assert body["seats_used"] == 1
    assert body["max_users"] == 10

    solo = login(client, "lic-solo@example.com")
    r = client.get("/api/licenses/subscription", headers=auth(solo))
    assert r.status_code == 403, r.text

def test_feature_check(client):
    jwt, _ = org_admin(client, "lic-feature")
    client.post("/api/tasks", json={"title": "one"}, headers=auth(jwt))
    client.post("/api/tasks", json={"title": "two"}, headers=auth(jwt))

    r = client.get("/api/licenses/feature/task_basic/check", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json() == {
        "feature": "TASK_BASIC",
        "enabled": True,
        "allowed": True,
        "limit": 20,
        "period": "MONTH",
        "used": 2,
        "remaining": 18,
    }

    r = client.get("/api/licenses/feature/TASK_APPROVAL/check", headers=auth(jwt))
    assert r.json()["enabled"] is False
    assert r.json()["allowed"] is False
    assert r.json()["used"] is None

    r = client.get("/api/licenses/feature/TASK_CAL/check", headers=auth(jwt))
    assert r.json()["allowed"] is True
    assert r.json()["remaining"] is None

    r = client.get("/api/licenses/feature/TELEPORT/check", headers=auth(jwt))
    assert r.status_code == 404, r.text

def test_upgrade(client, db_session: Session):
    jwt, org_id = org_admin(client, "lic-upgrade")

    r = client.post("/api/licenses/upgrade", json={"plan": "EXECUTE", "billing_cycle": "yearly"}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["plan"] == "EXECUTE"
    assert body["billing_cycle"] == "yearly"
    assert body["subscription_status"] == "active"
    assert body["trial_ends_at"] is None
    assert body["trial_days_left"] is None
    assert body["max_users"] == 100

    org = db_session.get(Organization, uuid.UUID(org_id))
    assert as_utc(org.current_period_end) > now_utc() + timedelta(days=360)

    # approvals open up on the new plan
    r = client.get("/api/licenses/feature/TASK_APPROVAL/check", headers=auth(jwt))
    assert r.json()["enabled"] is True

    r = client.post("/api/licenses/upgrade", json={"plan": "GOLD"}, headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_downgrade_blocked_by_seats(client, db_session: Session):
    jwt, org_id = org_admin(client, "lic-seats")
    org = db_session.get(Organization, uuid.UUID(org_id))
    org.plan = LicenseCode.optimize
    db_session.commit()

    emails = [{"email": f"lic-seat-{i}@example.com", "role": "employee"} for i in range(10)]
    r = client.post("/api/organization/users/invite", json={"users": emails}, headers=auth(jwt))
    assert r.status_code == 200, r.text

    r = client.post("/api/licenses/upgrade", json={"plan": "EXPLORE"}, headers=auth(jwt))
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "too many active users for this plan"

    r = client.post("/api/licenses/upgrade", json={"plan": "PLAN"}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["seats_used"] == 11

def test_upgrade_needs_billing_permission(client):
    jwt, _ = org_admin(client, "lic-perm")
    r = client.post(
        "/api/organization/users/invite",
        json={"users": [{"email": "lic-perm-manager@example.com", "role": "manager"}]},
        headers=auth(jwt),
    )
    assert r.status_code == 200, r.text
    manager = login(client, "lic-perm-manager@example.com")

    r = client.post("/api/licenses/upgrade", json={"plan": "PLAN"}, headers=auth(manager))
    assert r.status_code == 403, r.text

def test_trial_extension(client, db_session: Session):
    jwt, org_id = org_admin(client, "lic-extend")
    org = db_session.get(Organization, uuid.UUID(org_id))
    org.trial_ends_at = now_utc() - timedelta(days=1)
    db_session.commit()

    r = client.get("/api/licenses/subscription", headers=auth(jwt))
    assert r.json()["writable"] is False
    assert r.json()["trial_days_left"] == 0

    r = client.post("/api/licenses/trial/extend", json={"org_id": org_id, "days": 7}, headers=auth(jwt))
    assert r.status_code == 403, r.text

    admin_jwt = login(client, "lic-root@example.com")
    root = db_session.scalar(select(User).where(User.email == "lic-root@example.com"))
    root.role = Role.super_admin
    db_session.commit()

    r = client.post("/api/licenses/trial/extend", json={"org_id": org_id, "days": 7}, headers=auth(admin_jwt))
    assert r.status_code == 200, r.text
    assert r.json()["subscription_status"] == "trialing"
    assert r.json()["trial_days_left"] == 7
    assert r.json()["writable"] is True

    r = client.post("/api/licenses/trial/extend", json={"org_id": "not-a-uuid", "days": 7}, headers=auth(admin_jwt))
    assert r.status_code == 404, r.text
    r = client.post(
        "/api/licenses/trial/extend", json={"org_id": str(uuid.uuid4()), "days": 7}, headers=auth(admin_jwt)
    )
    assert r.status_code == 404, r.text
    r = client.post("/api/licenses/trial/extend", json={"org_id": org_id, "days": 0}, headers=auth(admin_jwt))
    assert r.status_code == 400, r.text

    org = db_session.get(Organization, uuid.UUID(org_id))
    assert org.subscription_status == SubscriptionStatus.trialing
