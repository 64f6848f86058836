import uuid
from datetime import timedelta

from sqlalchemy.orm import Session

from tasksetu.models.enums import ApprovalMode, ApprovalStatus, LicenseCode
from tasksetu.models.org import Organization
from tasksetu.services.approvals import resolve_approval
from tasksetu.time_utils import now_utc

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def user_id(client, jwt: str) -> str:
    return client.get("/api/auth/me", headers=auth(jwt)).json()["id"]

def new_task(client, jwt: str, **fields) -> dict:
    r = client.post("/api/tasks", json={"title": "task", **fields}, headers=auth(jwt))
    assert r.status_code == 201, r.text
    return r.json()

def recurring(due, **pattern) -> dict:
    return {
        "task_type": "recurring",
        "due_date": due.isoformat(),
        "recurrence_pattern": {"frequency": "daily", "interval": 1, **pattern},
    }

def test_snooze_hides_task_until_unsnoozed(client):
    jwt = login(client, "snoozer@example.com")
    task = new_task(client, jwt)

    r = client.patch(
        f"/api/tasks/{task['id']}/snooze",
        json={"snooze_until": (now_utc() - timedelta(hours=1)).isoformat()},
        headers=auth(jwt),
    )
    assert r.status_code == 400, r.text

    r = client.patch(
        f"/api/tasks/{task['id']}/snooze",
        json={"snooze_until": (now_utc() + timedelta(days=1)).isoformat(), "reason": "waiting on vendor"},
        headers=auth(jwt),
    )
    assert r.status_code == 200, r.text
    assert r.json()["is_snoozed"] is True
    assert r.json()["snooze_reason"] == "waiting on vendor"

    assert client.get("/api/tasks", headers=auth(jwt)).json()["items"] == []
    r = client.get("/api/tasks", params={"include_snoozed": True}, headers=auth(jwt))
    assert len(r.json()["items"]) == 1

    r = client.patch(f"/api/tasks/{task['id']}/unsnooze", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["is_snoozed"] is False
    assert r.json()["snooze_until"] is None

    r = client.patch(f"/api/tasks/{task['id']}/unsnooze", headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_risk_flag(client):
    jwt = login(client, "risky@example.com")
    task = new_task(client, jwt)

    r = client.patch(f"/api/tasks/{task['id']}/unmark-risk", headers=auth(jwt))
    assert r.status_code == 400, r.text

    r = client.patch(
        f"/api/tasks/{task['id']}/mark-risk",
        json={"risk_level": "high", "reason": "vendor slipping"},
        headers=auth(jwt),
    )
    assert r.status_code == 200, r.text
    assert (r.json()["is_risky"], r.json()["risk_level"]) == (True, "high")

    r = client.patch(f"/api/tasks/{task['id']}/unmark-risk", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["risk_level"] is None

    r = client.get(f"/api/tasks/{task['id']}/activities", headers=auth(jwt))
    actions = {a["action"] for a in r.json()}
    assert {"risk_marked", "risk_unmarked"} <= actions

def test_quick_done_skips_transition_table(client):
    jwt = login(client, "quickdone@example.com")
    task = new_task(client, jwt)

    r = client.patch(f"/api/tasks/{task['id']}/quick-done", json={"completion_notes": "easy"}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["task"]["status"] == "done"
    assert r.json()["task"]["completion_notes"] == "easy"

    r = client.patch(f"/api/tasks/{task['id']}/quick-done", json={}, headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_completing_recurring_task_spawns_next(client):
    jwt = login(client, "daily@example.com")
    due = now_utc() + timedelta(days=1)
    task = new_task(client, jwt, **recurring(due))
    assert task["next_due_date"] is not None

    r = client.patch(f"/api/tasks/{task['id']}/quick-done", json={}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    done, nxt = r.json()["task"], r.json()["next_occurrence"]

    assert done["recurrence_active"] is False
    assert nxt is not None
    assert nxt["status"] == "todo"
    assert nxt["recurrence_parent_id"] == task["id"]
    assert nxt["recurrence_active"] is True
    assert nxt["due_date"].startswith((due + timedelta(days=1)).date().isoformat())

    # completing the follow-up keeps pointing at the first task
    assert client.patch(f"/api/tasks/{nxt['id']}/status", json={"status": "in-progress"}, headers=auth(jwt)).status_code == 200
    r = client.patch(f"/api/tasks/{nxt['id']}/status", json={"status": "done"}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["next_occurrence"]["recurrence_parent_id"] == task["id"]

def test_series_end_stops_spawning(client):
    jwt = login(client, "ending@example.com")
    due = now_utc() + timedelta(days=1)
    task = new_task(client, jwt, **recurring(due, end_date=(due + timedelta(hours=1)).isoformat()))

    r = client.patch(f"/api/tasks/{task['id']}/quick-done", json={}, headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["next_occurrence"] is None
    assert r.json()["task"]["recurrence_active"] is False

def test_skip_and_stop_recurrence(client):
    jwt = login(client, "skipper@example.com")
    due = now_utc() + timedelta(days=1)
    task = new_task(client, jwt, **recurring(due))

    r = client.post(f"/api/tasks/{task['id']}/recurring/skip", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["due_date"].startswith((due + timedelta(days=1)).date().isoformat())

    r = client.post(f"/api/tasks/{task['id']}/recurring/stop", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["recurrence_active"] is False
    assert r.json()["next_due_date"] is None

    r = client.post(f"/api/tasks/{task['id']}/recurring/skip", headers=auth(jwt))
    assert r.status_code == 400, r.text

    plain = new_task(client, jwt)
    r = client.post(f"/api/tasks/{plain['id']}/recurring/stop", headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_generate_due_occurrences(client):
    owner = login(client, "gen-owner@example.com")
    r = client.post("/api/organizations", json={"name": "gen-org"}, headers=auth(owner))
    assert r.status_code == 201, r.text

    # next occurrence falls inside the 24h horizon
    task = new_task(client, owner, **recurring(now_utc() - timedelta(hours=12)))

    r = client.post("/api/recurring-tasks/generate", headers=auth(owner))
    assert r.status_code == 200, r.text
    assert r.json()["processed"] == 1
    assert len(r.json()["created"]) == 1

    r = client.get(f"/api/tasks/{task['id']}", headers=auth(owner))
    assert r.json()["recurrence_active"] is False

def _approval_org(client, db_session: Session, prefix: str) -> dict[str, str]:
    owner = login(client, f"{prefix}-owner@example.com")
    r = client.post("/api/organizations", json={"name": f"{prefix}-org"}, headers=auth(owner))
    assert r.status_code == 201, r.text
    org = db_session.get(Organization, uuid.UUID(r.json()["id"]))
    org.plan = LicenseCode.plan
    db_session.commit()

    r = client.post(
        "/api/organization/users/invite",
        json={"users": [{"email": f"{prefix}-a1@example.com", "role": "manager"}, {"email": f"{prefix}-a2@example.com", "role": "employee"}]},
        headers=auth(owner),
    )
    assert r.status_code == 200, r.text
    return {
        "owner": owner,
        "a1": login(client, f"{prefix}-a1@example.com"),
        "a2": login(client, f"{prefix}-a2@example.com"),
    }

def test_approval_all_mode(client, db_session: Session):
    jwts = _approval_org(client, db_session, "appr-all")
    approvers = [user_id(client, jwts["a1"]), user_id(client, jwts["a2"])]

    task = new_task(client, jwts["owner"], task_type="approval", approval_mode="all", approver_ids=approvers)
    assert task["approval_status"] == "pending"
    assert {a["user_id"] for a in task["approvers"]} == set(approvers)

    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "approved"}, headers=auth(jwts["owner"]))
    assert r.status_code == 403, r.text

    # approvers can see a private task they were asked to approve
    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "approved"}, headers=auth(jwts["a2"]))
    assert r.status_code == 200, r.text
    assert r.json()["approval_status"] == "pending"

    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "rejected"}, headers=auth(jwts["a2"]))
    assert r.status_code == 409, r.text

    r = client.post(
        f"/api/tasks/{task['id']}/approve",
        json={"decision": "approved", "comment": "lgtm"},
        headers=auth(jwts["a1"]),
    )
    assert r.status_code == 200, r.text
    assert r.json()["approval_status"] == "approved"

def test_approval_any_mode_resolves_on_first_approval(client, db_session: Session):
    jwts = _approval_org(client, db_session, "appr-any")
    approvers = [user_id(client, jwts["a1"]), user_id(client, jwts["a2"])]
    task = new_task(client, jwts["owner"], task_type="approval", approval_mode="any", approver_ids=approvers)

    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "rejected"}, headers=auth(jwts["a1"]))
    assert r.json()["approval_status"] == "pending"

    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "approved"}, headers=auth(jwts["a2"]))
    assert r.json()["approval_status"] == "approved"

    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "pending"}, headers=auth(jwts["a2"]))
    assert r.status_code == 400, r.text

def test_approve_requires_approval_task(client):
    jwt = login(client, "notappr@example.com")
    task = new_task(client, jwt)
    r = client.post(f"/api/tasks/{task['id']}/approve", json={"decision": "approved"}, headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_resolve_approval_modes():
    A, R, P = ApprovalStatus.approved, ApprovalStatus.rejected, None

    assert resolve_approval(ApprovalMode.any, []) == ApprovalStatus.pending
    assert resolve_approval(ApprovalMode.any, [R, A]) == ApprovalStatus.approved
    assert resolve_approval(ApprovalMode.any, [R, R]) == ApprovalStatus.rejected
    assert resolve_approval(ApprovalMode.any, [R, P]) == ApprovalStatus.pending

    assert resolve_approval(ApprovalMode.all, [A, P]) == ApprovalStatus.pending
    assert resolve_approval(ApprovalMode.all, [A, A]) == ApprovalStatus.approved
    assert resolve_approval(ApprovalMode.all, [A, R]) == ApprovalStatus.rejected

    assert resolve_approval(ApprovalMode.majority, [A, A, P]) == ApprovalStatus.approved
    assert resolve_approval(ApprovalMode.majority, [A, R, P]) == ApprovalStatus.pending
    assert resolve_approval(ApprovalMode.majority, [R, R, A]) == ApprovalStatus.rejected
    assert resolve_approval(ApprovalMode.majority, [A, R]) == ApprovalStatus.pending
