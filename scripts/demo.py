"""
End-to-end walk through a running API: sign in, create an org, invite a
member, assign a task, upgrade through a stripe webhook, roll a milestone up.

Needs the API at API_BASE_URL and its database reachable through DATABASE_URL
(the customer id is attached directly, the way stripe checkout would).
"""

import os
import time
import uuid

import requests
from rich.console import Console

from tasksetu.db import SessionLocal
from tasksetu.models.org import Organization

console = Console()

class Api:
    def __init__(self, base_url: str, jwt: str | None = None):
        self.base_url = base_url.rstrip("/")
        self.http = requests.Session()
        if jwt:
            self.http.headers["authorization"] = f"bearer {jwt}"

    def call(self, method: str, path: str, **kwargs) -> dict:
        r = self.http.request(method, f"{self.base_url}{path}", timeout=10, **kwargs)
        if r.status_code >= 400:
            raise RuntimeError(f"{method} {path} -> {r.status_code}: {r.text}")
        return r.json()

    def signed_in(self, email: str) -> "Api":
        token = self.call("POST", "/api/auth/request-link", json={"email": email})["token"]
        jwt = self.call("POST", "/api/auth/redeem", json={"token": token})["access_token"]
        return Api(self.base_url, jwt)

def wait_ready(api: Api, timeout_s: float = 30.0) -> None:
    deadline = time.monotonic() + timeout_s
    last: Exception | None = None
    while time.monotonic() < deadline:
        try:
            api.call("GET", "/ready")
            return
        except (requests.RequestException, RuntimeError) as e:
            last = e
        time.sleep(0.5)
    raise RuntimeError(f"api not ready after {timeout_s}s: {last}")

def attach_customer(org_id: str, customer_id: str) -> None:
    with SessionLocal() as db:
        org = db.get(Organization, uuid.UUID(org_id))
        if org is None:
            raise RuntimeError(f"org {org_id} not found")
        org.stripe_customer_id = customer_id
        db.commit()

def subscription_event(event_id: str, customer_id: str, license_code: str) -> dict:
    return {
        "id": event_id,
        "type": "customer.subscription.updated",
        "data": {
            "object": {
                "id": f"sub_{event_id}",
                "customer": customer_id,
                "status": "active",
                "current_period_end": int(time.time()) + 30 * 86400,
                "metadata": {"license_code": license_code},
            }
        },
    }

def main() -> None:
    api = Api(os.getenv("API_BASE_URL", "http://127.0.0.1:8000"))
    stamp = int(time.time())

    with console.status("waiting for the api"):
        wait_ready(api)
    console.print("[green]api ready[/green]")

    owner = api.signed_in(f"owner{stamp}@tasksetu.dev")
    org = owner.call("POST", "/api/organizations", json={"name": f"demo org {stamp}"})
    console.print(f"org [bold]{org['name']}[/bold] on {org['plan']} ({org['subscription_status']})")

    invited = owner.call(
        "POST",
        "/api/organization/users/invite",
        json={"users": [{"email": f"member{stamp}@tasksetu.dev", "role": "employee"}]},
    )
    member_id = invited["results"][0]["user_id"]
    member = api.signed_in(f"member{stamp}@tasksetu.dev")

    task = owner.call(
        "POST",
        "/api/tasks",
        json={"title": "write the demo script", "priority": "high", "assigned_to": member_id},
    )
    console.print(f"task {task['id']} assigned to the member")

    # milestones are not part of EXPLORE
    customer_id = f"cus_demo_{stamp}"
    attach_customer(org["id"], customer_id)
    api.call("POST", "/webhooks/stripe", json=subscription_event(f"evt_demo_{stamp}", customer_id, "EXECUTE"))
    sub = owner.call("GET", "/api/licenses/subscription")
    console.print(f"plan after webhook: [bold]{sub['plan']}[/bold] ({sub['subscription_status']})")

    milestone = owner.call(
        "POST",
        "/api/milestone-tasks",
        json={
            "title": "demo milestone",
            "assigned_to": member_id,
            "due_date": "2030-01-01T00:00:00Z",
            "task_ids": [task["id"]],
        },
    )
    for status in ("in-progress", "done"):
        member.call("PATCH", f"/api/tasks/{task['id']}/status", json={"status": status})

    milestone = owner.call("GET", f"/api/milestone-tasks/{milestone['id']}")
    console.print(f"milestone {milestone['status']} at {milestone['progress_percentage']}%")

    stats = owner.call("GET", "/api/dashboard/stats")
    console.print({k: stats[k] for k in ("total", "completed", "overdue")})
    console.print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
