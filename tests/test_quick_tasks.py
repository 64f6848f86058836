from datetime import datetime, timedelta, timezone

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def create(client, jwt: str, **body) -> dict:
    r = client.post("/api/quick-tasks", json=body, headers=auth(jwt))
    assert r.status_code == 201, r.text
    return r.json()

def test_quick_task_crud_and_toggle(client):
    jwt = login(client, "qt-crud@example.com")

    qt = create(client, jwt, title="  Buy milk ", tags=["home"])
    assert qt["title"] == "Buy milk"
    assert qt["status"] == "pending"
    assert qt["priority"] == "medium"
    assert qt["tags"] == ["home"]
    assert qt["task_age"] == 0
    assert qt["is_overdue"] is False

    r = client.put(
        f"/api/quick-tasks/{qt['id']}",
        json={"title": "Buy oat milk", "status": "in-progress", "priority": "high"},
        headers=auth(jwt),
    )
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "Buy oat milk"
    assert r.json()["status"] == "in-progress"
    assert r.json()["priority"] == "high"

    r = client.patch(f"/api/quick-tasks/{qt['id']}/status", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "done"
    assert r.json()["completed_at"] is not None

    r = client.patch(f"/api/quick-tasks/{qt['id']}/status", headers=auth(jwt))
    assert r.json()["status"] == "pending"
    assert r.json()["completed_at"] is None

    r = client.delete(f"/api/quick-tasks/{qt['id']}", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json() == {"deleted": True, "quick_task_id": qt["id"]}
    assert client.get(f"/api/quick-tasks/{qt['id']}", headers=auth(jwt)).status_code == 404

def test_quick_task_validation(client):
    jwt = login(client, "qt-bad@example.com")

    r = client.post("/api/quick-tasks", json={"title": ""}, headers=auth(jwt))
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "title"

    r = client.post("/api/quick-tasks", json={"title": "x", "priority": "critical"}, headers=auth(jwt))
    assert r.status_code == 400, r.text

    r = client.get("/api/quick-tasks", params={"status": "someday"}, headers=auth(jwt))
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "invalid status filter: someday"

def test_blank_quick_task_title_is_rejected(client):
    jwt = login(client, "qt-blank@example.com")

    r = client.post("/api/quick-tasks", json={"title": "   "}, headers=auth(jwt))
    assert r.status_code == 400, r.text
    assert r.json()["errors"][0]["field"] == "title"

    qt = create(client, jwt, title="Call the bank")
    r = client.put(f"/api/quick-tasks/{qt['id']}", json={"title": "  "}, headers=auth(jwt))
    assert r.status_code == 400, r.text
    assert client.get(f"/api/quick-tasks/{qt['id']}", headers=auth(jwt)).json()["title"] == "Call the bank"

    r = client.post(f"/api/quick-tasks/{qt['id']}/convert", json={"title": " "}, headers=auth(jwt))
    assert r.status_code == 400, r.text

def test_quick_task_list_filters(client):
    jwt = login(client, "qt-list@example.com")
    create(client, jwt, title="Call plumber", priority="high")
    create(client, jwt, title="Read book", priority="low", description="the plumber recommended it")
    done = create(client, jwt, title="Water plants")
    client.patch(f"/api/quick-tasks/{done['id']}/status", headers=auth(jwt))

    r = client.get("/api/quick-tasks", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["pagination"] == {"page": 1, "limit": 20, "total": 3, "pages": 1}

    r = client.get("/api/quick-tasks", params={"priority": "high"}, headers=auth(jwt))
    assert [t["title"] for t in r.json()["items"]] == ["Call plumber"]

    r = client.get("/api/quick-tasks", params={"status": "done"}, headers=auth(jwt))
    assert [t["title"] for t in r.json()["items"]] == ["Water plants"]

    r = client.get("/api/quick-tasks", params={"search": "plumber"}, headers=auth(jwt))
    assert {t["title"] for t in r.json()["items"]} == {"Call plumber", "Read book"}

    r = client.get("/api/quick-tasks", params={"sort_by": "priority", "sort_order": "asc"}, headers=auth(jwt))
    assert [t["priority"] for t in r.json()["items"]] == ["low", "medium", "high"]

    r = client.get("/api/quick-tasks", params={"limit": 2, "page": 2}, headers=auth(jwt))
    assert len(r.json()["items"]) == 1
    assert r.json()["pagination"]["pages"] == 2

def test_quick_task_stats(client):
    jwt = login(client, "qt-stats@example.com")
    yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    late = create(client, jwt, title="Renew passport", due_date=yesterday)
    assert late["is_overdue"] is True
    create(client, jwt, title="Plan trip")
    started = create(client, jwt, title="Pack bags")
    client.put(f"/api/quick-tasks/{started['id']}", json={"status": "in-progress"}, headers=auth(jwt))

    r = client.get("/api/quick-tasks/stats", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json() == {"total": 3, "pending": 2, "in_progress": 1, "done": 0, "overdue": 1}

def test_quick_tasks_are_private(client):
    owner = login(client, "qt-owner@example.com")
    other = login(client, "qt-other@example.com")
    qt = create(client, owner, title="Secret errand")

    assert client.get(f"/api/quick-tasks/{qt['id']}", headers=auth(other)).status_code == 404
    assert client.put(f"/api/quick-tasks/{qt['id']}", json={"title": "mine"}, headers=auth(other)).status_code == 404
    assert client.delete(f"/api/quick-tasks/{qt['id']}", headers=auth(other)).status_code == 404
    assert client.get("/api/quick-tasks", headers=auth(other)).json()["items"] == []

def test_convert_to_task(client):
    jwt = login(client, "qt-convert@example.com")
    qt = create(client, jwt, title="Draft budget", priority="high", tags=["finance"])

    r = client.post(f"/api/quick-tasks/{qt['id']}/convert", json={}, headers=auth(jwt))
    assert r.status_code == 201, r.text
    task = r.json()
    assert task["title"] == "Draft budget"
    assert task["priority"] == "high"
    assert task["tags"] == ["finance"]
    assert task["task_type"] == "regular"

    r = client.get(f"/api/tasks/{task['id']}", headers=auth(jwt))
    assert r.status_code == 200, r.text

    r = client.get(f"/api/quick-tasks/{qt['id']}", headers=auth(jwt))
    assert r.json()["status"] == "done"
    assert r.json()["converted_task_id"] == task["id"]
    assert r.json()["converted_at"] is not None

    r = client.post(f"/api/quick-tasks/{qt['id']}/convert", json={}, headers=auth(jwt))
    assert r.status_code == 409, r.text
    assert r.json()["detail"] == "quick task already converted"

def test_convert_with_overrides(client):
    jwt = login(client, "qt-override@example.com")
    qt = create(client, jwt, title="Rough idea")

    r = client.post(
        f"/api/quick-tasks/{qt['id']}/convert",
        json={"title": "Polished plan", "priority": "critical", "description": "expanded"},
        headers=auth(jwt),
    )
    assert r.status_code == 201, r.text
    assert r.json()["title"] == "Polished plan"
    assert r.json()["priority"] == "critical"
    assert r.json()["description"] == "expanded"
