def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200
    return r.json()["access_token"]

def auth_headers(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def test_tenant_isolation_tasks(client):
    a = login(client, "a@example.com")
    b = login(client, "b@example.com")

    r = client.post("/api/organizations", json={"name": "org-a"}, headers=auth_headers(a))
    assert r.status_code == 201
    r = client.post("/api/organizations", json={"name": "org-b"}, headers=auth_headers(b))
    assert r.status_code == 201

    r = client.post(
        "/api/tasks",
        json={"title": "a-secret", "visibility": "organization"},
        headers=auth_headers(a),
    )
    assert r.status_code == 201, r.text
    task_a = r.json()["id"]

    # b is an admin elsewhere, not in org a
    r = client.get(f"/api/tasks/{task_a}", headers=auth_headers(b))
    assert r.status_code == 404

    r = client.get("/api/tasks", headers=auth_headers(b))
    assert r.status_code == 200
    assert r.json()["items"] == []

    r = client.put(f"/api/tasks/{task_a}", json={"title": "hacked"}, headers=auth_headers(b))
    assert r.status_code == 404

    r = client.patch(f"/api/tasks/{task_a}/status", json={"status": "in-progress"}, headers=auth_headers(b))
    assert r.status_code == 404

    r = client.delete(f"/api/tasks/{task_a}", headers=auth_headers(b))
    assert r.status_code == 404

    r = client.post(f"/api/tasks/{task_a}/comments", json={"content": "hi"}, headers=auth_headers(b))
    assert r.status_code == 404

    r = client.get(f"/api/tasks/{task_a}/activities", headers=auth_headers(b))
    assert r.status_code == 404

def test_cannot_assign_or_mention_outside_org(client):
    a = login(client, "assign-a@example.com")
    b = login(client, "assign-b@example.com")

    r = client.post("/api/organizations", json={"name": "assign-org-a"}, headers=auth_headers(a))
    assert r.status_code == 201
    r = client.post("/api/organizations", json={"name": "assign-org-b"}, headers=auth_headers(b))
    assert r.status_code == 201

    b_id = client.get("/api/auth/me", headers=auth_headers(b)).json()["id"]

    r = client.post("/api/tasks", json={"title": "t", "assigned_to": b_id}, headers=auth_headers(a))
    assert r.status_code == 400, r.text

    r = client.post("/api/tasks", json={"title": "t", "collaborator_ids": [b_id]}, headers=auth_headers(a))
    assert r.status_code == 400, r.text

    r = client.post("/api/tasks", json={"title": "t"}, headers=auth_headers(a))
    assert r.status_code == 201, r.text
    task_id = r.json()["id"]

    r = client.post(
        f"/api/tasks/{task_id}/comments",
        json={"content": "ping", "mentions": [b_id]},
        headers=auth_headers(a),
    )
    assert r.status_code == 400, r.text

def test_individual_tasks_stay_private(client):
    solo = login(client, "solo-1@example.com")
    other = login(client, "solo-2@example.com")

    r = client.post("/api/tasks", json={"title": "mine"}, headers=auth_headers(solo))
    assert r.status_code == 201, r.text
    task_id = r.json()["id"]
    assert r.json()["org_id"] is None

    r = client.get(f"/api/tasks/{task_id}", headers=auth_headers(other))
    assert r.status_code == 404

    r = client.get("/api/tasks", headers=auth_headers(solo))
    assert [t["id"] for t in r.json()["items"]] == [task_id]

def test_invite_cannot_steal_users_from_other_org(client):
    a = login(client, "steal-a@example.com")
    b = login(client, "steal-b@example.com")

    r = client.post("/api/organizations", json={"name": "steal-a"}, headers=auth_headers(a))
    assert r.status_code == 201
    r = client.post("/api/organizations", json={"name": "steal-b"}, headers=auth_headers(b))
    assert r.status_code == 201

    r = client.post(
        "/api/organization/users/invite",
        json={"users": [{"email": "steal-b@example.com", "role": "member"}]},
        headers=auth_headers(a),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["failed"] == 1
    assert body["results"][0]["reason"] == "belongs_to_another_organization"

    r = client.get("/api/organizations/current", headers=auth_headers(b))
    assert r.json()["name"] == "steal-b"
