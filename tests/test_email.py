def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def test_check_email(client):
    login(client, "taken@example.com")

    r = client.get("/api/email/check-email/fresh@example.com")
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "exists": False, "message": "Email is available", "suggestion": None}

    r = client.get("/api/email/check-email/Taken@Example.com")
    assert r.status_code == 200, r.text
    assert r.json()["exists"] is True
    assert r.json()["suggestion"] == "taken1@example.com"

    r = client.get("/api/email/check-email/not-an-email")
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "invalid email format"

def test_check_emails_bulk(client):
    login(client, "bulk-taken@example.com")

    r = client.post(
        "/api/email/check-emails-bulk",
        json={"emails": ["bulk-taken@example.com", "bulk-free@example.com", "nope"]},
    )
    assert r.status_code == 200, r.text
    assert [(x["email"], x["status"]) for x in r.json()["results"]] == [
        ("bulk-taken@example.com", "registered"),
        ("bulk-free@example.com", "available"),
        ("nope", "invalid"),
    ]
    assert r.json()["results"][2]["valid"] is False

def test_suggest_email_skips_taken_variants(client):
    login(client, "sam@example.com")
    login(client, "sam1@example.com")

    r = client.get("/api/email/suggest-email/sam@example.com")
    assert r.status_code == 200, r.text
    assert r.json()["available"] is None
    assert r.json()["suggestions"] == ["sam2@example.com", "sam3@example.com", "sam4@example.com"]

    r = client.get("/api/email/suggest-email/nobody@example.com")
    assert r.json()["available"] == "nobody@example.com"
    assert len(r.json()["suggestions"]) == 3
