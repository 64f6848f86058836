import pytest

from tasksetu.services.forms import FormDefinitionError, validate_definition, validate_submission

def login(client, email: str) -> str:
    r = client.post("/api/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json()["token"]
    r = client.post("/api/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

FIELDS = [
    {"id": "name", "label": "Name", "type": "text", "required": True, "validation": {"max_length": 20}},
    {"id": "email", "label": "Email", "type": "email"},
    {"id": "team", "label": "Team", "type": "dropdown", "options": ["ops", "sales"], "required": True},
    {"id": "budget", "label": "Budget", "type": "number", "validation": {"min": 0, "max": 1000}},
]

def admin_with_form(client, prefix: str, **settings) -> tuple[str, dict]:
    admin = login(client, f"{prefix}-admin@example.com")
    r = client.post("/api/organizations", json={"name": f"{prefix} org"}, headers=auth(admin))
    assert r.status_code == 201, r.text

    r = client.post(
        "/api/forms",
        json={"title": "Intake", "fields": FIELDS, "settings": settings},
        headers=auth(admin),
    )
    assert r.status_code == 201, r.text
    return admin, r.json()

def publish(client, jwt: str, form_id: str) -> str:
    r = client.post(f"/api/forms/{form_id}/publish", headers=auth(jwt))
    assert r.status_code == 200, r.text
    assert r.json()["is_published"] is True
    return r.json()["access_link"]

def test_definition_is_normalized():
    out = validate_definition([{"id": " q1 ", "type": "dropdown", "options": [1, 2]}])
    assert out == [
        {"id": "q1", "label": "q1", "type": "dropdown", "required": False, "options": ["1", "2"], "validation": {}}
    ]

@pytest.mark.parametrize(
    "fields",
    [
        [{"type": "text"}],
        [{"id": "a", "type": "text"}, {"id": "a", "type": "number"}],
        [{"id": "a", "type": "signature"}],
        [{"id": "a", "type": "multiselect"}],
        [{"id": "a", "type": "text", "validation": {"pattern": "("}}],
        [{"id": "a", "type": "number", "validation": {"min": "abc"}}],
        [{"id": "a", "type": "number", "validation": {"max": "inf"}}],
        [{"id": "a", "type": "text", "validation": {"min_length": 2.5}}],
        [{"id": "a", "type": "text", "validation": {"max_length": -1}}],
        [{"id": "a", "type": "text", "validation": "strict"}],
        ["not a field"],
    ],
)
def test_bad_definitions(fields):
    with pytest.raises(FormDefinitionError):
        validate_definition(fields)

def test_numeric_rules_are_coerced():
    [field] = validate_definition([{"id": "n", "type": "number", "validation": {"min": "1", "max": 2.5}}])
    assert field["validation"] == {"min": 1, "max": 2.5}

    _, errors = validate_submission([field], {"n": "3"})
    assert errors == [{"field": "n", "message": "n must be at most 2.5"}]

@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "1e400", True])
def test_number_must_be_finite(value):
    fields = validate_definition([{"id": "n", "label": "Score", "type": "number", "validation": {"min": 0, "max": 10}}])
    clean, errors = validate_submission(fields, {"n": value})
    assert clean == {}
    assert errors == [{"field": "n", "message": "Score must be a number"}]

def test_submission_validation():
    fields = validate_definition(
        FIELDS
        + [
            {"id": "tags", "type": "multiselect", "options": ["a", "b"]},
            {"id": "start", "type": "date"},
            {"id": "phone", "type": "phone"},
            {"id": "code", "type": "text", "validation": {"pattern": "^[A-Z]{3}$"}},
        ]
    )

    clean, errors = validate_submission(
        fields,
        {
            "name": " Ada ",
            "email": "ada@example.com",
            "team": "ops",
            "budget": "250",
            "tags": ["a"],
            "start": "2025-03-01",
            "phone": "+91 98765 43210",
            "code": "ABC",
            "extra": "dropped",
        },
    )
    assert errors == []
    assert clean["name"] == "Ada"
    assert clean["budget"] == 250
    assert clean["tags"] == ["a"]
    assert "extra" not in clean

    _, errors = validate_submission(
        fields,
        {
            "name": "x" * 21,
            "email": "nope",
            "budget": 5000,
            "tags": ["c"],
            "start": "01/03/2025",
            "phone": "call me",
            "code": "abc",
        },
    )
    by_field = {e["field"]: e["message"] for e in errors}
    assert by_field["team"] == "Team is required"
    assert by_field["name"] == "Name must be at most 20 characters"
    assert by_field["budget"] == "Budget must be at most 1000"
    assert set(by_field) == {"name", "email", "team", "budget", "tags", "start", "phone", "code"}

    _, errors = validate_submission(fields, {"name": "a", "team": "ops", "budget": True})
    assert errors == [{"field": "budget", "message": "Budget must be a number"}]

def test_form_lifecycle(client):
    admin, form = admin_with_form(client, "flife", allow_anonymous=True, submit_message="Got it")
    assert form["is_published"] is False
    assert form["access_link"] is None
    assert form["fields"][0]["required"] is True

    r = client.get("/api/forms", params={"published": False}, headers=auth(admin))
    assert [f["id"] for f in r.json()] == [form["id"]]

    link = publish(client, admin, form["id"])

    r = client.get(f"/api/forms/public/{link}")
    assert r.status_code == 200, r.text
    assert r.json()["allow_anonymous"] is True
    assert [f["id"] for f in r.json()["fields"]] == ["name", "email", "team", "budget"]

    r = client.post(f"/api/forms/public/{link}/submit", json={"values": {"name": "Ada", "team": "ops"}})
    assert r.status_code == 201, r.text
    assert r.json()["message"] == "Got it"

    r = client.post(f"/api/forms/public/{link}/submit", json={"values": {"team": "hr"}})
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "Validation error"
    assert {e["field"] for e in r.json()["errors"]} == {"name", "team"}

    r = client.get(f"/api/forms/{form['id']}/submissions", headers=auth(admin))
    assert r.status_code == 200, r.text
    assert [s["values"] for s in r.json()] == [{"name": "Ada", "team": "ops"}]
    assert r.json()[0]["submitted_by"] is None
    assert r.json()[0]["status"] == "submitted"

    r = client.post(f"/api/forms/{form['id']}/unpublish", headers=auth(admin))
    assert r.status_code == 200, r.text
    assert r.json()["access_link"] == link
    assert client.get(f"/api/forms/public/{link}").status_code == 404

    # republishing keeps the same link
    assert publish(client, admin, form["id"]) == link

    r = client.delete(f"/api/forms/{form['id']}", headers=auth(admin))
    assert r.status_code == 200, r.text
    assert client.get(f"/api/forms/{form['id']}", headers=auth(admin)).status_code == 404

def test_signed_in_submission_and_cap(client):
    admin, form = admin_with_form(client, "fcap", max_submissions=1, redirect_url="https://example.com/thanks")
    link = publish(client, admin, form["id"])
    values = {"values": {"name": "Bo", "team": "sales"}}

    r = client.post(f"/api/forms/public/{link}/submit", json=values)
    assert r.status_code == 401, r.text

    someone = login(client, "fcap-someone@example.com")
    r = client.post(f"/api/forms/public/{link}/submit", json=values, headers=auth(someone))
    assert r.status_code == 201, r.text
    assert r.json()["redirect_url"] == "https://example.com/thanks"

    r = client.post(f"/api/forms/public/{link}/submit", json=values, headers=auth(someone))
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "form is no longer accepting submissions"

def test_form_rules(client):
    admin = login(client, "frules-admin@example.com")
    r = client.post("/api/organizations", json={"name": "frules org"}, headers=auth(admin))
    assert r.status_code == 201, r.text

    r = client.post("/api/forms", json={"title": "Broken", "fields": [{"id": "x", "type": "nope"}]}, headers=auth(admin))
    assert r.status_code == 400, r.text

    bad_rule = [{"id": "n", "type": "number", "validation": {"min": "abc"}}]
    r = client.post("/api/forms", json={"title": "Broken", "fields": bad_rule}, headers=auth(admin))
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "field n: min must be a number"

    r = client.post("/api/forms", json={"title": "  "}, headers=auth(admin))
    assert r.status_code == 400, r.text

    r = client.post("/api/forms", json={"title": "Empty"}, headers=auth(admin))
    assert r.status_code == 201, r.text
    empty_id = r.json()["id"]

    r = client.post(f"/api/forms/{empty_id}/publish", headers=auth(admin))
    assert r.status_code == 400, r.text

    r = client.put(f"/api/forms/{empty_id}", json={"title": "Renamed", "fields": FIELDS[:1]}, headers=auth(admin))
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "Renamed"
    assert len(r.json()["fields"]) == 1

    # explore allows two forms in total
    r = client.post("/api/forms", json={"title": "Second"}, headers=auth(admin))
    assert r.status_code == 201, r.text
    r = client.post("/api/forms", json={"title": "Third"}, headers=auth(admin))
    assert r.status_code == 402, r.text
    assert r.json()["detail"] == "plan_limit_reached"

    assert client.get("/api/forms/public/no-such-link").status_code == 404

def test_members_cannot_build_forms(client):
    admin = login(client, "fmember-admin@example.com")
    r = client.post("/api/organizations", json={"name": "fmember org"}, headers=auth(admin))
    assert r.status_code == 201, r.text
    r = client.post(
        "/api/organization/users/invite",
        json={"users": [{"email": "fmember@example.com", "role": "manager"}]},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    manager = login(client, "fmember@example.com")

    r = client.post("/api/forms", json={"title": "nope"}, headers=auth(manager))
    assert r.status_code == 403, r.text
    # reading is open to the org
    assert client.get("/api/forms", headers=auth(manager)).status_code == 200
