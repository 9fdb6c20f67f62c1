"""Tests for the contacts and conversations API endpoints."""


def _create_contact(client, **overrides):
    body = {"name": "Ana", "email": "ana@example.com", "phone": "55 1234 5678"}
    body.update(overrides)
    response = client.post("/api/v1/contacts", json=body)
    assert response.status_code == 201
    return response.json()


def test_create_and_get_contact(client):
    created = _create_contact(client)

    assert created["phone"] == "+525512345678"
    assert created["category"] == "prospecto"
    assert created["tags"] == []
    assert created["last_contact_date"] is None

    fetched = client.get(f"/api/v1/contacts/{created['id']}").json()
    assert fetched["name"] == "Ana"
    assert fetched["last_contact_date"] is not None


def test_get_missing_contact(client):
    assert client.get("/api/v1/contacts/999").status_code == 404


def test_create_contact_rejects_unknown_category(client):
    response = client.post("/api/v1/contacts", json={"name": "Ana", "email": "", "category": "amigo"})

    assert response.status_code == 400


def test_update_only_sent_fields(client):
    created = _create_contact(client, company="ACME")

    response = client.put(f"/api/v1/contacts/{created['id']}", json={"phone": "+5215598765432"})

    assert response.status_code == 200
    data = response.json()
    assert data["phone"] == "+525598765432"
    assert data["company"] == "ACME"
    assert client.put("/api/v1/contacts/999", json={"name": "x"}).status_code == 404


def test_delete_contact(client):
    created = _create_contact(client)

    assert client.delete(f"/api/v1/contacts/{created['id']}").status_code == 204
    assert client.delete(f"/api/v1/contacts/{created['id']}").status_code == 404


def test_delete_contact_with_conversations_conflicts(client):
    contact = _create_contact(client)
    client.post("/api/v1/conversations", json={"contact_id": contact["id"], "content": "hola"})

    response = client.delete(f"/api/v1/contacts/{contact['id']}")

    assert response.status_code == 409
    history = client.get(f"/api/v1/conversations/contact/{contact['id']}").json()
    assert [h["content"] for h in history] == ["hola"]


def test_consolidate_and_normalize_endpoints(client):
    first = _create_contact(client)
    second = _create_contact(client, name="Ana 2", phone="+5215512345678")

    response = client.post("/api/v1/contacts/consolidate-duplicates")

    assert response.status_code == 200
    data = response.json()
    assert data["consolidated"] == 1
    assert data["consolidated_ids"] == [second["id"]]
    assert [c["id"] for c in client.get("/api/v1/contacts").json()] == [first["id"]]

    normalized = client.post("/api/v1/contacts/normalize-phones").json()
    assert normalized == {"success": True, "normalized": 0, "message": "Normalized 0 phones"}


def test_log_conversation_and_history(client):
    contact = _create_contact(client)

    response = client.post(
        "/api/v1/conversations",
        json={"contact_id": contact["id"], "content": "Llamada inicial", "type": "llamada", "channel": "telefono"},
    )

    assert response.status_code == 201
    assert response.json()["direction"] == "saliente"
    assert client.get(f"/api/v1/contacts/{contact['id']}").json()["score"] == 5

    history = client.get(f"/api/v1/conversations/contact/{contact['id']}").json()
    assert [h["content"] for h in history] == ["Llamada inicial"]

    recent = client.get("/api/v1/conversations/recent").json()
    assert recent[0]["contact"]["id"] == contact["id"]


def test_log_conversation_validates_enums(client):
    assert client.post("/api/v1/conversations", json={"content": "x", "type": "fax"}).status_code == 400
    assert client.post("/api/v1/conversations", json={"content": "x", "direction": "up"}).status_code == 400
    assert client.post("/api/v1/conversations", json={"content": "x", "channel": "sms"}).status_code == 400


def test_delete_conversations(client):
    contact = _create_contact(client)
    created = client.post("/api/v1/conversations", json={"contact_id": contact["id"], "content": "uno"}).json()
    client.post("/api/v1/conversations", json={"contact_id": contact["id"], "content": "dos"})

    assert client.delete(f"/api/v1/conversations/{created['id']}").status_code == 204
    assert client.delete(f"/api/v1/conversations/{created['id']}").status_code == 404

    response = client.delete(f"/api/v1/conversations/contact/{contact['id']}")
    assert response.json() == {"success": True, "deleted": 1}
