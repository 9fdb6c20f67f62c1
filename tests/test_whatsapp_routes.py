"""Tests for the WhatsApp API endpoints."""

from unittest.mock import AsyncMock

import pytest

from app.domain.services.message_reconciler import MessageReconciler
from app.domain.services.whatsapp_session import SessionManager
from app.infrastructure.redis import RedisClient
from app.infrastructure.whatsapp.bridge_client import BridgeTransport
from app.settings import settings
from tests.fakes import FakeTransport


@pytest.fixture
def fake(store, media_storage, client):
    """Install a session manager driving a FakeTransport."""
    transport = FakeTransport()
    reconciler = MessageReconciler(store, media_storage=media_storage, dedup=RedisClient())
    client.app.state.whatsapp = SessionManager(reconciler, transport_factory=lambda webhook_url=None: transport)
    return transport


@pytest.fixture
def bridge(store, media_storage, client):
    """Install a session manager driving a BridgeTransport with a stubbed HTTP layer."""
    transport = BridgeTransport("http://bridge:3000")
    transport._request = AsyncMock(return_value=None)
    reconciler = MessageReconciler(store, media_storage=media_storage, dedup=RedisClient())
    client.app.state.whatsapp = SessionManager(reconciler, transport_factory=lambda webhook_url=None: transport)
    return transport


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_status_before_init(client, fake):
    response = client.get("/api/v1/whatsapp/status")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "uninitialized"
    assert data["initialized"] is False
    assert data["qr_code"] is None


def test_init_starts_session(client, fake):
    response = client.post("/api/v1/whatsapp/init")

    assert response.status_code == 200
    assert response.json()["state"] == "initializing"
    assert fake.started


def test_disabled_whatsapp_returns_503(client, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "enable_whatsapp", False)

    response = client.get("/api/v1/whatsapp/status")

    assert response.status_code == 503


def test_send_while_not_connected(client, fake):
    response = client.post("/api/v1/whatsapp/send", json={"phone": "5512345678", "message": "hola"})

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "WhatsApp not connected", "message_id": None}


def test_send_requires_phone_and_message(client, fake):
    response = client.post("/api/v1/whatsapp/send", json={"phone": " ", "message": "hola"})

    assert response.status_code == 400


def test_webhook_drives_pairing(client, bridge):
    client.post("/api/v1/whatsapp/init")

    response = client.post(
        "/api/v1/whatsapp/webhook",
        json={"event": "qr", "session": "default", "data": {"qr": "2@pairing-code"}},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    status = client.get("/api/v1/whatsapp/status").json()
    assert status["state"] == "awaiting_pairing"
    assert status["qr_code"] == "2@pairing-code"


def test_webhook_from_other_session_is_ignored(client, bridge, monkeypatch):
    monkeypatch.setattr(settings, "whatsapp_session_name", "crm")
    client.post("/api/v1/whatsapp/init")

    response = client.post(
        "/api/v1/whatsapp/webhook",
        json={"event": "qr", "session": "someone-else", "data": {"qr": "2@other-code"}},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    status = client.get("/api/v1/whatsapp/status").json()
    assert status["state"] == "initializing"
    assert status["qr_code"] is None


def test_webhook_message_is_persisted(client, bridge):
    client.post("/api/v1/whatsapp/init")
    client.post("/api/v1/whatsapp/webhook", json={"event": "ready", "data": {"wid": {"user": "5215500000000"}}})

    response = client.post(
        "/api/v1/whatsapp/webhook",
        json={
            "event": "message",
            "data": {
                "id": {"_serialized": "false_5215512345678@c.us_ABC"},
                "from": "5215512345678@c.us",
                "to": "5215500000000@c.us",
                "fromMe": False,
                "body": "hola",
                "timestamp": 1760000000,
                "notifyName": "Ana",
            },
        },
    )

    assert response.status_code == 200
    contacts = client.get("/api/v1/contacts").json()
    assert [(c["name"], c["phone"]) for c in contacts] == [("Ana", "+525512345678")]
    history = client.get(f"/api/v1/conversations/contact/{contacts[0]['id']}").json()
    assert [(h["content"], h["direction"], h["channel"]) for h in history] == [("hola", "entrante", "whatsapp")]


def test_malformed_webhook_is_acknowledged(client, bridge):
    client.post("/api/v1/whatsapp/init")

    response = client.post("/api/v1/whatsapp/webhook", json={"event": "message", "data": {"body": "sin id"}})

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_webhook_secret_enforced(client, bridge, monkeypatch):
    monkeypatch.setattr(settings, "whatsapp_webhook_secret", "s3cret")

    rejected = client.post("/api/v1/whatsapp/webhook", json={"event": "authenticated"})
    wrong = client.post(
        "/api/v1/whatsapp/webhook", json={"event": "authenticated"}, headers={"X-Bridge-Secret": "nope"}
    )
    accepted = client.post(
        "/api/v1/whatsapp/webhook", json={"event": "authenticated"}, headers={"X-Bridge-Secret": "s3cret"}
    )

    assert rejected.status_code == 403
    assert wrong.status_code == 403
    assert accepted.status_code == 200


def test_media_endpoint(client, tmp_path, monkeypatch):
    media_dir = tmp_path / "served"
    media_dir.mkdir()
    (media_dir / "1760000000000_m1.jpg").write_bytes(b"\xff\xd8jpeg")
    monkeypatch.setattr(settings, "whatsapp_media_dir", str(media_dir))

    ok = client.get("/api/v1/whatsapp/media/1760000000000_m1.jpg")
    missing = client.get("/api/v1/whatsapp/media/1760000000000_m2.jpg")
    invalid = client.get("/api/v1/whatsapp/media/bad%20name.jpg")

    assert ok.status_code == 200
    assert ok.content == b"\xff\xd8jpeg"
    assert ok.headers["content-type"] == "image/jpeg"
    assert missing.status_code == 404
    assert invalid.status_code == 400


def test_debug_logs_read_and_clear(client, tmp_path, monkeypatch):
    log_path = tmp_path / "wa-debug.log"
    log_path.write_text('{"event": "skip"}\n{"event": "saved"}\n')
    monkeypatch.setattr(settings, "whatsapp_debug_log_path", str(log_path))

    response = client.get("/api/v1/whatsapp/debug-logs", params={"lines": 1})
    assert response.json() == {"lines": ['{"event": "saved"}'], "total": 1}

    assert client.delete("/api/v1/whatsapp/debug-logs").json() == {"success": True}
    assert client.get("/api/v1/whatsapp/debug-logs").json() == {"lines": [], "total": 0}
