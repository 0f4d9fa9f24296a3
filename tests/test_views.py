from __future__ import annotations

import json
import time

import pytest
from conftest import FakeGateway, FakeWebhooks
from django.test import Client, override_settings

from discordapp import tasks, views
from discordapp.backend import AssignedProject
from discordapp.utils import verify_signature

URL = "/discord/interactions/"


# --- Signature verification ---

def test_verify_signature_accepts_only_the_signed_bytes(signing_key, public_key_hex) -> None:
    body = b'{"type":1}'
    timestamp = "1700000000"
    signature = signing_key.sign(timestamp.encode() + body).hex()

    assert verify_signature(body, signature, timestamp, public_key_hex) is True
    assert verify_signature(b'{"type":2}', signature, timestamp, public_key_hex) is False
    assert verify_signature(body, signature, "1700000001", public_key_hex) is False


def test_flipping_any_byte_breaks_the_signature(signing_key, public_key_hex) -> None:
    body = b'{"type":2,"data":{"name":"progress-update"}}'
    timestamp = "1700000000"
    signature = signing_key.sign(timestamp.encode() + body).hex()

    for index in range(len(body)):
        tampered = body[:index] + bytes([body[index] ^ 0x01]) + body[index + 1:]
        assert verify_signature(tampered, signature, timestamp, public_key_hex) is False


@pytest.mark.parametrize(
    ("signature", "timestamp", "key"),
    [
        (None, "1", "00" * 32),
        ("00" * 64, None, "00" * 32),
        ("00" * 64, "1", None),
        ("not-hex", "1", "00" * 32),
        ("00" * 64, "1", "abcd"),
        ("00" * 64, "1", "zz" * 32),
    ],
)
def test_malformed_inputs_fail_verification(signature, timestamp, key) -> None:
    assert verify_signature(b"{}", signature, timestamp, key) is False


def test_unsigned_request_is_rejected_before_parsing(public_key_hex, monkeypatch) -> None:
    monkeypatch.setattr(views, "build_dispatcher", lambda request: pytest.fail("dispatcher must not be built"))

    with override_settings(DISCORD_PUBLIC_KEY=public_key_hex):
        response = Client().post(URL, data=b"not json at all", content_type="application/json")

    assert response.status_code == 401


def test_wrongly_signed_request_is_rejected(signing_key, monkeypatch) -> None:
    monkeypatch.setattr(views, "build_dispatcher", lambda request: pytest.fail("dispatcher must not be built"))
    other_key = "11" * 32
    timestamp = str(int(time.time()))
    body = b'{"type":1}'

    with override_settings(DISCORD_PUBLIC_KEY=other_key):
        response = Client().post(
            URL, data=body, content_type="application/json",
            HTTP_X_SIGNATURE_ED25519=signing_key.sign(timestamp.encode() + body).hex(),
            HTTP_X_SIGNATURE_TIMESTAMP=timestamp,
        )
    assert response.status_code == 401


def test_missing_public_key_rejects_everything(signed_client) -> None:
    with override_settings(DISCORD_PUBLIC_KEY=None):
        assert signed_client({"type": 1}).status_code == 401


def test_get_is_not_allowed() -> None:
    assert Client().get(URL).status_code == 405


# --- End to end ---

@pytest.fixture
def wired(monkeypatch, fake_gateway: FakeGateway):
    """Routes both the web process and the (eager) Celery task to fakes."""
    webhooks = FakeWebhooks()
    monkeypatch.setattr(views, "build_backend_gateway", lambda config: fake_gateway)
    monkeypatch.setattr(tasks, "build_backend_gateway", lambda config: fake_gateway)
    monkeypatch.setattr(tasks, "build_webhook_client", lambda config: webhooks)
    return fake_gateway, webhooks


def test_ping(signed_client, wired) -> None:
    response = signed_client({"type": 1})
    assert response.status_code == 200
    assert response.json() == {"type": 1}


def test_invalid_json_after_verification(signed_client, wired) -> None:
    assert signed_client(b"{nope").status_code == 400


def test_progress_update_without_projects(signed_client, wired) -> None:
    gateway, _ = wired
    gateway.projects = []

    response = signed_client({
        "type": 2, "id": "i1", "token": "tok", "application_id": "app-1",
        "member": {"user": {"id": "u1"}}, "data": {"name": "progress-update"},
    })

    assert response.json() == {"type": 4, "data": {"content": "No projects are assigned to you yet.", "flags": 64}}


def test_milestone_pick_returns_status_picker(signed_client, wired) -> None:
    response = signed_client({
        "type": 3, "id": "i1", "token": "tok", "application_id": "app-1",
        "member": {"user": {"id": "u1"}},
        "data": {"custom_id": "pick_project_for_milestone", "values": ["42::Alpha"]},
    })

    body = response.json()
    assert body["type"] == 7
    assert body["data"]["components"][0]["components"][0]["custom_id"] == "set_status:42:Alpha"


def test_progress_modal_runs_after_acknowledgment(signed_client, wired) -> None:
    gateway, webhooks = wired
    gateway.projects = [AssignedProject("42", "Alpha")]

    response = signed_client({
        "type": 5, "id": "i1", "token": "tok", "application_id": "app-1",
        "member": {"user": {"id": "u1"}},
        "data": {
            "custom_id": "progress_modal:42:Alpha",
            "components": [
                {"type": 1, "components": [{"type": 4, "custom_id": "title_input", "value": "Shipped v2"}]},
                {"type": 1, "components": [{"type": 4, "custom_id": "desc_input", "value": ""}]},
            ],
        },
    })

    assert response.json() == {"type": 5}
    assert gateway.calls == [("post_progress_update", ("42", "Shipped v2", "", "u1"))]
    assert len(webhooks.edits) == 1
    assert "Shipped v2" in webhooks.edits[0][2]["content"]


def test_completed_status_calls_backend_once_even_if_edit_fails(signed_client, wired, monkeypatch) -> None:
    gateway, _ = wired
    failing = FakeWebhooks(fail=True)
    monkeypatch.setattr(tasks, "build_webhook_client", lambda config: failing)

    response = signed_client({
        "type": 3, "id": "i1", "token": "tok", "application_id": "app-1",
        "user": {"id": "u1"},
        "data": {"custom_id": "set_status:42:Alpha", "values": ["completed"]},
    })

    assert response.status_code == 200
    assert response.json() == {"type": 6}
    assert gateway.calls == [("complete_active_milestone", ("42", "u1"))]
    assert len(failing.edits) == 1


def test_unexpected_error_still_yields_a_message(signed_client, wired, monkeypatch) -> None:
    def explode(self, payload):
        raise RuntimeError("bug")

    monkeypatch.setattr(views.InteractionDispatcher, "dispatch", explode)
    body = signed_client({"type": 2, "data": {"name": "progress-update"}}).json()
    assert body == {"type": 4, "data": {"content": "Unsupported interaction.", "flags": 64}}


def test_gateway_is_closed_after_each_request(signed_client, wired) -> None:
    gateway, _ = wired
    signed_client({"type": 1})
    assert gateway.closed is True


def test_deferred_job_carries_the_resolved_backend_url(signed_client, wired, monkeypatch) -> None:
    seen = []
    monkeypatch.setattr(views, "enqueue_deferred_job", seen.append)

    signed_client({
        "type": 3, "id": "i1", "token": "tok", "application_id": "app-1",
        "user": {"id": "u1"},
        "data": {"custom_id": "set_status:42:Alpha", "values": ["completed"]},
    })

    assert json.loads(json.dumps(seen[0].to_dict()))["backend_url"] == "https://backend.example.com"
