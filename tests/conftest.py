from __future__ import annotations

import json
import os
import time
from typing import Any

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "progressbot.settings")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "True"
os.environ["PROGRESSBOT_LOG_FILE"] = os.devnull

import django  # noqa: E402

django.setup()

import pytest  # noqa: E402
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey  # noqa: E402
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat  # noqa: E402
from django.test import Client, override_settings  # noqa: E402
from django.test.utils import setup_test_environment  # noqa: E402

from discordapp.backend import AssignedProject, BackendGateway  # noqa: E402
from discordapp.exceptions import BackendError  # noqa: E402

setup_test_environment()


class FakeGateway(BackendGateway):
    """Records every call; raises `error` from whichever call it is set for."""

    def __init__(self, projects: list[AssignedProject] | None = None, error: Exception | None = None) -> None:
        self.projects = projects or []
        self.error = error
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    def get_assigned_projects(self, discord_id: str) -> list[AssignedProject]:
        self.calls.append(("get_assigned_projects", (discord_id,)))
        if self.error is not None:
            raise self.error
        return list(self.projects)

    def complete_active_milestone(self, project_id: str, caller_id: str) -> Any:
        self.calls.append(("complete_active_milestone", (project_id, caller_id)))
        if self.error is not None:
            raise self.error
        return {"ok": True}

    def post_progress_update(self, project_id: str, title: str, description: str, caller_id: str) -> Any:
        self.calls.append(("post_progress_update", (project_id, title, description, caller_id)))
        if self.error is not None:
            raise self.error
        return {"ok": True}

    def close(self) -> None:
        self.closed = True


class FakeWebhooks:
    """Stands in for `InteractionWebhookClient`; optionally fails every call."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.edits: list[tuple[str, str, dict[str, Any]]] = []
        self.followups: list[tuple[str, str, dict[str, Any]]] = []

    def edit_original(self, application_id: str, token: str, payload: dict[str, Any]) -> bool:
        self.edits.append((application_id, token, payload))
        if self.fail:
            raise BackendError("Fetch failed (edit-original) 404 Not Found: Unknown Webhook", status=404)
        return True

    def post_followup(self, application_id: str, token: str, payload: dict[str, Any]) -> bool:
        self.followups.append((application_id, token, payload))
        if self.fail:
            raise BackendError("Fetch failed (follow-up) 404 Not Found: Unknown Webhook", status=404)
        return True

    def close(self) -> None:
        pass


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway(projects=[AssignedProject(id="42", name="Alpha"), AssignedProject(id="7", name="Beta Team")])


@pytest.fixture
def fake_webhooks() -> FakeWebhooks:
    return FakeWebhooks()


@pytest.fixture
def signing_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def public_key_hex(signing_key: Ed25519PrivateKey) -> str:
    return signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


@pytest.fixture
def signed_client(signing_key: Ed25519PrivateKey, public_key_hex: str):
    """A Django test client that signs its POST bodies like Discord does."""
    client = Client()

    def post(payload: Any, path: str = "/discord/interactions/"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        timestamp = str(int(time.time()))
        signature = signing_key.sign(timestamp.encode("utf-8") + body).hex()
        return client.post(
            path,
            data=body,
            content_type="application/json",
            HTTP_X_SIGNATURE_ED25519=signature,
            HTTP_X_SIGNATURE_TIMESTAMP=timestamp,
        )

    with override_settings(
        DISCORD_PUBLIC_KEY=public_key_hex,
        DISCORD_APPLICATION_ID="app-1",
        BACKEND_URL="https://backend.example.com",
        SERVICE_BOT_TOKEN="service-token",
    ):
        yield post
