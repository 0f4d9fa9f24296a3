# progressbot/discordapp/backend.py

"""
Project-Management Backend Gateway.

The interaction flows need exactly three calls against the backend API:

- list the projects assigned to a Discord user,
- mark a project's active milestone as completed,
- post a progress update on a project.

`BackendGateway` is the contract the dispatcher and the background task depend
on; `HttpBackendGateway` implements it over HTTP with `httpx`. Every request is
attempted once with a bounded timeout and traced to the log with credentials
redacted. Any failure surfaces as `BackendError`; the callers decide how to
report it to the user.
"""

# Standard library imports
import abc
import logging
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# Third-party imports
import httpx

# Local application imports
from .config import InteractionSettings
from .exceptions import BackendError, ConfigurationError

LOGGER = logging.getLogger(__name__)

# Only this much of an error body is logged and shown to the user.
ERROR_BODY_SNIPPET = 500


@dataclass(frozen=True)
class AssignedProject:
    id: str
    name: str


class BackendGateway(abc.ABC):
    """The three backend operations the interaction flows rely on."""

    @abc.abstractmethod
    def get_assigned_projects(self, discord_id: str) -> List[AssignedProject]:
        ...

    @abc.abstractmethod
    def complete_active_milestone(self, project_id: str, caller_id: str) -> Any:
        ...

    @abc.abstractmethod
    def post_progress_update(self, project_id: str, title: str, description: str, caller_id: str) -> Any:
        ...

    def close(self) -> None:
        """Releases any connections held by the gateway."""


def _redact(headers: Dict[str, str]) -> Dict[str, str]:
    return {key: ("****" if key.lower() == "authorization" else value) for key, value in headers.items()}


def _path_segment(value: str) -> str:
    # Project ids come back from client-controlled identifiers.
    return urllib.parse.quote(str(value), safe="")


def fetch_with_trace(client: httpx.Client, label: str, method: str, url: str, *,
                     headers: Optional[Dict[str, str]] = None, json: Any = None,
                     params: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> Any:
    """
    Sends one HTTP request and returns the decoded body.

    Logs the method, URL and (redacted) headers before sending and the status
    and duration afterwards. Non-2xx responses and transport errors are
    raised as `BackendError`. JSON bodies are decoded; anything else is
    returned as text.
    """
    headers = headers or {}
    started_at = time.monotonic()
    LOGGER.info(f"[{label}] -> {method} {url} headers={_redact(headers)}")

    try:
        response = client.request(method, url, headers=headers, json=json, params=params, timeout=timeout)
    except httpx.HTTPError as e:
        LOGGER.error(f"[{label}] transport error for {method} {url}: {e}")
        raise BackendError(f"Fetch failed ({label}): {e}", url=url) from e

    duration_ms = int((time.monotonic() - started_at) * 1000)
    if not response.is_success:
        snippet = response.text[:ERROR_BODY_SNIPPET] or "<no body>"
        LOGGER.error(
            f"[{label}] <- {response.status_code} {response.reason_phrase} ({duration_ms}ms) "
            f"URL: {url} Response: {snippet}"
        )
        raise BackendError(
            f"Fetch failed ({label}) {response.status_code} {response.reason_phrase}: {snippet}",
            status=response.status_code,
            url=url,
        )

    LOGGER.info(f"[{label}] <- {response.status_code} OK ({duration_ms}ms)")
    if "application/json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return None
    return response.text


class HttpBackendGateway(BackendGateway):
    """
    `BackendGateway` over the backend's REST API.

    The read call is unauthenticated and uses the short timeout because it runs
    inside Discord's 3-second window. The two write calls require the service
    bot token; without it they raise `ConfigurationError` instead of silently
    doing nothing.
    """

    def __init__(self, config: InteractionSettings, client: Optional[httpx.Client] = None):
        self.config = config
        self.base_url = config.backend_url.rstrip("/")
        self.client = client or httpx.Client()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.config.service_bot_token:
            LOGGER.error("SERVICE_BOT_TOKEN is not configured; refusing backend write.")
            raise ConfigurationError("Server misconfigured: SERVICE_BOT_TOKEN")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.service_bot_token}",
        }

    def get_assigned_projects(self, discord_id: str) -> List[AssignedProject]:
        data = fetch_with_trace(
            self.client, "assigned-projects", "GET",
            f"{self.base_url}/api/discord/assigned-projects",
            params={"discord_id": discord_id},
            headers={"Content-Type": "application/json"},
            timeout=self.config.assigned_projects_timeout,
        )
        if not isinstance(data, list):
            return []
        return [
            AssignedProject(id=str(item["id"]), name=str(item.get("name") or "Project"))
            for item in data
            if isinstance(item, dict) and item.get("id") not in (None, "")
        ]

    def complete_active_milestone(self, project_id: str, caller_id: str) -> Any:
        return fetch_with_trace(
            self.client, "patch-milestone", "PATCH",
            f"{self.base_url}/api/projects/{_path_segment(project_id)}/milestones",
            headers=self._auth_headers(),
            json={"status": "completed", "callerDiscordId": caller_id},
            timeout=self.config.outbound_timeout,
        )

    def post_progress_update(self, project_id: str, title: str, description: str, caller_id: str) -> Any:
        return fetch_with_trace(
            self.client, "post-progress", "POST",
            f"{self.base_url}/api/projects/{_path_segment(project_id)}/progress",
            headers=self._auth_headers(),
            json={"title": title, "description": description, "callerDiscordId": caller_id},
            timeout=self.config.outbound_timeout,
        )

    def close(self) -> None:
        self.client.close()
