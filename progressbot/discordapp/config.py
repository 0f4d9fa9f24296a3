# progressbot/discordapp/config.py

"""
Runtime configuration for the interaction endpoint.

Django settings are read once per request into an immutable
`InteractionSettings` value, which is handed to the dispatcher. Deferred jobs
carry only the resolved backend URL; the worker rebuilds the rest from its own
settings. Nothing below the view layer reads process state directly.
"""

# Standard library imports
import re
from dataclasses import dataclass, replace
from typing import Optional

# Django imports
from django.conf import settings
from django.http import HttpRequest

DEFAULT_DISCORD_API_BASE = "https://discord.com/api/v10"
_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class InteractionSettings:
    application_id: str = ""
    backend_url: str = ""
    service_bot_token: str = ""
    discord_api_base: str = DEFAULT_DISCORD_API_BASE
    expose_errors: bool = False
    assigned_projects_timeout: float = 2.5
    outbound_timeout: float = 10.0

    @classmethod
    def from_django_settings(cls) -> "InteractionSettings":
        return cls(
            application_id=getattr(settings, "DISCORD_APPLICATION_ID", None) or "",
            backend_url=getattr(settings, "BACKEND_URL", None) or "",
            service_bot_token=getattr(settings, "SERVICE_BOT_TOKEN", None) or "",
            discord_api_base=getattr(settings, "DISCORD_API_BASE", None) or DEFAULT_DISCORD_API_BASE,
            expose_errors=bool(getattr(settings, "DISCORD_EXPOSE_ERRORS", False)),
            assigned_projects_timeout=float(getattr(settings, "ASSIGNED_PROJECTS_TIMEOUT", 2.5)),
            outbound_timeout=float(getattr(settings, "OUTBOUND_HTTP_TIMEOUT", 10.0)),
        )

    def for_request(self, request: Optional[HttpRequest]) -> "InteractionSettings":
        """
        Resolves the backend base URL.

        An absolute BACKEND_URL wins; otherwise the backend is assumed to live
        on the same origin the interaction was delivered to.
        """
        if self.backend_url and _ABSOLUTE_URL.match(self.backend_url):
            return replace(self, backend_url=self.backend_url.rstrip("/"))
        if request is None:
            return self
        return replace(self, backend_url=f"{request.scheme}://{request.get_host()}")

    def with_backend_url(self, backend_url: str) -> "InteractionSettings":
        return replace(self, backend_url=backend_url)
