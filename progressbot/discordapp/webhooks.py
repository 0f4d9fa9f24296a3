# progressbot/discordapp/webhooks.py

"""
Out-of-band completion calls for deferred interactions.

After a deferred acknowledgment, the only way to show the user a result is
through the interaction webhook, addressed by the application id and the
interaction token (valid for about 15 minutes):

- `edit_original`: PATCH .../webhooks/{app}/{token}/messages/@original
- `post_followup`: POST  .../webhooks/{app}/{token}

The token is the only authority these calls carry; no bot credential is sent.
"""

# Standard library imports
import logging
from typing import Any, Dict, Optional

# Third-party imports
import httpx

# Local application imports
from .backend import fetch_with_trace
from .config import InteractionSettings

LOGGER = logging.getLogger(__name__)

TOKEN_VALIDITY_SECONDS = 15 * 60


class InteractionWebhookClient:
    def __init__(self, config: InteractionSettings, client: Optional[httpx.Client] = None):
        self.config = config
        self.api_base = config.discord_api_base.rstrip("/")
        self.client = client or httpx.Client()

    def _webhook_url(self, application_id: Optional[str], token: Optional[str]) -> Optional[str]:
        app_id = application_id or self.config.application_id
        if not app_id or not token:
            return None
        return f"{self.api_base}/webhooks/{app_id}/{token}"

    def edit_original(self, application_id: Optional[str], token: Optional[str], payload: Dict[str, Any]) -> bool:
        """
        Replaces the interaction's original response.

        Returns False without sending anything when the application id or
        token is missing. Raises `BackendError` if Discord rejects the edit.
        """
        url = self._webhook_url(application_id, token)
        if url is None:
            LOGGER.warning("[edit-original] missing application id or token; skipping.")
            return False
        fetch_with_trace(
            self.client, "edit-original", "PATCH", f"{url}/messages/@original",
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=self.config.outbound_timeout,
        )
        return True

    def post_followup(self, application_id: Optional[str], token: Optional[str], payload: Dict[str, Any]) -> bool:
        """Posts an additional message on the interaction; same contract as `edit_original`."""
        url = self._webhook_url(application_id, token)
        if url is None:
            LOGGER.warning("[follow-up] missing application id or token; skipping.")
            return False
        fetch_with_trace(
            self.client, "follow-up", "POST", url,
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=self.config.outbound_timeout,
        )
        return True

    def close(self) -> None:
        self.client.close()
