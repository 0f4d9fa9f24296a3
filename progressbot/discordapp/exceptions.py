# progressbot/discordapp/exceptions.py

"""
Exception types raised by the Discord interaction app.

Handlers catch these at the edge of each flow and turn them into an ephemeral
message for the invoking user; they never escape into the HTTP response.
"""

from typing import Optional


class ProgressbotError(Exception):
    """Base class for all errors raised by this app."""


class ConfigurationError(ProgressbotError):
    """A required setting (e.g. a bearer credential) is missing."""


class BackendError(ProgressbotError):
    """
    A call to the project-management backend failed.

    Covers both non-success HTTP statuses and transport errors (timeouts,
    refused connections). `status` is None for the latter.
    """

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url
