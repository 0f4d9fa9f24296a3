# progressbot/discordapp/utils.py

"""
Security and Utility Functions for the Discord App.

This module contains the request-signing check for the interaction endpoint.
Discord signs every interaction with the application's Ed25519 key; a request
whose signature does not verify is rejected before its body is parsed, so no
interaction data from an unverified request is ever inspected.
"""

# Standard library imports
import binascii
import logging
from functools import wraps
from typing import Optional

# Django imports
from django.conf import settings
from django.http import HttpRequest, HttpResponse

# Third-party imports
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

# Initialize a logger for this module.
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"


def verify_signature(raw_body: bytes, signature: Optional[str], timestamp: Optional[str],
                     public_key: Optional[str]) -> bool:
    """
    Checks a detached Ed25519 signature over `timestamp + raw_body`.

    `signature` and `public_key` are hex strings as Discord sends and displays
    them. Returns False for any missing or malformed input instead of raising.
    """
    if not signature or not timestamp or not public_key:
        return False
    try:
        key = Ed25519PublicKey.from_public_bytes(binascii.unhexlify(public_key))
        key.verify(binascii.unhexlify(signature), timestamp.encode("utf-8") + raw_body)
    except (InvalidSignature, ValueError, TypeError, binascii.Error):
        return False
    return True


def discord_verification_required(view_func):
    """
    A Django view decorator to verify that an incoming request is from Discord.

    How it works:
    1.  **Headers:** It reads the `X-Signature-Ed25519` and
        `X-Signature-Timestamp` headers.
    2.  **Key:** It takes the application's public key from
        `settings.DISCORD_PUBLIC_KEY`.
    3.  **Verification:** It verifies the signature over the timestamp
        followed by the raw, unparsed request body.

    If verification fails for any reason (missing header, missing key, bad
    signature), it returns a 401 and the view never runs. Discord itself sends
    deliberately invalid signatures during endpoint registration and expects
    exactly this rejection.

    Usage:
        @discord_verification_required
        def my_discord_view(request):
            # This code will only run if the request is verified.
            ...
    """
    @wraps(view_func)
    def wrapper(request: HttpRequest, *args, **kwargs):
        public_key = getattr(settings, "DISCORD_PUBLIC_KEY", None)
        if not public_key:
            # Critical configuration error; reported to the caller as a plain 401.
            logger.error("DISCORD_PUBLIC_KEY is not set.")
            return HttpResponse("Bad signature", status=401)

        signature = request.headers.get(SIGNATURE_HEADER)
        timestamp = request.headers.get(TIMESTAMP_HEADER)
        if not verify_signature(request.body, signature, timestamp, public_key):
            logger.warning("Discord signature verification failed.")
            return HttpResponse("Bad signature", status=401)

        return view_func(request, *args, **kwargs)

    return wrapper
