# progressbot/discordapp/views.py

"""
Main Views for the Discord Interaction Endpoint.

This module receives every interaction Discord delivers to the application:
the endpoint-registration PING, slash commands, select-menu choices and modal
submissions. It verifies the request, builds an `InteractionDispatcher` for
it, and returns the dispatcher's response.

The main entry point is:
- `interactions`: Receives and routes all interaction payloads.
"""

# Standard library imports
import json
import logging

# Django imports
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

# Local application imports
from .config import InteractionSettings
from .deferred import DeferredCompletionRunner
from .discord_components import UNSUPPORTED_INTERACTION_TEXT, message_response
from .dispatcher import InteractionDispatcher
from .tasks import build_backend_gateway, enqueue_deferred_job
from .utils import discord_verification_required

LOGGER = logging.getLogger(__name__)


def build_dispatcher(request: HttpRequest) -> InteractionDispatcher:
    """Wires a dispatcher from the current settings for one request."""
    config = InteractionSettings.from_django_settings().for_request(request)
    return InteractionDispatcher(
        config=config,
        gateway=build_backend_gateway(config),
        runner=DeferredCompletionRunner(enqueue=enqueue_deferred_job),
    )


@csrf_exempt
@require_POST
@discord_verification_required
def interactions(request: HttpRequest) -> HttpResponse:
    """
    Handles and routes all incoming interaction payloads from Discord.

    Only runs for requests whose signature verified. Whatever happens inside
    the dispatcher, Discord receives a well-formed callback body.
    """
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        LOGGER.warning("Interaction body is not valid JSON.")
        return HttpResponse("Invalid JSON body.", status=400)

    dispatcher = build_dispatcher(request)
    try:
        return dispatcher.dispatch(payload)
    except Exception as e:
        LOGGER.exception(f"Unexpected error in interactions view: {e}")
        return JsonResponse(message_response(UNSUPPORTED_INTERACTION_TEXT, ephemeral=True))
    finally:
        dispatcher.gateway.close()
