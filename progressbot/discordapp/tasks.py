# progressbot/discordapp/tasks.py

"""
Asynchronous Background Tasks for the Discord App.

This module defines the Celery task that performs the second phase of a
deferred interaction: the backend write and the edit of the original Discord
response. It runs in a Celery worker, separate from the web process, so the
interaction endpoint can answer within Discord's 3-second deadline.

Tasks defined here are automatically discovered by the Celery instance defined
in `progressbot/celery.py`.
"""

# Standard library imports
import logging
from typing import Any, Dict

# Third-party imports
from celery import shared_task

# Local application imports
from .backend import BackendGateway, HttpBackendGateway
from .config import InteractionSettings
from .deferred import DeferredJob, run_deferred_job
from .webhooks import InteractionWebhookClient

LOGGER = logging.getLogger(__name__)


def build_backend_gateway(config: InteractionSettings) -> BackendGateway:
    return HttpBackendGateway(config)


def build_webhook_client(config: InteractionSettings) -> InteractionWebhookClient:
    return InteractionWebhookClient(config)


@shared_task(ignore_result=True, max_retries=0, acks_late=False)
def complete_deferred_interaction(job_data: Dict[str, Any]) -> bool:
    """
    Runs phase 2 of a deferred interaction.

    Exactly one backend call is made and the task is never retried; the
    outcome, success or failure, is reported through the original message.

    Args:
        job_data: A `DeferredJob` serialised with `to_dict()`.
    """
    job = DeferredJob.from_dict(job_data)
    config = InteractionSettings.from_django_settings().with_backend_url(job.backend_url)
    gateway = build_backend_gateway(config)
    webhooks = build_webhook_client(config)

    LOGGER.info(f"Running {job.operation} for interaction {job.interaction_id} (project {job.project_id})")
    try:
        return run_deferred_job(job, gateway, webhooks, expose_errors=config.expose_errors)
    finally:
        gateway.close()
        webhooks.close()


def enqueue_deferred_job(job: DeferredJob) -> None:
    """Hands a job to the Celery broker (or runs it inline in eager mode)."""
    complete_deferred_interaction.delay(job.to_dict())
