# progressbot/discordapp/deferred.py

"""
Deferred acknowledgment and detached completion.

Discord gives an interaction 3 seconds to answer, but a backend write may take
longer. Flows that write therefore run in two phases:

1. **Acknowledge.** The view returns a deferred callback (`{"type": 5}` or
   `{"type": 6}`) and nothing else.
2. **Complete.** Once that response has been sent, the job is handed to a
   Celery worker, which makes exactly one backend call and then edits the
   original response with the outcome.

Phase 2 must not start before phase 1 is on the wire: an edit that reaches
Discord before the acknowledgment is rejected. `DeferredJsonResponse` enforces
this by enqueueing its job from `close()`, which the WSGI server calls only
after the response body has been written.

Nothing is retried. The single backend attempt is final, and a failing
completion call is logged and dropped; the HTTP exchange it would report to is
already over.
"""

# Standard library imports
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict

# Django imports
from django.http import JsonResponse

# Local application imports
from .backend import BackendGateway
from .discord_components import (InteractionCallbackType, deferred_response,
                                 error_text, message_data,
                                 milestone_completed_text,
                                 progress_posted_text)
from .exceptions import ProgressbotError
from .webhooks import TOKEN_VALIDITY_SECONDS, InteractionWebhookClient

LOGGER = logging.getLogger(__name__)

COMPLETE_MILESTONE = "complete_milestone"
POST_PROGRESS = "post_progress"


@dataclass(frozen=True)
class DeferredJob:
    """
    Everything phase 2 needs, in a JSON-serialisable form.

    Jobs cross the Celery broker, so they hold only plain values. The service
    bot token is never part of a job; the worker reads it from its own settings.
    """
    operation: str
    interaction_id: str
    application_id: str
    token: str
    user_id: str
    project_id: str
    project_name: str
    title: str = ""
    description: str = ""
    backend_url: str = ""
    received_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeferredJob":
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        return cls(**known)

    @property
    def token_expired(self) -> bool:
        return time.time() - self.received_at > TOKEN_VALIDITY_SECONDS


# ==============================================================================
# 1. Phase 1: the acknowledgment
# ==============================================================================

class DeferredJsonResponse(JsonResponse):
    """A deferred callback body that schedules its job once it has been sent."""

    def __init__(self, data: Dict[str, Any], job: DeferredJob, enqueue: Callable[[DeferredJob], Any], **kwargs):
        super().__init__(data, **kwargs)
        self.job = job
        self._enqueue = enqueue
        self._enqueued = False

    def close(self) -> None:
        super().close()
        if self._enqueued:
            return
        self._enqueued = True
        try:
            self._enqueue(self.job)
            LOGGER.info(f"Queued {self.job.operation} for interaction {self.job.interaction_id}")
        except Exception as e:
            # The acknowledgment is already sent; there is no request left to fail.
            LOGGER.exception(f"Could not queue {self.job.operation} for interaction {self.job.interaction_id}: {e}")


class DeferredCompletionRunner:
    def __init__(self, enqueue: Callable[[DeferredJob], Any]):
        self.enqueue = enqueue

    def defer(self, callback_type: InteractionCallbackType, job: DeferredJob) -> DeferredJsonResponse:
        """Builds the phase 1 response; phase 2 is attached to it, not started."""
        return DeferredJsonResponse(deferred_response(callback_type), job=job, enqueue=self.enqueue)


# ==============================================================================
# 2. Phase 2: the detached work
# ==============================================================================

def _complete_milestone(job: DeferredJob, gateway: BackendGateway) -> Dict[str, Any]:
    gateway.complete_active_milestone(job.project_id, job.user_id)
    return message_data(milestone_completed_text(job.project_name, job.user_id), ephemeral=True, components=[])


def _post_progress(job: DeferredJob, gateway: BackendGateway) -> Dict[str, Any]:
    gateway.post_progress_update(job.project_id, job.title, job.description, job.user_id)
    return message_data(progress_posted_text(job.project_name, job.user_id, job.title, job.description), ephemeral=False)


OPERATIONS = {
    COMPLETE_MILESTONE: (_complete_milestone, "Failed to update milestone"),
    POST_PROGRESS: (_post_progress, "Failed to post update"),
}


def _send_completion(send: Callable[..., bool], job: DeferredJob, payload: Dict[str, Any]) -> bool:
    """Best-effort completion call. Never raises."""
    if job.token_expired:
        LOGGER.warning(f"Interaction token for {job.interaction_id} has expired; result not delivered.")
        return False
    try:
        return send(job.application_id, job.token, payload)
    except Exception as e:
        LOGGER.exception(f"Completion call failed for interaction {job.interaction_id}: {e}")
        return False


def _report_failure(job: DeferredJob, error: Exception, webhooks: InteractionWebhookClient,
                    fallback: str, expose_errors: bool) -> None:
    if job.operation == POST_PROGRESS:
        # The deferred message is public, so the reason goes to a follow-up
        # only the invoker can see.
        _send_completion(webhooks.edit_original, job, message_data(f"❌ {fallback}", ephemeral=False))
        if expose_errors:
            _send_completion(webhooks.post_followup, job, message_data(error_text(error, fallback, True)))
        return
    _send_completion(webhooks.edit_original, job,
                     message_data(error_text(error, fallback, expose_errors), ephemeral=True, components=[]))


def run_deferred_job(job: DeferredJob, gateway: BackendGateway, webhooks: InteractionWebhookClient,
                     expose_errors: bool = False) -> bool:
    """
    Performs phase 2 for one interaction.

    Makes exactly one backend call, then reports the outcome through the
    interaction webhook. Returns True if the backend call succeeded, whatever
    happened to the completion call afterwards.

    Args:
        job: The deferred job created when the interaction was acknowledged.
        gateway: The backend used for the single write.
        webhooks: The client for edit-original / follow-up calls.
        expose_errors: Include failure details in the user-facing message.
    """
    operation = OPERATIONS.get(job.operation)
    if operation is None:
        LOGGER.error(f"Unknown deferred operation '{job.operation}' for interaction {job.interaction_id}")
        return False
    perform, fallback = operation

    try:
        success_payload = perform(job, gateway)
    except ProgressbotError as e:
        LOGGER.error(f"[{job.operation}] failed for project {job.project_id}: {e}")
        _report_failure(job, e, webhooks, fallback, expose_errors)
        return False
    except Exception as e:
        LOGGER.exception(f"[{job.operation}] unexpected error for project {job.project_id}: {e}")
        _report_failure(job, e, webhooks, fallback, expose_errors)
        return False

    LOGGER.info(f"[{job.operation}] succeeded for project {job.project_id} (interaction {job.interaction_id})")
    _send_completion(webhooks.edit_original, job, success_payload)
    return True
