# progressbot/discordapp/dispatcher.py

"""
Interaction routing for the progress and milestone wizards.

`InteractionDispatcher` turns one verified interaction payload into exactly
one response. The flows it drives are:

    /progress-update  -> project picker -> modal -> (deferred) post progress
    /milestone-status -> project picker -> status picker -> (deferred) complete milestone

Which step an interaction belongs to is read from the routing tag at the front
of its `custom_id` (see `wizard.py`); there is no session store. Any payload
that does not match a known step gets a generic ephemeral reply, so Discord
never sees an empty or malformed body.
"""

# Standard library imports
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

# Django imports
from django.http import JsonResponse

# Local application imports
from .backend import BackendGateway
from .config import InteractionSettings
from .deferred import (COMPLETE_MILESTONE, POST_PROGRESS, DeferredCompletionRunner,
                       DeferredJob)
from .discord_components import (DESCRIPTION_FIELD, NO_PROJECT_SELECTED_TEXT,
                                 NO_PROJECTS_TEXT, PICK_MILESTONE_PROJECT_TEXT,
                                 PICK_PROGRESS_PROJECT_TEXT, PICK_STATUS_TEXT,
                                 STATUS_COMPLETED, TITLE_FIELD,
                                 UNKNOWN_ACTION_TEXT, UNKNOWN_COMMAND_TEXT,
                                 UNKNOWN_MODAL_TEXT,
                                 UNSUPPORTED_INTERACTION_TEXT,
                                 InteractionCallbackType, InteractionType,
                                 build_progress_modal, build_project_select,
                                 build_status_select, error_text,
                                 message_response, modal_response,
                                 pong_response, status_not_applied_text,
                                 update_message_response)
from .exceptions import ProgressbotError
from .wizard import (PICK_PROJECT_FOR_MILESTONE, PICK_PROJECT_FOR_PROGRESS,
                     PROGRESS_MODAL, SET_STATUS, WizardState, decode_option,
                     decode_state, encode_state)

LOGGER = logging.getLogger(__name__)

PROGRESS_UPDATE_COMMAND = "progress-update"
MILESTONE_STATUS_COMMAND = "milestone-status"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Interaction:
    """The parts of an inbound interaction payload the wizards use."""
    type: Optional[int]
    id: str = ""
    token: str = ""
    application_id: str = ""
    user_id: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "Interaction":
        if not isinstance(payload, dict):
            return cls(type=None)
        member_user = _as_dict(_as_dict(payload.get("member")).get("user"))
        user = _as_dict(payload.get("user"))
        data = payload.get("data")
        kind = payload.get("type")
        return cls(
            type=kind if isinstance(kind, int) and not isinstance(kind, bool) else None,
            id=str(payload.get("id") or ""),
            token=str(payload.get("token") or ""),
            application_id=str(payload.get("application_id") or ""),
            user_id=str(member_user.get("id") or user.get("id") or ""),
            data=_as_dict(data),
        )

    @property
    def command_name(self) -> str:
        name = self.data.get("name")
        return name if isinstance(name, str) else ""

    @property
    def custom_id(self) -> str:
        custom_id = self.data.get("custom_id")
        return custom_id if isinstance(custom_id, str) else ""

    @property
    def first_value(self) -> Optional[str]:
        values = self.data.get("values")
        if isinstance(values, list) and values and isinstance(values[0], str):
            return values[0]
        return None

    def modal_fields(self) -> Dict[str, str]:
        """Collects `custom_id -> value` from the first input of each modal row."""
        fields: Dict[str, str] = {}
        rows = self.data.get("components")
        for row in rows if isinstance(rows, list) else []:
            components = _as_dict(row).get("components")
            if not isinstance(components, list) or not components or not isinstance(components[0], dict):
                continue
            component = components[0]
            if isinstance(component.get("custom_id"), str) and isinstance(component.get("value"), str):
                fields[component["custom_id"]] = component["value"]
        return fields


def _ephemeral(content: str) -> JsonResponse:
    return JsonResponse(message_response(content, ephemeral=True))


class InteractionDispatcher:
    """
    Routes a decoded interaction to its handler.

    The dispatcher is built per request from an explicit configuration value,
    a backend gateway and a deferred runner; it holds no other state.
    """

    def __init__(self, config: InteractionSettings, gateway: BackendGateway, runner: DeferredCompletionRunner):
        self.config = config
        self.gateway = gateway
        self.runner = runner

        # --- Routing tables ---
        self.type_handlers: Dict[Any, Callable[[Interaction], JsonResponse]] = {
            InteractionType.PING: self._handle_ping,
            InteractionType.APPLICATION_COMMAND: self._handle_command,
            InteractionType.MESSAGE_COMPONENT: self._handle_component,
            InteractionType.MODAL_SUBMIT: self._handle_modal_submit,
        }
        self.command_handlers = {
            PROGRESS_UPDATE_COMMAND: self._handle_progress_update_command,
            MILESTONE_STATUS_COMMAND: self._handle_milestone_status_command,
        }
        self.component_handlers = {
            PICK_PROJECT_FOR_PROGRESS: self._handle_progress_project_picked,
            PICK_PROJECT_FOR_MILESTONE: self._handle_milestone_project_picked,
            SET_STATUS: self._handle_status_picked,
        }
        self.modal_handlers = {
            PROGRESS_MODAL: self._handle_progress_modal,
        }

    def dispatch(self, payload: Any) -> JsonResponse:
        interaction = Interaction.from_payload(payload)
        handler = self.type_handlers.get(interaction.type)
        if handler is None:
            LOGGER.warning(f"Unsupported interaction type: {interaction.type!r}")
            return _ephemeral(UNSUPPORTED_INTERACTION_TEXT)
        return handler(interaction)

    # ==========================================================================
    # 1. Top-level kinds
    # ==========================================================================

    def _handle_ping(self, interaction: Interaction) -> JsonResponse:
        return JsonResponse(pong_response())

    def _handle_command(self, interaction: Interaction) -> JsonResponse:
        handler = self.command_handlers.get(interaction.command_name)
        if handler is None:
            LOGGER.warning(f"Unhandled command: {interaction.command_name!r}")
            return _ephemeral(UNKNOWN_COMMAND_TEXT)
        LOGGER.info(f"Command '{interaction.command_name}' received from {interaction.user_id}")
        return handler(interaction)

    def _handle_component(self, interaction: Interaction) -> JsonResponse:
        state = decode_state(interaction.custom_id)
        handler = self.component_handlers.get(state.tag)
        if handler is None:
            LOGGER.warning(f"Unhandled component action: {interaction.custom_id!r}")
            return _ephemeral(UNKNOWN_ACTION_TEXT)
        return handler(interaction, state)

    def _handle_modal_submit(self, interaction: Interaction) -> JsonResponse:
        state = decode_state(interaction.custom_id)
        handler = self.modal_handlers.get(state.tag)
        if handler is None:
            LOGGER.warning(f"Unhandled modal submission: {interaction.custom_id!r}")
            return _ephemeral(UNKNOWN_MODAL_TEXT)
        return handler(interaction, state)

    # ==========================================================================
    # 2. Commands
    # ==========================================================================

    def _project_picker(self, interaction: Interaction, tag: str, prompt: str) -> JsonResponse:
        """Fetches the invoker's projects and replies with a picker tagged for the next step."""
        try:
            projects = self.gateway.get_assigned_projects(interaction.user_id)
        except ProgressbotError as e:
            LOGGER.error(f"[{interaction.command_name}] could not load projects for {interaction.user_id}: {e}")
            return _ephemeral(error_text(e, "Error loading projects", self.config.expose_errors))

        if not projects:
            return _ephemeral(NO_PROJECTS_TEXT)
        return JsonResponse(message_response(
            prompt,
            ephemeral=True,
            components=[build_project_select(tag, projects, "Select a project")],
        ))

    def _handle_progress_update_command(self, interaction: Interaction) -> JsonResponse:
        return self._project_picker(interaction, PICK_PROJECT_FOR_PROGRESS, PICK_PROGRESS_PROJECT_TEXT)

    def _handle_milestone_status_command(self, interaction: Interaction) -> JsonResponse:
        return self._project_picker(interaction, PICK_PROJECT_FOR_MILESTONE, PICK_MILESTONE_PROJECT_TEXT)

    # ==========================================================================
    # 3. Component actions
    # ==========================================================================

    def _handle_progress_project_picked(self, interaction: Interaction, state: WizardState) -> JsonResponse:
        picked = decode_option(interaction.first_value)
        if not picked.project_id:
            return _ephemeral(NO_PROJECT_SELECTED_TEXT)
        return JsonResponse(modal_response(build_progress_modal(picked.project_id, picked.label)))

    def _handle_milestone_project_picked(self, interaction: Interaction, state: WizardState) -> JsonResponse:
        picked = decode_option(interaction.first_value)
        if not picked.project_id:
            return _ephemeral(NO_PROJECT_SELECTED_TEXT)
        status_custom_id = encode_state(SET_STATUS, picked.project_id, picked.label)
        return JsonResponse(update_message_response(
            PICK_STATUS_TEXT,
            components=[build_status_select(status_custom_id)],
        ))

    def _handle_status_picked(self, interaction: Interaction, state: WizardState) -> JsonResponse:
        if not state.has_selection:
            return _ephemeral(NO_PROJECT_SELECTED_TEXT)

        choice = interaction.first_value or ""
        if choice != STATUS_COMPLETED:
            return JsonResponse(update_message_response(status_not_applied_text(choice)))

        job = self._job(interaction, COMPLETE_MILESTONE, state)
        return self.runner.defer(InteractionCallbackType.DEFERRED_UPDATE_MESSAGE, job)

    # ==========================================================================
    # 4. Modal submissions
    # ==========================================================================

    def _handle_progress_modal(self, interaction: Interaction, state: WizardState) -> JsonResponse:
        if not state.has_selection:
            return _ephemeral(NO_PROJECT_SELECTED_TEXT)

        fields = interaction.modal_fields()
        job = self._job(
            interaction, POST_PROGRESS, state,
            title=fields.get(TITLE_FIELD, ""),
            description=fields.get(DESCRIPTION_FIELD, ""),
        )
        return self.runner.defer(InteractionCallbackType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE, job)

    def _job(self, interaction: Interaction, operation: str, state: WizardState, **extra: str) -> DeferredJob:
        return DeferredJob(
            operation=operation,
            interaction_id=interaction.id,
            application_id=interaction.application_id or self.config.application_id,
            token=interaction.token,
            user_id=interaction.user_id,
            project_id=state.project_id or "",
            project_name=state.project_name,
            backend_url=self.config.backend_url,
            **extra,
        )
