# progressbot/discordapp/discord_components.py

"""
Discord Interaction Response Construction Utilities

This module provides functions to build the JSON bodies Discord expects in
reply to an interaction: plain messages, the project and status select menus,
the progress-update modal, and the deferred acknowledgments. It also holds the
user-facing text of every terminal message.

Everything here is pure: no network calls and no settings lookups. Keeping the
payload shapes in one place leaves `dispatcher.py` focused on routing and
`tasks.py` focused on the background work.
"""

# Standard library imports
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional

# Local application imports
from .backend import AssignedProject
from .wizard import PROGRESS_MODAL, encode_option, encode_state

# --- Discord Protocol Constants ---
class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class InteractionCallbackType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    MODAL = 9


class ComponentType(IntEnum):
    ACTION_ROW = 1
    STRING_SELECT = 3
    TEXT_INPUT = 4


class TextInputStyle(IntEnum):
    SHORT = 1
    PARAGRAPH = 2


EPHEMERAL = 1 << 6
PUBLIC = 0

# Discord rejects select menus with more than 25 options.
MAX_SELECT_OPTIONS = 25

STATUS_COMPLETED = "completed"
TITLE_FIELD = "title_input"
DESCRIPTION_FIELD = "desc_input"
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 2000

# --- User-facing Text ---
NO_PROJECTS_TEXT = "No projects are assigned to you yet."
NO_PROJECT_SELECTED_TEXT = "❌ No project selected."
UNKNOWN_COMMAND_TEXT = "Unknown command."
UNKNOWN_ACTION_TEXT = "Unknown action."
UNKNOWN_MODAL_TEXT = "Unknown modal."
UNSUPPORTED_INTERACTION_TEXT = "Unsupported interaction."
PICK_PROGRESS_PROJECT_TEXT = "Choose the project you want to post a recent update for:"
PICK_MILESTONE_PROJECT_TEXT = "Choose the project whose active milestone you want to update:"
PICK_STATUS_TEXT = (
    "Pick a status to apply to the **active milestone**.\n"
    "_Note: you can only actually **apply** `completed`. Choosing anything else will just inform you._"
)


# ==============================================================================
# 1. Components
# ==============================================================================

def build_project_select(custom_id: str, projects: Iterable[AssignedProject], placeholder: str) -> Dict[str, Any]:
    """
    Builds an action row holding a single-select menu of projects.

    Only the first 25 projects (in the order the backend returned them) are
    offered. Each option's value is `id::urlEncodedName`, so the next
    interaction knows which project was picked without any server-side state.
    """
    options = [
        {"label": project.name, "value": encode_option(project.id, project.name)}
        for project in list(projects)[:MAX_SELECT_OPTIONS]
    ]
    return {
        "type": ComponentType.ACTION_ROW,
        "components": [
            {
                "type": ComponentType.STRING_SELECT,
                "custom_id": custom_id,
                "placeholder": placeholder,
                "options": options,
            }
        ],
    }


def build_status_select(custom_id: str) -> Dict[str, Any]:
    """Builds the milestone status menu. `completed` is the only status offered."""
    return {
        "type": ComponentType.ACTION_ROW,
        "components": [
            {
                "type": ComponentType.STRING_SELECT,
                "custom_id": custom_id,
                "placeholder": "Pick a status",
                "options": [{"label": STATUS_COMPLETED, "value": STATUS_COMPLETED}],
            }
        ],
    }


def build_progress_modal(project_id: str, project_name: str) -> Dict[str, Any]:
    """
    Builds the "Post a recent update" modal.

    The project travels in the modal's own `custom_id`
    (`progress_modal:<id>:<name>`) and comes back with the submission.

    Args:
        project_id: The backend id of the selected project.
        project_name: The display name, used again in the final message.

    Returns:
        The `data` object of a MODAL callback.
    """
    return {
        "title": "Post a recent update",
        "custom_id": encode_state(PROGRESS_MODAL, project_id, project_name),
        "components": [
            {
                "type": ComponentType.ACTION_ROW,
                "components": [{
                    "type": ComponentType.TEXT_INPUT,
                    "custom_id": TITLE_FIELD,
                    "label": "Title",
                    "style": TextInputStyle.SHORT,
                    "min_length": TITLE_MIN_LENGTH,
                    "max_length": TITLE_MAX_LENGTH,
                    "required": True,
                }],
            },
            {
                "type": ComponentType.ACTION_ROW,
                "components": [{
                    "type": ComponentType.TEXT_INPUT,
                    "custom_id": DESCRIPTION_FIELD,
                    "label": "Description (optional)",
                    "style": TextInputStyle.PARAGRAPH,
                    "required": False,
                    "max_length": DESCRIPTION_MAX_LENGTH,
                }],
            },
        ],
    }


# ==============================================================================
# 2. Callback Bodies
# ==============================================================================

def pong_response() -> Dict[str, Any]:
    return {"type": InteractionCallbackType.PONG}


def message_data(content: str, ephemeral: bool = True, components: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """The `data` object of a message; also used as an edit-original body."""
    data: Dict[str, Any] = {"content": content, "flags": EPHEMERAL if ephemeral else PUBLIC}
    if components is not None:
        data["components"] = components
    return data


def message_response(content: str, ephemeral: bool = True, components: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "type": InteractionCallbackType.CHANNEL_MESSAGE_WITH_SOURCE,
        "data": message_data(content, ephemeral, components),
    }


def update_message_response(content: str, components: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Replaces the message the component was attached to."""
    return {
        "type": InteractionCallbackType.UPDATE_MESSAGE,
        "data": message_data(content, ephemeral=True, components=components if components is not None else []),
    }


def modal_response(modal: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": InteractionCallbackType.MODAL, "data": modal}


def deferred_response(callback_type: InteractionCallbackType) -> Dict[str, Any]:
    if callback_type not in (
        InteractionCallbackType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE,
        InteractionCallbackType.DEFERRED_UPDATE_MESSAGE,
    ):
        raise ValueError(f"{callback_type!r} is not a deferred callback type")
    return {"type": callback_type}


# ==============================================================================
# 3. Message Text
# ==============================================================================

def error_text(error: BaseException, fallback: str, expose_errors: bool) -> str:
    """Formats a failure for the user; details only when explicitly enabled."""
    detail = str(error) if expose_errors else ""
    return f"❌ {detail or fallback}"


def status_not_applied_text(choice: str) -> str:
    return (
        f"You picked `{choice}`. Via Discord you can only mark the active milestone as `completed`. "
        f"No changes were made."
    )


def milestone_completed_text(project_name: str, user_id: str) -> str:
    return f"🎯 **{project_name}**: active milestone **marked completed** by <@{user_id}>"


def progress_posted_text(project_name: str, user_id: str, title: str, description: str) -> str:
    return "\n".join([
        f"📝 **{project_name}**: recent update from <@{user_id}>",
        f"**Title:** {title}",
        f"**Description:** {description}" if description else "**Description:** _none_",
    ])
