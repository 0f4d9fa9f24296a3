# progressbot/discordapp/wizard.py

"""
Wizard State Encoding for Discord Component Identifiers.

The progress and milestone flows span several interactions, but nothing is
stored between them. Instead, the state of the flow travels inside the
`custom_id` of the next component (or modal) and inside the `value` of each
select option. Discord hands these strings back verbatim on the next hop.

Two formats are used:

- Transition identifiers: ``tag:projectId:urlEncodedProjectName``
  (e.g. ``set_status:42:Alpha%20Team``). A bare ``tag`` is also valid.
- Option values: ``projectId::urlEncodedLabel`` (e.g. ``42::Alpha``).

Every string decoded here comes from the client, so decoding never raises.
Missing or malformed segments fall back to "no selection" and a generic label.
"""

# Standard library imports
import re
import urllib.parse
from dataclasses import dataclass
from typing import Optional

# --- Tags & Constants ---
PICK_PROJECT_FOR_PROGRESS = "pick_project_for_progress"
PICK_PROJECT_FOR_MILESTONE = "pick_project_for_milestone"
SET_STATUS = "set_status"
PROGRESS_MODAL = "progress_modal"

STATE_DELIMITER = ":"
OPTION_DELIMITER = "::"
DEFAULT_PROJECT_NAME = "Project"

# Same unreserved set as JavaScript's encodeURIComponent, so identifiers on
# messages posted by older deployments still decode.
_SAFE_CHARS = "-_.!~*'()"

# A '%' not followed by two hex digits.
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class WizardState:
    """The continuation carried by a component or modal `custom_id`."""
    tag: str
    project_id: Optional[str] = None
    project_name: str = DEFAULT_PROJECT_NAME

    @property
    def has_selection(self) -> bool:
        return bool(self.project_id)

    def encode(self) -> str:
        return encode_state(self.tag, self.project_id, self.project_name)


@dataclass(frozen=True)
class ProjectOption:
    """A decoded select-menu option value."""
    project_id: Optional[str] = None
    label: str = DEFAULT_PROJECT_NAME


def _escape(text: str) -> str:
    return urllib.parse.quote(text, safe=_SAFE_CHARS)


def _unescape(text: Optional[str]) -> str:
    """Reverses `_escape`. An absent segment or a bad escape yields the generic label."""
    if text is None or _MALFORMED_ESCAPE.search(text):
        return DEFAULT_PROJECT_NAME
    try:
        return urllib.parse.unquote(text, errors="strict")
    except (UnicodeDecodeError, ValueError):
        return DEFAULT_PROJECT_NAME


def _id_segment(project_id) -> str:
    """An absent project id is written as an empty segment."""
    return "" if project_id is None else str(project_id)


def encode_state(tag: str, project_id, project_name: str) -> str:
    """Builds a transition identifier, e.g. ``set_status:42:Alpha``."""
    return STATE_DELIMITER.join([tag, _id_segment(project_id), _escape(project_name)])


def decode_state(custom_id: Optional[str]) -> WizardState:
    """
    Parses a transition identifier back into a `WizardState`.

    Anything unexpected degrades instead of raising: a missing or empty
    project id becomes `None` and an undecodable name becomes "Project".
    """
    if not custom_id or not isinstance(custom_id, str):
        return WizardState(tag="")

    parts = custom_id.split(STATE_DELIMITER)
    tag = parts[0]
    project_id = parts[1] if len(parts) > 1 and parts[1] else None
    project_name = _unescape(parts[2] if len(parts) > 2 else None)
    return WizardState(tag=tag, project_id=project_id, project_name=project_name)


def encode_option(project_id, label: str) -> str:
    """Builds a select-option value, e.g. ``42::Alpha``."""
    return f"{_id_segment(project_id)}{OPTION_DELIMITER}{_escape(label)}"


def decode_option(value: Optional[str]) -> ProjectOption:
    """Parses a select-option value; same defensive policy as `decode_state`."""
    if not value or not isinstance(value, str):
        return ProjectOption()

    project_id, sep, encoded_label = value.partition(OPTION_DELIMITER)
    return ProjectOption(project_id=project_id or None, label=_unescape(encoded_label if sep else None))
