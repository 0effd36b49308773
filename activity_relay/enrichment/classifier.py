"""Maps a raw Asana webhook event to an action type plus display details."""

from dataclasses import dataclass, field
from typing import Any

TASK_CREATED = "task_created"
TASK_DELETED = "task_deleted"
TASK_MOVED = "task_moved"
TASK_RENAMED = "task_renamed"
TASK_REASSIGNED = "task_reassigned"
COMMENT_ADDED = "comment_added"
COMMENT_EDITED = "comment_edited"
COMMENT_DELETED = "comment_deleted"
UNKNOWN = "unknown"

COMMENT_SUBTYPES = frozenset({COMMENT_ADDED, COMMENT_EDITED, COMMENT_DELETED})

_TASK_ACTIONS = {
    "added": TASK_CREATED,
    "removed": TASK_DELETED,
}

_TASK_FIELD_CHANGES = {
    "memberships": TASK_MOVED,
    "name": TASK_RENAMED,
    "assignee": TASK_REASSIGNED,
}


@dataclass(frozen=True)
class Classification:
    action_type: str
    details: dict[str, str] = field(default_factory=dict)


def dig(obj: Any, *path: str) -> Any:
    """Nested dict lookup that returns None instead of raising."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _section_details(change: Any) -> dict[str, str]:
    details: dict[str, str] = {}
    to_section = _text(dig(change, "added_value", "section", "name"))
    if to_section:
        details["to_section"] = to_section
    from_section = _text(dig(change, "removed_value", "section", "name"))
    if from_section:
        details["from_section"] = from_section
    return details


def classify(raw_event: Any) -> Classification:
    """Classify an event. Total: unrecognized shapes fall back to the raw action."""
    action = _text(dig(raw_event, "action"))
    action_type = action or UNKNOWN
    details: dict[str, str] = {}

    if dig(raw_event, "resource", "resource_type") == "task":
        if action in _TASK_ACTIONS:
            action_type = _TASK_ACTIONS[action]
        elif action == "changed":
            change = dig(raw_event, "change")
            changed_field = _text(dig(change, "field"))
            if changed_field in _TASK_FIELD_CHANGES:
                action_type = _TASK_FIELD_CHANGES[changed_field]
                if action_type == TASK_MOVED:
                    details = _section_details(change)

    # Comment stories win over anything derived from the resource type
    subtype = _text(dig(raw_event, "resource", "resource_subtype"))
    if subtype in COMMENT_SUBTYPES:
        action_type = subtype

    return Classification(action_type=action_type, details=details)
