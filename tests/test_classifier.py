import copy

import pytest

from activity_relay.enrichment.classifier import classify


def _task_event(action: str, change: dict | None = None, **resource) -> dict:
    event = {
        "action": action,
        "resource": {"resource_type": "task", "gid": "T1", **resource},
        "created_at": "2024-05-01T10:00:00.000Z",
    }
    if change is not None:
        event["change"] = change
    return event


@pytest.mark.parametrize(
    "action,expected",
    [("added", "task_created"), ("removed", "task_deleted")],
)
def test_task_added_and_removed(action, expected):
    result = classify(_task_event(action))
    assert result.action_type == expected
    assert result.details == {}


@pytest.mark.parametrize(
    "field,expected",
    [("name", "task_renamed"), ("assignee", "task_reassigned")],
)
def test_task_field_changes(field, expected):
    result = classify(_task_event("changed", {"field": field}))
    assert result.action_type == expected
    assert result.details == {}


def test_move_between_sections_sets_both_sections():
    change = {
        "field": "memberships",
        "added_value": {"section": {"gid": "S2", "name": "Done"}},
        "removed_value": {"section": {"gid": "S1", "name": "In Progress"}},
    }
    result = classify(_task_event("changed", change))
    assert result.action_type == "task_moved"
    assert result.details == {"to_section": "Done", "from_section": "In Progress"}


def test_move_with_only_destination_section():
    change = {"field": "memberships", "added_value": {"section": {"name": "Backlog"}}}
    result = classify(_task_event("changed", change))
    assert result.action_type == "task_moved"
    assert result.details == {"to_section": "Backlog"}


def test_unhandled_task_field_passes_raw_action_through():
    result = classify(_task_event("changed", {"field": "due_on"}))
    assert result.action_type == "changed"
    assert result.details == {}


def test_comment_subtype_overrides_task_classification():
    event = _task_event("changed", {"field": "name"}, resource_subtype="comment_added")
    assert classify(event).action_type == "comment_added"


@pytest.mark.parametrize("subtype", ["comment_added", "comment_edited", "comment_deleted"])
def test_story_comment_subtypes(subtype):
    event = {
        "action": "added",
        "resource": {"resource_type": "story", "resource_subtype": subtype, "gid": "S1"},
        "parent": {"resource_type": "task", "gid": "T1"},
    }
    assert classify(event).action_type == subtype


def test_unrecognized_resource_uses_raw_action():
    event = {"action": "added", "resource": {"resource_type": "project", "gid": "P1"}}
    assert classify(event).action_type == "added"


def test_missing_action_is_unknown():
    assert classify({"resource": {"resource_type": "section"}}).action_type == "unknown"
    assert classify({}).action_type == "unknown"


@pytest.mark.parametrize(
    "event",
    [
        None,
        "not an event",
        [],
        {"action": ["added"], "resource": "task"},
        {"action": "changed", "resource": {"resource_type": "task"}, "change": "memberships"},
        {"action": "changed", "resource": {"resource_type": "task"}, "change": {"field": {"x": 1}}},
        {"resource": {"resource_subtype": ["comment_added"]}},
        {
            "action": "changed",
            "resource": {"resource_type": "task"},
            "change": {"field": "memberships", "added_value": {"section": {"name": 42}}},
        },
    ],
)
def test_malformed_shapes_never_raise(event):
    result = classify(event)
    assert isinstance(result.action_type, str)


def test_classification_is_pure_and_repeatable():
    change = {
        "field": "memberships",
        "added_value": {"section": {"name": "Done"}},
        "removed_value": {"section": {"name": "Doing"}},
    }
    event = _task_event("changed", change)
    snapshot = copy.deepcopy(event)

    first = classify(event)
    second = classify(event)

    assert first == second
    assert first.details is not second.details
    assert event == snapshot
