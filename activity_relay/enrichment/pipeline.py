"""Turns one raw webhook event into a storage-ready NormalizedEvent."""

import json
import uuid
from typing import Any

from pydantic import BaseModel

from activity_relay.credentials import Credential
from activity_relay.enrichment.classifier import COMMENT_ADDED, COMMENT_EDITED, classify, dig
from activity_relay.enrichment.resolver import UNKNOWN_USER, NameResolver


class NormalizedEvent(BaseModel):
    id: str
    project_id: str | None = None
    task_id: str | None = None
    subtask_id: str | None = None
    action_type: str
    actor_name: str = UNKNOWN_USER
    task_name: str | None = None
    comment_text: str | None = None
    # Reserved: nothing in the event stream populates these yet
    added_user_name: str | None = None
    removed_user_name: str | None = None
    from_section: str | None = None
    to_section: str | None = None
    created_at: str | None = None
    raw_json: str


def _gid(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)) or value == "":
        return None
    return str(value)


def derive_task_id(raw_event: dict) -> str | None:
    if dig(raw_event, "resource", "resource_type") == "task":
        return _gid(dig(raw_event, "resource", "gid"))
    return _gid(dig(raw_event, "parent", "gid"))


def derive_subtask_id(raw_event: dict) -> str | None:
    if dig(raw_event, "parent", "resource_type") == "subtask":
        return _gid(dig(raw_event, "parent", "gid"))
    return None


def derive_project_id(raw_event: dict) -> str | None:
    if dig(raw_event, "parent", "resource_type") == "project":
        return _gid(dig(raw_event, "parent", "gid"))
    return (
        _gid(dig(raw_event, "change", "added_value", "project", "gid"))
        or _gid(dig(raw_event, "change", "removed_value", "project", "gid"))
    )


class EnrichmentPipeline:
    """Classifies an event and fills in names via the resolver.

    Lookups run one after another; each failed lookup leaves its field at the
    fallback and does not stop the others.
    """

    def __init__(self, resolver: NameResolver):
        self._resolver = resolver

    async def enrich(self, raw_event: dict, credential: Credential) -> NormalizedEvent:
        actor = await self._resolver.resolve_user(_gid(dig(raw_event, "user", "gid")), credential)

        task_id = derive_task_id(raw_event)
        subtask_id = derive_subtask_id(raw_event)
        task = await self._resolver.resolve_task(task_id, credential)

        classification = classify(raw_event)

        comment_text = None
        if classification.action_type in (COMMENT_ADDED, COMMENT_EDITED):
            comment = await self._resolver.resolve_comment(
                _gid(dig(raw_event, "resource", "gid")), credential
            )
            comment_text = comment.or_fallback(None)

        created_at = dig(raw_event, "created_at")

        return NormalizedEvent(
            id=str(uuid.uuid4()),
            project_id=derive_project_id(raw_event),
            task_id=task_id,
            subtask_id=subtask_id,
            action_type=classification.action_type,
            actor_name=actor.or_fallback(UNKNOWN_USER),
            task_name=task.or_fallback(None),
            comment_text=comment_text,
            from_section=classification.details.get("from_section"),
            to_section=classification.details.get("to_section"),
            created_at=created_at if isinstance(created_at, str) else None,
            raw_json=json.dumps(raw_event),
        )
