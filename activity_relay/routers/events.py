"""Activity log read API."""

import json

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from activity_relay.config import settings
from activity_relay.db import get_session_factory
from activity_relay.models import Event

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


class EventDetails(BaseModel):
    added_user_name: str | None = None
    removed_user_name: str | None = None
    from_section: str | None = None
    to_section: str | None = None


class EventOut(BaseModel):
    id: str
    project_id: str | None = None
    task_id: str | None = None
    subtask_id: str | None = None
    action_type: str
    actor_name: str
    task_name: str | None = None
    comment_text: str | None = None
    created_at: str | None = None
    details: EventDetails
    raw: dict | list | None = None


class EventsResponse(BaseModel):
    data: list[EventOut]
    count: int  # rows on this page
    total: int  # rows matching the filter
    limit: int
    offset: int


def _load_raw(raw_json: str):
    try:
        return json.loads(raw_json)
    except ValueError:
        return None


def _to_out(event: Event) -> EventOut:
    raw = _load_raw(event.raw_json)
    return EventOut(
        id=event.id,
        project_id=event.project_id,
        task_id=event.task_id,
        subtask_id=event.subtask_id,
        action_type=event.action_type,
        actor_name=event.actor_name,
        task_name=event.task_name,
        comment_text=event.comment_text,
        created_at=event.created_at,
        details=EventDetails(
            added_user_name=event.added_user_name,
            removed_user_name=event.removed_user_name,
            from_section=event.from_section,
            to_section=event.to_section,
        ),
        raw=raw if isinstance(raw, (dict, list)) else None,
    )


@router.get("/events", response_model=EventsResponse)
@limiter.limit(settings.events_rate_limit)
async def list_events(
    request: Request,
    project_id: str | None = Query(default=None, description="Only events for this project gid"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """List stored events, newest first."""
    stmt = select(Event)
    count_stmt = select(func.count()).select_from(Event)
    if project_id:
        stmt = stmt.where(Event.project_id == project_id)
        count_stmt = count_stmt.where(Event.project_id == project_id)
    stmt = stmt.order_by(Event.created_at.desc(), Event.id.desc()).limit(limit).offset(offset)

    async with session_factory() as session:
        result = await session.execute(stmt)
        events = result.scalars().all()
        total = await session.scalar(count_stmt)

    data = [_to_out(e) for e in events]
    return EventsResponse(data=data, count=len(data), total=total or 0, limit=limit, offset=offset)
