"""ORM tables: the normalized activity log and Asana account credentials."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from activity_relay.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    """One normalized webhook event. Written once, never updated."""
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str | None] = mapped_column(String(64), index=True)
    task_id: Mapped[str | None] = mapped_column(String(64))
    subtask_id: Mapped[str | None] = mapped_column(String(64))
    action_type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    task_name: Mapped[str | None] = mapped_column(Text)
    comment_text: Mapped[str | None] = mapped_column(Text)
    added_user_name: Mapped[str | None] = mapped_column(String(255))
    removed_user_name: Mapped[str | None] = mapped_column(String(255))
    from_section: Mapped[str | None] = mapped_column(String(255))
    to_section: Mapped[str | None] = mapped_column(String(255))
    # Provider timestamp, kept verbatim (ISO 8601 sorts lexically)
    created_at: Mapped[str | None] = mapped_column(String(64), index=True)
    raw_json: Mapped[str] = mapped_column(Text, nullable=False)


class User(Base):
    """An Asana account that completed OAuth, with its current token pair."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asana_gid: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    access_token: Mapped[str | None] = mapped_column(Text)
    refresh_token: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
