# finzoo/models/session_activity.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field


class SessionActivity(SQLModel, table=True):
    """
    Durable side of the inactivity monitor.

    One row per Supabase session id. `last_activity` is written at most
    once per persist interval; expiry clears it and stamps `expired_at`,
    after which the session id is refused.
    """

    __tablename__ = "session_activity"

    session_id: str = Field(primary_key=True, max_length=64)

    user_id: uuid.UUID | None = Field(default=None, index=True)

    last_activity: datetime | None = None

    expired_at: datetime | None = Field(default=None, index=True)
