# finzoo/repositories/activity_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, select

from finzoo.models.session_activity import SessionActivity


class ActivityRepository:
    """
    Data access layer for `session_activity`.

    Only the inactivity monitor uses this; rows never leave it.
    """

    def get(self, session: Session, session_id: str) -> SessionActivity | None:
        return session.get(SessionActivity, session_id)

    def list_active(self, session: Session) -> list[SessionActivity]:
        """Rows that have not been expired yet."""
        stmt = select(SessionActivity).where(SessionActivity.expired_at.is_(None))
        return session.exec(stmt).all()

    def save_activity(
        self,
        session: Session,
        session_id: str,
        user_id: uuid.UUID | None,
        last_activity: datetime,
    ) -> None:
        row = session.get(SessionActivity, session_id)
        if row is None:
            row = SessionActivity(session_id=session_id, user_id=user_id)
        if user_id is not None:
            row.user_id = user_id
        row.last_activity = last_activity
        session.add(row)
        session.commit()

    def mark_expired(
        self,
        session: Session,
        session_id: str,
        expired_at: datetime,
    ) -> None:
        """Clear the persisted activity and remember the session as ended."""
        row = session.get(SessionActivity, session_id)
        if row is None:
            row = SessionActivity(session_id=session_id)
        row.last_activity = None
        row.expired_at = expired_at
        session.add(row)
        session.commit()
