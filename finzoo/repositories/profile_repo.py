# finzoo/repositories/profile_repo.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from finzoo.domain.profile import Profile
from finzoo.models.profile import ProfileRow
from finzoo.repositories.mappers import PROFILE_WRITABLE_FIELDS, profile_from_row


class ProfileRepository:
    """
    Data access layer for `profiles`.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, profile_id: uuid.UUID) -> Profile | None:
        """Return a Profile by primary key, or None if not found."""
        row = session.get(ProfileRow, profile_id)
        return profile_from_row(row) if row else None

    def list_all(self, session: Session) -> list[Profile]:
        """All profiles, newest first."""
        stmt = select(ProfileRow).order_by(ProfileRow.created_at.desc())
        return [profile_from_row(row) for row in session.exec(stmt).all()]

    def list_pending(self, session: Session) -> list[Profile]:
        """Profiles waiting for approval, newest first."""
        stmt = (
            select(ProfileRow)
            .where(ProfileRow.is_approved == False)  # noqa: E712
            .order_by(ProfileRow.created_at.desc())
        )
        return [profile_from_row(row) for row in session.exec(stmt).all()]

    def insert(
        self,
        session: Session,
        profile_id: uuid.UUID,
        email: str,
        name: str | None,
    ) -> Profile:
        """
        Insert a new unapproved "user" profile.

        Raises:
            sqlalchemy.exc.IntegrityError: if a row with this id (or email)
            already exists. The session is left for the caller to roll back.
        """
        row = ProfileRow(
            id=profile_id,
            email=email,
            name=name,
            role="user",
            is_approved=False,
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        return profile_from_row(row)

    def update(
        self,
        session: Session,
        profile_id: uuid.UUID,
        **fields,
    ) -> Profile | None:
        """Partial update. Returns None if the profile does not exist."""
        row = session.get(ProfileRow, profile_id)
        if row is None:
            return None
        for key, value in fields.items():
            if key in PROFILE_WRITABLE_FIELDS:
                setattr(row, key, value)
        row.updated_at = datetime.now(timezone.utc)
        session.add(row)
        session.commit()
        session.refresh(row)
        return profile_from_row(row)

    def delete(self, session: Session, profile_id: uuid.UUID) -> bool:
        """Delete a profile. Returns False if it was already gone."""
        row = session.get(ProfileRow, profile_id)
        if row is None:
            return False
        session.delete(row)
        session.commit()
        return True
