# finzoo/services/profile_gate.py
import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from finzoo.domain.profile import Profile
from finzoo.repositories.profile_repo import ProfileRepository

logger = logging.getLogger(__name__)


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    provided one.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


class ProfileGate:
    """
    Fetch-or-create the profile behind an auth subject.

    Fail-closed: any backend error while reading or creating the profile
    is logged and reported as "no profile", which the callers treat as
    "access denied".
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    def fetch(self, session: Session, user_id: uuid.UUID) -> Profile | None:
        """Read the profile straight from the database."""
        try:
            return self.repo.get_by_id(session, user_id)
        except SQLAlchemyError:
            logger.exception("Profile lookup failed for %s", user_id)
            session.rollback()
            return None

    def resolve(
        self,
        session: Session,
        user_id: uuid.UUID,
        email: str,
        name: str | None = None,
    ) -> Profile | None:
        """
        Return the existing profile or lazily create one.

        New profiles start as role="user", is_approved=False. A duplicate
        key on insert means another request created it first; the row is
        re-read instead of failing.
        """
        profile = self.fetch(session, user_id)
        if profile is not None:
            return profile

        try:
            return self.repo.insert(
                session,
                profile_id=user_id,
                email=email,
                name=name or _default_name_from_email(email),
            )
        except IntegrityError:
            session.rollback()
            logger.info("Profile %s created concurrently; re-reading", user_id)
            return self.fetch(session, user_id)
        except SQLAlchemyError:
            logger.exception("Profile creation failed for %s", user_id)
            session.rollback()
            return None
