# finzoo/services/user_service.py
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from finzoo.core.auth_gateway import AuthGatewayError, SupabaseAuthGateway
from finzoo.domain.profile import Profile
from finzoo.repositories.profile_repo import ProfileRepository
from finzoo.schemas.profile import ProfileList, ProfileRead, RoleUpdate, UserFilter
from finzoo.services.stats_service import user_stats

logger = logging.getLogger(__name__)


class AdminActionError(Exception):
    """
    Failure of the privileged delete-user endpoint.

    Rendered as {"error": message} rather than FastAPI's {"detail": ...}.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _matches(profile: Profile, user_filter: UserFilter, query: str) -> bool:
    if query:
        haystack = f"{profile.name or ''}\n{profile.email}".lower()
        if query not in haystack:
            return False
    if user_filter == "admins":
        return profile.role == "admin"
    if user_filter == "users":
        return profile.role == "user"
    if user_filter == "pending":
        return not profile.is_approved
    if user_filter == "approved":
        return profile.is_approved
    return True


class UserService:
    """
    Business logic for admin account management.

    Responsibilities:
      - approve / revoke / reject sign-ups, change roles, delete users
      - refuse self-actions (no self-demotion, self-revoke or self-delete)
      - allow one in-flight action per target user; other users stay
        actionable while it runs
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo
        self._lock = threading.Lock()
        self._in_flight: set[uuid.UUID] = set()

    # ----- Helpers -----

    @contextmanager
    def action_for(self, user_id: uuid.UUID):
        with self._lock:
            if user_id in self._in_flight:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Another action is already running for this user",
                )
            self._in_flight.add(user_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(user_id)

    def is_busy(self, user_id: uuid.UUID) -> bool:
        with self._lock:
            return user_id in self._in_flight

    @staticmethod
    def _refuse_self(actor_id: uuid.UUID, user_id: uuid.UUID, what: str) -> None:
        if actor_id == user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"You cannot {what} your own account",
            )

    def _updated(self, profile: Profile | None) -> Profile:
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return profile

    # ----- Queries -----

    def list_users(
        self,
        session: Session,
        user_filter: UserFilter = "all",
        q: str | None = None,
    ) -> ProfileList:
        """
        Profiles newest first, narrowed by search text (name or email)
        and status filter. Stats always cover every profile.
        """
        profiles = self.repo.list_all(session)
        query = (q or "").strip().lower()
        items = [p for p in profiles if _matches(p, user_filter, query)]
        return ProfileList(
            items=[ProfileRead.model_validate(asdict(p)) for p in items],
            stats=user_stats(profiles),
        )

    def list_pending(self, session: Session) -> list[Profile]:
        return self.repo.list_pending(session)

    def get_user(self, session: Session, user_id: uuid.UUID) -> Profile:
        """
        Raises:
            HTTPException(404): if not found.
        """
        return self._updated(self.repo.get_by_id(session, user_id))

    # ----- Actions -----

    def approve(
        self,
        session: Session,
        user_id: uuid.UUID,
        make_admin: bool = False,
    ) -> Profile:
        fields: dict = {"is_approved": True}
        if make_admin:
            fields["role"] = "admin"
        with self.action_for(user_id):
            profile = self._updated(self.repo.update(session, user_id, **fields))
        logger.info("Approved %s (admin=%s)", user_id, profile.role == "admin")
        return profile

    def revoke(
        self,
        session: Session,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Profile:
        self._refuse_self(actor_id, user_id, "revoke")
        with self.action_for(user_id):
            profile = self._updated(self.repo.update(session, user_id, is_approved=False))
        logger.info("Revoked approval for %s", user_id)
        return profile

    def reject(
        self,
        session: Session,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        """Drop a pending sign-up's profile."""
        self._refuse_self(actor_id, user_id, "reject")
        with self.action_for(user_id):
            profile = self.get_user(session, user_id)
            if profile.is_approved:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Only pending accounts can be rejected",
                )
            self.repo.delete(session, user_id)
        logger.info("Rejected sign-up %s", user_id)

    def update_role(
        self,
        session: Session,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        payload: RoleUpdate,
    ) -> Profile:
        """
        Change a user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        self._refuse_self(actor_id, user_id, "change the role of")
        with self.action_for(user_id):
            profile = self._updated(self.repo.update(session, user_id, role=payload.role))
        logger.info("Role of %s set to %s", user_id, payload.role)
        return profile

    def delete_user(
        self,
        session: Session,
        gateway: SupabaseAuthGateway,
        actor_id: uuid.UUID,
        raw_user_id: str | None,
    ) -> None:
        """
        Delete a profile and its auth account.

        Profile first, then the auth user through the service-role
        client. Errors are logged with detail and raised as
        AdminActionError with a caller-safe message.
        """
        if not raw_user_id:
            raise AdminActionError(status.HTTP_400_BAD_REQUEST, "User ID is required")
        try:
            user_id = uuid.UUID(str(raw_user_id))
        except ValueError:
            raise AdminActionError(status.HTTP_400_BAD_REQUEST, "Invalid user ID")

        if user_id == actor_id:
            raise AdminActionError(status.HTTP_400_BAD_REQUEST, "Cannot delete your own account")

        try:
            with self.action_for(user_id):
                try:
                    self.repo.delete(session, user_id)
                except SQLAlchemyError:
                    logger.exception("Error deleting profile %s", user_id)
                    session.rollback()
                    raise AdminActionError(
                        status.HTTP_500_INTERNAL_SERVER_ERROR,
                        "Failed to delete user profile",
                    )

                try:
                    gateway.delete_user(str(user_id))
                except AuthGatewayError:
                    logger.exception("Error deleting auth user %s", user_id)
                    raise AdminActionError(
                        status.HTTP_500_INTERNAL_SERVER_ERROR,
                        "Profile deleted but failed to delete auth account",
                    )
        except HTTPException as e:
            raise AdminActionError(e.status_code, str(e.detail))

        logger.info("Deleted user %s", user_id)
