# finzoo/routers/users.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from finzoo.core.auth import require_admin
from finzoo.core.session import SessionStore
from finzoo.database import get_session
from finzoo.repositories.profile_repo import ProfileRepository
from finzoo.schemas.profile import (
    ApprovePayload,
    ProfileList,
    ProfileRead,
    RoleUpdate,
    UserFilter,
)
from finzoo.services.user_service import UserService

router = APIRouter(prefix="/admin/users", tags=["Admin Users"])

repo = ProfileRepository()
service = UserService(repo)


@router.get(
    "",
    response_model=ProfileList,
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    q: str | None = None,
    status_filter: UserFilter = "all",
):
    """
    List all profiles, newest first (admin only).

    Query params (optional):
      - q: case-insensitive match on name or email
      - status_filter: all | admins | users | pending | approved
    """
    return service.list_users(session, status_filter, q)


@router.get(
    "/pending",
    response_model=list[ProfileRead],
    dependencies=[Depends(require_admin)],
)
def list_pending(session: Session = Depends(get_session)):
    """Sign-ups waiting for approval."""
    return service.list_pending(session)


@router.post("/{user_id}/approve", response_model=ProfileRead)
def approve_user(
    user_id: uuid.UUID,
    payload: ApprovePayload | None = None,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(require_admin),
):
    """
    Approve a pending account. `make_admin` also grants the admin role.
    """
    make_admin = payload.make_admin if payload else False
    return service.approve(session, user_id, make_admin=make_admin)


@router.post("/{user_id}/revoke", response_model=ProfileRead)
def revoke_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(require_admin),
):
    """Withdraw approval. Admins cannot revoke themselves."""
    return service.revoke(session, store.user.id, user_id)


@router.post("/{user_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
def reject_user(
    user_id: uuid.UUID,
    confirm: bool = False,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(require_admin),
):
    """
    Reject a pending sign-up (deletes its profile). Requires `?confirm=true`.
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rejecting a sign-up requires confirm=true",
        )
    service.reject(session, store.user.id, user_id)
    return None


@router.patch("/{user_id}/role", response_model=ProfileRead)
def change_role(
    user_id: uuid.UUID,
    payload: RoleUpdate,
    session: Session = Depends(get_session),
    store: SessionStore = Depends(require_admin),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, admin. Admins cannot change their own role.
    """
    return service.update_role(session, store.user.id, user_id, payload)
