# finzoo/core/auth.py
import hashlib
import logging
import uuid
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from finzoo.core.auth_gateway import AuthGatewayError, SupabaseAuthGateway
from finzoo.core.config import get_settings
from finzoo.core.session import SessionStore, SessionUser
from finzoo.database import get_session
from finzoo.repositories.profile_repo import ProfileRepository
from finzoo.services.inactivity import InactivityMonitor, SessionExpired
from finzoo.services.profile_gate import ProfileGate

logger = logging.getLogger(__name__)

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (storefront visitors).
bearer_scheme = HTTPBearer(auto_error=False)

_gateway = SupabaseAuthGateway()


def get_auth_gateway() -> SupabaseAuthGateway:
    return _gateway


def get_profile_gate() -> ProfileGate:
    return ProfileGate(ProfileRepository())


def get_inactivity_monitor(request: Request) -> InactivityMonitor | None:
    """The app-scoped monitor, or None before the lifespan has run."""
    return getattr(request.app.state, "inactivity_monitor", None)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def session_id_from_claims(claims: dict[str, Any], token: str) -> str:
    """
    Supabase puts the auth session id in the `session_id` claim. Older
    tokens without it are keyed by a hash of the token itself.
    """
    session_id = claims.get("session_id")
    if session_id:
        return str(session_id)
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:64]


def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
    gate: ProfileGate = Depends(get_profile_gate),
    monitor: InactivityMonitor | None = Depends(get_inactivity_monitor),
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> SessionStore | None:
    """
    Resolve the caller's session from a Supabase JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Refuse sessions the inactivity monitor has ended.
      4. Fetch-or-create the profile (fail-closed on backend errors).
      5. Record activity for approved admins.

    Returns:
        SessionStore in APPROVED_ADMIN or UNAPPROVED state, or None for guests.

    Raises:
        HTTPException(401): malformed token, missing claims, or idle timeout.
    """
    if credentials is None:
        return None  # guest mode

    token = credentials.credentials
    payload = decode_access_token(token)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    session_id = session_id_from_claims(payload, token)

    if monitor is not None:
        try:
            monitor.ensure_active(session_id)
        except SessionExpired:
            try:
                gateway.sign_out(token)
            except AuthGatewayError:
                logger.info("Backend session %s already invalidated", session_id)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Session expired due to inactivity",
            )

    metadata = payload.get("user_metadata") or {}
    store = SessionStore()
    store.begin()
    store.authenticated(
        SessionUser(id=sub_uuid, email=email, session_id=session_id, access_token=token)
    )
    store.attach_profile(gate.resolve(session, sub_uuid, email, metadata.get("name")))

    if monitor is not None and store.is_authenticated:
        store.touch(monitor.record_activity(session_id, sub_uuid, token))

    return store


def require_auth(store: SessionStore | None = Depends(get_current_session)) -> SessionStore:
    """
    Enforce authentication.

    If attached to a route, guests (missing/invalid JWT)
    will be rejected with 401.

    Raises:
        HTTPException(401): if there is no session.
    """
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return store


def require_admin(store: SessionStore = Depends(require_auth)) -> SessionStore:
    """
    Enforce an approved admin.

    Route is accessible only if:
      - profile.role == "admin"
      - profile.is_approved is True

    Raises:
        HTTPException(403): otherwise. The reason is logged, not returned.
    """
    if not store.is_admin:
        logger.warning(
            "Admin access denied for %s (role=%s, approved=%s)",
            store.user.id if store.user else None,
            store.profile.role if store.profile else None,
            store.is_approved,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return store


def is_admin_viewer(store: SessionStore | None = Depends(get_current_session)) -> bool:
    """Storefront routes show hidden pets to approved admins only."""
    return store is not None and store.is_admin
