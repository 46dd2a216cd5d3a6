# finzoo/core/session.py
"""
Session store and the approval-gate state machine.

    UNAUTHENTICATED -> AUTHENTICATING -> PENDING_PROFILE
        -> UNAPPROVED     -> LOGGED_OUT
        -> APPROVED_ADMIN -> LOGGED_OUT

A session only counts as authenticated in APPROVED_ADMIN. Anything that
ends up UNAPPROVED is signed out by the gate straight away.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from finzoo.core.auth_gateway import AuthTokens
from finzoo.domain.profile import Profile, is_admin_effective


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    PENDING_PROFILE = "pending_profile"
    UNAPPROVED = "unapproved"
    APPROVED_ADMIN = "approved_admin"
    LOGGED_OUT = "logged_out"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.UNAUTHENTICATED: frozenset({SessionState.AUTHENTICATING}),
    SessionState.AUTHENTICATING: frozenset(
        {SessionState.PENDING_PROFILE, SessionState.UNAUTHENTICATED}
    ),
    SessionState.PENDING_PROFILE: frozenset(
        {SessionState.UNAPPROVED, SessionState.APPROVED_ADMIN, SessionState.LOGGED_OUT}
    ),
    SessionState.UNAPPROVED: frozenset({SessionState.LOGGED_OUT}),
    SessionState.APPROVED_ADMIN: frozenset({SessionState.LOGGED_OUT}),
    SessionState.LOGGED_OUT: frozenset({SessionState.AUTHENTICATING}),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass
class SessionUser:
    id: uuid.UUID
    email: str
    # Supabase session id ("session_id" claim); keys the inactivity monitor
    session_id: str | None = None
    access_token: str | None = None


@dataclass
class SessionStore:
    """
    Local mirror of one Supabase session: user, profile, last activity.

    Flags are derived, never stored: `is_admin` needs role "admin" and
    approval, `is_authenticated` needs the APPROVED_ADMIN state.
    """

    state: SessionState = SessionState.UNAUTHENTICATED
    user: SessionUser | None = None
    profile: Profile | None = None
    tokens: AuthTokens | None = None
    last_activity: datetime | None = None
    history: list[SessionState] = field(default_factory=list)

    def _move(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        self.history.append(self.state)
        self.state = target

    # ----- Transitions -----

    def begin(self) -> None:
        """Credentials submitted or OAuth redirect received."""
        self._move(SessionState.AUTHENTICATING)

    def fail(self) -> None:
        """Credentials refused; nothing was created."""
        self._move(SessionState.UNAUTHENTICATED)
        self.user = None
        self.tokens = None

    def authenticated(self, user: SessionUser, tokens: AuthTokens | None = None) -> None:
        self._move(SessionState.PENDING_PROFILE)
        self.user = user
        self.tokens = tokens

    def attach_profile(self, profile: Profile | None) -> None:
        """Resolve the pending profile step; no profile means not approved."""
        self.profile = profile
        if is_admin_effective(profile):
            self._move(SessionState.APPROVED_ADMIN)
        else:
            self._move(SessionState.UNAPPROVED)

    def logout(self) -> None:
        self._move(SessionState.LOGGED_OUT)
        self.user = None
        self.profile = None
        self.tokens = None
        self.last_activity = None

    def touch(self, when: datetime) -> None:
        self.last_activity = when

    # ----- Derived flags -----

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.APPROVED_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and is_admin_effective(self.profile)

    @property
    def is_approved(self) -> bool:
        return self.profile is not None and self.profile.is_approved
