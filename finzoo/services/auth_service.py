# finzoo/services/auth_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from finzoo.core.auth import decode_access_token, session_id_from_claims
from finzoo.core.auth_gateway import (
    AuthGatewayError,
    AuthResult,
    InvalidCredentials,
    SupabaseAuthGateway,
)
from finzoo.core.session import SessionStore, SessionUser
from finzoo.domain.profile import Profile
from finzoo.services.inactivity import InactivityMonitor
from finzoo.services.profile_gate import ProfileGate

logger = logging.getLogger(__name__)

PENDING_APPROVAL_MESSAGE = "Your account is pending approval by an administrator."
SIGNUP_MESSAGE = (
    "Account created. An administrator must approve it before you can sign in."
)


class AuthService:
    """
    Approval-gated sign-in flows.

    Responsibilities:
      - drive the SessionStore state machine for each attempt
      - fetch-or-create the profile through the ProfileGate
      - sign the backend session out whenever the profile is not an
        approved admin (a valid token alone is never enough)
      - start inactivity tracking for sessions that get through
    """

    def __init__(
        self,
        gateway: SupabaseAuthGateway,
        gate: ProfileGate,
        monitor: InactivityMonitor | None = None,
    ):
        self.gateway = gateway
        self.gate = gate
        self.monitor = monitor

    # ----- Helpers -----

    def _session_user(self, result: AuthResult) -> SessionUser:
        user = SessionUser(id=uuid.UUID(result.user.id), email=result.user.email)
        if result.tokens is not None:
            token = result.tokens.access_token
            user.access_token = token
            try:
                claims = decode_access_token(token)
            except HTTPException:
                # The provider already opened a session; close it before refusing
                logger.warning("Issued token for %s could not be verified", user.id)
                try:
                    self.gateway.sign_out(token)
                except AuthGatewayError:
                    logger.exception("Could not sign out session for %s", user.id)
                raise
            user.session_id = session_id_from_claims(claims, token)
        return user

    def _sign_out_quietly(self, store: SessionStore) -> None:
        if store.user is None or store.user.access_token is None:
            return
        try:
            self.gateway.sign_out(store.user.access_token)
        except AuthGatewayError:
            logger.exception("Could not sign out session for %s", store.user.id if store.user else None)

    def _deny(self, store: SessionStore) -> None:
        """Sign out a session that did not pass the approval gate, then raise."""
        user_id = store.user.id if store.user else None
        profile_missing = store.profile is None
        self._sign_out_quietly(store)
        store.logout()

        if profile_missing:
            logger.warning("No profile available for %s; access denied", user_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="We could not verify your account. Please try again.",
            )
        logger.info("Sign-in refused for %s: not an approved admin", user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=PENDING_APPROVAL_MESSAGE,
        )

    def _admit(self, store: SessionStore) -> SessionStore:
        if self.monitor is not None and store.user and store.user.session_id:
            store.touch(
                self.monitor.record_activity(
                    store.user.session_id, store.user.id, store.user.access_token
                )
            )
        logger.info("Admin %s signed in", store.user.id if store.user else None)
        return store

    # ----- Flows -----

    def sign_in_with_password(
        self,
        session: Session,
        email: str,
        password: str,
    ) -> SessionStore:
        """
        Email/password sign-in for the back-office.

        Approval is re-read from the database after the credentials are
        verified, so a stale profile copy can never let a session in.

        Raises:
            HTTPException(401): invalid credentials (no session created).
            HTTPException(403): not an approved admin (session signed out).
            HTTPException(502): auth provider failure.
        """
        store = SessionStore()
        store.begin()

        try:
            result = self.gateway.sign_in_with_password(email, password)
        except InvalidCredentials:
            store.fail()
            logger.info("Invalid credentials for %s", email)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )
        except AuthGatewayError:
            store.fail()
            logger.exception("Auth provider error during sign-in")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Sign-in is unavailable right now. Please try again.",
            )

        user = self._session_user(result)
        store.authenticated(user, result.tokens)

        profile = self.gate.resolve(session, user.id, user.email, result.user.name)
        if profile is not None:
            session.expire_all()
            profile = self.gate.fetch(session, user.id)
        store.attach_profile(profile)

        if not store.is_authenticated or result.tokens is None:
            self._deny(store)
        return self._admit(store)

    def sign_up(
        self,
        session: Session,
        name: str,
        email: str,
        password: str,
    ) -> Profile | None:
        """
        Register an admin account request.

        The profile is created unapproved and no session is kept: if the
        provider returned one, it is signed out right away.
        """
        try:
            result = self.gateway.sign_up(email, password, name)
        except AuthGatewayError as e:
            logger.warning("Sign-up refused for %s: %s", email, e)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e) or "Could not create account",
            )

        profile = self.gate.resolve(session, uuid.UUID(result.user.id), email, name)

        if result.tokens is not None:
            try:
                self.gateway.sign_out(result.tokens.access_token)
            except AuthGatewayError:
                logger.exception("Could not sign out fresh sign-up %s", result.user.id)

        logger.info("New account %s is waiting for approval", result.user.id)
        return profile

    def oauth_start(self, redirect_to: str) -> tuple[str, str]:
        """Authorization URL and PKCE verifier for Google sign-in."""
        return self.gateway.oauth_authorize_url("google", redirect_to)

    def complete_oauth(
        self,
        session: Session,
        code: str | None,
        code_verifier: str | None,
    ) -> SessionStore:
        """
        OAuth callback: exchange the code, fetch-or-create the profile, and
        only keep the session for approved admins.

        Raises:
            HTTPException(400): missing code/verifier or failed exchange.
            HTTPException(403): not an approved admin (session signed out).
        """
        store = SessionStore()
        store.begin()

        if not code or not code_verifier:
            store.fail()
            logger.warning("OAuth callback without code or verifier")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="auth_callback_error",
            )

        try:
            result = self.gateway.exchange_code(code, code_verifier)
        except AuthGatewayError:
            store.fail()
            logger.exception("OAuth code exchange failed")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="auth_callback_error",
            )

        user = self._session_user(result)
        store.authenticated(user, result.tokens)
        store.attach_profile(
            self.gate.resolve(session, user.id, user.email, result.user.name)
        )

        if not store.is_authenticated or result.tokens is None:
            self._deny(store)
        return self._admit(store)

    def sign_out(self, store: SessionStore) -> None:
        """Explicit logout: backend session first, then local state."""
        user = store.user
        self._sign_out_quietly(store)
        if self.monitor is not None and user and user.session_id:
            self.monitor.end(user.session_id)
        store.logout()
        logger.info("Signed out %s", user.id if user else None)
