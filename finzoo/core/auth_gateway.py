# finzoo/core/auth_gateway.py
"""
Thin wrapper around Supabase Auth.

Everything the backend asks of the hosted auth service goes through
`SupabaseAuthGateway`, so services and routes depend on a small surface
instead of the full client. Tests swap in a fake with the same methods.
"""
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from supabase import AuthApiError, AuthError
from supabase_auth.helpers import generate_pkce_challenge, generate_pkce_verifier

from finzoo.core.config import get_settings
from finzoo.core.supabase_client import supabase_admin, supabase_public

logger = logging.getLogger(__name__)

settings = get_settings()


class AuthGatewayError(Exception):
    """Supabase Auth rejected the call or could not be reached."""


class InvalidCredentials(AuthGatewayError):
    """Email/password pair (or OAuth code) was refused."""


@dataclass
class AuthUser:
    id: str
    email: str
    name: str | None = None


@dataclass
class AuthTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass
class AuthResult:
    user: AuthUser
    # None when sign-up requires email confirmation first
    tokens: AuthTokens | None


def _to_result(response) -> AuthResult:
    if response.user is None:
        raise InvalidCredentials("No user returned by auth provider")

    metadata = response.user.user_metadata or {}
    user = AuthUser(
        id=str(response.user.id),
        email=response.user.email or "",
        name=metadata.get("name") or metadata.get("full_name"),
    )

    tokens = None
    if response.session is not None:
        tokens = AuthTokens(
            access_token=response.session.access_token,
            refresh_token=response.session.refresh_token,
            expires_in=response.session.expires_in,
        )
    return AuthResult(user=user, tokens=tokens)


class SupabaseAuthGateway:
    """
    Supabase Auth operations used by the approval-gated login flows.

    - end-user calls (sign-in, sign-up, code exchange) use a fresh anon client
    - privileged calls (sign-out by token, delete user) use the service role
    """

    def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        try:
            response = supabase_public().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthApiError as e:
            raise InvalidCredentials(e.message) from e
        except AuthError as e:
            raise AuthGatewayError(e.message) from e
        return _to_result(response)

    def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        try:
            response = supabase_public().auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"name": name}},
                }
            )
        except AuthError as e:
            raise AuthGatewayError(e.message) from e
        return _to_result(response)

    def oauth_authorize_url(self, provider: str, redirect_to: str) -> tuple[str, str]:
        """
        Build a PKCE authorization URL.

        Returns:
            (url, code_verifier). The caller must keep the verifier until
            the callback arrives.
        """
        verifier = generate_pkce_verifier()
        query = urlencode(
            {
                "provider": provider,
                "redirect_to": redirect_to,
                "code_challenge": generate_pkce_challenge(verifier),
                "code_challenge_method": "s256",
            }
        )
        return f"{settings.SUPABASE_URL}/auth/v1/authorize?{query}", verifier

    def exchange_code(self, code: str, code_verifier: str) -> AuthResult:
        try:
            response = supabase_public().auth.exchange_code_for_session(
                {"auth_code": code, "code_verifier": code_verifier, "redirect_to": ""}
            )
        except AuthApiError as e:
            raise InvalidCredentials(e.message) from e
        except AuthError as e:
            raise AuthGatewayError(e.message) from e
        return _to_result(response)

    @staticmethod
    def _admin():
        try:
            return supabase_admin()
        except RuntimeError as e:
            raise AuthGatewayError(str(e)) from e

    def sign_out(self, access_token: str) -> None:
        """Invalidate the backend session behind an access token."""
        client = self._admin()
        try:
            client.auth.admin.sign_out(access_token)
        except AuthError as e:
            raise AuthGatewayError(e.message) from e

    def delete_user(self, user_id: str) -> None:
        client = self._admin()
        try:
            client.auth.admin.delete_user(user_id)
        except AuthError as e:
            raise AuthGatewayError(e.message) from e
