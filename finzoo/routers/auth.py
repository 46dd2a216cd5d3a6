# finzoo/routers/auth.py
import logging
from dataclasses import asdict
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from finzoo.core.auth import get_current_session, require_admin
from finzoo.core.config import get_settings
from finzoo.core.deps import get_auth_service
from finzoo.core.session import SessionStore
from finzoo.database import get_session
from finzoo.schemas.auth import LoginRequest, SessionResponse, SignupRequest, SignupResponse
from finzoo.schemas.profile import ProfileRead
from finzoo.services.auth_service import (
    PENDING_APPROVAL_MESSAGE,
    SIGNUP_MESSAGE,
    AuthService,
)

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Auth"])

PKCE_COOKIE = "finzoo_pkce_verifier"
NEXT_COOKIE = "finzoo_auth_next"
DEFAULT_NEXT = "/admin"
LOGIN_PATH = "/admin/login"


def _safe_next(raw: str | None) -> str:
    """Only same-site absolute paths are allowed as post-login targets."""
    if not raw or not raw.startswith("/") or raw.startswith("//") or "\\" in raw:
        return DEFAULT_NEXT
    return raw


def _site(path: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}{path}"


def _login_redirect(**params: str) -> RedirectResponse:
    response = RedirectResponse(
        f"{_site(LOGIN_PATH)}?{urlencode(params)}",
        status_code=status.HTTP_303_SEE_OTHER,
    )
    response.delete_cookie(PKCE_COOKIE, path="/")
    response.delete_cookie(NEXT_COOKIE, path="/")
    return response


def _session_response(store: SessionStore) -> SessionResponse:
    tokens = store.tokens
    return SessionResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        token_type=tokens.token_type,
        profile=ProfileRead.model_validate(asdict(store.profile)),
    )


@router.post("/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Email/password sign-in for the back-office.

    Only approved admins get a session; anyone else is signed out again
    and receives 403.
    """
    store = service.sign_in_with_password(session, payload.email, payload.password)
    return _session_response(store)


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    payload: SignupRequest,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Request an admin account. The new profile is pending until another
    admin approves it; no session is returned.
    """
    profile = service.sign_up(session, payload.name, payload.email, payload.password)
    return SignupResponse(
        message=SIGNUP_MESSAGE,
        profile=ProfileRead.model_validate(asdict(profile)) if profile else None,
    )


@router.post("/logout")
def logout(
    store: SessionStore | None = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    """Sign out the backend session and stop tracking its activity."""
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    service.sign_out(store)
    return {"message": "Signed out"}


@router.get("/me", response_model=ProfileRead)
def read_me(store: SessionStore = Depends(require_admin)):
    """
    Return the signed-in admin's profile.

    Auth:
      - Requires an approved admin session.
    """
    return ProfileRead.model_validate(asdict(store.profile))


@router.get("/google")
def google_login(
    next: str | None = None,
    service: AuthService = Depends(get_auth_service),
):
    """
    Start Google sign-in (PKCE).

    The verifier and the post-login target are kept in short-lived
    HttpOnly cookies until the callback arrives.
    """
    redirect_to = f"{settings.API_BASE_URL.rstrip('/')}{settings.API_PREFIX}/auth/callback"
    url, verifier = service.oauth_start(redirect_to)

    response = RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)
    cookie_opts = {
        "max_age": 600,
        "httponly": True,
        "samesite": "lax",
        "secure": settings.API_BASE_URL.startswith("https"),
        "path": "/",
    }
    response.set_cookie(PKCE_COOKIE, verifier, **cookie_opts)
    response.set_cookie(NEXT_COOKIE, _safe_next(next), **cookie_opts)
    return response


@router.get("/callback")
def oauth_callback(
    request: Request,
    code: str | None = None,
    next: str | None = None,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    OAuth redirect target.

    - approved admin: back to the site with the tokens in the URL fragment
    - anyone else: back to the login page with a message or an error
    """
    verifier = request.cookies.get(PKCE_COOKIE)
    target = _safe_next(next or request.cookies.get(NEXT_COOKIE))

    try:
        store = service.complete_oauth(session, code, verifier)
    except HTTPException as e:
        if e.status_code == status.HTTP_403_FORBIDDEN and e.detail == PENDING_APPROVAL_MESSAGE:
            return _login_redirect(message=PENDING_APPROVAL_MESSAGE)
        return _login_redirect(error="auth_callback_error")

    tokens = store.tokens
    fragment = urlencode(
        {
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "expires_in": tokens.expires_in,
            "token_type": tokens.token_type,
        }
    )
    response = RedirectResponse(
        f"{_site(target)}#{fragment}",
        status_code=status.HTTP_303_SEE_OTHER,
    )
    response.delete_cookie(PKCE_COOKIE, path="/")
    response.delete_cookie(NEXT_COOKIE, path="/")
    return response
