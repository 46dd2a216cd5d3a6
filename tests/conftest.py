# tests/conftest.py
import os

# Settings are read at import time; point everything at local fakes first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "http://supabase.test"
os.environ["SUPABASE_KEY"] = "anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SITE_URL"] = "http://shop.test"
os.environ["API_BASE_URL"] = "http://api.test"
os.environ["WHATSAPP_NUMBER"] = "+94 77 123 4567"

import time
import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import SQLModel

from finzoo.core.auth import get_auth_gateway
from finzoo.core.auth_gateway import (
    AuthGatewayError,
    AuthResult,
    AuthTokens,
    AuthUser,
    InvalidCredentials,
)
from finzoo.core.deps import get_uploader
from finzoo.database import engine, new_session
from finzoo.main import app
from finzoo.repositories.pet_repo import PetRepository
from finzoo.repositories.profile_repo import ProfileRepository

JWT_SECRET = "test-jwt-secret"


def make_token(user_id: uuid.UUID, email: str, session_id: str | None = None) -> str:
    claims = {
        "sub": str(user_id),
        "email": email,
        "session_id": session_id or str(uuid.uuid4()),
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class FakeAuthGateway:
    """In-memory stand-in for SupabaseAuthGateway."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, uuid.UUID, str | None]] = {}
        self.oauth_codes: dict[str, str] = {}
        self.signed_out: list[str] = []
        self.deleted: list[str] = []
        self.fail_delete = False

    def add_account(self, email: str, password: str, name: str | None = None) -> uuid.UUID:
        user_id = uuid.uuid4()
        self.accounts[email] = (password, user_id, name)
        return user_id

    def _result(self, email: str) -> AuthResult:
        _, user_id, name = self.accounts[email]
        token = make_token(user_id, email)
        return AuthResult(
            user=AuthUser(id=str(user_id), email=email, name=name),
            tokens=AuthTokens(access_token=token, refresh_token="refresh", expires_in=3600),
        )

    def sign_in_with_password(self, email, password):
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise InvalidCredentials("Invalid login credentials")
        return self._result(email)

    def sign_up(self, email, password, name):
        if email in self.accounts:
            raise AuthGatewayError("User already registered")
        self.add_account(email, password, name)
        return self._result(email)

    def oauth_authorize_url(self, provider, redirect_to):
        return f"http://supabase.test/auth/v1/authorize?provider={provider}", "verifier"

    def exchange_code(self, code, code_verifier):
        email = self.oauth_codes.get(code)
        if email is None or code_verifier != "verifier":
            raise InvalidCredentials("invalid flow state")
        return self._result(email)

    def sign_out(self, access_token):
        self.signed_out.append(access_token)

    def delete_user(self, user_id):
        if self.fail_delete:
            raise AuthGatewayError("User not allowed")
        self.deleted.append(user_id)


class FakeUploader:
    def __init__(self):
        self.uploaded: list[str] = []
        self.fail = False

    def __call__(self, pending, data, rules):
        if self.fail:
            raise RuntimeError("storage unavailable")
        url = f"http://cdn.test/{rules.folder}/{len(self.uploaded)}-{pending.filename}"
        self.uploaded.append(url)
        return url


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def gateway():
    return FakeAuthGateway()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def client(gateway, uploader):
    app.dependency_overrides[get_auth_gateway] = lambda: gateway
    app.dependency_overrides[get_uploader] = lambda: uploader
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def add_profile(
    email: str,
    role: str = "user",
    is_approved: bool = False,
    user_id: uuid.UUID | None = None,
):
    repo = ProfileRepository()
    user_id = user_id or uuid.uuid4()
    with new_session() as session:
        repo.insert(session, profile_id=user_id, email=email, name=email.split("@")[0])
        return repo.update(session, user_id, role=role, is_approved=is_approved)


def add_pet(**fields):
    data = {
        "name": "Goldie",
        "species": "Fish",
        "breed": "Goldfish",
        "age": "6 months",
        "price": 25.0,
        "description": "A **healthy** goldfish",
    }
    data.update(fields)
    with new_session() as session:
        return PetRepository().insert(session, data)


@pytest.fixture
def admin_headers():
    profile = add_profile("admin@finzoo.com", role="admin", is_approved=True)
    return bearer(make_token(profile.id, profile.email))


@pytest.fixture
def user_headers():
    profile = add_profile("visitor@finzoo.com")
    return bearer(make_token(profile.id, profile.email))
