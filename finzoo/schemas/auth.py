# finzoo/schemas/auth.py
from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from finzoo.schemas.profile import ProfileRead


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)


class SignupRequest(SQLModel):
    """
    Admin account request. The account stays pending until an approved
    admin signs off on it.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class SessionResponse(SQLModel):
    """Tokens for an approved admin session."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
    profile: ProfileRead


class SignupResponse(SQLModel):
    message: str
    profile: ProfileRead | None = None
