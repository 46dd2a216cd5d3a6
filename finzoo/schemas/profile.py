# finzoo/schemas/profile.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel

from finzoo.schemas.stats import UserStats

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]
UserFilter = Literal["all", "admins", "users", "pending", "approved"]


class ProfileRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str
    name: str | None
    role: Role
    is_approved: bool
    created_at: datetime
    updated_at: datetime


class ProfileList(SQLModel):
    items: list[ProfileRead]
    stats: UserStats


class ApprovePayload(SQLModel):
    """
    Approval options.

    `make_admin` grants the admin role in the same step (used for
    pending admin signups).
    """

    model_config = ConfigDict(extra="forbid")

    make_admin: bool = False


class RoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role


class DeleteUserRequest(SQLModel):
    """Body of the privileged delete-user endpoint."""

    userId: str | None = None
