# finzoo/models/profile.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class ProfileRow(SQLModel, table=True):
    """
    Persistent profile for a FinZoo account.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Access:
      - role: "user" | "admin"
      - is_approved: an admin role only counts once approved

    Supabase Auth stores the password in its own schema. We only mirror
    identity, name, role and the approval flag.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    name: str | None = Field(
        default=None,
        max_length=100,
        description="Display name; first part of email by default",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    is_approved: bool = Field(
        default=False,
        index=True,
        description="Set by an approved admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )
