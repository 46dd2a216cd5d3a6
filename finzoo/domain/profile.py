# finzoo/domain/profile.py
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]


@dataclass
class Profile:
    """
    Application profile mirrored from a Supabase auth user.

    `id` is the auth subject id. New profiles start as an unapproved
    "user"; only an approved admin may use the back-office.
    """

    id: uuid.UUID
    email: str
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    role: Role = "user"
    is_approved: bool = False

    @property
    def is_admin(self) -> bool:
        return is_admin_effective(self)


def is_admin_effective(profile: Profile | None) -> bool:
    """An unapproved admin-role profile counts the same as a plain user."""
    if profile is None:
        return False
    return profile.role == "admin" and profile.is_approved is True
