# finzoo/models/pet.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class PetRow(SQLModel, table=True):
    """
    Storage row for a pet listing.

    Matches the Supabase `pets` table:
      - id, name, species, breed, age, price, price_type,
        image, images, video, videos, description,
        in_stock, is_visible, featured, color_variants,
        created_at, updated_at, created_by
    """

    __tablename__ = "pets"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str | None = Field(
        default=None,
        max_length=100,
        description="Display name of the listing",
    )

    species: str = Field(index=True, max_length=50)
    breed: str = Field(index=True, max_length=100)
    age: str = Field(max_length=50, description="Free-form age, e.g. '3 months'")

    price: float = Field(gt=0)

    # each | pair
    price_type: str = Field(default="each", max_length=10)

    # Legacy single cover / video, mirrored from images[0] / videos[0]
    image: str | None = None
    images: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    video: str | None = None
    videos: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    description: str | None = Field(
        default=None,
        description="Markdown description",
    )

    in_stock: bool = Field(default=True, index=True)
    is_visible: bool = Field(
        default=True,
        index=True,
        description="Whether this pet is shown on the storefront",
    )
    featured: bool = Field(default=False, index=True)

    # [{color_name, color_hex, images, videos}]
    color_variants: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )

    created_by: uuid.UUID | None = Field(
        default=None,
        description="Profile id of the admin who created the listing",
    )
