# finzoo/schemas/pet.py
import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from finzoo.domain.pet import SPECIES_OPTIONS

PriceType = Literal["each", "pair"]
AdminPetFilter = Literal["all", "inStock", "soldOut", "visible", "hidden"]
HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _not_blank(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _known_species(v: str | None) -> str | None:
    if v is not None and v not in SPECIES_OPTIONS:
        raise ValueError(f"species must be one of: {', '.join(SPECIES_OPTIONS)}")
    return v


class ColorVariantSchema(SQLModel):
    """
    Alternate media set shown on the detail page.
    Never changes price or stock.
    """

    model_config = ConfigDict(extra="forbid")

    color_name: str = Field(max_length=50)
    color_hex: str
    images: list[str] = []
    videos: list[str] = []

    @field_validator("color_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("color_hex")
    @classmethod
    def hex_color(cls, v: str) -> str:
        if not HEX_COLOR.match(v):
            raise ValueError("color_hex must look like #A1B2C3")
        return v


class PetCreate(SQLModel):
    """
    Payload for creating a pet listing.

    Media (images / videos) is not part of this payload: it arrives as
    uploaded files and existing URLs next to it in the multipart form.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    species: str
    breed: str = Field(max_length=100)
    age: str = Field(max_length=50)
    price: float = Field(gt=0)
    price_type: PriceType = "each"
    description: str
    in_stock: bool = True
    is_visible: bool = True
    featured: bool = False
    color_variants: list[ColorVariantSchema] = []

    @field_validator("name", "breed", "age", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("species")
    @classmethod
    def valid_species(cls, v: str) -> str:
        return _known_species(_not_blank(v))


class PetUpdate(SQLModel):
    """
    Partial update payload for pets.
    All fields are optional; the same rules apply to those provided.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    species: str | None = None
    breed: str | None = Field(default=None, max_length=100)
    age: str | None = Field(default=None, max_length=50)
    price: float | None = Field(default=None, gt=0)
    price_type: PriceType | None = None
    description: str | None = None
    in_stock: bool | None = None
    is_visible: bool | None = None
    featured: bool | None = None
    color_variants: list[ColorVariantSchema] | None = None

    @field_validator("name", "breed", "age", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return _not_blank(v)

    @field_validator("species")
    @classmethod
    def valid_species(cls, v: str | None) -> str | None:
        return _known_species(_not_blank(v))


class PetRead(SQLModel):
    """
    Pet representation for clients.
    `image` / `video` mirror the first entry of `images` / `videos`.
    """

    id: uuid.UUID
    name: str | None
    species: str
    breed: str
    age: str
    price: float
    price_type: PriceType
    image: str | None
    images: list[str]
    video: str | None
    videos: list[str]
    description: str | None
    in_stock: bool
    is_visible: bool
    featured: bool
    color_variants: list[ColorVariantSchema]
    created_at: datetime
    updated_at: datetime
    created_by: uuid.UUID | None


class PetList(SQLModel):
    """Listing response; `loading` is true until the first fetch lands."""

    items: list[PetRead]
    total: int
    loading: bool = False


class CategoryOptions(SQLModel):
    """Filter options derived from the loaded inventory."""

    categories: dict[str, list[str]]
    min_price: int = 0
    max_price: int


class PetShare(SQLModel):
    id: uuid.UUID
    url: str
    qr_url: str
    whatsapp_url: str | None
    summary: str


class MediaRejection(SQLModel):
    filename: str | None
    reason: str


class PetSaveResult(SQLModel):
    """Saved pet plus any files that were refused individually."""

    pet: PetRead
    rejected: list[MediaRejection] = []
