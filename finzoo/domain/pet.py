# finzoo/domain/pet.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

PriceType = Literal["each", "pair"]

SPECIES_OPTIONS: tuple[str, ...] = (
    "Dog",
    "Cat",
    "Fish",
    "Bird",
    "Rabbit",
    "Turtle",
    "Hamster",
    "Guinea Pig",
    "Parrot",
    "Snake",
    "Lizard",
    "Other",
)


@dataclass
class ColorVariant:
    """Alternate media set for a listing. Never changes price or stock."""

    color_name: str
    color_hex: str
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)


@dataclass
class Pet:
    """
    A pet listing as the rest of the application sees it.

    `images[0]` is the cover when `images` is non-empty; `image` is kept
    as a mirror for older rows and clients. Same for `videos` / `video`.
    """

    id: uuid.UUID
    species: str
    breed: str
    age: str
    price: float
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    price_type: PriceType = "each"
    image: str | None = None
    images: list[str] = field(default_factory=list)
    video: str | None = None
    videos: list[str] = field(default_factory=list)
    description: str | None = None
    in_stock: bool = True
    is_visible: bool = True
    featured: bool = False
    color_variants: list[ColorVariant] = field(default_factory=list)
    created_by: uuid.UUID | None = None

    @property
    def cover(self) -> str | None:
        return self.images[0] if self.images else self.image

    @property
    def display_name(self) -> str:
        return self.name or f"{self.breed} {self.species}"


def mirror_covers(fields: dict) -> dict:
    """
    Keep the legacy single-media columns in step with the ordered lists.

    Only touches `image` / `video` when the matching list is being written.
    An emptied list clears the mirror unless a legacy value is supplied.
    """
    out = dict(fields)
    if "images" in out and out["images"] is not None:
        images = out["images"]
        out["image"] = images[0] if images else out.get("image")
    if "videos" in out and out["videos"] is not None:
        videos = out["videos"]
        out["video"] = videos[0] if videos else out.get("video")
    return out
