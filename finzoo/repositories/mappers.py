# finzoo/repositories/mappers.py
"""
Row <-> domain mapping.

Repositories hand domain objects to the rest of the app so a change to
the storage schema stops here.
"""
from dataclasses import asdict

from finzoo.core.timeutils import as_utc
from finzoo.domain.pet import ColorVariant, Pet
from finzoo.domain.profile import Profile
from finzoo.models.pet import PetRow
from finzoo.models.profile import ProfileRow

# Columns the application may write on a pet; the rest are backend-owned.
PET_WRITABLE_FIELDS = frozenset(
    {
        "name",
        "species",
        "breed",
        "age",
        "price",
        "price_type",
        "image",
        "images",
        "video",
        "videos",
        "description",
        "in_stock",
        "is_visible",
        "featured",
        "color_variants",
    }
)

PROFILE_WRITABLE_FIELDS = frozenset({"email", "name", "role", "is_approved"})


def pet_from_row(row: PetRow) -> Pet:
    return Pet(
        id=row.id,
        name=row.name,
        species=row.species,
        breed=row.breed,
        age=row.age,
        price=row.price,
        price_type=row.price_type,  # type: ignore[arg-type]
        image=row.image,
        images=list(row.images or []),
        video=row.video,
        videos=list(row.videos or []),
        description=row.description,
        in_stock=row.in_stock,
        is_visible=row.is_visible,
        featured=row.featured,
        color_variants=[ColorVariant(**v) for v in (row.color_variants or [])],
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        created_by=row.created_by,
    )


def pet_fields_to_columns(fields: dict) -> dict:
    """
    Translate domain-level pet fields into column values.

    Unknown keys are dropped; color variants are flattened to plain dicts
    for the JSON column.
    """
    columns = {k: v for k, v in fields.items() if k in PET_WRITABLE_FIELDS}
    if "color_variants" in columns:
        columns["color_variants"] = [
            asdict(v) if isinstance(v, ColorVariant) else dict(v)
            for v in columns["color_variants"] or []
        ]
    return columns


def profile_from_row(row: ProfileRow) -> Profile:
    return Profile(
        id=row.id,
        email=row.email,
        name=row.name,
        role=row.role,  # type: ignore[arg-type]
        is_approved=row.is_approved,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )
