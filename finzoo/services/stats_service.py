# finzoo/services/stats_service.py
from typing import Iterable

from finzoo.domain.pet import Pet
from finzoo.domain.profile import Profile
from finzoo.schemas.pet import AdminPetFilter
from finzoo.schemas.stats import InventoryStats, UserStats


def inventory_stats(pets: Iterable[Pet]) -> InventoryStats:
    """Dashboard counters over the loaded inventory."""
    pets = list(pets)
    in_stock = sum(1 for p in pets if p.in_stock)
    visible = sum(1 for p in pets if p.is_visible)
    return InventoryStats(
        total=len(pets),
        in_stock=in_stock,
        sold_out=len(pets) - in_stock,
        visible=visible,
        hidden=len(pets) - visible,
        featured=sum(1 for p in pets if p.featured),
    )


def user_stats(profiles: Iterable[Profile]) -> UserStats:
    profiles = list(profiles)
    approved = sum(1 for p in profiles if p.is_approved)
    return UserStats(
        total=len(profiles),
        admins=sum(1 for p in profiles if p.role == "admin"),
        pending=len(profiles) - approved,
        approved=approved,
    )


def search_pets(
    pets: Iterable[Pet],
    q: str | None = None,
    status_filter: AdminPetFilter = "all",
) -> list[Pet]:
    """
    Admin dashboard search.

    `q` matches name, species or breed (case-insensitive substring);
    the status filter narrows by stock or visibility.
    """
    query = (q or "").strip().lower()
    matched: list[Pet] = []
    for pet in pets:
        if query:
            haystack = " ".join(
                part.lower() for part in (pet.name or "", pet.species, pet.breed)
            )
            if query not in haystack:
                continue
        if status_filter == "inStock" and not pet.in_stock:
            continue
        if status_filter == "soldOut" and pet.in_stock:
            continue
        if status_filter == "visible" and not pet.is_visible:
            continue
        if status_filter == "hidden" and pet.is_visible:
            continue
        matched.append(pet)
    return matched
