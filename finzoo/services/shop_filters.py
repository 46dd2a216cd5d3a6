# finzoo/services/shop_filters.py
"""
Storefront filtering: pure functions over the loaded inventory.
"""
import math
from dataclasses import dataclass, field
from typing import Iterable, Literal

from finzoo.domain.pet import Pet

SortOrder = Literal["newest", "price-asc", "price-desc"]


@dataclass
class ShopFilters:
    price_range: tuple[float, float]
    breeds: set[str] = field(default_factory=set)
    sort: SortOrder = "newest"


def category_hierarchy(pets: Iterable[Pet]) -> dict[str, set[str]]:
    """species -> breeds, built from whatever is loaded."""
    hierarchy: dict[str, set[str]] = {}
    for pet in pets:
        hierarchy.setdefault(pet.species, set()).add(pet.breed)
    return hierarchy


def price_ceiling(pets: Iterable[Pet]) -> int:
    """Highest observed price, rounded up to the nearest 100."""
    highest = max((pet.price for pet in pets), default=0)
    return int(math.ceil(highest / 100.0) * 100)


def reset_filters(pets: Iterable[Pet]) -> ShopFilters:
    return ShopFilters(price_range=(0, price_ceiling(pets)), breeds=set())


def toggle_species(
    selected: set[str],
    hierarchy: dict[str, set[str]],
    species: str,
    checked: bool,
) -> set[str]:
    """Select or clear every breed of one species."""
    breeds = hierarchy.get(species, set())
    if checked:
        return selected | breeds
    return selected - breeds


def sort_pets(pets: Iterable[Pet], order: SortOrder) -> list[Pet]:
    if order == "price-asc":
        return sorted(pets, key=lambda p: p.price)
    if order == "price-desc":
        return sorted(pets, key=lambda p: p.price, reverse=True)
    return sorted(pets, key=lambda p: p.created_at, reverse=True)


def apply_filters(pets: Iterable[Pet], filters: ShopFilters) -> list[Pet]:
    """
    Price range is inclusive on both ends. An empty breed selection
    means every breed.
    """
    low, high = filters.price_range
    matched = [
        pet
        for pet in pets
        if low <= pet.price <= high
        and (not filters.breeds or pet.breed in filters.breeds)
    ]
    return sort_pets(matched, filters.sort)
