# tests/test_shop_filters.py
import uuid
from datetime import datetime, timedelta, timezone

from finzoo.domain.pet import Pet
from finzoo.services.shop_filters import (
    ShopFilters,
    apply_filters,
    category_hierarchy,
    price_ceiling,
    reset_filters,
    sort_pets,
    toggle_species,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def pet(price: float, minutes: int = 0, species: str = "Fish", breed: str = "Guppy") -> Pet:
    return Pet(
        id=uuid.uuid4(),
        species=species,
        breed=breed,
        age="1 year",
        price=price,
        created_at=NOW + timedelta(minutes=minutes),
        updated_at=NOW,
    )


PETS = [pet(10, minutes=1), pet(50, minutes=3), pet(30, minutes=2)]


def prices(pets):
    return [p.price for p in pets]


def test_sort_orders():
    assert prices(sort_pets(PETS, "price-asc")) == [10, 30, 50]
    assert prices(sort_pets(PETS, "price-desc")) == [50, 30, 10]
    assert prices(sort_pets(PETS, "newest")) == [50, 30, 10]


def test_price_range_is_inclusive():
    filters = ShopFilters(price_range=(20, 40))
    assert prices(apply_filters(PETS, filters)) == [30]

    filters = ShopFilters(price_range=(10, 30), sort="price-asc")
    assert prices(apply_filters(PETS, filters)) == [10, 30]


def test_breed_filter_and_empty_selection():
    pets = [pet(10, breed="Guppy"), pet(20, breed="Betta")]
    assert len(apply_filters(pets, ShopFilters(price_range=(0, 100)))) == 2
    only = apply_filters(pets, ShopFilters(price_range=(0, 100), breeds={"Betta"}))
    assert [p.breed for p in only] == ["Betta"]


def test_price_ceiling_rounds_up_to_hundred():
    assert price_ceiling(PETS) == 100
    assert price_ceiling([pet(1200)]) == 1200
    assert price_ceiling([pet(1201)]) == 1300
    assert price_ceiling([]) == 0


def test_reset_filters():
    filters = reset_filters(PETS)
    assert filters.price_range == (0, 100)
    assert filters.breeds == set()


def test_category_hierarchy_and_species_toggle():
    pets = [
        pet(10, species="Fish", breed="Guppy"),
        pet(10, species="Fish", breed="Betta"),
        pet(10, species="Cat", breed="Persian"),
    ]
    hierarchy = category_hierarchy(pets)
    assert hierarchy == {"Fish": {"Guppy", "Betta"}, "Cat": {"Persian"}}

    selected = toggle_species({"Persian"}, hierarchy, "Fish", True)
    assert selected == {"Persian", "Guppy", "Betta"}
    assert toggle_species(selected, hierarchy, "Fish", False) == {"Persian"}
