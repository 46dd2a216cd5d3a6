# finzoo/services/inventory.py
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from finzoo.core.scheduler import PeriodicTask
from finzoo.domain.pet import Pet, mirror_covers
from finzoo.repositories.pet_repo import PetRepository

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """The backend refused or failed an inventory call."""


class InventoryStore:
    """
    In-memory cache of pet listings, newest first.

    One instance per application (created in the lifespan). All writes go
    through the mutation methods below: backend call first, then the
    local entry is reconciled with what the backend returned.

    Toggles are optimistic: the cached flag flips immediately and is put
    back if the backend update fails.

    A periodic refresh re-reads the table so changes made by other
    processes show up. A refresh that started before a newer refresh or
    mutation is discarded when it completes.
    """

    def __init__(
        self,
        repo: PetRepository,
        session_factory: Callable[[], Session],
        refresh_every: float = 30.0,
    ):
        self.repo = repo
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._pets: list[Pet] = []
        self._loading = True
        self._generation = 0
        self._task = PeriodicTask("inventory-refresh", refresh_every, self.refresh)

    # ----- Lifecycle -----

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def dispose(self) -> None:
        await self._task.dispose()

    # ----- Reads -----

    @property
    def loading(self) -> bool:
        """True until the first fetch has completed."""
        return self._loading

    def list(self) -> list[Pet]:
        with self._lock:
            return list(self._pets)

    def get_by_id(self, pet_id: uuid.UUID) -> Pet | None:
        with self._lock:
            idx = self._index(pet_id)
            return self._pets[idx] if idx is not None else None

    def fetch(self, pet_id: uuid.UUID) -> Pet | None:
        """
        Read one listing from the backend and bring the cache in line.

        Raises:
            InventoryError: if the backend read fails.
        """
        try:
            with self._session_factory() as db:
                pet = self.repo.get_by_id(db, pet_id)
        except SQLAlchemyError as e:
            logger.exception("Error fetching pet %s", pet_id)
            raise InventoryError("Could not load pet") from e

        with self._lock:
            self._generation += 1
            if pet is None:
                self._drop(pet_id)
            else:
                self._put(pet)
        return pet

    def refresh(self) -> list[Pet]:
        """
        Re-read all pets from the backend.

        Raises:
            InventoryError: if the backend read fails.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation

        try:
            with self._session_factory() as db:
                pets = self.repo.list_all(db)
        except SQLAlchemyError as e:
            logger.exception("Error fetching pets")
            with self._lock:
                if generation == self._generation:
                    self._loading = False
            raise InventoryError("Could not load pets") from e

        with self._lock:
            if generation == self._generation:
                self._pets = pets
                self._loading = False
        return pets

    # ----- Mutations -----

    def toggle_stock(self, pet_id: uuid.UUID) -> Pet | None:
        return self._toggle(pet_id, "in_stock")

    def toggle_visibility(self, pet_id: uuid.UUID) -> Pet | None:
        return self._toggle(pet_id, "is_visible")

    def add_pet(self, fields: dict, created_by: uuid.UUID | None = None) -> Pet:
        """
        Insert a new listing. The backend assigns id and timestamps; the
        result goes to the front of the cache.
        """
        try:
            with self._session_factory() as db:
                pet = self.repo.insert(db, mirror_covers(fields), created_by=created_by)
        except SQLAlchemyError as e:
            logger.exception("Error adding pet")
            raise InventoryError("Could not add pet") from e

        with self._lock:
            self._generation += 1
            self._pets.insert(0, pet)
        logger.info("Pet %s added by %s", pet.id, created_by)
        return pet

    def update_pet(self, pet_id: uuid.UUID, fields: dict) -> Pet | None:
        """
        Merge `fields` into an existing listing.

        Returns None when the pet no longer exists on the backend; any
        stale local copy is dropped.
        """
        try:
            with self._session_factory() as db:
                pet = self.repo.update(db, pet_id, mirror_covers(fields))
        except SQLAlchemyError as e:
            logger.exception("Error updating pet %s", pet_id)
            raise InventoryError("Could not update pet") from e

        with self._lock:
            self._generation += 1
            if pet is None:
                self._drop(pet_id)
            else:
                self._put(pet)
        return pet

    def delete_pet(self, pet_id: uuid.UUID) -> bool:
        """
        Delete a listing. The backend delete is always issued, even if the
        id is not cached; an already-deleted row is not an error.

        Returns:
            True if the backend row existed.
        """
        try:
            with self._session_factory() as db:
                existed = self.repo.delete(db, pet_id)
        except SQLAlchemyError as e:
            logger.exception("Error deleting pet %s", pet_id)
            raise InventoryError("Could not delete pet") from e

        with self._lock:
            self._generation += 1
            self._drop(pet_id)
        if not existed:
            logger.info("Pet %s was already deleted", pet_id)
        return existed

    # ----- Internals -----

    def _index(self, pet_id: uuid.UUID) -> int | None:
        for idx, pet in enumerate(self._pets):
            if pet.id == pet_id:
                return idx
        return None

    def _drop(self, pet_id: uuid.UUID) -> None:
        idx = self._index(pet_id)
        if idx is not None:
            del self._pets[idx]

    def _put(self, pet: Pet) -> None:
        idx = self._index(pet.id)
        if idx is None:
            self._pets.insert(0, pet)
        else:
            self._pets[idx] = pet

    def _toggle(self, pet_id: uuid.UUID, field: str) -> Pet | None:
        with self._lock:
            idx = self._index(pet_id)
            if idx is None:
                return None
            previous = self._pets[idx]
            flipped = replace(previous, **{field: not getattr(previous, field)})
            self._pets[idx] = flipped
            self._generation += 1

        try:
            with self._session_factory() as db:
                updated = self.repo.update(db, pet_id, {field: getattr(flipped, field)})
        except SQLAlchemyError as e:
            logger.exception("Error toggling %s on pet %s", field, pet_id)
            with self._lock:
                idx = self._index(pet_id)
                # Only undo our own flip; a newer write wins.
                if idx is not None and self._pets[idx] is flipped:
                    self._pets[idx] = previous
            raise InventoryError(f"Could not update {field}") from e

        with self._lock:
            if updated is None:
                self._drop(pet_id)
            else:
                self._put(updated)
        return updated
