# finzoo/repositories/pet_repo.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from finzoo.domain.pet import Pet
from finzoo.models.pet import PetRow
from finzoo.repositories.mappers import pet_fields_to_columns, pet_from_row


class PetRepository:
    """
    Data access layer for the `pets` table.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    - Returns domain `Pet` objects, never rows.
    """

    def list_all(self, session: Session) -> list[Pet]:
        stmt = select(PetRow).order_by(PetRow.created_at.desc())
        return [pet_from_row(row) for row in session.exec(stmt).all()]

    def get_by_id(self, session: Session, pet_id: uuid.UUID) -> Pet | None:
        row = session.get(PetRow, pet_id)
        return pet_from_row(row) if row else None

    def insert(
        self,
        session: Session,
        fields: dict,
        created_by: uuid.UUID | None = None,
    ) -> Pet:
        row = PetRow(**pet_fields_to_columns(fields), created_by=created_by)
        session.add(row)
        session.commit()
        session.refresh(row)
        return pet_from_row(row)

    def update(
        self,
        session: Session,
        pet_id: uuid.UUID,
        fields: dict,
    ) -> Pet | None:
        """Partial update. Returns None if the row does not exist."""
        row = session.get(PetRow, pet_id)
        if row is None:
            return None
        for key, value in pet_fields_to_columns(fields).items():
            setattr(row, key, value)
        row.updated_at = datetime.now(timezone.utc)
        session.add(row)
        session.commit()
        session.refresh(row)
        return pet_from_row(row)

    def delete(self, session: Session, pet_id: uuid.UUID) -> bool:
        """Delete by id. Returns False if the row was already gone."""
        row = session.get(PetRow, pet_id)
        if row is None:
            return False
        session.delete(row)
        session.commit()
        return True
