"""
clinic_import/repositories/sqlalchemy_record_repository.py

``RecordRepository`` backed by the SQLAlchemy models in ``db.models``.

Every call opens its own short session and each ``create`` commits on its
own, so a failed row never rolls back rows imported before it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_import.domain.bulk_import import EntityType
from clinic_import.exceptions import DuplicateRecordError, RecordPersistenceError
from clinic_import.repositories.record_repository import Record
from db.base import Base
from db.models import Doctor, InventoryItem, LabTest, Patient

logger = logging.getLogger(__name__)

# Prescriptions are never written by import, so they have no table here.
ENTITY_MODELS: dict[EntityType, type[Base]] = {
    EntityType.PATIENT: Patient,
    EntityType.DOCTOR: Doctor,
    EntityType.LAB_TEST: LabTest,
    EntityType.INVENTORY: InventoryItem,
}


def _to_record(instance: Base) -> Record:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SQLAlchemyRecordRepository:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def find_by_unique_field(
        self,
        entity_type: EntityType,
        field: str,
        value: Any,
        *,
        tenant_id: str | None = None,
    ) -> Record | None:
        if value is None:
            return None
        return self.find_first(entity_type, {field: value}, tenant_id=tenant_id)

    def find_first(
        self,
        entity_type: EntityType,
        criteria: Mapping[str, Any],
        *,
        tenant_id: str | None = None,
        case_insensitive: tuple[str, ...] = (),
    ) -> Record | None:
        model = self._model_for(entity_type)
        if model is None:
            return None

        stmt = select(model)
        if tenant_id is not None:
            stmt = stmt.where(model.tenant_id == tenant_id)
        for key, expected in criteria.items():
            column = getattr(model, key)
            if key in case_insensitive and isinstance(expected, str):
                stmt = stmt.where(func.lower(column) == expected.lower())
            else:
                stmt = stmt.where(column == expected)

        with self._session_factory() as session:
            instance = session.execute(stmt.limit(1)).scalars().first()
            return _to_record(instance) if instance is not None else None

    def create(self, entity_type: EntityType, fields: Mapping[str, Any]) -> Record:
        model = self._model_for(entity_type)
        if model is None:
            raise RecordPersistenceError(f"{entity_type.value} records cannot be created by import")

        columns = set(model.__table__.columns.keys())
        instance = model(**{key: value for key, value in fields.items() if key in columns})

        with self._session_factory() as session:
            try:
                session.add(instance)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRecordError(
                    f"{entity_type.value.lower()} violates a uniqueness constraint"
                ) from exc
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Failed to persist %s record: %s", entity_type.value, exc)
                raise RecordPersistenceError(f"Failed to create {entity_type.value.lower()}") from exc
            return _to_record(instance)

    @staticmethod
    def _model_for(entity_type: EntityType) -> type[Base] | None:
        return ENTITY_MODELS.get(entity_type)
