"""
clinic_import/services/entity_importers.py

Per-entity import handlers for the bulk row importer.

Each ``EntityType`` has exactly one ``EntityHandler`` carrying its required
field groups and its row import function. ``ENTITY_HANDLERS`` is checked for
exhaustiveness at import time, so adding an entity type without a handler
fails loudly instead of silently skipping rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from clinic_import.domain.bulk_import import EntityType
from clinic_import.exceptions import (
    DuplicateRecordError,
    MissingReferenceError,
    RecordPersistenceError,
    RowImportError,
)
from clinic_import.repositories.record_repository import Record, RecordRepository
from clinic_import.validators.normalizers import (
    clean_string,
    normalize_gender,
    parse_flexible_date,
)
from clinic_import.validators.row_validator import RequiredFieldGroups

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass(frozen=True)
class ImportContext:
    """
    Per-job collaborators handed to every row handler.
    """

    repository: RecordRepository
    tenant_id: str | None
    placeholder_password: str


@dataclass(frozen=True)
class EntityHandler:
    entity_type: EntityType
    required_fields: RequiredFieldGroups
    import_row: Callable[[ImportContext, Row], None]


def _create(context: ImportContext, entity_type: EntityType, fields: Mapping[str, Any]) -> Record:
    try:
        return context.repository.create(entity_type, fields)
    except RowImportError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise RecordPersistenceError(f"Failed to create {entity_type.value.lower()}: {exc}") from exc


def _parse_int(value: Any) -> int | None:
    raw = clean_string(value)
    if raw is None:
        return None
    try:
        return int(Decimal(raw))
    except (InvalidOperation, ValueError):
        return None


def _parse_decimal(value: Any) -> Decimal | None:
    raw = clean_string(value)
    if raw is None:
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def import_patient(context: ImportContext, row: Row) -> None:
    email = clean_string(row.get("email"))
    if email and context.repository.find_by_unique_field(EntityType.PATIENT, "email", email):
        raise DuplicateRecordError(f"Email already exists: {email}")

    _create(
        context,
        EntityType.PATIENT,
        {
            "tenant_id": context.tenant_id,
            "first_name": clean_string(row.get("firstName")),
            "last_name": clean_string(row.get("lastName")),
            "phone_number": clean_string(row.get("phoneNumber")),
            "email": email,
            "date_of_birth": parse_flexible_date(row.get("dateOfBirth")),
            "blood_group": clean_string(row.get("bloodGroup")),
            "address": clean_string(row.get("address")),
            "gender": normalize_gender(row.get("gender")),
        },
    )


def import_doctor(context: ImportContext, row: Row) -> None:
    email = clean_string(row.get("email"))
    if context.repository.find_by_unique_field(EntityType.DOCTOR, "email", email):
        raise DuplicateRecordError(f"Email already exists: {email}")

    # Credentials are delivered out of band; the placeholder must be rotated.
    _create(
        context,
        EntityType.DOCTOR,
        {
            "tenant_id": context.tenant_id,
            "email": email,
            "name": clean_string(row.get("name")),
            "password": context.placeholder_password,
            "role": "DOCTOR",
            "specialization": clean_string(row.get("specialization")),
            "registration_number": clean_string(row.get("registrationNumber")),
            "phone_number": clean_string(row.get("phoneNumber")) or clean_string(row.get("phone")),
        },
    )


def import_prescription(context: ImportContext, row: Row) -> None:
    """
    Prescriptions are never created by bulk import; the row is validated
    for referential integrity only.

    A prescription must be linked to an appointment, which bulk rows cannot
    supply.
    """

    patient_id = clean_string(row.get("patientId"))
    doctor_id = clean_string(row.get("doctorId"))

    if context.repository.find_by_unique_field(EntityType.PATIENT, "id", patient_id) is None:
        raise MissingReferenceError(f"Patient not found: {patient_id}")
    if context.repository.find_by_unique_field(EntityType.DOCTOR, "id", doctor_id) is None:
        raise MissingReferenceError(f"Doctor not found: {doctor_id}")

    logger.warning(
        "Skipping prescription import for patient %s: bulk import requires existing appointments",
        patient_id,
    )


def import_lab_test(context: ImportContext, row: Row) -> None:
    test_code = clean_string(row.get("testCode"))
    existing = context.repository.find_by_unique_field(
        EntityType.LAB_TEST,
        "test_code",
        test_code,
        tenant_id=context.tenant_id,
    )
    if existing:
        raise DuplicateRecordError(f"Test code already exists: {test_code}")

    _create(
        context,
        EntityType.LAB_TEST,
        {
            "tenant_id": context.tenant_id,
            "test_name": clean_string(row.get("testName")),
            "test_code": test_code,
            "description": clean_string(row.get("description")),
            "cost": _parse_decimal(row.get("cost")),
            "turnaround_time": clean_string(row.get("turnaroundTime")),
        },
    )


def import_inventory(context: ImportContext, row: Row) -> None:
    _create(
        context,
        EntityType.INVENTORY,
        {
            "tenant_id": context.tenant_id,
            "item_name": clean_string(row.get("itemName")),
            "quantity": _parse_int(row.get("quantity")) or 0,
            "cost": _parse_decimal(row.get("cost")),
            "reorder_level": _parse_int(row.get("reorderLevel")),
            "category": clean_string(row.get("category")),
        },
    )


ENTITY_HANDLERS: dict[EntityType, EntityHandler] = {
    EntityType.PATIENT: EntityHandler(
        EntityType.PATIENT,
        (("firstName", "lastName"), ("phoneNumber",)),
        import_patient,
    ),
    EntityType.PRESCRIPTION: EntityHandler(
        EntityType.PRESCRIPTION,
        (("patientId", "doctorId"),),
        import_prescription,
    ),
    EntityType.DOCTOR: EntityHandler(
        EntityType.DOCTOR,
        (("name", "email"),),
        import_doctor,
    ),
    EntityType.LAB_TEST: EntityHandler(
        EntityType.LAB_TEST,
        (("testName", "testCode"),),
        import_lab_test,
    ),
    EntityType.INVENTORY: EntityHandler(
        EntityType.INVENTORY,
        (("itemName",),),
        import_inventory,
    ),
}


def get_entity_handler(entity_type: EntityType) -> EntityHandler:
    return ENTITY_HANDLERS[entity_type]


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

IMPORT_TEMPLATES: dict[EntityType, dict[str, str]] = {
    EntityType.PATIENT: {
        "firstName": "John",
        "lastName": "Doe",
        "phoneNumber": "+919876543210",
        "email": "john@example.com",
        "dateOfBirth": "1990-01-15",
        "bloodGroup": "O+",
        "gender": "M",
        "address": "123 Main St, City",
    },
    EntityType.PRESCRIPTION: {
        "patientId": "patient_id_here",
        "doctorId": "doctor_id_here",
        "instructions": "Take with food",
    },
    EntityType.DOCTOR: {
        "name": "Dr. Jane Smith",
        "email": "jane@hospital.com",
        "phone": "+919876543210",
        "specialization": "Cardiology",
        "registrationNumber": "MCI12345",
    },
    EntityType.LAB_TEST: {
        "testName": "Blood Test",
        "testCode": "BT001",
        "description": "Complete blood count",
        "cost": "500",
        "turnaroundTime": "24 hours",
    },
    EntityType.INVENTORY: {
        "itemName": "Aspirin 500mg",
        "quantity": "100",
        "cost": "50",
        "reorderLevel": "20",
        "category": "Medicine",
    },
}


def _assert_exhaustive() -> None:
    for registry_name, registry in (
        ("import handler", ENTITY_HANDLERS),
        ("import template", IMPORT_TEMPLATES),
    ):
        missing = set(EntityType) - set(registry)
        if missing:
            names = ", ".join(sorted(entity.value for entity in missing))
            raise RuntimeError(f"No {registry_name} registered for: {names}")


_assert_exhaustive()
