"""
clinic_import/services/duplicate_detector.py

Existing-patient detection for the patient spreadsheet import path.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from clinic_import.domain.bulk_import import EntityType
from clinic_import.repositories.record_repository import Record, RecordRepository

PHONE_EXISTS = "phone exists"
NAME_AND_DOB_EXISTS = "name+DOB exists"


@dataclass(frozen=True)
class DuplicateMatch:
    reason: str
    existing: Record

    def summary(self) -> dict[str, Any]:
        name = " ".join(
            part for part in (self.existing.get("first_name"), self.existing.get("last_name")) if part
        )
        return {
            "id": str(self.existing.get("id", "")),
            "name": name,
            "phone": self.existing.get("phone_number") or "",
        }


class DuplicateDetector:
    """
    Checks phone first, then first name (+ last name) with date of birth.

    Without a parseable date of birth only the phone check runs.
    """

    def __init__(self, repository: RecordRepository) -> None:
        self._repository = repository

    def find_duplicate(
        self,
        *,
        phone_number: str,
        first_name: str,
        last_name: str | None = None,
        date_of_birth: date | None = None,
        tenant_id: str | None = None,
    ) -> DuplicateMatch | None:
        if phone_number:
            existing = self._repository.find_by_unique_field(
                EntityType.PATIENT,
                "phone_number",
                phone_number,
                tenant_id=tenant_id,
            )
            if existing is not None:
                return DuplicateMatch(reason=PHONE_EXISTS, existing=existing)

        if first_name and date_of_birth is not None:
            criteria: dict[str, Any] = {
                "first_name": first_name,
                "date_of_birth": date_of_birth,
            }
            if last_name:
                criteria["last_name"] = last_name
            existing = self._repository.find_first(
                EntityType.PATIENT,
                criteria,
                tenant_id=tenant_id,
                case_insensitive=("first_name", "last_name"),
            )
            if existing is not None:
                return DuplicateMatch(reason=NAME_AND_DOB_EXISTS, existing=existing)

        return None
