from __future__ import annotations

from datetime import date

import pytest

from clinic_import.domain.bulk_import import EntityType
from clinic_import.repositories.record_repository import InMemoryRecordRepository
from clinic_import.services.duplicate_detector import (
    NAME_AND_DOB_EXISTS,
    PHONE_EXISTS,
    DuplicateDetector,
)


@pytest.fixture()
def detector() -> DuplicateDetector:
    repository = InMemoryRecordRepository(
        seed={
            EntityType.PATIENT: [
                {
                    "id": "p-1",
                    "tenant_id": "t-1",
                    "first_name": "Ann",
                    "last_name": "Lee",
                    "phone_number": "9876543210",
                    "date_of_birth": date(1990, 1, 15),
                }
            ]
        }
    )
    return DuplicateDetector(repository)


def test_phone_match_wins(detector: DuplicateDetector) -> None:
    match = detector.find_duplicate(phone_number="9876543210", first_name="Zed", tenant_id="t-1")

    assert match is not None
    assert match.reason == PHONE_EXISTS
    assert match.summary() == {"id": "p-1", "name": "Ann Lee", "phone": "9876543210"}


def test_phone_match_is_scoped_to_tenant(detector: DuplicateDetector) -> None:
    assert detector.find_duplicate(phone_number="9876543210", first_name="Zed", tenant_id="t-2") is None


def test_name_and_dob_match_is_case_insensitive(detector: DuplicateDetector) -> None:
    match = detector.find_duplicate(
        phone_number="1111111111",
        first_name="ANN",
        last_name="lee",
        date_of_birth=date(1990, 1, 15),
        tenant_id="t-1",
    )

    assert match is not None
    assert match.reason == NAME_AND_DOB_EXISTS


def test_last_name_is_optional_for_name_match(detector: DuplicateDetector) -> None:
    match = detector.find_duplicate(
        phone_number="1111111111",
        first_name="ann",
        date_of_birth=date(1990, 1, 15),
    )
    assert match is not None


def test_missing_date_of_birth_disables_name_check(detector: DuplicateDetector) -> None:
    assert detector.find_duplicate(phone_number="1111111111", first_name="Ann", last_name="Lee") is None


def test_different_birthday_is_not_a_duplicate(detector: DuplicateDetector) -> None:
    assert (
        detector.find_duplicate(
            phone_number="1111111111",
            first_name="Ann",
            last_name="Lee",
            date_of_birth=date(1991, 1, 15),
        )
        is None
    )
