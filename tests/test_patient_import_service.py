"""
tests/test_patient_import_service.py

Patient spreadsheet preview/import against the in-memory repository.
XLSX payloads are produced with pandas + openpyxl.
"""

from __future__ import annotations

import io
from datetime import date

import pandas as pd
import pytest

from clinic_import.config import BulkImportSettings
from clinic_import.domain.bulk_import import EntityType
from clinic_import.exceptions import EmptyInputError, PayloadTooLargeError, UnsupportedFileTypeError
from clinic_import.repositories.record_repository import InMemoryRecordRepository
from clinic_import.services.duplicate_detector import NAME_AND_DOB_EXISTS, PHONE_EXISTS
from clinic_import.services.patient_import_service import PatientImportService, load_spreadsheet


@pytest.fixture()
def service(repository: InMemoryRecordRepository, bulk_settings: BulkImportSettings) -> PatientImportService:
    return PatientImportService(repository=repository, settings=bulk_settings)


def _csv(*lines: str) -> bytes:
    return "\n".join(lines).encode("utf-8")


def _xlsx(frame: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


class TestPreview:
    def test_preview_suggests_mappings_and_samples(self, service: PatientImportService) -> None:
        rows = [f"P{i},98765432{i:02d},1990-01-{i + 1:02d},Remark {i}" for i in range(6)]
        preview = service.preview(
            file_name="patients.csv",
            data=_csv("First Name,Phone,DOB,Notes", *rows),
        )

        assert preview.total_rows == 6
        assert preview.suggested_mappings == {
            "First Name": "firstName",
            "Phone": "phoneNumber",
            "DOB": "dateOfBirth",
        }
        columns = {column.excel_column: column for column in preview.columns}
        assert columns["Notes"].db_field is None
        assert columns["First Name"].sample_values == ["P0", "P1", "P2"]
        assert len(preview.sample_data) == 5

    def test_unsupported_extension(self, service: PatientImportService) -> None:
        with pytest.raises(UnsupportedFileTypeError):
            service.preview(file_name="patients.pdf", data=b"%PDF-1.4")

    def test_header_only_sheet_is_empty(self, service: PatientImportService) -> None:
        with pytest.raises(EmptyInputError):
            service.preview(file_name="patients.csv", data=_csv("First Name,Phone", ",", ""))

    def test_zero_byte_csv_is_empty(self, service: PatientImportService) -> None:
        with pytest.raises(EmptyInputError):
            service.preview(file_name="patients.csv", data=b"")

    def test_oversized_payload(self, repository: InMemoryRecordRepository) -> None:
        service = PatientImportService(
            repository=repository,
            settings=BulkImportSettings(max_file_size=10),
        )
        with pytest.raises(PayloadTooLargeError):
            service.preview(file_name="patients.csv", data=_csv("First Name,Phone", "Ann,9876543210"))


class TestImportPatients:
    def test_import_counts_failures_and_phone_duplicates(
        self,
        service: PatientImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        data = _csv(
            "First Name,Phone,DOB",
            "Ann,+91 98765 43210,15/01/1990",
            ",9000000000,",
            "Bob,9876543210,",
        )
        result = service.import_patients(file_name="patients.csv", data=data, tenant_id="t-1")

        assert (result.total, result.success, result.failed, result.duplicates) == (3, 1, 1, 1)
        assert result.errors == ["Row 3: Missing required fields: First Name or Phone Number"]
        assert result.duplicate_details[0].row == 4
        assert result.duplicate_details[0].reason == PHONE_EXISTS
        assert result.duplicate_details[0].existing_patient["phone"] == "9876543210"

        (patient,) = repository.all(EntityType.PATIENT)
        assert patient["phone_number"] == "9876543210"
        assert patient["date_of_birth"] == date(1990, 1, 15)
        assert patient["tenant_id"] == "t-1"
        assert patient["last_name"] == ""

    def test_explicit_mapping_and_name_dob_duplicate(
        self,
        service: PatientImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        repository.create(
            EntityType.PATIENT,
            {
                "first_name": "ann",
                "last_name": "lee",
                "phone_number": "1111111111",
                "date_of_birth": date(1990, 1, 15),
            },
        )
        data = _csv("Given,Family,Cell,Born", "Ann,Lee,2222222222,1990-01-15", "Cy,Ng,3333333333,1985-06-01")

        result = service.import_patients(
            file_name="patients.csv",
            data=data,
            column_mapping={"Given": "firstName", "Family": "lastName", "Cell": "phoneNumber", "Born": "dateOfBirth"},
        )

        assert result.success == 1
        assert result.duplicates == 1
        assert result.duplicate_details[0].reason == NAME_AND_DOB_EXISTS
        created = [record for record in repository.all(EntityType.PATIENT) if record["first_name"] == "Cy"]
        assert created[0]["last_name"] == "Ng"

    def test_completely_empty_rows_are_skipped(self, service: PatientImportService) -> None:
        data = _csv("First Name,Phone", "Ann,9876543210", ",", "Bob,9123456780")
        result = service.import_patients(file_name="patients.csv", data=data)

        assert result.total == 2
        assert result.success == 2

    @pytest.mark.parametrize(
        "data",
        [
            b"First Name,Phone\nAnn,9876543210\n,\n,9123456780\n",
            b"First Name,Phone\nAnn,9876543210\n\n,9123456780\n",
        ],
    )
    def test_row_numbers_count_skipped_blank_rows(self, service: PatientImportService, data: bytes) -> None:
        result = service.import_patients(file_name="patients.csv", data=data)

        assert result.total == 2
        assert result.errors == ["Row 4: Missing required fields: First Name or Phone Number"]

    def test_duplicate_row_number_after_blank_row(self, service: PatientImportService) -> None:
        data = _csv("First Name,Phone", "Ann,9876543210", ",", ",", "Bob,9876543210")
        result = service.import_patients(file_name="patients.csv", data=data)

        assert result.duplicate_details[0].row == 5

    def test_csv_excel_serial_date_enables_name_dob_duplicate(
        self,
        service: PatientImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        repository.create(
            EntityType.PATIENT,
            {"first_name": "Ann", "last_name": "", "phone_number": "1111111111", "date_of_birth": date(2023, 3, 15)},
        )

        result = service.import_patients(
            file_name="patients.csv",
            data=_csv("First Name,Phone,DOB", "Ann,2222222222,45000"),
        )

        assert (result.success, result.duplicates) == (0, 1)
        assert result.duplicate_details[0].reason == NAME_AND_DOB_EXISTS

    def test_xlsx_with_excel_serial_dates(
        self,
        service: PatientImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        frame = pd.DataFrame(
            {
                "First Name": ["Ann"],
                "Mobile": [9876543210],
                "Date of Birth": [45000],
                "Gender": ["F"],
                "Blood Group": ["O+"],
            }
        )
        result = service.import_patients(file_name="patients.xlsx", data=_xlsx(frame))

        assert result.success == 1
        (patient,) = repository.all(EntityType.PATIENT)
        assert patient["phone_number"] == "9876543210"
        assert patient["date_of_birth"] == date(2023, 3, 15)
        assert patient["gender"] == "FEMALE"
        assert patient["blood_group"] == "O+"

    def test_repository_failure_is_reported_per_row(self, bulk_settings: BulkImportSettings) -> None:
        class ExplodingRepository(InMemoryRecordRepository):
            def create(self, entity_type, fields):
                raise RuntimeError("disk full")

        service = PatientImportService(repository=ExplodingRepository(), settings=bulk_settings)
        result = service.import_patients(file_name="p.csv", data=_csv("First Name,Phone", "Ann,9876543210"))

        assert result.failed == 1
        assert result.errors == ["Row 2: disk full"]


def test_load_spreadsheet_reads_csv_cells_as_strings() -> None:
    headers, rows = load_spreadsheet("p.csv", _csv("First Name,Phone", "Ann,0987654321"))

    assert headers == ["First Name", "Phone"]
    assert rows == [{"First Name": "Ann", "Phone": "0987654321"}]
