"""
clinic_import/services/patient_import_service.py

Patient spreadsheet import with flexible column names and duplicate checks.

Unlike the bulk row importer, this path accepts arbitrary headers (CSV or
XLSX), resolves them to patient fields through ``ColumnMapper``, and runs
synchronously, returning a per-file result.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from zipfile import BadZipFile

import pandas as pd

from clinic_import.config import BulkImportSettings, get_bulk_import_settings
from clinic_import.domain.bulk_import import EntityType, spreadsheet_row_number
from clinic_import.exceptions import (
    EmptyInputError,
    MalformedInputError,
    PayloadTooLargeError,
    RowImportError,
    RowValidationError,
    TooManyRowsError,
    UnsupportedFileTypeError,
)
from clinic_import.logging_utils import log_event
from clinic_import.mappers.column_mapper import ColumnMapper
from clinic_import.repositories.record_repository import RecordRepository
from clinic_import.services.duplicate_detector import DuplicateDetector, DuplicateMatch
from clinic_import.validators.normalizers import (
    clean_string,
    normalize_gender,
    normalize_phone,
    parse_flexible_date,
)
from clinic_import.validators.row_validator import RowValidator

logger = logging.getLogger(__name__)

SUPPORTED_SPREADSHEET_SUFFIXES = (".csv", ".xlsx")
PREVIEW_SAMPLE_VALUES = 3
PREVIEW_SAMPLE_ROWS = 5


@dataclass(frozen=True)
class ColumnPreview:
    excel_column: str
    db_field: str | None
    sample_values: list[str]


@dataclass(frozen=True)
class ImportPreview:
    columns: list[ColumnPreview]
    suggested_mappings: dict[str, str]
    total_rows: int
    sample_data: list[dict[str, Any]]


@dataclass(frozen=True)
class DuplicateDetail:
    row: int
    reason: str
    existing_patient: dict[str, Any] | None = None


@dataclass
class PatientImportResult:
    total: int = 0
    success: int = 0
    failed: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)
    duplicate_details: list[DuplicateDetail] = field(default_factory=list)


def load_spreadsheet(file_name: str, data: bytes) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Read the first sheet of a CSV or XLSX payload into headers and row dicts.

    CSV cells stay strings; XLSX cells keep their native types (numbers,
    timestamps) so Excel serial dates survive. Empty cells become None.
    Blank lines are kept as all-None rows so list positions match sheet rows.
    """

    suffix = Path(file_name or "").suffix.lower()
    if suffix not in SUPPORTED_SPREADSHEET_SUFFIXES:
        raise UnsupportedFileTypeError("Only .xlsx and .csv files are allowed.")

    buffer = io.BytesIO(data)
    try:
        if suffix == ".csv":
            frame = pd.read_csv(
                buffer,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        else:
            frame = pd.read_excel(buffer, sheet_name=0, engine="openpyxl")
    except pd.errors.EmptyDataError as exc:
        raise EmptyInputError("Spreadsheet is empty.") from exc
    except (ValueError, BadZipFile) as exc:
        raise MalformedInputError(f"Could not read spreadsheet: {exc}") from exc

    frame.columns = [str(column) for column in frame.columns]
    frame = frame.astype(object).where(frame.notna(), None)
    return list(frame.columns), frame.to_dict(orient="records")


class PatientImportService:
    """
    Previews and imports patient spreadsheets.
    """

    def __init__(
        self,
        *,
        repository: RecordRepository,
        settings: BulkImportSettings | None = None,
        mapper: ColumnMapper | None = None,
        detector: DuplicateDetector | None = None,
        validator: RowValidator | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or get_bulk_import_settings()
        self._mapper = mapper or ColumnMapper()
        self._detector = detector or DuplicateDetector(repository)
        self._validator = validator or RowValidator()

    @property
    def max_upload_bytes(self) -> int:
        return self._settings.max_file_size

    def preview(self, *, file_name: str, data: bytes) -> ImportPreview:
        """
        Suggest a column mapping and show sample values before importing.
        """

        headers, numbered_rows = self._load(file_name, data)
        rows = [row for _, row in numbered_rows]
        suggestions = self._mapper.suggest_mappings(headers)
        columns = [
            ColumnPreview(
                excel_column=header,
                db_field=suggestions.get(header),
                sample_values=[
                    str(row[header])
                    for row in rows[:PREVIEW_SAMPLE_VALUES]
                    if row.get(header) is not None
                ],
            )
            for header in headers
        ]
        sample_data = [
            {key: (None if value is None else str(value)) for key, value in row.items()}
            for row in rows[:PREVIEW_SAMPLE_ROWS]
        ]
        return ImportPreview(
            columns=columns,
            suggested_mappings=suggestions,
            total_rows=len(rows),
            sample_data=sample_data,
        )

    def import_patients(
        self,
        *,
        file_name: str,
        data: bytes,
        tenant_id: str | None = None,
        column_mapping: Mapping[str, str] | None = None,
    ) -> PatientImportResult:
        """
        Create one patient per row, skipping duplicates and recording failures.

        ``column_mapping`` is header -> patient field; suggested mappings are
        used when it is omitted.
        """

        headers, numbered_rows = self._load(file_name, data)
        mapping = dict(column_mapping) if column_mapping else self._mapper.suggest_mappings(headers)
        result = PatientImportResult(total=len(numbered_rows))

        for row_number, raw_row in numbered_rows:
            try:
                match = self._import_row(
                    mapped=self._mapper.map_row(raw_row, mapping),
                    tenant_id=tenant_id,
                )
            except RowImportError as exc:
                result.failed += 1
                result.errors.append(f"Row {row_number}: {exc}")
                continue
            except Exception as exc:  # noqa: BLE001
                logger.warning("Patient import failed row=%s: %s", row_number, exc)
                result.failed += 1
                result.errors.append(f"Row {row_number}: {exc}")
                continue

            if match is None:
                result.success += 1
                continue

            result.duplicates += 1
            result.duplicate_details.append(
                DuplicateDetail(row=row_number, reason=match.reason, existing_patient=match.summary())
            )

        log_event(
            logger,
            logging.INFO,
            "patient_import_completed",
            tenant_id=tenant_id,
            file_name=file_name,
            total=result.total,
            success=result.success,
            failed=result.failed,
            duplicates=result.duplicates,
        )
        return result

    def _load(self, file_name: str, data: bytes) -> tuple[list[str], list[tuple[int, dict[str, Any]]]]:
        """
        Return headers and (sheet row number, row) pairs, empty rows dropped.
        """

        if len(data) > self._settings.max_file_size:
            raise PayloadTooLargeError(size_bytes=len(data), max_bytes=self._settings.max_file_size)

        headers, rows = load_spreadsheet(file_name, data)
        numbered_rows = [
            (spreadsheet_row_number(index), row)
            for index, row in enumerate(rows)
            if not self._validator.is_completely_empty_row(row)
        ]
        if not numbered_rows:
            raise EmptyInputError("Spreadsheet has no data rows.")
        if len(numbered_rows) > self._settings.max_rows:
            raise TooManyRowsError(row_count=len(numbered_rows), max_rows=self._settings.max_rows)
        return headers, numbered_rows

    def _import_row(self, *, mapped: Mapping[str, Any], tenant_id: str | None) -> DuplicateMatch | None:
        first_name = clean_string(mapped.get("firstName"))
        last_name = clean_string(mapped.get("lastName")) or ""
        phone_number = normalize_phone(mapped.get("phoneNumber"))
        if not first_name or not phone_number:
            raise RowValidationError("Missing required fields: First Name or Phone Number")

        date_of_birth = parse_flexible_date(mapped.get("dateOfBirth"))
        match = self._detector.find_duplicate(
            phone_number=phone_number,
            first_name=first_name,
            last_name=last_name,
            date_of_birth=date_of_birth,
            tenant_id=tenant_id,
        )
        if match is not None:
            return match

        medical_history = clean_string(mapped.get("medicalHistory"))
        self._repository.create(
            EntityType.PATIENT,
            {
                "tenant_id": tenant_id,
                "first_name": first_name,
                "last_name": last_name,
                "phone_number": phone_number,
                "gender": normalize_gender(mapped.get("gender")),
                "date_of_birth": date_of_birth,
                "email": clean_string(mapped.get("email")),
                "address": clean_string(mapped.get("address")),
                "blood_group": clean_string(mapped.get("bloodGroup")),
                "allergies": clean_string(mapped.get("allergies")),
                "medical_history": [medical_history] if medical_history else [],
            },
        )
        return None
