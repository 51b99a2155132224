"""
tests/test_bulk_import_service.py

Pytest unit tests for BulkImportService submission and processing.

All collaborators are in-memory: InMemoryRecordRepository, an inline or
recording work queue, and a manually advanced clock for the rate limiter.
"""

from __future__ import annotations

import csv
import io

import pytest

from clinic_import.config import BulkImportSettings
from clinic_import.domain.bulk_import import EntityType, JobStatus, RowOutcome
from clinic_import.exceptions import (
    EmptyInputError,
    InvalidEntityTypeError,
    MalformedInputError,
    PayloadTooLargeError,
    RateLimitedError,
    TooManyRowsError,
    WorkQueueUnavailableError,
)
from clinic_import.repositories.job_tracker import InMemoryJobTracker
from clinic_import.repositories.record_repository import InMemoryRecordRepository
from clinic_import.services.bulk_import_service import BulkImportService, parse_csv_rows
from clinic_import.services.rate_limiter import TenantRateLimiter
from clinic_import.services.work_queue import InlineWorkQueue, SchedulerWorkQueue


PATIENT_HEADER = "firstName,lastName,phoneNumber"


def _csv(*lines: str) -> bytes:
    return "\n".join(lines).encode("utf-8")


def _submit(service: BulkImportService, data: bytes, entity_type: str = "PATIENT", tenant_id: str | None = "t-1"):
    return service.submit(
        tenant_id=tenant_id,
        user_id="u-1",
        entity_type=entity_type,
        file_name="upload.csv",
        data=data,
    )


def _result(job_tracker: InMemoryJobTracker, job_id: str) -> dict:
    snapshot = job_tracker.get(job_id)
    assert snapshot is not None
    assert snapshot.status is JobStatus.COMPLETED
    return snapshot.result


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------


class TestPatientScenario:
    def test_single_patient_row_is_created(
        self,
        bulk_service: BulkImportService,
        repository: InMemoryRecordRepository,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        receipt = _submit(bulk_service, _csv(PATIENT_HEADER, "John,Doe,1234567890"))

        assert receipt.total_rows == 1
        assert receipt.status is JobStatus.QUEUED
        assert receipt.job_id.startswith("import_")

        result = _result(job_tracker, receipt.job_id)
        assert result["success_count"] == 1
        assert result["errors"] == []

        patients = repository.all(EntityType.PATIENT)
        assert len(patients) == 1
        assert patients[0]["phone_number"] == "1234567890"
        assert patients[0]["first_name"] == "John"
        assert patients[0]["tenant_id"] == "t-1"

    def test_total_rows_matches_data_rows(self, bulk_service: BulkImportService) -> None:
        rows = [f"P{i},Doe,98765000{i:02d}" for i in range(7)]
        receipt = _submit(bulk_service, _csv(PATIENT_HEADER, *rows))
        assert receipt.total_rows == 7


# ---------------------------------------------------------------------------
# Row numbering and isolation
# ---------------------------------------------------------------------------


class TestRowProcessing:
    def test_row_numbers_use_header_offset_across_batches(
        self,
        bulk_service: BulkImportService,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        # batch_size is 2, so these rows span two batches.
        receipt = _submit(bulk_service, _csv(PATIENT_HEADER, "A,One,", "B,Two,", "C,Three,"))

        result = _result(job_tracker, receipt.job_id)
        assert [error["row_number"] for error in result["errors"]] == [2, 3, 4]
        assert all(error["error"] == "Missing phoneNumber" for error in result["errors"])

    def test_one_bad_row_does_not_abort_the_job(
        self,
        bulk_service: BulkImportService,
        repository: InMemoryRecordRepository,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        data = _csv(
            PATIENT_HEADER,
            "Ann,Lee,9000000001",
            "Bob,Ray,9000000002",
            "Cat,,9000000003",
            "Dan,Fox,9000000004",
            "Eve,Kim,9000000005",
        )
        receipt = _submit(bulk_service, data)

        result = _result(job_tracker, receipt.job_id)
        assert result["success_count"] == 4
        assert result["failed_count"] == 1
        assert result["errors"][0]["row_number"] == 4
        assert result["errors"][0]["outcome"] == RowOutcome.VALIDATION_ERROR.value
        assert result["errors"][0]["error"] == "Missing firstName or lastName"
        assert len(repository.all(EntityType.PATIENT)) == 4

    def test_duplicate_patient_email_is_reported_as_duplicate(
        self,
        repository: InMemoryRecordRepository,
        bulk_service: BulkImportService,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        repository.create(EntityType.PATIENT, {"first_name": "Old", "email": "john@example.com"})
        data = _csv(
            "firstName,lastName,phoneNumber,email",
            "John,Doe,1234567890,john@example.com",
        )
        receipt = _submit(bulk_service, data)

        result = _result(job_tracker, receipt.job_id)
        assert result["duplicate_count"] == 1
        assert result["failed_count"] == 0
        assert result["errors"][0]["outcome"] == RowOutcome.DUPLICATE.value

    def test_repository_failure_is_recorded_as_persistence_error(
        self,
        bulk_settings: BulkImportSettings,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        class ExplodingRepository(InMemoryRecordRepository):
            def create(self, entity_type, fields):
                raise RuntimeError("connection reset")

        service = BulkImportService(
            repository=ExplodingRepository(),
            work_queue=InlineWorkQueue(),
            settings=bulk_settings,
            job_tracker=job_tracker,
        )
        receipt = _submit(service, _csv(PATIENT_HEADER, "John,Doe,1234567890"))

        result = _result(job_tracker, receipt.job_id)
        assert result["failed_count"] == 1
        assert result["errors"][0]["outcome"] == RowOutcome.PERSISTENCE_ERROR.value
        assert "connection reset" in result["errors"][0]["error"]

    def test_recorded_errors_are_capped(
        self,
        repository: InMemoryRecordRepository,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        settings = BulkImportSettings(max_recorded_errors=2, log_row_errors=False)
        service = BulkImportService(
            repository=repository,
            work_queue=InlineWorkQueue(),
            settings=settings,
            job_tracker=job_tracker,
        )
        receipt = _submit(service, _csv(PATIENT_HEADER, "A,,1", "B,,2", "C,,3", "D,,4"))

        result = _result(job_tracker, receipt.job_id)
        assert result["failed_count"] == 4
        assert len(result["errors"]) == 2

    def test_counts_always_sum_to_total(
        self,
        repository: InMemoryRecordRepository,
        bulk_service: BulkImportService,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        repository.create(EntityType.PATIENT, {"first_name": "X", "email": "dup@example.com"})
        data = _csv(
            "firstName,lastName,phoneNumber,email",
            "A,B,1111111111,",
            "C,D,2222222222,dup@example.com",
            "E,,3333333333,",
        )
        receipt = _submit(bulk_service, data)

        result = _result(job_tracker, receipt.job_id)
        assert result["success_count"] + result["duplicate_count"] + result["failed_count"] == 3


# ---------------------------------------------------------------------------
# Entity-specific behavior
# ---------------------------------------------------------------------------


class TestEntityTypes:
    def test_prescription_rows_never_create_records(
        self,
        bulk_settings: BulkImportSettings,
        job_tracker: InMemoryJobTracker,
        recording_queue,
    ) -> None:
        repository = InMemoryRecordRepository(
            seed={
                EntityType.PATIENT: [{"id": "p-1", "first_name": "Ann"}],
                EntityType.DOCTOR: [{"id": "d-1", "name": "Dr. Who"}],
            }
        )
        service = BulkImportService(
            repository=repository,
            work_queue=recording_queue,
            settings=bulk_settings,
            job_tracker=job_tracker,
        )
        receipt = _submit(service, _csv("patientId,doctorId,instructions", "p-1,d-1,Take with food"), "PRESCRIPTION")
        job, _handler = recording_queue.jobs[0]
        assert job.job_id == receipt.job_id

        for _ in range(3):
            summary = service.process_import(job)
            assert summary.success_count == 1
            assert summary.failed_count == 0

        assert repository.all(EntityType.PRESCRIPTION) == []

    def test_prescription_with_unknown_patient_is_a_validation_error(
        self,
        bulk_service: BulkImportService,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        receipt = _submit(bulk_service, _csv("patientId,doctorId", "p-404,d-1"), "PRESCRIPTION")

        result = _result(job_tracker, receipt.job_id)
        assert result["failed_count"] == 1
        assert result["errors"][0]["outcome"] == RowOutcome.VALIDATION_ERROR.value
        assert result["errors"][0]["error"] == "Patient not found: p-404"

    def test_doctor_gets_placeholder_password_and_role(
        self,
        bulk_service: BulkImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        data = _csv(
            "name,email,phone,specialization,registrationNumber",
            "Dr. Jane Smith,jane@hospital.com,+919876543210,Cardiology,MCI12345",
        )
        _submit(bulk_service, data, "doctor")

        doctors = repository.all(EntityType.DOCTOR)
        assert len(doctors) == 1
        assert doctors[0]["password"] == "temp_password"
        assert doctors[0]["role"] == "DOCTOR"
        assert doctors[0]["phone_number"] == "+919876543210"

    def test_lab_test_code_is_unique_within_tenant(
        self,
        bulk_service: BulkImportService,
        repository: InMemoryRecordRepository,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        repository.create(EntityType.LAB_TEST, {"tenant_id": "t-2", "test_code": "BT001"})
        data = _csv("testName,testCode,cost", "Blood Test,BT001,500", "Blood Test,BT001,500")
        receipt = _submit(bulk_service, data, "LAB_TEST")

        result = _result(job_tracker, receipt.job_id)
        assert result["success_count"] == 1
        assert result["duplicate_count"] == 1
        assert result["errors"][0]["row_number"] == 3

    def test_inventory_quantity_defaults_to_zero(
        self,
        bulk_service: BulkImportService,
        repository: InMemoryRecordRepository,
    ) -> None:
        _submit(bulk_service, _csv("itemName,quantity,category", "Gauze,,Supplies"), "INVENTORY")

        items = repository.all(EntityType.INVENTORY)
        assert items[0]["item_name"] == "Gauze"
        assert items[0]["quantity"] == 0


# ---------------------------------------------------------------------------
# Submission checks
# ---------------------------------------------------------------------------


class TestSubmission:
    def test_second_submission_inside_window_is_rate_limited(
        self,
        bulk_service: BulkImportService,
        clock,
    ) -> None:
        data = _csv(PATIENT_HEADER, "John,Doe,1234567890")
        _submit(bulk_service, data)

        clock.advance(10)
        with pytest.raises(RateLimitedError) as ctx:
            _submit(bulk_service, data)
        assert ctx.value.retry_after_seconds == 290
        assert "290 seconds" in str(ctx.value)

        clock.advance(290)
        assert _submit(bulk_service, data).total_rows == 1

    def test_rate_limit_is_per_tenant(self, bulk_service: BulkImportService) -> None:
        data = _csv(PATIENT_HEADER, "John,Doe,1234567890")
        _submit(bulk_service, data, tenant_id="t-1")
        assert _submit(bulk_service, data, tenant_id="t-2").total_rows == 1

    def test_rejected_submission_does_not_consume_window(self, bulk_service: BulkImportService) -> None:
        with pytest.raises(EmptyInputError):
            _submit(bulk_service, _csv(PATIENT_HEADER))
        with pytest.raises(InvalidEntityTypeError):
            _submit(bulk_service, _csv(PATIENT_HEADER, "John,Doe,1234567890"), "APPOINTMENT")

        assert _submit(bulk_service, _csv(PATIENT_HEADER, "John,Doe,1234567890")).total_rows == 1

    def test_size_boundary(
        self,
        repository: InMemoryRecordRepository,
        clock,
        recording_queue,
    ) -> None:
        data = _csv(PATIENT_HEADER, "John,Doe,1234567890")
        settings = BulkImportSettings(max_file_size=len(data), log_row_errors=False)
        service = BulkImportService(
            repository=repository,
            work_queue=recording_queue,
            settings=settings,
            rate_limiter=TenantRateLimiter(interval_seconds=0, clock=clock),
        )

        assert _submit(service, data).total_rows == 1
        with pytest.raises(PayloadTooLargeError) as ctx:
            _submit(service, data + b"\n")
        assert ctx.value.max_bytes == len(data)

    def test_rate_limit_is_checked_before_size(self, bulk_service: BulkImportService, bulk_settings) -> None:
        _submit(bulk_service, _csv(PATIENT_HEADER, "John,Doe,1234567890"))
        with pytest.raises(RateLimitedError):
            _submit(bulk_service, b"x" * (bulk_settings.max_file_size + 1))

    def test_size_is_checked_before_entity_type(self, bulk_service: BulkImportService, bulk_settings) -> None:
        with pytest.raises(PayloadTooLargeError):
            _submit(bulk_service, b"x" * (bulk_settings.max_file_size + 1), "NOT_A_TYPE")

    def test_header_only_input_is_empty(self, bulk_service: BulkImportService) -> None:
        with pytest.raises(EmptyInputError, match="CSV file is empty."):
            _submit(bulk_service, _csv(PATIENT_HEADER))

    def test_row_count_limit(self, bulk_service: BulkImportService, bulk_settings) -> None:
        rows = [f"P{i},Doe,{i}" for i in range(bulk_settings.max_rows + 1)]
        with pytest.raises(TooManyRowsError):
            _submit(bulk_service, _csv(PATIENT_HEADER, *rows))

    def test_non_utf8_payload_is_malformed(self, bulk_service: BulkImportService) -> None:
        with pytest.raises(MalformedInputError):
            _submit(bulk_service, b"firstName\n\xff\xfe\xfa")

    def test_entity_type_is_case_insensitive(self, bulk_service: BulkImportService) -> None:
        assert _submit(bulk_service, _csv("itemName", "Gauze"), " inventory ").total_rows == 1

    def test_unavailable_queue_fails_job_and_keeps_window(
        self,
        repository: InMemoryRecordRepository,
        bulk_settings: BulkImportSettings,
        clock,
        job_tracker: InMemoryJobTracker,
    ) -> None:
        limiter = TenantRateLimiter(interval_seconds=300, clock=clock)
        service = BulkImportService(
            repository=repository,
            work_queue=SchedulerWorkQueue(),
            settings=bulk_settings,
            rate_limiter=limiter,
            job_tracker=job_tracker,
        )

        with pytest.raises(WorkQueueUnavailableError):
            _submit(service, _csv(PATIENT_HEADER, "John,Doe,1234567890"))

        assert limiter.remaining_seconds("t-1") == 0
        assert len(job_tracker._jobs) == 1
        (snapshot,) = job_tracker._jobs.values()
        assert snapshot.status is JobStatus.FAILED

    def test_run_job_marks_failure_on_systemic_error(
        self,
        bulk_service: BulkImportService,
        job_tracker: InMemoryJobTracker,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _boom(job):
            raise RuntimeError("database is down")

        monkeypatch.setattr(bulk_service, "process_import", _boom)
        receipt = _submit(bulk_service, _csv(PATIENT_HEADER, "John,Doe,1234567890"))

        snapshot = job_tracker.get(receipt.job_id)
        assert snapshot.status is JobStatus.FAILED
        assert snapshot.error_message == "database is down"


# ---------------------------------------------------------------------------
# Parsing and templates
# ---------------------------------------------------------------------------


class TestParsingAndTemplates:
    def test_parse_skips_blank_lines_and_bom(self) -> None:
        rows = parse_csv_rows("\ufefffirstName,lastName\nJohn,Doe\n\nJane,Roe\n".encode("utf-8"))
        assert rows == [
            {"firstName": "John", "lastName": "Doe"},
            {"firstName": "Jane", "lastName": "Roe"},
        ]

    def test_quoted_fields_keep_commas(self) -> None:
        rows = parse_csv_rows(b'itemName,category\n"Gauze, sterile",Supplies\n')
        assert rows[0]["itemName"] == "Gauze, sterile"

    @pytest.mark.parametrize("entity_type", [entity.value for entity in EntityType])
    def test_every_entity_type_has_a_parseable_template(
        self,
        bulk_service: BulkImportService,
        entity_type: str,
    ) -> None:
        template = bulk_service.generate_csv_template(entity_type)
        header, example = list(csv.reader(io.StringIO(template)))
        assert header == list(bulk_service.get_import_template(entity_type).keys())
        assert len(example) == len(header)

    def test_patient_template_quotes_address(self, bulk_service: BulkImportService) -> None:
        template = bulk_service.generate_csv_template(EntityType.PATIENT)
        assert template.splitlines()[0] == (
            "firstName,lastName,phoneNumber,email,dateOfBirth,bloodGroup,gender,address"
        )
        assert template.endswith('"123 Main St, City"')

    def test_unknown_template_type(self, bulk_service: BulkImportService) -> None:
        with pytest.raises(InvalidEntityTypeError):
            bulk_service.generate_csv_template("APPOINTMENT")
