"""
clinic_import/services/bulk_import_service.py

Bulk row importer: submission checks, queue hand-off, and batched processing.

Submission is synchronous and cheap (size check, parse, row count). Accepted
jobs go to a work queue; ``process_import`` later re-parses the payload and
imports rows in sequential batches. A row failure is recorded on the summary
and never aborts the job; rows created earlier are not rolled back.
"""

from __future__ import annotations

import csv
import io
import logging
import time
import uuid
from typing import Any

from clinic_import.config import BulkImportSettings, get_bulk_import_settings
from clinic_import.domain.bulk_import import (
    EntityType,
    ImportJob,
    ImportRowResult,
    ImportSummary,
    JobStatus,
    RowOutcome,
    SubmissionReceipt,
    spreadsheet_row_number,
)
from clinic_import.exceptions import (
    EmptyInputError,
    InvalidEntityTypeError,
    MalformedInputError,
    PayloadTooLargeError,
    RowImportError,
    TooManyRowsError,
    WorkQueueUnavailableError,
)
from clinic_import.logging_utils import log_event
from clinic_import.repositories.job_tracker import InMemoryJobTracker, JobTracker
from clinic_import.repositories.record_repository import RecordRepository
from clinic_import.services.entity_importers import (
    IMPORT_TEMPLATES,
    EntityHandler,
    ImportContext,
    get_entity_handler,
)
from clinic_import.services.rate_limiter import TenantRateLimiter
from clinic_import.services.work_queue import WorkQueue
from clinic_import.validators.row_validator import RowValidator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_csv_rows(data: bytes) -> list[dict[str, str]]:
    """
    Decode a UTF-8 CSV payload with a header row into row dicts.

    Blank lines are skipped. Cells beyond the header width are dropped.
    """

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInputError("CSV must be UTF-8 encoded.") from exc

    try:
        reader = csv.DictReader(io.StringIO(text, newline=""))
        return [
            {key: value for key, value in row.items() if key is not None}
            for row in reader
        ]
    except csv.Error as exc:
        raise MalformedInputError(f"Invalid CSV format: {exc}") from exc


def new_job_id() -> str:
    return f"import_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BulkImportService:
    """
    Coordinates bulk import submission and processing.
    """

    def __init__(
        self,
        *,
        repository: RecordRepository,
        work_queue: WorkQueue,
        settings: BulkImportSettings | None = None,
        rate_limiter: TenantRateLimiter | None = None,
        job_tracker: JobTracker | None = None,
        validator: RowValidator | None = None,
    ) -> None:
        self._repository = repository
        self._work_queue = work_queue
        self._settings = settings or get_bulk_import_settings()
        self._rate_limiter = rate_limiter or TenantRateLimiter(
            interval_seconds=self._settings.rate_limit_interval_seconds,
        )
        self._job_tracker = job_tracker or InMemoryJobTracker()
        self._validator = validator or RowValidator()

    @property
    def max_upload_bytes(self) -> int:
        return self._settings.max_file_size

    @property
    def job_tracker(self) -> JobTracker:
        return self._job_tracker

    def submit(
        self,
        *,
        tenant_id: str | None,
        user_id: str | None,
        entity_type: EntityType | str,
        file_name: str,
        data: bytes,
    ) -> SubmissionReceipt:
        """
        Validate an upload and queue it for processing.

        Checks run in order and the first failure wins: rate limit, size,
        parse/empty, row count, entity type. A rejected submission does not
        consume the tenant's rate-limit window.
        """

        with self._rate_limiter.reserve(tenant_id):
            if len(data) > self._settings.max_file_size:
                raise PayloadTooLargeError(
                    size_bytes=len(data),
                    max_bytes=self._settings.max_file_size,
                )

            rows = parse_csv_rows(data)
            if not rows:
                raise EmptyInputError()
            if len(rows) > self._settings.max_rows:
                raise TooManyRowsError(row_count=len(rows), max_rows=self._settings.max_rows)

            parsed_type = EntityType.parse(entity_type)
            if parsed_type is None:
                raise InvalidEntityTypeError(entity_type)

            job = ImportJob(
                job_id=new_job_id(),
                tenant_id=tenant_id,
                user_id=user_id,
                entity_type=parsed_type,
                file_name=file_name,
                raw_bytes=data,
                total_rows=len(rows),
            )
            self._job_tracker.mark_queued(job)
            try:
                self._work_queue.enqueue(job, self.run_job)
            except WorkQueueUnavailableError as exc:
                self._job_tracker.mark_failed(job.job_id, str(exc))
                logger.critical("Bulk import queue unavailable job_id=%s: %s", job.job_id, exc)
                raise

        log_event(logger, logging.INFO, "bulk_import_queued", **job.describe())
        return SubmissionReceipt(job_id=job.job_id, status=JobStatus.QUEUED, total_rows=job.total_rows)

    def run_job(self, job: ImportJob) -> ImportSummary | None:
        """
        Queue worker entry point: process one job and record its outcome.
        """

        self._job_tracker.mark_running(job.job_id)
        try:
            summary = self.process_import(job)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Bulk import job failed job_id=%s", job.job_id)
            self._job_tracker.mark_failed(job.job_id, str(exc))
            return None
        self._job_tracker.mark_completed(job.job_id, summary)
        return summary

    def process_import(self, job: ImportJob) -> ImportSummary:
        """
        Import every row of a job in sequential fixed-size batches.
        """

        rows = parse_csv_rows(job.raw_bytes)
        total_rows = len(rows)
        handler = get_entity_handler(job.entity_type)
        context = ImportContext(
            repository=self._repository,
            tenant_id=job.tenant_id,
            placeholder_password=self._settings.placeholder_password,
        )
        log_event(
            logger,
            logging.INFO,
            "bulk_import_started",
            job_id=job.job_id,
            entity_type=job.entity_type.value,
            total_rows=total_rows,
        )

        counts = {outcome: 0 for outcome in RowOutcome}
        recorded_errors: list[ImportRowResult] = []
        batch_size = self._settings.batch_size

        for batch_start in range(0, total_rows, batch_size):
            batch = rows[batch_start:batch_start + batch_size]
            for offset, row in enumerate(batch):
                result = self._import_row(
                    handler=handler,
                    context=context,
                    row=row,
                    row_number=spreadsheet_row_number(batch_start + offset),
                )
                counts[result.outcome] += 1
                if not result.is_success:
                    self._record_error(job, recorded_errors, result)

            processed = batch_start + len(batch)
            logger.debug(
                "Import progress job_id=%s: %d%% (%d/%d)",
                job.job_id,
                round(processed / total_rows * 100),
                processed,
                total_rows,
            )

        summary = ImportSummary(
            job_id=job.job_id,
            entity_type=job.entity_type,
            total_rows=total_rows,
            success_count=counts[RowOutcome.SUCCESS],
            duplicate_count=counts[RowOutcome.DUPLICATE],
            failed_count=counts[RowOutcome.VALIDATION_ERROR] + counts[RowOutcome.PERSISTENCE_ERROR],
            errors=recorded_errors,
        )
        log_event(
            logger,
            logging.INFO,
            "bulk_import_completed",
            job_id=job.job_id,
            entity_type=job.entity_type.value,
            total_rows=summary.total_rows,
            success_count=summary.success_count,
            duplicate_count=summary.duplicate_count,
            failed_count=summary.failed_count,
        )
        return summary

    def get_import_template(self, entity_type: EntityType | str) -> dict[str, str]:
        parsed_type = EntityType.parse(entity_type)
        if parsed_type is None:
            raise InvalidEntityTypeError(entity_type)
        return dict(IMPORT_TEMPLATES[parsed_type])

    def generate_csv_template(self, entity_type: EntityType | str) -> str:
        """
        Header row plus one example row, as CSV text.
        """

        template = self.get_import_template(entity_type)
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(template.keys())
        writer.writerow(template.values())
        return buffer.getvalue().rstrip("\n")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _import_row(
        self,
        *,
        handler: EntityHandler,
        context: ImportContext,
        row: dict[str, Any],
        row_number: int,
    ) -> ImportRowResult:
        missing = self._validator.missing_field_message(row, handler.required_fields)
        if missing is not None:
            return ImportRowResult(
                row_number=row_number,
                outcome=RowOutcome.VALIDATION_ERROR,
                error=missing,
                raw_value=row,
            )

        try:
            handler.import_row(context, row)
        except RowImportError as exc:
            return ImportRowResult(
                row_number=row_number,
                outcome=exc.outcome,
                error=str(exc),
                raw_value=row,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error importing row=%s", row_number)
            return ImportRowResult(
                row_number=row_number,
                outcome=RowOutcome.PERSISTENCE_ERROR,
                error=str(exc) or exc.__class__.__name__,
                raw_value=row,
            )

        return ImportRowResult(row_number=row_number, outcome=RowOutcome.SUCCESS, raw_value=row)

    def _record_error(
        self,
        job: ImportJob,
        recorded_errors: list[ImportRowResult],
        result: ImportRowResult,
    ) -> None:
        if self._settings.log_row_errors:
            logger.warning(
                "Bulk import row error job_id=%s row=%s outcome=%s message=%s",
                job.job_id,
                result.row_number,
                result.outcome.value,
                result.error,
            )

        if len(recorded_errors) < self._settings.max_recorded_errors:
            recorded_errors.append(result)

