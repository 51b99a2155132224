"""
clinic_import/exceptions.py

Exception hierarchy for bulk import.

Submission errors are raised synchronously to the caller. Row errors are
raised inside the per-row import step and always caught by the processing
loop, which records them on the job summary.
"""

from __future__ import annotations

import math

from clinic_import.domain.bulk_import import RowOutcome

# ---------------------------------------------------------------------------
# Submission-time errors
# ---------------------------------------------------------------------------


class ImportSubmissionError(ValueError):
    """
    Base class for errors that reject a submission before it is queued.
    """

    code = "invalid_submission"

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": str(self)}


class RateLimitedError(ImportSubmissionError):
    """
    Raised when a tenant submits again inside the rate-limit window.
    """

    code = "rate_limited"

    def __init__(self, *, retry_after_seconds: float) -> None:
        self.retry_after_seconds = max(0, math.ceil(retry_after_seconds))
        super().__init__(
            f"Please wait {self.retry_after_seconds} seconds before starting another import."
        )

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["retry_after_seconds"] = self.retry_after_seconds
        return payload


class PayloadTooLargeError(ImportSubmissionError):
    """
    Raised when the uploaded payload exceeds the configured byte limit.
    """

    code = "payload_too_large"

    def __init__(self, *, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        limit_mb = max_bytes / 1024 / 1024
        super().__init__(f"File size exceeds limit of {limit_mb:g}MB.")


class EmptyInputError(ImportSubmissionError):
    """
    Raised when the upload has no data rows.
    """

    code = "empty_input"

    def __init__(self, message: str = "CSV file is empty.") -> None:
        super().__init__(message)


class MalformedInputError(ImportSubmissionError):
    """
    Raised when the payload is not UTF-8 or not parseable as a spreadsheet.
    """

    code = "malformed_input"


class UnsupportedFileTypeError(ImportSubmissionError):
    code = "unsupported_file_type"


class TooManyRowsError(ImportSubmissionError):
    code = "too_many_rows"

    def __init__(self, *, row_count: int, max_rows: int) -> None:
        self.row_count = row_count
        self.max_rows = max_rows
        super().__init__(
            f"Number of rows ({row_count}) exceeds maximum limit of {max_rows}."
        )


class InvalidEntityTypeError(ImportSubmissionError):
    code = "invalid_entity_type"

    def __init__(self, entity_type: object) -> None:
        self.entity_type = entity_type
        super().__init__(f"Invalid entity type: {entity_type}")


class WorkQueueUnavailableError(RuntimeError):
    """
    Raised when an accepted job cannot be handed to the work queue.
    """


# ---------------------------------------------------------------------------
# Row-level errors
# ---------------------------------------------------------------------------


class RowImportError(Exception):
    """
    Base class for one row's failure; ``outcome`` is what the summary records.
    """

    outcome = RowOutcome.PERSISTENCE_ERROR


class RowValidationError(RowImportError):
    """
    Raised when a row is missing a required field.
    """

    outcome = RowOutcome.VALIDATION_ERROR


class DuplicateRecordError(RowImportError):
    """
    Raised when a row matches an existing record on a unique field.
    """

    outcome = RowOutcome.DUPLICATE


class MissingReferenceError(RowImportError):
    """
    Raised when a row references a record that does not exist.
    """

    outcome = RowOutcome.VALIDATION_ERROR


class RecordPersistenceError(RowImportError):
    """
    Raised when the repository fails to create a record.
    """

    outcome = RowOutcome.PERSISTENCE_ERROR
