"""
clinic_import/domain/bulk_import.py

Domain models used by the bulk row import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EntityType(str, Enum):
    """
    Closed set of record kinds accepted by bulk import.
    """

    PATIENT = "PATIENT"
    PRESCRIPTION = "PRESCRIPTION"
    DOCTOR = "DOCTOR"
    LAB_TEST = "LAB_TEST"
    INVENTORY = "INVENTORY"

    @classmethod
    def parse(cls, value: Any) -> EntityType | None:
        """
        Return the matching member, or None for anything outside the set.
        """

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class RowOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    DUPLICATE = "DUPLICATE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Header row + 1-based numbering: data row i (0-indexed) is spreadsheet row i + 2.
HEADER_ROW_OFFSET = 2


def spreadsheet_row_number(data_index: int) -> int:
    """
    Map a 0-based data row index to the row number a user sees in their sheet.
    """

    return data_index + HEADER_ROW_OFFSET


@dataclass(frozen=True)
class ImportJob:
    """
    One accepted bulk import submission, handed to the work queue.
    """

    job_id: str
    tenant_id: str | None
    user_id: str | None
    entity_type: EntityType
    file_name: str
    raw_bytes: bytes = field(repr=False)
    total_rows: int
    submitted_at: datetime = field(default_factory=utc_now)

    def describe(self) -> dict[str, Any]:
        """
        Job metadata without the payload, safe for logs and job records.
        """

        return {
            "job_id": self.job_id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "entity_type": self.entity_type.value,
            "file_name": self.file_name,
            "size_bytes": len(self.raw_bytes),
            "total_rows": self.total_rows,
            "submitted_at": self.submitted_at.isoformat(),
        }


@dataclass(frozen=True)
class SubmissionReceipt:
    job_id: str
    status: JobStatus
    total_rows: int


@dataclass(frozen=True)
class ImportRowResult:
    """
    Outcome of importing one spreadsheet row.
    """

    row_number: int
    outcome: RowOutcome
    error: str | None = None
    raw_value: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.outcome is RowOutcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "outcome": self.outcome.value,
            "error": self.error,
            "raw_value": dict(self.raw_value),
        }


@dataclass(frozen=True)
class ImportSummary:
    """
    End-of-job aggregate.

    ``success_count + duplicate_count + failed_count == total_rows`` always
    holds; ``errors`` may be truncated by the recorded-error cap.
    """

    job_id: str
    entity_type: EntityType
    total_rows: int
    success_count: int
    duplicate_count: int
    failed_count: int
    errors: list[ImportRowResult] = field(default_factory=list)
    completed_at: datetime = field(default_factory=utc_now)

    @property
    def unsuccessful_count(self) -> int:
        return self.total_rows - self.success_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "entity_type": self.entity_type.value,
            "total_rows": self.total_rows,
            "success_count": self.success_count,
            "duplicate_count": self.duplicate_count,
            "failed_count": self.failed_count,
            "errors": [error.to_dict() for error in self.errors],
            "completed_at": self.completed_at.isoformat(),
        }
