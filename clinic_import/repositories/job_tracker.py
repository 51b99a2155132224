"""
clinic_import/repositories/job_tracker.py

Import job lifecycle tracking: QUEUED -> RUNNING -> COMPLETED | FAILED.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Protocol

from clinic_import.domain.bulk_import import ImportJob, ImportSummary, JobStatus, utc_now


@dataclass(frozen=True)
class JobSnapshot:
    job_id: str
    status: JobStatus
    tenant_id: str | None
    entity_type: str
    file_name: str
    total_rows: int
    result: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class JobTracker(Protocol):
    def mark_queued(self, job: ImportJob) -> None:
        ...

    def mark_running(self, job_id: str) -> None:
        ...

    def mark_completed(self, job_id: str, summary: ImportSummary) -> None:
        ...

    def mark_failed(self, job_id: str, error_message: str) -> None:
        ...

    def get(self, job_id: str) -> JobSnapshot | None:
        ...


class InMemoryJobTracker:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, JobSnapshot] = {}

    def mark_queued(self, job: ImportJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = JobSnapshot(
                job_id=job.job_id,
                status=JobStatus.QUEUED,
                tenant_id=job.tenant_id,
                entity_type=job.entity_type.value,
                file_name=job.file_name,
                total_rows=job.total_rows,
            )

    def mark_running(self, job_id: str) -> None:
        self._update(job_id, status=JobStatus.RUNNING, started_at=utc_now())

    def mark_completed(self, job_id: str, summary: ImportSummary) -> None:
        self._update(
            job_id,
            status=JobStatus.COMPLETED,
            result=summary.to_dict(),
            completed_at=summary.completed_at,
        )

    def mark_failed(self, job_id: str, error_message: str) -> None:
        self._update(
            job_id,
            status=JobStatus.FAILED,
            error_message=error_message,
            completed_at=utc_now(),
        )

    def get(self, job_id: str) -> JobSnapshot | None:
        with self._lock:
            return self._jobs.get(job_id)

    def _update(self, job_id: str, **changes: Any) -> None:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return
            self._jobs[job_id] = replace(current, **changes)
