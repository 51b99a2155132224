"""
clinic_import/repositories/import_job_repository.py

Import job lifecycle persistence and the ``JobTracker`` built on it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from clinic_import.domain.bulk_import import ImportJob, ImportSummary, JobStatus, utc_now
from clinic_import.repositories.job_tracker import JobSnapshot
from db.models.import_job import ImportJobRecord

logger = logging.getLogger(__name__)


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(self, job: ImportJob) -> ImportJobRecord:
        record = ImportJobRecord(
            id=job.job_id,
            tenant_id=job.tenant_id,
            user_id=job.user_id,
            entity_type=job.entity_type.value,
            file_name=job.file_name,
            status=JobStatus.QUEUED.value,
            total_rows=job.total_rows,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def get_job(self, job_id: str) -> ImportJobRecord | None:
        return self._session.get(ImportJobRecord, job_id)

    def list_jobs(
        self,
        *,
        tenant_id: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[ImportJobRecord]:
        stmt: Select[tuple[ImportJobRecord]] = select(ImportJobRecord)

        if tenant_id:
            stmt = stmt.where(ImportJobRecord.tenant_id == tenant_id)
        if status:
            stmt = stmt.where(ImportJobRecord.status == status)

        stmt = stmt.order_by(ImportJobRecord.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: str) -> ImportJobRecord | None:
        record = self.get_job(job_id)
        if record is None:
            return None
        record.status = JobStatus.RUNNING.value
        record.started_at = utc_now()
        record.completed_at = None
        record.error_message = None
        return record

    def mark_completed(
        self,
        *,
        job_id: str,
        result_payload: dict[str, Any],
    ) -> ImportJobRecord | None:
        record = self.get_job(job_id)
        if record is None:
            return None
        record.status = JobStatus.COMPLETED.value
        record.completed_at = utc_now()
        record.result_payload = result_payload
        record.error_message = None
        return record

    def mark_failed(self, *, job_id: str, error_message: str) -> ImportJobRecord | None:
        record = self.get_job(job_id)
        if record is None:
            return None
        record.status = JobStatus.FAILED.value
        record.completed_at = utc_now()
        record.error_message = error_message
        return record


def _to_snapshot(record: ImportJobRecord) -> JobSnapshot:
    return JobSnapshot(
        job_id=record.id,
        status=JobStatus(record.status),
        tenant_id=record.tenant_id,
        entity_type=record.entity_type,
        file_name=record.file_name,
        total_rows=record.total_rows,
        result=record.result_payload,
        error_message=record.error_message,
        started_at=record.started_at,
        completed_at=record.completed_at,
    )


class SQLAlchemyJobTracker:
    """
    ``JobTracker`` that commits each lifecycle transition in its own session.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def mark_queued(self, job: ImportJob) -> None:
        with self._session_factory() as session:
            ImportJobRepository(session).create_job(job)
            session.commit()

    def mark_running(self, job_id: str) -> None:
        self._transition(job_id, lambda repo: repo.mark_running(job_id=job_id))

    def mark_completed(self, job_id: str, summary: ImportSummary) -> None:
        payload = summary.to_dict()
        self._transition(job_id, lambda repo: repo.mark_completed(job_id=job_id, result_payload=payload))

    def mark_failed(self, job_id: str, error_message: str) -> None:
        self._transition(job_id, lambda repo: repo.mark_failed(job_id=job_id, error_message=error_message))

    def get(self, job_id: str) -> JobSnapshot | None:
        with self._session_factory() as session:
            record = ImportJobRepository(session).get_job(job_id)
            return _to_snapshot(record) if record is not None else None

    def _transition(
        self,
        job_id: str,
        apply: Callable[[ImportJobRepository], ImportJobRecord | None],
    ) -> None:
        with self._session_factory() as session:
            if apply(ImportJobRepository(session)) is None:
                logger.warning("Import job not found job_id=%s", job_id)
                return
            session.commit()
