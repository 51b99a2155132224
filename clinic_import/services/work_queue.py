"""
clinic_import/services/work_queue.py

Work queue abstraction between bulk import submission and processing.

``SchedulerWorkQueue`` runs jobs on an APScheduler background thread pool,
one-shot and as soon as a worker is free. ``InlineWorkQueue`` runs the job
in the caller's thread, for size-bounded imports awaited synchronously.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from clinic_import.domain.bulk_import import ImportJob
from clinic_import.exceptions import WorkQueueUnavailableError

logger = logging.getLogger(__name__)

JobHandler = Callable[[ImportJob], Any]


class WorkQueue(Protocol):
    def enqueue(self, job: ImportJob, handler: JobHandler) -> None:
        ...


class InlineWorkQueue:
    def enqueue(self, job: ImportJob, handler: JobHandler) -> None:
        handler(job)


class SchedulerWorkQueue:
    """
    Fire-and-forget queue backed by a ``BackgroundScheduler``.

    Jobs are not persisted; pending jobs are lost if the process exits.
    """

    def __init__(
        self,
        *,
        max_workers: int = 1,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._scheduler = scheduler or BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=max(1, max_workers))},
            job_defaults={"coalesce": False, "max_instances": 1},
            timezone="UTC",
        )

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Import work queue started")

    def shutdown(self, *, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Import work queue shut down")

    def enqueue(self, job: ImportJob, handler: JobHandler) -> None:
        if not self._scheduler.running:
            raise WorkQueueUnavailableError("Import work queue is not running.")
        try:
            self._scheduler.add_job(
                handler,
                args=[job],
                id=job.job_id,
                name=f"bulk-import:{job.entity_type.value}",
                misfire_grace_time=None,
            )
        except Exception as exc:
            raise WorkQueueUnavailableError(f"Failed to enqueue import job {job.job_id}.") from exc
