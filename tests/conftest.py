from __future__ import annotations

import pytest

from clinic_import.config import BulkImportSettings, OCRSettings
from clinic_import.repositories.job_tracker import InMemoryJobTracker
from clinic_import.repositories.record_repository import InMemoryRecordRepository
from clinic_import.services.bulk_import_service import BulkImportService
from clinic_import.services.rate_limiter import TenantRateLimiter
from clinic_import.services.work_queue import InlineWorkQueue


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingWorkQueue:
    """Captures jobs without running them."""

    def __init__(self) -> None:
        self.jobs: list = []

    def enqueue(self, job, handler) -> None:
        self.jobs.append((job, handler))


@pytest.fixture()
def bulk_settings() -> BulkImportSettings:
    return BulkImportSettings(
        max_file_size=1024 * 1024,
        max_rows=100,
        rate_limit_interval_seconds=300,
        batch_size=2,
        max_recorded_errors=50,
        log_row_errors=False,
    )


@pytest.fixture()
def ocr_settings() -> OCRSettings:
    return OCRSettings(engine_start_timeout_ms=500, recognition_timeout_ms=500)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture()
def job_tracker() -> InMemoryJobTracker:
    return InMemoryJobTracker()


@pytest.fixture()
def bulk_service(
    repository: InMemoryRecordRepository,
    bulk_settings: BulkImportSettings,
    clock: FakeClock,
    job_tracker: InMemoryJobTracker,
) -> BulkImportService:
    """Service whose queue processes each job inline during submit."""
    return BulkImportService(
        repository=repository,
        work_queue=InlineWorkQueue(),
        settings=bulk_settings,
        rate_limiter=TenantRateLimiter(
            interval_seconds=bulk_settings.rate_limit_interval_seconds,
            clock=clock,
        ),
        job_tracker=job_tracker,
    )


@pytest.fixture()
def recording_queue() -> RecordingWorkQueue:
    return RecordingWorkQueue()
