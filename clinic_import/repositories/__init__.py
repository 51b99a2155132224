"""
clinic_import/repositories package marker.
"""

from clinic_import.repositories.import_job_repository import ImportJobRepository, SQLAlchemyJobTracker
from clinic_import.repositories.job_tracker import InMemoryJobTracker, JobSnapshot, JobTracker
from clinic_import.repositories.record_repository import (
    InMemoryRecordRepository,
    Record,
    RecordRepository,
)
from clinic_import.repositories.sqlalchemy_record_repository import SQLAlchemyRecordRepository

__all__ = [
    "ImportJobRepository",
    "SQLAlchemyJobTracker",
    "InMemoryJobTracker",
    "JobSnapshot",
    "JobTracker",
    "InMemoryRecordRepository",
    "Record",
    "RecordRepository",
    "SQLAlchemyRecordRepository",
]
