"""
clinic_import/services package marker.
"""

from clinic_import.services.bulk_import_service import BulkImportService, parse_csv_rows
from clinic_import.services.duplicate_detector import DuplicateDetector, DuplicateMatch
from clinic_import.services.entity_importers import ENTITY_HANDLERS, IMPORT_TEMPLATES
from clinic_import.services.patient_import_service import (
    ImportPreview,
    PatientImportResult,
    PatientImportService,
    load_spreadsheet,
)
from clinic_import.services.rate_limiter import InMemoryLastImportStore, TenantRateLimiter
from clinic_import.services.work_queue import InlineWorkQueue, SchedulerWorkQueue, WorkQueue

__all__ = [
    "BulkImportService",
    "parse_csv_rows",
    "DuplicateDetector",
    "DuplicateMatch",
    "ENTITY_HANDLERS",
    "IMPORT_TEMPLATES",
    "ImportPreview",
    "PatientImportResult",
    "PatientImportService",
    "load_spreadsheet",
    "InMemoryLastImportStore",
    "TenantRateLimiter",
    "InlineWorkQueue",
    "SchedulerWorkQueue",
    "WorkQueue",
]
