"""
clinic_import/domain package marker.
"""

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
from clinic_import.domain.extracted_document import (
    DocumentType,
    ExtractedDocument,
    LabValues,
    MedicalFields,
    Medication,
    OCRStage,
    RecognizedText,
    Vitals,
)

__all__ = [
    "DocumentType",
    "EntityType",
    "ExtractedDocument",
    "ImportJob",
    "ImportRowResult",
    "ImportSummary",
    "JobStatus",
    "LabValues",
    "MedicalFields",
    "Medication",
    "OCRStage",
    "RecognizedText",
    "RowOutcome",
    "SubmissionReceipt",
    "Vitals",
    "spreadsheet_row_number",
]
