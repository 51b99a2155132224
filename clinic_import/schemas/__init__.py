"""
clinic_import/schemas package marker.
"""

from clinic_import.schemas.bulk_import import (
    BulkImportAcceptedResponse,
    ImportJobStatusResponse,
    ImportRowErrorResponse,
    ImportSummaryResponse,
    ImportTemplateResponse,
)
from clinic_import.schemas.ocr import ExtractedDocumentResponse, MedicalFieldsResponse
from clinic_import.schemas.patient_import import (
    ColumnPreviewResponse,
    DuplicateDetailResponse,
    ImportFieldResponse,
    PatientImportPreviewResponse,
    PatientImportResultResponse,
)

__all__ = [
    "BulkImportAcceptedResponse",
    "ImportJobStatusResponse",
    "ImportRowErrorResponse",
    "ImportSummaryResponse",
    "ImportTemplateResponse",
    "ExtractedDocumentResponse",
    "MedicalFieldsResponse",
    "ColumnPreviewResponse",
    "DuplicateDetailResponse",
    "ImportFieldResponse",
    "PatientImportPreviewResponse",
    "PatientImportResultResponse",
]
