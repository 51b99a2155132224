"""
clinic_import/schemas/bulk_import.py

Response schemas for bulk import endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ImportTemplateResponse(BaseModel):
    entity_type: str
    template: str
    format: str = "csv"


class BulkImportAcceptedResponse(BaseModel):
    job_id: str
    status: str
    total_rows: int = Field(..., ge=1)


class ImportRowErrorResponse(BaseModel):
    row_number: int = Field(..., ge=2)
    outcome: str
    error: str | None = None
    raw_value: dict[str, Any] = Field(default_factory=dict)


class ImportSummaryResponse(BaseModel):
    total_rows: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    duplicate_count: int = Field(..., ge=0)
    failed_count: int = Field(..., ge=0)
    errors: list[ImportRowErrorResponse] = Field(default_factory=list)
    completed_at: datetime | None = None


class ImportJobStatusResponse(BaseModel):
    job_id: str
    status: str
    entity_type: str
    file_name: str
    total_rows: int
    tenant_id: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    summary: ImportSummaryResponse | None = None
