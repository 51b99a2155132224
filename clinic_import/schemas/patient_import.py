"""
clinic_import/schemas/patient_import.py

Schemas for the patient spreadsheet preview and import endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ImportFieldResponse(BaseModel):
    field: str
    label: str
    required: bool
    type: str
    options: list[str] | None = None


class ColumnPreviewResponse(BaseModel):
    excel_column: str
    db_field: str | None = None
    sample_values: list[str] = Field(default_factory=list)


class PatientImportPreviewResponse(BaseModel):
    columns: list[ColumnPreviewResponse]
    suggested_mappings: dict[str, str]
    total_rows: int = Field(..., ge=0)
    sample_data: list[dict[str, Any]] = Field(default_factory=list)
    fields: list[ImportFieldResponse] = Field(default_factory=list)


class DuplicateDetailResponse(BaseModel):
    row: int
    reason: str
    existing_patient: dict[str, Any] | None = None


class PatientImportResultResponse(BaseModel):
    total: int = Field(..., ge=0)
    success: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)
    errors: list[str] = Field(default_factory=list)
    duplicate_details: list[DuplicateDetailResponse] = Field(default_factory=list)
