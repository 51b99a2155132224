"""
clinic_import/api/routers/patient_import.py

Patient spreadsheet preview and import endpoints.
"""

from __future__ import annotations

import json
from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status

from clinic_import.api.dependencies import (
    get_patient_import_service,
    get_spreadsheet_upload,
    get_tenant_id,
    read_upload_bytes,
)
from clinic_import.api.errors import submission_http_error
from clinic_import.exceptions import ImportSubmissionError
from clinic_import.mappers.column_mapper import PATIENT_IMPORT_FIELDS
from clinic_import.schemas.patient_import import (
    ImportFieldResponse,
    PatientImportPreviewResponse,
    PatientImportResultResponse,
)
from clinic_import.services.patient_import_service import PatientImportService

router = APIRouter(prefix="/imports/patients", tags=["patient-import"])


def _parse_column_mapping(raw: str | None) -> dict[str, str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="column_mapping must be a JSON object of header -> field.",
        ) from exc
    if not isinstance(mapping, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in mapping.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="column_mapping must be a JSON object of header -> field.",
        )
    return mapping


@router.get("/fields", response_model=list[ImportFieldResponse])
def list_patient_import_fields() -> list[ImportFieldResponse]:
    return [
        ImportFieldResponse(
            field=definition.field,
            label=definition.label,
            required=definition.required,
            type=definition.type,
            options=list(definition.options) or None,
        )
        for definition in PATIENT_IMPORT_FIELDS
    ]


@router.post("/preview", response_model=PatientImportPreviewResponse)
def preview_patient_import(
    file: UploadFile = Depends(get_spreadsheet_upload),
    service: PatientImportService = Depends(get_patient_import_service),
) -> PatientImportPreviewResponse:
    try:
        preview = service.preview(
            file_name=file.filename or "",
            data=read_upload_bytes(file, service.max_upload_bytes),
        )
    except ImportSubmissionError as exc:
        raise submission_http_error(exc) from exc
    finally:
        file.file.close()

    payload = asdict(preview)
    payload["fields"] = [field.model_dump() for field in list_patient_import_fields()]
    return PatientImportPreviewResponse.model_validate(payload)


@router.post("", response_model=PatientImportResultResponse)
def import_patients(
    file: UploadFile = Depends(get_spreadsheet_upload),
    column_mapping: str | None = Form(default=None, description="JSON object of header -> field"),
    tenant_id: str | None = Depends(get_tenant_id),
    service: PatientImportService = Depends(get_patient_import_service),
) -> PatientImportResultResponse:
    mapping = _parse_column_mapping(column_mapping)
    try:
        result = service.import_patients(
            file_name=file.filename or "",
            data=read_upload_bytes(file, service.max_upload_bytes),
            tenant_id=tenant_id,
            column_mapping=mapping,
        )
    except ImportSubmissionError as exc:
        raise submission_http_error(exc) from exc
    finally:
        file.file.close()

    return PatientImportResultResponse.model_validate(asdict(result))
