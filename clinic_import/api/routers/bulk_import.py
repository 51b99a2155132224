"""
clinic_import/api/routers/bulk_import.py

Bulk import HTTP endpoints: templates, submission, job status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status

from clinic_import.api.dependencies import (
    get_bulk_import_service,
    get_csv_upload,
    get_tenant_id,
    get_user_id,
    read_upload_bytes,
)
from clinic_import.api.errors import submission_http_error
from clinic_import.exceptions import (
    ImportSubmissionError,
    InvalidEntityTypeError,
    WorkQueueUnavailableError,
)
from clinic_import.schemas.bulk_import import (
    BulkImportAcceptedResponse,
    ImportJobStatusResponse,
    ImportSummaryResponse,
    ImportTemplateResponse,
)
from clinic_import.services.bulk_import_service import BulkImportService

router = APIRouter(prefix="/imports", tags=["imports"])


@router.get("/template", response_model=ImportTemplateResponse)
def get_import_template(
    entity_type: str = Query(..., alias="entityType", description="PATIENT, PRESCRIPTION, DOCTOR, LAB_TEST, INVENTORY"),
    service: BulkImportService = Depends(get_bulk_import_service),
) -> ImportTemplateResponse:
    try:
        template = service.generate_csv_template(entity_type)
    except InvalidEntityTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    return ImportTemplateResponse(entity_type=entity_type.strip().upper(), template=template)


@router.post(
    "/bulk",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BulkImportAcceptedResponse,
)
def start_bulk_import(
    entity_type: str = Form(..., alias="entityType"),
    file: UploadFile = Depends(get_csv_upload),
    tenant_id: str | None = Depends(get_tenant_id),
    user_id: str | None = Depends(get_user_id),
    service: BulkImportService = Depends(get_bulk_import_service),
) -> BulkImportAcceptedResponse:
    """
    Validate a CSV upload and queue it; poll the job endpoint for results.
    """

    try:
        receipt = service.submit(
            tenant_id=tenant_id,
            user_id=user_id,
            entity_type=entity_type,
            file_name=file.filename or "upload.csv",
            data=read_upload_bytes(file, service.max_upload_bytes),
        )
    except (ImportSubmissionError, WorkQueueUnavailableError) as exc:
        raise submission_http_error(exc) from exc
    finally:
        file.file.close()

    return BulkImportAcceptedResponse(
        job_id=receipt.job_id,
        status=receipt.status.value,
        total_rows=receipt.total_rows,
    )


@router.get("/jobs/{job_id}", response_model=ImportJobStatusResponse)
def get_import_job(
    job_id: str,
    service: BulkImportService = Depends(get_bulk_import_service),
) -> ImportJobStatusResponse:
    snapshot = service.job_tracker.get(job_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )

    return ImportJobStatusResponse(
        job_id=snapshot.job_id,
        status=snapshot.status.value,
        entity_type=snapshot.entity_type,
        file_name=snapshot.file_name,
        total_rows=snapshot.total_rows,
        tenant_id=snapshot.tenant_id,
        started_at=snapshot.started_at,
        completed_at=snapshot.completed_at,
        error_message=snapshot.error_message,
        summary=ImportSummaryResponse.model_validate(snapshot.result) if snapshot.result else None,
    )
