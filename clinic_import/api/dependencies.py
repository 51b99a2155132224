"""
clinic_import/api/dependencies.py

Shared FastAPI dependencies: upload validation, request context headers,
and process-wide service instances.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import File, Header, HTTPException, UploadFile, status

from clinic_import.ocr.service import DocumentOCRService
from clinic_import.repositories.import_job_repository import SQLAlchemyJobTracker
from clinic_import.repositories.sqlalchemy_record_repository import SQLAlchemyRecordRepository
from clinic_import.services.bulk_import_service import BulkImportService
from clinic_import.services.patient_import_service import (
    SUPPORTED_SPREADSHEET_SUFFIXES,
    PatientImportService,
)
from clinic_import.services.work_queue import SchedulerWorkQueue
from db.session import SessionLocal

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp", ".gif"}


def _upload_facts(file: UploadFile) -> tuple[str, str]:
    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()
    return filename, content_type


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename, content_type = _upload_facts(file)
    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )
    return file


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Accept .csv or .xlsx uploads for the patient import endpoints.
    """

    filename, content_type = _upload_facts(file)
    if Path(filename).suffix not in SUPPORTED_SPREADSHEET_SUFFIXES and content_type != XLSX_CONTENT_TYPE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only .xlsx and .csv files are allowed.",
        )
    return file


def get_image_upload(file: UploadFile = File(...)) -> UploadFile:
    filename, content_type = _upload_facts(file)
    if Path(filename).suffix not in IMAGE_SUFFIXES and not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files are allowed.",
        )
    return file


def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read at most ``max_bytes + 1`` bytes so an oversized upload is detected
    without buffering all of it.
    """

    return file.file.read(max_bytes + 1)


def get_tenant_id(x_tenant_id: str | None = Header(default=None)) -> str | None:
    return (x_tenant_id or "").strip() or None


def get_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    return (x_user_id or "").strip() or None


@lru_cache(maxsize=1)
def get_work_queue() -> SchedulerWorkQueue:
    return SchedulerWorkQueue()


@lru_cache(maxsize=1)
def get_record_repository() -> SQLAlchemyRecordRepository:
    return SQLAlchemyRecordRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_bulk_import_service() -> BulkImportService:
    """
    Return a cached bulk import service bound to the process work queue.
    """

    return BulkImportService(
        repository=get_record_repository(),
        work_queue=get_work_queue(),
        job_tracker=SQLAlchemyJobTracker(SessionLocal),
    )


@lru_cache(maxsize=1)
def get_patient_import_service() -> PatientImportService:
    return PatientImportService(repository=get_record_repository())


@lru_cache(maxsize=1)
def get_ocr_service() -> DocumentOCRService:
    return DocumentOCRService()
