"""
clinic_import/api/routers/ocr.py

Document OCR endpoint. Always answers 200; unreadable documents come back
as a degraded, low-confidence result.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, UploadFile

from clinic_import.api.dependencies import get_image_upload, get_ocr_service
from clinic_import.ocr.service import DocumentOCRService
from clinic_import.schemas.ocr import ExtractedDocumentResponse

router = APIRouter(prefix="/imports", tags=["ocr"])


@router.post("/ocr", response_model=ExtractedDocumentResponse)
def extract_document(
    file: UploadFile = Depends(get_image_upload),
    service: DocumentOCRService = Depends(get_ocr_service),
) -> ExtractedDocumentResponse:
    suffix = Path(file.filename or "").suffix.lower() or ".png"
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as handle:
        shutil.copyfileobj(file.file, handle)
        temp_path = Path(handle.name)
    file.file.close()

    try:
        document = service.extract_document(temp_path)
    finally:
        temp_path.unlink(missing_ok=True)

    return ExtractedDocumentResponse.model_validate(document.to_dict())
