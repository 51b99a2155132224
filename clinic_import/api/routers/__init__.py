"""
clinic_import/api/routers package marker.
"""

from clinic_import.api.routers.bulk_import import router as bulk_import_router
from clinic_import.api.routers.ocr import router as ocr_router
from clinic_import.api.routers.patient_import import router as patient_import_router

__all__ = [
    "bulk_import_router",
    "ocr_router",
    "patient_import_router",
]
