"""
clinic_import/ocr package marker.
"""

from clinic_import.ocr.classifier import classify_document
from clinic_import.ocr.engine import OCREngine, OCRSession, RecognitionOutput, TesseractEngine
from clinic_import.ocr.field_extractor import FieldExtractor, RegexFieldExtractor
from clinic_import.ocr.preprocessing import preprocess_image, preprocess_image_bytes
from clinic_import.ocr.service import DocumentOCRService

__all__ = [
    "classify_document",
    "OCREngine",
    "OCRSession",
    "RecognitionOutput",
    "TesseractEngine",
    "FieldExtractor",
    "RegexFieldExtractor",
    "preprocess_image",
    "preprocess_image_bytes",
    "DocumentOCRService",
]
