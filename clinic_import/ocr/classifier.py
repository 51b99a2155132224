"""
clinic_import/ocr/classifier.py

Keyword-based document type detection.
"""

from __future__ import annotations

from clinic_import.domain.extracted_document import DocumentType

PRESCRIPTION_KEYWORDS = ("rx", "prescription", "medication", "dosage", "take")
LAB_REPORT_KEYWORDS = ("lab", "result", "test", "hemoglobin", "glucose", "creatinine", "value")
CASE_SHEET_KEYWORDS = ("case sheet", "diagnosis", "chief complaint", "history", "examination")

# Checked in order; the first group with any substring hit wins.
KEYWORD_PRECEDENCE: tuple[tuple[DocumentType, tuple[str, ...]], ...] = (
    (DocumentType.PRESCRIPTION, PRESCRIPTION_KEYWORDS),
    (DocumentType.LAB_REPORT, LAB_REPORT_KEYWORDS),
    (DocumentType.CASE_SHEET, CASE_SHEET_KEYWORDS),
)


def classify_document(text: str) -> DocumentType:
    lowered = (text or "").lower()
    for document_type, keywords in KEYWORD_PRECEDENCE:
        if any(keyword in lowered for keyword in keywords):
            return document_type
    return DocumentType.GENERAL
