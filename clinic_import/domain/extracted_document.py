"""
clinic_import/domain/extracted_document.py

Result types produced by the document OCR pipeline.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

MIN_DOCUMENT_CONFIDENCE = 0.1
MAX_DOCUMENT_CONFIDENCE = 0.95


class DocumentType(str, Enum):
    PRESCRIPTION = "PRESCRIPTION"
    CASE_SHEET = "CASE_SHEET"
    LAB_REPORT = "LAB_REPORT"
    GENERAL = "GENERAL"


class OCRStage(str, Enum):
    """
    Pipeline position of one document; DEGRADED is terminal.

    A degraded result also carries ``degraded_at``, the last stage the
    document completed before the failure.
    """

    RECEIVED = "RECEIVED"
    PREPROCESSED = "PREPROCESSED"
    RECOGNIZED = "RECOGNIZED"
    CLASSIFIED = "CLASSIFIED"
    PARSED = "PARSED"
    SCORED = "SCORED"
    DEGRADED = "DEGRADED"


def normalize_confidence(raw_engine_confidence: float | None) -> float:
    """
    Convert a 0-100 engine confidence into the 0.1-0.95 document range.
    """

    scaled = (raw_engine_confidence or 0.0) / 100.0
    return max(min(scaled, MAX_DOCUMENT_CONFIDENCE), MIN_DOCUMENT_CONFIDENCE)


@dataclass
class Medication:
    name: str
    dosage: str
    frequency: str = ""
    route: str = ""
    duration: str = ""


@dataclass
class Vitals:
    bp: str = ""
    temp: str = ""
    pulse: str = ""
    respiratory_rate: str = ""
    sp_o2: str = ""
    glucose: str = ""


@dataclass
class LabValues:
    glucose: str = ""
    hemoglobin: str = ""
    creatinine: str = ""


@dataclass
class MedicalFields:
    """
    Structured fields mined from OCR text. Absent values stay empty.
    """

    first_name: str = ""
    last_name: str = ""
    age: str = ""
    gender: str = "MALE"
    phone_number: str = ""
    email: str = ""
    blood_type: str = ""
    diagnosis: str = ""
    symptoms: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    medical_history: list[str] = field(default_factory=list)
    medications: list[Medication] = field(default_factory=list)
    vitals: Vitals = field(default_factory=Vitals)
    lab_values: LabValues = field(default_factory=LabValues)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RecognizedText:
    """
    Output of the recognition stage: text, normalized confidence, and type.
    """

    text: str
    confidence: float
    document_type: DocumentType
    stage: OCRStage
    degraded_at: OCRStage | None = None

    @property
    def degraded(self) -> bool:
        return self.stage is OCRStage.DEGRADED

    @classmethod
    def degraded_result(
        cls,
        confidence: float = MIN_DOCUMENT_CONFIDENCE,
        *,
        degraded_at: OCRStage = OCRStage.RECEIVED,
    ) -> RecognizedText:
        return cls(
            text="",
            confidence=confidence,
            document_type=DocumentType.GENERAL,
            stage=OCRStage.DEGRADED,
            degraded_at=degraded_at,
        )


@dataclass(frozen=True)
class ExtractedDocument:
    raw_text: str
    confidence: float
    document_type: DocumentType
    fields: MedicalFields
    field_confidence: dict[str, float]
    stage: OCRStage
    degraded_at: OCRStage | None = None

    @property
    def degraded(self) -> bool:
        return self.stage is OCRStage.DEGRADED

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw_text": self.raw_text,
            "confidence": self.confidence,
            "document_type": self.document_type.value,
            "fields": self.fields.to_dict(),
            "field_confidence": dict(self.field_confidence),
            "stage": self.stage.value,
            "degraded_at": self.degraded_at.value if self.degraded_at else None,
        }
