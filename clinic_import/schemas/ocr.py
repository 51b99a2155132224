"""
clinic_import/schemas/ocr.py

Response schema for document OCR extraction.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MedicationResponse(BaseModel):
    name: str
    dosage: str
    frequency: str = ""
    route: str = ""
    duration: str = ""


class VitalsResponse(BaseModel):
    bp: str = ""
    temp: str = ""
    pulse: str = ""
    respiratory_rate: str = ""
    sp_o2: str = ""
    glucose: str = ""


class LabValuesResponse(BaseModel):
    glucose: str = ""
    hemoglobin: str = ""
    creatinine: str = ""


class MedicalFieldsResponse(BaseModel):
    first_name: str = ""
    last_name: str = ""
    age: str = ""
    gender: str = "MALE"
    phone_number: str = ""
    email: str = ""
    blood_type: str = ""
    diagnosis: str = ""
    symptoms: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    medical_history: list[str] = Field(default_factory=list)
    medications: list[MedicationResponse] = Field(default_factory=list)
    vitals: VitalsResponse = Field(default_factory=VitalsResponse)
    lab_values: LabValuesResponse = Field(default_factory=LabValuesResponse)


class ExtractedDocumentResponse(BaseModel):
    raw_text: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    document_type: str
    stage: str
    degraded_at: str | None = None
    fields: MedicalFieldsResponse
    field_confidence: dict[str, float] = Field(default_factory=dict)
