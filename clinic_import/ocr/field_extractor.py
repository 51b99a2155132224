"""
clinic_import/ocr/field_extractor.py

Heuristic extraction of medical fields from OCR text.

This is approximate line-by-line text mining, not a medical language
model: each field takes the first line that matches its pattern and later
matches are ignored. Expect false positives (a lab line such as
"Glucose 110 mg" also reads as a medication) and misses on unusual layouts.
Field scores are a fixed lookup on presence and do not depend on the OCR
engine's confidence.
"""

from __future__ import annotations

import re
from typing import Protocol

from clinic_import.domain.extracted_document import Medication, MedicalFields

MAX_MEDICATIONS = 10
ABSENT_FIELD_SCORE = 0.2

PHONE_PATTERN = re.compile(r"\b(\d{10})\b")
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
AGE_PATTERN = re.compile(r"age[:\s]+(\d{1,3})", re.IGNORECASE)
BLOOD_TYPE_PATTERN = re.compile(r"(O|A|B|AB)[\s-]*([+-])", re.IGNORECASE)
BLOOD_PRESSURE_PATTERN = re.compile(r"(\d{2,3})/(\d{2,3})\s*(?:mmhg)?", re.IGNORECASE)
TEMPERATURE_PATTERN = re.compile(r"temp[:\s]*(\d+\.?\d*)", re.IGNORECASE)
PULSE_PATTERN = re.compile(r"(?:pulse|hr|heart rate)[:\s]*(\d+)", re.IGNORECASE)
MEDICATION_PATTERN = re.compile(
    r"([a-zA-Z\s]+?)\s*[-:]?\s*(\d+\s*(?:mg|ml|tabs?|units?|caps?|gm))",
    re.IGNORECASE,
)
FREQUENCY_PATTERN = re.compile(r"(?:once|twice|thrice|1x|2x|3x|bd|tid|qd)\s+(?:daily)?", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"(\d+\.?\d*)")
DIAGNOSIS_PATTERN = re.compile(r"diagnosis[:\s]+([^,]+)", re.IGNORECASE)
NAME_PATTERN = re.compile(r"^([A-Z][a-z]+)\s+([A-Z][a-z]+)")

LAB_VALUE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hemoglobin": ("hemoglobin", "hb"),
    "glucose": ("glucose", "blood sugar"),
    "creatinine": ("creatinine",),
}

PRESENT_FIELD_SCORES: dict[str, float] = {
    "first_name": 0.7,
    "last_name": 0.7,
    "age": 0.8,
    "phone_number": 0.85,
    "email": 0.9,
    "blood_type": 0.75,
    "diagnosis": 0.65,
    "vitals.bp": 0.8,
    "vitals.temp": 0.75,
    "vitals.pulse": 0.8,
    "lab_values.glucose": 0.8,
    "lab_values.hemoglobin": 0.8,
    "lab_values.creatinine": 0.8,
    "medications": 0.7,
    "symptoms": 0.5,
    "allergies": 0.5,
    "medical_history": 0.5,
}


class FieldExtractor(Protocol):
    def parse(self, text: str) -> MedicalFields:
        ...

    def score(self, fields: MedicalFields) -> dict[str, float]:
        ...


def _first_group(pattern: re.Pattern[str], line: str) -> str:
    match = pattern.search(line)
    return match.group(1) if match else ""


class RegexFieldExtractor:
    """
    Default extractor built on the module-level patterns.
    """

    def parse(self, text: str) -> MedicalFields:
        fields = MedicalFields()

        for line in (text or "").split("\n"):
            lowered = line.lower()

            fields.phone_number = fields.phone_number or _first_group(PHONE_PATTERN, line)
            fields.email = fields.email or _first_group(EMAIL_PATTERN, line)
            fields.age = fields.age or _first_group(AGE_PATTERN, line)

            if not fields.blood_type:
                blood = BLOOD_TYPE_PATTERN.search(line)
                if blood:
                    fields.blood_type = f"{blood.group(1).upper()}{blood.group(2)}"

            if not fields.vitals.bp:
                pressure = BLOOD_PRESSURE_PATTERN.search(line)
                if pressure:
                    fields.vitals.bp = f"{pressure.group(1)}/{pressure.group(2)}"
            fields.vitals.temp = fields.vitals.temp or _first_group(TEMPERATURE_PATTERN, line)
            fields.vitals.pulse = fields.vitals.pulse or _first_group(PULSE_PATTERN, line)

            if "medication" not in lowered and len(fields.medications) < MAX_MEDICATIONS:
                medication = self._parse_medication(line)
                if medication is not None:
                    fields.medications.append(medication)

            for attribute, keywords in LAB_VALUE_KEYWORDS.items():
                if getattr(fields.lab_values, attribute):
                    continue
                if any(keyword in lowered for keyword in keywords):
                    setattr(fields.lab_values, attribute, _first_group(NUMBER_PATTERN, line))

            if not fields.diagnosis and ("diagnosis" in lowered or "diagnosed" in lowered):
                fields.diagnosis = _first_group(DIAGNOSIS_PATTERN, line).strip()

            if not fields.first_name:
                names = NAME_PATTERN.match(line)
                if names:
                    fields.first_name, fields.last_name = names.group(1), names.group(2)

        return fields

    def score(self, fields: MedicalFields) -> dict[str, float]:
        present = {
            "first_name": fields.first_name,
            "last_name": fields.last_name,
            "age": fields.age,
            "phone_number": fields.phone_number,
            "email": fields.email,
            "blood_type": fields.blood_type,
            "diagnosis": fields.diagnosis,
            "vitals.bp": fields.vitals.bp,
            "vitals.temp": fields.vitals.temp,
            "vitals.pulse": fields.vitals.pulse,
            "lab_values.glucose": fields.lab_values.glucose,
            "lab_values.hemoglobin": fields.lab_values.hemoglobin,
            "lab_values.creatinine": fields.lab_values.creatinine,
            "medications": fields.medications,
            "symptoms": fields.symptoms,
            "allergies": fields.allergies,
            "medical_history": fields.medical_history,
        }
        return {
            key: PRESENT_FIELD_SCORES[key] if value else ABSENT_FIELD_SCORE
            for key, value in present.items()
        }

    @staticmethod
    def _parse_medication(line: str) -> Medication | None:
        match = MEDICATION_PATTERN.search(line)
        if match is None:
            return None
        frequency = FREQUENCY_PATTERN.search(line)
        return Medication(
            name=match.group(1).strip(),
            dosage=match.group(2).strip(),
            frequency=frequency.group(0).strip() if frequency else "",
        )
