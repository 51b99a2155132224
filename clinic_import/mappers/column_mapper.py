"""
clinic_import/mappers/column_mapper.py

Spreadsheet header to patient field resolution for the patient import path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from clinic_import.validators.normalizers import is_blank

# Enumeration order is the tie-break for ambiguous headers.
PATIENT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "firstName": ("first name", "firstname", "first_name", "name", "patient name", "patientname"),
    "lastName": ("last name", "lastname", "last_name", "surname", "family name"),
    "phoneNumber": ("phone", "phone number", "phonenumber", "mobile", "contact", "mobile number"),
    "email": ("email", "email address", "emailaddress", "mail"),
    "dateOfBirth": ("dob", "date of birth", "dateofbirth", "birth date", "birthdate", "birthday"),
    "gender": ("gender", "sex"),
    "bloodGroup": ("blood group", "bloodgroup", "blood type", "bloodtype"),
    "address": ("address", "location", "residence", "street address"),
    "allergies": ("allergies", "allergy", "known allergies"),
    "medicalHistory": ("medical history", "medicalhistory", "history", "conditions"),
}


@dataclass(frozen=True)
class ImportFieldDefinition:
    field: str
    label: str
    required: bool
    type: str
    options: tuple[str, ...] = ()


PATIENT_IMPORT_FIELDS: tuple[ImportFieldDefinition, ...] = (
    ImportFieldDefinition("firstName", "First Name", True, "text"),
    ImportFieldDefinition("lastName", "Last Name", False, "text"),
    ImportFieldDefinition("phoneNumber", "Phone Number", True, "phone"),
    ImportFieldDefinition("email", "Email", False, "email"),
    ImportFieldDefinition("dateOfBirth", "Date of Birth", False, "date"),
    ImportFieldDefinition("gender", "Gender", False, "select", ("MALE", "FEMALE", "OTHER")),
    ImportFieldDefinition(
        "bloodGroup",
        "Blood Group",
        False,
        "select",
        ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"),
    ),
    ImportFieldDefinition("address", "Address", False, "textarea"),
    ImportFieldDefinition("allergies", "Allergies", False, "text"),
    ImportFieldDefinition("medicalHistory", "Medical History", False, "textarea"),
)


def normalize_header(header: str) -> str:
    return header.strip().lower()


@dataclass
class ColumnMapper:
    """
    Suggests target fields for spreadsheet headers by alias containment.

    A header matches an alias when either string contains the other, so the
    result is best-effort: "Last Name" contains the firstName alias "name".
    """

    aliases: Mapping[str, Sequence[str]] = field(default_factory=lambda: PATIENT_FIELD_ALIASES)

    def suggest_field(self, header: str) -> str | None:
        normalized = normalize_header(header)
        if not normalized:
            return None
        for target_field, aliases in self.aliases.items():
            for alias in aliases:
                if alias in normalized or normalized in alias:
                    return target_field
        return None

    def suggest_mappings(self, headers: Sequence[str]) -> dict[str, str]:
        """
        Return header -> target field for every header with a suggestion.
        """

        suggestions: dict[str, str] = {}
        for header in headers:
            target_field = self.suggest_field(header)
            if target_field is not None:
                suggestions[header] = target_field
        return suggestions

    def map_row(
        self,
        raw_row: Mapping[str, Any],
        mapping: Mapping[str, str],
    ) -> dict[str, Any]:
        """
        Re-key one spreadsheet row by target field.

        When several headers point at one field, the first non-blank value wins.
        """

        mapped: dict[str, Any] = {}
        for header, target_field in mapping.items():
            if target_field not in self.aliases or header not in raw_row:
                continue
            value = raw_row[header]
            if is_blank(mapped.get(target_field)):
                mapped[target_field] = value
        return mapped
