"""
clinic_import/mappers package marker.
"""

from clinic_import.mappers.column_mapper import (
    PATIENT_FIELD_ALIASES,
    PATIENT_IMPORT_FIELDS,
    ColumnMapper,
    ImportFieldDefinition,
    normalize_header,
)

__all__ = [
    "ColumnMapper",
    "ImportFieldDefinition",
    "PATIENT_FIELD_ALIASES",
    "PATIENT_IMPORT_FIELDS",
    "normalize_header",
]
