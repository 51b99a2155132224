"""
clinic_import/validators package marker.
"""

from clinic_import.validators.normalizers import (
    clean_string,
    is_blank,
    normalize_gender,
    normalize_phone,
    parse_flexible_date,
)
from clinic_import.validators.row_validator import RowValidator

__all__ = [
    "RowValidator",
    "clean_string",
    "is_blank",
    "normalize_gender",
    "normalize_phone",
    "parse_flexible_date",
]
