"""
clinic_import/validators/normalizers.py

Value normalizers shared by the import paths: phone numbers, dates, gender.
"""

from __future__ import annotations

import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any

EXCEL_EPOCH = datetime(1899, 12, 30)

_NON_DIGITS = re.compile(r"\D")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
# Serials as text (CSV cells). Five integer digits keep "YYYYMMDD" on the ISO path.
_SERIAL_TEXT = re.compile(r"^\d{1,5}(\.\d+)?$")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if value != value:
        # NaN / NaT cells from spreadsheet readers
        return True
    return str(value).strip() == ""


def clean_string(value: Any) -> str | None:
    """
    Strip a cell value; blank cells become None.
    """

    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_phone(value: Any) -> str:
    """
    Best-effort phone normalization; the result is not guaranteed dialable.

    Non-digits are stripped, then a leading US trunk "1" on 11 digits or an
    Indian "91" country code on 12 digits is dropped.
    """

    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    digits = _NON_DIGITS.sub("", str(value))
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    if len(digits) == 12 and digits.startswith("91"):
        return digits[2:]
    return digits


def _from_excel_serial(serial: float) -> date | None:
    try:
        return (EXCEL_EPOCH + timedelta(days=serial)).date()
    except OverflowError:
        return None


def parse_flexible_date(value: Any) -> date | None:
    """
    Parse Excel serials, ISO strings, and D/M/YYYY or D-M-YYYY strings.

    Returns None when nothing matches.
    """

    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return _from_excel_serial(float(value))

    raw = str(value).strip()
    if _SERIAL_TEXT.match(raw):
        return _from_excel_serial(float(raw))
    iso_candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(iso_candidate).date()
    except ValueError:
        pass

    match = _DAY_MONTH_YEAR.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def normalize_gender(value: Any) -> str:
    normalized = (clean_string(value) or "").upper()
    if normalized in {"MALE", "M"}:
        return "MALE"
    if normalized in {"FEMALE", "F"}:
        return "FEMALE"
    return "OTHER"
