"""
clinic_import/validators/row_validator.py

Required-field presence checks for bulk import rows.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from clinic_import.validators.normalizers import is_blank

# Each group is reported as one message, e.g. "Missing firstName or lastName".
RequiredFieldGroups = Sequence[Sequence[str]]


class RowValidator:
    """
    Field-presence validation only; value formats are not checked here.
    """

    def is_completely_empty_row(self, row: Mapping[str, Any]) -> bool:
        return all(is_blank(value) for value in row.values())

    def missing_field_message(
        self,
        row: Mapping[str, Any],
        required_groups: RequiredFieldGroups,
    ) -> str | None:
        """
        Return the message for the first group with a blank field, else None.
        """

        for group in required_groups:
            if any(is_blank(row.get(field_name)) for field_name in group):
                return "Missing " + " or ".join(group)
        return None
