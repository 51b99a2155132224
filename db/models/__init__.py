"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.doctor import Doctor
from db.models.import_job import ImportJobRecord
from db.models.inventory_item import InventoryItem
from db.models.lab_test import LabTest
from db.models.patient import Patient

__all__ = [
    "Doctor",
    "ImportJobRecord",
    "InventoryItem",
    "LabTest",
    "Patient",
]
