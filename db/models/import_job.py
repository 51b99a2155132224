"""
db/models/import_job.py

Bulk import job model for status lookup after submission.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TenantMixin, TimestampMixin


class ImportJobRecord(Base, TenantMixin, TimestampMixin):
    __tablename__ = "import_jobs"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="import_<epoch ms>_<random>",
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="PATIENT, PRESCRIPTION, DOCTOR, LAB_TEST, INVENTORY",
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Final import summary",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_import_jobs_status", "status"),
        Index("ix_import_jobs_created_at", "created_at"),
    )
