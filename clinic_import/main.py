from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    work_queue_running: bool


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every problem so the operator can fix all of
    them in one restart cycle.
    """

    from clinic_import.config import get_ocr_settings
    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    database_url = os.getenv("DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not database_url and not local_database_url:
        errors.append("No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL.")

    # --- OCR ------------------------------------------------------------
    ocr_settings = get_ocr_settings()
    if ocr_settings.upscale_target_width < ocr_settings.upscale_below_width:
        errors.append(
            "OCR_UPSCALE_TARGET_WIDTH must not be smaller than OCR_UPSCALE_BELOW_WIDTH."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; run 'alembic upgrade head' first.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the import queue on boot; stop it on exit."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    from clinic_import.api.dependencies import get_ocr_service, get_work_queue

    work_queue = get_work_queue()
    work_queue.start()
    try:
        yield
    finally:
        work_queue.shutdown(wait=True)
        get_ocr_service().shutdown(wait=False)
        log.info("Import work queue and OCR workers shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Clinic Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from clinic_import.api.dependencies import get_work_queue
    from clinic_import.api.routers import bulk_import_router, ocr_router, patient_import_router

    application.include_router(bulk_import_router)
    application.include_router(patient_import_router)
    application.include_router(ocr_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", work_queue_running=get_work_queue().running)

    return application


app = create_app()
