"""
clinic_import/config.py

Environment-driven settings for bulk import and document OCR.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class BulkImportSettings:
    """
    Runtime limits for the bulk row importer.
    """

    max_file_size: int = 50 * 1024 * 1024
    max_rows: int = 100_000
    rate_limit_interval_seconds: int = 300
    batch_size: int = 1000
    max_recorded_errors: int = 1000
    log_row_errors: bool = True
    placeholder_password: str = "temp_password"


@dataclass(frozen=True)
class OCRSettings:
    """
    Tesseract engine and image preprocessing settings.
    """

    engine_start_timeout_ms: int = 30_000
    recognition_timeout_ms: int = 60_000
    language: str = "eng"
    tesseract_cmd: str | None = None
    upscale_below_width: int = 800
    upscale_target_width: int = 1200

    @property
    def engine_start_timeout_seconds(self) -> float:
        return self.engine_start_timeout_ms / 1000.0

    @property
    def recognition_timeout_seconds(self) -> float:
        return self.recognition_timeout_ms / 1000.0


@lru_cache(maxsize=1)
def get_bulk_import_settings() -> BulkImportSettings:
    """
    Return cached bulk import settings from environment variables.
    """

    return BulkImportSettings(
        max_file_size=max(1, _get_int_env("BULK_IMPORT_MAX_FILE_SIZE", 50 * 1024 * 1024)),
        max_rows=max(1, _get_int_env("BULK_IMPORT_MAX_ROWS", 100_000)),
        rate_limit_interval_seconds=max(0, _get_int_env("BULK_IMPORT_RATE_LIMIT_INTERVAL", 300)),
        batch_size=max(1, _get_int_env("BULK_IMPORT_BATCH_SIZE", 1000)),
        max_recorded_errors=max(1, _get_int_env("BULK_IMPORT_MAX_RECORDED_ERRORS", 1000)),
        log_row_errors=_get_bool_env("BULK_IMPORT_LOG_ROW_ERRORS", True),
        placeholder_password=_get_str_env("BULK_IMPORT_PLACEHOLDER_PASSWORD", "temp_password"),
    )


@lru_cache(maxsize=1)
def get_ocr_settings() -> OCRSettings:
    """
    Return cached OCR settings from environment variables.
    """

    return OCRSettings(
        engine_start_timeout_ms=max(1, _get_int_env("OCR_ENGINE_START_TIMEOUT_MS", 30_000)),
        recognition_timeout_ms=max(1, _get_int_env("OCR_RECOGNITION_TIMEOUT_MS", 60_000)),
        language=_get_str_env("OCR_LANGUAGE", "eng"),
        tesseract_cmd=_get_optional_str_env("OCR_TESSERACT_CMD"),
        upscale_below_width=max(1, _get_int_env("OCR_UPSCALE_BELOW_WIDTH", 800)),
        upscale_target_width=max(1, _get_int_env("OCR_UPSCALE_TARGET_WIDTH", 1200)),
    )
