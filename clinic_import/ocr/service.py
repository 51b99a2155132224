"""
clinic_import/ocr/service.py

Document OCR pipeline: preprocess, recognize, classify, parse, score.

Callers never see an exception from this service. A missing file, an engine
that fails to start in time, a recognition timeout, or an engine crash all
produce a degraded result with empty text and floor confidence.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from clinic_import.config import OCRSettings, get_ocr_settings
from clinic_import.domain.extracted_document import (
    DocumentType,
    ExtractedDocument,
    MedicalFields,
    OCRStage,
    RecognizedText,
    normalize_confidence,
)
from clinic_import.ocr.classifier import classify_document
from clinic_import.ocr.engine import OCREngine, OCRSession, TesseractEngine
from clinic_import.ocr.field_extractor import FieldExtractor, RegexFieldExtractor
from clinic_import.ocr.preprocessing import preprocess_image

logger = logging.getLogger(__name__)

UNREADABLE_INPUT_CONFIDENCE = 0.1
ENGINE_FAILURE_CONFIDENCE = 0.15


def _close_session(session: OCRSession) -> None:
    try:
        session.close()
        logger.debug("OCR session closed")
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to close OCR session: %s", exc)


def _engine_failure() -> RecognizedText:
    return RecognizedText.degraded_result(ENGINE_FAILURE_CONFIDENCE, degraded_at=OCRStage.PREPROCESSED)


def _close_late_session(future: Future) -> None:
    # Engine start finished after its timeout fired; the session is unowned.
    if future.cancelled() or future.exception() is not None:
        return
    _close_session(future.result())


class DocumentOCRService:
    """
    Extracts text and structured fields from scanned medical documents.

    Engine start and recognition run on a worker pool so each can be bounded
    by its own timeout. Documents are independent and may be processed
    concurrently up to ``max_workers``.
    """

    def __init__(
        self,
        *,
        engine: OCREngine | None = None,
        extractor: FieldExtractor | None = None,
        settings: OCRSettings | None = None,
        max_workers: int = 4,
    ) -> None:
        self._settings = settings or get_ocr_settings()
        self._engine = engine or TesseractEngine(self._settings)
        self._extractor = extractor or RegexFieldExtractor()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ocr")

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def extract_text_from_image(self, image_path: str | Path) -> RecognizedText:
        """
        Run preprocessing and recognition and classify the resulting text.
        """

        path = Path(image_path)
        try:
            image_bytes = preprocess_image(path, settings=self._settings)
        except OSError as exc:
            logger.warning("OCR input missing or unreadable path=%s: %s", path, exc)
            return RecognizedText.degraded_result(
                UNREADABLE_INPUT_CONFIDENCE, degraded_at=OCRStage.RECEIVED
            )

        try:
            return self._recognize(path, image_bytes)
        except Exception:  # noqa: BLE001
            logger.error("Unexpected OCR failure path=%s", path, exc_info=True)
            return RecognizedText.degraded_result(
                UNREADABLE_INPUT_CONFIDENCE, degraded_at=OCRStage.PREPROCESSED
            )

    def extract_document(self, image_path: str | Path) -> ExtractedDocument:
        """
        Full pipeline: recognized text plus parsed fields and field scores.
        """

        recognized = self.extract_text_from_image(image_path)
        if recognized.degraded:
            return self._degraded_document(recognized.confidence, recognized.degraded_at)

        try:
            fields = self._extractor.parse(recognized.text)
        except Exception:  # noqa: BLE001
            logger.error("Field parsing failed path=%s", image_path, exc_info=True)
            return self._degraded_document(UNREADABLE_INPUT_CONFIDENCE, OCRStage.CLASSIFIED)
        try:
            field_confidence = self._extractor.score(fields)
        except Exception:  # noqa: BLE001
            logger.error("Field scoring failed path=%s", image_path, exc_info=True)
            return self._degraded_document(UNREADABLE_INPUT_CONFIDENCE, OCRStage.PARSED)

        return ExtractedDocument(
            raw_text=recognized.text,
            confidence=recognized.confidence,
            document_type=recognized.document_type,
            fields=fields,
            field_confidence=field_confidence,
            stage=OCRStage.SCORED,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recognize(self, path: Path, image_bytes: bytes) -> RecognizedText:
        session: OCRSession | None = None
        start_future = self._executor.submit(self._engine.start)
        try:
            try:
                session = start_future.result(timeout=self._settings.engine_start_timeout_seconds)
            except FutureTimeoutError:
                logger.warning(
                    "OCR engine start timed out after %sms path=%s",
                    self._settings.engine_start_timeout_ms,
                    path,
                )
                return _engine_failure()
            except Exception as exc:  # noqa: BLE001
                logger.warning("OCR engine start failed path=%s: %s", path, exc)
                return _engine_failure()

            recognize_future = self._executor.submit(session.recognize, image_bytes)
            try:
                output = recognize_future.result(timeout=self._settings.recognition_timeout_seconds)
            except FutureTimeoutError:
                logger.warning(
                    "OCR recognition timed out after %sms path=%s",
                    self._settings.recognition_timeout_ms,
                    path,
                )
                return _engine_failure()
            except Exception as exc:  # noqa: BLE001
                logger.warning("OCR recognition failed path=%s: %s", path, exc)
                return _engine_failure()
        finally:
            if session is not None:
                _close_session(session)
            elif not start_future.cancel():
                start_future.add_done_callback(_close_late_session)

        text = output.text or ""
        confidence = normalize_confidence(output.confidence)
        document_type = classify_document(text)
        logger.info(
            "OCR completed path=%s confidence=%.2f text_length=%d document_type=%s",
            path,
            confidence,
            len(text),
            document_type.value,
        )
        return RecognizedText(
            text=text,
            confidence=confidence,
            document_type=document_type,
            stage=OCRStage.CLASSIFIED,
        )

    def _degraded_document(self, confidence: float, degraded_at: OCRStage | None) -> ExtractedDocument:
        fields = MedicalFields()
        try:
            field_confidence = self._extractor.score(fields)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scoring empty fields failed: %s", exc)
            field_confidence = {}
        return ExtractedDocument(
            raw_text="",
            confidence=confidence,
            document_type=DocumentType.GENERAL,
            fields=fields,
            field_confidence=field_confidence,
            stage=OCRStage.DEGRADED,
            degraded_at=degraded_at,
        )
