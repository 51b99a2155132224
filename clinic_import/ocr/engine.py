"""
clinic_import/ocr/engine.py

OCR engine abstraction and the Tesseract implementation.

An engine is started once per document and yields a session; the session
recognizes one image and must be closed afterwards whatever the outcome.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Protocol

import pytesseract
from PIL import Image

from clinic_import.config import OCRSettings, get_ocr_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecognitionOutput:
    """
    Raw engine output; ``confidence`` is on the engine's 0-100 scale.
    """

    text: str
    confidence: float


class OCRSession(Protocol):
    def recognize(self, image_bytes: bytes) -> RecognitionOutput:
        ...

    def close(self) -> None:
        ...


class OCREngine(Protocol):
    def start(self) -> OCRSession:
        ...


class TesseractSession:
    """
    One recognition run against the local Tesseract binary.
    """

    def __init__(self, *, language: str, timeout_seconds: float) -> None:
        self._language = language
        self._timeout_seconds = timeout_seconds
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def recognize(self, image_bytes: bytes) -> RecognitionOutput:
        if self._closed:
            raise RuntimeError("OCR session is closed.")

        with Image.open(io.BytesIO(image_bytes)) as image:
            # pytesseract kills the subprocess once the timeout elapses.
            data = pytesseract.image_to_data(
                image,
                lang=self._language,
                output_type=pytesseract.Output.DICT,
                timeout=self._timeout_seconds,
            )

        lines: dict[tuple[int, int, int], list[str]] = {}
        confidences: list[float] = []
        for index, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            if not word:
                continue
            key = (data["block_num"][index], data["par_num"][index], data["line_num"][index])
            lines.setdefault(key, []).append(word)
            confidence = float(data["conf"][index])
            if confidence >= 0:
                confidences.append(confidence)

        text = "\n".join(" ".join(words) for words in lines.values())
        mean_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return RecognitionOutput(text=text, confidence=mean_confidence)

    def close(self) -> None:
        self._closed = True


class TesseractEngine:
    """
    Starts Tesseract sessions after probing that the binary is usable.
    """

    def __init__(self, settings: OCRSettings | None = None) -> None:
        self._settings = settings or get_ocr_settings()

    def start(self) -> TesseractSession:
        if self._settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._settings.tesseract_cmd

        version = pytesseract.get_tesseract_version()
        logger.debug("Tesseract available version=%s", version)
        return TesseractSession(
            language=self._settings.language,
            timeout_seconds=self._settings.recognition_timeout_seconds,
        )
