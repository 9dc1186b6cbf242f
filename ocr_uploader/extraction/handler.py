"""Extraction handler: validate an inbound data URL, ask the vision model, classify.

The handler never raises for expected failures. ``handle`` returns either an
``ExtractionSuccess`` or an ``ExtractionFailure`` whose ``kind`` carries the
HTTP status, so an empty or sentinel answer cannot be mistaken for text.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Union

from ocr_uploader.imaging.data_url import DataURLError, parse_data_url
from ocr_uploader.ocr.base_ocr import VisionEngine
from ocr_uploader.ocr.errors import (
    EngineTimeoutError,
    MalformedImageError,
    PolicyViolationError,
)

logger = logging.getLogger(__name__)


NO_TEXT_SENTINEL = "NO_TEXT_FOUND"

OCR_PROMPT = (
    "Extract all visible text from this image verbatim. "
    "If any of the text is not in English, translate it to English while "
    "preserving the original formatting and line breaks. "
    f"If the image contains no readable text, respond with exactly {NO_TEXT_SENTINEL}."
)


class FailureKind(str, enum.Enum):
    MISSING_IMAGE = "missing_image"
    INVALID_IMAGE = "invalid_image"
    NO_TEXT = "no_text"
    POLICY_VIOLATION = "policy_violation"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[FailureKind, int] = {
    FailureKind.MISSING_IMAGE: 400,
    FailureKind.INVALID_IMAGE: 400,
    FailureKind.NO_TEXT: 400,
    FailureKind.POLICY_VIOLATION: 400,
    FailureKind.TIMEOUT: 408,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.INTERNAL: 500,
}

_DEFAULT_MESSAGES: dict[FailureKind, str] = {
    FailureKind.MISSING_IMAGE: "Image is required",
    FailureKind.INVALID_IMAGE: "Invalid image data format",
    FailureKind.NO_TEXT: "No text found in the image",
    FailureKind.POLICY_VIOLATION: "The image was rejected by the content policy",
    FailureKind.TIMEOUT: "Text extraction timed out. Please try again.",
    FailureKind.RATE_LIMITED: "Too many requests. Please try again later.",
    FailureKind.INTERNAL: "Failed to extract text",
}


@dataclass(frozen=True)
class ExtractionSuccess:
    text: str


@dataclass(frozen=True)
class ExtractionFailure:
    kind: FailureKind
    message: str

    @classmethod
    def of(cls, kind: FailureKind, message: str | None = None) -> "ExtractionFailure":
        return cls(kind=kind, message=message or _DEFAULT_MESSAGES[kind])

    @property
    def status_code(self) -> int:
        return self.kind.status_code


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


def classify_exception(exc: BaseException) -> FailureKind:
    """Map an exception raised while talking to the provider to a failure kind."""
    if isinstance(exc, MalformedImageError):
        return FailureKind.INVALID_IMAGE
    if isinstance(exc, PolicyViolationError):
        return FailureKind.POLICY_VIOLATION
    if isinstance(exc, (EngineTimeoutError, asyncio.TimeoutError, TimeoutError)):
        return FailureKind.TIMEOUT

    # SDK errors that were not translated by the engine
    message = str(exc).lower()
    if "base64 decoding failed" in message or "unable to process input image" in message:
        return FailureKind.INVALID_IMAGE
    if "safety" in message or "content policy" in message or "blocked" in message:
        return FailureKind.POLICY_VIOLATION
    if "timed out" in message or "timeout" in message or "deadline exceeded" in message:
        return FailureKind.TIMEOUT
    return FailureKind.INTERNAL


class ExtractionHandler:
    def __init__(
        self,
        engine: VisionEngine,
        *,
        min_payload_chars: int = 100,
        max_payload_chars: int = 10 * 1024 * 1024,
        prompt: str = OCR_PROMPT,
    ) -> None:
        self._engine = engine
        self._min_payload_chars = min_payload_chars
        self._max_payload_chars = max_payload_chars
        self._prompt = prompt

    async def handle(self, base64_image: str | None) -> ExtractionOutcome:
        if not base64_image:
            return ExtractionFailure.of(FailureKind.MISSING_IMAGE)

        try:
            image = parse_data_url(base64_image)
        except DataURLError as exc:
            logger.info("image_rejected", extra={"reason": str(exc)})
            return ExtractionFailure.of(FailureKind.INVALID_IMAGE, str(exc))

        payload_chars = len(image.base64_data)
        if payload_chars < self._min_payload_chars:
            logger.info("image_rejected", extra={"reason": "undersized", "chars": payload_chars})
            return ExtractionFailure.of(
                FailureKind.INVALID_IMAGE, "Image data is too small to contain readable text"
            )
        if payload_chars > self._max_payload_chars:
            logger.info("image_rejected", extra={"reason": "oversized", "chars": payload_chars})
            return ExtractionFailure.of(FailureKind.INVALID_IMAGE, "Image is too large")

        try:
            result = await self._engine.extract_text(image, self._prompt)
        except Exception as exc:
            kind = classify_exception(exc)
            logger.exception(
                "extraction_failed",
                extra={"kind": kind.value, "mime_type": image.mime_type},
            )
            return ExtractionFailure.of(kind)

        text = (result.text or "").strip()
        if not text or text == NO_TEXT_SENTINEL:
            logger.info("no_text_found", extra={"model": result.model})
            return ExtractionFailure.of(FailureKind.NO_TEXT)

        logger.info(
            "extraction_complete",
            extra={"model": result.model, "mime_type": image.mime_type, "chars": len(text)},
        )
        return ExtractionSuccess(text=text)
