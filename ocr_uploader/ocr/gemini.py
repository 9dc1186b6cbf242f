"""GeminiVisionEngine: hosted text extraction through the google-genai SDK.

Config (via .env):
    OCR_PROVIDER=gemini
    GEMINI_API_KEY=...
    GEMINI_MODEL=gemini-2.5-flash
    MODEL_TIMEOUT_SECONDS=30

Install dependency:
    pip install google-genai
"""
from __future__ import annotations

import asyncio
import logging

from ocr_uploader.imaging.data_url import ImagePayload
from ocr_uploader.ocr.base_ocr import OCRResult, VisionEngine
from ocr_uploader.ocr.errors import (
    EngineConfigurationError,
    EngineTimeoutError,
    MalformedImageError,
    PolicyViolationError,
)

logger = logging.getLogger(__name__)

# Candidate finish reasons that mean the model refused to answer.
_BLOCKED_FINISH_REASONS = frozenset(
    {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}
)


class GeminiVisionEngine(VisionEngine):
    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = None   # lazy-init so a missing key only fails on use

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise EngineConfigurationError("GEMINI_API_KEY is not configured")
            try:
                from google import genai  # type: ignore[import]
            except ModuleNotFoundError as exc:
                raise EngineConfigurationError(
                    "google-genai is not installed. Run: pip install google-genai"
                ) from exc
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def extract_text(self, image: ImagePayload, prompt: str) -> OCRResult:
        from google.genai import errors, types  # type: ignore[import]

        client = self._get_client()
        contents = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            prompt,
        ]
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(model=self._model, contents=contents),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise EngineTimeoutError(
                f"{self._model} did not respond within {self._timeout:g}s"
            ) from exc
        except errors.ClientError as exc:
            if exc.code == 400 and "image" in str(exc).lower():
                raise MalformedImageError(str(exc)) from exc
            raise

        self._raise_if_blocked(response)
        text = response.text or ""

        logger.info(
            "gemini_extraction_complete",
            extra={"model": self._model, "mime_type": image.mime_type, "chars": len(text)},
        )
        return OCRResult(text=text, model=self._model)

    @staticmethod
    def _raise_if_blocked(response) -> None:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            raise PolicyViolationError(f"Prompt blocked: {feedback.block_reason}")

        for candidate in response.candidates or []:
            reason = getattr(candidate.finish_reason, "name", str(candidate.finish_reason))
            if reason in _BLOCKED_FINISH_REASONS:
                raise PolicyViolationError(f"Response blocked: {reason}")
