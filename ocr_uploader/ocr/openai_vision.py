"""OpenAIVisionEngine: hosted text extraction through an OpenAI vision model.

The image is passed inline as its data URL in an ``image_url`` content part.

Config (via .env):
    OCR_PROVIDER=openai
    OPENAI_API_KEY=...
    OPENAI_MODEL=gpt-4o-mini
"""
from __future__ import annotations

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


class OpenAIVisionEngine(VisionEngine):
    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise EngineConfigurationError("OPENAI_API_KEY is not configured")
            try:
                from openai import AsyncOpenAI  # type: ignore[import]
            except ModuleNotFoundError as exc:
                raise EngineConfigurationError(
                    "openai package is not installed. Run: pip install openai"
                ) from exc
            # Retries are the caller's concern
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        return self._client

    async def extract_text(self, image: ImagePayload, prompt: str) -> OCRResult:
        import openai  # type: ignore[import]

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                        ],
                    },
                ],
            )
        except openai.APITimeoutError as exc:
            raise EngineTimeoutError(
                f"{self._model} did not respond within {self._timeout:g}s"
            ) from exc
        except openai.BadRequestError as exc:
            if exc.code == "content_policy_violation":
                raise PolicyViolationError(str(exc)) from exc
            if exc.code == "invalid_image_format" or "image" in str(exc).lower():
                raise MalformedImageError(str(exc)) from exc
            raise

        message = response.choices[0].message
        if getattr(message, "refusal", None):
            raise PolicyViolationError(message.refusal)
        text = message.content or ""

        logger.info(
            "openai_extraction_complete",
            extra={"model": self._model, "mime_type": image.mime_type, "chars": len(text)},
        )
        return OCRResult(text=text, model=self._model)
