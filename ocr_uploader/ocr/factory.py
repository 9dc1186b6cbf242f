from __future__ import annotations

from ocr_uploader.core.config import settings
from ocr_uploader.ocr.base_ocr import VisionEngine
from ocr_uploader.ocr.mock_ocr import MockVisionEngine


def get_vision_engine() -> VisionEngine:
    """Return the configured vision engine instance.

    OCR_PROVIDER options:
        gemini: GeminiVisionEngine (pip install google-genai + GEMINI_API_KEY)
        openai: OpenAIVisionEngine (pip install openai + OPENAI_API_KEY)
        mock  : fixed text (dev/test, no network)
    """
    provider = settings.ocr_provider.lower().strip()

    if provider == "mock":
        return MockVisionEngine()

    if provider == "gemini":
        from ocr_uploader.ocr.gemini import GeminiVisionEngine
        return GeminiVisionEngine(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.model_timeout_seconds,
        )

    if provider == "openai":
        from ocr_uploader.ocr.openai_vision import OpenAIVisionEngine
        return OpenAIVisionEngine(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.model_timeout_seconds,
        )

    raise ValueError(f"Unknown OCR_PROVIDER={settings.ocr_provider!r}")
