from __future__ import annotations

from ocr_uploader.imaging.data_url import ImagePayload
from ocr_uploader.ocr.base_ocr import OCRResult, VisionEngine

_SAMPLE_TEXT = 'RECEIPT\nCorner Café\n2 x Espresso  $6.00\nNote: "thank you"\nTotal: $6.00'


class MockVisionEngine(VisionEngine):
    def __init__(self, text: str = _SAMPLE_TEXT) -> None:
        self._text = text

    async def extract_text(self, image: ImagePayload, prompt: str) -> OCRResult:
        # Mock provider for development/testing
        return OCRResult(text=self._text, model="mock")
