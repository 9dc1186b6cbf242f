from __future__ import annotations

from dataclasses import dataclass

from ocr_uploader.imaging.data_url import ImagePayload


@dataclass(frozen=True)
class OCRResult:
    text: str
    model: str


class VisionEngine:
    async def extract_text(self, image: ImagePayload, prompt: str) -> OCRResult:
        raise NotImplementedError
