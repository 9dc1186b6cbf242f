from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class OCRRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Full data URL, e.g. "data:image/png;base64,iVBOR..."
    base64_image: str | None = Field(default=None, alias="base64Image")


class OCRTextResponse(BaseModel):
    text: str


class OCRErrorResponse(BaseModel):
    error: str
