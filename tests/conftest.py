"""Shared pytest configuration and fixtures for the OCR uploader tests."""
from __future__ import annotations

import base64
import os

import pytest

# Provide env vars before any ocr_uploader module is imported
os.environ.setdefault("OCR_PROVIDER", "mock")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "20")


@pytest.fixture
def png_data_url() -> str:
    # Not a decodable PNG, but valid base64 well above the minimum size
    payload = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 200).decode("ascii")
    return f"data:image/png;base64,{payload}"
