"""HTTP route tests: FastAPI TestClient with the handler dependency overridden."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ocr_uploader.api.routes import get_extraction_handler
from ocr_uploader.extraction.handler import ExtractionHandler, NO_TEXT_SENTINEL
from ocr_uploader.main import create_app
from ocr_uploader.ocr.base_ocr import OCRResult
from ocr_uploader.ocr.errors import EngineTimeoutError
from ocr_uploader.ocr.mock_ocr import MockVisionEngine
from ocr_uploader.ratelimit.limiter import InMemoryWindowedCounter, RateLimiter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _client(engine=None, limiter: RateLimiter | None = None) -> TestClient:
    app = create_app()
    app.state.rate_limiter = limiter
    engine = engine or MockVisionEngine("Hello\nWorld")
    app.dependency_overrides[get_extraction_handler] = lambda: ExtractionHandler(engine)
    return TestClient(app)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_health() -> None:
    assert _client().get("/health").json() == {"status": "ok"}


def test_root_lists_endpoints() -> None:
    assert _client().get("/").json()["extract"] == "/apis/ocr"


def test_extract_success(png_data_url: str) -> None:
    response = _client().post("/apis/ocr", json={"base64Image": png_data_url})
    assert response.status_code == 200
    assert response.json() == {"text": "Hello\nWorld"}


def test_missing_image_is_400() -> None:
    response = _client().post("/apis/ocr", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Image is required"}


def test_invalid_grammar_is_400_without_model_call() -> None:
    engine = AsyncMock()
    response = _client(engine).post(
        "/apis/ocr", json={"base64Image": "data:image/svg+xml;base64,PHN2Zz4="}
    )
    assert response.status_code == 400
    assert "error" in response.json()
    engine.extract_text.assert_not_called()


def test_malformed_json_body_is_400() -> None:
    response = _client().post(
        "/apis/ocr", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_sentinel_is_an_error(png_data_url: str) -> None:
    response = _client(MockVisionEngine(NO_TEXT_SENTINEL)).post(
        "/apis/ocr", json={"base64Image": png_data_url}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "No text found in the image"}


def test_timeout_is_408(png_data_url: str) -> None:
    engine = AsyncMock()
    engine.extract_text = AsyncMock(side_effect=EngineTimeoutError("slow"))
    response = _client(engine).post("/apis/ocr", json={"base64Image": png_data_url})
    assert response.status_code == 408


def test_unexpected_error_is_500(png_data_url: str) -> None:
    engine = AsyncMock()
    engine.extract_text = AsyncMock(side_effect=RuntimeError("boom"))
    response = _client(engine).post("/apis/ocr", json={"base64Image": png_data_url})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to extract text"}


def test_rate_limit_returns_429(png_data_url: str) -> None:
    limiter = RateLimiter(InMemoryWindowedCounter(), limit=2, window_seconds=60)
    client = _client(limiter=limiter)

    statuses = [
        client.post("/apis/ocr", json={"base64Image": png_data_url}).status_code
        for _ in range(3)
    ]
    assert statuses == [200, 200, 429]

    blocked = client.post("/apis/ocr", json={"base64Image": png_data_url})
    assert blocked.json() == {"error": "Too many requests. Please try again later."}
    assert int(blocked.headers["Retry-After"]) >= 1


@pytest.mark.parametrize("enabled", [True, False])
def test_create_app_rate_limiter_follows_settings(monkeypatch, enabled: bool) -> None:
    import ocr_uploader.main as main_module

    monkeypatch.setattr(main_module.settings, "rate_limit_enabled", enabled)
    app = create_app()
    assert (app.state.rate_limiter is not None) is enabled


def test_default_handler_uses_configured_engine(png_data_url: str) -> None:
    app = create_app()
    app.state.rate_limiter = None
    response = TestClient(app).post("/apis/ocr", json={"base64Image": png_data_url})
    # conftest selects the mock provider
    assert response.status_code == 200
    assert "RECEIPT" in response.json()["text"]


def test_engine_result_text_is_stripped(png_data_url: str) -> None:
    engine = AsyncMock()
    engine.extract_text = AsyncMock(return_value=OCRResult(text="\n  spaced  \n", model="m"))
    response = _client(engine).post("/apis/ocr", json={"base64Image": png_data_url})
    assert response.json() == {"text": "spaced"}


def test_engine_is_shared_across_requests(png_data_url: str) -> None:
    app = create_app()
    app.state.rate_limiter = None
    engine = AsyncMock()
    engine.extract_text = AsyncMock(return_value=OCRResult(text="same engine", model="m"))
    app.state.vision_engine = engine
    client = TestClient(app)

    for _ in range(2):
        response = client.post("/apis/ocr", json={"base64Image": png_data_url})
        assert response.json() == {"text": "same engine"}

    assert engine.extract_text.await_count == 2
    assert app.state.vision_engine is engine


def test_create_app_builds_configured_engine() -> None:
    app = create_app()
    assert isinstance(app.state.vision_engine, MockVisionEngine)
