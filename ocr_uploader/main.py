from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ocr_uploader.api.routes import router
from ocr_uploader.core.config import settings
from ocr_uploader.core.logging import configure_logging
from ocr_uploader.ocr.factory import get_vision_engine
from ocr_uploader.ratelimit.limiter import InMemoryWindowedCounter, RateLimiter


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="OCR Uploader", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.include_router(router)

    # Shared by every request to this app
    app.state.vision_engine = get_vision_engine()

    app.state.rate_limiter = (
        RateLimiter(
            InMemoryWindowedCounter(),
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        if settings.rate_limit_enabled
        else None
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to the OCR Uploader API",
            "docs": "/docs",
            "health": "/health",
            "extract": "/apis/ocr",
        }

    @app.on_event("startup")
    async def _startup() -> None:
        logging.getLogger(__name__).info(
            "startup",
            extra={"provider": settings.ocr_provider, "rate_limit": settings.rate_limit_enabled},
        )

    return app


app = create_app()
