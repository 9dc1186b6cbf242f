from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ocr_uploader.core.config import settings
from ocr_uploader.extraction.handler import (
    ExtractionFailure,
    ExtractionHandler,
    ExtractionSuccess,
    FailureKind,
)
from ocr_uploader.ocr.base_ocr import VisionEngine
from ocr_uploader.ocr.factory import get_vision_engine
from ocr_uploader.ratelimit.limiter import RateLimiter
from ocr_uploader.schemas import OCRErrorResponse, OCRRequest, OCRTextResponse

logger = logging.getLogger(__name__)
router = APIRouter()


def get_vision_engine_for_app(request: Request) -> VisionEngine:
    engine = getattr(request.app.state, "vision_engine", None)
    if engine is None:
        engine = request.app.state.vision_engine = get_vision_engine()
    return engine


def get_extraction_handler(
    engine: VisionEngine = Depends(get_vision_engine_for_app),
) -> ExtractionHandler:
    return ExtractionHandler(
        engine,
        min_payload_chars=settings.min_image_payload_chars,
        max_payload_chars=settings.max_image_payload_chars,
    )


def get_rate_limiter(request: Request) -> RateLimiter | None:
    return getattr(request.app.state, "rate_limiter", None)


def _error_response(failure: ExtractionFailure, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=failure.status_code,
        content=OCRErrorResponse(error=failure.message).model_dump(),
        headers=headers,
    )


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post(
    "/apis/ocr",
    response_model=OCRTextResponse,
    responses={code: {"model": OCRErrorResponse} for code in (400, 408, 429, 500)},
)
async def extract_text(
    body: OCRRequest,
    request: Request,
    handler: ExtractionHandler = Depends(get_extraction_handler),
    limiter: RateLimiter | None = Depends(get_rate_limiter),
):
    client_ip = request.client.host if request.client else "unknown"

    if limiter is not None:
        decision = limiter.hit(client_ip)
        if not decision.allowed:
            return _error_response(
                ExtractionFailure.of(FailureKind.RATE_LIMITED),
                headers={"Retry-After": str(decision.retry_after)},
            )

    outcome = await handler.handle(body.base64_image)

    if isinstance(outcome, ExtractionSuccess):
        logger.info("ocr_request_succeeded", extra={"client_ip": client_ip, "chars": len(outcome.text)})
        return OCRTextResponse(text=outcome.text)

    logger.info(
        "ocr_request_failed",
        extra={"client_ip": client_ip, "kind": outcome.kind.value, "status": outcome.status_code},
    )
    return _error_response(outcome)
