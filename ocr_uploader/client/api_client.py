"""HTTP client for the extraction endpoint, with bounded retries.

Transient failures (transport and decoding errors, timeouts, 408 and 5xx
responses, and successes without a text string) are retried with
exponential backoff. Validation and rate-limit responses are returned to the
caller straight away with the server's message.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

logger = logging.getLogger(__name__)

OCR_ENDPOINT = "/apis/ocr"


class OCRClientError(Exception):
    """Raised when text could not be obtained from the extraction endpoint."""


class OCRRequestError(OCRClientError):
    def __init__(self, message: str, *, status_code: int | None = None, transient: bool = True) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, OCRRequestError):
        return exc.transient
    return isinstance(exc, (httpx.HTTPError, asyncio.TimeoutError))


class OCRApiClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        max_attempts: int = 3,
        timeout: float = 10.0,
        backoff_base: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._backoff_base = backoff_base
        self._sleep = sleep
        self._transport = transport

    def _backoff(self, retry_state: RetryCallState) -> float:
        # 1s x 2^attempt after the attempt-th failure: 2s, 4s, ...
        return self._backoff_base * 2 ** retry_state.attempt_number

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "ocr_attempt_failed",
            extra={"attempt": retry_state.attempt_number, "error": str(exc)},
        )

    async def extract_text(self, data_url: str) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._backoff,
            retry=retry_if_exception(_is_transient),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        ) as http:
            try:
                async for attempt in retrying:
                    with attempt:
                        return await self._post(http, data_url)
            except OCRRequestError as exc:
                if not exc.transient:
                    raise
                raise OCRClientError(
                    f"Failed to extract text after {self._max_attempts} attempts: {exc}"
                ) from exc
            except (httpx.HTTPError, asyncio.TimeoutError) as exc:
                message = str(exc) or exc.__class__.__name__
                raise OCRClientError(
                    f"Failed to extract text after {self._max_attempts} attempts: {message}"
                ) from exc
        raise OCRClientError("Failed to extract text")

    async def _post(self, http: httpx.AsyncClient, data_url: str) -> str:
        response = await http.post(OCR_ENDPOINT, json={"base64Image": data_url})
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        text = data.get("text")
        if response.is_success and isinstance(text, str) and text:
            return text

        status = response.status_code
        message = data.get("error") or f"OCR API failed with status {status}"
        transient = response.is_success or status == 408 or status >= 500
        raise OCRRequestError(message, status_code=status, transient=transient)
