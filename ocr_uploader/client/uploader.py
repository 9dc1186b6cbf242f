"""The capture/upload component.

``OCRUploader`` holds everything the UI renders: the selected image, the
camera session, the extraction result, the active export view, the error
message and the progress-modal state. State changes go through an explicit
transition table so, for example, a second extraction cannot start while one
is in flight.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import mimetypes
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Protocol

from ocr_uploader.client.api_client import OCRApiClient, OCRClientError
from ocr_uploader.client.camera import (
    CAMERA_NOT_READY_MESSAGE,
    CameraError,
    CameraSession,
    MediaDevices,
)
from ocr_uploader.export.formats import (
    DownloadArtifact,
    DownloadFormat,
    ExportFormat,
    ExtractionResult,
    build_download,
    format_result,
)
from ocr_uploader.imaging.data_url import DATA_URL_PREFIX, encode_data_url

logger = logging.getLogger(__name__)

MIN_DATA_URL_LENGTH = 50
STEP_DELAY_SECONDS = 1.0
COPIED_FEEDBACK_SECONDS = 2.0
EXTRACTION_FAILED_MESSAGE = "Failed to extract text"


@dataclass(frozen=True)
class ProcessingStep:
    text: str
    description: str


PROCESSING_STEPS: tuple[ProcessingStep, ...] = (
    ProcessingStep("Analyzing image...", "Reading image data and validating format"),
    ProcessingStep("Preprocessing image...", "Optimizing image for text recognition"),
    ProcessingStep("Extracting text...", "Performing OCR processing"),
    ProcessingStep("Formatting results...", "Preparing extracted text in multiple formats"),
)


class UploaderState(str, enum.Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    RESULT = "result"
    ERROR = "error"


class UploaderEvent(str, enum.Enum):
    OPEN_CAMERA = "open_camera"
    CLOSE_CAMERA = "close_camera"
    SUBMIT = "submit"
    SUCCEED = "succeed"
    FAIL = "fail"


_S = UploaderState
_E = UploaderEvent

TRANSITIONS: dict[tuple[UploaderState, UploaderEvent], UploaderState] = {
    (_S.IDLE, _E.OPEN_CAMERA): _S.CAPTURING,
    (_S.RESULT, _E.OPEN_CAMERA): _S.CAPTURING,
    (_S.ERROR, _E.OPEN_CAMERA): _S.CAPTURING,
    (_S.CAPTURING, _E.CLOSE_CAMERA): _S.IDLE,
    (_S.IDLE, _E.SUBMIT): _S.PROCESSING,
    (_S.CAPTURING, _E.SUBMIT): _S.PROCESSING,
    (_S.RESULT, _E.SUBMIT): _S.PROCESSING,
    (_S.ERROR, _E.SUBMIT): _S.PROCESSING,
    (_S.PROCESSING, _E.SUCCEED): _S.RESULT,
    (_S.PROCESSING, _E.FAIL): _S.ERROR,
    (_S.IDLE, _E.FAIL): _S.ERROR,
    (_S.CAPTURING, _E.FAIL): _S.ERROR,
    (_S.RESULT, _E.FAIL): _S.ERROR,
    (_S.ERROR, _E.FAIL): _S.ERROR,
}


class InvalidTransitionError(RuntimeError):
    def __init__(self, state: UploaderState, event: UploaderEvent) -> None:
        super().__init__(f"Cannot {event.value} while {state.value}")
        self.state = state
        self.event = event


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


class OCRUploader:
    def __init__(
        self,
        client: OCRApiClient,
        *,
        media_devices: MediaDevices | None = None,
        clipboard: Clipboard | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        step_delay: float = STEP_DELAY_SECONDS,
    ) -> None:
        self._client = client
        self._camera = CameraSession(media_devices)
        self._clipboard = clipboard
        self._sleep = sleep
        self._clock = clock
        self._step_delay = step_delay

        self.state = UploaderState.IDLE
        self.image: str | None = None
        self.result: ExtractionResult | None = None
        self.error = ""
        self.active_format = ExportFormat.TEXT
        self.current_step = 0
        self.show_modal = False
        self._copied_at: float | None = None

    # ------------------------------------------------------------------ #
    #  State machine                                                      #
    # ------------------------------------------------------------------ #

    def _fire(self, event: UploaderEvent) -> None:
        key = (self.state, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self.state, event)
        previous, self.state = self.state, TRANSITIONS[key]
        logger.debug("uploader_transition", extra={"from": previous.value, "to": self.state.value})

    def _fail(self, message: str) -> None:
        logger.info("uploader_error", extra={"state": self.state.value, "error": message})
        if self.state is UploaderState.CAPTURING:
            self._camera.stop()
        self.error = message
        self._fire(UploaderEvent.FAIL)

    def _ensure_not_processing(self) -> None:
        # One extraction at a time per component
        if self.state is UploaderState.PROCESSING:
            raise InvalidTransitionError(self.state, UploaderEvent.SUBMIT)

    @property
    def is_camera_open(self) -> bool:
        return self._camera.is_open

    @property
    def text(self) -> str:
        return self.result.text if self.result else ""

    # ------------------------------------------------------------------ #
    #  File path                                                          #
    # ------------------------------------------------------------------ #

    async def select_file(self, path: str | Path | None) -> None:
        self._ensure_not_processing()
        if path is None:
            self._fail("No file selected. Please choose an image from your gallery or take a photo.")
            return

        mime_type, _ = mimetypes.guess_type(str(path))
        if not mime_type or not mime_type.startswith("image/"):
            self._fail("Please upload a valid image file (e.g., JPG, PNG).")
            return

        try:
            data = Path(path).read_bytes()
        except OSError:
            logger.exception("file_read_failed", extra={"path": str(path)})
            self._fail("Error reading the file. Please try again.")
            return

        await self.load_image(data, mime_type)

    async def load_image(self, data: bytes, mime_type: str) -> None:
        self._ensure_not_processing()
        if not mime_type.startswith("image/"):
            self._fail("Please upload a valid image file (e.g., JPG, PNG).")
            return
        if not data:
            self._fail("Failed to read the image file. Please try another file.")
            return
        await self.process_image(encode_data_url(data, mime_type))

    # ------------------------------------------------------------------ #
    #  Camera path                                                        #
    # ------------------------------------------------------------------ #

    async def open_camera(self) -> None:
        self._ensure_not_processing()
        if self._camera.is_open and self.state is UploaderState.CAPTURING:
            return
        try:
            await self._camera.open()
        except CameraError as exc:
            self._fail(str(exc))
            return
        self._fire(UploaderEvent.OPEN_CAMERA)
        self.error = ""

    async def capture(self) -> None:
        if self.state is not UploaderState.CAPTURING:
            self.error = CAMERA_NOT_READY_MESSAGE
            return
        try:
            data_url = self._camera.capture()
        except CameraError as exc:
            # The preview stays open so the user can try again
            self.error = str(exc)
            return
        await self.process_image(data_url)

    def stop_camera(self) -> None:
        self._camera.stop()
        if self.state is UploaderState.CAPTURING:
            self._fire(UploaderEvent.CLOSE_CAMERA)

    def close(self) -> None:
        self._camera.stop()

    # ------------------------------------------------------------------ #
    #  Processing                                                         #
    # ------------------------------------------------------------------ #

    async def process_image(self, data_url: str) -> None:
        self._ensure_not_processing()
        if not data_url or len(data_url) < MIN_DATA_URL_LENGTH:
            self._fail("Invalid image data")
            return
        if not data_url.startswith(DATA_URL_PREFIX):
            self._fail("Invalid image format")
            return

        self._camera.stop()
        self._fire(UploaderEvent.SUBMIT)
        self.image = data_url
        self.error = ""
        self.result = None
        self.current_step = 0
        self.show_modal = True

        try:
            # Cosmetic progress; unrelated to the request's real progress
            for index, _step in enumerate(PROCESSING_STEPS):
                self.current_step = index
                await self._sleep(self._step_delay)

            try:
                text = await self._client.extract_text(data_url)
            except OCRClientError as exc:
                self._fail(str(exc))
                return

            self.result = ExtractionResult(text=text)
            self._fire(UploaderEvent.SUCCEED)
            logger.info("uploader_result", extra={"chars": len(text)})
        finally:
            self.show_modal = False
            self.current_step = 0
            if self.state is UploaderState.PROCESSING:
                # Unexpected error or cancellation; the exception still propagates
                self._fail(EXTRACTION_FAILED_MESSAGE)

    # ------------------------------------------------------------------ #
    #  Result views                                                       #
    # ------------------------------------------------------------------ #

    def set_format(self, fmt: ExportFormat | str) -> None:
        self.active_format = ExportFormat(fmt)

    def formatted_data(self) -> str:
        return format_result(self.result, self.active_format)

    def download(self, fmt: DownloadFormat | str, directory: str | Path | None = None) -> DownloadArtifact:
        artifact = build_download(self.result, fmt)
        if directory is not None:
            path = artifact.save(directory)
            logger.info("download_saved", extra={"path": str(path), "mime_type": artifact.mime_type})
        return artifact

    async def copy_to_clipboard(self) -> None:
        if self._clipboard is None:
            self.error = "Failed to copy text to clipboard."
            return
        try:
            await self._clipboard.write_text(self.formatted_data())
        except Exception:
            logger.exception("clipboard_write_failed")
            self.error = "Failed to copy text to clipboard."
            return
        self._copied_at = self._clock()

    @property
    def copied(self) -> bool:
        if self._copied_at is None:
            return False
        return self._clock() - self._copied_at < COPIED_FEEDBACK_SECONDS
