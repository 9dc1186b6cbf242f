"""Camera capture for the uploader.

The media device is an opaque platform service reached through the
``MediaDevices`` protocol. A ``CameraSession`` owns at most one stream and
must release every track when the user cancels, a capture succeeds or the
component is torn down.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageOps

from ocr_uploader.imaging.data_url import DATA_URL_PREFIX, encode_data_url

logger = logging.getLogger(__name__)

MIN_CAPTURE_LENGTH = 50
JPEG_QUALITY = 90

CAMERA_ERROR_MESSAGES: dict[str, str] = {
    "NotAllowedError": "Camera access denied. Please allow camera permissions in your device settings.",
    "NotFoundError": "No camera found on this device.",
    "NotSupportedError": "Camera not supported on this browser.",
    "NotReadableError": "Camera is being used by another application.",
}
CAMERA_GENERIC_MESSAGE = "Failed to access camera. Please check permissions and try again."
CAMERA_UNAVAILABLE_MESSAGE = "Camera not supported on this device/browser."
CAMERA_NOT_READY_MESSAGE = "Camera not ready. Please wait and try again."
CAPTURE_FAILED_MESSAGE = "Failed to capture image. Please try again."


class CameraError(Exception):
    """A camera failure carrying the message shown to the user."""


class CameraNotReadyError(CameraError):
    def __init__(self) -> None:
        super().__init__(CAMERA_NOT_READY_MESSAGE)


class MediaAccessError(Exception):
    """Raised by a media device; ``name`` follows the DOMException names."""

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(message or name)
        self.name = name


def camera_error_message(exc: BaseException) -> str:
    name = getattr(exc, "name", None)
    return CAMERA_ERROR_MESSAGES.get(name, CAMERA_GENERIC_MESSAGE)


@dataclass(frozen=True)
class CameraConstraints:
    facing_mode: str = "environment"
    ideal_width: int = 1280
    max_width: int = 1920
    ideal_height: int = 720
    max_height: int = 1080


class MediaTrack(Protocol):
    def stop(self) -> None: ...


class MediaStream(Protocol):
    def get_tracks(self) -> list[MediaTrack]: ...

    @property
    def frame_size(self) -> tuple[int, int]:
        """Current (width, height); zeros until the device delivers frames."""
        ...

    def read_frame(self) -> Image.Image: ...


class MediaDevices(Protocol):
    async def get_user_media(self, constraints: CameraConstraints) -> MediaStream: ...


def encode_frame(frame: Image.Image, quality: int = JPEG_QUALITY) -> str:
    """Flip *frame* horizontally and encode it as a JPEG data URL."""
    mirrored = ImageOps.mirror(frame.convert("RGB"))
    buffer = io.BytesIO()
    mirrored.save(buffer, format="JPEG", quality=quality)
    return encode_data_url(buffer.getvalue(), "image/jpeg")


class CameraSession:
    def __init__(
        self,
        devices: MediaDevices | None,
        constraints: CameraConstraints | None = None,
    ) -> None:
        self._devices = devices
        self._constraints = constraints or CameraConstraints()
        self._stream: MediaStream | None = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    async def open(self) -> None:
        if self._devices is None:
            raise CameraError(CAMERA_UNAVAILABLE_MESSAGE)
        if self._stream is not None:
            return
        try:
            self._stream = await self._devices.get_user_media(self._constraints)
        except Exception as exc:
            logger.warning("camera_open_failed", extra={"error_name": getattr(exc, "name", type(exc).__name__)})
            raise CameraError(camera_error_message(exc)) from exc
        logger.info("camera_opened", extra={"facing_mode": self._constraints.facing_mode})

    def capture(self) -> str:
        """Grab the current frame as a data URL and release the camera."""
        stream = self._stream
        if stream is None:
            raise CameraNotReadyError()

        width, height = stream.frame_size
        if width == 0 or height == 0:
            raise CameraNotReadyError()

        data_url = encode_frame(stream.read_frame())
        if len(data_url) <= MIN_CAPTURE_LENGTH or not data_url.startswith(DATA_URL_PREFIX):
            raise CameraError(CAPTURE_FAILED_MESSAGE)

        self.stop()
        return data_url

    def stop(self) -> None:
        if self._stream is None:
            return
        for track in self._stream.get_tracks():
            track.stop()
        self._stream = None
        logger.info("camera_stopped")

    async def __aenter__(self) -> "CameraSession":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.stop()
