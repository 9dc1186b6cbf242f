"""Stand-ins for the platform services the uploader talks to."""
from __future__ import annotations

from PIL import Image

from ocr_uploader.client.camera import CameraConstraints, MediaAccessError


class FakeTrack:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeStream:
    def __init__(self, size: tuple[int, int] = (64, 32), tracks: int = 2) -> None:
        self.size = size
        self.tracks = [FakeTrack() for _ in range(tracks)]
        # Left half red, right half blue
        width, height = max(size[0], 2), max(size[1], 1)
        self.frame = Image.new("RGB", (width, height), (0, 0, 255))
        self.frame.paste((255, 0, 0), (0, 0, width // 2, height))

    def get_tracks(self) -> list[FakeTrack]:
        return self.tracks

    @property
    def frame_size(self) -> tuple[int, int]:
        return self.size

    def read_frame(self) -> Image.Image:
        return self.frame


class FakeMediaDevices:
    def __init__(self, stream: FakeStream | None = None, error_name: str | None = None) -> None:
        self.stream = stream or FakeStream()
        self.error_name = error_name
        self.requests: list[CameraConstraints] = []

    async def get_user_media(self, constraints: CameraConstraints) -> FakeStream:
        self.requests.append(constraints)
        if self.error_name:
            raise MediaAccessError(self.error_name)
        return self.stream


class FakeClipboard:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.contents: list[str] = []

    async def write_text(self, text: str) -> None:
        if self.fail:
            raise PermissionError("clipboard denied")
        self.contents.append(text)
