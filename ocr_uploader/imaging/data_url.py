"""Data-URL grammar for inbound images.

A data URL here is ``data:image/<subtype>;base64,<payload>``. Only the
subtypes in ``ACCEPTED_SUBTYPES`` are accepted and the payload must be
canonical base64 (standard alphabet, correct padding).
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

ACCEPTED_SUBTYPES: frozenset[str] = frozenset({"png", "jpeg", "jpg", "gif", "webp"})

DATA_URL_PREFIX = "data:image/"

_DATA_URL_RE = re.compile(
    r"^data:image/(?P<subtype>png|jpeg|jpg|gif|webp);base64,(?P<payload>[A-Za-z0-9+/]+={0,2})$"
)


class DataURLError(ValueError):
    """Raised when a value is not an accepted image data URL."""


@dataclass(frozen=True)
class ImagePayload:
    subtype: str
    base64_data: str
    data: bytes

    @property
    def mime_type(self) -> str:
        return f"image/{self.subtype}"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"


def parse_data_url(value: str) -> ImagePayload:
    """Validate *value* and split it into MIME subtype and decoded payload."""
    match = _DATA_URL_RE.match(value.strip())
    if match is None:
        raise DataURLError("Invalid image format")

    payload = match.group("payload")
    if len(payload) % 4 != 0:
        raise DataURLError("Invalid base64 image data")

    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise DataURLError("Invalid base64 image data") from exc

    return ImagePayload(subtype=match.group("subtype"), base64_data=payload, data=data)


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw image bytes as a data URL, the way a browser FileReader would."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
