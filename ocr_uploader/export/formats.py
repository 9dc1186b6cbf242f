"""Views and download artifacts derived from an extraction result.

Every view is a pure function of the stored text, its extraction timestamp
and the requested format, so rendering the same result twice gives the same
bytes.
"""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

CSV_HEADER = "Line Number,Content"

# The "Excel" download is CSV content under a spreadsheet MIME type.
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DOWNLOAD_BASENAME = "ocr-result"


class ExportFormat(str, enum.Enum):
    TEXT = "text"
    JSON = "json"
    CSV = "csv"


class DownloadFormat(str, enum.Enum):
    TXT = "txt"
    CSV = "csv"
    XLSX = "xlsx"
    JSON = "json"


_DOWNLOADS: dict[DownloadFormat, tuple[ExportFormat, str]] = {
    DownloadFormat.TXT: (ExportFormat.TEXT, "text/plain"),
    DownloadFormat.CSV: (ExportFormat.CSV, "text/csv"),
    DownloadFormat.XLSX: (ExportFormat.CSV, XLSX_MIME_TYPE),
    DownloadFormat.JSON: (ExportFormat.JSON, "application/json"),
}


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    extracted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def lines(self) -> list[str]:
        return [line for line in self.text.splitlines() if line.strip()]

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def character_count(self) -> int:
        return len(self.text)


def to_json(result: ExtractionResult) -> str:
    payload = {
        "extractedText": result.text,
        "lines": result.lines,
        "wordCount": result.word_count,
        "characterCount": result.character_count,
        "extractedAt": result.extracted_at.isoformat(),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def to_csv(result: ExtractionResult) -> str:
    rows = [CSV_HEADER]
    for number, line in enumerate(result.lines, start=1):
        escaped = line.replace('"', '""')
        rows.append(f'{number},"{escaped}"')
    return "\n".join(rows) + "\n"


def format_result(result: ExtractionResult | None, fmt: ExportFormat | str) -> str:
    """Render *result* in *fmt*; an absent or empty result renders as ``""``."""
    if result is None or not result.text:
        return ""

    fmt = ExportFormat(fmt)
    if fmt is ExportFormat.JSON:
        return to_json(result)
    if fmt is ExportFormat.CSV:
        return to_csv(result)
    return result.text


@dataclass(frozen=True)
class DownloadArtifact:
    filename: str
    mime_type: str
    content: bytes

    def save(self, directory: str | Path) -> Path:
        path = Path(directory) / self.filename
        path.write_bytes(self.content)
        return path


def build_download(result: ExtractionResult | None, fmt: DownloadFormat | str) -> DownloadArtifact:
    fmt = DownloadFormat(fmt)
    view, mime_type = _DOWNLOADS[fmt]
    return DownloadArtifact(
        filename=f"{DOWNLOAD_BASENAME}.{fmt.value}",
        mime_type=mime_type,
        content=format_result(result, view).encode("utf-8"),
    )
