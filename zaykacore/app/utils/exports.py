"""Serialization and file hand-off for exported reports."""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Protocol

logger = logging.getLogger("reports")

BOM = "\ufeff"
CSV_MIME = "text/csv;charset=utf-8"
JSON_MIME = "application/json"


@dataclass
class ExportFile:
    content: str
    filename: str
    mime_type: str


class FileSink(Protocol):
    """Destination that stores the file and offers it to the user."""

    async def write_and_offer(self, content: str, filename: str, mime_type: str) -> Any: ...


def rows_to_csv(rows: Iterable[Iterable[Any]], *, bom: bool = True) -> str:
    """Render ``rows`` as CSV text; empty rows become blank lines."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(list(row))
    text = buffer.getvalue()
    if text.endswith("\n"):
        text = text[:-1]
    return (BOM + text) if bom else text


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    """Pretty JSON with ``Decimal`` amounts rendered as numbers."""

    return json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)


class DirectorySink:
    """Write exports into a folder; the returned path is what gets shared."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    async def write_and_offer(self, content: str, filename: str, mime_type: str) -> Path:
        if Path(filename).name != filename:
            raise ValueError("filename must not contain a path")
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_text(content, encoding="utf-8")
        logger.info("report written: %s (%s)", filename, mime_type, extra={"op": "export"})
        return path


__all__ = [
    "BOM",
    "CSV_MIME",
    "JSON_MIME",
    "ExportFile",
    "FileSink",
    "DirectorySink",
    "rows_to_csv",
    "to_json",
]
