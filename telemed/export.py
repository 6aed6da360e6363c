"""
export.py
=========
Turns a filtered result set into a downloadable file.

 - CSV: header from the first record's keys, minus internal fields
 - JSON: every record with password fields removed, pretty-printed
 - PDF: not available yet, reported as such instead of writing a file

``export_data`` raises ExportError subclasses; ``run_export`` is what a
view calls: it never raises and always returns a Notice to show.
"""

import csv
import datetime
import enum
import io
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from .timeutils import isoformat_z, utcnow

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "telemed"

# Never written to CSV, whatever the kind of data
CSV_EXCLUDED_FIELDS = ("password", "id", "__v", "createdAt", "updatedAt")

# Stripped from JSON exports
SENSITIVE_FIELDS = ("password",)

FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
    "pdf": "application/pdf",
}

KIND_LABELS = {
    "appointments": "Appointments",
    "records": "Medical records",
    "patients": "Patients",
    "doctors": "Doctors",
    "reminders": "Reminders",
    "feedbacks": "Feedback",
}

_UNSAFE_CHARS = re.compile(r"[:.\\/\s]")


class ExportError(Exception):
    """Base class for export failures shown to the user."""


class EmptyExportError(ExportError):
    def __init__(self, kind: str):
        super().__init__(f"No {KIND_LABELS.get(kind, kind).lower()} to export.")
        self.kind = kind


class ExportUnavailable(ExportError):
    def __init__(self, fmt: str):
        super().__init__(f"{fmt.upper()} export is not yet available.")
        self.format = fmt


class UnknownExportFormat(ExportError):
    def __init__(self, fmt: str):
        super().__init__(f"Unknown export format: {fmt!r}")
        self.format = fmt


@dataclass
class ExportFile:
    filename: str
    content: str
    media_type: str

    def save(self, directory: str = ".") -> str:
        """Write the file into ``directory`` and return its path."""
        path = os.path.join(directory, self.filename)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(self.content)
        logger.info("Export written to %s", path)
        return path


@dataclass
class Notice:
    """A dismissible message for the user."""
    level: str  # "success", "info" or "error"
    title: str
    message: str


@dataclass
class ExportOutcome:
    notice: Notice
    file: Optional[ExportFile] = None

    @property
    def ok(self) -> bool:
        return self.file is not None


# ---------------------------------------------------------------------------
# VALUE CONVERSION
# ---------------------------------------------------------------------------

def as_row(item: Any) -> Dict[str, Any]:
    """A record as an ordered dict of its fields."""
    if isinstance(item, BaseModel):
        return item.model_dump()
    if isinstance(item, Mapping):
        return dict(item)
    raise TypeError(f"cannot export {type(item).__name__} records")


def _json_default(value):
    if isinstance(value, datetime.datetime):
        return isoformat_z(value)
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def csv_value(value: Any) -> str:
    """String form of one CSV cell, before quoting."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime.datetime):
        return isoformat_z(value)
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=_json_default, ensure_ascii=False, separators=(",", ":"))
    return str(value)


# ---------------------------------------------------------------------------
# SERIALIZERS
# ---------------------------------------------------------------------------

def csv_headers(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    if not rows:
        return []
    return [key for key in rows[0] if key not in CSV_EXCLUDED_FIELDS]


def to_csv(data: Sequence[Any], include_headers: bool = True) -> str:
    """
    CSV text for ``data``. Cells containing a comma, a double quote or a
    newline are quoted, with inner quotes doubled.
    """
    rows = [as_row(item) for item in data]
    if not rows:
        return ""
    headers = csv_headers(rows)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    if include_headers:
        writer.writerow(headers)
    for row in rows:
        cells = [csv_value(row.get(h)) for h in headers]
        if cells == [""]:
            # csv.writer would write a lone empty cell as ""
            buf.write("\n")
        else:
            writer.writerow(cells)
    return buf.getvalue()


def sanitize(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in SENSITIVE_FIELDS}


def to_json(data: Sequence[Any]) -> str:
    rows = [sanitize(as_row(item)) for item in data]
    return json.dumps(rows, indent=2, ensure_ascii=False, default=_json_default)


def build_filename(kind: str, ext: str, now: Optional[datetime.datetime] = None) -> str:
    """``telemed_<kind>_<timestamp>.<ext>`` with path-unsafe characters replaced."""
    stamp = isoformat_z(now or utcnow())
    safe_kind = _UNSAFE_CHARS.sub("-", kind)
    return f"{FILENAME_PREFIX}_{safe_kind}_{_UNSAFE_CHARS.sub('-', stamp)}.{ext}"


def export_data(
    kind: str,
    data: Sequence[Any],
    fmt: str = "csv",
    include_headers: bool = True,
    now: Optional[datetime.datetime] = None,
) -> ExportFile:
    """
    Serialize ``data`` to a file in ``fmt``.

    Raises EmptyExportError for an empty dataset (checked first),
    UnknownExportFormat and ExportUnavailable (PDF).
    """
    fmt = (fmt or "").lower()
    if not data:
        raise EmptyExportError(kind)
    if fmt not in FORMATS:
        raise UnknownExportFormat(fmt)
    if fmt == "pdf":
        raise ExportUnavailable(fmt)

    if fmt == "csv":
        content = to_csv(data, include_headers=include_headers)
    else:
        content = to_json(data)
    return ExportFile(build_filename(kind, fmt, now), content, FORMATS[fmt])


def run_export(
    kind: str,
    data: Sequence[Any],
    fmt: str = "csv",
    include_headers: bool = True,
    now: Optional[datetime.datetime] = None,
) -> ExportOutcome:
    """
    Export for a view: failures come back as a Notice rather than an
    exception so the caller can show and dismiss them.
    """
    label = KIND_LABELS.get(kind, kind)
    try:
        export = export_data(kind, data, fmt, include_headers, now)
    except EmptyExportError as exc:
        return ExportOutcome(Notice("error", "Nothing to export", str(exc)))
    except ExportUnavailable as exc:
        message = f"{exc} {label}: {len(data)} items were not exported."
        return ExportOutcome(Notice("info", "Coming soon", message))
    except Exception:
        logger.exception("Export of %s as %s failed", kind, fmt)
        return ExportOutcome(Notice("error", "Export failed",
                                    "An error occurred while exporting the data."))
    return ExportOutcome(
        Notice("success", "Export complete", f"{label} exported as {fmt.upper()}."),
        export,
    )
