"""Utility helpers shared across modules."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

RENAME_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def now_in(timezone: str) -> datetime:
    """Current time in the named IANA zone."""
    return datetime.now(tz=UTC).astimezone(ZoneInfo(timezone))


def split_extension(filename: str) -> tuple[str, str]:
    """Split at the last dot; the extension keeps its dot."""
    dot = filename.rfind(".")
    if dot > -1:
        return filename[:dot], filename[dot:]
    return filename, ""


def timestamped_name(filename: str, moment: datetime) -> str:
    """`report.pdf` -> `report_20240131_142501.pdf`."""
    base, extension = split_extension(filename)
    return f"{base}_{moment.strftime(RENAME_TIMESTAMP_FORMAT)}{extension}"


def mask_token(token: str | None) -> str:
    if not token or len(token) < 8:
        return "****"
    return f"{token[:4]}****{token[-4:]}"


def format_file_size(size: int) -> str:
    """Human readable size using 1024 steps, one decimal."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(units) - 1:
        value /= 1024
        exponent += 1
    value = round(value, 1)
    if value == int(value):
        return f"{int(value)} {units[exponent]}"
    return f"{value} {units[exponent]}"


def epoch_millis(moment: datetime | None = None) -> int:
    moment = moment or datetime.now(tz=UTC)
    return int(moment.timestamp() * 1000)
