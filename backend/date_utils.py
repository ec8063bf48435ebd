"""Shared timestamp helpers."""
from __future__ import annotations

import time
from datetime import datetime, timezone


def _format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return _format_datetime_utc(datetime.now(timezone.utc))


def now_epoch_ms() -> int:
    return int(time.time() * 1000)
