"""Session key classification.

Keys are colon-delimited composites emitted by the agent runtime, e.g.
``agent:main:main``, ``agent:main:cron:<jobId>``, ``agent:main:subagent:<id>``
or ``agent:main:telegram:<peer>``. A key containing a ``run`` segment is an
internal bookkeeping entry for a single execution pass and is never shown.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from backend.models import SessionKeyInfo

_RUN_SEGMENT = "run"


@dataclass(frozen=True)
class MainKey:
    pass


@dataclass(frozen=True)
class CronKey:
    job_id: str | None


@dataclass(frozen=True)
class SubagentKey:
    subagent_id: str | None


@dataclass(frozen=True)
class DirectKey:
    channel: str


@dataclass(frozen=True)
class RunEntryKey:
    pass


SessionKeyShape = Union[MainKey, CronKey, SubagentKey, DirectKey, RunEntryKey]


def _segment(parts: list[str], index: int) -> str | None:
    if index < len(parts) and parts[index]:
        return parts[index]
    return None


def parse_session_key_shape(key: Any) -> SessionKeyShape:
    """Classify a raw key into one of the known key shapes. Never raises."""
    text = key if isinstance(key, str) else ""
    parts = text.split(":")

    if _RUN_SEGMENT in parts:
        return RunEntryKey()

    kind = _segment(parts, 2)
    if kind == "main":
        return MainKey()
    if kind == "cron":
        return CronKey(job_id=_segment(parts, 3))
    if kind == "subagent":
        return SubagentKey(subagent_id=_segment(parts, 3))
    return DirectKey(channel=kind or "")


def _direct_label(channel: str) -> str:
    if not channel:
        return "Direct Chat"
    return f"{channel[0].upper()}{channel[1:]} Chat"


def describe_key_shape(shape: SessionKeyShape) -> SessionKeyInfo:
    if isinstance(shape, RunEntryKey):
        return SessionKeyInfo(type="unknown", typeLabel="Run Entry", typeEmoji="🔁", isRunEntry=True)
    if isinstance(shape, MainKey):
        return SessionKeyInfo(type="main", typeLabel="Main Session", typeEmoji="🫙")
    if isinstance(shape, CronKey):
        return SessionKeyInfo(type="cron", typeLabel="Cron Job", typeEmoji="🕐", cronJobId=shape.job_id)
    if isinstance(shape, SubagentKey):
        return SessionKeyInfo(type="subagent", typeLabel="Sub-agent", typeEmoji="🤖", subagentId=shape.subagent_id)
    return SessionKeyInfo(type="direct", typeLabel=_direct_label(shape.channel), typeEmoji="💬")


def parse_session_key(key: Any) -> SessionKeyInfo:
    """Return the display descriptor for a session key."""
    return describe_key_shape(parse_session_key_shape(key))


def unknown_key_info() -> SessionKeyInfo:
    """Descriptor for sessions the registry has no record of."""
    return SessionKeyInfo(type="unknown", typeLabel="Unknown", typeEmoji="❓")
