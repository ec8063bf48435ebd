"""Registry view over the agent runtime's session list."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from backend.date_utils import now_epoch_ms
from backend.errors import ValidationError
from backend.gateway import CommandGateway
from backend.models import Session, SessionFilter, SessionList, SessionStats
from backend.session_keys import parse_session_key, unknown_key_info

logger = logging.getLogger("openclaw_dash.registry")


def _coerce_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def _coerce_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def context_used_percent(total_tokens: int, context_tokens: int) -> int | None:
    if context_tokens <= 0:
        return None
    # Half-up rounding, not banker's rounding.
    return int(total_tokens * 100 / context_tokens + 0.5)


def build_session(raw: dict[str, Any]) -> Session | None:
    """Map a raw `sessions list` record to a Session, or None for run entries."""
    key = raw.get("key")
    if not isinstance(key, str) or not key:
        return None
    info = parse_session_key(key)
    if info.isRunEntry or info.type == "unknown":
        return None

    total_tokens = _coerce_int(raw.get("totalTokens"))
    context_tokens = _coerce_int(raw.get("contextTokens"))
    session_id = raw.get("sessionId")
    return Session(
        id=key,
        key=key,
        type=info.type,
        typeLabel=info.typeLabel,
        typeEmoji=info.typeEmoji,
        sessionId=session_id if isinstance(session_id, str) and session_id else None,
        cronJobId=info.cronJobId,
        subagentId=info.subagentId,
        updatedAt=_coerce_int(raw.get("updatedAt")),
        ageMs=_coerce_int(raw.get("ageMs")),
        model=_coerce_text(raw.get("model"), "unknown"),
        modelProvider=_coerce_text(raw.get("modelProvider"), "anthropic"),
        inputTokens=_coerce_int(raw.get("inputTokens")),
        outputTokens=_coerce_int(raw.get("outputTokens")),
        totalTokens=total_tokens,
        contextTokens=context_tokens,
        contextUsedPercent=context_used_percent(total_tokens, context_tokens),
        aborted=bool(raw.get("abortedLastRun", False)),
    )


def default_session(session_id: str) -> Session:
    """Minimal record for a transcript the registry does not know about."""
    info = unknown_key_info()
    return Session(
        id=session_id,
        key=f"unknown:{session_id}",
        type=info.type,
        typeLabel=info.typeLabel,
        typeEmoji=info.typeEmoji,
        sessionId=session_id,
        updatedAt=now_epoch_ms(),
        ageMs=0,
        model="unknown",
        modelProvider="unknown",
    )


def _sort_key(session: Session) -> tuple[int, str]:
    return (-session.updatedAt, session.key)


class SessionRegistry:
    """Filtered, sorted, paginated view of every user-visible session."""

    def __init__(self, gateway: CommandGateway):
        self.gateway = gateway

    def _all_sessions(self) -> list[Session]:
        sessions: list[Session] = []
        dropped = 0
        for raw in self.gateway.list_sessions():
            session = build_session(raw)
            if session is None:
                dropped += 1
                continue
            sessions.append(session)
        if dropped:
            logger.debug("Dropped %d run/unknown session entries", dropped)
        return sessions

    def list_sessions(self, session_filter: SessionFilter | None = None) -> SessionList:
        session_filter = session_filter or SessionFilter()
        errors: list[str] = []
        if session_filter.offset is not None and session_filter.offset < 0:
            errors.append("Offset must be non-negative")
        if session_filter.limit is not None and session_filter.limit < 0:
            errors.append("Limit must be non-negative")
        if errors:
            raise ValidationError(errors)

        sessions = self._all_sessions()
        if session_filter.type and session_filter.type != "unknown":
            sessions = [s for s in sessions if s.type == session_filter.type]
        if session_filter.model:
            sessions = [s for s in sessions if session_filter.model in s.model]

        sessions.sort(key=_sort_key)
        total = len(sessions)

        if session_filter.offset is not None or session_filter.limit is not None:
            offset = session_filter.offset or 0
            limit = session_filter.limit if session_filter.limit is not None else total
            sessions = sessions[offset:offset + limit]

        return SessionList(sessions=sessions, total=total)

    def find_by_session_id(self, session_id: str) -> Session | None:
        for session in self._all_sessions():
            if session.sessionId == session_id:
                return session
        return None

    def stats(self) -> SessionStats:
        sessions = self._all_sessions()
        by_type: Counter[str] = Counter(s.type for s in sessions)
        by_model: Counter[str] = Counter(s.model for s in sessions)
        total_tokens = sum(s.totalTokens for s in sessions)
        return SessionStats(
            total=len(sessions),
            byType=dict(by_type),
            byModel=dict(by_model),
            totalTokens=total_tokens,
            avgTokensPerSession=(total_tokens / len(sessions)) if sessions else 0.0,
            abortedCount=sum(1 for s in sessions if s.aborted),
        )
