"""Session operations: validate input, delegate, and wrap outcomes in a result envelope.

Every public function returns an ``OperationResult``; nothing raised by the
registry, transcript store or gateway escapes to the caller.
"""
from __future__ import annotations

import logging
import re
import time
from typing import get_args

from backend import config
from backend.errors import GatewayError, SessionError, ValidationError
from backend.gateway import CommandGateway, get_gateway
from backend.models import (
    OperationResult,
    PaginatedResponse,
    SessionFilter,
    SessionList,
    SessionMessage,
    SessionStats,
    SessionType,
    SessionWithMessages,
    ValidationResult,
)
from backend.observability import record_transcript_read, start_span
from backend.parsers.transcripts import TranscriptParseResult, TranscriptStore, reconstruct_transcript
from backend.services.session_registry import SessionRegistry, default_session

logger = logging.getLogger("openclaw_dash.sessions")

_SESSION_ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


# ── Validation ──────────────────────────────────────────────────────

def validate_session_id(session_id: str | None) -> ValidationResult:
    errors: list[str] = []
    if not session_id:
        errors.append("Session ID is required")
    elif not _SESSION_ID_PATTERN.match(session_id):
        errors.append("Invalid session ID format (expected UUID)")
    return ValidationResult(valid=not errors, errors=errors)


def validate_session_key(session_key: str | None) -> ValidationResult:
    errors: list[str] = []
    if not session_key:
        errors.append("Session key is required")
    elif not session_key.startswith(config.SESSION_KEY_PREFIX):
        errors.append("Invalid session key format")
    return ValidationResult(valid=not errors, errors=errors)


def validate_model(model: str | None) -> ValidationResult:
    errors: list[str] = []
    if not model or not model.strip():
        errors.append("Model is required")
    elif len(model.strip()) > config.MODEL_NAME_MAX_LENGTH:
        errors.append("Model name too long")
    return ValidationResult(valid=not errors, errors=errors)


def validate_session_type(session_type: str | None) -> ValidationResult:
    errors: list[str] = []
    if session_type is not None and session_type not in get_args(SessionType):
        errors.append(f"Invalid session type: {session_type}")
    return ValidationResult(valid=not errors, errors=errors)


def _require(*results: ValidationResult) -> None:
    for result in results:
        if not result.valid:
            raise ValidationError(result.errors)


def _failure(exc: SessionError) -> OperationResult:
    if isinstance(exc, ValidationError):
        logger.info("Rejected session request: %s", exc.message)
    return OperationResult(success=False, error=exc.message, errorKind=exc.kind)


# ── Operations ──────────────────────────────────────────────────────

class SessionService:
    """Binds the registry, transcript store and gateway together."""

    def __init__(
        self,
        gateway: CommandGateway | None = None,
        store: TranscriptStore | None = None,
    ):
        self.gateway = gateway if gateway is not None else get_gateway()
        self.store = store if store is not None else TranscriptStore()
        self.registry = SessionRegistry(self.gateway)

    def list_sessions(self, session_filter: SessionFilter | None = None) -> OperationResult[SessionList]:
        try:
            with start_span("sessions.list"):
                data = self.registry.list_sessions(session_filter)
        except SessionError as exc:
            return _failure(exc)
        return OperationResult(success=True, data=data)

    def query_sessions(
        self,
        session_type: str | None = None,
        model: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> OperationResult[SessionList]:
        """Build a filter from raw query values, rejecting unknown session types."""
        try:
            _require(validate_session_type(session_type))
        except ValidationError as exc:
            return _failure(exc)
        session_filter = SessionFilter(type=session_type, model=model, limit=limit, offset=offset)
        return self.list_sessions(session_filter)

    def get_session_stats(self) -> OperationResult[SessionStats]:
        try:
            data = self.registry.stats()
        except SessionError as exc:
            return _failure(exc)
        return OperationResult(success=True, data=data)

    def _load_transcript(self, session_id: str) -> TranscriptParseResult:
        _require(validate_session_id(session_id))
        started = time.perf_counter()
        outcome = "error"
        try:
            with start_span("sessions.transcript", {"session_id": session_id}):
                parsed = reconstruct_transcript(self.store.read_lines(session_id))
            outcome = "success"
            return parsed
        except SessionError as exc:
            outcome = exc.kind
            raise
        finally:
            record_transcript_read(
                outcome,
                (time.perf_counter() - started) * 1000,
                skipped_lines=parsed.skipped_lines if outcome == "success" else 0,
            )

    def get_session(self, session_id: str) -> OperationResult[SessionWithMessages]:
        warnings: list[str] = []
        try:
            parsed = self._load_transcript(session_id)
        except SessionError as exc:
            return _failure(exc)

        if parsed.skipped_lines:
            warnings.append(f"Skipped {parsed.skipped_lines} malformed transcript line(s)")

        try:
            session = self.registry.find_by_session_id(session_id)
        except GatewayError as exc:
            warnings.append(f"Session metadata unavailable: {exc.message}")
            session = None

        base = session or default_session(session_id)
        data = SessionWithMessages(
            **base.model_dump(),
            messages=parsed.messages,
            messageCount=len(parsed.messages),
            skippedLines=parsed.skipped_lines,
        )
        return OperationResult(success=True, data=data, warnings=warnings)

    def get_transcript(
        self,
        session_id: str,
        offset: int = 0,
        limit: int = 50,
    ) -> OperationResult[PaginatedResponse[SessionMessage]]:
        try:
            errors: list[str] = []
            if offset < 0:
                errors.append("Offset must be non-negative")
            if limit < 1:
                errors.append("Limit must be positive")
            if errors:
                raise ValidationError(errors)
            parsed = self._load_transcript(session_id)
        except SessionError as exc:
            return _failure(exc)

        total = len(parsed.messages)
        page = PaginatedResponse[SessionMessage](
            items=parsed.messages[offset:offset + limit],
            total=total,
            offset=offset,
            limit=limit,
            hasMore=offset + limit < total,
        )
        warnings = [f"Skipped {parsed.skipped_lines} malformed transcript line(s)"] if parsed.skipped_lines else []
        return OperationResult(success=True, data=page, warnings=warnings)

    def change_model(self, session_key: str, new_model: str) -> OperationResult:
        try:
            _require(validate_session_key(session_key), validate_model(new_model))
            self.gateway.change_model(session_key, new_model.strip())
        except SessionError as exc:
            return _failure(exc)
        logger.info("Changed model for %s to %s", session_key, new_model.strip())
        return OperationResult(success=True)

    def archive_session(self, session_key: str) -> OperationResult:
        try:
            _require(validate_session_key(session_key))
            self.gateway.archive_session(session_key)
        except SessionError as exc:
            return _failure(exc)
        logger.info("Archived session %s", session_key)
        return OperationResult(success=True)
