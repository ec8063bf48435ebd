"""API router for session listing, transcript detail, and session mutations."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from backend.models import (
    ModelChangeRequest,
    OperationResult,
    PaginatedResponse,
    SessionList,
    SessionMessage,
    SessionStats,
    SessionWithMessages,
)
from backend.services.sessions import SessionService

_STATUS_BY_ERROR_KIND = {
    "validation": 400,
    "not_found": 404,
    "gateway": 502,
}


def get_session_service() -> SessionService:
    return SessionService()


def _respond(result: OperationResult, response: Response) -> OperationResult:
    if not result.success:
        response.status_code = _STATUS_BY_ERROR_KIND.get(result.errorKind or "", 500)
    return result


# ── Sessions router ─────────────────────────────────────────────────

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@sessions_router.get("", response_model=OperationResult[SessionList])
def list_sessions(
    response: Response,
    type: str | None = Query(None, description="Filter by session type"),
    model: str | None = Query(None, description="Filter by model name (partial match)"),
    limit: int | None = Query(None, description="Maximum sessions to return"),
    offset: int | None = Query(None, description="Sessions to skip after sorting"),
    service: SessionService = Depends(get_session_service),
):
    """Return user-visible sessions, newest first."""
    return _respond(service.query_sessions(type, model=model, limit=limit, offset=offset), response)


@sessions_router.get("/stats", response_model=OperationResult[SessionStats])
def session_stats(response: Response, service: SessionService = Depends(get_session_service)):
    """Aggregate counts by type and model plus token totals."""
    return _respond(service.get_session_stats(), response)


@sessions_router.get("/{session_id}", response_model=OperationResult[SessionWithMessages])
def get_session(session_id: str, response: Response, service: SessionService = Depends(get_session_service)):
    """Return a session's metadata with its reconstructed message timeline."""
    return _respond(service.get_session(session_id), response)


@sessions_router.get("/{session_id}/transcript", response_model=OperationResult[PaginatedResponse[SessionMessage]])
def get_transcript(
    session_id: str,
    response: Response,
    offset: int = Query(0, description="Messages to skip"),
    limit: int = Query(50, description="Page size"),
    service: SessionService = Depends(get_session_service),
):
    """Return one page of a session's reconstructed messages."""
    return _respond(service.get_transcript(session_id, offset=offset, limit=limit), response)


@sessions_router.patch("/{session_key}/model", response_model=OperationResult)
def change_model(
    session_key: str,
    body: ModelChangeRequest,
    response: Response,
    service: SessionService = Depends(get_session_service),
):
    """Switch the active model of a session."""
    return _respond(service.change_model(session_key, body.model), response)


@sessions_router.post("/{session_key}/archive", response_model=OperationResult)
def archive_session(session_key: str, response: Response, service: SessionService = Depends(get_session_service)):
    """Archive a session."""
    return _respond(service.archive_session(session_key), response)
