"""Pydantic models matching the dashboard's TypeScript session types."""
from __future__ import annotations

from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

SessionType = Literal["main", "cron", "subagent", "direct", "unknown"]
MessageType = Literal["user", "assistant", "tool_use", "tool_result", "model_change", "system"]


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int
    hasMore: bool = False


class OperationResult(BaseModel, Generic[T]):
    """Success/error envelope returned by every session operation."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    errorKind: Optional[str] = None  # "validation" | "not_found" | "gateway"
    warnings: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


# ── Session-related models ──────────────────────────────────────────

class SessionKeyInfo(BaseModel):
    type: SessionType
    typeLabel: str
    typeEmoji: str
    cronJobId: Optional[str] = None
    subagentId: Optional[str] = None
    isRunEntry: bool = False


class Session(BaseModel):
    id: str
    key: str
    type: SessionType
    typeLabel: str
    typeEmoji: str
    sessionId: Optional[str] = None
    cronJobId: Optional[str] = None
    subagentId: Optional[str] = None
    updatedAt: int = 0
    ageMs: int = 0
    model: str = "unknown"
    modelProvider: str = "anthropic"
    inputTokens: int = 0
    outputTokens: int = 0
    totalTokens: int = 0
    contextTokens: int = 0
    contextUsedPercent: Optional[int] = None
    aborted: bool = False


class SessionMessage(BaseModel):
    id: str
    type: MessageType
    role: Optional[str] = None
    content: str = ""
    timestamp: str
    model: Optional[str] = None
    toolName: Optional[str] = None


class SessionWithMessages(Session):
    messages: list[SessionMessage] = Field(default_factory=list)
    messageCount: int = 0
    skippedLines: int = 0


class SessionFilter(BaseModel):
    type: Optional[SessionType] = None
    model: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


class SessionList(BaseModel):
    sessions: list[Session] = Field(default_factory=list)
    total: int = 0


class SessionStats(BaseModel):
    total: int = 0
    byType: dict[str, int] = Field(default_factory=dict)
    byModel: dict[str, int] = Field(default_factory=dict)
    totalTokens: int = 0
    avgTokensPerSession: float = 0.0
    abortedCount: int = 0


class ModelChangeRequest(BaseModel):
    model: str = ""
