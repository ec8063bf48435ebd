"""Read per-session JSONL transcripts and rebuild their message timeline."""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from backend import config
from backend.date_utils import now_iso
from backend.errors import NotFoundError
from backend.models import SessionMessage

logger = logging.getLogger("openclaw_dash.transcripts")


class TranscriptStore:
    """Locates `<sessionId>.jsonl` files under a content root."""

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root) if root is not None else config.SESSIONS_DIR

    def path_for(self, session_id: str) -> Path:
        return self.root / f"{session_id}.jsonl"

    def exists(self, session_id: str) -> bool:
        return self.path_for(session_id).is_file()

    def read_lines(self, session_id: str) -> list[str]:
        path = self.path_for(session_id)
        if not path.is_file():
            raise NotFoundError("Session not found")
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError as exc:
            raise NotFoundError("Session not found") from exc
        return text.splitlines()


@dataclass
class TranscriptParseResult:
    messages: list[SessionMessage] = field(default_factory=list)
    skipped_lines: int = 0
    models_seen: list[str] = field(default_factory=list)


def _text_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _join_sub_blocks(blocks: list[Any]) -> str:
    chunks: list[str] = []
    for block in blocks:
        if isinstance(block, dict):
            chunks.append(_text_or_empty(block.get("text")))
        elif isinstance(block, str):
            chunks.append(block)
    return "\n".join(chunks)


def _tool_result_text(block: dict[str, Any]) -> str:
    for field_name in ("text", "content"):
        value = block.get(field_name)
        if isinstance(value, list):
            return _join_sub_blocks(value)
        if isinstance(value, str) and value:
            return value
    return ""


def _tool_call_signature(name: str, tool_input: Any) -> str:
    if tool_input is None or (not tool_input and not isinstance(tool_input, (dict, list))):
        return f"{name}()"
    try:
        encoded = json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        encoded = str(tool_input)
    return f"{name}({encoded[:config.TOOL_USE_ARGS_MAX_CHARS]})"


def _model_from_change(event: dict[str, Any]) -> str:
    for field_name in ("modelId", "model"):
        value = event.get(field_name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _event_timestamp(event: dict[str, Any], default: str) -> str:
    value = event.get("timestamp")
    if isinstance(value, str) and value.strip():
        return value
    return default


def reconstruct_transcript(lines: Iterable[str], now: str | None = None) -> TranscriptParseResult:
    """Turn raw transcript lines into ordered timeline entries.

    Lines that are not JSON objects are counted in ``skipped_lines`` and
    otherwise ignored. ``model_change`` events move the model cursor that
    stamps every later entry; only ``message`` events produce entries.
    """
    result = TranscriptParseResult()
    default_ts = now or now_iso()
    current_model = ""

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            result.skipped_lines += 1
            continue
        if not isinstance(event, dict):
            result.skipped_lines += 1
            continue

        event_type = event.get("type")
        if event_type == "model_change":
            changed = _model_from_change(event)
            if changed:
                current_model = changed
                if changed not in result.models_seen:
                    result.models_seen.append(changed)
            continue

        message = event.get("message")
        if event_type != "message" or not isinstance(message, dict):
            continue

        role = _text_or_empty(message.get("role")) or None
        speaker_type = "user" if role == "user" else "assistant"
        timestamp = _event_timestamp(event, default_ts)
        model = current_model or None
        event_id = _text_or_empty(event.get("id"))
        base_id = event_id or uuid.uuid4().hex[:12]
        content = message.get("content")

        if isinstance(content, str):
            result.messages.append(SessionMessage(
                id=base_id,
                type=speaker_type,
                role=role,
                content=content,
                timestamp=timestamp,
                model=model,
            ))
            continue
        if not isinstance(content, list):
            continue

        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "text":
                text = _text_or_empty(block.get("text"))
                if not text:
                    continue
                result.messages.append(SessionMessage(
                    id=f"{base_id}-text",
                    type=speaker_type,
                    role=role,
                    content=text,
                    timestamp=timestamp,
                    model=model,
                ))
            elif block_type == "tool_use":
                name = _text_or_empty(block.get("name"))
                if not name:
                    continue
                result.messages.append(SessionMessage(
                    id=_text_or_empty(block.get("id")) or f"{base_id}-tool",
                    type="tool_use",
                    role=role,
                    content=_tool_call_signature(name, block.get("input")),
                    timestamp=timestamp,
                    model=model,
                    toolName=name,
                ))
            elif block_type == "tool_result":
                result.messages.append(SessionMessage(
                    id=f"{base_id}-result",
                    type="tool_result",
                    role=role,
                    content=_tool_result_text(block)[:config.TOOL_RESULT_MAX_CHARS],
                    timestamp=timestamp,
                    model=model,
                ))

    if result.skipped_lines:
        logger.warning("Skipped %d malformed transcript line(s)", result.skipped_lines)
    return result
