"""OpenClaw session dashboard backend configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Agent runtime layout
OPENCLAW_DIR = Path(os.getenv("OPENCLAW_DIR", "~/.openclaw")).expanduser()
SESSIONS_DIR = Path(
    os.getenv("OPENCLAW_DASH_SESSIONS_DIR", str(OPENCLAW_DIR / "agents" / "main" / "sessions"))
).expanduser()

# External CLI
OPENCLAW_BIN = os.getenv("OPENCLAW_DASH_BIN", "openclaw")
GATEWAY_TIMEOUT_SECONDS = min(15.0, max(1.0, _env_float("OPENCLAW_DASH_GATEWAY_TIMEOUT_SECONDS", 10.0)))
GATEWAY_MAX_CONCURRENCY = max(1, _env_int("OPENCLAW_DASH_GATEWAY_MAX_CONCURRENCY", 4))

# Input validation and transcript rendering limits
SESSION_KEY_PREFIX = os.getenv("OPENCLAW_DASH_SESSION_KEY_PREFIX", "agent:")
MODEL_NAME_MAX_LENGTH = 100
TOOL_USE_ARGS_MAX_CHARS = 200
TOOL_RESULT_MAX_CHARS = 500

# Observability
LOG_LEVEL = os.getenv("OPENCLAW_DASH_LOG_LEVEL", "INFO").upper()
OTEL_ENABLED = _env_bool("OPENCLAW_DASH_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("OPENCLAW_DASH_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("OPENCLAW_DASH_OTEL_SERVICE_NAME", "openclaw-dash-backend")
PROM_PORT = _env_int("OPENCLAW_DASH_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("OPENCLAW_DASH_HOST", "0.0.0.0")
PORT = _env_int("OPENCLAW_DASH_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("OPENCLAW_DASH_FRONTEND_ORIGIN", "http://localhost:3000")
