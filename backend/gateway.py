"""Command gateway around the agent runtime CLI.

All process spawning for the session subsystem happens here. Business logic
depends on the ``CommandGateway`` protocol so tests can inject a fake.
"""
from __future__ import annotations

import json
import logging
import subprocess
import threading
import time
from typing import Any, Protocol

from backend import config
from backend.errors import GatewayError
from backend.observability import record_gateway_call, start_span

logger = logging.getLogger("openclaw_dash.gateway")

_STDERR_TAIL_CHARS = 400


class CommandGateway(Protocol):
    def list_sessions(self) -> list[dict[str, Any]]:
        ...

    def change_model(self, session_key: str, model: str) -> None:
        ...

    def archive_session(self, session_key: str) -> None:
        ...


def _stderr_tail(stderr: str | None) -> str:
    text = (stderr or "").strip()
    if len(text) > _STDERR_TAIL_CHARS:
        text = text[-_STDERR_TAIL_CHARS:]
    return text


class CliCommandGateway:
    """Runs the runtime CLI synchronously with a timeout and a spawn bound."""

    def __init__(
        self,
        binary: str | None = None,
        timeout_seconds: float | None = None,
        max_concurrency: int | None = None,
    ):
        self.binary = binary or config.OPENCLAW_BIN
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else config.GATEWAY_TIMEOUT_SECONDS
        self._slots = threading.BoundedSemaphore(max(1, max_concurrency or config.GATEWAY_MAX_CONCURRENCY))

    def _run(self, *args: str) -> str:
        cmd = [self.binary, *args]
        command_name = " ".join(args[:2])
        logger.debug("Running gateway command: %s", cmd)
        started = time.perf_counter()
        result = "error"
        try:
            with self._slots, start_span("gateway.command", {"command": command_name}):
                try:
                    completed = subprocess.run(
                        cmd,
                        capture_output=True,
                        text=True,
                        timeout=self.timeout_seconds,
                        check=False,
                    )
                except FileNotFoundError as exc:
                    raise GatewayError(f"Command not found: {self.binary}") from exc
                except subprocess.TimeoutExpired as exc:
                    result = "timeout"
                    raise GatewayError(
                        f"Command timed out after {self.timeout_seconds:g}s: {command_name}"
                    ) from exc
                except OSError as exc:
                    raise GatewayError(f"Failed to run {self.binary}: {exc}") from exc

            if completed.returncode != 0:
                detail = _stderr_tail(completed.stderr)
                message = f"Command failed with exit code {completed.returncode}: {command_name}"
                if detail:
                    message = f"{message}: {detail}"
                raise GatewayError(message)
            result = "success"
            return completed.stdout or ""
        except GatewayError as exc:
            logger.warning("Gateway command failed: %s", exc)
            raise
        finally:
            record_gateway_call(command_name, result, (time.perf_counter() - started) * 1000)

    def list_sessions(self) -> list[dict[str, Any]]:
        output = self._run("sessions", "list", "--json")
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise GatewayError(f"Invalid JSON from sessions list: {exc}") from exc
        if not isinstance(payload, dict):
            raise GatewayError("Unexpected sessions list payload: expected an object")
        sessions = payload.get("sessions", [])
        if not isinstance(sessions, list):
            raise GatewayError("Unexpected sessions list payload: 'sessions' is not a list")
        return [item for item in sessions if isinstance(item, dict)]

    def change_model(self, session_key: str, model: str) -> None:
        self._run("session", "model", session_key, model)

    def archive_session(self, session_key: str) -> None:
        self._run("session", "archive", session_key)


_default_gateway: CliCommandGateway | None = None
_default_lock = threading.Lock()


def get_gateway() -> CliCommandGateway:
    """Return the process-wide gateway built from config."""
    global _default_gateway
    with _default_lock:
        if _default_gateway is None:
            _default_gateway = CliCommandGateway()
        return _default_gateway
