"""OpenClaw session dashboard FastAPI backend — main application entry point."""
from __future__ import annotations

import logging
import shutil
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import config
from backend.routers.sessions import sessions_router
from backend.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("openclaw_dash")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Session dashboard backend starting up (transcripts=%s)", config.SESSIONS_DIR)
    initialize_observability(app)
    if shutil.which(config.OPENCLAW_BIN) is None:
        logger.warning("Runtime CLI %r not found on PATH; session listing will fail", config.OPENCLAW_BIN)

    yield

    logger.info("Session dashboard backend shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="OpenClaw Session Dashboard API",
    description="Session registry, transcript reconstruction and session mutations for the operator dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS — allow the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "sessionsDir": str(config.SESSIONS_DIR),
        "sessionsDirExists": config.SESSIONS_DIR.is_dir(),
        "cli": "available" if shutil.which(config.OPENCLAW_BIN) else "missing",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host=config.HOST, port=config.PORT)
