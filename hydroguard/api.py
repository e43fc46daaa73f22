"""HydroGuard REST API -- chat, analysis, and introspection endpoints.

FastAPI application wiring the hybrid responder (generative backend with
knowledge-base fallback) to HTTP. Served on localhost:3001 by default.
"""

from __future__ import annotations

import platform
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hydroguard import __version__
from hydroguard.config.loader import get_config
from hydroguard.log import logger
from hydroguard.routes import error_response

_start_time: float = 0.0


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

def _on_startup() -> None:
    """Load the knowledge base and report the generative backend configuration."""
    global _start_time
    _start_time = time.time()

    from hydroguard.knowledge.base import KnowledgeBase
    from hydroguard.llm.client import GenerativeBackend

    kb = KnowledgeBase.get()
    backend = GenerativeBackend.get()
    logger.info(
        "HydroGuard v%s started: %d knowledge documents, generative backend %s (model=%s)",
        __version__,
        len(kb),
        "configured" if backend.configured else "not configured",
        backend.model,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    _on_startup()
    yield
    logger.info("HydroGuard stopped")


# ---------------------------------------------------------------------------
# App creation + router mounting
# ---------------------------------------------------------------------------

app = FastAPI(
    title="HydroGuard",
    description="Flood-monitoring assistant -- generative answers with knowledge-base fallback",
    version=__version__,
    lifespan=_lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().get("cors", {}).get("allow_origins", ["*"]),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

from hydroguard.routes.chat import router as chat_router
from hydroguard.routes.system import router as system_router

app.include_router(chat_router)
app.include_router(system_router)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return structured JSON instead of HTML 500."""
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return error_response(500, "Internal server error")


@app.exception_handler(404)
async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(404, "Not found", f"{request.url.path} does not exist")


# ---------------------------------------------------------------------------
# Core endpoints
# ---------------------------------------------------------------------------

@app.get("/status")
def status() -> dict:
    return {
        "service": "hydroguard",
        "version": __version__,
        "hostname": platform.node(),
        "python_version": platform.python_version(),
        "uptime_seconds": round(time.time() - _start_time, 1) if _start_time else 0.0,
    }
