"""System endpoints -- health, generative toggle, greeting, risk table, knowledge documents."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Path
from fastapi.responses import JSONResponse

from hydroguard.routes import error_response

router = APIRouter(prefix="/api", tags=["system"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
def health() -> dict:
    """Service health, breaker state, and loaded knowledge documents."""
    from hydroguard.knowledge.base import KnowledgeBase
    from hydroguard.llm.client import GenerativeBackend
    from hydroguard.state import AvailabilityTracker

    kb = KnowledgeBase.get()
    breaker = AvailabilityTracker.get().snapshot()
    enabled = breaker["enabled"]
    return {
        "status": "healthy",
        "system_status": kb.lookup("fallback-data", "api", "health", "status", default="operational"),
        "generative_configured": GenerativeBackend.get().configured,
        "generative_enabled": enabled,
        "quota_errors": breaker["consecutive_quota_failures"],
        "knowledge_documents_loaded": len(kb),
        "knowledge_documents": kb.names,
        "mode": breaker["mode"],
        "message": (
            "Generative backend enabled (falls back to the knowledge base if needed)"
            if enabled else "Using knowledge-base fallback responses"
        ),
        "timestamp": _timestamp(),
    }


@router.post("/toggle-generative")
def toggle_generative() -> dict:
    """Flip the generative backend on/off and clear the quota failure count."""
    from hydroguard.state import AvailabilityTracker

    state = AvailabilityTracker.get().toggle()
    return {
        "generative_enabled": state["enabled"],
        "consecutive_quota_failures": state["consecutive_quota_failures"],
        "message": (
            "Generative backend re-enabled" if state["enabled"]
            else "Generative backend disabled (using knowledge-base fallback)"
        ),
        "timestamp": _timestamp(),
    }


@router.get("/greeting")
def greeting() -> dict:
    """Time-of-day greeting from the knowledge base."""
    from hydroguard.intelligence.responder import pick_greeting
    from hydroguard.knowledge.base import KnowledgeBase

    now = datetime.now()
    time_of_day, text = pick_greeting(KnowledgeBase.get(), now)
    return {
        "greeting": text,
        "time_of_day": time_of_day,
        "hour": now.hour,
        "timestamp": _timestamp(),
    }


@router.get("/flood-risk-levels", response_model=None)
def flood_risk_levels() -> dict | JSONResponse:
    """Full flood-risk level table."""
    from hydroguard.knowledge.base import KnowledgeBase

    levels = KnowledgeBase.get().lookup("fallback-data", "flood_risk", "levels")
    if not isinstance(levels, dict) or not levels:
        return error_response(404, "Flood risk data not available")
    return {
        "levels": levels,
        "count": len(levels),
        "timestamp": _timestamp(),
    }


@router.get("/knowledge/{document}", response_model=None)
def knowledge_document(document: str = Path(max_length=128)) -> dict | JSONResponse:
    """Raw contents of one loaded knowledge document."""
    from hydroguard.knowledge.base import KnowledgeBase

    kb = KnowledgeBase.get()
    if document not in kb:
        return error_response(
            404,
            f"Document {document} not found or not loaded",
            available_documents=kb.names,
        )
    return {
        "document": document,
        "data": kb.document(document),
        "timestamp": _timestamp(),
    }
