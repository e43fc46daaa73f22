"""Response orchestrator -- generative first, knowledge-base fallback always.

Chat flow:
    breaker enabled?  -> try generative backend
        success       -> source=generative, failure count reset
        quota failure -> count it (may disable the backend), fall back
        other failure -> fall back, breaker untouched
    breaker disabled  -> fall back directly
    fallback          -> classify + render, source=fallback-json

Any fault inside that sequence still produces text: the message is dropped
and the default answer is rendered (source=fallback-json-error). Callers
never see an exception from here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from hydroguard.config.loader import get_generative_config
from hydroguard.intelligence.intents import IntentCategory, classify
from hydroguard.intelligence.responder import DATA_SOURCES, emergency_notice, render, render_analysis
from hydroguard.knowledge.base import KnowledgeBase
from hydroguard.llm.client import (
    GenerativeBackend,
    QuotaExceeded,
    build_analysis_system_prompt,
    build_analysis_user_prompt,
    build_chat_system_prompt,
)
from hydroguard.log import logger
from hydroguard.state import AvailabilityTracker

SOURCE_GENERATIVE = "generative"
SOURCE_FALLBACK = "fallback-json"
SOURCE_FALLBACK_ERROR = "fallback-json-error"
SOURCE_EMERGENCY = "emergency-fallback"

QUOTA_ERROR_MESSAGE = "Generative backend quota exceeded, using knowledge-base fallback"
ANALYSIS_DATA_SOURCES = ["fallback-data", "sensor-status", "alerts"]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fallback(message: str, now: datetime | None, kb: KnowledgeBase) -> dict:
    category = classify(message)
    return {
        "response": render(category, message, now=now, kb=kb),
        "source": SOURCE_FALLBACK,
        "intent": category.value,
        "data_source": list(DATA_SOURCES[category]),
        "timestamp": _timestamp(),
    }


def respond_to_chat(
    message: object,
    context: list | None = None,
    *,
    backend: GenerativeBackend | None = None,
    tracker: AvailabilityTracker | None = None,
    kb: KnowledgeBase | None = None,
    now: datetime | None = None,
) -> dict:
    """Answer one chat message.

    Returns:
        {
            "response": str (markdown-formatted, never empty),
            "source": "generative" | "fallback-json" | "fallback-json-error",
            "timestamp": ISO-8601 str,
            "intent": str (fallback only),
            "data_source": list[str] (fallback only),
            "error": str (optional, diagnostics only),
        }
    """
    try:
        tracker = tracker or AvailabilityTracker.get()
        if kb is None:
            kb = KnowledgeBase.get()
        if not isinstance(message, str):
            raise ValueError("message is required and must be a string")

        logger.debug("Chat request: %s", message[:50])

        if not tracker.is_enabled():
            logger.debug("Generative backend disabled, answering from knowledge base")
            return _fallback(message, now, kb)

        backend = backend or GenerativeBackend.get()
        try:
            text = backend.complete(build_chat_system_prompt(kb), context or [], message)
        except QuotaExceeded as exc:
            tracker.record_quota_failure()
            logger.info("Generative quota error: %s", exc)
            result = _fallback(message, now, kb)
            result["error"] = QUOTA_ERROR_MESSAGE
            return result
        except Exception as exc:
            logger.warning("Generative call failed, using knowledge-base fallback: %s", exc)
            result = _fallback(message, now, kb)
            result["error"] = str(exc) or type(exc).__name__
            return result

        tracker.record_success()
        return {
            "response": text,
            "source": SOURCE_GENERATIVE,
            "timestamp": _timestamp(),
        }
    except Exception as exc:
        logger.error("Chat response failed, degrading to default answer: %s", exc, exc_info=True)
        return _error_fallback(exc, now, kb)


def _error_fallback(exc: Exception, now: datetime | None, kb: KnowledgeBase | None) -> dict:
    result = {
        "source": SOURCE_FALLBACK_ERROR,
        "error": str(exc) or type(exc).__name__,
        "timestamp": _timestamp(),
    }
    try:
        category = classify("")
        result["response"] = render(category, "", now=now, kb=kb)
        result["intent"] = category.value
    except Exception:
        logger.error("Default answer failed too, returning emergency notice", exc_info=True)
        result["response"] = emergency_notice(kb)
        result["intent"] = IntentCategory.DEFAULT.value
    return result


def respond_to_analysis(
    metrics: list | None = None,
    sensors: list | None = None,
    *,
    backend: GenerativeBackend | None = None,
    tracker: AvailabilityTracker | None = None,
    kb: KnowledgeBase | None = None,
    now: datetime | None = None,
) -> dict:
    """Analyse water-monitoring data. Breaker is consulted but not updated on this path."""
    try:
        tracker = tracker or AvailabilityTracker.get()
        if kb is None:
            kb = KnowledgeBase.get()
        metrics = metrics if isinstance(metrics, list) else None
        sensors = sensors if isinstance(sensors, list) else None

        if tracker.is_enabled():
            backend = backend or GenerativeBackend.get()
            try:
                text = backend.complete(
                    build_analysis_system_prompt(kb),
                    [],
                    build_analysis_user_prompt(metrics, sensors),
                    max_tokens=int(get_generative_config().get("analysis_max_tokens", 1000)),
                )
                return {
                    "analysis": text,
                    "source": SOURCE_GENERATIVE,
                    "timestamp": _timestamp(),
                }
            except Exception as exc:
                logger.info("Generative analysis failed, using knowledge-base fallback: %s", exc)

        return {
            "analysis": render_analysis(metrics, sensors, now=now, kb=kb),
            "source": SOURCE_FALLBACK,
            "data_source": list(ANALYSIS_DATA_SOURCES),
            "timestamp": _timestamp(),
        }
    except Exception as exc:
        logger.error("Analysis failed, returning emergency notice: %s", exc, exc_info=True)
        return {
            "analysis": emergency_notice(kb),
            "source": SOURCE_EMERGENCY,
            "timestamp": _timestamp(),
        }
