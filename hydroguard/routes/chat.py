"""Chat and analysis endpoints -- always answer, whatever the body looks like."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field, ValidationError

from hydroguard.log import logger
from hydroguard.routes import read_json_body

router = APIRouter(prefix="/api", tags=["chat"])

_MAX_MESSAGE_CHARS = 10000


class ChatTurn(BaseModel):
    """One prior conversation turn."""
    role: str = Field(..., max_length=32)
    content: str = Field(..., max_length=20000)


class ChatRequest(BaseModel):
    """Chat body. message is required by contract but validated by the orchestrator."""
    message: str | None = Field(default=None, max_length=_MAX_MESSAGE_CHARS)
    context: list[ChatTurn] = Field(default_factory=list, max_length=50)


class AnalysisRequest(BaseModel):
    """Water-data analysis body.

    Both lists hold opaque records. Sensors are kept as sent so that a
    malformed entry counts as inactive instead of discarding the list.
    """
    metrics: list | None = None
    sensors: list | None = None


def _parse_chat(payload: dict) -> ChatRequest:
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as exc:
        logger.debug("Chat body failed validation: %s", exc.errors()[:3])
        message = payload.get("message")
        if isinstance(message, str):
            return ChatRequest(message=message[:_MAX_MESSAGE_CHARS])
        return ChatRequest()


def _parse_analysis(payload: dict) -> AnalysisRequest:
    try:
        return AnalysisRequest.model_validate(payload)
    except ValidationError as exc:
        logger.debug("Analysis body failed validation: %s", exc.errors()[:3])
        metrics = payload.get("metrics")
        sensors = payload.get("sensors")
        return AnalysisRequest(
            metrics=metrics if isinstance(metrics, list) else None,
            sensors=sensors if isinstance(sensors, list) else None,
        )


@router.post("/chat")
async def chat_endpoint(request: Request) -> dict:
    """Answer a flood-monitoring question (generative first, knowledge base as fallback)."""
    from hydroguard.intelligence.orchestrator import respond_to_chat

    body = _parse_chat(await read_json_body(request))
    context = [turn.model_dump() for turn in body.context]
    # Generative call blocks on the network; keep it off the event loop
    return await asyncio.to_thread(respond_to_chat, body.message, context)


@router.post("/analyze-water-data")
async def analyze_water_data(request: Request) -> dict:
    """Analyse metrics and sensor states."""
    from hydroguard.intelligence.orchestrator import respond_to_analysis

    body = _parse_analysis(await read_json_body(request))
    sensors = body.sensors
    logger.debug("Analysis request (%d metrics, %d sensors)", len(body.metrics or []), len(sensors or []))
    return await asyncio.to_thread(respond_to_analysis, body.metrics, sensors)
