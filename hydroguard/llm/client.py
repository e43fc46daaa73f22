"""Generative backend -- OpenAI chat completions with failure classification.

The orchestrator treats this as an opaque remote call. Failures are mapped
onto two exceptions:

    QuotaExceeded    billing / rate-limit refusals (drive the breaker)
    GenerativeError  everything else (network, auth, bad response, ...)

Usage:
    backend = GenerativeBackend.get()
    text = backend.complete(system_prompt, prior_turns, "Is the river rising?")
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any

import openai
from openai import OpenAI

from hydroguard.config.loader import get_generative_config
from hydroguard.log import logger

_QUOTA_MARKERS = ("429", "quota", "billing")


class GenerativeError(Exception):
    """The generative backend failed for a reason other than quota."""


class QuotaExceeded(GenerativeError):
    """The generative backend refused the call for billing or rate-limit reasons."""


def is_quota_error(exc: BaseException) -> bool:
    """True for rate-limit / billing refusals, by type, status code, or message."""
    if isinstance(exc, openai.RateLimitError):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _QUOTA_MARKERS)


class GenerativeBackend:
    """Singleton wrapper around the OpenAI chat completions API."""

    _instance: GenerativeBackend | None = None
    _lock = threading.Lock()

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: Any = None,
    ) -> None:
        cfg = get_generative_config()
        self._api_key = api_key if api_key is not None else os.environ.get("OPENAI_API_KEY", "")
        self._model = model or cfg.get("model", "gpt-3.5-turbo")
        self._timeout = float(timeout or cfg.get("timeout_seconds", 20))
        self._temperature = temperature if temperature is not None else cfg.get("temperature", 0.7)
        self._max_tokens = max_tokens or cfg.get("chat_max_tokens", 500)
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def get(cls) -> "GenerativeBackend":
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> Any:
        with self._client_lock:
            if self._client is None:
                # max_retries=0: a retried 429 would hide quota failures from the breaker
                self._client = OpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
            return self._client

    def complete(
        self,
        system_prompt: str,
        prior_turns: list[dict] | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> str:
        """Run one chat completion and return the assistant text.

        Raises:
            QuotaExceeded: billing / rate-limit refusal.
            GenerativeError: any other failure, including a missing API key.
        """
        if not self.configured:
            raise GenerativeError("Generative backend not configured (OPENAI_API_KEY is not set)")

        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(_clean_turns(prior_turns))
        messages.append({"role": "user", "content": user_message})

        try:
            completion = self._get_client().chat.completions.create(
                model=self._model,
                messages=messages,
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as exc:
            if is_quota_error(exc):
                raise QuotaExceeded(str(exc)) from exc
            raise GenerativeError(str(exc) or type(exc).__name__) from exc

        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise GenerativeError(f"Malformed completion response: {exc}") from exc
        if not content:
            raise GenerativeError("Empty completion response")
        logger.debug("Generative completion succeeded (model=%s, %d chars)", self._model, len(content))
        return content


def _clean_turns(prior_turns: list[dict] | None) -> list[dict]:
    """Keep only well-formed {role, content} turns."""
    cleaned = []
    for turn in prior_turns or []:
        if not isinstance(turn, dict):
            continue
        role = turn.get("role")
        content = turn.get("content")
        if role in ("system", "user", "assistant") and isinstance(content, str):
            cleaned.append({"role": role, "content": content})
    return cleaned


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------

def _dump(value: Any) -> str:
    return json.dumps(value, default=str) if value is not None else "null"


def build_chat_system_prompt(kb: Any) -> str:
    return (
        "You are HydroGuard AI, a water monitoring assistant. Use this system information:\n\n"
        f"Alert Levels: {_dump(kb.lookup('alerts', 'alert_levels'))}\n"
        f"Flood Risks: {_dump(kb.lookup('fallback-data', 'flood_risk', 'levels'))}\n"
        f"Sensor Status: {_dump(kb.lookup('sensor-status', 'sensors'))}\n\n"
        "Help users with water level data, flood predictions, and sensor information. "
        "Keep responses concise and helpful, referencing system protocols when appropriate."
    )


def build_analysis_system_prompt(kb: Any) -> str:
    return (
        "You are a water monitoring expert. Use this flood risk framework:\n\n"
        f"Risk Levels: {_dump(kb.lookup('fallback-data', 'flood_risk', 'levels'))}\n"
        f"Response Protocols: {_dump(kb.lookup('alerts', 'response_protocols'))}\n"
        f"Report Templates: {_dump(kb.lookup('reports', 'templates', 'daily_report', 'sections'))}\n\n"
        "Analyze the provided sensor data and provide insights about water levels, "
        "potential risks, and recommendations based on our protocols."
    )


def build_analysis_user_prompt(metrics: list | None, sensors: list | None) -> str:
    return (
        "Analyze this water monitoring data:\n"
        f"Metrics: {_dump(metrics or [])}\n"
        f"Sensors: {_dump(sensors or [])}\n\n"
        "Provide insights on:\n"
        "1. Current water conditions\n"
        "2. Potential flood risks\n"
        "3. Recommendations for monitoring\n"
        "4. Any alerts needed"
    )
