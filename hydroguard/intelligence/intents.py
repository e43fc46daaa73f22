"""Intent detection for the knowledge-base responder.

Plain case-insensitive substring rules, evaluated in a fixed order. The first
matching rule wins, so "hi" inside "this" still counts as a greeting.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable


class IntentCategory(str, Enum):
    GREETING = "greeting"
    WATER_LEVEL = "water_level"
    FLOOD_RISK = "flood_risk"
    SENSOR_STATUS = "sensor_status"
    EMERGENCY = "emergency"
    REPORT = "report"
    EVACUATION = "evacuation"
    WEATHER = "weather"
    DEFAULT = "default"


def _any_of(*words: str) -> Callable[[str], bool]:
    return lambda msg: any(word in msg for word in words)


# ---------------------------------------------------------------------------
# Rules -- order is part of the contract, do not reorder
# ---------------------------------------------------------------------------

_INTENT_RULES: list[tuple[IntentCategory, Callable[[str], bool]]] = [
    (IntentCategory.GREETING, _any_of("hello", "hi", "good morning", "good evening")),
    (IntentCategory.WATER_LEVEL, lambda msg: ("water" in msg and "level" in msg) or "water level" in msg),
    (IntentCategory.FLOOD_RISK, lambda msg: "flood" in msg and ("risk" in msg or "probability" in msg)),
    (IntentCategory.SENSOR_STATUS, _any_of("sensor", "status", "network")),
    (IntentCategory.EMERGENCY, _any_of("emergency", "alert", "urgent")),
    (IntentCategory.REPORT, _any_of("report", "analysis", "analyze")),
    (IntentCategory.EVACUATION, _any_of("evacuation", "evacuate", "shelter")),
    (IntentCategory.WEATHER, _any_of("weather", "rain", "storm")),
]


def classify(message: str) -> IntentCategory:
    """Return the first matching intent, or DEFAULT."""
    msg = message.lower()
    for category, matches in _INTENT_RULES:
        if matches(msg):
            return category
    return IntentCategory.DEFAULT
