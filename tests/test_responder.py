"""Tests for the knowledge-base responder.

Validates time-of-day bucketing, placeholder filling, each intent's layout
against fixture knowledge, and that an empty knowledge base still produces
complete answers from the named defaults.
"""

from datetime import datetime
import random

import pytest

from hydroguard.intelligence.intents import IntentCategory
from hydroguard.intelligence.responder import (
    DEFAULT_GREETING,
    emergency_notice,
    fill_placeholders,
    pick_greeting,
    render,
    time_of_day,
)
from hydroguard.knowledge.base import KnowledgeBase

_MORNING = datetime(2024, 6, 1, 8, 30)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestTimeOfDay:
    @pytest.mark.parametrize("hour,expected", [
        (0, "night"), (4, "night"), (5, "morning"), (11, "morning"),
        (12, "afternoon"), (16, "afternoon"), (17, "evening"), (20, "evening"),
        (21, "night"), (23, "night"),
    ])
    def test_buckets(self, hour, expected):
        assert time_of_day(datetime(2024, 1, 1, hour)) == expected


class TestFillPlaceholders:
    def test_known_tokens(self):
        assert fill_placeholders("Risk {{riskLevel}}", {"riskLevel": "low"}) == "Risk low"

    def test_only_first_occurrence_replaced(self):
        assert fill_placeholders("{{a}}/{{a}}", {"a": "x"}) == "x/{{a}}"

    def test_unknown_token_left_alone(self):
        assert fill_placeholders("{{other}}", {"riskLevel": "low"}) == "{{other}}"


class TestGreeting:
    def test_scenario_morning_greeting(self, sample_kb):
        text = render(IntentCategory.GREETING, "Good morning", now=_MORNING, kb=sample_kb)
        assert text == "Morning! Risk: low"

    @pytest.mark.parametrize("hour,expected", [
        (14, "Afternoon! System operational"),
        (19, "Evening! Sensors 12/15 active"),
        (2, "Night! Risk: low"),
    ])
    def test_other_buckets(self, sample_kb, hour, expected):
        now = datetime(2024, 6, 1, hour)
        assert render(IntentCategory.GREETING, "hello", now=now, kb=sample_kb) == expected

    def test_random_choice_from_list(self):
        kb = KnowledgeBase({"greetings": {"time_based": {"morning": ["A {{status}}", "B {{status}}"]}}})
        seen = {pick_greeting(kb, _MORNING, rng=random.Random(seed))[1] for seed in range(30)}
        assert seen == {"A operational", "B operational"}

    def test_missing_list_uses_default(self, empty_kb):
        bucket, text = pick_greeting(empty_kb, _MORNING)
        assert bucket == "morning"
        assert "{{" not in text
        assert text == DEFAULT_GREETING.replace("{{riskLevel}}", "low").replace("{{status}}", "operational")

    def test_empty_list_uses_default(self):
        kb = KnowledgeBase({"greetings": {"time_based": {"morning": []}}})
        assert render(IntentCategory.GREETING, "hi", now=_MORNING, kb=kb).startswith("Hello!")


# ---------------------------------------------------------------------------
# Per-intent layouts
# ---------------------------------------------------------------------------

class TestLayouts:
    def test_flood_risk_scenario(self, sample_kb):
        text = render(IntentCategory.FLOOD_RISK, "what is the flood risk probability", now=_MORNING, kb=sample_kb)
        assert "Level: Moderate" in text
        assert "Probability: 40%" in text
        assert "Description: desc" in text
        assert "Recommended Actions: a, b" in text
        assert "a, b, c" not in text

    def test_water_level(self, sample_kb):
        text = render(IntentCategory.WATER_LEVEL, "water level", now=_MORNING, kb=sample_kb)
        assert "Status: Reading within normal band" in text
        assert "Risk Level: Low" in text
        assert "Units: centimeters" in text

    def test_sensor_status(self, sample_kb):
        text = render(IntentCategory.SENSOR_STATUS, "sensor", now=_MORNING, kb=sample_kb)
        assert "Overall: Sensor online" in text
        assert "Network: Gateway up" in text
        assert "Active Sensors: 12/15" in text

    def test_emergency(self, sample_kb):
        text = render(IntentCategory.EMERGENCY, "river breached", now=_MORNING, kb=sample_kb)
        assert "Alert Level: Warning" in text
        assert "Protocol: Enhanced Monitoring" in text
        assert "Actions: Increase sensor frequency, Send email alerts" in text
        assert "Notify duty officer" not in text
        assert "Notice: WARNING: river breached" in text

    def test_report_lists_first_three_sections(self, sample_kb):
        text = render(IntentCategory.REPORT, "report", now=_MORNING, kb=sample_kb)
        assert "Type: Daily Report" in text
        for name in ("Levels", "Risk", "Sensors"):
            assert f"  - {name}" in text
        assert "Incidents" not in text

    def test_evacuation(self, sample_kb):
        text = render(IntentCategory.EVACUATION, "evacuate", now=_MORNING, kb=sample_kb)
        assert "Status: PREPARE TO EVACUATE: gather essentials" in text

    def test_weather(self, sample_kb):
        text = render(IntentCategory.WEATHER, "rain", now=_MORNING, kb=sample_kb)
        assert "Alert: Heavy rain expected upstream" in text

    def test_default_overview(self, sample_kb):
        text = render(IntentCategory.DEFAULT, "", now=_MORNING, kb=sample_kb)
        assert "System: HydroGuard Test Rig" in text
        assert "Current Flood Risk: Low" in text
        assert "I can help you with:" in text


# ---------------------------------------------------------------------------
# Empty / partial knowledge base
# ---------------------------------------------------------------------------

class TestDefaults:
    @pytest.mark.parametrize("category", list(IntentCategory))
    def test_every_category_non_empty_with_empty_kb(self, empty_kb, category):
        text = render(category, "", now=_MORNING, kb=empty_kb)
        assert isinstance(text, str)
        assert text.strip()

    def test_flood_risk_defaults(self, empty_kb):
        text = render(IntentCategory.FLOOD_RISK, "flood risk", now=_MORNING, kb=empty_kb)
        assert "Level: Moderate Risk" in text
        assert "Recommended Actions: Increase monitoring frequency, Alert local authorities" in text

    def test_partial_risk_entry_filled_from_defaults(self):
        kb = KnowledgeBase({"fallback-data": {"flood_risk": {"levels": {"moderate": {"level": "Amber"}}}}})
        text = render(IntentCategory.FLOOD_RISK, "flood risk", now=_MORNING, kb=kb)
        assert "Level: Amber" in text
        assert "Probability: 30-60%" in text

    def test_wrong_types_degrade_to_defaults(self):
        kb = KnowledgeBase({
            "fallback-data": {"sensor": "not a mapping"},
            "reports": {"templates": {"daily_report": {"sections": "nope"}}},
        })
        assert "Overall: Sensor active and transmitting data" in render(IntentCategory.SENSOR_STATUS, "", kb=kb)
        assert "Type: Daily Flood Monitoring Report" in render(IntentCategory.REPORT, "", kb=kb)

    def test_uses_process_wide_kb_when_not_given(self, sample_kb):
        text = render(IntentCategory.WEATHER, "storm", now=_MORNING)
        assert "Heavy rain expected upstream" in text


class TestEmergencyNotice:
    def test_uses_info_template(self, sample_kb):
        assert emergency_notice(sample_kb).startswith("INFO: Water systems operational")

    def test_default_template(self, empty_kb):
        assert emergency_notice(empty_kb) == "INFO: Water systems operational. Continue monitoring as scheduled."
