"""Shared fixtures for the HydroGuard test suite."""

import pytest
from fastapi.testclient import TestClient


# ---------------------------------------------------------------------------
# All singleton classes that have a .reset() classmethod.
# Reset around every test so breaker state never leaks between tests.
# ---------------------------------------------------------------------------

_SINGLETON_CLASSES = [
    "hydroguard.state.AvailabilityTracker",
    "hydroguard.knowledge.base.KnowledgeBase",
    "hydroguard.llm.client.GenerativeBackend",
]


def _reset_all_singletons():
    """Reset every singleton that has been imported."""
    import importlib
    for path in _SINGLETON_CLASSES:
        module_path, class_name = path.rsplit(".", 1)
        try:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, class_name, None)
            if cls is not None and hasattr(cls, "reset"):
                cls.reset()
        except (ImportError, AttributeError):
            pass


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch, tmp_path):
    """No real API key, fresh config and singletons for every test."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("HYDROGUARD_CONFIG", str(tmp_path / "no-user-config.json"))
    for var in ("HYDROGUARD_MODEL", "HYDROGUARD_TIMEOUT", "HYDROGUARD_RESOURCE_DIR", "HYDROGUARD_FALLBACK_DIR"):
        monkeypatch.delenv(var, raising=False)

    from hydroguard.config.loader import reset_config
    reset_config()
    _reset_all_singletons()
    yield
    _reset_all_singletons()
    reset_config()


SAMPLE_DOCUMENTS = {
    "alerts": {
        "alert_levels": {
            "info": {"level": "Information", "template": "INFO: {{message}}"},
            "warning": {"level": "Warning", "template": "WARNING: {{message}}"},
        },
        "response_protocols": {
            "level2": {
                "name": "Enhanced Monitoring",
                "actions": ["Increase sensor frequency", "Send email alerts", "Notify duty officer"],
            },
        },
        "evacuation_messages": {"prepare": "PREPARE TO EVACUATE: gather essentials"},
        "alert_types": {"weather": {"heavy_rain": "Heavy rain expected upstream"}},
    },
    "fallback-data": {
        "api": {"health": {"system": "HydroGuard Test Rig", "status": "operational"}},
        "sensor": {
            "readings": {"normal": "Reading within normal band"},
            "status": {"online": "Sensor online"},
        },
        "flood_risk": {
            "levels": {
                "low": {
                    "level": "Low",
                    "probability": "10%",
                    "description": "calm",
                    "icon": "green",
                    "actions": ["watch", "log"],
                },
                "moderate": {
                    "level": "Moderate",
                    "probability": "40%",
                    "description": "desc",
                    "icon": "yellow",
                    "actions": ["a", "b", "c", "d"],
                },
            },
        },
    },
    "reports": {
        "templates": {
            "daily_report": {
                "title": "Daily Report",
                "sections": [{"name": "Levels"}, {"name": "Risk"}, {"name": "Sensors"}, {"name": "Incidents"}],
            },
        },
    },
    "greetings": {
        "time_based": {
            "morning": ["Morning! Risk: {{riskLevel}}"],
            "afternoon": ["Afternoon! System {{status}}"],
            "evening": ["Evening! Sensors {{sensorStatus}}"],
            "night": ["Night! Risk: {{riskLevel}}"],
        },
    },
    "sensor-status": {
        "network": {"gateway": {"online": "Gateway up"}},
        "sensors": {"water_level": {"operational": "All water sensors fine", "units": "mm"}},
    },
}


@pytest.fixture
def sample_kb():
    """Knowledge base with small, known documents, installed as the process-wide instance."""
    import copy
    from hydroguard.knowledge.base import KnowledgeBase
    kb = KnowledgeBase(copy.deepcopy(SAMPLE_DOCUMENTS))
    KnowledgeBase.install(kb)
    return kb


@pytest.fixture
def empty_kb():
    from hydroguard.knowledge.base import KnowledgeBase
    kb = KnowledgeBase({})
    KnowledgeBase.install(kb)
    return kb


@pytest.fixture
def client(sample_kb):
    """FastAPI TestClient backed by the HydroGuard app."""
    from hydroguard.api import app
    return TestClient(app)
