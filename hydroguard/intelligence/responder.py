"""Knowledge-base responder -- deterministic text for each intent.

Used whenever the generative backend is disabled or fails. Every renderer
pulls its fields from the knowledge base and falls back to a named default
for anything missing, so an empty knowledge base still yields full answers.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable

from hydroguard.intelligence.intents import IntentCategory
from hydroguard.knowledge.base import KnowledgeBase, lookup


# ---------------------------------------------------------------------------
# Named defaults
# ---------------------------------------------------------------------------

DEFAULT_GREETING = "Hello! I'm HydroGuard AI. Flood risk is currently {{riskLevel}} and the system is {{status}}."
DEFAULT_READING = "Normal water level detected"
DEFAULT_SENSOR_ONLINE = "Sensor active and transmitting data"
DEFAULT_GATEWAY_ONLINE = "Gateway communicating with all sensors"
DEFAULT_REPORT_TITLE = "Daily Flood Monitoring Report"
DEFAULT_EVACUATION_PREPARE = "PREPARE TO EVACUATE"
DEFAULT_HEAVY_RAIN = "Heavy rainfall warning"
DEFAULT_SENSORS_OPERATIONAL = "All sensors operational"
DEFAULT_UNITS = "cm"

DEFAULT_RISK_LEVELS: dict[str, dict] = {
    "low": {
        "level": "Low Risk",
        "probability": "0-30%",
        "description": "Water levels are within normal range.",
        "actions": ["Continue routine monitoring", "Review sensor health weekly"],
    },
    "moderate": {
        "level": "Moderate Risk",
        "probability": "30-60%",
        "description": "Water levels are rising and may reach flood stage.",
        "actions": ["Increase monitoring frequency", "Alert local authorities", "Prepare emergency equipment"],
    },
}

DEFAULT_WARNING = {"level": "Warning", "template": "WARNING: {{message}}"}
DEFAULT_INFO = {"level": "Information", "template": "INFO: {{message}}"}
DEFAULT_PROTOCOL = {
    "name": "Enhanced Monitoring",
    "actions": ["Increase sensor frequency", "Send email alerts"],
}
DEFAULT_HEALTH = {"system": "HydroGuard AI - Flood Detection Assistant", "status": "operational"}

# Literal values, not live sensor data
GREETING_PLACEHOLDERS: dict[str, str] = {
    "riskLevel": "low",
    "status": "operational",
    "sensorStatus": "12/15 active",
}

OPERATIONAL_NOTICE = "Water systems operational. Continue monitoring as scheduled."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def time_of_day(now: datetime) -> str:
    hour = now.hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def fill_placeholders(text: str, values: dict[str, str]) -> str:
    """Replace the first {{name}} token for each given name. Unknown tokens are left alone."""
    for name, value in values.items():
        text = text.replace("{{" + name + "}}", value, 1)
    return text


def _text(value: object, default: str) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool) and str(value):
        return str(value)
    return default


def _entry(kb: KnowledgeBase, default: dict, document: str, *path: str) -> dict:
    """Fetch a mapping from the knowledge base, filling missing fields from default."""
    found = kb.lookup(document, *path)
    if not isinstance(found, dict):
        return dict(default)
    merged = dict(default)
    merged.update({k: v for k, v in found.items() if v is not None})
    return merged


def _strings(value: object, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float))][:limit]


def risk_entry(kb: KnowledgeBase, name: str) -> dict:
    """A flood-risk level entry (low, moderate, ...) with defaults filled in."""
    default = DEFAULT_RISK_LEVELS.get(name, DEFAULT_RISK_LEVELS["low"])
    return _entry(kb, default, "fallback-data", "flood_risk", "levels", name)


def pick_greeting(kb: KnowledgeBase, now: datetime, rng: random.Random | None = None) -> tuple[str, str]:
    """Choose a random greeting for the time of day. Returns (time_of_day, greeting)."""
    bucket = time_of_day(now)
    options = [g for g in _strings(kb.lookup("greetings", "time_based", bucket), limit=100) if g]
    greeting = (rng or random).choice(options) if options else DEFAULT_GREETING
    return bucket, fill_placeholders(greeting, GREETING_PLACEHOLDERS)


def emergency_notice(kb: KnowledgeBase | None = None, notice: str = OPERATIONAL_NOTICE) -> str:
    """Last-resort text built from the info alert template."""
    try:
        if kb is None:
            kb = KnowledgeBase.get()
        template = _text(kb.lookup("alerts", "alert_levels", "info", "template"), DEFAULT_INFO["template"])
    except Exception:
        template = DEFAULT_INFO["template"]
    return fill_placeholders(template, {"message": notice})


# ---------------------------------------------------------------------------
# Per-intent renderers
# ---------------------------------------------------------------------------

def _render_greeting(message: str, now: datetime, kb: KnowledgeBase) -> str:
    _, greeting = pick_greeting(kb, now)
    return greeting


def _render_water_level(message: str, now: datetime, kb: KnowledgeBase) -> str:
    reading = _text(kb.lookup("fallback-data", "sensor", "readings", "normal"), DEFAULT_READING)
    risk = risk_entry(kb, "low")
    return "\n".join([
        "**Water Level Status**",
        f"- Status: {reading}",
        f"- Risk Level: {_text(risk.get('level'), DEFAULT_RISK_LEVELS['low']['level'])}",
        "- Units: centimeters",
        "- Action: Continue monitoring",
    ])


def _render_flood_risk(message: str, now: datetime, kb: KnowledgeBase) -> str:
    moderate = risk_entry(kb, "moderate")
    actions = _strings(moderate.get("actions"), limit=2)
    defaults = DEFAULT_RISK_LEVELS["moderate"]
    return "\n".join([
        "**Flood Risk Assessment**",
        f"- Level: {_text(moderate.get('level'), defaults['level'])}",
        f"- Probability: {_text(moderate.get('probability'), defaults['probability'])}",
        f"- Description: {_text(moderate.get('description'), defaults['description'])}",
        f"- Recommended Actions: {', '.join(actions) or 'Continue monitoring'}",
    ])


def _render_sensor_status(message: str, now: datetime, kb: KnowledgeBase) -> str:
    sensor = _text(kb.lookup("fallback-data", "sensor", "status", "online"), DEFAULT_SENSOR_ONLINE)
    network = _text(kb.lookup("sensor-status", "network", "gateway", "online"), DEFAULT_GATEWAY_ONLINE)
    return "\n".join([
        "**Sensor Network Status**",
        f"- Overall: {sensor}",
        f"- Network: {network}",
        "- Active Sensors: 12/15",
        "- Battery Status: Optimal",
    ])


def _render_emergency(message: str, now: datetime, kb: KnowledgeBase) -> str:
    warning = _entry(kb, DEFAULT_WARNING, "alerts", "alert_levels", "warning")
    protocol = _entry(kb, DEFAULT_PROTOCOL, "alerts", "response_protocols", "level2")
    actions = _strings(protocol.get("actions"), limit=2) or DEFAULT_PROTOCOL["actions"]
    template = _text(warning.get("template"), DEFAULT_WARNING["template"])
    return "\n".join([
        "**Emergency Status**",
        f"- Alert Level: {_text(warning.get('level'), DEFAULT_WARNING['level'])}",
        f"- Protocol: {_text(protocol.get('name'), DEFAULT_PROTOCOL['name'])}",
        f"- Actions: {', '.join(actions)}",
        "- Priority: Medium",
        f"- Notice: {fill_placeholders(template, {'message': message.strip() or 'Monitoring in progress'})}",
    ])


def _render_report(message: str, now: datetime, kb: KnowledgeBase) -> str:
    title = _text(kb.lookup("reports", "templates", "daily_report", "title"), DEFAULT_REPORT_TITLE)
    sections = kb.lookup("reports", "templates", "daily_report", "sections", default=[])
    lines = [
        "**Report Available**",
        f"- Type: {title}",
        "- Key Sections:",
    ]
    for section in (sections if isinstance(sections, list) else [])[:3]:
        name = lookup(section, "name")
        if name:
            lines.append(f"  - {name}")
    lines.append("- Status: Ready for generation")
    lines.append("- Format: PDF/Email")
    return "\n".join(lines)


def _render_evacuation(message: str, now: datetime, kb: KnowledgeBase) -> str:
    prepare = _text(kb.lookup("alerts", "evacuation_messages", "prepare"), DEFAULT_EVACUATION_PREPARE)
    return "\n".join([
        "**Evacuation Information**",
        f"- Status: {prepare}",
        "- Shelters: Available in designated areas",
        "- Routes: Follow marked evacuation signs",
        "- Contacts: Emergency services",
    ])


def _render_weather(message: str, now: datetime, kb: KnowledgeBase) -> str:
    alert = _text(kb.lookup("alerts", "alert_types", "weather", "heavy_rain"), DEFAULT_HEAVY_RAIN)
    return "\n".join([
        "**Weather Monitoring**",
        f"- Alert: {alert}",
        "- Status: Monitoring active",
        "- Risk: Moderate",
        "- Recommendation: Stay informed",
    ])


def _render_default(message: str, now: datetime, kb: KnowledgeBase) -> str:
    health = _entry(kb, DEFAULT_HEALTH, "fallback-data", "api", "health")
    low = risk_entry(kb, "low")
    return "\n".join([
        "**HydroGuard AI - Flood Monitoring System**",
        "",
        f"- System: {_text(health.get('system'), DEFAULT_HEALTH['system'])}",
        f"- Status: {_text(health.get('status'), DEFAULT_HEALTH['status'])}",
        f"- Current Flood Risk: {_text(low.get('level'), DEFAULT_RISK_LEVELS['low']['level'])}",
        "- Sensors: 12/15 active",
        "",
        "I can help you with:",
        "- Water level monitoring",
        "- Flood risk assessment",
        "- Sensor network status",
        "- Emergency protocols",
        "- Weather alerts",
        "- Evacuation information",
        "- Report generation",
    ])


_RENDERERS: dict[IntentCategory, Callable[[str, datetime, KnowledgeBase], str]] = {
    IntentCategory.GREETING: _render_greeting,
    IntentCategory.WATER_LEVEL: _render_water_level,
    IntentCategory.FLOOD_RISK: _render_flood_risk,
    IntentCategory.SENSOR_STATUS: _render_sensor_status,
    IntentCategory.EMERGENCY: _render_emergency,
    IntentCategory.REPORT: _render_report,
    IntentCategory.EVACUATION: _render_evacuation,
    IntentCategory.WEATHER: _render_weather,
    IntentCategory.DEFAULT: _render_default,
}

# Which knowledge documents back each intent's answer
DATA_SOURCES: dict[IntentCategory, list[str]] = {
    IntentCategory.GREETING: ["greetings"],
    IntentCategory.WATER_LEVEL: ["fallback-data"],
    IntentCategory.FLOOD_RISK: ["fallback-data"],
    IntentCategory.SENSOR_STATUS: ["fallback-data", "sensor-status"],
    IntentCategory.EMERGENCY: ["alerts"],
    IntentCategory.REPORT: ["reports"],
    IntentCategory.EVACUATION: ["alerts"],
    IntentCategory.WEATHER: ["alerts"],
    IntentCategory.DEFAULT: ["fallback-data"],
}


def render(
    category: IntentCategory,
    message: str,
    now: datetime | None = None,
    kb: KnowledgeBase | None = None,
) -> str:
    """Render the knowledge-base answer for an intent. Never returns empty text."""
    if kb is None:
        kb = KnowledgeBase.get()
    now = now or datetime.now()
    renderer = _RENDERERS.get(category, _render_default)
    return renderer(message, now, kb)


# ---------------------------------------------------------------------------
# Water-data analysis
# ---------------------------------------------------------------------------

def _is_active(sensor: object) -> bool:
    return isinstance(sensor, dict) and sensor.get("status") == "active"


def render_analysis(
    metrics: list | None,
    sensors: list | None,
    now: datetime | None = None,
    kb: KnowledgeBase | None = None,
) -> str:
    """Rule-based water-data analysis used when the generative backend is unavailable."""
    if kb is None:
        kb = KnowledgeBase.get()
    now = now or datetime.now()

    if sensors:
        active = sum(1 for s in sensors if _is_active(s))
        total = len(sensors)
    else:
        active, total = 10, 12

    risk = risk_entry(kb, "moderate" if active < total * 0.8 else "low")
    water_sensors = kb.lookup("sensor-status", "sensors", "water_level", default={})

    lines = ["**WATER DATA ANALYSIS**", ""]

    lines.append("**Risk Assessment:**")
    lines.append(f"- Level: {_text(risk.get('level'), 'Unknown')}")
    lines.append(f"- Probability: {_text(risk.get('probability'), 'Unknown')}")
    lines.append(f"- Description: {_text(risk.get('description'), 'No description available')}")
    if risk.get("icon"):
        lines.append(f"- Icon: {risk['icon']}")
    lines.append("")

    if active == total:
        status = _text(lookup(water_sensors, "operational"), DEFAULT_SENSORS_OPERATIONAL)
    else:
        status = "Some issues detected"
    lines.append("**Sensor Network:**")
    lines.append(f"- Active: {active}/{total} sensors")
    lines.append(f"- Status: {status}")
    lines.append(f"- Units: {_text(lookup(water_sensors, 'units'), DEFAULT_UNITS)}")
    lines.append("")

    if metrics:
        lines.append("**Metrics Summary:**")
        lines.append(f"- Data Points: {len(metrics)}")
        lines.append(f"- Last Reading: {now.strftime('%H:%M:%S')}")
        lines.append(f"- Quality: {'Good' if active > total * 0.7 else 'Fair'}")
        lines.append("")

    actions = _strings(risk.get("actions"), limit=3)
    if actions:
        lines.append("**Recommended Actions:**")
        for i, action in enumerate(actions, start=1):
            lines.append(f"{i}. {action}")

    return "\n".join(lines).rstrip()
