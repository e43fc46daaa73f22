"""HydroGuard response engine.

Intent classification, knowledge-base rendering, and the orchestrator that
chooses between the generative backend and the fallback responder.
"""

from hydroguard.intelligence.intents import IntentCategory, classify
from hydroguard.intelligence.responder import render, render_analysis
from hydroguard.intelligence.orchestrator import respond_to_analysis, respond_to_chat

__all__ = ["IntentCategory", "classify", "render", "render_analysis", "respond_to_analysis", "respond_to_chat"]
