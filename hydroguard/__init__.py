from __future__ import annotations

__version__ = "3.0.0"


def ask(message: str) -> dict:
    """Answer a flood-monitoring question in-process.

    Uses the same path as POST /api/chat: the generative backend when it is
    available, the knowledge-base responder otherwise.

    Usage:
        import hydroguard
        print(hydroguard.ask("what is the flood risk probability")["response"])
    """
    from hydroguard.intelligence.orchestrator import respond_to_chat
    return respond_to_chat(message)
