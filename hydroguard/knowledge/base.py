"""Knowledge base -- read-only flood-domain documents used by the fallback responder.

Each document is a JSON file (alerts, fallback-data, reports, greetings,
sensor-status) loaded once at startup. Missing files are logged and skipped;
if nothing loads from the primary directory, the alternate directory is tried.
Lookups never raise: a missing document or path returns the caller's default.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Union

from hydroguard.config.loader import get_knowledge_config
from hydroguard.log import logger

# str | int | float | bool | None | list[KnowledgeValue] | dict[str, KnowledgeValue]
KnowledgeValue = Union[str, int, float, bool, None, list, dict]

DEFAULT_DOCUMENTS = ("alerts", "fallback-data", "reports", "greetings", "sensor-status")

_PACKAGE_RESOURCES = Path(__file__).resolve().parent.parent / "resources"


def lookup(value: KnowledgeValue, *path: str | int, default: Any = None) -> Any:
    """Walk a nested value by dict keys / list indexes. Returns default on any miss."""
    current = value
    for step in path:
        if isinstance(current, dict) and isinstance(step, str):
            if step not in current:
                return default
            current = current[step]
        elif isinstance(current, list) and isinstance(step, int) and not isinstance(step, bool):
            if not -len(current) <= step < len(current):
                return default
            current = current[step]
        else:
            return default
    if current is None:
        return default
    return current


class KnowledgeBase:
    """Singleton holding the loaded knowledge documents."""

    _instance: KnowledgeBase | None = None
    _lock = threading.Lock()

    def __init__(self, documents: dict[str, KnowledgeValue] | None = None) -> None:
        self._documents: dict[str, KnowledgeValue] = dict(documents or {})

    @classmethod
    def get(cls) -> "KnowledgeBase":
        with cls._lock:
            if cls._instance is None:
                kb = cls()
                kb.load()
                cls._instance = kb
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    @classmethod
    def install(cls, kb: "KnowledgeBase") -> None:
        """Replace the process-wide instance (used at startup and by tests)."""
        with cls._lock:
            cls._instance = kb

    # -- loading ------------------------------------------------------------

    def load(self, resource_dir: str | Path | None = None) -> dict[str, KnowledgeValue]:
        """Load every configured document. Never raises for missing or bad files."""
        cfg = get_knowledge_config()
        names = cfg.get("documents") or list(DEFAULT_DOCUMENTS)
        primary = Path(resource_dir or cfg.get("resource_dir") or _PACKAGE_RESOURCES)
        alternate = Path(cfg.get("fallback_dir") or Path.cwd())

        loaded = self._load_from(primary, names)
        if not loaded and alternate.resolve() != primary.resolve():
            logger.info("No knowledge documents loaded from %s, trying %s", primary, alternate)
            loaded = self._load_from(alternate, names)

        self._documents = loaded
        logger.info("Loaded %d/%d knowledge documents", len(loaded), len(names))
        return dict(loaded)

    @staticmethod
    def _load_from(directory: Path, names: list[str]) -> dict[str, KnowledgeValue]:
        if not directory.is_dir():
            logger.warning("Knowledge directory not found: %s", directory)
            return {}

        loaded: dict[str, KnowledgeValue] = {}
        for name in names:
            path = directory / f"{name}.json"
            try:
                with open(path, "r", encoding="utf-8") as f:
                    loaded[name] = json.load(f)
                logger.debug("Loaded knowledge document %s", path.name)
            except FileNotFoundError:
                logger.warning("Knowledge document not found: %s", path.name)
            except json.JSONDecodeError as exc:
                logger.warning("JSON syntax error in %s: %s", path.name, exc)
            except UnicodeDecodeError as exc:
                logger.warning("%s is not valid UTF-8: %s", path.name, exc)
            except OSError as exc:
                logger.warning("Could not load %s: %s", path.name, exc)
        return loaded

    # -- reads --------------------------------------------------------------

    def document(self, name: str) -> KnowledgeValue:
        return self._documents.get(name)

    def lookup(self, name: str, *path: str | int, default: Any = None) -> Any:
        """Safe nested lookup inside one document."""
        return lookup(self._documents.get(name), *path, default=default)

    @property
    def names(self) -> list[str]:
        return list(self._documents)

    def __contains__(self, name: object) -> bool:
        return name in self._documents

    def __len__(self) -> int:
        return len(self._documents)

