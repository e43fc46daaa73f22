"""Shared mutable state for cross-request access.

Holds the generative-backend availability breaker. Routes, the CLI and the
orchestrator all read it through AvailabilityTracker.get(); nothing caches
a copy between decisions.
"""

from __future__ import annotations

import threading

from hydroguard.log import logger

QUOTA_FAILURE_THRESHOLD = 3


class AvailabilityTracker:
    """Singleton circuit breaker for the generative backend.

    Every read-modify-write runs under one lock, so concurrent quota failures
    cross the threshold (and flip the breaker) at most once.
    """

    _instance: AvailabilityTracker | None = None
    _lock = threading.Lock()

    def __init__(self, threshold: int = QUOTA_FAILURE_THRESHOLD) -> None:
        self._threshold = max(1, threshold)
        self._state_lock = threading.Lock()
        self._enabled = True
        self._consecutive_quota_failures = 0

    @classmethod
    def get(cls) -> "AvailabilityTracker":
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    def is_enabled(self) -> bool:
        with self._state_lock:
            return self._enabled

    @property
    def consecutive_quota_failures(self) -> int:
        with self._state_lock:
            return self._consecutive_quota_failures

    def record_success(self) -> None:
        with self._state_lock:
            self._consecutive_quota_failures = 0

    def record_quota_failure(self) -> bool:
        """Count a quota failure. Returns True only for the call that disabled the backend."""
        with self._state_lock:
            self._consecutive_quota_failures += 1
            count = self._consecutive_quota_failures
            flipped = self._enabled and count >= self._threshold
            if flipped:
                self._enabled = False

        logger.info("Generative quota failure (count: %d)", count)
        if flipped:
            logger.warning("Generative backend disabled after %d consecutive quota failures", count)
        return flipped

    def toggle(self) -> dict:
        """Flip the breaker by hand and clear the failure count."""
        with self._state_lock:
            self._enabled = not self._enabled
            self._consecutive_quota_failures = 0
            snapshot = self._snapshot_locked()
        logger.info("Generative backend %s by toggle", "enabled" if snapshot["enabled"] else "disabled")
        return snapshot

    def snapshot(self) -> dict:
        with self._state_lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> dict:
        return {
            "enabled": self._enabled,
            "consecutive_quota_failures": self._consecutive_quota_failures,
            "threshold": self._threshold,
            "mode": "generative-priority" if self._enabled else "fallback-only",
        }
