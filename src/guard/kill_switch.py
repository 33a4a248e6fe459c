# src/guard/kill_switch.py - v1
"""Process-wide switch that stops every AI call before it reaches a provider."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class KillSwitch:
    """Mutable on/off flag shared by the rate limiter and the gateway."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        """True while AI calls are allowed."""
        with self._lock:
            return self._enabled

    def disable(self) -> None:
        with self._lock:
            self._enabled = False
        logger.warning("Kill switch activated: all AI calls disabled")

    def enable(self) -> None:
        with self._lock:
            self._enabled = True
        logger.info("AI calls enabled")
