import logging
import threading
import time
from typing import Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class ReportCooldownTracker:
    """Per-key "do not retry before" gate, set when report creation is rate limited."""

    def __init__(self, *, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._retry_not_before: Dict[Hashable, float] = {}
        self._lock = threading.Lock()

    def is_blocked(self, key: Hashable) -> bool:
        with self._lock:
            deadline = self._retry_not_before.get(key)
        return deadline is not None and self._clock() < deadline

    def block(self, key: Hashable, duration_seconds: float) -> float:
        """Block ``key`` for ``duration_seconds``; a shorter block never shortens an existing one."""
        with self._lock:
            candidate = self._clock() + max(0.0, duration_seconds)
            existing = self._retry_not_before.get(key, 0.0)
            deadline = max(existing, candidate)
            self._retry_not_before[key] = deadline
        if deadline > candidate:
            logger.debug(
                "[Cooldown] %s keeps longer cooldown (until %.0f, requested %.0f)",
                key,
                deadline,
                candidate,
            )
        return deadline

    def blocked_until(self, key: Hashable) -> Optional[float]:
        with self._lock:
            return self._retry_not_before.get(key)

    def remaining_seconds(self, key: Hashable) -> float:
        deadline = self.blocked_until(key)
        if deadline is None:
            return 0.0
        return max(0.0, deadline - self._clock())
