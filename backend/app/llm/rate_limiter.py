"""Per-model sliding window rate limiter.

Admission is a yes/no decision: callers turn a rejection into a
RATE_LIMITED failure instead of waiting for a slot.

State lives in memory for the lifetime of the process and is not shared
between replicas, so each instance enforces its own quota.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0

# Requests per minute by model tier
PREMIUM_RPM = 60  # gpt-4 class
STANDARD_RPM = 100  # gpt-3.5 class and the default
ALTERNATE_VENDOR_RPM = 50  # claude
DEFAULT_RPM = STANDARD_RPM

MODEL_RATE_LIMITS: dict[str, int] = {
    "gpt-4": PREMIUM_RPM,
    "gpt-3.5": STANDARD_RPM,
    "claude": ALTERNATE_VENDOR_RPM,
}


class RateLimiter:
    """Sliding window request counter keyed by model id."""

    def __init__(
        self,
        limits: Optional[dict[str, int]] = None,
        default_limit: int = DEFAULT_RPM,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the limiter.

        Args:
            limits: Model family substring -> requests per window
            default_limit: Quota for model ids matching no family
            window_seconds: Length of the sliding window
            clock: Monotonic time source in seconds
        """
        self.limits = dict(MODEL_RATE_LIMITS if limits is None else limits)
        self.default_limit = default_limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def get_limit(self, model_id: str) -> int:
        """Quota for a model id."""
        for family, limit in self.limits.items():
            if family in model_id:
                return limit
        return self.default_limit

    def _prune(self, window: deque[float], now: float) -> None:
        while window and now - window[0] >= self.window_seconds:
            window.popleft()

    def can_make_request(self, model_id: str) -> bool:
        """Admit and record a request for ``model_id`` if under quota."""
        with self._lock:
            now = self._clock()
            window = self._windows.setdefault(model_id, deque())
            self._prune(window, now)

            limit = self.get_limit(model_id)
            if len(window) >= limit:
                logger.warning(
                    f"[RATE] Rejected request | model={model_id} | "
                    f"count={len(window)} | limit={limit}"
                )
                return False

            window.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
