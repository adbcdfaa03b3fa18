"""Upstream health state machine.

This module tracks how the catalog API has been answering and decides
whether requests should be sent at all. A burst of failures trips the
monitor into ``OFFLINE`` for a cooldown period so callers degrade to
empty results instead of hammering an unreachable service.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class UpstreamState(str, Enum):
    """Operational states of the catalog API."""

    NORMAL = "normal"
    THROTTLE = "throttle"
    OFFLINE = "offline"


class UpstreamHealthMonitor:
    """Sliding-window error-rate monitor for the catalog API.

    Args:
        error_threshold: Percentage of failed calls that trips OFFLINE (default: 60)
        time_window: Window in seconds for the error-rate calculation (default: 120)
        min_requests: Calls needed in the window before the rate is trusted (default: 5)
        offline_cooldown: Seconds requests are refused once OFFLINE (default: 30)
        max_retry_after: Cap for the throttle delay taken from Retry-After (default: 60)
        clock: Monotonic time source
    """

    def __init__(
        self,
        error_threshold: float = 60.0,
        time_window: float = 120.0,
        min_requests: int = 5,
        offline_cooldown: float = 30.0,
        max_retry_after: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.error_threshold = error_threshold
        self.time_window = time_window
        self.min_requests = min_requests
        self.offline_cooldown = offline_cooldown
        self.max_retry_after = max_retry_after
        self._clock = clock

        self._state = UpstreamState.NORMAL
        self._error_timestamps: deque[float] = deque()
        self._success_timestamps: deque[float] = deque()
        self._last_429_time = 0.0
        self._retry_after_delay = 0.0
        self._offline_until = 0.0

    @property
    def state(self) -> UpstreamState:
        """Current state; an expired OFFLINE cooldown reads as NORMAL."""
        self._expire_offline()
        return self._state

    def handle_success(self) -> None:
        """Record a successful response."""
        now = self._clock()
        self._success_timestamps.append(now)
        self._clean_old_timestamps()

        if self._state is UpstreamState.THROTTLE:
            if now - self._last_429_time >= self._retry_after_delay:
                self._state = UpstreamState.NORMAL
                self._retry_after_delay = 0.0

    def handle_429(self, retry_after: float | None = None) -> None:
        """Record a 429 response and enter THROTTLE."""
        now = self._clock()
        self._last_429_time = now
        self._error_timestamps.append(now)

        if retry_after is not None:
            self._retry_after_delay = min(retry_after, self.max_retry_after)
        else:
            self._retry_after_delay = min(
                self.max_retry_after,
                max(1.0, self._retry_after_delay * 2),
            )

        self._clean_old_timestamps()
        if self._should_go_offline():
            self._go_offline()
        elif self._state is UpstreamState.NORMAL:
            self._state = UpstreamState.THROTTLE
            logger.info(
                "Catalog API is rate limiting, throttling for %.1fs",
                self._retry_after_delay,
            )

    def handle_error(self) -> None:
        """Record a failed call (5xx, timeout, connection error)."""
        self._error_timestamps.append(self._clock())
        self._clean_old_timestamps()
        if self._state is not UpstreamState.OFFLINE and self._should_go_offline():
            self._go_offline()

    def should_make_request(self) -> bool:
        """Return False while OFFLINE and the cooldown has not elapsed."""
        self._expire_offline()
        return self._state is not UpstreamState.OFFLINE

    def get_retry_delay(self) -> float:
        """Remaining throttle delay in seconds (0 outside THROTTLE)."""
        if self._state is UpstreamState.THROTTLE:
            elapsed = self._clock() - self._last_429_time
            return max(0.0, self._retry_after_delay - elapsed)
        if self._state is UpstreamState.OFFLINE:
            return max(0.0, self._offline_until - self._clock())
        return 0.0

    def reset(self) -> None:
        """Reset to NORMAL and forget all recorded calls."""
        self._state = UpstreamState.NORMAL
        self._error_timestamps.clear()
        self._success_timestamps.clear()
        self._last_429_time = 0.0
        self._retry_after_delay = 0.0
        self._offline_until = 0.0

    def get_stats(self) -> dict[str, Any]:
        """Return a snapshot of the monitor."""
        self._clean_old_timestamps()
        errors = len(self._error_timestamps)
        successes = len(self._success_timestamps)
        total = errors + successes
        return {
            "state": self.state.value,
            "recent_errors": errors,
            "recent_successes": successes,
            "error_rate_percent": (errors / total * 100) if total else 0.0,
            "retry_delay": self.get_retry_delay(),
        }

    def _go_offline(self) -> None:
        self._state = UpstreamState.OFFLINE
        self._offline_until = self._clock() + self.offline_cooldown
        logger.warning(
            "Catalog API marked offline for %.0fs after repeated failures",
            self.offline_cooldown,
        )

    def _expire_offline(self) -> None:
        if self._state is UpstreamState.OFFLINE and self._clock() >= self._offline_until:
            # Start the next window clean so one failure cannot re-trip it
            self._state = UpstreamState.NORMAL
            self._error_timestamps.clear()
            self._success_timestamps.clear()
            logger.info("Catalog API cooldown elapsed, resuming requests")

    def _clean_old_timestamps(self) -> None:
        cutoff = self._clock() - self.time_window
        while self._error_timestamps and self._error_timestamps[0] < cutoff:
            self._error_timestamps.popleft()
        while self._success_timestamps and self._success_timestamps[0] < cutoff:
            self._success_timestamps.popleft()

    def _should_go_offline(self) -> bool:
        errors = len(self._error_timestamps)
        total = errors + len(self._success_timestamps)
        if total < self.min_requests:
            return False
        return errors / total * 100 >= self.error_threshold
