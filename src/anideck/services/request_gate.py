"""Rate-limited FIFO request gate.

Every call to the catalog API goes through one shared gate, a singleton of
the application container. Tasks run one at a time in submission order,
and each start is spaced at least ``min_delay`` seconds after the previous
start. Retryable failures are replayed according to a single
:class:`RetryPolicy`; every replay re-enters the gate and is spaced like any
other request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from anideck.config.models.api_settings import JikanSettings
from anideck.shared.constants import JikanAPI, NetworkConfig
from anideck.shared.errors import (
    AniDeckError,
    ApplicationError,
    ErrorCode,
    ErrorContext,
    RateLimitExceededError,
    is_retryable,
)
from anideck.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for retryable upstream errors.

    Attributes:
        max_retries: Replays after the first attempt
        base_delay: Delay before the first replay; doubled per attempt
        max_delay: Upper bound for a single delay
    """

    max_retries: int = NetworkConfig.DEFAULT_RETRIES
    base_delay: float = NetworkConfig.RETRY_DELAY
    max_delay: float = NetworkConfig.MAX_RETRY_DELAY

    @classmethod
    def from_settings(cls, settings: JikanSettings) -> RetryPolicy:
        return cls(
            max_retries=settings.retry_attempts,
            base_delay=settings.retry_delay,
            max_delay=settings.max_retry_delay,
        )

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        """Return True if the failed ``attempt`` (0-based) may be replayed."""
        return attempt < self.max_retries and is_retryable(error)

    def compute_delay(self, attempt: int, error: BaseException | None = None) -> float:
        """Backoff before replaying ``attempt``; a 429 Retry-After wins."""
        if isinstance(error, RateLimitExceededError) and error.retry_after is not None:
            return min(max(error.retry_after, 0.0), self.max_delay)
        return min(self.base_delay * (2**attempt), self.max_delay)


class RequestGate:
    """Serializes and spaces upstream requests.

    Args:
        min_delay: Default spacing between request starts in seconds
        retry_policy: Policy applied to retryable failures
        clock: Monotonic time source
        sleep: Coroutine used for spacing and backoff waits

    Example:
        >>> gate = RequestGate(min_delay=0.5)
        >>> data = await gate.enqueue(lambda: client.fetch("anime"))
    """

    def __init__(
        self,
        min_delay: float = JikanAPI.REQUEST_DELAY,
        retry_policy: RetryPolicy | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if min_delay < 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"min_delay must be non-negative, got: {min_delay}",
                context=ErrorContext(
                    operation="request_gate_init",
                    additional_data={"min_delay": min_delay},
                ),
            )

        self.min_delay = min_delay
        self.retry_policy = retry_policy or RetryPolicy()
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

        self._submitted = 0
        self._completed = 0
        self._failed = 0
        self._retried = 0

    async def enqueue(
        self,
        task: Callable[[], Awaitable[T]],
        min_delay: float | None = None,
    ) -> T:
        """Run ``task`` once its turn comes and return its result.

        Args:
            task: Zero-argument callable returning a fresh awaitable per attempt
            min_delay: Spacing override for this request

        Returns:
            Whatever the task returns.

        Raises:
            Exception: The task's final error, raised to this caller only.
        """
        delay = self.min_delay if min_delay is None else min_delay
        if delay < 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"min_delay must be non-negative, got: {delay}",
                context=ErrorContext(operation="enqueue"),
            )

        self._submitted += 1
        started = time.perf_counter()
        attempt = 0

        while True:
            try:
                result = await self._run_in_turn(task, delay)
            except AniDeckError as e:
                if self.retry_policy.should_retry(attempt, e):
                    backoff = self.retry_policy.compute_delay(attempt, e)
                    self._retried += 1
                    logger.warning(
                        "Request failed (%s), retry %d/%d in %.2fs",
                        e.code.value,
                        attempt + 1,
                        self.retry_policy.max_retries,
                        backoff,
                    )
                    await self._sleep(backoff)
                    attempt += 1
                    continue

                self._failed += 1
                log_operation_error(
                    logger,
                    e,
                    operation="gate_request",
                    additional_context={"attempts": attempt + 1},
                    level=logging.WARNING,
                )
                raise
            except asyncio.CancelledError:
                self._failed += 1
                raise
            except Exception:
                self._failed += 1
                logger.warning("Request task raised an unexpected error", exc_info=True)
                raise

            self._completed += 1
            log_operation_success(
                logger,
                operation="gate_request",
                duration_ms=(time.perf_counter() - started) * 1000,
                result_info={"attempts": attempt + 1},
            )
            return result

    async def _run_in_turn(self, task: Callable[[], Awaitable[T]], delay: float) -> T:
        # asyncio.Lock wakes waiters in FIFO order
        async with self._lock:
            if self._last_start is not None:
                wait = self._last_start + delay - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_start = self._clock()
            return await task()

    @property
    def pending(self) -> bool:
        """True while a request holds the gate."""
        return self._lock.locked()

    def stats(self) -> dict[str, int]:
        """Return request counters."""
        return {
            "submitted": self._submitted,
            "completed": self._completed,
            "failed": self._failed,
            "retried": self._retried,
        }
