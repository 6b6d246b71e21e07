"""
Request Executor
----------------
Runs a call with bounded retries and exponential backoff.

Only errors whose kind is retryable (network, timeout, rate limit) are
retried. The delay doubles after each failed attempt and is capped. With
`max_retries = N` a call is attempted at most N + 1 times.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional
import asyncio
import logging
import time

from core.errors import ErrorClassifier, ErrorContext, StructuredError
from core.outcome import Outcome


Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry bounds. Delays are in milliseconds."""
    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_index: int) -> int:
        """Delay before retry number `retry_index` (0-based)."""
        return min(self.initial_delay_ms * (2 ** retry_index), self.max_delay_ms)

    def delays(self) -> List[int]:
        return [self.delay_for(i) for i in range(self.max_retries)]

    def with_retries(self, max_retries: Optional[int]) -> "RetryPolicy":
        if max_retries is None or max_retries == self.max_retries:
            return self
        return RetryPolicy(max_retries, self.initial_delay_ms, self.max_delay_ms)


class RequestExecutor:
    """
    Executes async calls under a RetryPolicy.

    `make_call` returns an Outcome, or raw data which is wrapped as a
    successful Outcome. A raised exception or a failed Outcome counts as a
    failed attempt. The sleep function is injectable so backoff can be
    observed without waiting.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep or asyncio.sleep
        self._request_count = 0
        self._logger = logging.getLogger("evolution.core.retry")

    @property
    def request_count(self) -> int:
        """Total attempts made by this executor."""
        return self._request_count

    async def execute(
        self,
        make_call: Callable[[], Awaitable[Any]],
        retries: Optional[int] = None,
        context: Optional[ErrorContext] = None,
    ) -> Outcome:
        policy = self.policy.with_retries(retries)
        delay_ms = policy.initial_delay_ms
        last_error: Optional[StructuredError] = None

        for attempt in range(policy.max_attempts):
            self._request_count += 1
            attempt_context = self._with_request_id(context)
            try:
                result = Outcome.coerce(await make_call())
            except Exception as exc:
                last_error = self.classifier.classify(exc, attempt_context)
            else:
                if result.success:
                    if attempt > 0:
                        self._logger.info(f"Request succeeded after {attempt + 1} attempts")
                    return result
                last_error = self.classifier.classify(result.error, attempt_context)

            last_error = last_error.with_context(attempt_context)

            if not last_error.retryable or attempt == policy.max_retries:
                break

            self._logger.warning(
                f"Attempt {attempt + 1}/{policy.max_attempts} failed "
                f"({last_error.kind.value}), retrying in {delay_ms}ms",
                extra={"attempt": attempt + 1},
            )
            await self._sleep(delay_ms / 1000)
            delay_ms = min(delay_ms * 2, policy.max_delay_ms)

        self._logger.debug(f"Request failed: {last_error.kind.value}: {last_error.message}")
        return Outcome.fail(last_error)

    def _with_request_id(self, context: Optional[ErrorContext]) -> ErrorContext:
        request_id = f"req_{self._request_count}_{int(time.time() * 1000)}"
        if context is None:
            return ErrorContext(request_id=request_id)
        return context.merged(ErrorContext(request_id=request_id))


async def execute_with_retry(
    make_call: Callable[[], Awaitable[Any]],
    max_retries: int = 3,
    initial_delay_ms: int = 1000,
    max_delay_ms: int = 30000,
    sleep: Optional[Sleep] = None,
) -> Outcome:
    """One-off retrying call without keeping an executor around."""
    executor = RequestExecutor(RetryPolicy(max_retries, initial_delay_ms, max_delay_ms), sleep=sleep)
    return await executor.execute(make_call)
