"""
Bounded retry around a single provider call.

Only transient failure classes are retried, with a fixed delay per class.
Every attempt is appended to the caller's attempt log.
"""
import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from .errors import GenerationError, GenerationTimeout, ProviderUnavailable, RateLimited
from .models import AttemptOutcome, GenerationAttempt, ProviderId

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2

DEFAULT_RETRY_DELAYS: Dict[Type[BaseException], float] = {
    RateLimited: 2.0,
    GenerationTimeout: 1.2,
    ProviderUnavailable: 1.2,
}


def classify(error: BaseException) -> AttemptOutcome:
    """Decide whether a failure is worth another attempt."""
    if isinstance(error, GenerationError) and error.retryable:
        return AttemptOutcome.TRANSIENT_FAILURE
    return AttemptOutcome.PERMANENT_FAILURE


class wait_for_failure_class(wait_base):
    """Fixed delay chosen by the class of the last failure."""

    def __init__(self, delays: Mapping[Type[BaseException], float], default: float = 0.0):
        self.delays = dict(delays)
        self.default = default

    def __call__(self, retry_state: RetryCallState) -> float:
        if retry_state.outcome is None:
            return self.default
        error = retry_state.outcome.exception()
        for error_class, delay in self.delays.items():
            if isinstance(error, error_class):
                return delay
        return self.default


class RetryPolicy:
    """Retry/backoff policy shared by every link of a fallback chain."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delays: Optional[Mapping[Type[BaseException], float]] = None,
        classify: Callable[[BaseException], AttemptOutcome] = classify,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delays = dict(DEFAULT_RETRY_DELAYS if delays is None else delays)
        self.classify = classify
        self.sleep = sleep

    async def run(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        provider_id: ProviderId,
        model_id: str,
        attempt_log: List[GenerationAttempt]
    ) -> T:
        """
        Call attempt_fn until it succeeds, fails permanently or the cap is hit.

        Args:
            attempt_fn: Zero-argument coroutine factory performing one call
            provider_id: Provider being attempted, for the attempt log
            model_id: Model being attempted, for the attempt log
            attempt_log: List that receives one GenerationAttempt per call

        Returns:
            Whatever attempt_fn returned on success

        Raises:
            The last failure once retries are exhausted or a permanent error occurs
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_for_failure_class(self.delays),
            retry=retry_if_exception(
                lambda e: self.classify(e) is AttemptOutcome.TRANSIENT_FAILURE
            ),
            before_sleep=self._log_retry,
            sleep=self.sleep,
            reraise=True,
        )

        result = None
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                started_at = datetime.now(timezone.utc)
                try:
                    result = await attempt_fn()
                except Exception as e:
                    attempt_log.append(GenerationAttempt(
                        provider_id=provider_id,
                        model_id=model_id,
                        attempt_number=number,
                        started_at=started_at,
                        outcome=self.classify(e),
                        error_code=getattr(e, "error_code", type(e).__name__),
                        error_detail=str(e),
                    ))
                    raise
                attempt_log.append(GenerationAttempt(
                    provider_id=provider_id,
                    model_id=model_id,
                    attempt_number=number,
                    started_at=started_at,
                    outcome=AttemptOutcome.SUCCESS,
                ))
        return result

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Attempt {retry_state.attempt_number} failed ({error}); retrying in {delay:.1f}s"
        )


async def with_retry(
    attempt_fn: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    classify: Callable[[BaseException], AttemptOutcome] = classify,
    *,
    provider_id: ProviderId,
    model_id: str = "",
    attempt_log: Optional[List[GenerationAttempt]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """Functional form of RetryPolicy.run."""
    policy = RetryPolicy(max_attempts=max_attempts, classify=classify, sleep=sleep)
    return await policy.run(
        attempt_fn,
        provider_id=provider_id,
        model_id=model_id,
        attempt_log=attempt_log if attempt_log is not None else [],
    )
