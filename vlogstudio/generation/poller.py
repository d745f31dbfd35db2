"""
Submit-then-poll driver for asynchronous vendor jobs.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from loguru import logger

from ..core.errors import AuthError, GenerationError, JobFailed, JobTimedOut, QuotaExhausted
from ..core.models import AsyncJobHandle

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLLS = 60

SUCCESS_STATUSES = frozenset({"completed", "succeeded", "complete", "success"})
FAILURE_STATUSES = frozenset({"failed", "error"})


class JobState(Enum):
    """Lifecycle of a submitted job."""
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def job_state(status: Optional[str]) -> JobState:
    """Map a vendor status string onto the job lifecycle; unknown means still running."""
    normalized = (status or "").strip().lower()
    if normalized in SUCCESS_STATUSES:
        return JobState.COMPLETED
    if normalized in FAILURE_STATUSES:
        return JobState.FAILED
    return JobState.POLLING


@dataclass
class JobSubmission(Generic[T]):
    """What a submit call produced: a job to poll, or the result itself."""
    handle: Optional[AsyncJobHandle] = None
    result: Optional[T] = None


class JobPoller:
    """Polls a submitted job at a fixed interval until it settles or the budget runs out."""

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int = DEFAULT_MAX_POLLS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.interval = interval
        self.max_polls = max_polls
        self.sleep = sleep
        self.state = JobState.SUBMITTED

    async def run(
        self,
        submit: Callable[[], Awaitable[JobSubmission[T]]],
        check_status: Callable[[AsyncJobHandle], Awaitable[str]],
        fetch_result: Callable[[AsyncJobHandle], Awaitable[T]]
    ) -> T:
        """
        Drive one job to completion.

        Args:
            submit: Creates the job
            check_status: Returns the vendor status string for a handle
            fetch_result: Retrieves the finished result for a handle

        Returns:
            The job result

        Raises:
            JobFailed: Vendor reported a failure status
            JobTimedOut: No terminal status within the poll budget
            AuthError, QuotaExhausted: A poll was rejected for credentials or billing
        """
        self.state = JobState.SUBMITTED
        submission = await submit()
        if submission.result is not None:
            self.state = JobState.COMPLETED
            return submission.result

        handle = submission.handle
        if handle is None:
            raise JobFailed("Job submission returned neither a result nor a job id")

        logger.info(f"Job {handle.request_id} submitted, polling every {self.interval:g}s")
        self.state = JobState.POLLING

        while handle.poll_count < self.max_polls:
            await self.sleep(self.interval)
            handle.poll_count += 1

            try:
                status = await check_status(handle)
            except (AuthError, QuotaExhausted):
                raise
            except GenerationError as e:
                logger.warning(f"Job {handle.request_id} poll {handle.poll_count} failed: {e}")
                continue

            state = job_state(status)
            if state is JobState.COMPLETED:
                self.state = state
                logger.info(f"Job {handle.request_id} completed after {handle.poll_count} polls")
                return await fetch_result(handle)
            if state is JobState.FAILED:
                self.state = state
                raise JobFailed(
                    f"Job {handle.request_id} failed with status '{status}'",
                    details={"request_id": handle.request_id, "polls": handle.poll_count}
                )
            logger.debug(f"Job {handle.request_id} status: {status}")

        self.state = JobState.TIMED_OUT
        raise JobTimedOut(
            f"Job {handle.request_id} did not finish after {handle.poll_count} polls "
            f"({handle.poll_count * self.interval:g}s)",
            details={"request_id": handle.request_id, "polls": handle.poll_count}
        )
