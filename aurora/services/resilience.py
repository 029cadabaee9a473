"""Timeout, retry and cooperative cancellation for upstream calls."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import BASE_BACKOFF_SECONDS, FETCH_TIMEOUT_SECONDS, MAX_RETRIES
from ..domain.models import AnalysisFailure, ErrorCategory
from .errors import CANCELLATION_ERROR, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchTimeoutError(Exception):
    """Raised when an upstream call does not settle within its timeout."""


class CancellationToken:
    """Cooperative cancellation flag, polled at pipeline checkpoints."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise AnalysisFailure(CANCELLATION_ERROR)


def _consume_result(task: "asyncio.Future") -> None:
    # Abandoned tasks may still fail; retrieve the exception so it is not reported.
    if not task.cancelled():
        task.exception()


async def with_timeout(awaitable: Awaitable[T], timeout: float = FETCH_TIMEOUT_SECONDS) -> T:
    """
    Race an awaitable against a timeout.

    Unlike asyncio.wait_for, the losing operation is abandoned rather than
    cancelled: it keeps running in the background and its result is ignored.

    Raises:
        FetchTimeoutError if the operation has not settled in time
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()

    task.add_done_callback(_consume_result)
    raise FetchTimeoutError(f"Request timeout after {timeout:.1f}s")


class ResilientFetcher:
    """
    Wraps single upstream calls with timeout, retry/backoff and cancellation.

    Attempts: 1 + max_retries. Backoff before retry N (0-based) is
    ``base_backoff * 2**N`` seconds, no jitter.
    """

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        base_backoff: float = BASE_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_backoff = base_backoff
        self.sleep = sleep

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[Optional[T]]],
        token: Optional[CancellationToken] = None,
        description: str = "upstream call",
    ) -> T:
        """
        Run ``operation`` until it succeeds, retries run out, or the token is cancelled.

        Raises:
            AnalysisFailure carrying CANCELLATION_ERROR if cancelled, otherwise the
            last error classified with a network fallback
        """
        token = token or CancellationToken()
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_retries + 1):
            token.raise_if_cancelled()

            try:
                logger.debug(
                    "%s attempt %d/%d", description, attempt + 1, self.max_retries + 1
                )
                data = await with_timeout(operation(), self.timeout)
                if data is None:
                    raise ValueError("Stock data not returned by provider.")
                return data
            except AnalysisFailure:
                raise
            except Exception as exc:
                last_error = exc

                if attempt == self.max_retries or token.cancelled:
                    break

                backoff = self.base_backoff * (2 ** attempt)
                logger.warning(
                    "%s failed on attempt %d: %s. Retrying in %.2f seconds...",
                    description,
                    attempt + 1,
                    exc,
                    backoff,
                )
                await self.sleep(backoff)

        token.raise_if_cancelled()

        logger.error(
            "%s failed after %d attempts: %s",
            description,
            self.max_retries + 1,
            last_error,
        )
        raise AnalysisFailure(classify_error(last_error, ErrorCategory.NETWORK))
