"""Single-flight analysis orchestrator with cache, queue and cancellation."""

import asyncio
import inspect
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Tuple, Union

from ..cache import AnalysisCache
from ..config import MAX_QUEUE_LENGTH
from ..domain.models import (
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisResult,
    CachedRecord,
    HistoricalSeries,
    Period,
    StockSnapshot,
    UserProfile,
    build_cache_key,
    normalize_ticker,
)
from .errors import ANALYSIS_ERROR, CANCELLATION_ERROR, QUEUE_FULL_ERROR, classify_error
from .historical import fetch_all_periods
from .progress import LoadingStage, ProgressTracker
from .resilience import CancellationToken, ResilientFetcher

logger = logging.getLogger(__name__)

Analyzer = Callable[
    [UserProfile, StockSnapshot],
    Union[Optional[AnalysisResult], Awaitable[Optional[AnalysisResult]]],
]
Listener = Callable[["OrchestratorEvent"], None]

HISTORICAL_UNAVAILABLE = "Unable to load historical pricing data."
QUEUE_CLEARED_NOTICE = "Canceled analysis and cleared queued requests."


@dataclass
class OrchestratorEvent:
    """Signal emitted to subscribers.

    kind is one of: "stage", "cache_hit", "queue", "outcome", "idle".
    """
    kind: str
    payload: Any = None


class AnalysisOrchestrator:
    """
    Turns "analyze ticker X for profile P" into a cached, queued, retried,
    cancellable, progress-tracked operation.

    At most one pipeline runs at a time. Requests submitted while busy wait in a
    bounded FIFO queue and are drained by a single loop (``_drain``). The cache
    and the queue are only touched from this class.

    Collaborators:
        provider: object with ``fetch_snapshot(ticker)`` and
            ``fetch_series(ticker, period)`` coroutines
        analyze: ``analyze(profile, snapshot)``, sync or async
    """

    def __init__(
        self,
        provider,
        analyze: Analyzer,
        cache: Optional[AnalysisCache] = None,
        fetcher: Optional[ResilientFetcher] = None,
        max_queue_length: int = MAX_QUEUE_LENGTH,
        clock: Callable[[], float] = time.time,
    ):
        self.provider = provider
        self.analyze = analyze
        self.clock = clock
        self.cache = cache if cache is not None else AnalysisCache(clock=clock)
        self.fetcher = fetcher if fetcher is not None else ResilientFetcher()
        self.max_queue_length = max_queue_length
        self.tracker = ProgressTracker(on_change=self._on_progress)

        self._queue: Deque[Tuple[AnalysisRequest, asyncio.Future]] = deque()
        self._processing = False
        self._token: Optional[CancellationToken] = None
        self._cancellation_pending = False
        self._drain_task: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

        self.queue_notice: Optional[str] = None
        self.cache_notice: Optional[str] = None
        self.last_outcome: Optional[AnalysisOutcome] = None

    # ---- observable state ----

    @property
    def stage(self) -> LoadingStage:
        return self.tracker.stage

    @property
    def progress(self) -> int:
        return self.tracker.percent

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    @property
    def is_busy(self) -> bool:
        return self._processing

    @property
    def cancellation_pending(self) -> bool:
        return self._cancellation_pending

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and no pipeline is running."""
        while self._drain_task is not None and not self._drain_task.done():
            # Shielded so a canceled waiter does not cancel the drain loop
            await asyncio.shield(self._drain_task)

    # ---- public operations ----

    def submit(self, ticker: str, profile: UserProfile) -> asyncio.Future:
        """
        Submit an analyze intent. Must be called from a running event loop.

        Returns:
            Future resolving to exactly one AnalysisOutcome for this submission
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        normalized = normalize_ticker(ticker)
        if not normalized:
            self._resolve(future, AnalysisOutcome(
                ticker="",
                cache_key="",
                error=classify_error(ValueError("Ticker is required")),
            ))
            return future

        cache_key = build_cache_key(normalized, profile)
        cached = self.cache.get(cache_key)
        if cached is not None:
            self._hydrate_from_cache(future, normalized, cache_key, cached)
            return future

        request = AnalysisRequest(
            ticker=normalized,
            profile=profile,
            cache_key=cache_key,
            enqueued_at=self.clock(),
        )

        if self._processing:
            if len(self._queue) >= self.max_queue_length:
                logger.warning(
                    "Queue full (%d waiting), rejecting %s", len(self._queue), normalized
                )
                self._resolve(future, AnalysisOutcome(
                    ticker=normalized, cache_key=cache_key, error=QUEUE_FULL_ERROR
                ))
                return future

            self._queue.append((request, future))
            self._set_queue_notice(
                f"Queued analysis for {normalized} (position {len(self._queue)})."
            )
            logger.info("Queued %s at position %d", normalized, len(self._queue))
            return future

        self._processing = True
        self._token = CancellationToken()
        self._announce_start(request, from_queue=False)
        self._drain_task = loop.create_task(self._drain(request, future))
        return future

    def cancel(self) -> bool:
        """
        Abandon the running pipeline and everything waiting behind it.

        Returns:
            True if a cancellation was issued, False if idle or already pending
        """
        if not self._processing or self._token is None or self._token.cancelled:
            return False

        self._token.cancel()
        self._cancellation_pending = True
        logger.warning("Cancellation requested (%d queued requests dropped)", len(self._queue))

        if self._queue:
            self._drop_queued()
            self._set_queue_notice(QUEUE_CLEARED_NOTICE)

        return True

    def _drop_queued(self) -> None:
        dropped = list(self._queue)
        self._queue.clear()
        for request, future in dropped:
            self._resolve_canceled(request, future)

    def _resolve_canceled(self, request: AnalysisRequest, future: asyncio.Future) -> None:
        self._resolve(future, AnalysisOutcome(
            ticker=request.ticker,
            cache_key=request.cache_key,
            error=CANCELLATION_ERROR,
        ))

    # ---- pipeline ----

    async def _drain(self, request: AnalysisRequest, future: asyncio.Future) -> None:
        entry: Optional[Tuple[AnalysisRequest, asyncio.Future]] = (request, future)

        try:
            while entry is not None:
                current, current_future = entry
                outcome = await self._run(current)
                self._resolve(current_future, outcome)

                if self._queue:
                    entry = self._queue.popleft()
                    self._token = CancellationToken()
                    self._announce_start(entry[0], from_queue=True)
                else:
                    entry = None
        finally:
            if entry is not None:
                # Drain task itself was canceled: settle every waiting submission
                logger.warning(
                    "Drain loop stopped while processing %s; dropping %d queued requests",
                    entry[0].ticker,
                    len(self._queue),
                )
                self._resolve_canceled(*entry)
                self._drop_queued()

            self._processing = False
            self._token = None
            self._cancellation_pending = False
            self._set_queue_notice(None)
            self._emit("idle")

    async def _run(self, request: AnalysisRequest) -> AnalysisOutcome:
        token = self._token
        self.cache_notice = None
        outcome = AnalysisOutcome(ticker=request.ticker, cache_key=request.cache_key)

        logger.info("Starting analysis for %s", request.ticker)
        try:
            self.tracker.advance(LoadingStage.FETCHING)
            snapshot = await self.fetcher.execute_with_retry(
                lambda: self.provider.fetch_snapshot(request.ticker),
                token,
                description=f"Snapshot fetch for {request.ticker}",
            )
            token.raise_if_cancelled()

            self.tracker.advance(LoadingStage.ANALYZING)
            result = await self._invoke_analysis(request.profile, snapshot, token)
            token.raise_if_cancelled()

            self.tracker.advance(LoadingStage.PRESENTING)
            historical, historical_error = await self._load_historical(request.ticker)
            token.raise_if_cancelled()

            self.tracker.complete()
            self.cache.put(request.cache_key, CachedRecord(
                snapshot=snapshot, analysis_result=result, historical=historical
            ))

            outcome.result = result
            outcome.snapshot = snapshot
            outcome.historical = historical
            outcome.historical_error = historical_error
            logger.info("Analysis for %s complete", request.ticker)
        except AnalysisFailure as exc:
            outcome.error = exc.detail
            if exc.detail is CANCELLATION_ERROR:
                logger.warning("Analysis for %s canceled", request.ticker)
            else:
                logger.warning("Analysis for %s failed: %s", request.ticker, exc.detail.message)
        except Exception as exc:
            logger.error("Unexpected error analyzing %s: %s", request.ticker, exc, exc_info=True)
            outcome.error = classify_error(exc)
        finally:
            self.tracker.reset()
            self._cancellation_pending = False

        return outcome

    async def _invoke_analysis(
        self, profile: UserProfile, snapshot: StockSnapshot, token: CancellationToken
    ) -> AnalysisResult:
        try:
            result = self.analyze(profile, snapshot)
            if inspect.isawaitable(result):
                result = await result
        except AnalysisFailure:
            raise
        except Exception as exc:
            # A canceled run reports the cancellation, not the analyzer's failure
            token.raise_if_cancelled()
            logger.error("Analysis function failed for %s: %s", snapshot.ticker, exc, exc_info=True)
            raise AnalysisFailure(ANALYSIS_ERROR) from exc

        token.raise_if_cancelled()
        if not result:
            logger.error("Analysis result is empty for %s", snapshot.ticker)
            raise AnalysisFailure(ANALYSIS_ERROR)
        return result

    async def _load_historical(
        self, ticker: str
    ) -> Tuple[Optional[Dict[Period, HistoricalSeries]], Optional[str]]:
        try:
            series = await fetch_all_periods(
                self.provider.fetch_series, ticker, timeout=self.fetcher.timeout
            )
        except Exception as exc:
            logger.warning("Historical data unavailable for %s: %s", ticker, exc)
            return None, HISTORICAL_UNAVAILABLE
        return series, None

    # ---- notices and events ----

    def _hydrate_from_cache(
        self,
        future: asyncio.Future,
        ticker: str,
        cache_key: str,
        record: CachedRecord,
    ) -> None:
        notice = (
            f"Loaded from recent analysis cache ({self.cache.describe_age(record.cached_at)} old)."
        )
        self.cache_notice = notice
        if not self._processing:
            # Leave a running pipeline's progress alone
            self._set_queue_notice(None)
            self.tracker.reset()

        outcome = AnalysisOutcome(
            ticker=ticker,
            cache_key=cache_key,
            result=record.analysis_result,
            snapshot=record.snapshot,
            historical=record.historical,
            from_cache=True,
            notice=notice,
        )
        logger.debug("Serving %s from cache", cache_key)
        self._emit("cache_hit", notice)
        self._resolve(future, outcome)

    def _announce_start(self, request: AnalysisRequest, from_queue: bool) -> None:
        if not from_queue:
            self._set_queue_notice(None)
        elif self._queue:
            self._set_queue_notice(
                f"Processing queued analysis for {request.ticker} ({len(self._queue)} waiting)."
            )
        else:
            self._set_queue_notice(f"Processing queued analysis for {request.ticker}...")

    def _set_queue_notice(self, notice: Optional[str]) -> None:
        self.queue_notice = notice
        self._emit("queue", {"notice": notice, "queued": len(self._queue)})

    def _on_progress(self, tracker: ProgressTracker) -> None:
        self._emit("stage", {"stage": tracker.stage, "percent": tracker.percent})

    def _resolve(self, future: asyncio.Future, outcome: AnalysisOutcome) -> None:
        self.last_outcome = outcome
        if not future.done():
            future.set_result(outcome)
        self._emit("outcome", outcome)

    def _emit(self, kind: str, payload: Any = None) -> None:
        event = OrchestratorEvent(kind, payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                logger.error("Listener failed on %s event: %s", kind, exc, exc_info=True)
