"""Concurrent fetch of historical price series across periods."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable

from ..config import FETCH_TIMEOUT_SECONDS, HISTORICAL_PERIODS
from ..domain.models import HistoricalSeries, Period
from .resilience import with_timeout

logger = logging.getLogger(__name__)

SeriesFetcher = Callable[[str, Period], Awaitable[HistoricalSeries]]

DEFAULT_PERIODS = tuple(Period(p) for p in HISTORICAL_PERIODS)


async def fetch_all_periods(
    fetch_series: SeriesFetcher,
    ticker: str,
    periods: Iterable[Period] = DEFAULT_PERIODS,
    timeout: float = FETCH_TIMEOUT_SECONDS,
) -> Dict[Period, HistoricalSeries]:
    """
    Fetch every period concurrently and join the results.

    All-or-nothing: if any single period fails (or times out) the whole call
    fails with that error. Whether a failure is fatal is up to the caller.

    Returns:
        Dict keyed by period with exactly one series per requested period
    """
    periods = list(periods)
    logger.info("Fetching %d historical periods for %s", len(periods), ticker)

    async def _fetch_one(period: Period):
        series = await with_timeout(fetch_series(ticker, period), timeout)
        return period, series

    entries = await asyncio.gather(*(_fetch_one(period) for period in periods))

    logger.debug("Historical join complete for %s", ticker)
    return dict(entries)
