"""Tests for the concurrent all-or-nothing historical join."""

import asyncio
import unittest

from aurora.domain.models import HistoricalSeries, Period
from aurora.services.historical import DEFAULT_PERIODS, fetch_all_periods
from aurora.services.resilience import FetchTimeoutError


class TestFetchAllPeriods(unittest.IsolatedAsyncioTestCase):

    async def test_one_entry_per_period(self):
        calls = []

        async def fetch_series(ticker, period):
            calls.append((ticker, period))
            return HistoricalSeries(ticker=ticker, period=period)

        result = await fetch_all_periods(fetch_series, "AAPL")

        self.assertEqual(set(result), set(Period))
        self.assertEqual(len(result), 5)
        for period, series in result.items():
            self.assertEqual(series.period, period)
        self.assertEqual(sorted(p.value for _, p in calls), sorted(p.value for p in DEFAULT_PERIODS))

    async def test_fetches_run_concurrently(self):
        in_flight = 0
        peak = 0

        async def fetch_series(ticker, period):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return HistoricalSeries(ticker=ticker, period=period)

        await fetch_all_periods(fetch_series, "AAPL")
        self.assertEqual(peak, 5)

    async def test_single_failure_fails_whole_join(self):
        async def fetch_series(ticker, period):
            if period == Period.FIVE_YEARS:
                raise RuntimeError("No historical data available")
            return HistoricalSeries(ticker=ticker, period=period)

        with self.assertRaises(RuntimeError):
            await fetch_all_periods(fetch_series, "AAPL")

    async def test_each_fetch_has_its_own_timeout(self):
        async def fetch_series(ticker, period):
            if period == Period.ONE_MONTH:
                await asyncio.sleep(0.5)
            return HistoricalSeries(ticker=ticker, period=period)

        with self.assertRaises(FetchTimeoutError):
            await fetch_all_periods(fetch_series, "AAPL", timeout=0.01)

    async def test_custom_periods(self):
        async def fetch_series(ticker, period):
            return HistoricalSeries(ticker=ticker, period=period)

        result = await fetch_all_periods(
            fetch_series, "MSFT", periods=[Period.ONE_YEAR, Period.SIX_MONTHS]
        )
        self.assertEqual(set(result), {Period.ONE_YEAR, Period.SIX_MONTHS})


if __name__ == "__main__":
    unittest.main()
