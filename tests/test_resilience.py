"""Tests for timeout, retry/backoff and cancellation of upstream calls."""

import asyncio
import unittest
from unittest.mock import AsyncMock

from aurora.domain.models import AnalysisFailure, ErrorCategory
from aurora.services.errors import CANCELLATION_ERROR
from aurora.services.resilience import (
    CancellationToken,
    FetchTimeoutError,
    ResilientFetcher,
    with_timeout,
)


class TestWithTimeout(unittest.IsolatedAsyncioTestCase):

    async def test_returns_result_in_time(self):
        async def quick():
            return "ok"

        self.assertEqual(await with_timeout(quick(), 1.0), "ok")

    async def test_propagates_operation_error(self):
        async def broken():
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            await with_timeout(broken(), 1.0)

    async def test_slow_operation_is_abandoned_not_cancelled(self):
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.05)
            finished.set()
            return "late"

        with self.assertRaises(FetchTimeoutError) as ctx:
            await with_timeout(slow(), 0.01)
        self.assertIn("timeout", str(ctx.exception).lower())

        # The abandoned call keeps running in the background
        await asyncio.wait_for(finished.wait(), 1.0)


class TestResilientFetcher(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.sleep = AsyncMock()
        self.fetcher = ResilientFetcher(timeout=1.0, sleep=self.sleep)

    async def test_first_attempt_success(self):
        operation = AsyncMock(return_value={"price": 1})
        result = await self.fetcher.execute_with_retry(operation)
        self.assertEqual(result, {"price": 1})
        self.assertEqual(operation.call_count, 1)
        self.sleep.assert_not_called()

    async def test_fails_twice_then_succeeds(self):
        operation = AsyncMock(side_effect=[
            RuntimeError("HTTP 503"),
            RuntimeError("HTTP 503"),
            "snapshot",
        ])

        result = await self.fetcher.execute_with_retry(operation)

        self.assertEqual(result, "snapshot")
        self.assertEqual(operation.call_count, 3)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [0.5, 1.0])

    async def test_all_attempts_fail_yields_network_error(self):
        operation = AsyncMock(side_effect=RuntimeError("HTTP 502 Bad Gateway"))

        with self.assertRaises(AnalysisFailure) as ctx:
            await self.fetcher.execute_with_retry(operation)

        self.assertEqual(operation.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)
        self.assertEqual(ctx.exception.detail.category, ErrorCategory.NETWORK)

    async def test_last_error_message_drives_classification(self):
        operation = AsyncMock(side_effect=RuntimeError("ticker not found"))

        with self.assertRaises(AnalysisFailure) as ctx:
            await self.fetcher.execute_with_retry(operation)

        self.assertEqual(ctx.exception.detail.category, ErrorCategory.DATA)

    async def test_none_result_counts_as_failure(self):
        operation = AsyncMock(side_effect=[None, "snapshot"])
        result = await self.fetcher.execute_with_retry(operation)
        self.assertEqual(result, "snapshot")
        self.assertEqual(operation.call_count, 2)

    async def test_timeout_is_retried(self):
        calls = 0

        async def sometimes_slow():
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(0.2)
            return "snapshot"

        fetcher = ResilientFetcher(timeout=0.01, sleep=self.sleep)
        self.assertEqual(await fetcher.execute_with_retry(sometimes_slow), "snapshot")
        self.assertEqual(calls, 2)

    async def test_cancelled_before_first_attempt(self):
        token = CancellationToken()
        token.cancel()
        operation = AsyncMock(return_value="snapshot")

        with self.assertRaises(AnalysisFailure) as ctx:
            await self.fetcher.execute_with_retry(operation, token)

        self.assertIs(ctx.exception.detail, CANCELLATION_ERROR)
        operation.assert_not_called()

    async def test_cancelled_after_failure_stops_retrying(self):
        token = CancellationToken()

        async def fail_and_cancel():
            token.cancel()
            raise RuntimeError("HTTP 503")

        operation = AsyncMock(side_effect=fail_and_cancel)

        with self.assertRaises(AnalysisFailure) as ctx:
            await self.fetcher.execute_with_retry(operation, token)

        self.assertIs(ctx.exception.detail, CANCELLATION_ERROR)
        self.assertEqual(operation.call_count, 1)
        self.sleep.assert_not_called()

    async def test_cancelled_during_backoff(self):
        token = CancellationToken()

        async def cancel_while_sleeping(_delay):
            token.cancel()

        fetcher = ResilientFetcher(timeout=1.0, sleep=cancel_while_sleeping)
        operation = AsyncMock(side_effect=RuntimeError("HTTP 503"))

        with self.assertRaises(AnalysisFailure) as ctx:
            await fetcher.execute_with_retry(operation, token)

        self.assertIs(ctx.exception.detail, CANCELLATION_ERROR)
        self.assertEqual(operation.call_count, 1)


if __name__ == "__main__":
    unittest.main()
