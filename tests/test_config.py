"""Tests for environment-driven configuration."""

import os
import unittest
from unittest.mock import patch

from aurora.config import (
    CACHE_TTL_SECONDS,
    DEMO_TICKERS,
    HISTORICAL_PERIODS,
    MAX_CACHE_ENTRIES,
    MAX_QUEUE_LENGTH,
    Config,
)


class TestConfigFromEnv(unittest.TestCase):

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = Config.from_env()
        self.assertEqual(config.market_data_provider, "demo")
        self.assertEqual(config.http_timeout, 30)
        self.assertEqual(config.max_concurrent_requests, 5)
        self.assertEqual(config.log_level, "INFO")

    @patch.dict(os.environ, {
        "MARKET_DATA_PROVIDER": " YFinance ",
        "HTTP_TIMEOUT": "12",
        "MAX_CONCURRENT_REQUESTS": "2",
        "LOG_LEVEL": "debug",
    }, clear=True)
    def test_overrides(self):
        config = Config.from_env()
        self.assertEqual(config.market_data_provider, "yfinance")
        self.assertEqual(config.http_timeout, 12)
        self.assertEqual(config.max_concurrent_requests, 2)
        self.assertEqual(config.log_level, "DEBUG")

    @patch.dict(os.environ, {"MARKET_DATA_PROVIDER": "finnhub"}, clear=True)
    def test_unknown_provider_rejected(self):
        with self.assertRaises(ValueError):
            Config.from_env()


class TestFixedLimits(unittest.TestCase):

    def test_orchestration_limits(self):
        self.assertEqual(CACHE_TTL_SECONDS, 600)
        self.assertEqual(MAX_CACHE_ENTRIES, 5)
        self.assertEqual(MAX_QUEUE_LENGTH, 5)

    def test_demo_tickers_and_periods(self):
        self.assertEqual(DEMO_TICKERS, ("AAPL", "MSFT", "TSLA", "GOOGL", "NVDA"))
        self.assertEqual(HISTORICAL_PERIODS, ("1M", "3M", "6M", "1Y", "5Y"))


if __name__ == "__main__":
    unittest.main()
