"""Offline demo dataset provider."""

import asyncio
import hashlib
import logging
from typing import Dict

import numpy as np
import pandas as pd

from ..config import DEMO_TICKERS
from ..domain.models import HistoricalSeries, Period, StockSnapshot, normalize_ticker
from ..services.metrics import frame_to_points

logger = logging.getLogger(__name__)

# Trading days per historical period
PERIOD_DAYS = {
    Period.ONE_MONTH: 21,
    Period.THREE_MONTHS: 63,
    Period.SIX_MONTHS: 126,
    Period.ONE_YEAR: 252,
    Period.FIVE_YEARS: 1260,
}

DEMO_DATA: Dict[str, dict] = {
    "AAPL": {
        "name": "Apple Inc.",
        "fundamentals": {
            "trailing_pe": 29.4, "forward_pe": 27.1, "dividend_yield_pct": 0.5,
            "revenue_growth_yoy_pct": 2.1, "eps_growth_yoy_pct": 10.2,
            "net_margin_pct": 25.3, "debt_to_equity": 1.8, "roe": 147.0,
        },
        "technicals": {"price": 189.5, "price_52w_high": 199.6, "price_52w_low": 164.1,
                       "sma50": 185.2, "sma200": 181.0, "rsi14": 58.0},
        "sentiment": {"analyst_consensus": "buy", "analyst_target_mean": 205.0,
                      "news_themes": ["services growth", "buybacks"]},
    },
    "MSFT": {
        "name": "Microsoft Corporation",
        "fundamentals": {
            "trailing_pe": 35.8, "forward_pe": 31.0, "dividend_yield_pct": 0.7,
            "revenue_growth_yoy_pct": 15.7, "eps_growth_yoy_pct": 20.1,
            "net_margin_pct": 36.3, "debt_to_equity": 0.4, "roe": 38.5,
        },
        "technicals": {"price": 415.2, "price_52w_high": 430.8, "price_52w_low": 309.5,
                       "sma50": 405.0, "sma200": 375.3, "rsi14": 61.0},
        "sentiment": {"analyst_consensus": "strong_buy", "analyst_target_mean": 460.0,
                      "news_themes": ["cloud", "ai copilots"]},
    },
    "TSLA": {
        "name": "Tesla, Inc.",
        "fundamentals": {
            "trailing_pe": 62.5, "forward_pe": 70.2, "dividend_yield_pct": 0.0,
            "revenue_growth_yoy_pct": 3.5, "eps_growth_yoy_pct": -23.0,
            "net_margin_pct": 13.0, "debt_to_equity": 0.1, "roe": 27.9,
        },
        "technicals": {"price": 182.3, "price_52w_high": 299.3, "price_52w_low": 138.8,
                       "sma50": 176.4, "sma200": 210.7, "rsi14": 44.0},
        "sentiment": {"analyst_consensus": "hold", "analyst_target_mean": 190.0,
                      "news_themes": ["price cuts", "autonomy"]},
    },
    "GOOGL": {
        "name": "Alphabet Inc.",
        "fundamentals": {
            "trailing_pe": 24.6, "forward_pe": 21.4, "dividend_yield_pct": 0.5,
            "revenue_growth_yoy_pct": 13.5, "eps_growth_yoy_pct": 31.0,
            "net_margin_pct": 26.7, "debt_to_equity": 0.1, "roe": 29.8,
        },
        "technicals": {"price": 168.9, "price_52w_high": 176.4, "price_52w_low": 120.2,
                       "sma50": 162.0, "sma200": 147.5, "rsi14": 63.0},
        "sentiment": {"analyst_consensus": "buy", "analyst_target_mean": 190.0,
                      "news_themes": ["search share", "gemini"]},
    },
    "NVDA": {
        "name": "NVIDIA Corporation",
        "fundamentals": {
            "trailing_pe": 68.0, "forward_pe": 38.5, "dividend_yield_pct": 0.02,
            "revenue_growth_yoy_pct": 125.9, "eps_growth_yoy_pct": 288.0,
            "net_margin_pct": 53.4, "debt_to_equity": 0.2, "roe": 91.5,
        },
        "technicals": {"price": 880.1, "price_52w_high": 974.0, "price_52w_low": 373.6,
                       "sma50": 820.3, "sma200": 600.4, "rsi14": 66.0},
        "sentiment": {"analyst_consensus": "strong_buy", "analyst_target_mean": 1000.0,
                      "news_themes": ["data center demand", "supply constraints"]},
    },
}


class DemoMarketDataProvider:
    """
    Serves the bundled demo dataset with a simulated network delay.

    Snapshots come from DEMO_DATA; historical series are generated from a
    random walk seeded by the ticker, so repeated calls are identical.
    """

    def __init__(self, latency: float = 0.5):
        self.latency = latency

    async def fetch_snapshot(self, ticker: str) -> StockSnapshot:
        ticker = self._validate(ticker)
        await asyncio.sleep(self.latency)

        data = DEMO_DATA[ticker]
        logger.debug("Demo snapshot served for %s", ticker)
        return StockSnapshot(
            ticker=ticker,
            name=data["name"],
            fundamentals=dict(data["fundamentals"]),
            technicals=dict(data["technicals"]),
            sentiment=dict(data["sentiment"]),
        )

    async def fetch_series(self, ticker: str, period: Period) -> HistoricalSeries:
        ticker = self._validate(ticker)
        period = Period(period)
        await asyncio.sleep(self.latency)

        frame = self._synthetic_frame(ticker, PERIOD_DAYS[period])
        return HistoricalSeries(ticker=ticker, period=period, points=frame_to_points(frame))

    def _validate(self, ticker: str) -> str:
        normalized = normalize_ticker(ticker)
        if not normalized:
            raise ValueError("Ticker is required")
        if normalized not in DEMO_DATA:
            raise ValueError(
                f"Stock data not found for ticker: {normalized}. "
                f"Available tickers: {', '.join(DEMO_TICKERS)}"
            )
        return normalized

    @staticmethod
    def _synthetic_frame(ticker: str, days: int) -> pd.DataFrame:
        """Random walk ending at the snapshot price."""
        seed = int(hashlib.sha256(ticker.encode("utf-8")).hexdigest()[:8], 16)
        rng = np.random.default_rng(seed)

        returns = rng.normal(loc=0.0005, scale=0.018, size=days)
        path = np.cumprod(1 + returns)
        closes = path / path[-1] * DEMO_DATA[ticker]["technicals"]["price"]
        volumes = rng.integers(5_000_000, 80_000_000, size=days)

        end = pd.Timestamp("2024-06-28")
        index = pd.bdate_range(end=end, periods=days)
        return pd.DataFrame({"Close": closes, "Volume": volumes}, index=index)
