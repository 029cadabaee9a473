"""Live market data provider: yfinance with Stooq fallback."""

import asyncio
import logging
from datetime import datetime, timedelta
from io import StringIO
from typing import Optional

import httpx
import pandas as pd
import yfinance as yf

from ..config import PERIOD_RANGES, Config
from ..domain.models import HistoricalSeries, Period, StockSnapshot, normalize_ticker
from ..services.metrics import calculate_snapshot_technicals, frame_to_points

logger = logging.getLogger(__name__)

# Stooq lookback in calendar days per yfinance range
STOOQ_PERIOD_DAYS = {"1mo": 30, "3mo": 90, "6mo": 180, "1y": 365, "5y": 1825}

# yfinance info field -> snapshot fundamentals key (percent fields scaled below)
INFO_FUNDAMENTALS = {
    "trailingPE": "trailing_pe",
    "forwardPE": "forward_pe",
    "debtToEquity": "debt_to_equity",
}
INFO_PERCENT_FUNDAMENTALS = {
    "dividendYield": "dividend_yield_pct",
    "revenueGrowth": "revenue_growth_yoy_pct",
    "earningsGrowth": "eps_growth_yoy_pct",
    "profitMargins": "net_margin_pct",
    "returnOnEquity": "roe",
}


class MarketDataProvider:
    """
    Fetches snapshots and historical series from live sources.

    Strategy:
    - Snapshot: yfinance 1y daily history (technicals) + info (fundamentals)
    - Series: yfinance, falling back to the Stooq CSV API on any failure

    Retries and timeouts are applied by the caller; every method here makes a
    single attempt per source and raises on failure.
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
    ):
        self.config = config
        self.http_client = http_client
        self.semaphore = semaphore

    async def fetch_snapshot(self, ticker: str) -> StockSnapshot:
        ticker = normalize_ticker(ticker)
        if not ticker:
            raise ValueError("Ticker is required")

        logger.info("Fetching snapshot for %s", ticker)
        history = await self._fetch_yfinance(ticker, "1y")
        if history is None:
            raise ValueError(f"Stock data not found for ticker: {ticker}")

        info = await self._fetch_info(ticker)
        fundamentals = {
            target: _as_float(info.get(source))
            for source, target in INFO_FUNDAMENTALS.items()
        }
        for source, target in INFO_PERCENT_FUNDAMENTALS.items():
            value = _as_float(info.get(source))
            fundamentals[target] = value * 100 if value is not None else None

        sentiment = {
            "analyst_consensus": info.get("recommendationKey"),
            "analyst_target_mean": _as_float(info.get("targetMeanPrice")),
            "news_themes": [],
        }

        return StockSnapshot(
            ticker=ticker,
            name=info.get("longName") or info.get("shortName") or ticker,
            currency=info.get("currency") or "USD",
            fundamentals=fundamentals,
            technicals=calculate_snapshot_technicals(history),
            sentiment=sentiment,
        )

    async def fetch_series(self, ticker: str, period: Period) -> HistoricalSeries:
        ticker = normalize_ticker(ticker)
        period = Period(period)
        yf_range = PERIOD_RANGES[period.value]

        try:
            df = await self._fetch_yfinance(ticker, yf_range)
        except Exception as exc:
            logger.warning("yfinance series failed for %s (%s): %s", ticker, yf_range, exc)
            df = None

        if df is None:
            logger.info("→ Falling back to Stooq for %s (%s)", ticker, yf_range)
            df = await self._fetch_stooq(ticker, yf_range)

        if df is None:
            raise ValueError(f"No historical data available for {ticker} ({period.value})")

        return HistoricalSeries(ticker=ticker, period=period, points=frame_to_points(df))

    async def _fetch_yfinance(self, ticker: str, period: str) -> Optional[pd.DataFrame]:
        """Fetch daily history from yfinance (runs in thread pool to avoid blocking)."""

        def _download():
            return yf.download(
                ticker,
                period=period,
                interval="1d",
                progress=False,
                auto_adjust=True,
            )

        async with self.semaphore:
            loop = asyncio.get_running_loop()
            df = await loop.run_in_executor(None, _download)

        if df is None or df.empty:
            return None

        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)
        df.columns = [str(col).capitalize() for col in df.columns]

        if "Close" not in df.columns:
            logger.warning("Missing Close column for %s", ticker)
            return None

        logger.info("yfinance: loaded %d rows for %s", len(df), ticker)
        return df.dropna(subset=["Close"])

    async def _fetch_info(self, ticker: str) -> dict:
        def _info():
            return yf.Ticker(ticker).info or {}

        async with self.semaphore:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(None, _info)
            except Exception as exc:
                # Fundamentals are optional; technicals alone still make a snapshot
                logger.warning("yfinance info unavailable for %s: %s", ticker, exc)
                return {}

    async def _fetch_stooq(self, ticker: str, period: str) -> Optional[pd.DataFrame]:
        """
        Fetch daily data from the Stooq CSV API.

        Stooq expects US tickers with a .US suffix; it is added only for plain
        alphabetic tickers.
        """
        end_date = datetime.now()
        start_date = end_date - timedelta(days=STOOQ_PERIOD_DAYS.get(period, 365))

        stooq_ticker = ticker
        if "." not in ticker and len(ticker) <= 5 and ticker.isalpha():
            stooq_ticker = f"{ticker}.US"

        url = (
            f"https://stooq.com/q/d/l/"
            f"?s={stooq_ticker}"
            f"&d1={start_date.strftime('%Y%m%d')}"
            f"&d2={end_date.strftime('%Y%m%d')}"
            f"&i=d"
        )

        async with self.semaphore:
            response = await self.http_client.get(
                url,
                timeout=self.config.http_timeout,
                follow_redirects=True,
            )
            response.raise_for_status()

        text = response.text.strip()
        if not text or text.lower().startswith("no data"):
            return None

        df = pd.read_csv(StringIO(text), parse_dates=["Date"], index_col="Date")
        if df.empty:
            return None

        df.columns = [col.capitalize() for col in df.columns]
        df = df.sort_index()

        logger.info("Stooq: loaded %d rows for %s", len(df), ticker)
        return df.dropna()


def _as_float(value) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
