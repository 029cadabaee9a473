"""Pure metric computation functions (no I/O)."""

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from ..domain.models import PricePoint

logger = logging.getLogger(__name__)


def calculate_rsi(prices: pd.Series, period: int = 14) -> Optional[float]:
    """
    Relative Strength Index over the last ``period`` daily moves.

    Uses the plain average of gains and losses in the window (no smoothing).

    Returns:
        RSI value (0-100), 50 for a flat window, or None with too few prices
    """
    if len(prices) <= period:
        return None

    moves = prices.diff().tail(period)
    gains = moves.clip(lower=0).sum()
    losses = -moves.clip(upper=0).sum()

    if losses == 0:
        return 100.0 if gains > 0 else 50.0

    return float(100 - 100 / (1 + gains / losses))


def calculate_sma(prices: pd.Series, period: int = 200) -> Optional[float]:
    """Mean of the last ``period`` prices, or None if the series is shorter."""
    window = prices.tail(period)
    if len(window) < period:
        return None
    return float(window.mean())


def calculate_change_pct(prices: pd.Series, days: int) -> Optional[float]:
    """Percent move of the latest price against the price ``days`` sessions earlier."""
    if len(prices) <= days:
        return None

    base = prices.iloc[-1 - days]
    if not base:
        return None
    return float((prices.iloc[-1] / base - 1) * 100)


def calculate_volatility_annual(prices: pd.Series) -> Optional[float]:
    """
    Annualized volatility of daily returns.

    Returns:
        Annualized volatility as percentage or None
    """
    returns = prices.pct_change().dropna()
    if len(returns) < 30:
        return None

    annual_vol = returns.std() * np.sqrt(252)

    return float(annual_vol * 100) if not np.isnan(annual_vol) else None


def calculate_snapshot_technicals(df: pd.DataFrame) -> dict:
    """
    Technical block of a snapshot from a daily OHLCV DataFrame.

    Args:
        df: DataFrame with at least a Close column (Volume optional)

    Returns:
        Dict with price, 52w range, SMAs, RSI and volume figures
    """
    if "Close" not in df.columns or len(df) < 1:
        return {"price": 0.0}

    close_prices = df["Close"].astype(float)
    technicals = {
        "price": float(close_prices.iloc[-1]),
        "price_52w_high": float(close_prices.tail(252).max()),
        "price_52w_low": float(close_prices.tail(252).min()),
        "sma20": calculate_sma(close_prices, 20),
        "sma50": calculate_sma(close_prices, 50),
        "sma200": calculate_sma(close_prices, 200),
        "rsi14": calculate_rsi(close_prices, 14),
        "change_1m_pct": calculate_change_pct(close_prices, 21),
        "volatility_pct": calculate_volatility_annual(close_prices),
    }

    if "Volume" in df.columns:
        volumes = df["Volume"].astype(float)
        technicals["volume"] = float(volumes.iloc[-1])
        technicals["avg_volume"] = float(volumes.tail(63).mean())

    return technicals


def frame_to_points(df: pd.DataFrame) -> List[PricePoint]:
    """Convert a daily OHLCV DataFrame into dated closing-price points."""
    if df is None or df.empty or "Close" not in df.columns:
        return []

    volumes = df["Volume"] if "Volume" in df.columns else pd.Series(0, index=df.index)
    points = []
    for index, close in df["Close"].items():
        if pd.isna(close):
            continue
        volume = volumes.get(index, 0)
        points.append(PricePoint(
            date=pd.Timestamp(index).strftime("%Y-%m-%d"),
            price=round(float(close), 2),
            volume=0 if pd.isna(volume) else int(volume),
        ))

    logger.debug("Converted %d price points", len(points))
    return points
