"""Rule-based snapshot scoring used as the default analysis function."""

import logging
from typing import List, Optional

from ..domain.models import (
    AnalysisResult,
    InvestmentHorizon,
    InvestmentObjective,
    RiskTolerance,
    StockSnapshot,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Highest risk score a profile is comfortable with
RISK_CEILING = {
    RiskTolerance.LOW: 4,
    RiskTolerance.MODERATE: 6,
    RiskTolerance.HIGH: 8,
}


def calculate_quality_score(fundamentals: dict) -> int:
    """0-100 quality score from margins, growth and leverage."""
    score = 50
    margin = fundamentals.get("net_margin_pct")
    growth = fundamentals.get("revenue_growth_yoy_pct")
    leverage = fundamentals.get("debt_to_equity")

    if margin is not None:
        score += 15 if margin >= 20 else (5 if margin >= 10 else -10)
    if growth is not None:
        score += 15 if growth >= 10 else (0 if growth >= 0 else -15)
    if leverage is not None:
        score += 10 if leverage < 0.5 else (-10 if leverage > 2 else 0)

    return max(0, min(100, score))


def calculate_risk_score(snapshot: StockSnapshot) -> int:
    """1-10 risk score from valuation stretch and distance to the 52w range."""
    technicals = snapshot.technicals
    fundamentals = snapshot.fundamentals
    score = 5

    pe = fundamentals.get("trailing_pe")
    if pe is not None:
        score += 2 if pe > 50 else (1 if pe > 30 else 0)

    high = technicals.get("price_52w_high")
    low = technicals.get("price_52w_low")
    price = snapshot.price
    if high and low and high > low and price:
        position = (price - low) / (high - low)
        if position < 0.25:
            score += 1

    rsi = technicals.get("rsi14")
    if rsi is not None and (rsi > 70 or rsi < 30):
        score += 1

    volatility = technicals.get("volatility_pct")
    if volatility is not None and volatility > 45:
        score += 1

    return max(1, min(10, score))


def _trend_view(technicals: dict) -> Optional[str]:
    price = technicals.get("price")
    sma200 = technicals.get("sma200")
    if not price or not sma200:
        return None
    if price >= sma200:
        return "Price is above its 200-day average (uptrend intact)."
    return "Price is below its 200-day average (trend is weak)."


def analyze(profile: UserProfile, snapshot: StockSnapshot) -> AnalysisResult:
    """
    Score a snapshot against an investor profile.

    Deterministic: the same profile and snapshot always give the same result.
    """
    if not snapshot.price:
        raise ValueError(f"Analysis requires a price for {snapshot.ticker}")

    quality = calculate_quality_score(snapshot.fundamentals)
    risk = calculate_risk_score(snapshot)
    ceiling = RISK_CEILING[profile.risk_tolerance]

    conviction = quality
    if risk > ceiling:
        conviction -= 10 * (risk - ceiling)
    if profile.horizon == InvestmentHorizon.LONG:
        conviction += 5

    dividend = snapshot.fundamentals.get("dividend_yield_pct") or 0.0
    if profile.objective == InvestmentObjective.INCOME:
        conviction += 10 if dividend >= 2 else -10
    elif profile.objective == InvestmentObjective.GROWTH:
        growth = snapshot.fundamentals.get("revenue_growth_yoy_pct") or 0.0
        conviction += 10 if growth >= 10 else 0
    conviction = max(0, min(100, conviction))

    if conviction >= 65:
        recommendation = "accumulate"
    elif conviction >= 45:
        recommendation = "hold"
    else:
        recommendation = "avoid"

    takeaways: List[str] = [f"Quality score {quality}/100, risk score {risk}/10."]
    if risk > ceiling:
        takeaways.append(
            f"Risk is above what a {profile.risk_tolerance.value}-tolerance profile usually accepts."
        )
    trend = _trend_view(snapshot.technicals)
    if trend:
        takeaways.append(trend)
    if profile.objective == InvestmentObjective.INCOME and dividend < 2:
        takeaways.append("Dividend yield is too low for an income objective.")

    name = snapshot.name or snapshot.ticker
    logger.debug(
        "Scored %s: quality=%d risk=%d conviction=%d", snapshot.ticker, quality, risk, conviction
    )
    return AnalysisResult(
        ticker=snapshot.ticker,
        name=snapshot.name,
        headline_view=f"{name}: {recommendation} (conviction {conviction}/100)",
        risk_score=risk,
        conviction_score=conviction,
        recommendation=recommendation,
        key_takeaways=takeaways,
    )
