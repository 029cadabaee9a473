"""Domain layer: profiles, snapshots, requests and outcomes."""

from .models import (
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisResult,
    CachedRecord,
    ErrorCategory,
    HistoricalSeries,
    InvestmentHorizon,
    InvestmentObjective,
    Period,
    PricePoint,
    RiskTolerance,
    StockSnapshot,
    UserFriendlyError,
    UserProfile,
    build_cache_key,
    normalize_ticker,
)

__all__ = [
    "AnalysisFailure",
    "AnalysisOutcome",
    "AnalysisRequest",
    "AnalysisResult",
    "CachedRecord",
    "ErrorCategory",
    "HistoricalSeries",
    "InvestmentHorizon",
    "InvestmentObjective",
    "Period",
    "PricePoint",
    "RiskTolerance",
    "StockSnapshot",
    "UserFriendlyError",
    "UserProfile",
    "build_cache_key",
    "normalize_ticker",
]
