"""Domain models for the analysis orchestrator."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RiskTolerance(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class InvestmentHorizon(str, Enum):
    SHORT = "1-3"
    MEDIUM = "5-10"
    LONG = "10+"


class InvestmentObjective(str, Enum):
    GROWTH = "growth"
    INCOME = "income"
    BALANCED = "balanced"


class Period(str, Enum):
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    FIVE_YEARS = "5Y"


class ErrorCategory(str, Enum):
    NETWORK = "network"
    DATA = "data"
    ANALYSIS = "analysis"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class UserProfile:
    """Investor profile that shapes the analysis."""
    risk_tolerance: RiskTolerance
    horizon: InvestmentHorizon
    objective: InvestmentObjective

    @classmethod
    def from_strings(cls, risk_tolerance: str, horizon: str, objective: str) -> "UserProfile":
        """Build a profile from raw values (raises ValueError on unknown values)."""
        return cls(
            risk_tolerance=RiskTolerance(risk_tolerance.strip().lower()),
            horizon=InvestmentHorizon(horizon.strip()),
            objective=InvestmentObjective(objective.strip().lower()),
        )


def normalize_ticker(ticker: str) -> str:
    """Trim and uppercase a raw ticker."""
    return (ticker or "").strip().upper()


def build_cache_key(ticker: str, profile: UserProfile) -> str:
    """
    Fingerprint a (ticker, profile) pair.

    Example:
        build_cache_key(" aapl", profile) -> "AAPL::moderate|5-10|growth"
    """
    return (
        f"{normalize_ticker(ticker)}::"
        f"{profile.risk_tolerance.value}|{profile.horizon.value}|{profile.objective.value}"
    )


@dataclass
class StockSnapshot:
    """Point-in-time market data for a ticker."""
    ticker: str
    technicals: Dict[str, Optional[float]]
    fundamentals: Dict[str, Optional[float]] = field(default_factory=dict)
    sentiment: Dict[str, Any] = field(default_factory=dict)
    name: Optional[str] = None
    currency: str = "USD"

    @property
    def price(self) -> float:
        return float(self.technicals.get("price") or 0.0)


@dataclass
class PricePoint:
    date: str
    price: float
    volume: int = 0


@dataclass
class HistoricalSeries:
    """Daily closing prices for one period."""
    ticker: str
    period: Period
    points: List[PricePoint] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Output of the analysis function."""
    ticker: str
    headline_view: str
    risk_score: int
    conviction_score: int
    recommendation: str
    key_takeaways: List[str] = field(default_factory=list)
    name: Optional[str] = None
    generated_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class AnalysisRequest:
    """A submitted analyze intent waiting for (or entering) execution."""
    ticker: str
    profile: UserProfile
    cache_key: str
    enqueued_at: float


@dataclass
class CachedRecord:
    snapshot: StockSnapshot
    analysis_result: AnalysisResult
    cached_at: float = 0.0
    historical: Optional[Dict[Period, HistoricalSeries]] = None


@dataclass(frozen=True)
class UserFriendlyError:
    """Categorized error safe to show to the user."""
    category: ErrorCategory
    message: str
    suggestion: str


class AnalysisFailure(Exception):
    """Exception carrying an already classified error."""

    def __init__(self, detail: UserFriendlyError):
        super().__init__(detail.message)
        self.detail = detail


@dataclass
class AnalysisOutcome:
    """Terminal outcome of one submitted request."""
    ticker: str
    cache_key: str
    result: Optional[AnalysisResult] = None
    snapshot: Optional[StockSnapshot] = None
    historical: Optional[Dict[Period, HistoricalSeries]] = None
    error: Optional[UserFriendlyError] = None
    from_cache: bool = False
    notice: Optional[str] = None
    historical_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None
