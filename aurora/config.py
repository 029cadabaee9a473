"""Configuration for the Aurora analysis orchestrator."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Orchestration limits (fixed, not read from the environment)
FETCH_TIMEOUT_SECONDS = 10.0
MAX_RETRIES = 2
BASE_BACKOFF_SECONDS = 0.5
CACHE_TTL_SECONDS = 10 * 60  # 10 minutes
MAX_CACHE_ENTRIES = 5
MAX_QUEUE_LENGTH = 5

# Tickers bundled with the demo dataset
DEMO_TICKERS = ("AAPL", "MSFT", "TSLA", "GOOGL", "NVDA")

# Historical periods fetched for every analysis, in display order
HISTORICAL_PERIODS = ("1M", "3M", "6M", "1Y", "5Y")

# yfinance range for each historical period
PERIOD_RANGES = {
    "1M": "1mo",
    "3M": "3mo",
    "6M": "6mo",
    "1Y": "1y",
    "5Y": "5y",
}


@dataclass
class Config:
    """Ambient settings loaded from environment variables."""

    # Market data source: "demo" or "yfinance"
    market_data_provider: str = "demo"

    # Network settings (transport level, independent of the orchestration timeout)
    http_timeout: int = 30
    max_concurrent_requests: int = 5

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        provider = os.getenv("MARKET_DATA_PROVIDER", "demo").strip().lower() or "demo"
        if provider not in ("demo", "yfinance"):
            raise ValueError(
                f"MARKET_DATA_PROVIDER must be 'demo' or 'yfinance', got {provider!r}"
            )

        return cls(
            market_data_provider=provider,
            http_timeout=int(os.getenv("HTTP_TIMEOUT", "30")),
            max_concurrent_requests=int(os.getenv("MAX_CONCURRENT_REQUESTS", "5")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
