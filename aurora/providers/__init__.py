"""Market data providers."""

from .demo import DemoMarketDataProvider
from .market import MarketDataProvider

__all__ = ["DemoMarketDataProvider", "MarketDataProvider"]
