"""Command-line entry point for the analysis orchestrator."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .analytics import analyze
from .config import Config
from .domain.models import AnalysisOutcome, UserProfile
from .http_client import close_http_client, get_http_client, make_semaphore
from .providers import DemoMarketDataProvider, MarketDataProvider
from .services.orchestrator import AnalysisOrchestrator, OrchestratorEvent

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level, logging.INFO),
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aurora-analyze",
        description="Analyze one or more tickers against an investor profile.",
    )
    parser.add_argument("tickers", nargs="+", help="Ticker symbols, e.g. AAPL MSFT")
    parser.add_argument("--risk", default="moderate", choices=["low", "moderate", "high"])
    parser.add_argument("--horizon", default="5-10", choices=["1-3", "5-10", "10+"])
    parser.add_argument("--objective", default="balanced", choices=["growth", "income", "balanced"])
    parser.add_argument(
        "--provider",
        choices=["demo", "yfinance"],
        help="Override MARKET_DATA_PROVIDER",
    )
    return parser


def build_provider(config: Config):
    if config.market_data_provider == "yfinance":
        return MarketDataProvider(
            config=config,
            http_client=get_http_client(config),
            semaphore=make_semaphore(config),
        )
    return DemoMarketDataProvider()


def format_outcome(outcome: AnalysisOutcome) -> str:
    if outcome.error is not None:
        return (
            f"✗ {outcome.ticker or '?'} [{outcome.error.category.value}] "
            f"{outcome.error.message}\n  → {outcome.error.suggestion}"
        )

    result = outcome.result
    lines = [f"✓ {result.headline_view}"]
    lines.extend(f"  • {takeaway}" for takeaway in result.key_takeaways)
    if outcome.notice:
        lines.append(f"  ({outcome.notice})")
    if outcome.historical_error:
        lines.append(f"  ⚠ {outcome.historical_error}")
    elif outcome.historical:
        periods = ", ".join(period.value for period in outcome.historical)
        lines.append(f"  History loaded: {periods}")
    return "\n".join(lines)


def _log_event(event: OrchestratorEvent) -> None:
    if event.kind == "stage":
        logger.info("Progress: %s (%d%%)", event.payload["stage"].value, event.payload["percent"])
    elif event.kind == "queue" and event.payload["notice"]:
        logger.info(event.payload["notice"])


async def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    if args.provider:
        config.market_data_provider = args.provider
    configure_logging(config.log_level)

    profile = UserProfile.from_strings(args.risk, args.horizon, args.objective)
    orchestrator = AnalysisOrchestrator(provider=build_provider(config), analyze=analyze)
    orchestrator.subscribe(_log_event)

    logger.info(
        "Analyzing %d ticker(s) with provider=%s", len(args.tickers), config.market_data_provider
    )

    try:
        futures = [orchestrator.submit(ticker, profile) for ticker in args.tickers]
        outcomes = await asyncio.gather(*futures)
        await orchestrator.wait_idle()
    finally:
        await close_http_client()

    for outcome in outcomes:
        print(format_outcome(outcome))

    return 0 if all(outcome.ok for outcome in outcomes) else 1


def run() -> None:
    """Synchronous entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    run()
