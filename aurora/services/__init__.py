"""Orchestration services: errors, retries, history, progress and the orchestrator."""

from .errors import CANCELLATION_ERROR, QUEUE_FULL_ERROR, classify_error
from .historical import fetch_all_periods
from .orchestrator import AnalysisOrchestrator, OrchestratorEvent
from .progress import LoadingStage, ProgressTracker
from .resilience import CancellationToken, FetchTimeoutError, ResilientFetcher, with_timeout

__all__ = [
    "CANCELLATION_ERROR",
    "QUEUE_FULL_ERROR",
    "AnalysisOrchestrator",
    "CancellationToken",
    "FetchTimeoutError",
    "LoadingStage",
    "OrchestratorEvent",
    "ProgressTracker",
    "ResilientFetcher",
    "classify_error",
    "fetch_all_periods",
    "with_timeout",
]
