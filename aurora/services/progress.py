"""Human-facing loading stage and progress percent."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class LoadingStage(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    PRESENTING = "presenting"


@dataclass(frozen=True)
class StageDetail:
    label: str
    helper: str
    progress: int


STAGE_DETAILS = {
    LoadingStage.IDLE: StageDetail(
        "Ready to analyze",
        "Awaiting ticker and profile information.",
        0,
    ),
    LoadingStage.FETCHING: StageDetail(
        "Fetching stock data...",
        "Contacting the data provider and retrieving the latest snapshot.",
        30,
    ),
    LoadingStage.ANALYZING: StageDetail(
        "Analyzing fundamentals...",
        "Running the analysis engine across fundamentals, technicals, and sentiment.",
        65,
    ),
    LoadingStage.PRESENTING: StageDetail(
        "Generating insights...",
        "Preparing dashboard cards, scenarios, and recommendations.",
        90,
    ),
}

LOADING_SEQUENCE = (LoadingStage.FETCHING, LoadingStage.ANALYZING, LoadingStage.PRESENTING)

_ORDER = {stage: index for index, stage in enumerate(LoadingStage)}


class ProgressTracker:
    """
    Forward-only stage machine: idle -> fetching -> analyzing -> presenting -> idle.

    Purely informational, nothing in the pipeline waits on it. ``on_change`` is
    called with the tracker after every change.
    """

    def __init__(self, on_change: Optional[Callable[["ProgressTracker"], None]] = None):
        self.on_change = on_change
        self.stage = LoadingStage.IDLE
        self.percent = 0

    @property
    def detail(self) -> StageDetail:
        return STAGE_DETAILS[self.stage]

    @property
    def step_index(self) -> int:
        """Position within LOADING_SEQUENCE (0 while idle)."""
        if self.stage in LOADING_SEQUENCE:
            return LOADING_SEQUENCE.index(self.stage)
        return 0

    @property
    def estimated_seconds_remaining(self) -> int:
        return max(2, round(max(100 - self.percent, 5) / 12))

    def advance(self, stage: LoadingStage) -> None:
        """Move forward to ``stage`` (raises ValueError on a backward move)."""
        if _ORDER[stage] <= _ORDER[self.stage]:
            raise ValueError(f"Cannot move from {self.stage.value} to {stage.value}")
        self.stage = stage
        self.percent = STAGE_DETAILS[stage].progress
        logger.debug("Stage -> %s (%d%%)", stage.value, self.percent)
        self._notify()

    def complete(self) -> None:
        """Show 100% ahead of the final reset."""
        self.percent = 100
        self._notify()

    def reset(self) -> None:
        self.stage = LoadingStage.IDLE
        self.percent = 0
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
