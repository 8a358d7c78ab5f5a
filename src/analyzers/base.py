"""Base analyzer interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class PillarResult:
    """Standard result format for all pillar analyzers."""

    score: int  # 0-100, always 0 when not analyzed
    analyzed: bool  # Whether the pillar produced a real measurement
    insights: str = ""  # Human-readable summary
    recommendations: list[str] = field(default_factory=list)
    raw_data: dict = field(default_factory=dict)  # Full analyzer output
    error: str | None = None  # Why the pillar was not analyzed

    def __post_init__(self):
        if self.analyzed:
            self.score = int(round(max(0, min(100, self.score))))
        else:
            self.score = 0
            if not self.error:
                self.error = "Analysis unavailable"

    @classmethod
    def failed(cls, error: str, insights: str = "", raw_data: dict | None = None) -> "PillarResult":
        """A pillar that could not be measured; the pipeline carries on without it."""
        return cls(
            score=0,
            analyzed=False,
            insights=insights or f"Analysis failed: {error}",
            recommendations=[],
            raw_data=raw_data or {},
            error=error or "Analysis unavailable",
        )


class BaseAnalyzer(ABC):
    """
    Abstract base class for all pillar analyzers.

    analyze() must not raise: internal errors are logged and returned as
    PillarResult.failed(...).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the pillar name."""
        pass

    @abstractmethod
    def analyze(self, *args, **kwargs) -> PillarResult:
        pass


def clamp_score(score: float) -> int:
    return int(round(max(0, min(100, score))))


def score_band(score: float, bands: list[tuple[int, str]], fallback: str) -> str:
    """Pick the message of the first band whose lower bound the score reaches."""
    for lower_bound, message in bands:
        if score >= lower_bound:
            return message
    return fallback
