"""
Benchmark models: cohorts, published aggregates and comparison reports.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from pydantic import ConfigDict, Field, model_validator

from dealbench.models.base import CamelModel


ALL_BUCKETS = "all"


class Direction(str, Enum):
    """Which way a metric moves in the user's favour."""

    HIGHER_IS_BETTER = "higher"
    LOWER_IS_BETTER = "lower"


class Verdict(str, Enum):
    """Categorical judgment of a value against the market."""

    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "below-average"
    POOR = "poor"

    @property
    def is_strength(self) -> bool:
        return self in (Verdict.EXCELLENT, Verdict.GOOD)

    @property
    def is_weakness(self) -> bool:
        return self in (Verdict.BELOW_AVERAGE, Verdict.POOR)


@dataclass(frozen=True, order=True)
class CohortKey:
    """Unit of k-anonymity: one metric of one contract type, optionally one bucket."""

    industry: str
    contract_type: str
    metric_name: str
    bucket: str = ALL_BUCKETS

    @property
    def is_bucketed(self) -> bool:
        return self.bucket != ALL_BUCKETS

    def __str__(self) -> str:
        return f"{self.industry}/{self.contract_type}/{self.metric_name}[{self.bucket}]"


class Distribution(NamedTuple):
    """The six markers the comparison engine interpolates between."""

    min: float
    p25: float
    median: float
    p75: float
    p90: float
    max: float
    avg: float


class BenchmarkAggregate(CamelModel):
    """
    Published summary statistics for one cohort.

    Statistics are only present when ``is_publishable`` is true.
    """

    model_config = ConfigDict(frozen=True)

    industry: str
    contract_type: str
    metric_name: str
    cohort_bucket: str = ALL_BUCKETS
    sample_size: int = Field(..., ge=0)
    min_value: float | None = None
    max_value: float | None = None
    avg: float | None = None
    median: float | None = None
    p25: float | None = None
    p75: float | None = None
    p90: float | None = None
    is_publishable: bool = False
    last_updated: datetime

    @model_validator(mode="after")
    def check_statistics(self) -> "BenchmarkAggregate":
        stats = (self.min_value, self.p25, self.median, self.p75, self.p90, self.max_value)
        if not self.is_publishable:
            if any(s is not None for s in stats) or self.avg is not None:
                raise ValueError("unpublishable aggregates must not carry statistics")
            return self
        if any(s is None for s in stats) or self.avg is None:
            raise ValueError("publishable aggregates need every statistic")
        if any(lo > hi for lo, hi in zip(stats, stats[1:])):
            raise ValueError("percentile markers must be non-decreasing")
        return self

    @property
    def key(self) -> CohortKey:
        return CohortKey(self.industry, self.contract_type, self.metric_name, self.cohort_bucket)

    def distribution(self) -> Distribution | None:
        if not self.is_publishable:
            return None
        return Distribution(
            min=self.min_value,
            p25=self.p25,
            median=self.median,
            p75=self.p75,
            p90=self.p90,
            max=self.max_value,
            avg=self.avg,
        )

    def same_statistics(self, other: "BenchmarkAggregate | None") -> bool:
        """True when only ``last_updated`` differs."""
        if other is None:
            return False
        return self.model_dump(exclude={"last_updated"}) == other.model_dump(
            exclude={"last_updated"}
        )


class DealComparison(CamelModel):
    """One metric of a user's deal scored against the market."""

    model_config = ConfigDict(frozen=True)

    metric: str
    label: str
    your_value: float
    market_average: float
    market_median: float
    your_value_display: str
    market_average_display: str
    percentile: float = Field(..., ge=0.0, le=100.0)
    verdict: Verdict
    insight: str
    direction: Direction
    weight: float = 1.0
    sample_size: int = 0
    cohort_bucket: str = ALL_BUCKETS


class BenchmarkReport(CamelModel):
    """Ranked, explained comparison of one contract against the market."""

    industry: str
    contract_type: str
    contract_title: str | None = None
    overall_score: int = Field(..., ge=0, le=100)
    comparisons: list[DealComparison] = Field(default_factory=list)
    sample_size: int = 0
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    negotiation_points: list[str] = Field(default_factory=list)
    using_real_data: bool = False


class BenchmarkSummary(CamelModel):
    """Read-side view of the published aggregates for an industry."""

    industry: str
    contract_type: str | None = None
    benchmarks: list[BenchmarkAggregate] = Field(default_factory=list)
    has_real_data: bool = False
    total_sample_size: int = 0


class MetricFaceOff(CamelModel):
    """One metric across several contracts, with the most favourable one marked."""

    metric: str
    label: str
    values: list[float | None]
    displays: list[str | None]
    winner: int | None = None
    higher_is_better: bool = True


class SideBySideComparison(CamelModel):
    """Several contracts compared with each other rather than the market."""

    metrics: list[MetricFaceOff] = Field(default_factory=list)
    win_counts: list[int] = Field(default_factory=list)
    overall_winner: int | None = None
