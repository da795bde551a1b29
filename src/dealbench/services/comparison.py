"""Comparison engine.

Scores one contract's values against published aggregates and assembles a
ranked, explained BenchmarkReport. Read-only against the aggregate store:
it uses whatever aggregate was last committed and never waits on a
recomputation.
"""

from dataclasses import dataclass
from typing import Sequence

import structlog

from dealbench.config import Settings, get_settings
from dealbench.exceptions import StorageUnavailableError, UnknownIndustryOrTypeError
from dealbench.metrics.normalization import normalize_record
from dealbench.metrics.registry import MetricDefinition, MetricRegistry, get_metric_registry
from dealbench.models.benchmark import (
    ALL_BUCKETS,
    BenchmarkAggregate,
    BenchmarkReport,
    CohortKey,
    DealComparison,
    Direction,
    Distribution,
    MetricFaceOff,
    SideBySideComparison,
    Verdict,
)
from dealbench.models.contract import ExtractedValues
from dealbench.services.anonymizer import bucket_labels
from dealbench.services.heuristics import heuristic_ranges
from dealbench.storage.base import AggregateStore

logger = structlog.get_logger(__name__)

NEUTRAL_SCORE = 50
GENERIC_GUIDANCE = (
    "There is not enough market data to benchmark this deal yet; "
    "have the financial terms reviewed before signing."
)


# =========================================================================
# Scoring primitives
# =========================================================================


def estimate_percentile(value: float, distribution: Distribution) -> float:
    """
    Rank a value within a distribution known only by its markers.

    Interpolates linearly between (min, 0), (p25, 25), (median, 50),
    (p75, 75), (p90, 90) and (max, 100). A value sitting on several equal
    markers takes the middle of the range they span.
    """
    knots = [
        (distribution.min, 0.0),
        (distribution.p25, 25.0),
        (distribution.median, 50.0),
        (distribution.p75, 75.0),
        (distribution.p90, 90.0),
        (distribution.max, 100.0),
    ]
    if value < distribution.min:
        return 0.0
    if value > distribution.max:
        return 100.0

    tied = [pct for marker, pct in knots if marker == value]
    if tied:
        return (tied[0] + tied[-1]) / 2

    for (x0, p0), (x1, p1) in zip(knots, knots[1:]):
        if x0 < value < x1:
            return p0 + (p1 - p0) * (value - x0) / (x1 - x0)
    return 100.0


def effective_percentile(percentile: float, direction: Direction) -> float:
    """Percentile re-expressed so that higher always favours the user."""
    return percentile if direction == Direction.HIGHER_IS_BETTER else 100.0 - percentile


def verdict_for(percentile: float, direction: Direction, bands: dict[str, float]) -> Verdict:
    """Map a percentile to a verdict band, mirrored for lower-is-better metrics."""
    score = effective_percentile(percentile, direction)
    if score >= bands["excellent"]:
        return Verdict.EXCELLENT
    if score >= bands["good"]:
        return Verdict.GOOD
    if score >= bands["average"]:
        return Verdict.AVERAGE
    if score >= bands["below_average"]:
        return Verdict.BELOW_AVERAGE
    return Verdict.POOR


def plain_number(value: float) -> str:
    """Raw value as written in insights: 0.18, 75,000, 1.5."""
    rounded = round(value, 6)
    if rounded == int(rounded):
        return f"{int(rounded):,}"
    return f"{rounded:,}"


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


_VERDICT_PHRASES = {
    Verdict.EXCELLENT: "an excellent deal",
    Verdict.GOOD: "a solid deal",
    Verdict.AVERAGE: "in line with the market",
}


def build_insight(
    definition: MetricDefinition,
    value: float,
    median: float,
    percentile: float,
    verdict: Verdict,
) -> str:
    """Deterministic one-sentence explanation of a comparison."""
    label = definition.label.lower()
    opening = (
        f"Your {label} of {plain_number(value)} ({definition.format(value)}) sits at the "
        f"{ordinal(int(round(percentile)))} percentile against a market median of "
        f"{plain_number(median)} ({definition.format(median)})"
    )
    if verdict in _VERDICT_PHRASES:
        return f"{opening}: {_VERDICT_PHRASES[verdict]}."

    ask = "higher" if definition.higher_is_better else "lower"
    if verdict == Verdict.BELOW_AVERAGE:
        return f"{opening}: below market, consider negotiating {ask}."
    return f"{opening}: well below market, strongly recommend negotiating {ask}."


# =========================================================================
# Engine
# =========================================================================


@dataclass(frozen=True)
class _PlannedMetric:
    definition: MetricDefinition
    weight: float
    order: int


@dataclass(frozen=True)
class _Scored:
    comparison: DealComparison
    definition: MetricDefinition
    distribution: Distribution
    order: int

    @property
    def favourability(self) -> float:
        return effective_percentile(self.comparison.percentile, self.comparison.direction)

    @property
    def impact(self) -> float:
        return self.comparison.weight * abs(self.comparison.percentile - 50.0)


class ComparisonEngine:
    """Produces benchmark reports for individual contracts."""

    def __init__(
        self,
        aggregate_store: AggregateStore,
        registry: MetricRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.aggregate_store = aggregate_store
        self.registry = registry or get_metric_registry()
        self.settings = settings or get_settings()

    def compare_deal(
        self,
        extracted: ExtractedValues,
        contract_title: str | None = None,
    ) -> BenchmarkReport:
        """
        Compare one contract's values to the market.

        Metrics without a publishable aggregate are left out. When nothing
        qualifies, or the store cannot be read, the report falls back to
        static heuristic ranges instead of failing.
        """
        normalized = normalize_record(extracted, self.registry)
        plan = self._plan(extracted, normalized.accepted)

        try:
            scored = self._score_against_market(extracted, plan, normalized.accepted)
        except StorageUnavailableError as e:
            logger.warning("comparison_storage_unavailable", error=str(e))
            scored = []

        if scored:
            return self._assemble(extracted, contract_title, scored, using_real_data=True)

        logger.info(
            "comparison_fallback_used",
            industry=extracted.industry.value,
            contract_type=extracted.contract_type,
        )
        return self._heuristic_report(extracted, contract_title, plan, normalized.accepted)

    def side_by_side(self, contracts: Sequence[ExtractedValues]) -> SideBySideComparison:
        """Compare several contracts with each other, metric by metric."""
        if len(contracts) < 2:
            raise ValueError("At least 2 contracts are required for a side-by-side comparison")

        normalized = [normalize_record(c, self.registry).accepted for c in contracts]
        names = sorted(
            {name for values in normalized for name in values},
            key=self.registry.catalogue_order,
        )

        metrics = []
        win_counts = [0] * len(contracts)
        for name in names:
            definition = self.registry.definition(name)
            values = [v.get(name) for v in normalized]
            present = [(i, v) for i, v in enumerate(values) if v is not None]
            if definition.higher_is_better:
                winner = max(present, key=lambda iv: (iv[1], -iv[0]))[0]
            else:
                winner = min(present, key=lambda iv: (iv[1], iv[0]))[0]
            win_counts[winner] += 1
            metrics.append(MetricFaceOff(
                metric=name,
                label=definition.label,
                values=values,
                displays=[definition.format(v) if v is not None else None for v in values],
                winner=winner,
                higher_is_better=definition.higher_is_better,
            ))

        overall_winner = None
        if metrics:
            top = max(win_counts)
            leaders = [i for i, wins in enumerate(win_counts) if wins == top]
            if len(leaders) == 1:
                overall_winner = leaders[0]

        return SideBySideComparison(
            metrics=metrics,
            win_counts=win_counts,
            overall_winner=overall_winner,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _plan(self, extracted: ExtractedValues, values: dict[str, float]) -> list[_PlannedMetric]:
        """Which metrics to compare, in what order, with which weight."""
        industry = extracted.industry.value
        try:
            profile = self.registry.require_profile(industry, extracted.contract_type)
        except UnknownIndustryOrTypeError:
            logger.debug("weight_profile_missing", industry=industry, contract_type=extracted.contract_type)
            names = sorted(values, key=self.registry.catalogue_order)
            return [
                _PlannedMetric(self.registry.definition(name), 1.0, i)
                for i, name in enumerate(names)
            ]

        return [
            _PlannedMetric(self.registry.definition(entry.name), entry.weight, i)
            for i, entry in enumerate(profile)
            if entry.name in values and self.registry.definition(entry.name) is not None
        ]

    def _find_aggregate(self, extracted: ExtractedValues, metric: str) -> BenchmarkAggregate | None:
        """Most specific publishable aggregate: the user's bucket first, then all."""
        industry = extracted.industry.value
        for bucket in [*bucket_labels(extracted), ALL_BUCKETS]:
            aggregate = self.aggregate_store.get_aggregate(
                CohortKey(industry, extracted.contract_type, metric, bucket)
            )
            if aggregate is not None and aggregate.is_publishable:
                return aggregate
        return None

    def _score_against_market(
        self,
        extracted: ExtractedValues,
        plan: list[_PlannedMetric],
        values: dict[str, float],
    ) -> list[_Scored]:
        scored = []
        for item in plan:
            aggregate = self._find_aggregate(extracted, item.definition.name)
            if aggregate is None:
                continue
            scored.append(self._score(
                item,
                values[item.definition.name],
                aggregate.distribution(),
                sample_size=aggregate.sample_size,
                bucket=aggregate.cohort_bucket,
            ))
        return scored

    def _score(
        self,
        item: _PlannedMetric,
        value: float,
        distribution: Distribution,
        sample_size: int,
        bucket: str,
    ) -> _Scored:
        definition = item.definition
        percentile = round(estimate_percentile(value, distribution), 1)
        verdict = verdict_for(percentile, definition.direction, self.settings.verdict_bands)

        comparison = DealComparison(
            metric=definition.name,
            label=definition.label,
            your_value=value,
            market_average=distribution.avg,
            market_median=distribution.median,
            your_value_display=definition.format(value),
            market_average_display=definition.format(distribution.avg),
            percentile=percentile,
            verdict=verdict,
            insight=build_insight(definition, value, distribution.median, percentile, verdict),
            direction=definition.direction,
            weight=item.weight,
            sample_size=sample_size,
            cohort_bucket=bucket,
        )
        return _Scored(comparison, definition, distribution, item.order)

    def _assemble(
        self,
        extracted: ExtractedValues,
        contract_title: str | None,
        scored: list[_Scored],
        using_real_data: bool,
    ) -> BenchmarkReport:
        ranked = sorted(scored, key=lambda s: (-s.impact, s.order))

        scores = self.settings.verdict_scores
        weights = [s.comparison.weight for s in ranked]
        if sum(weights) <= 0:
            weights = [1.0] * len(ranked)
        points = [scores[s.comparison.verdict.value.replace("-", "_")] for s in ranked]
        overall = round(sum(w * p for w, p in zip(weights, points)) / sum(weights))

        strengths = sorted(
            (s for s in ranked if s.comparison.verdict.is_strength),
            key=lambda s: (-s.favourability, s.order),
        )
        weaknesses = sorted(
            (s for s in ranked if s.comparison.verdict.is_weakness),
            key=lambda s: (s.favourability, s.order),
        )

        return BenchmarkReport(
            industry=extracted.industry.value,
            contract_type=extracted.contract_type,
            contract_title=contract_title,
            overall_score=max(0, min(100, overall)),
            comparisons=[s.comparison for s in ranked],
            sample_size=min(s.comparison.sample_size for s in ranked) if using_real_data else 0,
            strengths=[
                f"{s.definition.label}: {s.comparison.your_value_display} ({s.comparison.verdict.value})"
                for s in strengths
            ],
            weaknesses=[
                f"{s.definition.label}: {s.comparison.your_value_display} vs market median "
                f"{s.definition.format(s.distribution.median)}"
                for s in weaknesses
            ],
            negotiation_points=[
                self._negotiation_point(s)
                for s in weaknesses[: self.settings.negotiation_point_limit]
            ],
            using_real_data=using_real_data,
        )

    @staticmethod
    def _negotiation_point(scored: _Scored) -> str:
        definition = scored.definition
        label = definition.label.lower()
        if definition.higher_is_better:
            target = definition.format(scored.distribution.p75)
            return f"Ask for {label} closer to {target} (top 25% of deals)"
        target = definition.format(scored.distribution.p25)
        return f"Try to reduce {label} to {target} or less (best 25% of deals)"

    def _heuristic_report(
        self,
        extracted: ExtractedValues,
        contract_title: str | None,
        plan: list[_PlannedMetric],
        values: dict[str, float],
    ) -> BenchmarkReport:
        ranges = (
            heuristic_ranges(extracted.industry.value)
            if self.settings.heuristic_fallback_enabled
            else {}
        )
        scored = [
            self._score(item, values[item.definition.name], ranges[item.definition.name],
                        sample_size=0, bucket=ALL_BUCKETS)
            for item in plan
            if item.definition.name in ranges
        ]
        if scored:
            return self._assemble(extracted, contract_title, scored, using_real_data=False)

        return BenchmarkReport(
            industry=extracted.industry.value,
            contract_type=extracted.contract_type,
            contract_title=contract_title,
            overall_score=NEUTRAL_SCORE,
            negotiation_points=[GENERIC_GUIDANCE],
            using_real_data=False,
        )
