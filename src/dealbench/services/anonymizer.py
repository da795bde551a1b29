"""Anonymization & grouping.

Buckets per-contract records into cohorts before anything is aggregated.
Contract identifiers are used here only to drop duplicate contributions;
what leaves this module is a sorted multiset of numbers per cohort, plus
the run-local ordinals of its members so overlapping cohorts can be compared.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

import structlog

from dealbench.config import get_settings
from dealbench.metrics.normalization import normalize_record
from dealbench.metrics.registry import MetricRegistry, get_metric_registry
from dealbench.models.benchmark import ALL_BUCKETS, CohortKey
from dealbench.models.contract import ContractRecord, ExtractedValues

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CohortSample:
    """The anonymous value multiset of one cohort, sorted ascending."""
    key: CohortKey
    values: tuple[float, ...]
    members: frozenset[int] = field(default=frozenset(), compare=False, repr=False)

    @property
    def size(self) -> int:
        return len(self.values)

    def meets_threshold(self, k_min: int) -> bool:
        return self.size >= k_min


def bucket_labels(extracted: ExtractedValues) -> list[str]:
    """Coarse demographic buckets a record belongs to, besides the all-bucket."""
    labels = []
    if extracted.follower_range:
        labels.append(f"followers:{extracted.follower_range}")
    if extracted.experience_level:
        labels.append(f"experience:{extracted.experience_level.value}")
    return labels


class Anonymizer:
    """Assigns records to cohorts and pools their values."""

    def __init__(
        self,
        registry: MetricRegistry | None = None,
        split_cohorts: bool | None = None,
    ):
        self.registry = registry or get_metric_registry()
        self.split_cohorts = get_settings().split_cohorts if split_cohorts is None else split_cohorts

    def assign(self, extracted: ExtractedValues) -> list[tuple[CohortKey, float]]:
        """Cohort memberships of one record, one entry per (cohort, value).

        Each metric is handled on its own: an invalid value keeps only that
        metric out of its cohorts.
        """
        normalized = normalize_record(extracted, self.registry)
        buckets = [ALL_BUCKETS]
        if self.split_cohorts:
            buckets.extend(bucket_labels(extracted))

        industry = extracted.industry.value
        return [
            (CohortKey(industry, extracted.contract_type, metric, bucket), value)
            for metric, value in normalized.accepted.items()
            for bucket in buckets
        ]

    def build_cohorts(self, records: Iterable[ContractRecord]) -> dict[CohortKey, CohortSample]:
        """Pool a population of records into anonymous cohort samples."""
        ordered = sorted(records, key=lambda r: (r.extracted.created_at, r.contract_id))

        seen: set[str] = set()
        pooled: dict[CohortKey, list[float]] = defaultdict(list)
        members: dict[CohortKey, set[int]] = defaultdict(set)
        duplicates = 0

        for record in ordered:
            if record.contract_id in seen:
                duplicates += 1
                continue
            seen.add(record.contract_id)
            ordinal = len(seen)
            for key, value in self.assign(record.extracted):
                pooled[key].append(value)
                members[key].add(ordinal)

        if duplicates:
            logger.info("duplicate_contributions_skipped", count=duplicates)

        return {
            key: CohortSample(key=key, values=tuple(sorted(values)), members=frozenset(members[key]))
            for key, values in sorted(pooled.items())
        }
