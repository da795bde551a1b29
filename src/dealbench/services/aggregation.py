"""
Aggregation engine.

Turns anonymous cohort samples into published BenchmarkAggregate rows.
Disjoint cohorts are recomputed concurrently; a single cohort is always
recomputed under its store lock.
"""

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Sequence

import numpy as np
import structlog

from dealbench.config import get_settings
from dealbench.models.benchmark import ALL_BUCKETS, BenchmarkAggregate, CohortKey
from dealbench.services.anonymizer import Anonymizer, CohortSample
from dealbench.storage.base import AggregateStore, ContractValuesStore

logger = structlog.get_logger(__name__)

PERCENTILES = (25, 50, 75, 90)


def compute_statistics(values: Sequence[float]) -> dict[str, float]:
    """
    Summary statistics of a non-empty sample.

    Percentiles interpolate linearly between order statistics, so a sample
    of identical values yields identical markers.
    """
    if len(values) == 0:
        raise ValueError("cannot summarize an empty sample")

    data = np.sort(np.asarray(values, dtype=float))
    p25, median, p75, p90 = np.percentile(data, PERCENTILES)
    markers = np.maximum.accumulate([data[0], p25, median, p75, p90, data[-1]])
    avg = float(np.clip(np.mean(data), data[0], data[-1]))

    return {
        "min_value": float(markers[0]),
        "p25": float(markers[1]),
        "median": float(markers[2]),
        "p75": float(markers[3]),
        "p90": float(markers[4]),
        "max_value": float(markers[5]),
        "avg": avg,
    }


def publishable_keys(cohorts: dict[CohortKey, CohortSample], k_min: int) -> set[CohortKey]:
    """
    Cohorts whose statistics may be published.

    Besides the size threshold, two published cohorts of the same metric
    where one contains the other must differ by zero or at least ``k_min``
    members. Otherwise subtracting their totals isolates the few contracts
    in between. Larger cohorts are admitted first, so the all-bucket row
    is never the one withheld.
    """
    groups: dict[tuple[str, str, str], list[CohortSample]] = defaultdict(list)
    for sample in cohorts.values():
        if sample.meets_threshold(k_min):
            key = sample.key
            groups[(key.industry, key.contract_type, key.metric_name)].append(sample)

    admitted: set[CohortKey] = set()
    for samples in groups.values():
        published: list[CohortSample] = []
        for sample in sorted(samples, key=lambda s: (-s.size, s.key.bucket != ALL_BUCKETS, s.key)):
            if any(_leaks_difference(sample, other, k_min) for other in published):
                logger.debug("cohort_withheld", cohort=str(sample.key), size=sample.size)
                continue
            published.append(sample)
            admitted.add(sample.key)
    return admitted


def _leaks_difference(a: CohortSample, b: CohortSample, k_min: int) -> bool:
    if not a.members or not b.members:
        return False
    if not (a.members <= b.members or b.members <= a.members):
        return False
    return 0 < abs(a.size - b.size) < k_min


def summarize_cohort(
    sample: CohortSample,
    k_min: int,
    as_of: datetime,
    publishable: bool | None = None,
) -> BenchmarkAggregate | None:
    """Aggregate one cohort; empty cohorts produce no row at all.

    ``publishable`` can only narrow the size threshold, never widen it.
    """
    if sample.size == 0:
        return None

    key = sample.key
    publishable = sample.meets_threshold(k_min) and publishable is not False
    stats = compute_statistics(sample.values) if publishable else {}

    return BenchmarkAggregate(
        industry=key.industry,
        contract_type=key.contract_type,
        metric_name=key.metric_name,
        cohort_bucket=key.bucket,
        sample_size=sample.size,
        is_publishable=publishable,
        last_updated=as_of,
        **stats,
    )


class AggregationEngine:
    """Recomputes published aggregates from the private contribution table."""

    def __init__(
        self,
        aggregate_store: AggregateStore,
        values_store: ContractValuesStore,
        anonymizer: Anonymizer | None = None,
        k_min: int | None = None,
        max_workers: int = 4,
    ):
        self.aggregate_store = aggregate_store
        self.values_store = values_store
        self.anonymizer = anonymizer or Anonymizer()
        self.k_min = k_min if k_min is not None else get_settings().k_min
        self.max_workers = max(1, max_workers)

    def recompute_aggregates(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> dict[str, int]:
        """
        Recompute every cohort within a scope.

        Rows whose statistics did not change are left untouched, so running
        this twice over the same population writes nothing the second time.

        Returns:
            ``{"updated": n}`` where n counts rows written or removed.
        """
        records = self.values_store.iter_records(industry=industry, contract_type=contract_type)
        cohorts = self.anonymizer.build_cohorts(records)
        admitted = publishable_keys(cohorts, self.k_min)
        as_of = datetime.now(timezone.utc)

        stale = [
            key
            for key in self.aggregate_store.list_keys(industry=industry, contract_type=contract_type)
            if key not in cohorts
        ]
        jobs: list[tuple[CohortKey, CohortSample | None]] = [
            *cohorts.items(),
            *((key, None) for key in stale),
        ]

        logger.info(
            "aggregation_started",
            industry=industry,
            contract_type=contract_type,
            cohorts=len(cohorts),
            stale=len(stale),
        )

        if self.max_workers == 1 or len(jobs) <= 1:
            results = [
                self._recompute_cohort(key, sample, as_of, key in admitted)
                for key, sample in jobs
            ]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [
                    pool.submit(self._recompute_cohort, key, sample, as_of, key in admitted)
                    for key, sample in jobs
                ]
                # Surface the first failure only after every cohort has finished
                results = []
                errors = []
                for future in futures:
                    try:
                        results.append(future.result())
                    except Exception as e:
                        errors.append(e)
                if errors:
                    raise errors[0]

        updated = sum(results)
        logger.info(
            "aggregates_recomputed",
            industry=industry,
            contract_type=contract_type,
            updated=updated,
            publishable=len(admitted),
        )
        return {"updated": updated}

    def _recompute_cohort(
        self,
        key: CohortKey,
        sample: CohortSample | None,
        as_of: datetime,
        publishable: bool = True,
    ) -> bool:
        """Replace one cohort's row if its statistics changed."""
        aggregate = (
            summarize_cohort(sample, self.k_min, as_of, publishable=publishable)
            if sample is not None
            else None
        )

        with self.aggregate_store.cohort_lock(key):
            current = self.aggregate_store.get_aggregate(key)
            if aggregate is None:
                if current is None:
                    return False
                self.aggregate_store.replace_cohort(key, None)
                logger.debug("cohort_removed", cohort=str(key))
                return True
            if aggregate.same_statistics(current):
                return False
            self.aggregate_store.replace_cohort(key, aggregate)
            return True
