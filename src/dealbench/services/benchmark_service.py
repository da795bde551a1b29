"""
Benchmark service.

Facade over the engines exposing the operations callers use:
contribute, recompute, read published benchmarks and compare deals.
"""

from functools import lru_cache
from typing import Sequence

import structlog

from dealbench.config import Settings, get_settings
from dealbench.exceptions import ContributionRejectedError
from dealbench.metrics.normalization import normalize_record
from dealbench.metrics.registry import MetricRegistry, get_metric_registry
from dealbench.models.benchmark import (
    ALL_BUCKETS,
    BenchmarkReport,
    BenchmarkSummary,
    SideBySideComparison,
)
from dealbench.models.contract import ContractRecord, ExtractedValues, normalize_contract_type
from dealbench.services.aggregation import AggregationEngine
from dealbench.services.anonymizer import Anonymizer
from dealbench.services.comparison import ComparisonEngine
from dealbench.storage.base import AggregateStore, ContractValuesStore
from dealbench.storage.memory import InMemoryBenchmarkStore
from dealbench.storage.sql import SqlBenchmarkStore

logger = structlog.get_logger(__name__)


class BenchmarkService:
    """Entry point for aggregation and comparison."""

    def __init__(
        self,
        aggregate_store: AggregateStore,
        values_store: ContractValuesStore,
        registry: MetricRegistry | None = None,
        settings: Settings | None = None,
        max_workers: int = 4,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or get_metric_registry()
        self.aggregate_store = aggregate_store
        self.values_store = values_store

        self.aggregation = AggregationEngine(
            aggregate_store=aggregate_store,
            values_store=values_store,
            anonymizer=Anonymizer(self.registry, split_cohorts=self.settings.split_cohorts),
            k_min=self.settings.k_min,
            max_workers=max_workers,
        )
        self.comparison = ComparisonEngine(
            aggregate_store=aggregate_store,
            registry=self.registry,
            settings=self.settings,
        )

    def submit_contribution(
        self,
        extracted: ExtractedValues,
        contract_id: str | None = None,
    ) -> dict[str, list[str] | bool]:
        """
        Add one analysed contract to the private values table.

        Returns which metrics will count towards benchmarks; raises
        ContributionRejectedError when nothing usable remains.
        """
        if extracted.confidence < self.settings.min_confidence:
            raise ContributionRejectedError(
                f"Extraction confidence {extracted.confidence:.2f} is below "
                f"{self.settings.min_confidence:.2f}"
            )

        normalized = normalize_record(extracted, self.registry)
        if not normalized.accepted:
            raise ContributionRejectedError("No benchmarkable metric values in contribution")

        record = (
            ContractRecord(contract_id=contract_id, extracted=extracted)
            if contract_id
            else ContractRecord(extracted=extracted)
        )
        accepted = self.values_store.add_record(record)

        logger.info(
            "contribution_received",
            industry=extracted.industry.value,
            contract_type=extracted.contract_type,
            metrics=len(normalized.accepted),
            duplicate=not accepted,
        )
        return {
            "accepted": accepted,
            "metrics_accepted": sorted(normalized.accepted),
            "metrics_rejected": sorted(normalized.rejected),
        }

    def recompute_aggregates(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> dict[str, int]:
        """Recompute published aggregates, optionally for one industry/type."""
        if contract_type is not None:
            contract_type = normalize_contract_type(contract_type)
        return self.aggregation.recompute_aggregates(industry=industry, contract_type=contract_type)

    def get_benchmarks(
        self,
        industry: str,
        contract_type: str | None = None,
        metric: str | None = None,
    ) -> BenchmarkSummary:
        """Publishable all-bucket aggregates; bucket-level rows stay internal."""
        if contract_type is not None:
            contract_type = normalize_contract_type(contract_type)

        rows = self.aggregate_store.list_aggregates(
            industry=industry,
            contract_type=contract_type,
            metric=metric,
            bucket=ALL_BUCKETS,
            publishable_only=True,
        )
        return BenchmarkSummary(
            industry=industry,
            contract_type=contract_type,
            benchmarks=rows,
            has_real_data=any(row.is_publishable for row in rows),
            total_sample_size=max((row.sample_size for row in rows), default=0),
        )

    def compare_deal(
        self,
        extracted: ExtractedValues,
        contract_title: str | None = None,
    ) -> BenchmarkReport:
        """Benchmark report for one contract."""
        return self.comparison.compare_deal(extracted, contract_title=contract_title)

    def side_by_side(self, contracts: Sequence[ExtractedValues]) -> SideBySideComparison:
        """Compare several contracts with each other."""
        return self.comparison.side_by_side(contracts)

    def health_check(self) -> dict[str, bool]:
        return {"aggregate_store": self.aggregate_store.health_check()}


def build_store(settings: Settings) -> InMemoryBenchmarkStore | SqlBenchmarkStore:
    """Storage backend selected by configuration."""
    if settings.storage_backend == "sql":
        store = SqlBenchmarkStore(settings.database_url)
        store.create_schema()
        return store
    return InMemoryBenchmarkStore()


@lru_cache()
def get_benchmark_service() -> BenchmarkService:
    """Get cached benchmark service instance."""
    settings = get_settings()
    store = build_store(settings)
    # SQLite connections don't tolerate concurrent writers
    workers = 1 if settings.database_url.startswith("sqlite") and settings.storage_backend == "sql" else 4
    return BenchmarkService(store, store, settings=settings, max_workers=workers)
