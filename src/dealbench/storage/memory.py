"""
In-process benchmark store.

Used for development, the CLI's default backend and tests. Aggregates are
immutable models, so swapping a dict entry is the whole atomic replace.
"""

import threading
from typing import Iterator

import structlog

from dealbench.models.benchmark import BenchmarkAggregate, CohortKey
from dealbench.models.contract import ContractRecord
from dealbench.storage.base import AggregateStore, ContractValuesStore

logger = structlog.get_logger(__name__)


class InMemoryBenchmarkStore(AggregateStore, ContractValuesStore):
    """Both benchmark tables held in process memory."""

    def __init__(self) -> None:
        super().__init__()
        self._aggregates: dict[CohortKey, BenchmarkAggregate] = {}
        self._records: dict[str, ContractRecord] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Aggregate Operations
    # =========================================================================

    def replace_cohort(self, key: CohortKey, aggregate: BenchmarkAggregate | None) -> None:
        with self._lock:
            if aggregate is None:
                self._aggregates.pop(key, None)
            else:
                self._aggregates[key] = aggregate

    def get_aggregate(self, key: CohortKey) -> BenchmarkAggregate | None:
        return self._aggregates.get(key)

    def list_aggregates(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
        metric: str | None = None,
        bucket: str | None = None,
        publishable_only: bool = False,
    ) -> list[BenchmarkAggregate]:
        with self._lock:
            snapshot = sorted(self._aggregates.items())

        return [
            aggregate
            for key, aggregate in snapshot
            if (industry is None or key.industry == industry)
            and (contract_type is None or key.contract_type == contract_type)
            and (metric is None or key.metric_name == metric)
            and (bucket is None or key.bucket == bucket)
            and (not publishable_only or aggregate.is_publishable)
        ]

    def health_check(self) -> bool:
        return True

    # =========================================================================
    # Contribution Operations
    # =========================================================================

    def add_record(self, record: ContractRecord) -> bool:
        with self._lock:
            if record.contract_id in self._records:
                return False
            self._records[record.contract_id] = record
        return True

    def iter_records(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> Iterator[ContractRecord]:
        with self._lock:
            records = list(self._records.values())

        for record in records:
            extracted = record.extracted
            if industry is not None and extracted.industry.value != industry:
                continue
            if contract_type is not None and extracted.contract_type != contract_type:
                continue
            yield record

    def count_records(self, industry: str | None = None) -> int:
        return sum(1 for _ in self.iter_records(industry=industry))
