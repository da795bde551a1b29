"""
Storage interfaces owned by the surrounding datastore.

The engines never talk to a database directly; they are handed one of
these and only rely on the guarantees documented here.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from dealbench.models.benchmark import BenchmarkAggregate, CohortKey
from dealbench.models.contract import ContractRecord


class AggregateStore(ABC):
    """
    Table of published aggregates keyed by cohort.

    Writers serialise on ``cohort_lock``; ``replace_cohort`` swaps a whole
    row at once so readers only ever observe the previous or the new
    aggregate, never a mix.
    """

    def __init__(self) -> None:
        self._cohort_locks: dict[CohortKey, threading.Lock] = {}
        self._cohort_locks_guard = threading.Lock()

    @contextmanager
    def cohort_lock(self, key: CohortKey) -> Iterator[None]:
        """Mutual-exclusion scope for recomputing one cohort."""
        with self._cohort_locks_guard:
            lock = self._cohort_locks.setdefault(key, threading.Lock())
        with lock:
            yield

    @abstractmethod
    def replace_cohort(self, key: CohortKey, aggregate: BenchmarkAggregate | None) -> None:
        """Atomically replace a cohort's row; ``None`` removes it."""

    @abstractmethod
    def get_aggregate(self, key: CohortKey) -> BenchmarkAggregate | None:
        """Last committed aggregate for a cohort."""

    @abstractmethod
    def list_aggregates(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
        metric: str | None = None,
        bucket: str | None = None,
        publishable_only: bool = False,
    ) -> list[BenchmarkAggregate]:
        """Aggregates matching the filters, ordered by cohort key."""

    def list_keys(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> list[CohortKey]:
        """Cohort keys currently stored within a scope."""
        return [a.key for a in self.list_aggregates(industry=industry, contract_type=contract_type)]

    @abstractmethod
    def health_check(self) -> bool:
        """Check datastore connectivity."""


class ContractValuesStore(ABC):
    """
    Private per-contract values table.

    Never exposed through a public read path; only the aggregation engine
    draws cohorts from it.
    """

    @abstractmethod
    def add_record(self, record: ContractRecord) -> bool:
        """Store a contribution; returns False if the contract was already stored."""

    @abstractmethod
    def iter_records(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> Iterator[ContractRecord]:
        """Stream stored contributions within a scope."""

    @abstractmethod
    def count_records(self, industry: str | None = None) -> int:
        """Number of stored contributions."""
