"""Shared pytest fixtures for the DealBench test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from dealbench.config import Settings
from dealbench.models.contract import ContractRecord, ExtractedValues
from dealbench.services.benchmark_service import BenchmarkService
from dealbench.storage.memory import InMemoryBenchmarkStore


# ---------------------------------------------------------------------------
# Singleton cache clearing (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_singletons():
    """Clear all @lru_cache singletons between tests."""
    from dealbench.config import get_settings
    from dealbench.metrics.registry import get_metric_registry
    from dealbench.services.benchmark_service import get_benchmark_service

    get_settings.cache_clear()
    get_metric_registry.cache_clear()
    get_benchmark_service.cache_clear()
    yield
    get_settings.cache_clear()
    get_benchmark_service.cache_clear()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_values():
    """Factory for ExtractedValues with sensible defaults."""

    def _make(industry="music", contract_type="record-deal", values=None, offset=0, **kwargs):
        return ExtractedValues(
            industry=industry,
            contract_type=contract_type,
            values=values or {},
            created_at=BASE_TIME + timedelta(minutes=offset),
            **kwargs,
        )

    return _make


@pytest.fixture
def seed_records(make_values):
    """Add one contribution per value of a single metric to a values store."""

    def _seed(store, metric, values, industry="music", contract_type="record-deal", prefix=None, **kwargs):
        prefix = prefix or f"{industry}-{contract_type}-{metric}"
        for i, value in enumerate(values):
            extracted = make_values(
                industry=industry,
                contract_type=contract_type,
                values={metric: value},
                offset=i,
                **kwargs,
            )
            store.add_record(ContractRecord(contract_id=f"{prefix}-{i}", extracted=extracted))

    return _seed


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def store():
    return InMemoryBenchmarkStore()


@pytest.fixture
def service(store, settings):
    return BenchmarkService(store, store, settings=settings)
