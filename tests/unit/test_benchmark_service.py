"""Tests for dealbench/services/benchmark_service.py: the public facade."""

import pytest

from dealbench.config import Settings
from dealbench.exceptions import ContributionRejectedError
from dealbench.services.benchmark_service import (
    BenchmarkService,
    build_store,
    get_benchmark_service,
)
from dealbench.storage.memory import InMemoryBenchmarkStore
from dealbench.storage.sql import SqlBenchmarkStore


ROYALTY_RATES = [0.08, 0.10, 0.12, 0.15, 0.20]


@pytest.fixture
def populated(service, make_values):
    for i, rate in enumerate(ROYALTY_RATES):
        service.submit_contribution(
            make_values(contract_type="Record Deal", values={"royaltyRate": rate}, offset=i,
                        follower_range="10k-50k"),
            contract_id=f"c{i}",
        )
    service.recompute_aggregates()
    return service


class TestSubmitContribution:

    def test_accepted(self, service, make_values):
        result = service.submit_contribution(
            make_values(values={"royaltyRate": "18%", "advanceAmount": "n/a", "exclusive": True})
        )
        assert result["accepted"] is True
        assert result["metrics_accepted"] == ["royaltyRate"]
        assert result["metrics_rejected"] == ["advanceAmount"]

    def test_low_confidence_rejected(self, service, make_values):
        with pytest.raises(ContributionRejectedError):
            service.submit_contribution(make_values(values={"royaltyRate": 0.15}, confidence=0.1))

    def test_nothing_usable_rejected(self, service, make_values):
        with pytest.raises(ContributionRejectedError):
            service.submit_contribution(make_values(values={"territory": "worldwide"}))

    def test_duplicate_contract(self, service, store, make_values):
        ev = make_values(values={"royaltyRate": 0.15})
        assert service.submit_contribution(ev, contract_id="dup")["accepted"] is True
        assert service.submit_contribution(ev, contract_id="dup")["accepted"] is False
        assert store.count_records() == 1


class TestGetBenchmarks:

    def test_published_all_bucket_only(self, populated):
        summary = populated.get_benchmarks("music")

        assert summary.has_real_data
        assert summary.total_sample_size == 5
        assert [b.cohort_bucket for b in summary.benchmarks] == ["all"]
        assert summary.benchmarks[0].median == pytest.approx(0.12)

    def test_contract_type_folded(self, populated):
        summary = populated.get_benchmarks("music", contract_type="Record Deal")
        assert summary.contract_type == "record-deal"
        assert len(summary.benchmarks) == 1

    def test_metric_filter(self, populated):
        assert populated.get_benchmarks("music", metric="advanceAmount").benchmarks == []

    def test_unpublishable_hidden(self, service, make_values):
        for i, rate in enumerate(ROYALTY_RATES[:4]):
            service.submit_contribution(make_values(values={"royaltyRate": rate}, offset=i))
        service.recompute_aggregates()

        summary = service.get_benchmarks("music")
        assert summary.benchmarks == []
        assert not summary.has_real_data
        assert summary.total_sample_size == 0

    def test_empty_industry(self, service):
        summary = service.get_benchmarks("esports")
        assert summary.benchmarks == []
        assert not summary.has_real_data


class TestRecompute:

    def test_idempotent(self, populated):
        assert populated.recompute_aggregates() == {"updated": 0}

    def test_scoped_by_folded_type(self, populated):
        assert populated.recompute_aggregates(industry="music", contract_type="Record Deal") == {"updated": 0}


class TestCompare:

    def test_compare_deal(self, populated, make_values):
        report = populated.compare_deal(
            make_values(values={"royaltyRate": 0.18}, follower_range="10k-50k")
        )
        assert report.using_real_data
        assert report.comparisons[0].cohort_bucket == "followers:10k-50k"

    def test_side_by_side(self, service, make_values):
        result = service.side_by_side([
            make_values(values={"royaltyRate": 0.10}),
            make_values(values={"royaltyRate": 0.20}),
        ])
        assert result.overall_winner == 1


class TestWiring:

    def test_health_check(self, service):
        assert service.health_check() == {"aggregate_store": True}

    def test_build_memory_store(self):
        assert isinstance(build_store(Settings()), InMemoryBenchmarkStore)

    def test_build_sql_store(self):
        store = build_store(Settings(storage_backend="sql", database_url="sqlite://"))
        assert isinstance(store, SqlBenchmarkStore)
        assert store.health_check()

    def test_cached_service(self):
        assert get_benchmark_service() is get_benchmark_service()

    def test_k_min_from_settings(self, store, make_values):
        service = BenchmarkService(store, store, settings=Settings(k_min=2))
        service.submit_contribution(make_values(values={"royaltyRate": 0.1}))
        service.submit_contribution(make_values(values={"royaltyRate": 0.2}))
        service.recompute_aggregates()
        assert service.get_benchmarks("music").has_real_data
