"""Tests for dealbench/storage/sql.py against in-memory SQLite."""

from datetime import datetime, timezone

import pytest

from dealbench.exceptions import StorageUnavailableError
from dealbench.models.benchmark import BenchmarkAggregate, CohortKey
from dealbench.models.contract import ContractRecord
from dealbench.services.benchmark_service import BenchmarkService
from dealbench.storage.sql import SqlBenchmarkStore


NOW = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def sql_store():
    store = SqlBenchmarkStore("sqlite://")
    store.create_schema()
    yield store
    store.close()


def _aggregate(bucket="all", **overrides):
    fields = dict(
        industry="music", contract_type="record-deal", metric_name="royaltyRate",
        cohort_bucket=bucket, sample_size=5,
        min_value=0.08, p25=0.10, median=0.12, p75=0.15, p90=0.18, max_value=0.20, avg=0.13,
        is_publishable=True, last_updated=NOW,
    )
    fields.update(overrides)
    return BenchmarkAggregate(**fields)


class TestAggregates:

    def test_round_trip(self, sql_store):
        agg = _aggregate()
        sql_store.replace_cohort(agg.key, agg)
        assert sql_store.get_aggregate(agg.key) == agg

    def test_unpublishable_round_trip(self, sql_store):
        agg = BenchmarkAggregate(
            industry="music", contract_type="record-deal", metric_name="advanceAmount",
            sample_size=3, is_publishable=False, last_updated=NOW,
        )
        sql_store.replace_cohort(agg.key, agg)
        stored = sql_store.get_aggregate(agg.key)
        assert stored.is_publishable is False
        assert stored.median is None

    def test_replace_overwrites(self, sql_store):
        sql_store.replace_cohort(_aggregate().key, _aggregate())
        sql_store.replace_cohort(_aggregate().key, _aggregate(sample_size=6))
        assert sql_store.get_aggregate(_aggregate().key).sample_size == 6
        assert len(sql_store.list_aggregates()) == 1

    def test_replace_with_none_removes(self, sql_store):
        key = _aggregate().key
        sql_store.replace_cohort(key, _aggregate())
        sql_store.replace_cohort(key, None)
        assert sql_store.get_aggregate(key) is None

    def test_missing(self, sql_store):
        assert sql_store.get_aggregate(CohortKey("nil", "x", "totalValue")) is None

    def test_list_filters(self, sql_store):
        published = _aggregate()
        bucket = _aggregate(bucket="followers:1m+")
        hidden = BenchmarkAggregate(
            industry="music", contract_type="record-deal", metric_name="termMonths",
            sample_size=2, is_publishable=False, last_updated=NOW,
        )
        for agg in (published, bucket, hidden):
            sql_store.replace_cohort(agg.key, agg)

        assert len(sql_store.list_aggregates(industry="music")) == 3
        assert sql_store.list_aggregates(bucket="all", publishable_only=True) == [published]
        assert sql_store.list_aggregates(metric="termMonths") == [hidden]
        assert sql_store.list_aggregates(industry="nil") == []
        assert sql_store.list_keys(industry="music") == sorted(a.key for a in (published, bucket, hidden))


class TestContributions:

    def test_add_and_iterate(self, sql_store, make_values):
        later = ContractRecord(contract_id="b", extracted=make_values(values={"royaltyRate": 0.2}, offset=5))
        earlier = ContractRecord(contract_id="a", extracted=make_values(values={"royaltyRate": "12%"}, offset=1))
        assert sql_store.add_record(later)
        assert sql_store.add_record(earlier)

        records = list(sql_store.iter_records())

        assert [r.contract_id for r in records] == ["a", "b"]
        assert records[0].extracted == earlier.extracted

    def test_duplicate_id(self, sql_store, make_values):
        record = ContractRecord(contract_id="a", extracted=make_values(values={"royaltyRate": 0.2}))
        assert sql_store.add_record(record)
        assert not sql_store.add_record(record)
        assert sql_store.count_records() == 1

    def test_scope(self, sql_store, make_values):
        sql_store.add_record(ContractRecord(extracted=make_values(values={"royaltyRate": 0.2})))
        sql_store.add_record(ContractRecord(extracted=make_values(industry="nil", values={"totalValue": 10})))

        assert sql_store.count_records(industry="nil") == 1
        assert len(list(sql_store.iter_records(industry="music", contract_type="record-deal"))) == 1


class TestEndToEnd:

    def test_recompute_idempotent(self, sql_store, make_values):
        service = BenchmarkService(sql_store, sql_store, max_workers=1)
        for i, rate in enumerate([0.08, 0.10, 0.12, 0.15, 0.20]):
            service.submit_contribution(make_values(values={"royaltyRate": rate}, offset=i))

        assert service.recompute_aggregates() == {"updated": 1}
        first = sql_store.list_aggregates()
        assert service.recompute_aggregates() == {"updated": 0}
        assert sql_store.list_aggregates() == first
        assert service.get_benchmarks("music").benchmarks[0].median == pytest.approx(0.12)


class TestFailures:

    def test_unreachable_database(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEALBENCH_STORAGE_MAX_RETRIES", "1")
        store = SqlBenchmarkStore(f"sqlite:///{tmp_path}/missing/dir/bench.db")

        with pytest.raises(StorageUnavailableError) as exc:
            store.create_schema()
        assert exc.value.retryable
        assert store.health_check() is False
