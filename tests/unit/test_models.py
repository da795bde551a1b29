"""Tests for dealbench/models: contract input and benchmark output models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from dealbench.models.benchmark import (
    BenchmarkAggregate,
    CohortKey,
    Verdict,
)
from dealbench.models.contract import (
    ContractRecord,
    ExperienceLevel,
    ExtractedValues,
    Industry,
    normalize_contract_type,
)


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _aggregate(**overrides):
    fields = dict(
        industry="music",
        contract_type="record-deal",
        metric_name="royaltyRate",
        sample_size=5,
        min_value=0.08,
        p25=0.10,
        median=0.12,
        p75=0.15,
        p90=0.18,
        max_value=0.20,
        avg=0.13,
        is_publishable=True,
        last_updated=NOW,
    )
    fields.update(overrides)
    return BenchmarkAggregate(**fields)


class TestContractType:

    def test_spaces_folded(self):
        assert normalize_contract_type("Publishing Deal") == "publishing-deal"

    def test_underscores_folded(self):
        assert normalize_contract_type("publishing_deal") == "publishing-deal"

    def test_blank_becomes_unknown(self):
        assert normalize_contract_type("   ") == "unknown"


class TestExtractedValues:

    def test_camel_case_input(self):
        ev = ExtractedValues.model_validate({
            "industry": "music",
            "contractType": "Record Deal",
            "values": {"royaltyRate": "18%"},
            "followerRange": "10k-50k",
            "experienceLevel": "mid",
        })
        assert ev.industry == Industry.MUSIC
        assert ev.contract_type == "record-deal"
        assert ev.follower_range == "10k-50k"
        assert ev.experience_level == ExperienceLevel.MID
        assert ev.values["royaltyRate"] == "18%"

    def test_default_contract_type(self):
        assert ExtractedValues(industry="nil").contract_type == "unknown"

    def test_unknown_industry_rejected(self):
        with pytest.raises(ValidationError):
            ExtractedValues(industry="aerospace")

    def test_raw_follower_count_rejected(self):
        with pytest.raises(ValidationError):
            ExtractedValues(industry="creator", follower_range="23817")

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ExtractedValues(industry="music", confidence=1.2)

    def test_naive_timestamp_made_utc(self):
        ev = ExtractedValues(industry="music", created_at=datetime(2024, 1, 1))
        assert ev.created_at.tzinfo is not None

    def test_immutable(self):
        ev = ExtractedValues(industry="music")
        with pytest.raises(ValidationError):
            ev.contract_type = "other"

    def test_value_types_preserved(self):
        ev = ExtractedValues(industry="nil", values={"totalValue": 5000, "exclusive": True})
        assert ev.values["totalValue"] == 5000
        assert ev.values["exclusive"] is True


class TestContractRecord:

    def test_generated_ids_unique(self):
        ev = ExtractedValues(industry="music")
        assert ContractRecord(extracted=ev).contract_id != ContractRecord(extracted=ev).contract_id


class TestCohortKey:

    def test_default_bucket(self):
        key = CohortKey("music", "record-deal", "royaltyRate")
        assert key.bucket == "all"
        assert not key.is_bucketed

    def test_bucketed(self):
        key = CohortKey("creator", "sponsorship", "ratePerDeliverable", "followers:10k-50k")
        assert key.is_bucketed
        assert "followers:10k-50k" in str(key)

    def test_ordering(self):
        keys = [CohortKey("nil", "a", "x"), CohortKey("music", "b", "y")]
        assert sorted(keys)[0].industry == "music"


class TestBenchmarkAggregate:

    def test_publishable_round_trip(self):
        agg = _aggregate()
        assert agg.key == CohortKey("music", "record-deal", "royaltyRate")
        dist = agg.distribution()
        assert dist.median == 0.12
        assert dist.max == 0.20

    def test_unpublishable_without_statistics(self):
        agg = BenchmarkAggregate(
            industry="music", contract_type="record-deal", metric_name="royaltyRate",
            sample_size=4, is_publishable=False, last_updated=NOW,
        )
        assert agg.distribution() is None
        assert agg.median is None

    def test_unpublishable_with_statistics_rejected(self):
        with pytest.raises(ValidationError):
            _aggregate(is_publishable=False)

    def test_publishable_missing_statistic_rejected(self):
        with pytest.raises(ValidationError):
            _aggregate(p90=None)

    def test_decreasing_markers_rejected(self):
        with pytest.raises(ValidationError):
            _aggregate(p75=0.11)

    def test_negative_sample_size_rejected(self):
        with pytest.raises(ValidationError):
            _aggregate(sample_size=-1)

    def test_same_statistics_ignores_timestamp(self):
        later = _aggregate(last_updated=datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert _aggregate().same_statistics(later)

    def test_same_statistics_detects_change(self):
        assert not _aggregate().same_statistics(_aggregate(sample_size=6))
        assert not _aggregate().same_statistics(None)

    def test_serializes_camel_case(self):
        data = _aggregate().model_dump(by_alias=True)
        assert "metricName" in data
        assert "isPublishable" in data


class TestVerdict:

    def test_strengths(self):
        assert Verdict.EXCELLENT.is_strength
        assert Verdict.GOOD.is_strength
        assert not Verdict.AVERAGE.is_strength

    def test_weaknesses(self):
        assert Verdict.POOR.is_weakness
        assert Verdict.BELOW_AVERAGE.is_weakness
        assert not Verdict.AVERAGE.is_weakness

    def test_wire_value(self):
        assert Verdict.BELOW_AVERAGE.value == "below-average"
