"""Tests for dealbench/metrics/registry.py: catalogue, profiles and display."""

import pytest

from dealbench.exceptions import UnknownIndustryOrTypeError
from dealbench.metrics.registry import (
    METRIC_DEFINITIONS,
    PROFILES,
    WILDCARD,
    MetricDefinition,
    Unit,
    build_registry,
    get_metric_registry,
)
from dealbench.models.benchmark import Direction


@pytest.fixture
def registry():
    return build_registry()


class TestCatalogue:

    def test_metric_count(self):
        assert len(METRIC_DEFINITIONS) == 17

    def test_names_unique(self):
        names = [d.name for d in METRIC_DEFINITIONS]
        assert len(names) == len(set(names))

    def test_lower_is_better_metrics(self, registry):
        for name in ("termMonths", "paymentNetDays", "monthlyRent", "usageRightsDays"):
            assert registry.definition(name).direction == Direction.LOWER_IS_BETTER

    def test_higher_is_better_metrics(self, registry):
        for name in ("royaltyRate", "advanceAmount", "baseSalary", "hourlyProjectRate"):
            assert registry.definition(name).higher_is_better

    def test_unknown_metric(self, registry):
        assert registry.definition("vibes") is None

    def test_catalogue_order(self, registry):
        assert registry.catalogue_order("royaltyRate") == 0
        assert registry.catalogue_order("vibes") == len(METRIC_DEFINITIONS)

    def test_cached_registry(self):
        assert get_metric_registry() is get_metric_registry()


class TestProfiles:

    def test_profile_metrics_are_defined(self, registry):
        for profile in PROFILES.values():
            for entry in profile:
                assert registry.definition(entry.name) is not None

    def test_profile_weights_sum_to_one(self):
        for profile in PROFILES.values():
            assert sum(entry.weight for entry in profile) == pytest.approx(1.0)

    def test_exact_profile_preferred(self, registry):
        profile = registry.profile("music", "distribution-deal")
        assert profile[0].name == "royaltyRate"
        assert profile[0].weight == pytest.approx(0.60)

    def test_industry_default_profile(self, registry):
        assert registry.profile("music", "record-deal") == PROFILES[("music", WILDCARD)]

    def test_other_has_no_profile(self, registry):
        assert registry.profile("other", "consulting") is None
        with pytest.raises(UnknownIndustryOrTypeError):
            registry.require_profile("other", "consulting")

    def test_custom_profiles(self):
        custom = build_registry(profiles={("other", WILDCARD): []})
        assert custom.profile("other", "anything") == []


class TestFormat:

    def test_fraction(self, registry):
        assert registry.definition("royaltyRate").format(0.18) == "18.0%"

    def test_currency(self, registry):
        assert registry.definition("advanceAmount").format(75000) == "$75,000"

    def test_net_days(self, registry):
        assert registry.definition("paymentNetDays").format(30) == "Net 30"

    def test_rent_multiple(self, registry):
        assert registry.definition("securityDepositMonths").format(1.5) == "1.5x rent"

    def test_count(self, registry):
        assert registry.definition("deliverableCount").format(4) == "4 items"

    def test_months(self, registry):
        assert registry.definition("termMonths").format(36) == "36 months"

    def test_domain(self):
        definition = MetricDefinition("x", "X", Unit.COUNT, Direction.HIGHER_IS_BETTER, max_value=10)
        assert definition.in_domain(0)
        assert definition.in_domain(10)
        assert not definition.in_domain(11)
        assert not definition.in_domain(-1)
