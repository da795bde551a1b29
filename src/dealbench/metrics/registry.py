"""Metric catalogue and per-industry weight profiles.

Every benchmarked metric is declared once here with its unit convention,
valid domain and directionality. Industry differences live entirely in
``PROFILES``: adding an industry or contract type means adding an entry,
never a new branch in the engines.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache

from dealbench.exceptions import UnknownIndustryOrTypeError
from dealbench.models.benchmark import Direction


WILDCARD = "*"


class Unit(str, Enum):
    """Fixed storage convention for a metric's values."""
    FRACTION = "fraction"   # 0-1, e.g. 0.15 for 15%
    CURRENCY = "currency"   # major units (dollars)
    MONTHS = "months"
    DAYS = "days"
    HOURS = "hours"
    COUNT = "count"
    MULTIPLE = "multiple"   # multiple of another amount, e.g. 1.5x rent


@dataclass(frozen=True)
class MetricDefinition:
    """A benchmarkable numeric metric."""
    name: str
    label: str
    unit: Unit
    direction: Direction
    min_value: float = 0.0
    max_value: float | None = None
    display_prefix: str = ""

    @property
    def higher_is_better(self) -> bool:
        return self.direction == Direction.HIGHER_IS_BETTER

    def in_domain(self, value: float) -> bool:
        if value < self.min_value:
            return False
        return self.max_value is None or value <= self.max_value

    def format(self, value: float) -> str:
        """Human display string in the metric's unit."""
        if self.unit == Unit.FRACTION:
            return f"{value * 100:.1f}%"
        if self.unit == Unit.CURRENCY:
            return f"${value:,.0f}"
        if self.unit == Unit.MULTIPLE:
            return f"{value:.1f}x rent"
        if self.display_prefix:
            return f"{self.display_prefix} {value:g}"
        if self.unit == Unit.COUNT:
            return f"{value:g} items"
        return f"{value:g} {self.unit.value}"


@dataclass(frozen=True)
class WeightedMetric:
    """A metric's importance within one industry/contract-type profile."""
    name: str
    weight: float


@dataclass
class MetricRegistry:
    """Lookup of metric definitions and weight profiles."""
    definitions: dict[str, MetricDefinition]
    profiles: dict[tuple[str, str], list[WeightedMetric]] = field(default_factory=dict)

    def definition(self, name: str) -> MetricDefinition | None:
        return self.definitions.get(name)

    def catalogue_order(self, name: str) -> int:
        """Position of a metric in declaration order; unknown metrics sort last."""
        names = list(self.definitions)
        return names.index(name) if name in names else len(names)

    def profile(self, industry: str, contract_type: str) -> list[WeightedMetric] | None:
        """Weight profile for a contract type, falling back to the industry default."""
        exact = self.profiles.get((industry, contract_type))
        if exact is not None:
            return exact
        return self.profiles.get((industry, WILDCARD))

    def require_profile(self, industry: str, contract_type: str) -> list[WeightedMetric]:
        profile = self.profile(industry, contract_type)
        if profile is None:
            raise UnknownIndustryOrTypeError(industry, contract_type)
        return profile


METRIC_DEFINITIONS = [
    # Music
    MetricDefinition("royaltyRate", "Royalty Rate", Unit.FRACTION, Direction.HIGHER_IS_BETTER, max_value=1.0),
    MetricDefinition("advanceAmount", "Advance", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("termMonths", "Contract Term", Unit.MONTHS, Direction.LOWER_IS_BETTER, max_value=600),
    # NIL
    MetricDefinition("totalValue", "Total Value", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("hourlyRate", "Effective Rate", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("timeCommitmentHours", "Time Required", Unit.HOURS, Direction.LOWER_IS_BETTER, max_value=10_000),
    # Creator
    MetricDefinition("ratePerDeliverable", "Rate/Post", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("usageRightsDays", "Usage Duration", Unit.DAYS, Direction.LOWER_IS_BETTER, max_value=36_500),
    MetricDefinition("whitelistingDays", "Whitelisting", Unit.DAYS, Direction.LOWER_IS_BETTER, max_value=36_500),
    MetricDefinition("deliverableCount", "Deliverables", Unit.COUNT, Direction.LOWER_IS_BETTER, max_value=1_000),
    # Esports
    MetricDefinition("baseSalary", "Base Salary", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("prizePoolSplit", "Prize Split", Unit.FRACTION, Direction.HIGHER_IS_BETTER, max_value=1.0),
    MetricDefinition("streamingRevShare", "Stream Revenue", Unit.FRACTION, Direction.HIGHER_IS_BETTER, max_value=1.0),
    # Freelance
    MetricDefinition("hourlyProjectRate", "Rate", Unit.CURRENCY, Direction.HIGHER_IS_BETTER),
    MetricDefinition("paymentNetDays", "Payment Terms", Unit.DAYS, Direction.LOWER_IS_BETTER,
                     max_value=365, display_prefix="Net"),
    # Real estate
    MetricDefinition("monthlyRent", "Monthly Rent", Unit.CURRENCY, Direction.LOWER_IS_BETTER),
    MetricDefinition("securityDepositMonths", "Security Deposit", Unit.MULTIPLE, Direction.LOWER_IS_BETTER,
                     max_value=24),
]


def _profile(*pairs: tuple[str, float]) -> list[WeightedMetric]:
    return [WeightedMetric(name, weight) for name, weight in pairs]


# (industry, contract type) -> ordered metrics with importance weights.
# "other" deliberately has no profile: comparisons there are unweighted.
PROFILES = {
    ("music", WILDCARD): _profile(
        ("royaltyRate", 0.40), ("advanceAmount", 0.35), ("termMonths", 0.25)
    ),
    ("music", "distribution-deal"): _profile(
        ("royaltyRate", 0.60), ("termMonths", 0.25), ("advanceAmount", 0.15)
    ),
    ("nil", WILDCARD): _profile(
        ("totalValue", 0.40), ("hourlyRate", 0.35), ("timeCommitmentHours", 0.25)
    ),
    ("creator", WILDCARD): _profile(
        ("ratePerDeliverable", 0.40), ("usageRightsDays", 0.25),
        ("whitelistingDays", 0.20), ("deliverableCount", 0.15),
    ),
    ("esports", WILDCARD): _profile(
        ("baseSalary", 0.50), ("prizePoolSplit", 0.30), ("streamingRevShare", 0.20)
    ),
    ("freelance", WILDCARD): _profile(
        ("hourlyProjectRate", 0.60), ("paymentNetDays", 0.40)
    ),
    ("real-estate", WILDCARD): _profile(
        ("monthlyRent", 0.65), ("securityDepositMonths", 0.35)
    ),
}


def build_registry(
    definitions: list[MetricDefinition] | None = None,
    profiles: dict[tuple[str, str], list[WeightedMetric]] | None = None,
) -> MetricRegistry:
    """Build a registry, defaulting to the built-in catalogue."""
    return MetricRegistry(
        definitions={d.name: d for d in (definitions or METRIC_DEFINITIONS)},
        profiles=dict(PROFILES if profiles is None else profiles),
    )


@lru_cache()
def get_metric_registry() -> MetricRegistry:
    """Get cached default registry."""
    return build_registry()
