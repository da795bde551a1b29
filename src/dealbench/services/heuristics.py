"""Static illustrative ranges used when no publishable aggregate exists.

These are product policy rather than measured data: reports built from
them always carry ``using_real_data=False`` and a sample size of zero.
"""

from dealbench.models.benchmark import Distribution


def _range(min_, p25, median, p75, p90, max_, avg) -> Distribution:
    return Distribution(min=min_, p25=p25, median=median, p75=p75, p90=p90, max=max_, avg=avg)


HEURISTIC_RANGES: dict[str, dict[str, Distribution]] = {
    "music": {
        "royaltyRate": _range(0.05, 0.12, 0.15, 0.20, 0.25, 0.35, 0.16),
        "advanceAmount": _range(0, 25_000, 60_000, 150_000, 500_000, 2_000_000, 75_000),
        "termMonths": _range(6, 24, 36, 60, 84, 120, 36),
    },
    "nil": {
        "totalValue": _range(0, 1_000, 3_500, 15_000, 50_000, 250_000, 5_000),
        "hourlyRate": _range(0, 50, 125, 300, 750, 2_500, 150),
        "timeCommitmentHours": _range(1, 5, 15, 40, 80, 200, 20),
    },
    "creator": {
        "ratePerDeliverable": _range(50, 500, 1_200, 3_000, 10_000, 50_000, 1_500),
        "usageRightsDays": _range(7, 30, 90, 180, 365, 730, 90),
        "whitelistingDays": _range(0, 14, 45, 90, 180, 365, 60),
        "deliverableCount": _range(1, 2, 4, 6, 12, 30, 4),
    },
    "esports": {
        "baseSalary": _range(10_000, 35_000, 65_000, 150_000, 300_000, 1_000_000, 75_000),
        "prizePoolSplit": _range(0.2, 0.5, 0.7, 0.8, 0.9, 1.0, 0.7),
        "streamingRevShare": _range(0.1, 0.4, 0.6, 0.8, 1.0, 1.0, 0.6),
    },
    "freelance": {
        "hourlyProjectRate": _range(25, 75, 110, 200, 350, 750, 125),
        "paymentNetDays": _range(0, 15, 30, 45, 60, 120, 30),
    },
    "real-estate": {
        "monthlyRent": _range(500, 1_200, 1_800, 3_000, 5_000, 15_000, 2_000),
        "securityDepositMonths": _range(0, 1, 1.5, 2, 3, 6, 1.5),
    },
}


def heuristic_ranges(industry: str) -> dict[str, Distribution]:
    """Illustrative ranges for an industry; empty when none are defined."""
    return HEURISTIC_RANGES.get(industry, {})
