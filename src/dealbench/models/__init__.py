"""
Pydantic models for DealBench.

- Contract models for what the extractor supplies
- Benchmark models for cohorts, aggregates and reports
- API models for request/response schemas
"""

from dealbench.models.contract import (
    ContractRecord,
    ExperienceLevel,
    ExtractedValues,
    FOLLOWER_RANGES,
    Industry,
)
from dealbench.models.benchmark import (
    ALL_BUCKETS,
    BenchmarkAggregate,
    BenchmarkReport,
    BenchmarkSummary,
    CohortKey,
    DealComparison,
    Direction,
    Distribution,
    MetricFaceOff,
    SideBySideComparison,
    Verdict,
)

__all__ = [
    # Contract models
    "ContractRecord",
    "ExperienceLevel",
    "ExtractedValues",
    "FOLLOWER_RANGES",
    "Industry",
    # Benchmark models
    "ALL_BUCKETS",
    "BenchmarkAggregate",
    "BenchmarkReport",
    "BenchmarkSummary",
    "CohortKey",
    "DealComparison",
    "Direction",
    "Distribution",
    "MetricFaceOff",
    "SideBySideComparison",
    "Verdict",
]
