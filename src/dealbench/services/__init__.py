"""
Aggregation and comparison services for DealBench.
"""

from dealbench.services.anonymizer import Anonymizer, CohortSample
from dealbench.services.aggregation import AggregationEngine, compute_statistics
from dealbench.services.comparison import ComparisonEngine, estimate_percentile, verdict_for
from dealbench.services.benchmark_service import BenchmarkService, get_benchmark_service

__all__ = [
    "Anonymizer",
    "CohortSample",
    "AggregationEngine",
    "compute_statistics",
    "ComparisonEngine",
    "estimate_percentile",
    "verdict_for",
    "BenchmarkService",
    "get_benchmark_service",
]
