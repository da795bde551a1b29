"""Metric catalogue, weight profiles and value normalization."""

from dealbench.metrics.registry import (
    MetricDefinition,
    MetricRegistry,
    Unit,
    WeightedMetric,
    build_registry,
    get_metric_registry,
)
from dealbench.metrics.normalization import NormalizedValues, normalize_record, normalize_value

__all__ = [
    "MetricDefinition",
    "MetricRegistry",
    "Unit",
    "WeightedMetric",
    "build_registry",
    "get_metric_registry",
    "NormalizedValues",
    "normalize_record",
    "normalize_value",
]
