"""
Error taxonomy for DealBench.

Insufficient data is deliberately absent: a cohort below the k-anonymity
threshold is a state (``is_publishable=False``), not a failure.
"""

from typing import Any


class DealBenchError(Exception):
    """Base class for all DealBench errors."""


class InvalidMetricValueError(DealBenchError):
    """A single metric value falls outside its documented domain."""

    def __init__(self, metric: str, value: Any, reason: str):
        self.metric = metric
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {metric!r}: {value!r} ({reason})")


class UnknownIndustryOrTypeError(DealBenchError):
    """No weight table or cohort definition exists for the requested pair."""

    def __init__(self, industry: str, contract_type: str | None = None):
        self.industry = industry
        self.contract_type = contract_type
        target = industry if contract_type is None else f"{industry}/{contract_type}"
        super().__init__(f"No benchmark profile configured for {target}")


class StorageUnavailableError(DealBenchError):
    """The external datastore failed; callers may retry the whole operation."""

    retryable = True

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage unavailable during {operation}{detail}")


class ContributionRejectedError(DealBenchError):
    """A contribution was refused before reaching the private values table."""
