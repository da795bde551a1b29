"""
API request and response models.
"""

from datetime import datetime

from pydantic import Field

from dealbench.models.base import CamelModel
from dealbench.models.benchmark import BenchmarkReport
from dealbench.models.contract import ExtractedValues


# =============================================================================
# Aggregation Models
# =============================================================================


class ComputeRequest(CamelModel):
    """Scope of an aggregate recomputation; empty means everything."""

    industry: str | None = None
    contract_type: str | None = None


class ComputeResponse(CamelModel):
    """Result of an aggregate recomputation."""

    success: bool = True
    updated: int
    message: str


# =============================================================================
# Comparison Models
# =============================================================================


class CompareRequest(CamelModel):
    """Request model for comparing one deal against the market."""

    extracted_values: ExtractedValues
    contract_title: str | None = Field(default=None, max_length=200)


class CompareResponse(CamelModel):
    """Benchmark report plus the time it was produced."""

    report: BenchmarkReport
    generated_at: datetime


class SideBySideRequest(CamelModel):
    """Two or more deals to compare with each other."""

    contracts: list[ExtractedValues] = Field(..., min_length=2, max_length=10)


# =============================================================================
# Contribution Models
# =============================================================================


class ContributionRequest(CamelModel):
    """One analysed contract offered to the benchmark population."""

    extracted_values: ExtractedValues
    contract_id: str | None = None


class ContributionResponse(CamelModel):
    """Acknowledgement of an accepted contribution."""

    accepted: bool
    metrics_accepted: list[str] = Field(default_factory=list)
    metrics_rejected: list[str] = Field(default_factory=list)


class ErrorResponse(CamelModel):
    """Error payload."""

    error: str
    detail: str | None = None
    retryable: bool = False
