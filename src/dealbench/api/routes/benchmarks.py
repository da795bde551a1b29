"""
Benchmark routes: published aggregates, recomputation and deal comparison.
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from dealbench.models.api import (
    CompareRequest,
    CompareResponse,
    ComputeRequest,
    ComputeResponse,
    ContributionRequest,
    ContributionResponse,
    SideBySideRequest,
)
from dealbench.models.benchmark import BenchmarkSummary, SideBySideComparison
from dealbench.models.contract import Industry
from dealbench.services.benchmark_service import BenchmarkService, get_benchmark_service

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("", response_model=BenchmarkSummary)
def get_benchmarks(
    industry: Industry,
    contract_type: str | None = Query(default=None, alias="contractType"),
    metric: str | None = None,
    service: BenchmarkService = Depends(get_benchmark_service),
) -> BenchmarkSummary:
    """
    Publishable aggregates for an industry.

    Only cohorts that met the k-anonymity threshold are returned.
    """
    return service.get_benchmarks(industry.value, contract_type=contract_type, metric=metric)


@router.post("/compute", response_model=ComputeResponse)
def compute_benchmarks(
    request: ComputeRequest | None = None,
    service: BenchmarkService = Depends(get_benchmark_service),
) -> ComputeResponse:
    """Recompute aggregates for everything or for one industry/contract type."""
    request = request or ComputeRequest()
    if request.industry is not None and request.industry not in {i.value for i in Industry}:
        raise HTTPException(status_code=400, detail=f"Unknown industry: {request.industry}")

    result = service.recompute_aggregates(
        industry=request.industry,
        contract_type=request.contract_type,
    )
    return ComputeResponse(
        updated=result["updated"],
        message="Benchmark aggregates recomputed",
    )


@router.post("/compare", response_model=CompareResponse)
def compare_deal(
    request: CompareRequest,
    service: BenchmarkService = Depends(get_benchmark_service),
) -> CompareResponse:
    """Benchmark one contract's values against the market."""
    report = service.compare_deal(request.extracted_values, contract_title=request.contract_title)
    return CompareResponse(report=report, generated_at=datetime.now(timezone.utc))


@router.post("/contributions", response_model=ContributionResponse, status_code=201)
def submit_contribution(
    request: ContributionRequest,
    service: BenchmarkService = Depends(get_benchmark_service),
) -> ContributionResponse:
    """Offer an analysed contract to the benchmark population."""
    result = service.submit_contribution(request.extracted_values, contract_id=request.contract_id)
    return ContributionResponse(**result)


@router.post("/side-by-side", response_model=SideBySideComparison)
def side_by_side(
    request: SideBySideRequest,
    service: BenchmarkService = Depends(get_benchmark_service),
) -> SideBySideComparison:
    """Compare two or more contracts with each other."""
    try:
        return service.side_by_side(request.contracts)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
