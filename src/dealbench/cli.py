"""
Command-line interface for DealBench.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click
import structlog

from dealbench.config import get_settings
from dealbench.exceptions import ContributionRejectedError, StorageUnavailableError
from dealbench.models.contract import ExtractedValues, Industry

logger = structlog.get_logger(__name__)

INDUSTRY_CHOICES = [industry.value for industry in Industry]


def _load_json(path: str) -> object:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _echo_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """DealBench: market benchmarks and deal comparison for contract terms."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    level = logging.DEBUG if debug else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


# =========================================================================
# Server Commands
# =========================================================================


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo(f"Starting DealBench API server on {host}:{port}")

    uvicorn.run(
        "dealbench.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


# =========================================================================
# Benchmark Commands
# =========================================================================


@cli.command()
@click.option("--industry", type=click.Choice(INDUSTRY_CHOICES), help="Limit to one industry")
@click.option("--contract-type", help="Limit to one contract type")
def recompute(industry: Optional[str], contract_type: Optional[str]) -> None:
    """Recompute published benchmark aggregates."""
    from dealbench.services.benchmark_service import get_benchmark_service

    try:
        result = get_benchmark_service().recompute_aggregates(
            industry=industry, contract_type=contract_type
        )
    except StorageUnavailableError as e:
        logger.error("recompute_failed", operation=e.operation, error=str(e))
        raise click.ClickException(f"{e} (retry later)")

    click.echo(f"Aggregates updated: {result['updated']}")


@cli.command()
@click.argument("industry", type=click.Choice(INDUSTRY_CHOICES))
@click.option("--contract-type", help="Contract type to filter on")
@click.option("--metric", help="Metric name to filter on")
def benchmarks(industry: str, contract_type: Optional[str], metric: Optional[str]) -> None:
    """Show published benchmarks for an industry."""
    from dealbench.services.benchmark_service import get_benchmark_service

    summary = get_benchmark_service().get_benchmarks(
        industry, contract_type=contract_type, metric=metric
    )
    _echo_json(summary.model_dump(mode="json", by_alias=True))


@cli.command()
@click.argument("values_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--title", help="Contract title to show in the report")
def compare(values_file: str, title: Optional[str]) -> None:
    """Compare extracted contract values (JSON file) against the market."""
    from dealbench.services.benchmark_service import get_benchmark_service

    extracted = ExtractedValues.model_validate(_load_json(values_file))
    report = get_benchmark_service().compare_deal(extracted, contract_title=title)

    click.echo(f"Overall score: {report.overall_score}/100")
    if not report.using_real_data:
        click.echo("Note: not enough market data yet, using illustrative ranges")
    for comparison in report.comparisons:
        click.echo(f"  [{comparison.verdict.value}] {comparison.insight}")
    for point in report.negotiation_points:
        click.echo(f"  -> {point}")


@cli.command()
@click.argument("values_file", type=click.Path(exists=True, dir_okay=False))
def contribute(values_file: str) -> None:
    """Add extracted contract values (JSON object or list) to the benchmark population."""
    from dealbench.services.benchmark_service import get_benchmark_service

    payload = _load_json(values_file)
    items = payload if isinstance(payload, list) else [payload]
    service = get_benchmark_service()

    accepted = 0
    for item in items:
        contract_id = item.pop("contractId", None) if isinstance(item, dict) else None
        try:
            result = service.submit_contribution(
                ExtractedValues.model_validate(item), contract_id=contract_id
            )
        except ContributionRejectedError as e:
            click.echo(f"Skipped: {e}", err=True)
            continue
        accepted += int(result["accepted"])

    click.echo(f"Contributions accepted: {accepted}/{len(items)}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
