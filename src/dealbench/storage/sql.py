"""
Relational benchmark store using SQLAlchemy.

Each cohort replace is a single-writer transaction (delete + insert), so a
failed write leaves the previous aggregate intact. Transient connection
errors are retried here, in the collaborator; the engines never retry.
"""

from datetime import datetime
from typing import Any, Callable, Iterator, TypeVar

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dealbench.config import get_settings
from dealbench.exceptions import StorageUnavailableError
from dealbench.models.benchmark import BenchmarkAggregate, CohortKey
from dealbench.models.contract import ContractRecord, ExtractedValues
from dealbench.storage.base import AggregateStore, ContractValuesStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS benchmark_aggregates (
        industry TEXT NOT NULL,
        contract_type TEXT NOT NULL,
        metric_name TEXT NOT NULL,
        cohort_bucket TEXT NOT NULL,
        sample_size INTEGER NOT NULL,
        min_value DOUBLE PRECISION,
        max_value DOUBLE PRECISION,
        avg_value DOUBLE PRECISION,
        median_value DOUBLE PRECISION,
        percentile_25 DOUBLE PRECISION,
        percentile_75 DOUBLE PRECISION,
        percentile_90 DOUBLE PRECISION,
        is_publishable BOOLEAN NOT NULL,
        last_updated TEXT NOT NULL,
        PRIMARY KEY (industry, contract_type, metric_name, cohort_bucket)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS benchmark_contributions (
        contract_id TEXT PRIMARY KEY,
        industry TEXT NOT NULL,
        contract_type TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
]


def _engine_options(database_url: str) -> dict[str, Any]:
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            options["poolclass"] = StaticPool
        return options
    return {"pool_size": 5, "max_overflow": 10}


class SqlBenchmarkStore(AggregateStore, ContractValuesStore):
    """
    SQL adapter for the aggregate and contribution tables.

    Works against PostgreSQL in production and SQLite in development.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        super().__init__()
        settings = get_settings()
        self.database_url = database_url or settings.database_url
        self.max_retries = max(1, settings.storage_max_retries)
        self.engine = engine or create_engine(
            self.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            **_engine_options(self.database_url),
        )

    def _run(self, operation: str, work: Callable[[Connection], T]) -> T:
        """Run ``work`` in one transaction, retrying transient failures."""

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OperationalError),
            reraise=True,
        )
        def attempt() -> T:
            with self.engine.begin() as conn:
                return work(conn)

        try:
            return attempt()
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error("storage_operation_failed", operation=operation, error=str(e))
            raise StorageUnavailableError(operation, e) from e

    def create_schema(self) -> None:
        """Create both tables if they don't exist."""

        def work(conn: Connection) -> None:
            for statement in SCHEMA:
                conn.execute(text(statement))

        self._run("create_schema", work)
        logger.info("benchmark_schema_ready", url=self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()

    def health_check(self) -> bool:
        try:
            self._run("health_check", lambda conn: conn.execute(text("SELECT 1")))
            return True
        except StorageUnavailableError as e:
            logger.error("sql_health_check_failed", error=str(e))
            return False

    # =========================================================================
    # Aggregate Operations
    # =========================================================================

    def replace_cohort(self, key: CohortKey, aggregate: BenchmarkAggregate | None) -> None:
        key_params = {
            "industry": key.industry,
            "contract_type": key.contract_type,
            "metric_name": key.metric_name,
            "cohort_bucket": key.bucket,
        }

        def work(conn: Connection) -> None:
            conn.execute(
                text("""
                    DELETE FROM benchmark_aggregates
                    WHERE industry = :industry AND contract_type = :contract_type
                      AND metric_name = :metric_name AND cohort_bucket = :cohort_bucket
                """),
                key_params,
            )
            if aggregate is None:
                return
            conn.execute(
                text("""
                    INSERT INTO benchmark_aggregates (
                        industry, contract_type, metric_name, cohort_bucket, sample_size,
                        min_value, max_value, avg_value, median_value,
                        percentile_25, percentile_75, percentile_90,
                        is_publishable, last_updated
                    ) VALUES (
                        :industry, :contract_type, :metric_name, :cohort_bucket, :sample_size,
                        :min_value, :max_value, :avg_value, :median_value,
                        :percentile_25, :percentile_75, :percentile_90,
                        :is_publishable, :last_updated
                    )
                """),
                {
                    **key_params,
                    "sample_size": aggregate.sample_size,
                    "min_value": aggregate.min_value,
                    "max_value": aggregate.max_value,
                    "avg_value": aggregate.avg,
                    "median_value": aggregate.median,
                    "percentile_25": aggregate.p25,
                    "percentile_75": aggregate.p75,
                    "percentile_90": aggregate.p90,
                    "is_publishable": aggregate.is_publishable,
                    "last_updated": aggregate.last_updated.isoformat(),
                },
            )

        self._run("replace_cohort", work)

    def get_aggregate(self, key: CohortKey) -> BenchmarkAggregate | None:
        rows = self._select_aggregates(
            "SELECT * FROM benchmark_aggregates"
            " WHERE industry = :industry AND contract_type = :contract_type"
            " AND metric_name = :metric_name AND cohort_bucket = :cohort_bucket",
            {
                "industry": key.industry,
                "contract_type": key.contract_type,
                "metric_name": key.metric_name,
                "cohort_bucket": key.bucket,
            },
        )
        return rows[0] if rows else None

    def list_aggregates(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
        metric: str | None = None,
        bucket: str | None = None,
        publishable_only: bool = False,
    ) -> list[BenchmarkAggregate]:
        query = "SELECT * FROM benchmark_aggregates WHERE 1=1"
        params: dict[str, Any] = {}

        if industry:
            query += " AND industry = :industry"
            params["industry"] = industry
        if contract_type:
            query += " AND contract_type = :contract_type"
            params["contract_type"] = contract_type
        if metric:
            query += " AND metric_name = :metric_name"
            params["metric_name"] = metric
        if bucket:
            query += " AND cohort_bucket = :cohort_bucket"
            params["cohort_bucket"] = bucket
        if publishable_only:
            query += " AND is_publishable = :is_publishable"
            params["is_publishable"] = True

        query += " ORDER BY industry, contract_type, metric_name, cohort_bucket"
        return self._select_aggregates(query, params)

    def _select_aggregates(self, query: str, params: dict[str, Any]) -> list[BenchmarkAggregate]:
        def work(conn: Connection) -> list[BenchmarkAggregate]:
            result = conn.execute(text(query), params)
            return [self._row_to_aggregate(row) for row in result.mappings().fetchall()]

        return self._run("list_aggregates", work)

    # =========================================================================
    # Contribution Operations
    # =========================================================================

    def add_record(self, record: ContractRecord) -> bool:
        extracted = record.extracted

        def work(conn: Connection) -> None:
            conn.execute(
                text("""
                    INSERT INTO benchmark_contributions (
                        contract_id, industry, contract_type, payload, created_at
                    ) VALUES (
                        :contract_id, :industry, :contract_type, :payload, :created_at
                    )
                """),
                {
                    "contract_id": record.contract_id,
                    "industry": extracted.industry.value,
                    "contract_type": extracted.contract_type,
                    "payload": extracted.model_dump_json(),
                    "created_at": extracted.created_at.isoformat(),
                },
            )

        try:
            self._run("add_record", work)
        except IntegrityError:
            return False
        return True

    def iter_records(
        self,
        industry: str | None = None,
        contract_type: str | None = None,
    ) -> Iterator[ContractRecord]:
        query = "SELECT contract_id, payload FROM benchmark_contributions WHERE 1=1"
        params: dict[str, Any] = {}

        if industry:
            query += " AND industry = :industry"
            params["industry"] = industry
        if contract_type:
            query += " AND contract_type = :contract_type"
            params["contract_type"] = contract_type

        query += " ORDER BY created_at, contract_id"

        def work(conn: Connection) -> list[ContractRecord]:
            result = conn.execute(text(query), params)
            return [
                ContractRecord(
                    contract_id=row["contract_id"],
                    extracted=ExtractedValues.model_validate_json(row["payload"]),
                )
                for row in result.mappings().fetchall()
            ]

        yield from self._run("iter_records", work)

    def count_records(self, industry: str | None = None) -> int:
        query = "SELECT COUNT(*) FROM benchmark_contributions"
        params: dict[str, Any] = {}

        if industry:
            query += " WHERE industry = :industry"
            params["industry"] = industry

        return self._run("count_records", lambda conn: conn.execute(text(query), params).scalar() or 0)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _row_to_aggregate(self, row: Any) -> BenchmarkAggregate:
        """Convert database row to BenchmarkAggregate model."""
        last_updated = row["last_updated"]
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated)

        return BenchmarkAggregate(
            industry=row["industry"],
            contract_type=row["contract_type"],
            metric_name=row["metric_name"],
            cohort_bucket=row["cohort_bucket"],
            sample_size=row["sample_size"],
            min_value=row["min_value"],
            max_value=row["max_value"],
            avg=row["avg_value"],
            median=row["median_value"],
            p25=row["percentile_25"],
            p75=row["percentile_75"],
            p90=row["percentile_90"],
            is_publishable=bool(row["is_publishable"]),
            last_updated=last_updated,
        )
