"""
Configuration management for DealBench.

Loads settings from environment variables with sensible defaults. Every
numeric threshold the engines apply (k-anonymity, verdict bands, verdict
scores) is policy and lives here rather than in the engine code.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Lower percentile bound of each verdict band, for "higher is better" metrics.
# Anything under the below_average bound is "poor".
DEFAULT_VERDICT_BANDS = {
    "excellent": 90.0,
    "good": 65.0,
    "average": 35.0,
    "below_average": 10.0,
}

DEFAULT_VERDICT_SCORES = {
    "excellent": 100,
    "good": 80,
    "average": 60,
    "below_average": 40,
    "poor": 20,
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DEALBENCH_",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # Anonymization
    # ==========================================================================
    k_min: int = Field(default=5, description="Minimum distinct contracts per published cohort")
    split_cohorts: bool = Field(
        default=True, description="Also publish per follower/experience bucket aggregates"
    )
    min_confidence: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Extractor confidence below which contributions are refused"
    )

    # ==========================================================================
    # Comparison policy
    # ==========================================================================
    verdict_bands: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_VERDICT_BANDS))
    verdict_scores: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_VERDICT_SCORES))
    negotiation_point_limit: int = 3
    heuristic_fallback_enabled: bool = True

    # ==========================================================================
    # Storage
    # ==========================================================================
    storage_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./dealbench.db"
    storage_max_retries: int = 3

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default_factory=list)

    @field_validator("k_min")
    @classmethod
    def validate_k_min(cls, v: int) -> int:
        """A cohort of zero contracts can never be anonymous."""
        if v < 1:
            raise ValueError("k_min must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_bands(self) -> "Settings":
        """Verdict bands must be strictly descending and inside [0, 100]."""
        order = ["excellent", "good", "average", "below_average"]
        missing = [name for name in order if name not in self.verdict_bands]
        if missing:
            raise ValueError(f"verdict_bands missing: {', '.join(missing)}")
        bounds = [self.verdict_bands[name] for name in order]
        if any(b < 0 or b > 100 for b in bounds):
            raise ValueError("verdict_bands must lie within [0, 100]")
        if any(hi <= lo for hi, lo in zip(bounds, bounds[1:])):
            raise ValueError("verdict_bands must be strictly descending")
        return self

    @model_validator(mode="after")
    def validate_scores(self) -> "Settings":
        """Every verdict needs a score inside [0, 100]."""
        missing = [name for name in DEFAULT_VERDICT_SCORES if name not in self.verdict_scores]
        if missing:
            raise ValueError(f"verdict_scores missing: {', '.join(missing)}")
        if any(not 0 <= self.verdict_scores[name] <= 100 for name in DEFAULT_VERDICT_SCORES):
            raise ValueError("verdict_scores must lie within [0, 100]")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
