"""
Contract-side models: what the value extractor hands to the engine.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import ConfigDict, Field, field_validator

from dealbench.models.base import CamelModel


MetricValue = float | int | bool | str | None


class Industry(str, Enum):
    """Industry verticals a contract can be benchmarked in."""

    MUSIC = "music"
    NIL = "nil"
    CREATOR = "creator"
    ESPORTS = "esports"
    FREELANCE = "freelance"
    REAL_ESTATE = "real-estate"
    OTHER = "other"


# Coarse, range-quantized audience buckets. Raw follower counts are refused.
FOLLOWER_RANGES = ("0-10k", "10k-50k", "50k-100k", "100k-500k", "500k-1m", "1m+")


class ExperienceLevel(str, Enum):
    """Coarse career stage supplied by the extractor."""

    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    STAR = "star"


def normalize_contract_type(contract_type: str) -> str:
    """Fold contract type labels so "Publishing Deal" and "publishing_deal" group together."""
    slug = re.sub(r"[\s_]+", "-", contract_type.strip().lower())
    return slug or "unknown"


class ExtractedValues(CamelModel):
    """
    Structured terms extracted from one contract.

    Immutable once created. ``values`` keys vary by industry; numbers may
    still arrive as strings ("18%", "$75,000") and are normalized later.
    """

    model_config = ConfigDict(frozen=True)

    industry: Industry
    contract_type: str = Field(default="unknown", description="Free-form contract type label")
    values: dict[str, MetricValue] = Field(default_factory=dict)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Extractor confidence")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Cohort metadata (already bucketed by the extractor)
    follower_range: str | None = None
    experience_level: ExperienceLevel | None = None

    @field_validator("contract_type", mode="before")
    @classmethod
    def fold_contract_type(cls, v: str | None) -> str:
        return normalize_contract_type(v or "")

    @field_validator("created_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @field_validator("follower_range")
    @classmethod
    def validate_follower_range(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if v not in FOLLOWER_RANGES:
            raise ValueError(f"follower_range must be one of {', '.join(FOLLOWER_RANGES)}")
        return v


class ContractRecord(CamelModel):
    """
    A row of the private per-contract values table.

    The contract id only exists to de-duplicate contributions; it never
    crosses into the aggregation engine.
    """

    model_config = ConfigDict(frozen=True)

    contract_id: str = Field(default_factory=lambda: str(uuid4()))
    extracted: ExtractedValues
