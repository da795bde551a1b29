"""Coerce raw extractor output into each metric's fixed unit.

The extractor may hand over numbers or the strings it lifted from the
contract ("18%", "$75,000", "3 years", "Net 45"). Values are converted
into the unit declared in the registry, then checked against the metric's
domain. Anything that cannot be converted unambiguously is rejected.
"""

import math
import re
from dataclasses import dataclass, field

import structlog

from dealbench.exceptions import InvalidMetricValueError
from dealbench.metrics.registry import MetricDefinition, MetricRegistry, Unit
from dealbench.models.contract import ExtractedValues, MetricValue

logger = structlog.get_logger(__name__)


_NUMBER = r"(\d[\d,]*(?:\.\d+)?|\.\d+)"
_PERCENT_RE = re.compile(rf"^{_NUMBER}\s*%$")
_MONEY_RE = re.compile(rf"^\$?\s*{_NUMBER}\s*([kmb])?$", re.IGNORECASE)
_DURATION_RE = re.compile(rf"^{_NUMBER}\s*(day|week|month|year|hour|hr)s?$", re.IGNORECASE)
_NET_RE = re.compile(r"^net\s*(\d+)$", re.IGNORECASE)
_MULTIPLE_RE = re.compile(rf"^{_NUMBER}\s*x(?:\s*rent)?$", re.IGNORECASE)
_PLAIN_RE = re.compile(rf"^{_NUMBER}$")

_MAGNITUDE = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}

# Day-based conversions follow the calendar approximations used for
# usage-rights windows: a month is 30 days, a year 365.
_DAYS_PER = {"day": 1, "week": 7, "month": 30, "year": 365}
_MONTHS_PER = {"month": 1, "year": 12}
_HOURS_PER = {"hour": 1, "hr": 1, "day": 24}


def _to_float(text: str) -> float:
    return float(text.replace(",", ""))


def _parse_string(definition: MetricDefinition, raw: str) -> float:
    text = raw.strip()

    if match := _PLAIN_RE.match(text):
        return _to_float(match.group(1))

    if definition.unit == Unit.FRACTION:
        if match := _PERCENT_RE.match(text):
            return _to_float(match.group(1)) / 100
    elif definition.unit == Unit.CURRENCY:
        if match := _MONEY_RE.match(text):
            amount = _to_float(match.group(1))
            suffix = (match.group(2) or "").lower()
            return amount * _MAGNITUDE.get(suffix, 1)
    elif definition.unit == Unit.MULTIPLE:
        if match := _MULTIPLE_RE.match(text):
            return _to_float(match.group(1))
    elif definition.unit == Unit.DAYS:
        if match := _NET_RE.match(text):
            return float(match.group(1))
        if (match := _DURATION_RE.match(text)) and match.group(2).lower() in _DAYS_PER:
            return _to_float(match.group(1)) * _DAYS_PER[match.group(2).lower()]
    elif definition.unit == Unit.MONTHS:
        if (match := _DURATION_RE.match(text)) and match.group(2).lower() in _MONTHS_PER:
            return _to_float(match.group(1)) * _MONTHS_PER[match.group(2).lower()]
    elif definition.unit == Unit.HOURS:
        if (match := _DURATION_RE.match(text)) and match.group(2).lower() in _HOURS_PER:
            return _to_float(match.group(1)) * _HOURS_PER[match.group(2).lower()]

    raise InvalidMetricValueError(definition.name, raw, f"cannot read as {definition.unit.value}")


def normalize_value(definition: MetricDefinition, raw: MetricValue) -> float:
    """Convert one raw value into the metric's unit, enforcing its domain."""
    if raw is None or isinstance(raw, bool):
        raise InvalidMetricValueError(definition.name, raw, "not numeric")

    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        value = _parse_string(definition, raw)
    else:
        raise InvalidMetricValueError(definition.name, raw, "unsupported type")

    if math.isnan(value) or math.isinf(value):
        raise InvalidMetricValueError(definition.name, raw, "not finite")
    if not definition.in_domain(value):
        raise InvalidMetricValueError(definition.name, raw, "outside metric domain")
    return value


@dataclass
class NormalizedValues:
    """Numeric metric values of one record, plus what was turned away."""
    accepted: dict[str, float] = field(default_factory=dict)
    rejected: dict[str, str] = field(default_factory=dict)


def normalize_record(extracted: ExtractedValues, registry: MetricRegistry) -> NormalizedValues:
    """Normalize every benchmarkable value of a record independently.

    A bad value only removes that metric; the rest of the record proceeds.
    Booleans and categorical fields are not benchmarked and are skipped
    without being reported as rejections.
    """
    result = NormalizedValues()

    for name, raw in extracted.values.items():
        definition = registry.definition(name)
        if definition is None or raw is None or isinstance(raw, bool):
            continue
        try:
            result.accepted[name] = normalize_value(definition, raw)
        except InvalidMetricValueError as e:
            result.rejected[name] = e.reason
            logger.debug("metric_value_rejected", metric=name, reason=e.reason)

    _derive_hourly_rate(result, registry)
    return result


def _derive_hourly_rate(result: NormalizedValues, registry: MetricRegistry) -> None:
    """Effective hourly rate from total value and time commitment when not given."""
    if "hourlyRate" in result.accepted or "hourlyRate" in result.rejected:
        return
    definition = registry.definition("hourlyRate")
    total = result.accepted.get("totalValue")
    hours = result.accepted.get("timeCommitmentHours")
    if definition is None or total is None or not hours:
        return
    rate = total / hours
    if definition.in_domain(rate):
        result.accepted["hourlyRate"] = rate
