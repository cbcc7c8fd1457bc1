"""Threshold evaluator - compares a metric sample against alert rules.

Pure functions only: no database access, no clock. All comparisons use
``Decimal`` so that thresholds like "0.1" and CLS readings compare exactly
no matter how often a sample is re-evaluated.

Direction of a breach depends on the metric:

- ``lighthouseScore``: lower is worse, breach when value < threshold
- ``lcp``, ``fid``, ``cls``: higher is worse, breach when value > threshold

A value equal to the threshold never breaches.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

METRIC_LCP = "lcp"
METRIC_FID = "fid"
METRIC_CLS = "cls"
METRIC_LIGHTHOUSE = "lighthouseScore"

METRIC_TYPES = (METRIC_LCP, METRIC_FID, METRIC_CLS, METRIC_LIGHTHOUSE)

# Metrics where a smaller value is the degraded direction
LOWER_IS_WORSE = frozenset({METRIC_LIGHTHOUSE})

SEVERITY_GREEN = "green"
SEVERITY_YELLOW = "yellow"
SEVERITY_RED = "red"


def parse_decimal(raw) -> Decimal:
    """Parse an int or numeric string into a finite Decimal.

    Raises ValueError for anything else, including NaN and infinities.
    """
    if isinstance(raw, bool):
        raise ValueError(f"not a number: {raw!r}")
    if isinstance(raw, int):
        return Decimal(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"not a numeric string: {raw!r}")
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise ValueError(f"not a numeric string: {raw!r}") from None
    if not value.is_finite():
        raise ValueError(f"not a finite number: {raw!r}")
    return value


@dataclass(frozen=True)
class PartialSample:
    """A Core Web Vitals sample where each metric is present or absent.

    ``None`` means absent. Zero is a real reading.
    """
    lcp: Optional[Decimal] = None
    fid: Optional[Decimal] = None
    cls: Optional[Decimal] = None
    lighthouse_score: Optional[Decimal] = None

    @classmethod
    def from_record(cls, record) -> "PartialSample":
        """Build from a MetricSample row (or anything with the same attributes)."""
        def _opt(value):
            return None if value is None else parse_decimal(value)

        return cls(
            lcp=_opt(record.lcp),
            fid=_opt(record.fid),
            cls=_opt(record.cls),
            lighthouse_score=_opt(record.lighthouse_score),
        )

    def value_for(self, metric_type: str) -> Optional[Decimal]:
        """Reading for an alert rule's metric type, or None when absent."""
        if metric_type == METRIC_LCP:
            return self.lcp
        if metric_type == METRIC_FID:
            return self.fid
        if metric_type == METRIC_CLS:
            return self.cls
        if metric_type == METRIC_LIGHTHOUSE:
            return self.lighthouse_score
        raise ValueError(f"unknown metric type: {metric_type!r}")


@dataclass(frozen=True)
class SeverityPolicy:
    """How far past the threshold a breach must go to be red.

    ``red_overshoot`` is a fraction of the threshold: 0.5 means a value at
    least 50% worse than the threshold is red, anything milder is yellow.
    For lower-is-worse metrics the allowed range is 0..threshold, so red
    starts at ``threshold * (1 - red_overshoot)``.
    """
    red_overshoot: Decimal = Decimal("0.5")

    @classmethod
    def from_percent(cls, percent) -> "SeverityPolicy":
        return cls(red_overshoot=parse_decimal(str(percent)) / Decimal(100))

    def severity(self, metric_type: str, value: Decimal, threshold: Decimal) -> str:
        if metric_type in LOWER_IS_WORSE:
            if value <= threshold * (1 - self.red_overshoot):
                return SEVERITY_RED
            return SEVERITY_YELLOW
        if value >= threshold * (1 + self.red_overshoot):
            return SEVERITY_RED
        return SEVERITY_YELLOW


DEFAULT_POLICY = SeverityPolicy()


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of checking one rule against one sample."""
    rule_id: int
    metric_type: str
    breached: bool
    severity: str
    value: Decimal


def is_breach(metric_type: str, value: Decimal, threshold: Decimal) -> bool:
    """True when ``value`` crosses ``threshold`` in the degrading direction."""
    if metric_type in LOWER_IS_WORSE:
        return value < threshold
    return value > threshold


def evaluate(
    sample: PartialSample,
    rules: Iterable,
    policy: SeverityPolicy = DEFAULT_POLICY,
) -> List[EvaluationResult]:
    """Evaluate every active rule whose metric is present in ``sample``.

    ``rules`` are AlertRule rows (``id``, ``metric_type``, ``threshold_value``,
    ``is_active``). Inactive rules and rules for absent metrics produce no
    result.
    """
    results = []
    for rule in rules:
        if not rule.is_active:
            continue
        value = sample.value_for(rule.metric_type)
        if value is None:
            continue
        threshold = parse_decimal(rule.threshold_value)
        breached = is_breach(rule.metric_type, value, threshold)
        severity = (
            policy.severity(rule.metric_type, value, threshold)
            if breached else SEVERITY_GREEN
        )
        results.append(EvaluationResult(
            rule_id=rule.id,
            metric_type=rule.metric_type,
            breached=breached,
            severity=severity,
            value=value,
        ))
    return results
