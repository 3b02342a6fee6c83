"""Data-completeness confidence scoring.

Scores how much of a feature snapshot is actually populated and turns that
into a 0-1 multiplier applied to detector scores. Missing critical fields cap
confidence; overall completeness adds a tier penalty or bonus.

The weekend variant swaps in a weight table that de-weights live fields
(volume, VWAP, flow) and up-weights historical levels. The algorithm is the
same.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from Setup_Radar.models.enums import ConfidenceLevel
from Setup_Radar.models.features import FeatureSnapshot
from Setup_Radar.models.scoring import (
    CategoryCompleteness,
    ConfidencePenalties,
    ConfidenceResult,
    ScoreAdjustment,
)

logger = logging.getLogger(__name__)

CRITICAL_FIELD_PENALTY: int = 15
IMPORTANT_FIELD_MIN_WEIGHT: int = 5
DEFAULT_MIN_CONFIDENCE: float = 40.0

# --- Completeness tiers ---
VERY_LOW_COMPLETENESS: int = 50
LOW_COMPLETENESS: int = 70
HIGH_COMPLETENESS: int = 90
VERY_LOW_COMPLETENESS_ADJUSTMENT: int = -20
LOW_COMPLETENESS_ADJUSTMENT: int = -10
HIGH_COMPLETENESS_ADJUSTMENT: int = 5


@dataclass(frozen=True)
class DataWeight:
    """Importance of one data field to signal reliability."""

    weight: int
    critical: bool
    category: str


def _weights(entries: dict[str, DataWeight]) -> Mapping[str, DataWeight]:
    return MappingProxyType(entries)


DEFAULT_DATA_WEIGHTS: Mapping[str, DataWeight] = _weights(
    {
        # Price (critical)
        "price": DataWeight(20, True, "price"),
        "priceChange": DataWeight(5, False, "price"),
        # Volume
        "volume": DataWeight(12, True, "volume"),
        "volumeAvg": DataWeight(5, False, "volume"),
        "relativeVolume": DataWeight(8, False, "volume"),
        # Technical
        "vwap": DataWeight(10, False, "technical"),
        "vwapDistance": DataWeight(5, False, "technical"),
        "rsi": DataWeight(8, False, "technical"),
        "ema": DataWeight(6, False, "technical"),
        "atr": DataWeight(10, True, "technical"),
        # Multi-timeframe
        "mtf_1m": DataWeight(2, False, "mtf"),
        "mtf_5m": DataWeight(4, False, "mtf"),
        "mtf_15m": DataWeight(3, False, "mtf"),
        "mtf_60m": DataWeight(2, False, "mtf"),
        # Flow
        "flow": DataWeight(5, False, "flow"),
        "flowScore": DataWeight(4, False, "flow"),
        "flowBias": DataWeight(3, False, "flow"),
        # Patterns / levels
        "orb": DataWeight(3, False, "pattern"),
        "priorDayLevels": DataWeight(4, False, "pattern"),
        "swingLevels": DataWeight(2, False, "pattern"),
        # Market context
        "vixLevel": DataWeight(5, False, "context"),
        "marketRegime": DataWeight(5, False, "context"),
        "session": DataWeight(3, False, "context"),
    }
)

WEEKEND_DATA_WEIGHTS: Mapping[str, DataWeight] = _weights(
    {
        **DEFAULT_DATA_WEIGHTS,
        "volume": DataWeight(5, False, "volume"),
        "relativeVolume": DataWeight(2, False, "volume"),
        "vwap": DataWeight(3, False, "technical"),
        "vwapDistance": DataWeight(2, False, "technical"),
        "flow": DataWeight(2, False, "flow"),
        "flowScore": DataWeight(1, False, "flow"),
        "flowBias": DataWeight(1, False, "flow"),
        "priorDayLevels": DataWeight(10, False, "pattern"),
        "swingLevels": DataWeight(8, False, "pattern"),
    }
)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return math.floor(value + 0.5)


def _is_number(value: float | int | None) -> bool:
    return value is not None and not isinstance(value, bool) and math.isfinite(value)


def _is_positive(value: float | int | None) -> bool:
    return _is_number(value) and value > 0  # type: ignore[operator]


def _mtf_available(timeframe: str) -> Callable[[FeatureSnapshot], bool]:
    def check(features: FeatureSnapshot) -> bool:
        frame = features.mtf.get(timeframe)
        return frame is not None and frame.price is not None and _is_number(frame.price.current)

    return check


_AVAILABILITY_CHECKS: dict[str, Callable[[FeatureSnapshot], bool]] = {
    "price": lambda f: _is_positive(f.price.current),
    "priceChange": lambda f: _is_number(f.price.prev),
    "volume": lambda f: f.volume is not None and _is_positive(f.volume.current),
    "volumeAvg": lambda f: f.volume is not None and _is_positive(f.volume.avg),
    "relativeVolume": lambda f: f.volume is not None and _is_number(f.volume.relative_to_avg),
    "vwap": lambda f: f.vwap is not None and _is_positive(f.vwap.value),
    "vwapDistance": lambda f: f.vwap is not None and _is_number(f.vwap.distance_pct),
    "rsi": lambda f: _is_number(f.rsi.get("14")),
    "ema": lambda f: _is_number(f.ema.get("21")),
    "atr": lambda f: _is_positive(f.atr_for("5m")),
    "mtf_1m": _mtf_available("1m"),
    "mtf_5m": _mtf_available("5m"),
    "mtf_15m": _mtf_available("15m"),
    "mtf_60m": _mtf_available("60m"),
    "flow": lambda f: f.flow is not None,
    "flowScore": lambda f: f.flow is not None and _is_number(f.flow.flow_score),
    "flowBias": lambda f: f.flow is not None and f.flow.flow_bias is not None,
    "orb": lambda f: _is_number(f.pattern.orb_high) and _is_number(f.pattern.orb_low),
    "priorDayLevels": lambda f: _is_positive(f.price.prev_close),
    "swingLevels": lambda f: _is_number(f.pattern.swing_high) and _is_number(f.pattern.swing_low),
    "vixLevel": lambda f: f.pattern.vix_level is not None,
    "marketRegime": lambda f: f.pattern.market_regime is not None,
    "session": lambda f: f.session is not None and f.session.is_regular_hours is not None,
}


def extract_data_availability(features: FeatureSnapshot) -> dict[str, bool]:
    """Flag each weighted field as present and numerically valid."""
    return {name: check(features) for name, check in _AVAILABILITY_CHECKS.items()}


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def calculate_data_confidence(
    features: FeatureSnapshot,
    weights: Mapping[str, DataWeight] = DEFAULT_DATA_WEIGHTS,
) -> ConfidenceResult:
    """Score a snapshot's data completeness and derive a confidence multiplier.

    Each missing critical field caps base confidence at ``100 - 15 * n``.
    Completeness below 50% costs 20 points, below 70% costs 10, and at or
    above 90% earns 5.

    Args:
        features: Snapshot to inspect.
        weights: Field weight table; swap for ``WEEKEND_DATA_WEIGHTS`` off-hours.

    Returns:
        A ConfidenceResult with every intermediate value.
    """
    availability = extract_data_availability(features)

    total_weight = 0
    available_weight = 0
    missing_critical: list[str] = []
    missing_important: list[str] = []
    missing_minor: list[str] = []
    categories: dict[str, list[int]] = {}

    for name, data_weight in weights.items():
        total_weight += data_weight.weight
        bucket = categories.setdefault(data_weight.category, [0, 0])
        bucket[1] += data_weight.weight

        if availability.get(name, False):
            available_weight += data_weight.weight
            bucket[0] += data_weight.weight
        elif data_weight.critical:
            missing_critical.append(name)
        elif data_weight.weight >= IMPORTANT_FIELD_MIN_WEIGHT:
            missing_important.append(name)
        else:
            missing_minor.append(name)

    data_completeness_score = (
        round_half_up(available_weight / total_weight * 100) if total_weight > 0 else 0
    )

    category_scores = {
        category: CategoryCompleteness(
            available=available,
            total=total,
            percent=round_half_up(available / total * 100) if total > 0 else 0,
        )
        for category, (available, total) in categories.items()
    }

    warnings: list[str] = []
    base_confidence = 100
    critical_data_penalty = 0
    if missing_critical:
        critical_data_penalty = len(missing_critical) * CRITICAL_FIELD_PENALTY
        base_confidence = min(base_confidence, 100 - critical_data_penalty)
        warnings.append(f"Missing critical data: {', '.join(missing_critical)}")

    if data_completeness_score < VERY_LOW_COMPLETENESS:
        tier_adjustment = VERY_LOW_COMPLETENESS_ADJUSTMENT
        warnings.append("Data completeness below 50% - signal reliability significantly reduced")
    elif data_completeness_score < LOW_COMPLETENESS:
        tier_adjustment = LOW_COMPLETENESS_ADJUSTMENT
        warnings.append("Data completeness below 70% - signal may be unreliable")
    elif data_completeness_score >= HIGH_COMPLETENESS:
        tier_adjustment = HIGH_COMPLETENESS_ADJUSTMENT
    else:
        tier_adjustment = 0

    adjusted_confidence = max(
        0.0,
        min(100.0, base_confidence * data_completeness_score / 100 + tier_adjustment),
    )

    summary = f"Data: {data_completeness_score}% complete"
    if missing_critical:
        summary += f" ({len(missing_critical)} critical missing)"
    summary += f" → {adjusted_confidence:.0f}% confidence"

    return ConfidenceResult(
        data_completeness_score=data_completeness_score,
        base_confidence=base_confidence,
        adjusted_confidence=adjusted_confidence,
        confidence_multiplier=adjusted_confidence / 100,
        total_weight=total_weight,
        available_weight=available_weight,
        missing_weight=total_weight - available_weight,
        missing_critical=missing_critical,
        missing_important=missing_important,
        missing_minor=missing_minor,
        category_scores=category_scores,
        penalties=ConfidencePenalties(
            critical_data_penalty=critical_data_penalty,
            low_completeness_bonus=tier_adjustment,
        ),
        summary=summary,
        warnings=warnings,
    )


def calculate_weekend_confidence(features: FeatureSnapshot) -> ConfidenceResult:
    """Confidence for weekend or off-hours analysis, where live data is stale."""
    return calculate_data_confidence(features, WEEKEND_DATA_WEIGHTS)


def apply_confidence_to_score(raw_score: float, confidence: ConfidenceResult) -> ScoreAdjustment:
    """Scale a raw detector score by the confidence multiplier."""
    adjusted_score = round_half_up(raw_score * confidence.confidence_multiplier)
    raw_display = f"{raw_score:g}"
    was_reduced = raw_score - adjusted_score > 0

    if was_reduced:
        reasoning = (
            f"Score reduced from {raw_display} to {adjusted_score} "
            f"({confidence.data_completeness_score}% data available"
        )
        if confidence.missing_critical:
            reasoning += f", missing critical: {', '.join(confidence.missing_critical)}"
        reasoning += ")"
    else:
        reasoning = (
            f"Score maintained at {adjusted_score} "
            f"({confidence.data_completeness_score}% data available)"
        )

    return ScoreAdjustment(
        adjusted_score=adjusted_score,
        reasoning=reasoning,
        was_reduced=was_reduced,
    )


def should_filter_low_confidence(
    confidence: ConfidenceResult,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> tuple[bool, str | None]:
    """Return (filter, reason) for a confidence below the minimum."""
    if confidence.adjusted_confidence < min_confidence:
        reason = (
            f"Confidence too low: {confidence.adjusted_confidence:.0f}% < "
            f"{min_confidence:g}% minimum. {confidence.summary}"
        )
        return True, reason
    return False, None


def get_confidence_level(confidence: float) -> ConfidenceLevel:
    """Bucket a confidence value; each boundary belongs to the higher bucket."""
    if confidence >= 80:
        return ConfidenceLevel.HIGH
    if confidence >= 60:
        return ConfidenceLevel.MEDIUM
    if confidence >= 40:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


def format_confidence_result(result: ConfidenceResult) -> str:
    """Render a confidence result as a plain-text report."""
    level = get_confidence_level(result.adjusted_confidence)
    lines = [
        f"Data Completeness: {result.data_completeness_score}%",
        f"Confidence: {result.adjusted_confidence:.0f}% ({level})",
        "",
        "Category Breakdown:",
    ]

    for category, scores in result.category_scores.items():
        filled = round_half_up(scores.percent / 10)
        bar = "█" * filled + "░" * (10 - filled)
        lines.append(f"  {category}: {bar} {scores.percent}%")

    if result.missing_critical:
        lines.extend(["", "Missing Critical Data:"])
        lines.extend(f"  ❌ {name}" for name in result.missing_critical)

    if result.warnings:
        lines.extend(["", "Warnings:"])
        lines.extend(f"  ⚠️ {warning}" for warning in result.warnings)

    return "\n".join(lines)
