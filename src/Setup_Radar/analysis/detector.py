"""Opportunity detector framework.

A detector decides whether a specific setup is present in a feature snapshot
and, when it is, scores it as a weighted average of named factors. Concrete
detectors live in ``Setup_Radar.analysis.detectors`` and are registered in a
static table keyed by opportunity type.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from Setup_Radar.models.enums import (
    AssetClass,
    BarTimeframe,
    Direction,
    OpportunityType,
)
from Setup_Radar.models.features import FeatureSnapshot, OptionsChainData
from Setup_Radar.models.scoring import DetectionResult
from Setup_Radar.utils.exceptions import DetectorConfigError

logger = logging.getLogger(__name__)

FactorEvaluator = Callable[[FeatureSnapshot, OptionsChainData | None], float]

# Factor weights must sum to 1.0 within this tolerance
WEIGHT_SUM_TOLERANCE: float = 0.01

INDEX_SYMBOLS: frozenset[str] = frozenset({"SPX", "NDX", "$SPX", "$NDX"})
ETF_SYMBOLS: frozenset[str] = frozenset(
    {"SPY", "QQQ", "IWM", "DIA", "XLF", "XLE", "XLK", "XLV", "XLI", "XLP"}
)

ALL_ASSET_CLASSES: frozenset[AssetClass] = frozenset(AssetClass)


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    """Clamp a value into [lower, upper]."""
    return max(lower, min(upper, value))


def is_spx_or_ndx(symbol: str) -> bool:
    """Return True for the cash-settled index symbols."""
    return symbol.upper() in INDEX_SYMBOLS


def get_asset_class(symbol: str) -> AssetClass:
    """Classify a symbol as INDEX, EQUITY_ETF, or STOCK."""
    if is_spx_or_ndx(symbol):
        return AssetClass.INDEX
    if symbol.upper() in ETF_SYMBOLS:
        return AssetClass.EQUITY_ETF
    return AssetClass.STOCK


@dataclass(frozen=True)
class ScoreFactor:
    """A named, weighted factor evaluated against a snapshot.

    Evaluators return a raw 0-100 value; out-of-range values are clamped.
    """

    name: str
    weight: float
    evaluate: FactorEvaluator


def _evaluate_factor(
    factor: ScoreFactor,
    features: FeatureSnapshot,
    options: OptionsChainData | None,
) -> float:
    """Evaluate one factor, scoring it 0 if the evaluator fails."""
    try:
        raw = factor.evaluate(features, options)
    except Exception as exc:
        logger.warning(
            "Factor '%s' failed for %s, scoring 0: %s", factor.name, features.symbol, exc
        )
        return 0.0

    if isinstance(raw, bool) or not isinstance(raw, int | float) or not math.isfinite(raw):
        logger.warning(
            "Factor '%s' returned non-numeric value %r for %s, scoring 0",
            factor.name,
            raw,
            features.symbol,
        )
        return 0.0
    return clamp(float(raw))


def calculate_composite_score(
    factors: Iterable[ScoreFactor],
    features: FeatureSnapshot,
    options: OptionsChainData | None = None,
) -> tuple[float, dict[str, float]]:
    """Weighted average of clamped factor scores.

    The sum is divided by the total weight actually seen rather than assumed
    to be 1.0. A failing factor scores 0 and keeps its weight.

    Args:
        factors: The factors to evaluate.
        features: Snapshot to evaluate against.
        options: Optional options-chain data.

    Returns:
        Tuple of (score in [0, 100], per-factor clamped scores).
    """
    weighted_sum = 0.0
    total_weight = 0.0
    factor_scores: dict[str, float] = {}

    for factor in factors:
        score = _evaluate_factor(factor, features, options)
        factor_scores[factor.name] = score
        weighted_sum += score * factor.weight
        total_weight += factor.weight

    base_score = weighted_sum / total_weight if total_weight > 0 else 0.0
    return clamp(base_score), factor_scores


class Detector(ABC):
    """Base class for all opportunity detectors.

    Subclasses set the class-level metadata (or pass it to ``__init__``),
    implement :meth:`detect`, and supply their factors.
    """

    def __init__(
        self,
        opportunity_type: OpportunityType,
        direction: Direction,
        factors: Iterable[ScoreFactor],
        *,
        asset_classes: Iterable[AssetClass] = ALL_ASSET_CLASSES,
        requires_options_data: bool = False,
        ideal_timeframe: BarTimeframe | None = None,
    ) -> None:
        self.type = opportunity_type
        self.direction = direction
        self.factors: tuple[ScoreFactor, ...] = tuple(factors)
        self.asset_classes: frozenset[AssetClass] = frozenset(asset_classes)
        self.requires_options_data = requires_options_data
        self.ideal_timeframe = ideal_timeframe

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type})"

    @abstractmethod
    def detect(
        self,
        features: FeatureSnapshot,
        options: OptionsChainData | None = None,
    ) -> bool:
        """Return True if the setup is present."""

    def applies_to(self, asset_class: AssetClass) -> bool:
        return asset_class in self.asset_classes

    def detect_with_score(
        self,
        features: FeatureSnapshot,
        options: OptionsChainData | None = None,
    ) -> DetectionResult:
        """Run detection and, only if it fires, score the factors."""
        if not self.detect(features, options):
            return DetectionResult(
                detected=False, base_score=0.0, factor_scores={}, confidence=0.0
            )

        score, factor_scores = calculate_composite_score(self.factors, features, options)
        return DetectionResult(
            detected=True,
            base_score=score,
            factor_scores=factor_scores,
            confidence=score,
        )


def validate_detector(detector: Detector) -> None:
    """Raise DetectorConfigError if a detector's factor set is malformed."""
    if not detector.factors:
        msg = f"Detector {detector.type} has no score factors"
        raise DetectorConfigError(msg, detector=detector.type)

    names = [factor.name for factor in detector.factors]
    if len(set(names)) != len(names):
        msg = f"Detector {detector.type} has duplicate factor names: {names}"
        raise DetectorConfigError(msg, detector=detector.type)

    for factor in detector.factors:
        if not math.isfinite(factor.weight) or factor.weight <= 0:
            msg = (
                f"Detector {detector.type} factor '{factor.name}' "
                f"has invalid weight {factor.weight}"
            )
            raise DetectorConfigError(msg, detector=detector.type)

    total = math.fsum(factor.weight for factor in detector.factors)
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        msg = f"Detector {detector.type} factor weights sum to {total:.3f}, expected 1.0"
        raise DetectorConfigError(msg, detector=detector.type)

    if not detector.asset_classes:
        msg = f"Detector {detector.type} applies to no asset class"
        raise DetectorConfigError(msg, detector=detector.type)


def build_registry(detectors: Iterable[Detector]) -> Mapping[OpportunityType, Detector]:
    """Validate detectors and freeze them into a read-only registry.

    Raises:
        DetectorConfigError: If any detector is malformed or a type is
            registered twice.
    """
    registry: dict[OpportunityType, Detector] = {}
    for detector in detectors:
        validate_detector(detector)
        if detector.type in registry:
            msg = f"Detector {detector.type} registered twice"
            raise DetectorConfigError(msg, detector=detector.type)
        registry[detector.type] = detector
    logger.debug("Registered %d detectors", len(registry))
    return MappingProxyType(registry)
