"""Ephemeral scoring results produced during a single evaluation.

None of these are persisted; they are recomputed on every scan.
"""

from pydantic import BaseModel, ConfigDict

from Setup_Radar.models.enums import (
    MarketRegime,
    StrategyCategory,
    TimeOfDayWindow,
    TradeHorizon,
    VolatilityRegime,
)


class DetectionResult(BaseModel):
    """Outcome of running one detector against one snapshot."""

    model_config = ConfigDict(frozen=True)

    detected: bool
    base_score: float
    factor_scores: dict[str, float]
    confidence: float


class CategoryCompleteness(BaseModel):
    """Available vs. total weight for one data category."""

    model_config = ConfigDict(frozen=True)

    available: int
    total: int
    percent: int


class ConfidencePenalties(BaseModel):
    """Penalty and tier-bonus contributions to the adjusted confidence."""

    model_config = ConfigDict(frozen=True)

    critical_data_penalty: int
    low_completeness_bonus: int


class ConfidenceResult(BaseModel):
    """Data-completeness confidence for one snapshot."""

    model_config = ConfigDict(frozen=True)

    data_completeness_score: int
    base_confidence: int
    adjusted_confidence: float
    confidence_multiplier: float
    total_weight: int
    available_weight: int
    missing_weight: int
    missing_critical: list[str]
    missing_important: list[str]
    missing_minor: list[str]
    category_scores: dict[str, CategoryCompleteness]
    penalties: ConfidencePenalties
    summary: str
    warnings: list[str]


class ScoreAdjustment(BaseModel):
    """A raw score after the confidence multiplier, with its rationale."""

    model_config = ConfigDict(frozen=True)

    adjusted_score: int
    reasoning: str
    was_reduced: bool


class ThresholdBreakdown(BaseModel):
    """Every contribution to an adaptive threshold result, for auditing."""

    model_config = ConfigDict(frozen=True)

    base_from_time: float
    base_from_vix: float
    base_from_regime: float | None
    regime_disabled_penalty: float
    style_from_time: float
    style_from_vix: float
    rr_from_time: float
    rr_from_vix: float
    rr_from_regime: float | None
    size_from_time: float
    size_from_vix: float


class AdaptiveThresholdResult(BaseModel):
    """Final dynamic thresholds for one strategy at one moment."""

    model_config = ConfigDict(frozen=True)

    min_base: int
    min_style: int
    min_risk_reward: float
    size_multiplier: float
    strategy_enabled: bool
    time_window: TimeOfDayWindow
    time_window_label: str
    vix_level: VolatilityRegime
    market_regime: MarketRegime | None
    strategy_category: StrategyCategory
    time_window_rationale: str
    strategy_notes: str
    warnings: list[str]
    breakdown: ThresholdBreakdown


class StyleScores(BaseModel):
    """Base score re-weighted for scalp, day, and swing trading.

    Modifiers are clamped to [0.5, 1.5] and scores to [0, 100]. The
    recommended style is the highest score; ties go to the shorter style.
    """

    model_config = ConfigDict(frozen=True)

    scalp_modifier: float
    day_modifier: float
    swing_modifier: float
    scalp_score: float
    day_score: float
    swing_score: float
    recommended_style: TradeHorizon
    recommended_score: float
    time_window: TimeOfDayWindow
    market_regime: MarketRegime
    reasons: list[str]
    warnings: list[str]
