"""Adaptive threshold engine.

Combines three orthogonal adjustments into one set of minimums for a
strategy at a moment in time:

1. Time-of-day window (US/Eastern) supplies the base thresholds and size.
2. The VIX regime adds deltas to the thresholds and scales size.
3. The market regime sets a per-category floor and an enabled flag.

Weekends use a fixed advisory-only threshold set with zero size.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from zoneinfo import ZoneInfo

from Setup_Radar.analysis.confidence import round_half_up
from Setup_Radar.models.enums import (
    MarketRegime,
    StrategyCategory,
    TimeOfDayWindow,
    VolatilityRegime,
)
from Setup_Radar.models.scoring import AdaptiveThresholdResult, ThresholdBreakdown

logger = logging.getLogger(__name__)

MARKET_TZ = ZoneInfo("America/New_York")

REGIME_DISABLED_PENALTY: int = 10
HIGH_THRESHOLD_WARNING: int = 85
LOW_SIZE_WARNING: float = 0.5


@dataclass(frozen=True)
class WindowThresholds:
    """Base thresholds and size multiplier for one time window."""

    min_base: float
    min_style: float
    min_rr: float
    size_multiplier: float


@dataclass(frozen=True)
class TimeWindowConfig:
    """A named half-open [start, end) range of minutes after ET midnight."""

    name: TimeOfDayWindow
    label: str
    start_minutes: int
    end_minutes: int
    thresholds: WindowThresholds
    rationale: str

    def contains(self, minutes: int) -> bool:
        return self.start_minutes <= minutes < self.end_minutes


@dataclass(frozen=True)
class VixAdjustment:
    min_base: float
    min_style: float
    min_rr: float
    size_multiplier: float


@dataclass(frozen=True)
class RegimeStrategyThreshold:
    min_base: float
    min_rr: float
    enabled: bool
    notes: str


DEFAULT_TIME_WINDOWS: tuple[TimeWindowConfig, ...] = (
    TimeWindowConfig(
        TimeOfDayWindow.PRE_MARKET, "Pre-Market", 240, 570,
        WindowThresholds(80, 82, 2.0, 0.5),
        "Pre-market: Low liquidity, wider spreads, higher bar required",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.OPENING_DRIVE, "Opening Drive", 570, 600,
        WindowThresholds(65, 70, 1.2, 1.0),
        "First 30min: High momentum, gap plays, ORB setups - lower bar for breakouts",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.MID_MORNING, "Mid-Morning", 600, 660,
        WindowThresholds(72, 75, 1.5, 1.0),
        "Post-ORB stabilization: Trend confirmation setups",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.LATE_MORNING, "Late Morning", 660, 690,
        WindowThresholds(75, 78, 1.6, 0.9),
        "Transition to lunch: Volume declining, be more selective",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.LUNCH_CHOP, "Lunch Chop", 690, 810,
        WindowThresholds(85, 88, 2.2, 0.6),
        "Lunch hours: Low volume, choppy action, false breakouts - only best setups",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.EARLY_AFTERNOON, "Early Afternoon", 810, 870,
        WindowThresholds(72, 75, 1.5, 0.9),
        "Volume returning: Institutional activity picks up",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.AFTERNOON, "Afternoon", 870, 900,
        WindowThresholds(70, 73, 1.4, 1.0),
        "Pre-power hour: Good setups developing for EOD moves",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.POWER_HOUR, "Power Hour", 900, 960,
        WindowThresholds(68, 72, 1.3, 1.1),
        "Power hour: High momentum, reversals, end-of-day positioning - lower bar",
    ),
    TimeWindowConfig(
        TimeOfDayWindow.AFTER_HOURS, "After Hours", 960, 1200,
        WindowThresholds(85, 88, 2.5, 0.3),
        "After hours: Very low liquidity, wide spreads - highest bar",
    ),
)

# Used when a weekday time falls outside every window
OFF_HOURS_THRESHOLDS = WindowThresholds(75, 78, 1.5, 0.5)

WEEKEND_THRESHOLDS = WindowThresholds(60, 65, 1.3, 0.0)

DEFAULT_VIX_ADJUSTMENTS: Mapping[VolatilityRegime, VixAdjustment] = MappingProxyType(
    {
        VolatilityRegime.LOW: VixAdjustment(-5, -3, -0.2, 1.2),
        VolatilityRegime.MEDIUM: VixAdjustment(0, 0, 0.0, 1.0),
        VolatilityRegime.HIGH: VixAdjustment(5, 5, 0.3, 0.7),
        VolatilityRegime.EXTREME: VixAdjustment(15, 12, 0.7, 0.4),
    }
)

_R = RegimeStrategyThreshold

DEFAULT_REGIME_THRESHOLDS: Mapping[
    MarketRegime, Mapping[StrategyCategory, RegimeStrategyThreshold]
] = MappingProxyType(
    {
        MarketRegime.TRENDING: MappingProxyType(
            {
                StrategyCategory.BREAKOUT: _R(
                    65, 1.3, True, "Breakouts work well in trends - lower threshold"
                ),
                StrategyCategory.MEAN_REVERSION: _R(
                    85, 2.0, False, "Fighting the trend - high risk, require extreme setup"
                ),
                StrategyCategory.TREND_CONTINUATION: _R(
                    60, 1.2, True, "Best strategy for trending markets - lowest threshold"
                ),
                StrategyCategory.GAMMA: _R(70, 1.5, True, "Gamma plays can work with trend"),
                StrategyCategory.REVERSAL: _R(
                    88, 2.2, False, "Reversals in trends are counter-trend - very risky"
                ),
                StrategyCategory.ALL: _R(70, 1.5, True, "Generic catch-all for trending markets"),
            }
        ),
        MarketRegime.RANGING: MappingProxyType(
            {
                StrategyCategory.BREAKOUT: _R(
                    85, 2.0, False, "Breakouts fail 70%+ in ranges - avoid or demand extreme setup"
                ),
                StrategyCategory.MEAN_REVERSION: _R(
                    65, 1.3, True, "Mean reversion is the play in ranges - lower threshold"
                ),
                StrategyCategory.TREND_CONTINUATION: _R(
                    80, 1.8, False, "No trend to continue - avoid"
                ),
                StrategyCategory.GAMMA: _R(72, 1.5, True, "Gamma pinning can work well in ranges"),
                StrategyCategory.REVERSAL: _R(
                    70, 1.4, True, "Range reversals at extremes work well"
                ),
                StrategyCategory.ALL: _R(72, 1.5, True, "Generic catch-all for ranging markets"),
            }
        ),
        MarketRegime.CHOPPY: MappingProxyType(
            {
                StrategyCategory.BREAKOUT: _R(
                    92, 2.5, False, "Choppy markets = false breakouts - avoid"
                ),
                StrategyCategory.MEAN_REVERSION: _R(
                    78, 1.5, True, "Can work with extra confirmation"
                ),
                StrategyCategory.TREND_CONTINUATION: _R(
                    88, 2.2, False, "No trend in chop - avoid"
                ),
                StrategyCategory.GAMMA: _R(
                    82, 1.8, True, "Gamma plays can work but need wider stops"
                ),
                StrategyCategory.REVERSAL: _R(
                    75, 1.5, True, "Reversals at extreme chop levels can work"
                ),
                StrategyCategory.ALL: _R(
                    82, 1.8, True, "Generic catch-all for choppy markets - raise the bar"
                ),
            }
        ),
        MarketRegime.VOLATILE: MappingProxyType(
            {
                StrategyCategory.BREAKOUT: _R(
                    85, 2.0, True, "Breakouts can work but need wider stops"
                ),
                StrategyCategory.MEAN_REVERSION: _R(
                    80, 1.8, True, "Extreme moves often revert - but volatile"
                ),
                StrategyCategory.TREND_CONTINUATION: _R(
                    82, 2.0, True, "Can ride volatility but size down"
                ),
                StrategyCategory.GAMMA: _R(78, 1.6, True, "Gamma squeezes love volatility"),
                StrategyCategory.REVERSAL: _R(
                    72, 1.4, True, "Volatility creates reversal opportunities"
                ),
                StrategyCategory.ALL: _R(
                    78, 1.6, True, "Generic catch-all for volatile markets - size down"
                ),
            }
        ),
    }
)


def _to_market_time(timestamp: datetime.datetime) -> datetime.datetime:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=datetime.UTC)
    return timestamp.astimezone(MARKET_TZ)


def is_weekend(timestamp: datetime.datetime) -> bool:
    """True if the timestamp falls on Saturday or Sunday in market time."""
    return _to_market_time(timestamp).weekday() >= 5


def get_time_window(
    timestamp: datetime.datetime,
    windows: tuple[TimeWindowConfig, ...] = DEFAULT_TIME_WINDOWS,
) -> TimeWindowConfig | None:
    """Classify a timestamp into a trading window.

    Naive timestamps are treated as UTC. Returns None on weekends and for
    weekday times outside every window.
    """
    market_time = _to_market_time(timestamp)
    if market_time.weekday() >= 5:
        return None

    minutes = market_time.hour * 60 + market_time.minute
    for window in windows:
        if window.contains(minutes):
            return window
    return None


def categorize_strategy(opportunity_type: str) -> StrategyCategory:
    """Map an opportunity-type identifier to its strategy category.

    Matching is by substring in a fixed priority order. Identifiers that
    match nothing fall into the catch-all category.
    """
    lower = opportunity_type.lower()
    if "breakout" in lower:
        return StrategyCategory.BREAKOUT
    if "mean_reversion" in lower or "reversion" in lower:
        return StrategyCategory.MEAN_REVERSION
    if "trend_continuation" in lower or "continuation" in lower:
        return StrategyCategory.TREND_CONTINUATION
    if "gamma" in lower:
        return StrategyCategory.GAMMA
    if "reversal" in lower or "power_hour" in lower:
        return StrategyCategory.REVERSAL
    return StrategyCategory.ALL


def get_weekend_thresholds() -> WindowThresholds:
    """Advisory-only weekend planning thresholds with zero position size."""
    return WEEKEND_THRESHOLDS


def get_adaptive_thresholds(
    timestamp: datetime.datetime,
    vix_level: VolatilityRegime,
    market_regime: MarketRegime | None,
    opportunity_type: str,
) -> AdaptiveThresholdResult:
    """Compute the final adaptive thresholds for a strategy at a moment.

    Args:
        timestamp: Bar time of the snapshot being evaluated.
        vix_level: Current volatility regime.
        market_regime: Current market regime; None skips the regime table.
        opportunity_type: The opportunity type (or any strategy identifier).

    Returns:
        An AdaptiveThresholdResult with the full contribution breakdown.
    """
    warnings: list[str] = []
    category = categorize_strategy(opportunity_type)

    if is_weekend(timestamp):
        base = WEEKEND_THRESHOLDS
        window_name = TimeOfDayWindow.WEEKEND
        window_label = "Weekend"
        window_rationale = "Weekend: planning only, signals are advisory and sized to zero"
        warnings.append("Weekend - signals are advisory only")
    else:
        window = get_time_window(timestamp)
        if window is not None:
            base = window.thresholds
            window_name = window.name
            window_label = window.label
            window_rationale = window.rationale
        else:
            base = OFF_HOURS_THRESHOLDS
            window_name = TimeOfDayWindow.AFTER_HOURS
            window_label = "After Hours"
            window_rationale = "Outside all trading windows"
            warnings.append("Outside regular trading hours - using conservative defaults")

    vix = DEFAULT_VIX_ADJUSTMENTS[vix_level]

    regime_entry: RegimeStrategyThreshold | None = None
    if market_regime is not None:
        regime_entry = DEFAULT_REGIME_THRESHOLDS[market_regime][category]
    strategy_enabled = regime_entry.enabled if regime_entry is not None else True
    strategy_notes = regime_entry.notes if regime_entry is not None else ""

    if not strategy_enabled:
        warnings.append(
            f"{category} strategy not recommended in {market_regime} regime: {strategy_notes}"
        )

    disabled_penalty = 0 if strategy_enabled else REGIME_DISABLED_PENALTY
    final_min_base = base.min_base + vix.min_base
    final_min_style = base.min_style + vix.min_style
    final_min_rr = base.min_rr + vix.min_rr

    # The regime table only floors the time+VIX values when a regime is known.
    base_from_regime: float | None = None
    rr_from_regime: float | None = None
    if regime_entry is not None:
        base_from_regime = regime_entry.min_base
        rr_from_regime = regime_entry.min_rr
        final_min_base = max(final_min_base, base_from_regime + disabled_penalty)
        final_min_rr = max(final_min_rr, rr_from_regime)
    final_size = base.size_multiplier * vix.size_multiplier

    if final_min_base > HIGH_THRESHOLD_WARNING:
        warnings.append("Very high threshold - only best-in-class setups will qualify")
    if final_size < LOW_SIZE_WARNING:
        warnings.append("Low position size recommended - high volatility environment")

    return AdaptiveThresholdResult(
        min_base=round_half_up(final_min_base),
        min_style=round_half_up(final_min_style),
        min_risk_reward=round_half_up(final_min_rr * 10) / 10,
        size_multiplier=round_half_up(final_size * 100) / 100,
        strategy_enabled=strategy_enabled,
        time_window=window_name,
        time_window_label=window_label,
        vix_level=vix_level,
        market_regime=market_regime,
        strategy_category=category,
        time_window_rationale=window_rationale,
        strategy_notes=strategy_notes,
        warnings=warnings,
        breakdown=ThresholdBreakdown(
            base_from_time=base.min_base,
            base_from_vix=vix.min_base,
            base_from_regime=base_from_regime,
            regime_disabled_penalty=disabled_penalty,
            style_from_time=base.min_style,
            style_from_vix=vix.min_style,
            rr_from_time=base.min_rr,
            rr_from_vix=vix.min_rr,
            rr_from_regime=rr_from_regime,
            size_from_time=base.size_multiplier,
            size_from_vix=vix.size_multiplier,
        ),
    )


def passes_adaptive_thresholds(
    base_score: float,
    style_score: float,
    risk_reward: float,
    thresholds: AdaptiveThresholdResult,
) -> tuple[bool, str | None]:
    """Check a candidate against adaptive thresholds.

    Order: regime-disabled, base score, style score, risk/reward.
    """
    if not thresholds.strategy_enabled:
        return False, (
            f"Strategy disabled in {thresholds.market_regime} regime: {thresholds.strategy_notes}"
        )
    if base_score < thresholds.min_base:
        return False, (
            f"Base score {base_score:.1f} < adaptive threshold {thresholds.min_base} "
            f"({thresholds.time_window_label}, VIX: {thresholds.vix_level}, "
            f"Regime: {thresholds.market_regime})"
        )
    if style_score < thresholds.min_style:
        return False, f"Style score {style_score:.1f} < adaptive threshold {thresholds.min_style}"
    if risk_reward < thresholds.min_risk_reward:
        return False, (
            f"Risk/Reward {risk_reward:.1f} < adaptive threshold {thresholds.min_risk_reward}"
        )
    return True, None


def format_adaptive_thresholds(result: AdaptiveThresholdResult) -> str:
    """Render adaptive thresholds as a plain-text report."""
    lines = [
        f"Time: {result.time_window_label}",
        f"VIX: {result.vix_level.upper()}",
        f"Regime: {result.market_regime or 'unknown'}",
        f"Strategy: {result.strategy_category}",
        "",
        f"Min Base Score: {result.min_base}",
        f"Min Style Score: {result.min_style}",
        f"Min R:R: {result.min_risk_reward}:1",
        f"Size Multiplier: {result.size_multiplier * 100:.0f}%",
    ]
    if result.warnings:
        lines.extend(["", "Warnings:"])
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines)
