"""Style score modifiers.

Re-weights a detector's base score for scalp, day, and swing trading from
the market context in the snapshot: time-of-day window, ATR as a percent of
price, relative volume, key-level proximity, RSI extremes, multi-timeframe
alignment, market regime, and session. Each style starts at 1.0 and is
multiplied by every applicable adjustment, then clamped to [0.5, 1.5].
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from Setup_Radar.analysis.adaptive_thresholds import get_time_window, is_weekend
from Setup_Radar.analysis.detector import clamp
from Setup_Radar.models.enums import MarketRegime, TimeOfDayWindow, TradeHorizon
from Setup_Radar.models.features import FeatureSnapshot
from Setup_Radar.models.scoring import StyleScores

logger = logging.getLogger(__name__)

MODIFIER_FLOOR: float = 0.5
MODIFIER_CEILING: float = 1.5
SESSION_MINUTES: int = 390
KEY_LEVEL_PROXIMITY_PCT: float = 0.25
VOLUME_SPIKE_RATIO: float = 1.5
NEUTRAL_RSI: float = 50.0
NEUTRAL_ALIGNMENT: int = 50


@dataclass(frozen=True)
class StyleModifiers:
    """One multiplier per trade style."""

    scalp: float
    day: float
    swing: float


_M = StyleModifiers

TIME_OF_DAY_MODIFIERS: Mapping[TimeOfDayWindow, StyleModifiers] = MappingProxyType(
    {
        TimeOfDayWindow.PRE_MARKET: _M(0.6, 0.7, 0.9),
        TimeOfDayWindow.OPENING_DRIVE: _M(1.35, 1.15, 0.75),
        TimeOfDayWindow.MID_MORNING: _M(1.1, 1.15, 1.0),
        TimeOfDayWindow.LATE_MORNING: _M(1.0, 1.1, 1.05),
        TimeOfDayWindow.LUNCH_CHOP: _M(0.55, 0.75, 1.0),
        TimeOfDayWindow.EARLY_AFTERNOON: _M(0.85, 1.0, 1.05),
        TimeOfDayWindow.AFTERNOON: _M(0.95, 1.1, 1.0),
        TimeOfDayWindow.POWER_HOUR: _M(1.25, 1.2, 0.85),
        TimeOfDayWindow.AFTER_HOURS: _M(0.5, 0.6, 0.9),
        TimeOfDayWindow.WEEKEND: _M(0.4, 0.5, 1.2),
    }
)

REGIME_MODIFIERS: Mapping[MarketRegime, StyleModifiers] = MappingProxyType(
    {
        MarketRegime.TRENDING: _M(1.0, 1.15, 1.25),
        MarketRegime.RANGING: _M(1.1, 1.0, 0.85),
        MarketRegime.CHOPPY: _M(0.65, 0.75, 0.55),
        MarketRegime.VOLATILE: _M(0.85, 1.1, 1.2),
    }
)

# (timeframe, weight) pairs checked for trend alignment
_ALIGNMENT_FRAMES: tuple[tuple[str, float], ...] = (
    ("5m", 0.2),
    ("15m", 0.3),
    ("60m", 0.3),
    ("240m", 0.2),
)


@dataclass(frozen=True)
class StyleFactors:
    """Market context extracted from a snapshot for style scoring."""

    time_window: TimeOfDayWindow
    minutes_to_close: int
    atr_percent: float
    volume_ratio: float
    key_level: str | None
    rsi: float
    mtf_alignment: int
    regime: MarketRegime
    is_pre_market: bool
    is_after_hours: bool
    is_weekend: bool

    @property
    def volume_spike(self) -> bool:
        return self.volume_ratio > VOLUME_SPIKE_RATIO

    @property
    def rsi_extreme(self) -> bool:
        return self.rsi < 30 or self.rsi > 70


def _within(price: float, level: float | None) -> bool:
    if level is None:
        return False
    return abs(price - level) / price * 100 < KEY_LEVEL_PROXIMITY_PCT


def _key_level(features: FeatureSnapshot) -> str | None:
    """Nearest reference level type, checked VWAP, then ORB, then swing."""
    vwap = features.vwap
    if vwap is not None and vwap.distance_pct is not None:
        if abs(vwap.distance_pct) < KEY_LEVEL_PROXIMITY_PCT:
            return "vwap"
    price = features.price.current
    if price is None or price <= 0:
        return None
    pattern = features.pattern
    if _within(price, pattern.orb_high) or _within(price, pattern.orb_low):
        return "orb"
    if _within(price, pattern.swing_high):
        return "resistance"
    if _within(price, pattern.swing_low):
        return "support"
    return None


def calculate_mtf_alignment(features: FeatureSnapshot) -> int:
    """Weighted 0-100 trend agreement across the 5m/15m/60m/240m mirrors.

    A frame scores full weight when close, EMA20 and EMA50 are stacked in
    either direction, half weight when close merely sits off EMA20, and a
    further fifth of its weight when RSI14 confirms a trend. Returns 50
    when no frame is present.
    """
    checked = 0
    alignment = 0.0
    for timeframe, weight in _ALIGNMENT_FRAMES:
        frame = features.mtf.get(timeframe)
        if frame is None:
            continue
        checked += 1

        close = frame.price.current if frame.price is not None else None
        ema20 = frame.ema.get("20")
        ema50 = frame.ema.get("50")
        if close and ema20 and ema50:
            stacked_up = close > ema20 > ema50
            stacked_down = close < ema20 < ema50
            if stacked_up or stacked_down:
                alignment += weight * 100
            elif close != ema20:
                alignment += weight * 50

        rsi = frame.rsi.get("14")
        if rsi is not None and (55 <= rsi <= 70 or 30 <= rsi <= 45):
            alignment += weight * 20

    if checked == 0:
        return NEUTRAL_ALIGNMENT
    return min(100, round(alignment))


def extract_style_factors(features: FeatureSnapshot) -> StyleFactors:
    """Read the style-scoring context out of a snapshot."""
    regular_hours = features.session.is_regular_hours if features.session is not None else None
    if is_weekend(features.time):
        window = TimeOfDayWindow.WEEKEND
    else:
        config = get_time_window(features.time)
        window = config.name if config is not None else TimeOfDayWindow.AFTER_HOURS

    minutes_since_open = 0
    if features.session is not None and features.session.minutes_since_open is not None:
        minutes_since_open = features.session.minutes_since_open

    price = features.price.current
    atr = features.atr_for("5m")
    atr_percent = 0.0
    if price and price > 0 and atr is not None and math.isfinite(atr):
        atr_percent = atr / price * 100

    volume_ratio = 1.0
    if features.volume is not None and features.volume.relative_to_avg is not None:
        volume_ratio = features.volume.relative_to_avg

    five_minute = features.mtf.get("5m")
    rsi = five_minute.rsi.get("14") if five_minute is not None else None
    if rsi is None:
        rsi = features.rsi.get("14", NEUTRAL_RSI)

    off_hours = regular_hours is False
    return StyleFactors(
        time_window=window,
        minutes_to_close=max(0, SESSION_MINUTES - minutes_since_open),
        atr_percent=atr_percent,
        volume_ratio=volume_ratio,
        key_level=_key_level(features),
        rsi=rsi,
        mtf_alignment=calculate_mtf_alignment(features),
        regime=features.pattern.market_regime or MarketRegime.TRENDING,
        is_pre_market=off_hours and window == TimeOfDayWindow.PRE_MARKET,
        is_after_hours=off_hours and window == TimeOfDayWindow.AFTER_HOURS,
        is_weekend=regular_hours is not True and window == TimeOfDayWindow.WEEKEND,
    )


def calculate_style_modifiers(
    factors: StyleFactors,
) -> tuple[StyleModifiers, list[str], list[str]]:
    """Multiply every applicable adjustment into per-style modifiers.

    Returns:
        The clamped modifiers, the reasons that moved them, and warnings.
    """
    reasons: list[str] = []
    warnings: list[str] = []

    timing = TIME_OF_DAY_MODIFIERS[factors.time_window]
    scalp, day, swing = timing.scalp, timing.day, timing.swing
    if timing.scalp > 1.1:
        reasons.append(f"{factors.time_window} is excellent for scalping")
    elif timing.scalp < 0.8:
        reasons.append(f"{factors.time_window} is poor for scalping")
    if timing.swing < 0.8:
        reasons.append(f"Avoid swing entries during {factors.time_window}")

    # Volatility
    if factors.atr_percent > 2.5:
        scalp, day, swing = scalp * 0.7, day * 1.05, swing * 1.25
        reasons.append("High volatility (ATR >2.5%) - tight scalp stops risky")
    elif factors.atr_percent > 1.5:
        scalp, day, swing = scalp * 0.9, day * 1.1, swing * 1.15
    elif factors.atr_percent < 0.5:
        scalp, day, swing = scalp * 1.15, day * 0.85, swing * 0.65
        reasons.append("Low volatility - slow moves favor scalps over swings")
    elif factors.atr_percent < 1.0:
        scalp, day, swing = scalp * 1.1, day * 0.95, swing * 0.8

    # Volume
    if factors.volume_spike:
        scalp, day = scalp * 1.3, day * 1.15
        reasons.append(f"Volume spike ({factors.volume_ratio:.1f}x avg) - better fills")
    elif factors.volume_ratio < 0.5:
        scalp, day, swing = scalp * 0.6, day * 0.75, swing * 0.95
        warnings.append("Low volume - wide spreads likely")
    elif factors.volume_ratio < 0.75:
        scalp, day, swing = scalp * 0.8, day * 0.9, swing * 0.98

    if factors.key_level is not None:
        scalp, day, swing = scalp * 1.25, day * 1.15, swing * 1.1
        reasons.append(f"Near {factors.key_level} - clear entry and exit reference")

    # Mean-reversion setups need time to play out
    if factors.rsi_extreme:
        scalp, day, swing = scalp * 0.85, day * 1.1, swing * 1.25
        reasons.append(f"RSI {factors.rsi:.0f} - favors longer holds")

    if factors.mtf_alignment > 80:
        scalp, day, swing = scalp * 1.05, day * 1.15, swing * 1.3
        reasons.append("Strong MTF alignment - trend confirmed for swings")
    elif factors.mtf_alignment > 60:
        day, swing = day * 1.05, swing * 1.1
    elif factors.mtf_alignment < 40:
        day, swing = day * 0.8, swing * 0.6
        warnings.append("Poor MTF alignment - avoid swing trades")

    regime = REGIME_MODIFIERS[factors.regime]
    scalp, day, swing = scalp * regime.scalp, day * regime.day, swing * regime.swing
    if factors.regime == MarketRegime.CHOPPY:
        warnings.append("Choppy regime - reduce position sizes")

    if factors.is_pre_market:
        scalp, day, swing = scalp * 0.5, day * 0.6, swing * 0.85
        warnings.append("Pre-market - liquidity may be thin")
    if factors.is_after_hours:
        scalp, day, swing = scalp * 0.4, day * 0.5, swing * 0.8
        warnings.append("After-hours - limited liquidity")
    if factors.is_weekend:
        scalp, day, swing = scalp * 0.3, day * 0.4, swing * 1.15
        warnings.append("Weekend - signals for planning only")

    if factors.minutes_to_close < 30 and not (factors.is_after_hours or factors.is_weekend):
        scalp, day = scalp * 1.1, day * 0.6
        reasons.append("Less than 30 minutes to close - limited day trade runway")
    elif factors.minutes_to_close < 60:
        day *= 0.85

    modifiers = StyleModifiers(
        scalp=clamp(scalp, MODIFIER_FLOOR, MODIFIER_CEILING),
        day=clamp(day, MODIFIER_FLOOR, MODIFIER_CEILING),
        swing=clamp(swing, MODIFIER_FLOOR, MODIFIER_CEILING),
    )
    return modifiers, reasons, warnings


def calculate_style_scores(base_score: float, features: FeatureSnapshot) -> StyleScores:
    """Apply context-aware style modifiers to a detector's base score."""
    factors = extract_style_factors(features)
    modifiers, reasons, warnings = calculate_style_modifiers(factors)

    scores = {
        TradeHorizon.SCALP: clamp(base_score * modifiers.scalp),
        TradeHorizon.DAY: clamp(base_score * modifiers.day),
        TradeHorizon.SWING: clamp(base_score * modifiers.swing),
    }
    # max() keeps the first of equal scores, so ties go to the shorter style
    recommended = max(scores, key=lambda style: scores[style])

    logger.debug(
        "Style scores for %s: scalp=%.1f day=%.1f swing=%.1f",
        features.symbol,
        scores[TradeHorizon.SCALP],
        scores[TradeHorizon.DAY],
        scores[TradeHorizon.SWING],
    )
    return StyleScores(
        scalp_modifier=round(modifiers.scalp, 3),
        day_modifier=round(modifiers.day, 3),
        swing_modifier=round(modifiers.swing, 3),
        scalp_score=scores[TradeHorizon.SCALP],
        day_score=scores[TradeHorizon.DAY],
        swing_score=scores[TradeHorizon.SWING],
        recommended_style=recommended,
        recommended_score=scores[recommended],
        time_window=factors.time_window,
        market_regime=factors.regime,
        reasons=reasons,
        warnings=warnings,
    )
