"""Concrete opportunity detectors and the static detector registry.

Each detector family is one class parameterized by direction. Factor
evaluators return raw 0-100 values and treat missing inputs as either 0
(required evidence absent) or 50 (optional context unknown).

Scoring weights per family must sum to 1.0; ``build_registry`` enforces it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from Setup_Radar.analysis.detector import (
    ALL_ASSET_CLASSES,
    Detector,
    ScoreFactor,
    build_registry,
)
from Setup_Radar.models.enums import (
    AssetClass,
    BarTimeframe,
    Direction,
    FlowAggressiveness,
    FlowBias,
    MarketRegime,
    OpportunityType,
)
from Setup_Radar.models.features import FeatureSnapshot, OptionsChainData

logger = logging.getLogger(__name__)

NEUTRAL_SCORE: float = 50.0

# --- Breakout ---
BREAKOUT_MIN_RVOL: float = 1.5
BREAKOUT_BUFFER_PCT: float = 0.001

# --- Mean reversion ---
OVERSOLD_RSI: float = 30.0
OVERBOUGHT_RSI: float = 70.0
MIN_VWAP_STRETCH_PCT: float = 0.5
INDEX_OVERSOLD_RSI: float = 25.0
INDEX_OVERBOUGHT_RSI: float = 75.0
INDEX_MIN_VWAP_STRETCH_PCT: float = 0.3

# --- Trend continuation ---
MIN_TREND_STRENGTH: float = 30.0

# --- Flow ---
SWEEP_MIN_COUNT: int = 3
SWEEP_MIN_FLOW_SCORE: float = 70.0
INSTITUTIONAL_MIN_FLOW_SCORE: float = 80.0
INSTITUTIONAL_MIN_SWEEPS: int = 5
INSTITUTIONAL_MIN_PRESSURE: float = 70.0
INSTITUTIONAL_MIN_LARGE_TRADE_PCT: float = 40.0

# --- Session timing (minutes since the 09:30 ET open) ---
OPENING_DRIVE_MIN_MINUTES: int = 5
OPENING_DRIVE_MAX_MINUTES: int = 30
POWER_HOUR_START_MINUTES: int = 330
SESSION_CLOSE_MINUTES: int = 390
ORB_FORMED_MINUTES: int = 15

# --- Options ---
GAMMA_STRIKE_MAX_DISTANCE_PCT: float = 1.0

_FLOW_BIAS_FOR: dict[Direction, FlowBias] = {
    Direction.LONG: FlowBias.BULLISH,
    Direction.SHORT: FlowBias.BEARISH,
}

_INDEX_AND_ETF: frozenset[AssetClass] = frozenset({AssetClass.INDEX, AssetClass.EQUITY_ETF})
_INDEX_ONLY: frozenset[AssetClass] = frozenset({AssetClass.INDEX})


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _sign(direction: Direction) -> float:
    return 1.0 if direction == Direction.LONG else -1.0


def _tier(value: float, tiers: tuple[tuple[float, float], ...], default: float = 0.0) -> float:
    """Return the score of the first (threshold, score) tier the value reaches."""
    for threshold, score in tiers:
        if value >= threshold:
            return score
    return default


def _price(features: FeatureSnapshot) -> float | None:
    current = features.price.current
    if current is None or current <= 0:
        return None
    return current


def _rvol(features: FeatureSnapshot) -> float | None:
    if features.volume is None:
        return None
    return features.volume.relative_to_avg


def _vwap_distance(features: FeatureSnapshot) -> float | None:
    if features.vwap is None:
        return None
    return features.vwap.distance_pct


def _atr(features: FeatureSnapshot) -> float | None:
    atr = features.atr_for(BarTimeframe.FIVE_MIN)
    if atr is None or atr <= 0:
        return None
    return atr


def _minutes_since_open(features: FeatureSnapshot) -> int | None:
    if features.session is None:
        return None
    return features.session.minutes_since_open


def _flow_matches(features: FeatureSnapshot, direction: Direction) -> bool:
    return features.flow is not None and features.flow.flow_bias == _FLOW_BIAS_FOR[direction]


def _volume_score(features: FeatureSnapshot) -> float:
    rvol = _rvol(features)
    if rvol is None:
        return 0.0
    return _tier(rvol, ((3.0, 100.0), (2.5, 95.0), (2.0, 90.0), (1.5, 75.0), (1.2, 60.0)), 40.0)


def _flow_alignment_score(features: FeatureSnapshot, direction: Direction) -> float:
    """Confirming flow scores high, opposing flow low, absent flow neutral."""
    flow = features.flow
    if flow is None or flow.flow_bias is None:
        return NEUTRAL_SCORE
    if flow.flow_bias == _FLOW_BIAS_FOR[direction]:
        return max(70.0, flow.flow_score or 0.0)
    if flow.flow_bias == FlowBias.NEUTRAL:
        return NEUTRAL_SCORE
    return 20.0


def _vwap_side_score(features: FeatureSnapshot, direction: Direction) -> float:
    distance = _vwap_distance(features)
    if distance is None:
        return NEUTRAL_SCORE
    aligned = distance * _sign(direction)
    if aligned <= 0:
        return 0.0
    if aligned < 0.3:
        return 70.0
    if aligned <= 1.5:
        return 100.0
    return 60.0


# ---------------------------------------------------------------------------
# Breakout
# ---------------------------------------------------------------------------


class BreakoutDetector(Detector):
    """Price clears the swing (or opening-range) level on expanding volume."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.BREAKOUT_BULLISH
            if direction == Direction.LONG
            else OpportunityType.BREAKOUT_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("volume_surge", 0.30, lambda f, o: _volume_score(f)),
                ScoreFactor("level_break", 0.25, self._level_break),
                ScoreFactor("vwap_alignment", 0.20, lambda f, o: _vwap_side_score(f, direction)),
                ScoreFactor("trend_alignment", 0.15, self._trend_alignment),
                ScoreFactor(
                    "flow_confirmation", 0.10, lambda f, o: _flow_alignment_score(f, direction)
                ),
            ),
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def _level(self, features: FeatureSnapshot) -> float | None:
        pattern = features.pattern
        if self.direction == Direction.LONG:
            return pattern.swing_high if pattern.swing_high is not None else pattern.orb_high
        return pattern.swing_low if pattern.swing_low is not None else pattern.orb_low

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        price = _price(features)
        level = self._level(features)
        rvol = _rvol(features)
        if price is None or level is None or rvol is None:
            return False
        if rvol < BREAKOUT_MIN_RVOL:
            return False
        if self.direction == Direction.LONG:
            broke = price > level * (1 + BREAKOUT_BUFFER_PCT)
        else:
            broke = price < level * (1 - BREAKOUT_BUFFER_PCT)
        if not broke:
            return False
        # Must not be on the wrong side of VWAP
        distance = _vwap_distance(features)
        return distance is None or distance * _sign(self.direction) > 0

    def _level_break(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        price = _price(features)
        level = self._level(features)
        atr = _atr(features)
        if price is None or level is None:
            return 0.0
        if atr is None:
            return NEUTRAL_SCORE
        excess = (price - level) * _sign(self.direction) / atr
        if excess <= 0:
            return 0.0
        if excess < 0.25:
            return 70.0
        if excess <= 0.75:
            return 100.0
        if excess <= 1.5:
            return 80.0
        # Extended well past the level
        return 50.0

    def _trend_alignment(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        fast = features.ema.get("9")
        slow = features.ema.get("21")
        strength = features.pattern.trend_strength
        if fast is None or slow is None:
            return NEUTRAL_SCORE
        if (fast - slow) * _sign(self.direction) <= 0:
            return 20.0
        if strength is not None and strength * _sign(self.direction) >= MIN_TREND_STRENGTH:
            return 100.0
        return 80.0


# ---------------------------------------------------------------------------
# Mean reversion (equity and index variants)
# ---------------------------------------------------------------------------


class MeanReversionDetector(Detector):
    """RSI extreme plus a stretch away from VWAP, expecting a snap back."""

    def __init__(
        self,
        opportunity_type: OpportunityType,
        direction: Direction,
        *,
        index_only: bool = False,
    ) -> None:
        if index_only:
            self._oversold, self._overbought = INDEX_OVERSOLD_RSI, INDEX_OVERBOUGHT_RSI
            self._min_stretch = INDEX_MIN_VWAP_STRETCH_PCT
        else:
            self._oversold, self._overbought = OVERSOLD_RSI, OVERBOUGHT_RSI
            self._min_stretch = MIN_VWAP_STRETCH_PCT
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("rsi_extreme", 0.35, self._rsi_extreme),
                ScoreFactor("vwap_stretch", 0.25, self._vwap_stretch),
                ScoreFactor("volume_climax", 0.15, lambda f, o: _volume_score(f)),
                ScoreFactor("level_proximity", 0.15, self._level_proximity),
                ScoreFactor("regime_fit", 0.10, self._regime_fit),
            ),
            asset_classes=_INDEX_ONLY if index_only else ALL_ASSET_CLASSES,
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        rsi = features.rsi.get("14")
        distance = _vwap_distance(features)
        if _price(features) is None or rsi is None or distance is None:
            return False
        if self.direction == Direction.LONG:
            return rsi <= self._oversold and distance <= -self._min_stretch
        return rsi >= self._overbought and distance >= self._min_stretch

    def _rsi_extreme(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        rsi = features.rsi["14"]
        if self.direction == Direction.LONG:
            depth = self._oversold - rsi
        else:
            depth = rsi - self._overbought
        # 0 points past the threshold -> 50, 15 points past -> 100
        return 50.0 + depth * (50.0 / 15.0)

    def _vwap_stretch(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        stretch = abs(_vwap_distance(features) or 0.0)
        if stretch < self._min_stretch:
            return 0.0
        return 50.0 + (stretch - self._min_stretch) * (50.0 / 1.5)

    def _level_proximity(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features)
        atr = _atr(features)
        level = (
            features.pattern.swing_low
            if self.direction == Direction.LONG
            else features.pattern.swing_high
        )
        if price is None or level is None or atr is None:
            return NEUTRAL_SCORE
        distance_atr = abs(price - level) / atr
        return _tier(-distance_atr, ((-0.25, 100.0), (-0.5, 85.0), (-1.0, 65.0)), 30.0)

    def _regime_fit(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        regime = features.pattern.market_regime
        if regime is None:
            return NEUTRAL_SCORE
        return {
            MarketRegime.RANGING: 100.0,
            MarketRegime.CHOPPY: 80.0,
            MarketRegime.VOLATILE: 60.0,
            MarketRegime.TRENDING: 30.0,
        }[regime]


# ---------------------------------------------------------------------------
# Trend continuation
# ---------------------------------------------------------------------------


class TrendContinuationDetector(Detector):
    """Pullback inside an established trend with stacked EMAs."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.TREND_CONTINUATION_LONG
            if direction == Direction.LONG
            else OpportunityType.TREND_CONTINUATION_SHORT
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("trend_strength", 0.30, self._trend_strength),
                ScoreFactor("ema_alignment", 0.25, self._ema_alignment),
                ScoreFactor("pullback_quality", 0.20, self._pullback_quality),
                ScoreFactor("mtf_alignment", 0.15, self._mtf_alignment),
                ScoreFactor("volume_support", 0.10, lambda f, o: _volume_score(f)),
            ),
            ideal_timeframe=BarTimeframe.FIFTEEN_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        fast = features.ema.get("9")
        slow = features.ema.get("21")
        rsi = features.rsi.get("14")
        distance = _vwap_distance(features)
        if _price(features) is None or fast is None or slow is None or rsi is None:
            return False
        sign = _sign(self.direction)
        if (fast - slow) * sign <= 0:
            return False
        if distance is not None and distance * sign <= 0:
            return False
        strength = features.pattern.trend_strength
        if strength is not None and strength * sign < MIN_TREND_STRENGTH:
            return False
        # Not yet exhausted
        return 40.0 <= rsi <= 70.0 if self.direction == Direction.LONG else 30.0 <= rsi <= 60.0

    def _trend_strength(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        strength = features.pattern.trend_strength
        if strength is None:
            return NEUTRAL_SCORE
        return strength * _sign(self.direction)

    def _ema_alignment(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        sign = _sign(self.direction)
        stack = [features.ema.get(period) for period in ("9", "21", "50")]
        present = [value for value in stack if value is not None]
        if len(present) < 2:
            return NEUTRAL_SCORE
        ordered = all((a - b) * sign > 0 for a, b in zip(present, present[1:], strict=False))
        return 100.0 if ordered and len(present) == 3 else 75.0 if ordered else 25.0

    def _pullback_quality(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features)
        slow = features.ema.get("21")
        atr = _atr(features)
        if price is None or slow is None or atr is None:
            return NEUTRAL_SCORE
        # Closest to the 21 EMA is best; 1.5 ATR away scores 0
        return 100.0 - abs(price - slow) / atr * (100.0 / 1.5)

    def _mtf_alignment(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        sign = _sign(self.direction)
        votes: list[bool] = []
        for frame in features.mtf.values():
            if frame.vwap is None or frame.vwap.distance_pct is None:
                continue
            votes.append(frame.vwap.distance_pct * sign > 0)
        if not votes:
            return NEUTRAL_SCORE
        return 100.0 * sum(votes) / len(votes)


# ---------------------------------------------------------------------------
# Flow-primary detectors
# ---------------------------------------------------------------------------


class SweepMomentumDetector(Detector):
    """Clustered options sweeps in the direction price is already moving."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.SWEEP_MOMENTUM_LONG
            if direction == Direction.LONG
            else OpportunityType.SWEEP_MOMENTUM_SHORT
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("flow_score", 0.35, self._flow_score),
                ScoreFactor("sweep_intensity", 0.25, self._sweep_intensity),
                ScoreFactor("buy_sell_pressure", 0.20, self._pressure),
                ScoreFactor("price_momentum", 0.20, self._price_momentum),
            ),
            ideal_timeframe=BarTimeframe.ONE_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        flow = features.flow
        if flow is None or not _flow_matches(features, self.direction):
            return False
        if (flow.sweep_count or 0) < SWEEP_MIN_COUNT:
            return False
        if (flow.flow_score or 0.0) < SWEEP_MIN_FLOW_SCORE:
            return False
        distance = _vwap_distance(features)
        return distance is None or distance * _sign(self.direction) > 0

    def _flow_score(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        return features.flow.flow_score if features.flow and features.flow.flow_score else 0.0

    def _sweep_intensity(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        sweeps = features.flow.sweep_count if features.flow else None
        if sweeps is None:
            return 0.0
        return _tier(sweeps, ((10, 100.0), (8, 90.0), (5, 80.0), (3, 65.0)))

    def _pressure(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        flow = features.flow
        if flow is None or flow.buy_pressure is None:
            return NEUTRAL_SCORE
        return flow.buy_pressure if self.direction == Direction.LONG else 100.0 - flow.buy_pressure

    def _price_momentum(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features)
        prev = features.price.prev
        atr = _atr(features)
        if price is None or prev is None or atr is None:
            return NEUTRAL_SCORE
        move_atr = (price - prev) * _sign(self.direction) / atr
        return 50.0 + move_atr * 50.0


class InstitutionalFlowDetector(Detector):
    """Heavy, aggressive, large-lot flow with one-sided pressure."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.INSTITUTIONAL_FLOW_BULLISH
            if direction == Direction.LONG
            else OpportunityType.INSTITUTIONAL_FLOW_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("institutional_score", 0.35, self._institutional_score),
                ScoreFactor("sweep_intensity", 0.25, self._sweep_intensity),
                ScoreFactor("buy_sell_pressure", 0.20, self._pressure),
                ScoreFactor("large_trade_pct", 0.15, self._large_trade_pct),
                ScoreFactor("aggressiveness", 0.05, self._aggressiveness),
            ),
            ideal_timeframe=BarTimeframe.ONE_MIN,
        )

    def _directional_pressure(self, features: FeatureSnapshot) -> float | None:
        flow = features.flow
        if flow is None or flow.buy_pressure is None:
            return None
        return flow.buy_pressure if self.direction == Direction.LONG else 100.0 - flow.buy_pressure

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        flow = features.flow
        if flow is None or not _flow_matches(features, self.direction):
            return False
        if (flow.flow_score or 0.0) < INSTITUTIONAL_MIN_FLOW_SCORE:
            return False
        if (flow.sweep_count or 0) < INSTITUTIONAL_MIN_SWEEPS:
            return False
        pressure = self._directional_pressure(features)
        if pressure is None or pressure < INSTITUTIONAL_MIN_PRESSURE:
            return False
        if (flow.large_trade_pct or 0.0) < INSTITUTIONAL_MIN_LARGE_TRADE_PCT:
            return False
        return flow.aggressiveness in (
            FlowAggressiveness.AGGRESSIVE,
            FlowAggressiveness.VERY_AGGRESSIVE,
        )

    def _institutional_score(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        score = features.flow.flow_score if features.flow else None
        if score is None:
            return 0.0
        return _tier(score, ((95, 100.0), (90, 95.0), (85, 90.0), (80, 85.0)), score)

    def _sweep_intensity(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        sweeps = features.flow.sweep_count if features.flow else None
        if sweeps is None:
            return 0.0
        return _tier(sweeps, ((10, 100.0), (8, 95.0), (6, 90.0), (5, 85.0)))

    def _pressure(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        pressure = self._directional_pressure(features)
        if pressure is None:
            return 0.0
        return _tier(pressure, ((85, 100.0), (80, 95.0), (75, 90.0), (70, 85.0)))

    def _large_trade_pct(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        pct = features.flow.large_trade_pct if features.flow else None
        if pct is None:
            return 0.0
        return _tier(pct, ((60, 100.0), (50, 90.0), (40, 80.0)))

    def _aggressiveness(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        aggressiveness = features.flow.aggressiveness if features.flow else None
        if aggressiveness == FlowAggressiveness.VERY_AGGRESSIVE:
            return 100.0
        if aggressiveness == FlowAggressiveness.AGGRESSIVE:
            return 90.0
        return NEUTRAL_SCORE


# ---------------------------------------------------------------------------
# Session-timed detectors
# ---------------------------------------------------------------------------


class OpeningDriveDetector(Detector):
    """Strong directional move off the open in the first half hour."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.OPENING_DRIVE_BULLISH
            if direction == Direction.LONG
            else OpportunityType.OPENING_DRIVE_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("drive_strength", 0.30, self._drive_strength),
                ScoreFactor("volume_surge", 0.25, lambda f, o: _volume_score(f)),
                ScoreFactor("gap_alignment", 0.20, self._gap_alignment),
                ScoreFactor("vwap_alignment", 0.15, lambda f, o: _vwap_side_score(f, direction)),
                ScoreFactor(
                    "flow_confirmation", 0.10, lambda f, o: _flow_alignment_score(f, direction)
                ),
            ),
            asset_classes=_INDEX_AND_ETF,
            ideal_timeframe=BarTimeframe.ONE_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        minutes = _minutes_since_open(features)
        price = _price(features)
        opening = features.price.open
        rvol = _rvol(features)
        if minutes is None or price is None or opening is None or rvol is None:
            return False
        if not OPENING_DRIVE_MIN_MINUTES <= minutes <= OPENING_DRIVE_MAX_MINUTES:
            return False
        if rvol < BREAKOUT_MIN_RVOL:
            return False
        if (price - opening) * _sign(self.direction) <= 0:
            return False
        distance = _vwap_distance(features)
        return distance is None or distance * _sign(self.direction) > 0

    def _drive_strength(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features)
        opening = features.price.open
        atr = _atr(features)
        if price is None or opening is None:
            return 0.0
        if atr is None:
            return NEUTRAL_SCORE
        return (price - opening) * _sign(self.direction) / atr * 50.0

    def _gap_alignment(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        opening = features.price.open
        prev_close = features.price.prev_close
        if opening is None or prev_close is None or prev_close <= 0:
            return NEUTRAL_SCORE
        gap_pct = (opening - prev_close) / prev_close * 100.0 * _sign(self.direction)
        if gap_pct <= 0:
            # Drive against the gap
            return 30.0
        return _tier(gap_pct, ((1.0, 100.0), (0.5, 85.0)), 70.0)


class PowerHourReversalDetector(Detector):
    """Late-day exhaustion of the session trend with a turning bar."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.POWER_HOUR_REVERSAL_BULLISH
            if direction == Direction.LONG
            else OpportunityType.POWER_HOUR_REVERSAL_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("exhaustion", 0.30, self._exhaustion),
                ScoreFactor("day_move", 0.25, self._day_move),
                ScoreFactor("reversal_bar", 0.20, self._reversal_bar),
                ScoreFactor("volume", 0.15, lambda f, o: _volume_score(f)),
                ScoreFactor("vwap_room", 0.10, self._vwap_room),
            ),
            asset_classes=_INDEX_AND_ETF,
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def _day_move_pct(self, features: FeatureSnapshot) -> float | None:
        price = _price(features)
        opening = features.price.open
        if price is None or opening is None or opening <= 0:
            return None
        return (price - opening) / opening * 100.0

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        minutes = _minutes_since_open(features)
        move = self._day_move_pct(features)
        rsi = features.rsi.get("14")
        price = _price(features)
        prev = features.price.prev
        if minutes is None or move is None or rsi is None or price is None or prev is None:
            return False
        if not POWER_HOUR_START_MINUTES <= minutes <= SESSION_CLOSE_MINUTES:
            return False
        sign = _sign(self.direction)
        # Session moved against the trade and the latest bar is turning
        if move * sign > -0.5:
            return False
        if (price - prev) * sign <= 0:
            return False
        return rsi <= 35.0 if self.direction == Direction.LONG else rsi >= 65.0

    def _exhaustion(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        rsi = features.rsi["14"]
        depth = 35.0 - rsi if self.direction == Direction.LONG else rsi - 65.0
        return 60.0 + depth * 4.0

    def _day_move(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        move = abs(self._day_move_pct(features) or 0.0)
        return _tier(move, ((2.0, 100.0), (1.5, 90.0), (1.0, 80.0), (0.5, 65.0)))

    def _reversal_bar(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        price = _price(features)
        high = features.price.high
        low = features.price.low
        if price is None or high is None or low is None or high <= low:
            return NEUTRAL_SCORE
        close_position = (price - low) / (high - low)
        if self.direction == Direction.SHORT:
            close_position = 1.0 - close_position
        return close_position * 100.0

    def _vwap_room(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        distance = _vwap_distance(features)
        if distance is None:
            return NEUTRAL_SCORE
        return _tier(abs(distance), ((1.0, 100.0), (0.5, 80.0), (0.25, 60.0)), 30.0)


class KcuOrbBreakoutDetector(Detector):
    """Opening-range breakout once the first 15 minutes have formed the range."""

    def __init__(self) -> None:
        super().__init__(
            OpportunityType.KCU_ORB_BREAKOUT,
            Direction.LONG,
            (
                ScoreFactor("level_confluence", 0.25, self._level_confluence),
                ScoreFactor("trend_strength", 0.25, self._trend_strength),
                ScoreFactor("patience_candle", 0.20, self._patience_candle),
                ScoreFactor("volume_confirmation", 0.20, self._volume_confirmation),
                ScoreFactor("session_timing", 0.10, self._session_timing),
            ),
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        price = _price(features)
        orb_high = features.pattern.orb_high
        orb_low = features.pattern.orb_low
        minutes = _minutes_since_open(features)
        atr = _atr(features)
        if price is None or orb_high is None or orb_low is None or atr is None:
            return False
        if orb_high <= 0 or orb_low <= 0:
            return False
        if minutes is None or minutes < ORB_FORMED_MINUTES:
            return False
        if price <= orb_high * 1.001:
            return False
        orb_range = orb_high - orb_low
        if not 0.5 * atr <= orb_range <= 2.5 * atr:
            return False
        rvol = _rvol(features)
        return rvol is None or rvol >= 0.8

    def _level_confluence(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features) or 0.0
        if price <= 0:
            return 0.0
        score = 0.0
        for level, points in (
            (features.pattern.orb_high, 40.0),
            (features.vwap.value if features.vwap else None, 25.0),
            (features.ema.get("8"), 20.0),
        ):
            if level and abs(price - level) / price < 0.005:
                score += points
        return min(100.0, score)

    def _trend_strength(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        price = _price(features) or 0.0
        score = 50.0
        orb_high = features.pattern.orb_high
        if orb_high and price > orb_high * 1.002:
            score += 30.0
        high = features.price.high
        low = features.price.low
        if high is not None and low is not None and high > low:
            if (price - low) / (high - low) > 0.7:
                score += 20.0
        return min(100.0, score)

    def _patience_candle(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        return 75.0 if features.pattern.patience_candle else 30.0

    def _volume_confirmation(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        rvol = _rvol(features)
        if rvol is None:
            rvol = 1.0
        return _tier(rvol, ((2.0, 100.0), (1.5, 85.0), (1.2, 70.0), (1.0, 55.0)), 30.0)

    def _session_timing(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        minutes = _minutes_since_open(features) or 0
        if minutes < ORB_FORMED_MINUTES:
            return 0.0
        if minutes <= 30:
            return 100.0
        if minutes <= 60:
            return 90.0
        if minutes <= 90:
            return 70.0
        return 40.0


# ---------------------------------------------------------------------------
# Options-positioning detectors (index only)
# ---------------------------------------------------------------------------


class GammaSqueezeDetector(Detector):
    """Short dealer gamma with price pressing toward the max-gamma strike."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.GAMMA_SQUEEZE_BULLISH
            if direction == Direction.LONG
            else OpportunityType.GAMMA_SQUEEZE_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("dealer_gamma", 0.30, self._dealer_gamma),
                ScoreFactor("strike_proximity", 0.25, self._strike_proximity),
                ScoreFactor("options_volume", 0.20, self._options_volume),
                ScoreFactor("call_put_skew", 0.15, self._call_put_skew),
                ScoreFactor("expiry_urgency", 0.10, self._expiry_urgency),
            ),
            asset_classes=_INDEX_ONLY,
            requires_options_data=True,
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def _strike_distance_pct(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float | None:
        """Signed percent distance to the max-gamma strike in the trade's direction."""
        price = _price(features)
        if options is None or price is None or options.max_gamma_strike is None:
            return None
        return (options.max_gamma_strike - price) / price * 100.0 * _sign(self.direction)

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        if options is None or options.dealer_gamma is None or options.dealer_gamma >= 0:
            return False
        distance = self._strike_distance_pct(features, options)
        if distance is None or not 0 < distance <= GAMMA_STRIKE_MAX_DISTANCE_PCT:
            return False
        ratio = options.call_put_ratio
        if ratio is None:
            return False
        return ratio >= 1.2 if self.direction == Direction.LONG else ratio <= 0.8

    def _dealer_gamma(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        if options is None or options.dealer_net_gamma is None:
            return NEUTRAL_SCORE
        return 90.0 if options.dealer_net_gamma < 0 else 40.0

    def _strike_proximity(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        distance = self._strike_distance_pct(features, options)
        if distance is None or distance <= 0:
            return 0.0
        return 100.0 - distance * 50.0

    def _options_volume(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        if options is None or not options.total_volume or not options.avg_volume:
            return NEUTRAL_SCORE
        ratio = options.total_volume / options.avg_volume
        return _tier(ratio, ((3.0, 100.0), (2.0, 85.0), (1.5, 70.0), (1.0, 55.0)), 30.0)

    def _call_put_skew(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        if options is None or options.call_put_ratio is None or options.call_put_ratio <= 0:
            return NEUTRAL_SCORE
        ratio = options.call_put_ratio
        if self.direction == Direction.SHORT:
            ratio = 1.0 / ratio
        return _tier(ratio, ((2.0, 100.0), (1.5, 85.0), (1.2, 70.0)), 40.0)

    def _expiry_urgency(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        if options is None:
            return 0.0
        if not options.is_0dte:
            return 40.0
        minutes = options.minutes_to_expiry
        if minutes is None:
            return 70.0
        return _tier(-minutes, ((-60, 100.0), (-120, 85.0)), 70.0)


class GammaFlipDetector(Detector):
    """Price crossing the dealer gamma-flip level on this bar."""

    def __init__(self, direction: Direction) -> None:
        opportunity_type = (
            OpportunityType.GAMMA_FLIP_BULLISH
            if direction == Direction.LONG
            else OpportunityType.GAMMA_FLIP_BEARISH
        )
        super().__init__(
            opportunity_type,
            direction,
            (
                ScoreFactor("cross_clarity", 0.35, self._cross_clarity),
                ScoreFactor("volume_confirmation", 0.25, lambda f, o: _volume_score(f)),
                ScoreFactor("dealer_positioning", 0.25, self._dealer_positioning),
                ScoreFactor("vwap_alignment", 0.15, lambda f, o: _vwap_side_score(f, direction)),
            ),
            asset_classes=_INDEX_ONLY,
            requires_options_data=True,
            ideal_timeframe=BarTimeframe.FIVE_MIN,
        )

    def detect(self, features: FeatureSnapshot, options: OptionsChainData | None = None) -> bool:
        price = _price(features)
        prev = features.price.prev
        if options is None or options.gamma_flip_level is None or price is None or prev is None:
            return False
        flip = options.gamma_flip_level
        if self.direction == Direction.LONG:
            return prev < flip <= price
        return prev > flip >= price

    def _cross_clarity(self, features: FeatureSnapshot, options: OptionsChainData | None) -> float:
        price = _price(features)
        atr = _atr(features)
        if options is None or options.gamma_flip_level is None or price is None:
            return 0.0
        if atr is None:
            return NEUTRAL_SCORE
        excess = (price - options.gamma_flip_level) * _sign(self.direction) / atr
        return 60.0 + excess * 80.0

    def _dealer_positioning(
        self, features: FeatureSnapshot, options: OptionsChainData | None
    ) -> float:
        if options is None or options.dealer_net_delta is None:
            return NEUTRAL_SCORE
        # Dealers short delta in the trade's direction must hedge with it
        return 90.0 if options.dealer_net_delta * _sign(self.direction) < 0 else 40.0


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _all_detectors() -> list[Detector]:
    detectors: list[Detector] = []
    for direction in Direction:
        detectors.extend(
            [
                BreakoutDetector(direction),
                TrendContinuationDetector(direction),
                SweepMomentumDetector(direction),
                InstitutionalFlowDetector(direction),
                OpeningDriveDetector(direction),
                PowerHourReversalDetector(direction),
                GammaSqueezeDetector(direction),
                GammaFlipDetector(direction),
            ]
        )
    detectors.extend(
        [
            MeanReversionDetector(OpportunityType.MEAN_REVERSION_LONG, Direction.LONG),
            MeanReversionDetector(OpportunityType.MEAN_REVERSION_SHORT, Direction.SHORT),
            MeanReversionDetector(
                OpportunityType.INDEX_MEAN_REVERSION_LONG, Direction.LONG, index_only=True
            ),
            MeanReversionDetector(
                OpportunityType.INDEX_MEAN_REVERSION_SHORT, Direction.SHORT, index_only=True
            ),
            KcuOrbBreakoutDetector(),
        ]
    )
    return detectors


DETECTORS: Mapping[OpportunityType, Detector] = build_registry(_all_detectors())

_EXPECTED_FREQUENCY: dict[OpportunityType, str] = {
    OpportunityType.BREAKOUT_BULLISH: "2-4 signals/day",
    OpportunityType.BREAKOUT_BEARISH: "2-4 signals/day",
    OpportunityType.MEAN_REVERSION_LONG: "3-5 signals/day",
    OpportunityType.MEAN_REVERSION_SHORT: "3-5 signals/day",
    OpportunityType.TREND_CONTINUATION_LONG: "1-3 signals/day",
    OpportunityType.TREND_CONTINUATION_SHORT: "1-3 signals/day",
    OpportunityType.GAMMA_SQUEEZE_BULLISH: "2-4 signals/day on 0DTE",
    OpportunityType.GAMMA_SQUEEZE_BEARISH: "2-4 signals/day on 0DTE",
    OpportunityType.POWER_HOUR_REVERSAL_BULLISH: "1-2 signals/day",
    OpportunityType.POWER_HOUR_REVERSAL_BEARISH: "1-2 signals/day",
    OpportunityType.INDEX_MEAN_REVERSION_LONG: "3-5 signals/day",
    OpportunityType.INDEX_MEAN_REVERSION_SHORT: "3-5 signals/day",
    OpportunityType.OPENING_DRIVE_BULLISH: "1-2 signals/day",
    OpportunityType.OPENING_DRIVE_BEARISH: "1-2 signals/day",
    OpportunityType.GAMMA_FLIP_BULLISH: "0-1 signals/day",
    OpportunityType.GAMMA_FLIP_BEARISH: "0-1 signals/day",
    OpportunityType.EOD_PIN_SETUP: "0-1 signals/day on 0DTE",
    OpportunityType.KCU_ORB_BREAKOUT: "1-2 signals/day",
    OpportunityType.SWEEP_MOMENTUM_LONG: "2-5 signals/day (when flow active)",
    OpportunityType.SWEEP_MOMENTUM_SHORT: "2-5 signals/day (when flow active)",
    OpportunityType.INSTITUTIONAL_FLOW_BULLISH: "1-3 signals/day (when flow active)",
    OpportunityType.INSTITUTIONAL_FLOW_BEARISH: "1-3 signals/day (when flow active)",
}


def get_detector(opportunity_type: OpportunityType) -> Detector | None:
    """Look up the registered detector for a type, or None."""
    return DETECTORS.get(opportunity_type)


def get_expected_frequency(opportunity_type: OpportunityType) -> str:
    """Rough signals-per-day a detector is tuned to produce."""
    return _EXPECTED_FREQUENCY.get(opportunity_type, "Unknown")
