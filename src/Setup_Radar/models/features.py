"""Feature snapshot models: the read-only per-symbol input to a scan.

A snapshot is produced upstream by the market-feature pipeline. Every field
is optional because missing data is absorbed by confidence scoring, never
rejected here.
"""

import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from Setup_Radar.models.enums import (
    FlowAggressiveness,
    FlowBias,
    MarketRegime,
    VolatilityRegime,
)


class PriceFeatures(BaseModel):
    """Price levels for the current bar and the prior session."""

    model_config = ConfigDict(frozen=True)

    current: float | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    prev: float | None = None
    prev_close: float | None = None
    spread_pct: float | None = None


class VolumeFeatures(BaseModel):
    """Volume for the current bar relative to its trailing average."""

    model_config = ConfigDict(frozen=True)

    current: float | None = None
    avg: float | None = None
    relative_to_avg: float | None = None


class VwapFeatures(BaseModel):
    """Session VWAP and the signed percent distance of price from it."""

    model_config = ConfigDict(frozen=True)

    value: float | None = None
    distance_pct: float | None = None


class TimeframeFeatures(BaseModel):
    """Per-timeframe mirror of the core technical fields."""

    model_config = ConfigDict(frozen=True)

    price: PriceFeatures | None = None
    vwap: VwapFeatures | None = None
    ema: dict[str, float] = {}
    rsi: dict[str, float] = {}
    atr: float | None = None


class FlowFeatures(BaseModel):
    """Options-flow summary for the symbol."""

    model_config = ConfigDict(frozen=True)

    flow_score: float | None = None
    flow_bias: FlowBias | None = None
    sweep_count: int | None = None
    buy_pressure: float | None = None
    large_trade_pct: float | None = None
    aggressiveness: FlowAggressiveness | None = None


class PatternFeatures(BaseModel):
    """Key levels and market context labels."""

    model_config = ConfigDict(frozen=True)

    orb_high: float | None = None
    orb_low: float | None = None
    swing_high: float | None = None
    swing_low: float | None = None
    vix_level: VolatilityRegime | None = None
    vix_value: float | None = None
    market_regime: MarketRegime | None = None
    trend_strength: float | None = None
    patience_candle: bool | None = None


class SessionFeatures(BaseModel):
    """Where the bar sits in the trading session."""

    model_config = ConfigDict(frozen=True)

    minutes_since_open: int | None = None
    is_regular_hours: bool | None = None


class FeatureSnapshot(BaseModel):
    """Immutable bundle of computed features for one symbol at one bar time.

    Keyed by (symbol, time). ``mtf`` holds 1m/5m/15m/60m mirrors keyed by
    timeframe label. ``ema`` and ``rsi`` are keyed by period (e.g. "21", "14").
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    time: datetime.datetime
    price: PriceFeatures = PriceFeatures()
    volume: VolumeFeatures | None = None
    vwap: VwapFeatures | None = None
    ema: dict[str, float] = {}
    rsi: dict[str, float] = {}
    flow: FlowFeatures | None = None
    session: SessionFeatures | None = None
    mtf: dict[str, TimeframeFeatures] = {}
    pattern: PatternFeatures = PatternFeatures()

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Uppercase and strip the symbol; reject empty values."""
        symbol = v.strip().upper()
        if not symbol:
            raise ValueError("symbol must not be empty")
        return symbol

    @field_validator("time")
    @classmethod
    def require_aware_time(cls, v: datetime.datetime) -> datetime.datetime:
        """Bar times must carry a timezone so window classification is exact."""
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("time must be timezone-aware")
        return v

    def atr_for(self, timeframe: str) -> float | None:
        """Return the ATR of the given timeframe mirror, if present."""
        frame = self.mtf.get(timeframe)
        if frame is None:
            return None
        return frame.atr


class OptionsChainData(BaseModel):
    """Dealer-positioning summary of a symbol's options chain.

    Supplied by an external provider for index symbols only.
    """

    model_config = ConfigDict(frozen=True)

    max_gamma_strike: float | None = None
    dealer_gamma: float | None = None
    gamma_flip_level: float | None = None
    dealer_net_delta: float | None = None
    dealer_net_gamma: float | None = None
    max_pain_strike: float | None = None
    call_put_ratio: float | None = None
    call_volume: float | None = None
    put_volume: float | None = None
    call_open_interest: float | None = None
    put_open_interest: float | None = None
    minutes_to_expiry: float | None = None
    is_0dte: bool = False
    total_volume: float | None = None
    avg_volume: float | None = None
