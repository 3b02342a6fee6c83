"""StrEnum types for the opportunity-detection domain.

All enums use Python 3.13+ StrEnum. Use enum members in business logic,
never raw strings.
"""

from enum import StrEnum


class Direction(StrEnum):
    """Trade direction a detector looks for."""

    LONG = "LONG"
    SHORT = "SHORT"


class AssetClass(StrEnum):
    """Broad instrument class used for scoping and threshold overrides."""

    INDEX = "INDEX"
    EQUITY_ETF = "EQUITY_ETF"
    STOCK = "STOCK"


class UnderlyingScope(StrEnum):
    """Which underlyings a strategy definition applies to."""

    ANY = "ANY"
    SPX_ONLY = "SPX_ONLY"
    INDEXES = "INDEXES"
    ETFS = "ETFS"
    SINGLE_STOCKS = "SINGLE_STOCKS"


class BarTimeframe(StrEnum):
    """Bar timeframe a strategy evaluates on."""

    ONE_MIN = "1m"
    FIVE_MIN = "5m"
    FIFTEEN_MIN = "15m"
    SIXTY_MIN = "60m"
    ONE_DAY = "1d"


class TradeHorizon(StrEnum):
    """Trade style inferred from a strategy's bar timeframe."""

    SCALP = "SCALP"
    DAY = "DAY"
    SWING = "SWING"
    LEAP = "LEAP"


class FlowBias(StrEnum):
    """Directional bias of recent options flow."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class FlowAggressiveness(StrEnum):
    """How aggressively flow is lifting offers or hitting bids."""

    PASSIVE = "PASSIVE"
    NORMAL = "NORMAL"
    AGGRESSIVE = "AGGRESSIVE"
    VERY_AGGRESSIVE = "VERY_AGGRESSIVE"


class VolatilityRegime(StrEnum):
    """Discretized volatility-index bucket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class MarketRegime(StrEnum):
    """Prevailing price-action regime label."""

    TRENDING = "trending"
    RANGING = "ranging"
    CHOPPY = "choppy"
    VOLATILE = "volatile"


class StrategyCategory(StrEnum):
    """Coarse strategy family used by the market-regime threshold table."""

    BREAKOUT = "breakout"
    MEAN_REVERSION = "meanReversion"
    TREND_CONTINUATION = "trendContinuation"
    GAMMA = "gamma"
    REVERSAL = "reversal"
    ALL = "all"


class TimeOfDayWindow(StrEnum):
    """Named intraday windows in US/Eastern market time."""

    PRE_MARKET = "pre_market"
    OPENING_DRIVE = "opening_drive"
    MID_MORNING = "mid_morning"
    LATE_MORNING = "late_morning"
    LUNCH_CHOP = "lunch_chop"
    EARLY_AFTERNOON = "early_afternoon"
    AFTERNOON = "afternoon"
    POWER_HOUR = "power_hour"
    AFTER_HOURS = "after_hours"
    WEEKEND = "weekend"


class ConfidenceLevel(StrEnum):
    """Human-readable bucket for an adjusted confidence value."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class SignalStatus(StrEnum):
    """Lifecycle status of an emitted signal. Owned by downstream consumers."""

    ACTIVE = "ACTIVE"
    ACKED = "ACKED"
    DISMISSED = "DISMISSED"


class SkipReason(StrEnum):
    """Machine-readable reason a (symbol, strategy) pair produced no signal."""

    FILTERED = "filtered"
    OUT_OF_SCOPE = "out_of_scope"
    UNKNOWN_DETECTOR = "unknown_detector"
    ASSET_CLASS_MISMATCH = "asset_class_mismatch"
    OPTIONS_DATA_MISSING = "options_data_missing"
    REGIME_BLOCKED = "regime_blocked"
    NOT_DETECTED = "not_detected"
    LOW_CONFIDENCE = "low_confidence"
    STRATEGY_DISABLED = "strategy_disabled"
    BELOW_THRESHOLD = "below_threshold"
    STYLE_SCORE = "style_score"
    RISK_REWARD = "risk_reward"
    LOOKUP_FAILED = "lookup_failed"
    COOLDOWN = "cooldown"
    ONCE_PER_SESSION = "once_per_session"
    HOURLY_CAP = "hourly_cap"
    DUPLICATE = "duplicate"
    STORE_ERROR = "store_error"


class OpportunityType(StrEnum):
    """Every setup a detector can recognize."""

    BREAKOUT_BULLISH = "breakout_bullish"
    BREAKOUT_BEARISH = "breakout_bearish"
    MEAN_REVERSION_LONG = "mean_reversion_long"
    MEAN_REVERSION_SHORT = "mean_reversion_short"
    TREND_CONTINUATION_LONG = "trend_continuation_long"
    TREND_CONTINUATION_SHORT = "trend_continuation_short"
    GAMMA_SQUEEZE_BULLISH = "gamma_squeeze_bullish"
    GAMMA_SQUEEZE_BEARISH = "gamma_squeeze_bearish"
    POWER_HOUR_REVERSAL_BULLISH = "power_hour_reversal_bullish"
    POWER_HOUR_REVERSAL_BEARISH = "power_hour_reversal_bearish"
    INDEX_MEAN_REVERSION_LONG = "index_mean_reversion_long"
    INDEX_MEAN_REVERSION_SHORT = "index_mean_reversion_short"
    OPENING_DRIVE_BULLISH = "opening_drive_bullish"
    OPENING_DRIVE_BEARISH = "opening_drive_bearish"
    GAMMA_FLIP_BULLISH = "gamma_flip_bullish"
    GAMMA_FLIP_BEARISH = "gamma_flip_bearish"
    EOD_PIN_SETUP = "eod_pin_setup"
    KCU_ORB_BREAKOUT = "kcu_orb_breakout"
    SWEEP_MOMENTUM_LONG = "sweep_momentum_long"
    SWEEP_MOMENTUM_SHORT = "sweep_momentum_short"
    INSTITUTIONAL_FLOW_BULLISH = "institutional_flow_bullish"
    INSTITUTIONAL_FLOW_BEARISH = "institutional_flow_bearish"
