"""Static scanner configuration: threshold resolution and universal pre-filters.

Thresholds resolve by precedence: defaults, then the asset-class override,
then the strategy-type override. Each layer is a partial merge where the last
writer wins field by field. This is independent of, and later composed with,
the adaptive threshold engine.
"""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel, ConfigDict, Field

from Setup_Radar.analysis.adaptive_thresholds import get_time_window, is_weekend
from Setup_Radar.models.enums import AssetClass, OpportunityType, VolatilityRegime
from Setup_Radar.models.features import FeatureSnapshot

logger = logging.getLogger(__name__)


class ThresholdOverride(BaseModel):
    """A partial threshold set; unset fields inherit from the layer below."""

    model_config = ConfigDict(frozen=True)

    min_base: float | None = Field(default=None, ge=0, le=100)
    min_style: float | None = Field(default=None, ge=0, le=100)
    min_risk_reward: float | None = Field(default=None, ge=0)
    max_signals_per_symbol_per_hour: int | None = Field(default=None, ge=0)
    cooldown_minutes: float | None = Field(default=None, ge=0)


class SignalThresholds(BaseModel):
    """A fully resolved threshold set."""

    model_config = ConfigDict(frozen=True)

    min_base: float = Field(ge=0, le=100)
    min_style: float = Field(ge=0, le=100)
    min_risk_reward: float = Field(ge=0)
    max_signals_per_symbol_per_hour: int = Field(ge=0)
    cooldown_minutes: float = Field(ge=0)


class UniversalFilters(BaseModel):
    """Symbol-level pre-filters applied before any detector runs."""

    model_config = ConfigDict(frozen=True)

    market_hours_only: bool = True
    min_rvol: float = 0.0
    max_spread: float = 0.005
    blacklist: list[str] = []
    require_minimum_liquidity: bool = False
    min_avg_volume: float = 0.0


class ScannerConfig(BaseModel):
    """Thresholds by layer plus the universal pre-filters.

    ``strategy_thresholds`` is keyed by opportunity-type prefix; a key of
    ``"breakout"`` covers both ``breakout_bullish`` and ``breakout_bearish``
    while an exact type key wins over a prefix.
    """

    model_config = ConfigDict(frozen=True)

    default_thresholds: SignalThresholds
    asset_class_thresholds: dict[AssetClass, ThresholdOverride] = {}
    strategy_thresholds: dict[str, ThresholdOverride] = {}
    filters: UniversalFilters = UniversalFilters()
    enable_options_data_fetch: bool = True

    def merged_with(self, overrides: ScannerConfigOverride) -> ScannerConfig:
        """Layer a partial user override on top of this config."""
        default = _apply(self.default_thresholds, overrides.default_thresholds)
        asset_classes = dict(self.asset_class_thresholds)
        for asset_class, override in overrides.asset_class_thresholds.items():
            asset_classes[asset_class] = _merge_override(asset_classes.get(asset_class), override)
        strategies = dict(self.strategy_thresholds)
        for key, override in overrides.strategy_thresholds.items():
            strategies[key] = _merge_override(strategies.get(key), override)
        filters = self.filters
        if overrides.filters is not None:
            filters = UniversalFilters.model_validate(
                {**self.filters.model_dump(), **overrides.filters}
            )
        return self.model_copy(
            update={
                "default_thresholds": default,
                "asset_class_thresholds": asset_classes,
                "strategy_thresholds": strategies,
                "filters": filters,
            }
        )


class ScannerConfigOverride(BaseModel):
    """User-supplied partial scanner configuration, loaded from settings."""

    model_config = ConfigDict(frozen=True)

    default_thresholds: ThresholdOverride = ThresholdOverride()
    asset_class_thresholds: dict[AssetClass, ThresholdOverride] = {}
    strategy_thresholds: dict[str, ThresholdOverride] = {}
    filters: dict[str, object] | None = None


def _apply(base: SignalThresholds, override: ThresholdOverride | None) -> SignalThresholds:
    if override is None:
        return base
    updates = override.model_dump(exclude_none=True)
    if not updates:
        return base
    return base.model_copy(update=updates)


def _merge_override(
    base: ThresholdOverride | None, override: ThresholdOverride
) -> ThresholdOverride:
    if base is None:
        return override
    return base.model_copy(update=override.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Built-in configurations
# ---------------------------------------------------------------------------

DEFAULT_SCANNER_CONFIG = ScannerConfig(
    default_thresholds=SignalThresholds(
        min_base=70,
        min_style=75,
        min_risk_reward=1.5,
        max_signals_per_symbol_per_hour=2,
        cooldown_minutes=15,
    ),
    asset_class_thresholds={
        AssetClass.INDEX: ThresholdOverride(min_base=75, min_style=78, cooldown_minutes=10),
    },
)

OPTIMIZED_SCANNER_CONFIG = ScannerConfig(
    default_thresholds=SignalThresholds(
        min_base=80,
        min_style=85,
        min_risk_reward=2.0,
        max_signals_per_symbol_per_hour=1,
        cooldown_minutes=30,
    ),
    asset_class_thresholds={
        AssetClass.INDEX: ThresholdOverride(
            min_base=85,
            min_style=88,
            min_risk_reward=2.5,
            max_signals_per_symbol_per_hour=2,
            cooldown_minutes=20,
        ),
        AssetClass.EQUITY_ETF: ThresholdOverride(
            min_base=78,
            min_style=83,
            min_risk_reward=2.0,
            max_signals_per_symbol_per_hour=1,
            cooldown_minutes=30,
        ),
        AssetClass.STOCK: ThresholdOverride(
            min_base=78,
            min_style=83,
            min_risk_reward=2.0,
            max_signals_per_symbol_per_hour=1,
            cooldown_minutes=30,
        ),
    },
    strategy_thresholds={
        "breakout": ThresholdOverride(min_base=78, min_style=82, min_risk_reward=2.0),
        "mean_reversion": ThresholdOverride(min_base=80, min_style=85, min_risk_reward=2.2),
        "trend_continuation": ThresholdOverride(min_base=75, min_style=80, min_risk_reward=2.5),
        "gamma_squeeze": ThresholdOverride(
            min_base=85, min_style=88, min_risk_reward=2.5, cooldown_minutes=45
        ),
        "index_mean_reversion": ThresholdOverride(
            min_base=82, min_style=86, min_risk_reward=2.3
        ),
        "power_hour_reversal": ThresholdOverride(
            min_base=85, min_style=88, min_risk_reward=2.0, max_signals_per_symbol_per_hour=1
        ),
        "gamma_flip": ThresholdOverride(
            min_base=90,
            min_style=92,
            min_risk_reward=3.0,
            max_signals_per_symbol_per_hour=1,
            cooldown_minutes=60,
        ),
        "eod_pin": ThresholdOverride(
            min_base=88,
            min_style=90,
            min_risk_reward=2.8,
            max_signals_per_symbol_per_hour=1,
            cooldown_minutes=120,
        ),
        "opening_drive": ThresholdOverride(
            min_base=85, min_style=88, min_risk_reward=2.5, max_signals_per_symbol_per_hour=1
        ),
    },
    filters=UniversalFilters(max_spread=0.003),
)

SCANNER_PRESETS: dict[str, ScannerConfig] = {
    "default": DEFAULT_SCANNER_CONFIG,
    "optimized": OPTIMIZED_SCANNER_CONFIG,
}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _strategy_override(
    config: ScannerConfig, opportunity_type: str
) -> ThresholdOverride | None:
    """Exact key first, then the longest matching prefix."""
    exact = config.strategy_thresholds.get(opportunity_type)
    if exact is not None:
        return exact
    matches = [key for key in config.strategy_thresholds if opportunity_type.startswith(key)]
    if not matches:
        return None
    return config.strategy_thresholds[max(matches, key=len)]


def get_thresholds_for_signal(
    config: ScannerConfig,
    asset_class: AssetClass,
    opportunity_type: OpportunityType | str,
) -> SignalThresholds:
    """Resolve default -> asset class -> strategy type into one threshold set."""
    thresholds = config.default_thresholds
    thresholds = _apply(thresholds, config.asset_class_thresholds.get(asset_class))
    thresholds = _apply(thresholds, _strategy_override(config, str(opportunity_type)))
    return thresholds


def passes_universal_filters(
    symbol: str,
    features: FeatureSnapshot,
    filters: UniversalFilters,
) -> tuple[bool, str | None]:
    """Apply symbol-level pre-filters.

    Returns:
        Tuple of (passed, reason). ``reason`` is None when the symbol passes.
    """
    blacklist = {entry.upper() for entry in filters.blacklist}
    if symbol.upper() in blacklist:
        return False, f"{symbol} is blacklisted"

    if filters.market_hours_only and not _in_market_hours(features):
        return False, "Outside market hours"

    rvol = features.volume.relative_to_avg if features.volume else None
    if filters.min_rvol > 0:
        if rvol is None or not math.isfinite(rvol) or rvol < filters.min_rvol:
            return False, f"Relative volume {rvol} below minimum {filters.min_rvol}"

    spread = features.price.spread_pct
    if spread is not None and math.isfinite(spread) and spread > filters.max_spread:
        return False, f"Spread {spread:.4f} exceeds maximum {filters.max_spread}"

    if filters.require_minimum_liquidity:
        avg_volume = features.volume.avg if features.volume else None
        if avg_volume is None or avg_volume < filters.min_avg_volume:
            return False, f"Average volume {avg_volume} below minimum {filters.min_avg_volume:g}"

    return True, None


def _in_market_hours(features: FeatureSnapshot) -> bool:
    """Session flag when present, otherwise any weekday trading window."""
    if features.session is not None and features.session.is_regular_hours is not None:
        return features.session.is_regular_hours
    return not is_weekend(features.time) and get_time_window(features.time) is not None


# ---------------------------------------------------------------------------
# Tiers and regime suitability
# ---------------------------------------------------------------------------

TIER_1_STRATEGIES: frozenset[OpportunityType] = frozenset(
    {
        OpportunityType.BREAKOUT_BULLISH,
        OpportunityType.BREAKOUT_BEARISH,
        OpportunityType.MEAN_REVERSION_LONG,
        OpportunityType.MEAN_REVERSION_SHORT,
        OpportunityType.TREND_CONTINUATION_LONG,
        OpportunityType.TREND_CONTINUATION_SHORT,
    }
)

TIER_2_STRATEGIES: frozenset[OpportunityType] = frozenset(
    {
        OpportunityType.GAMMA_SQUEEZE_BULLISH,
        OpportunityType.GAMMA_SQUEEZE_BEARISH,
        OpportunityType.INDEX_MEAN_REVERSION_LONG,
        OpportunityType.INDEX_MEAN_REVERSION_SHORT,
        OpportunityType.POWER_HOUR_REVERSAL_BULLISH,
        OpportunityType.POWER_HOUR_REVERSAL_BEARISH,
    }
)

TIER_3_STRATEGIES: frozenset[OpportunityType] = frozenset(
    {
        OpportunityType.GAMMA_FLIP_BULLISH,
        OpportunityType.GAMMA_FLIP_BEARISH,
        OpportunityType.EOD_PIN_SETUP,
        OpportunityType.OPENING_DRIVE_BULLISH,
        OpportunityType.OPENING_DRIVE_BEARISH,
    }
)

_VIX_ALLOWED_STRATEGIES: dict[VolatilityRegime, frozenset[OpportunityType]] = {
    VolatilityRegime.LOW: frozenset(
        {
            OpportunityType.TREND_CONTINUATION_LONG,
            OpportunityType.TREND_CONTINUATION_SHORT,
            OpportunityType.BREAKOUT_BULLISH,
            OpportunityType.BREAKOUT_BEARISH,
        }
    ),
    VolatilityRegime.MEDIUM: TIER_1_STRATEGIES | TIER_2_STRATEGIES,
    VolatilityRegime.HIGH: frozenset(
        {
            OpportunityType.MEAN_REVERSION_LONG,
            OpportunityType.MEAN_REVERSION_SHORT,
            OpportunityType.GAMMA_SQUEEZE_BULLISH,
            OpportunityType.GAMMA_SQUEEZE_BEARISH,
        }
    ),
    VolatilityRegime.EXTREME: frozenset(
        {OpportunityType.MEAN_REVERSION_LONG, OpportunityType.INDEX_MEAN_REVERSION_LONG}
    ),
}

# Minutes since the 09:30 ET open
_SESSION_TIME_FILTERS: tuple[tuple[str, int, int, str], ...] = (
    ("opening_drive", 0, 60, "Opening drive only valid in first hour"),
    ("power_hour", 330, 390, "Power hour reversal only valid in last hour"),
    ("eod_pin", 360, 390, "EOD pin setup only valid in last 30 minutes"),
)

STRONG_TREND_STRENGTH: float = 30.0


def get_strategy_tier(opportunity_type: OpportunityType) -> int:
    """Return 1, 2, or 3; types outside every tier count as tier 2."""
    if opportunity_type in TIER_1_STRATEGIES:
        return 1
    if opportunity_type in TIER_3_STRATEGIES:
        return 3
    return 2


def is_strategy_allowed_in_regime(
    opportunity_type: OpportunityType,
    vix_level: VolatilityRegime,
    minutes_since_open: int,
    trend_strength: float,
) -> tuple[bool, str | None]:
    """Optimized-profile suitability check by VIX, session time, and trend.

    Returns:
        Tuple of (allowed, reason).
    """
    if opportunity_type not in _VIX_ALLOWED_STRATEGIES[vix_level]:
        return False, f"Strategy not suitable for {vix_level} VIX regime"

    for marker, start, end, reason in _SESSION_TIME_FILTERS:
        if marker in opportunity_type and not start <= minutes_since_open <= end:
            return False, reason

    if ("bullish" in opportunity_type or "long" in opportunity_type) and (
        trend_strength < -STRONG_TREND_STRENGTH
    ):
        return False, "Strong downtrend - bullish trades not advised"

    if ("bearish" in opportunity_type or "short" in opportunity_type) and (
        trend_strength > STRONG_TREND_STRENGTH
    ):
        return False, "Strong uptrend - bearish trades not advised"

    return True, None

