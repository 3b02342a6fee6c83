"""Tests for static threshold resolution, universal filters, and strategy tiers."""

import pytest
from pydantic import ValidationError

from Setup_Radar.analysis.scanner_config import (
    DEFAULT_SCANNER_CONFIG,
    OPTIMIZED_SCANNER_CONFIG,
    SCANNER_PRESETS,
    ScannerConfigOverride,
    ThresholdOverride,
    UniversalFilters,
    get_strategy_tier,
    get_thresholds_for_signal,
    is_strategy_allowed_in_regime,
    passes_universal_filters,
)
from Setup_Radar.models import (
    AssetClass,
    FeatureSnapshot,
    OpportunityType,
    PriceFeatures,
    SessionFeatures,
    VolatilityRegime,
    VolumeFeatures,
)

# ---------------------------------------------------------------------------
# Threshold resolution
# ---------------------------------------------------------------------------


class TestGetThresholdsForSignal:
    """Default -> asset class -> strategy precedence."""

    def test_defaults_for_etf(self) -> None:
        thresholds = get_thresholds_for_signal(
            DEFAULT_SCANNER_CONFIG, AssetClass.EQUITY_ETF, OpportunityType.BREAKOUT_BULLISH
        )
        assert thresholds.min_base == 70
        assert thresholds.min_style == 75
        assert thresholds.min_risk_reward == 1.5
        assert thresholds.max_signals_per_symbol_per_hour == 2
        assert thresholds.cooldown_minutes == 15

    def test_index_override_is_partial(self) -> None:
        thresholds = get_thresholds_for_signal(
            DEFAULT_SCANNER_CONFIG, AssetClass.INDEX, OpportunityType.BREAKOUT_BULLISH
        )
        assert thresholds.min_base == 75
        assert thresholds.min_style == 78
        assert thresholds.cooldown_minutes == 10
        # Inherited from defaults
        assert thresholds.min_risk_reward == 1.5

    def test_strategy_prefix_beats_asset_class(self) -> None:
        thresholds = get_thresholds_for_signal(
            OPTIMIZED_SCANNER_CONFIG, AssetClass.INDEX, OpportunityType.GAMMA_FLIP_BULLISH
        )
        assert thresholds.min_base == 90
        assert thresholds.min_risk_reward == 3.0
        assert thresholds.cooldown_minutes == 60
        assert thresholds.max_signals_per_symbol_per_hour == 1

    def test_longest_prefix_wins(self) -> None:
        thresholds = get_thresholds_for_signal(
            OPTIMIZED_SCANNER_CONFIG, AssetClass.INDEX, OpportunityType.INDEX_MEAN_REVERSION_LONG
        )
        assert thresholds.min_base == 82

    def test_exact_key_beats_prefix(self) -> None:
        config = OPTIMIZED_SCANNER_CONFIG.merged_with(
            ScannerConfigOverride(
                strategy_thresholds={"breakout_bearish": ThresholdOverride(min_base=95)}
            )
        )
        bearish = get_thresholds_for_signal(
            config, AssetClass.STOCK, OpportunityType.BREAKOUT_BEARISH
        )
        bullish = get_thresholds_for_signal(
            config, AssetClass.STOCK, OpportunityType.BREAKOUT_BULLISH
        )
        assert bearish.min_base == 95
        assert bullish.min_base == 78

    def test_presets(self) -> None:
        assert set(SCANNER_PRESETS) == {"default", "optimized"}


class TestMergedWith:
    """Layering user overrides on a preset."""

    def test_default_layer_override(self) -> None:
        config = DEFAULT_SCANNER_CONFIG.merged_with(
            ScannerConfigOverride(default_thresholds=ThresholdOverride(cooldown_minutes=0))
        )
        assert config.default_thresholds.cooldown_minutes == 0
        assert config.default_thresholds.min_base == 70

    def test_asset_class_fields_merge(self) -> None:
        config = DEFAULT_SCANNER_CONFIG.merged_with(
            ScannerConfigOverride(
                asset_class_thresholds={AssetClass.INDEX: ThresholdOverride(min_base=80)}
            )
        )
        index = config.asset_class_thresholds[AssetClass.INDEX]
        assert index.min_base == 80
        assert index.min_style == 78

    def test_filters_merge(self) -> None:
        config = DEFAULT_SCANNER_CONFIG.merged_with(
            ScannerConfigOverride(filters={"blacklist": ["TSLA"]})
        )
        assert config.filters.blacklist == ["TSLA"]
        assert config.filters.max_spread == 0.005

    def test_preset_untouched(self) -> None:
        DEFAULT_SCANNER_CONFIG.merged_with(
            ScannerConfigOverride(default_thresholds=ThresholdOverride(min_base=99))
        )
        assert DEFAULT_SCANNER_CONFIG.default_thresholds.min_base == 70

    def test_invalid_override_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ThresholdOverride(min_base=150)


# ---------------------------------------------------------------------------
# Universal filters
# ---------------------------------------------------------------------------


class TestUniversalFilters:
    """Symbol-level pre-filters."""

    def test_passes(self, spy_features: FeatureSnapshot) -> None:
        assert passes_universal_filters("SPY", spy_features, UniversalFilters()) == (True, None)

    def test_blacklist_case_insensitive(self, spy_features: FeatureSnapshot) -> None:
        passed, reason = passes_universal_filters(
            "SPY", spy_features, UniversalFilters(blacklist=["spy"])
        )
        assert not passed
        assert reason == "SPY is blacklisted"

    def test_session_flag_closed(self, spy_features: FeatureSnapshot) -> None:
        closed = spy_features.model_copy(
            update={"session": SessionFeatures(is_regular_hours=False)}
        )
        assert passes_universal_filters("SPY", closed, UniversalFilters()) == (
            False,
            "Outside market hours",
        )

    def test_market_hours_from_clock(self, sparse_features: FeatureSnapshot) -> None:
        # No session flag; 10:15 ET on a Wednesday
        assert passes_universal_filters("AAPL", sparse_features, UniversalFilters())[0]

    def test_market_hours_off(self, spy_features: FeatureSnapshot) -> None:
        closed = spy_features.model_copy(
            update={"session": SessionFeatures(is_regular_hours=False)}
        )
        filters = UniversalFilters(market_hours_only=False)
        assert passes_universal_filters("SPY", closed, filters)[0]

    def test_min_rvol(self, spy_features: FeatureSnapshot) -> None:
        filters = UniversalFilters(min_rvol=3.0)
        passed, reason = passes_universal_filters("SPY", spy_features, filters)
        assert not passed
        assert reason is not None
        assert "Relative volume" in reason

    def test_min_rvol_missing_volume(self, sparse_features: FeatureSnapshot) -> None:
        filters = UniversalFilters(min_rvol=1.0)
        assert not passes_universal_filters("AAPL", sparse_features, filters)[0]

    def test_wide_spread(self, spy_features: FeatureSnapshot) -> None:
        wide = spy_features.model_copy(
            update={"price": PriceFeatures(current=1.0, spread_pct=0.02)}
        )
        passed, reason = passes_universal_filters("SPY", wide, UniversalFilters())
        assert not passed
        assert reason == "Spread 0.0200 exceeds maximum 0.005"

    def test_missing_spread_passes(self, sparse_features: FeatureSnapshot) -> None:
        assert passes_universal_filters("AAPL", sparse_features, UniversalFilters())[0]

    def test_liquidity(self, spy_features: FeatureSnapshot) -> None:
        thin = spy_features.model_copy(update={"volume": VolumeFeatures(avg=50_000)})
        filters = UniversalFilters(require_minimum_liquidity=True, min_avg_volume=100_000)
        passed, reason = passes_universal_filters("SPY", thin, filters)
        assert not passed
        assert reason is not None
        assert reason.startswith("Average volume")


# ---------------------------------------------------------------------------
# Tiers and regime suitability
# ---------------------------------------------------------------------------


class TestStrategyTiers:
    """Tier assignment."""

    def test_tiers(self) -> None:
        assert get_strategy_tier(OpportunityType.BREAKOUT_BULLISH) == 1
        assert get_strategy_tier(OpportunityType.GAMMA_SQUEEZE_BEARISH) == 2
        assert get_strategy_tier(OpportunityType.EOD_PIN_SETUP) == 3

    def test_untiered_counts_as_two(self) -> None:
        assert get_strategy_tier(OpportunityType.SWEEP_MOMENTUM_LONG) == 2


class TestIsStrategyAllowedInRegime:
    """Optimized-profile suitability by VIX, session time, and trend."""

    def test_allowed(self) -> None:
        assert is_strategy_allowed_in_regime(
            OpportunityType.BREAKOUT_BULLISH, VolatilityRegime.MEDIUM, 45, 40.0
        ) == (True, None)

    def test_vix_unsuitable(self) -> None:
        allowed, reason = is_strategy_allowed_in_regime(
            OpportunityType.BREAKOUT_BULLISH, VolatilityRegime.HIGH, 45, 0.0
        )
        assert not allowed
        assert reason == "Strategy not suitable for high VIX regime"

    def test_power_hour_outside_last_hour(self) -> None:
        allowed, reason = is_strategy_allowed_in_regime(
            OpportunityType.POWER_HOUR_REVERSAL_BULLISH, VolatilityRegime.MEDIUM, 120, 0.0
        )
        assert not allowed
        assert reason == "Power hour reversal only valid in last hour"

    def test_bullish_in_strong_downtrend(self) -> None:
        allowed, reason = is_strategy_allowed_in_regime(
            OpportunityType.MEAN_REVERSION_LONG, VolatilityRegime.MEDIUM, 90, -45.0
        )
        assert not allowed
        assert reason == "Strong downtrend - bullish trades not advised"

    def test_bearish_in_strong_uptrend(self) -> None:
        allowed, _ = is_strategy_allowed_in_regime(
            OpportunityType.BREAKOUT_BEARISH, VolatilityRegime.LOW, 90, 45.0
        )
        assert not allowed
