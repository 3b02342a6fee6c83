"""Tests for StrategyDefinition, confidence threshold resolution, and horizon inference."""

import json

import pytest
from pydantic import ValidationError

from Setup_Radar.models import (
    BarTimeframe,
    ConfidenceBand,
    ConfidenceThresholds,
    OpportunityType,
    StrategyDefinition,
    TradeHorizon,
    UnderlyingScope,
    infer_horizon,
)
from Setup_Radar.utils.exceptions import ConfigurationError, StrategyConfigError


def _definition(**overrides: object) -> StrategyDefinition:
    fields: dict[str, object] = {
        "id": "s1",
        "slug": "test-strategy",
        "detector_type": OpportunityType.BREAKOUT_BULLISH,
    }
    fields.update(overrides)
    return StrategyDefinition(**fields)  # type: ignore[arg-type]


class TestInferHorizon:
    """Timeframe to trade-horizon mapping."""

    @pytest.mark.parametrize(
        ("timeframe", "expected"),
        [
            (BarTimeframe.ONE_MIN, TradeHorizon.SCALP),
            (BarTimeframe.FIVE_MIN, TradeHorizon.SCALP),
            (BarTimeframe.FIFTEEN_MIN, TradeHorizon.DAY),
            (BarTimeframe.SIXTY_MIN, TradeHorizon.DAY),
            (BarTimeframe.ONE_DAY, TradeHorizon.SWING),
        ],
    )
    def test_mapping(self, timeframe: BarTimeframe, expected: TradeHorizon) -> None:
        assert infer_horizon(timeframe) == expected

    def test_leap_is_never_inferred(self) -> None:
        assert TradeHorizon.LEAP not in {infer_horizon(tf) for tf in BarTimeframe}


class TestConfidenceThresholds:
    """Per-horizon band overrides."""

    def test_defaults(self) -> None:
        thresholds = ConfidenceThresholds()
        assert thresholds.resolve(TradeHorizon.SCALP) == (50, 80)

    def test_band_overrides_field_by_field(self) -> None:
        thresholds = ConfidenceThresholds(min=55, ready=75, swing=ConfidenceBand(ready=90))
        assert thresholds.resolve(TradeHorizon.SWING) == (55, 90)
        assert thresholds.resolve(TradeHorizon.DAY) == (55, 75)

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ConfidenceThresholds(min=120)


class TestStrategyDefinition:
    """Validation and derived properties of strategy definitions."""

    def test_defaults(self) -> None:
        definition = _definition()
        assert definition.underlying_scope == UnderlyingScope.ANY
        assert definition.timeframe == BarTimeframe.FIVE_MIN
        assert definition.cooldown_minutes == 5
        assert definition.once_per_session is False
        assert definition.enabled is True

    def test_effective_horizon_inferred(self) -> None:
        assert _definition(timeframe=BarTimeframe.ONE_DAY).effective_horizon == TradeHorizon.SWING

    def test_explicit_horizon_wins(self) -> None:
        definition = _definition(timeframe=BarTimeframe.ONE_DAY, horizon=TradeHorizon.LEAP)
        assert definition.effective_horizon == TradeHorizon.LEAP

    def test_ready_below_min_raises(self) -> None:
        with pytest.raises(StrategyConfigError, match="ready threshold 60") as exc_info:
            _definition(confidence_thresholds=ConfidenceThresholds(min=70, ready=60))
        assert exc_info.value.strategy == "test-strategy"

    def test_ready_below_min_in_one_band_raises(self) -> None:
        thresholds = ConfidenceThresholds(min=50, ready=80, day=ConfidenceBand(min=85))
        with pytest.raises(StrategyConfigError, match="DAY"):
            _definition(confidence_thresholds=thresholds)

    def test_config_error_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            _definition(confidence_thresholds=ConfidenceThresholds(min=90, ready=10))

    def test_negative_cooldown_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _definition(cooldown_minutes=-1)

    def test_unknown_detector_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _definition(detector_type="not_a_setup")

    def test_json_round_trip(self) -> None:
        definition = _definition(
            owner="trader-1",
            underlying_scope=UnderlyingScope.SPX_ONLY,
            confidence_thresholds=ConfidenceThresholds(scalp=ConfidenceBand(min=60)),
        )
        restored = StrategyDefinition.model_validate_json(definition.model_dump_json())
        assert restored == definition

    def test_loads_from_plain_json(self) -> None:
        raw = json.loads(
            '{"id": "s2", "slug": "orb", "detector_type": "kcu_orb_breakout",'
            ' "timeframe": "15m", "once_per_session": true}'
        )
        definition = StrategyDefinition.model_validate(raw)
        assert definition.detector_type == OpportunityType.KCU_ORB_BREAKOUT
        assert definition.effective_horizon == TradeHorizon.DAY
        assert definition.once_per_session is True
