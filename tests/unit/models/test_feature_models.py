"""Tests for FeatureSnapshot validation and signal model construction."""

import datetime

import pytest
from pydantic import ValidationError

from Setup_Radar.models import (
    FeatureSnapshot,
    ScanSkip,
    Signal,
    SignalPayload,
    SignalStatus,
    SkipReason,
    TimeframeFeatures,
)


class TestFeatureSnapshot:
    """Symbol normalization, time validation, and timeframe lookups."""

    def test_symbol_is_normalized(self) -> None:
        snapshot = FeatureSnapshot(
            symbol="  spy ", time=datetime.datetime(2025, 1, 15, 15, 0, tzinfo=datetime.UTC)
        )
        assert snapshot.symbol == "SPY"

    def test_empty_symbol_rejected(self) -> None:
        with pytest.raises(ValidationError, match="symbol must not be empty"):
            FeatureSnapshot(
                symbol="  ", time=datetime.datetime(2025, 1, 15, tzinfo=datetime.UTC)
            )

    def test_naive_time_rejected(self) -> None:
        with pytest.raises(ValidationError, match="timezone-aware"):
            FeatureSnapshot(symbol="SPY", time=datetime.datetime(2025, 1, 15, 15, 0))

    def test_every_section_optional(self, sparse_features: FeatureSnapshot) -> None:
        assert sparse_features.price.current is None
        assert sparse_features.volume is None
        assert sparse_features.flow is None
        assert sparse_features.mtf == {}

    def test_atr_for(self, spy_features: FeatureSnapshot) -> None:
        assert spy_features.atr_for("5m") == pytest.approx(1.2)
        assert spy_features.atr_for("1d") is None

    def test_atr_for_frame_without_atr(self, sparse_features: FeatureSnapshot) -> None:
        snapshot = sparse_features.model_copy(update={"mtf": {"5m": TimeframeFeatures()}})
        assert snapshot.atr_for("5m") is None

    def test_frozen(self, spy_features: FeatureSnapshot) -> None:
        with pytest.raises(ValidationError):
            spy_features.symbol = "QQQ"  # type: ignore[misc]

    def test_json_round_trip(self, spy_features: FeatureSnapshot) -> None:
        restored = FeatureSnapshot.model_validate_json(spy_features.model_dump_json())
        assert restored == spy_features


class TestSignalModels:
    """Signal defaults and skip records."""

    def test_signal_defaults(self) -> None:
        time = datetime.datetime(2025, 1, 15, 15, 15, tzinfo=datetime.UTC)
        signal = Signal(
            symbol="SPY",
            strategy_id="s1",
            owner="trader-1",
            confidence=90,
            bar_time_key="2025-01-15T15:15:00Z|5m",
            payload=SignalPayload(time=time, price=589.6, confidence=90, confidence_ready=True),
        )
        assert signal.status == SignalStatus.ACTIVE
        assert len(signal.id) == 32
        assert signal.created_at.tzinfo is not None
        assert signal.payload.missing_critical == []

    def test_ids_are_unique(self) -> None:
        time = datetime.datetime(2025, 1, 15, 15, 15, tzinfo=datetime.UTC)
        payload = SignalPayload(time=time, price=None, confidence=70, confidence_ready=False)
        first = Signal(
            symbol="SPY", strategy_id="s1", owner="o", confidence=70, bar_time_key="k",
            payload=payload,
        )
        second = Signal(
            symbol="SPY", strategy_id="s1", owner="o", confidence=70, bar_time_key="k",
            payload=payload,
        )
        assert first.id != second.id

    def test_filtered_skip_has_no_strategy(self) -> None:
        skip = ScanSkip(symbol="SPY", strategy_id=None, reason=SkipReason.FILTERED)
        assert skip.detail == ""
        assert skip.reason == "filtered"
