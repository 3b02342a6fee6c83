"""Tests for the custom exception hierarchy.

Covers:
- Inheritance: configuration and store errors share SetupRadarError
- Keyword attributes: detector, strategy, operation, bar_time_key
- Catching by parent type
"""

import pytest

from Setup_Radar.utils.exceptions import (
    ConfigurationError,
    DetectorConfigError,
    DuplicateSignalError,
    SetupRadarError,
    SignalStoreError,
    StrategyConfigError,
)


class TestHierarchy:
    """Every error is a SetupRadarError."""

    @pytest.mark.parametrize(
        ("cls", "parent"),
        [
            (ConfigurationError, SetupRadarError),
            (DetectorConfigError, ConfigurationError),
            (StrategyConfigError, ConfigurationError),
            (SignalStoreError, SetupRadarError),
            (DuplicateSignalError, SignalStoreError),
        ],
    )
    def test_subclass(self, cls: type[Exception], parent: type[Exception]) -> None:
        assert issubclass(cls, parent)

    def test_store_errors_are_not_configuration_errors(self) -> None:
        assert not issubclass(SignalStoreError, ConfigurationError)


class TestConfigurationErrors:
    """Attributes on configuration failures."""

    def test_detector_attribute(self) -> None:
        exc = DetectorConfigError("weights sum to 0.8", detector="breakout_bullish")
        assert exc.detector == "breakout_bullish"
        assert "weights sum to 0.8" in str(exc)

    def test_strategy_attribute(self) -> None:
        exc = StrategyConfigError("ready below min", strategy="spy-breakout")
        assert exc.strategy == "spy-breakout"

    def test_caught_as_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="ready below min"):
            raise StrategyConfigError("ready below min", strategy="spy-breakout")

    def test_attributes_are_keyword_only(self) -> None:
        with pytest.raises(TypeError):
            StrategyConfigError("oops", "spy-breakout")  # type: ignore[misc]


class TestStoreErrors:
    """Attributes on persistence failures."""

    def test_operation_attribute(self) -> None:
        exc = SignalStoreError("db locked", operation="get_latest_signal")
        assert exc.operation == "get_latest_signal"

    def test_duplicate_sets_operation(self) -> None:
        exc = DuplicateSignalError("already emitted", bar_time_key="2025-01-15T15:15:00Z|5m")
        assert exc.bar_time_key == "2025-01-15T15:15:00Z|5m"
        assert exc.operation == "insert_signal"

    def test_duplicate_caught_as_store_error(self) -> None:
        with pytest.raises(SignalStoreError):
            raise DuplicateSignalError("already emitted", bar_time_key="k")
