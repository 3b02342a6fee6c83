"""Tests for Rich-based terminal output rendering.

Validates that render_scan_report, render_strategies, render_thresholds,
and render_confidence produce the expected text and do not raise. Uses a
captured Rich Console to inspect output content.
"""

from __future__ import annotations

import datetime
import re
from io import StringIO
from unittest.mock import patch

from rich.console import Console

from Setup_Radar.analysis.adaptive_thresholds import get_adaptive_thresholds
from Setup_Radar.analysis.confidence import calculate_data_confidence
from Setup_Radar.models import (
    FeatureSnapshot,
    MarketRegime,
    SkipReason,
    StrategyDefinition,
    VolatilityRegime,
)
from Setup_Radar.models.signal import ScanSkip, Signal, SignalPayload
from Setup_Radar.reporting.terminal import (
    render_confidence,
    render_scan_report,
    render_strategies,
    render_thresholds,
)
from Setup_Radar.scanner import ScanReport

# Regex to strip ANSI escape codes from Rich output
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

_CONSOLE_PATH = "Setup_Radar.reporting.terminal.console"
_T0 = datetime.datetime(2025, 1, 15, 15, 15, tzinfo=datetime.UTC)


def _strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from Rich console output."""
    return _ANSI_ESCAPE.sub("", text)


def _make_captured_console() -> Console:
    """Create a Console that captures output to a StringIO buffer."""
    return Console(file=StringIO(), force_terminal=True, width=160)


def _output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return _strip_ansi(console.file.getvalue())


def _signal() -> Signal:
    return Signal(
        symbol="SPY",
        strategy_id="strat-breakout",
        owner="trader-1",
        confidence=90,
        bar_time_key="2025-01-15T15:15:00Z|5m",
        payload=SignalPayload(
            time=_T0,
            price=589.6,
            confidence=90,
            confidence_ready=True,
            entry=589.6,
            stop=588.7,
            target_t2=591.4,
            risk_reward=2.0,
        ),
    )


# ---------------------------------------------------------------------------
# render_scan_report
# ---------------------------------------------------------------------------


class TestRenderScanReport:
    """Signals table, skip summary, and footer."""

    def test_signals_table(self) -> None:
        captured = _make_captured_console()
        report = ScanReport(signals=[_signal()], symbols_scanned=1)
        with patch(_CONSOLE_PATH, captured):
            render_scan_report(report)

        output = _output(captured)
        assert "Signals" in output
        assert "SPY" in output
        assert "589.60" in output
        assert "591.40" in output
        assert "2025-01-15T15:15:00Z|5m" in output
        assert "Scan complete: 1 signals, 0 skips, 1 symbols" in output

    def test_empty_report(self) -> None:
        captured = _make_captured_console()
        with patch(_CONSOLE_PATH, captured):
            render_scan_report(ScanReport())

        output = _output(captured)
        assert "No signals emitted." in output
        assert "Skips by reason" not in output

    def test_skip_summary_without_details(self) -> None:
        captured = _make_captured_console()
        report = ScanReport(
            skips=[
                ScanSkip(symbol="SPY", strategy_id="s1", reason=SkipReason.COOLDOWN),
                ScanSkip(symbol="QQQ", strategy_id="s1", reason=SkipReason.COOLDOWN),
                ScanSkip(symbol="IWM", strategy_id=None, reason=SkipReason.FILTERED),
            ],
            symbols_scanned=3,
        )
        with patch(_CONSOLE_PATH, captured):
            render_scan_report(report)

        output = _output(captured)
        assert "Skips by reason" in output
        assert "cooldown" in output
        assert "Skipped pairs" not in output

    def test_show_skips(self) -> None:
        captured = _make_captured_console()
        report = ScanReport(
            skips=[
                ScanSkip(
                    symbol="IWM",
                    strategy_id=None,
                    reason=SkipReason.FILTERED,
                    detail="Outside market hours",
                )
            ],
            symbols_scanned=1,
        )
        with patch(_CONSOLE_PATH, captured):
            render_scan_report(report, show_skips=True)

        output = _output(captured)
        assert "Skipped pairs" in output
        assert "Outside market hours" in output

    def test_cancelled_footer(self) -> None:
        captured = _make_captured_console()
        with patch(_CONSOLE_PATH, captured):
            render_scan_report(ScanReport(cancelled=True))
        assert "Scan cancelled: 0 signals" in _output(captured)


# ---------------------------------------------------------------------------
# render_strategies
# ---------------------------------------------------------------------------


class TestRenderStrategies:
    """Strategy definition table."""

    def test_table(self, breakout_strategy: StrategyDefinition) -> None:
        captured = _make_captured_console()
        session_only = breakout_strategy.model_copy(
            update={"id": "s2", "slug": "once-a-day", "once_per_session": True, "owner": None}
        )
        with patch(_CONSOLE_PATH, captured):
            render_strategies([breakout_strategy, session_only])

        output = _output(captured)
        assert "spy-breakout" in output
        assert "breakout_bullish" in output
        assert "50/80" in output
        assert "5m / session" in output
        assert "core" in output

    def test_empty(self) -> None:
        captured = _make_captured_console()
        with patch(_CONSOLE_PATH, captured):
            render_strategies([])
        assert "No enabled strategies." in _output(captured)


# ---------------------------------------------------------------------------
# render_thresholds / render_confidence
# ---------------------------------------------------------------------------


class TestRenderThresholds:
    """Adaptive threshold panel and breakdown."""

    def test_enabled(self) -> None:
        captured = _make_captured_console()
        result = get_adaptive_thresholds(
            _T0, VolatilityRegime.MEDIUM, MarketRegime.TRENDING, "breakout_bullish"
        )
        with patch(_CONSOLE_PATH, captured):
            render_thresholds(result, regime_allowed=(True, None))

        output = _output(captured)
        assert "Adaptive Thresholds" in output
        assert "Mid-Morning" in output
        assert "enabled" in output
        assert "Min base" in output
        assert "Optimized profile: allowed" in output

    def test_disabled_with_block_reason(self) -> None:
        captured = _make_captured_console()
        result = get_adaptive_thresholds(
            _T0, VolatilityRegime.MEDIUM, MarketRegime.RANGING, "breakout_bullish"
        )
        with patch(_CONSOLE_PATH, captured):
            render_thresholds(
                result, regime_allowed=(False, "Strategy not suitable for high VIX regime")
            )

        output = _output(captured)
        assert "disabled" in output
        assert "Very high threshold" in output
        assert "Optimized profile: Strategy not suitable for high VIX regime" in output

    def test_without_regime_check(self) -> None:
        captured = _make_captured_console()
        result = get_adaptive_thresholds(_T0, VolatilityRegime.LOW, None, "breakout")
        with patch(_CONSOLE_PATH, captured):
            render_thresholds(result)
        assert "Optimized profile" not in _output(captured)


class TestRenderConfidence:
    """Per-symbol data confidence."""

    def test_complete_but_flow(self, spy_features: FeatureSnapshot) -> None:
        captured = _make_captured_console()
        with patch(_CONSOLE_PATH, captured):
            render_confidence("SPY", calculate_data_confidence(spy_features))

        output = _output(captured)
        assert "completeness 91%" in output
        assert "confidence 96% (high)" in output
        assert "Missing important: flow" in output
        assert "Missing critical" not in output

    def test_sparse(self, sparse_features: FeatureSnapshot) -> None:
        captured = _make_captured_console()
        with patch(_CONSOLE_PATH, captured):
            render_confidence("AAPL", calculate_data_confidence(sparse_features))

        output = _output(captured)
        assert "(very_low)" in output
        assert "Missing critical: price, volume, atr" in output
