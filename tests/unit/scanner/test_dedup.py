"""Tests for the in-process signal deduplicator."""

import datetime

import pytest

from Setup_Radar.analysis.scanner_config import SignalThresholds
from Setup_Radar.models import SkipReason
from Setup_Radar.models.signal import Signal, SignalPayload
from Setup_Radar.scanner import SignalDeduplicator, check_deduplication
from Setup_Radar.scanner.dedup import MAX_HISTORY_SIZE, MAX_SIGNALS_PER_SYMBOL

T0 = datetime.datetime(2025, 1, 15, 15, 15, tzinfo=datetime.UTC)

THRESHOLDS = SignalThresholds(
    min_base=70,
    min_style=75,
    min_risk_reward=1.5,
    max_signals_per_symbol_per_hour=2,
    cooldown_minutes=15,
)


def _signal(
    symbol: str = "SPY",
    strategy_id: str = "strat-a",
    minutes: float = 0,
    key: str | None = None,
) -> Signal:
    time = T0 + datetime.timedelta(minutes=minutes)
    return Signal(
        symbol=symbol,
        strategy_id=strategy_id,
        owner="trader-1",
        confidence=85,
        bar_time_key=key or f"{time.isoformat()}|5m",
        payload=SignalPayload(time=time, price=500.0, confidence=85, confidence_ready=True),
    )


@pytest.fixture()
def dedup() -> SignalDeduplicator:
    return SignalDeduplicator()


class TestCooldown:
    """Per (symbol, strategy) cooldown."""

    def test_no_history(self, dedup: SignalDeduplicator) -> None:
        assert not dedup.is_in_cooldown("SPY", "strat-a", T0, THRESHOLDS)

    def test_within_cooldown(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        later = T0 + datetime.timedelta(minutes=14)
        assert dedup.is_in_cooldown("SPY", "strat-a", later, THRESHOLDS)

    def test_cooldown_boundary_is_exclusive(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        later = T0 + datetime.timedelta(minutes=15)
        assert not dedup.is_in_cooldown("SPY", "strat-a", later, THRESHOLDS)

    def test_scoped_to_strategy(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(strategy_id="strat-a"))
        assert not dedup.is_in_cooldown("SPY", "strat-b", T0, THRESHOLDS)
        assert not dedup.is_in_cooldown("QQQ", "strat-a", T0, THRESHOLDS)


class TestHourlyCap:
    """Per-symbol cap across strategies."""

    def test_counts_all_strategies(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(strategy_id="strat-a"))
        dedup.record_signal(_signal(strategy_id="strat-b", minutes=10))
        now = T0 + datetime.timedelta(minutes=20)
        assert dedup.exceeds_max_signals_per_hour("SPY", now, THRESHOLDS)

    def test_old_signals_fall_out(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        dedup.record_signal(_signal(minutes=10))
        now = T0 + datetime.timedelta(minutes=65)
        assert not dedup.exceeds_max_signals_per_hour("SPY", now, THRESHOLDS)

    def test_unknown_symbol(self, dedup: SignalDeduplicator) -> None:
        assert not dedup.exceeds_max_signals_per_hour("SPY", T0, THRESHOLDS)


class TestDuplicate:
    """Bar-time-key matching."""

    def test_same_key_same_strategy(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(key="k1"))
        assert dedup.is_duplicate("SPY", "strat-a", "k1")

    def test_same_key_other_strategy(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(key="k1"))
        assert not dedup.is_duplicate("SPY", "strat-b", "k1")
        assert not dedup.is_duplicate("SPY", "strat-a", "k2")


class TestHistory:
    """Recent listings, clearing, cleanup, and stats."""

    def test_recent_newest_first(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(minutes=0))
        dedup.record_signal(_signal(symbol="QQQ", minutes=20))
        dedup.record_signal(_signal(minutes=10))
        now = T0 + datetime.timedelta(minutes=30)

        everything = dedup.recent_signals(now=now)
        assert [entry.time for entry in everything] == [
            T0 + datetime.timedelta(minutes=20),
            T0 + datetime.timedelta(minutes=10),
            T0,
        ]
        assert len(dedup.recent_signals("SPY", now=now)) == 2

    def test_recent_respects_max_age(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        now = T0 + datetime.timedelta(minutes=90)
        assert dedup.recent_signals(now=now) == []
        assert len(dedup.recent_signals(max_age=datetime.timedelta(hours=2), now=now)) == 1

    def test_per_symbol_cap(self, dedup: SignalDeduplicator) -> None:
        for i in range(MAX_SIGNALS_PER_SYMBOL + 5):
            dedup.record_signal(_signal(minutes=i))
        now = T0 + datetime.timedelta(days=1)
        history = dedup.recent_signals("SPY", max_age=datetime.timedelta(days=2), now=now)
        assert len(history) == MAX_SIGNALS_PER_SYMBOL
        assert history[-1].time == T0 + datetime.timedelta(minutes=5)

    def test_clear_one_symbol(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        dedup.record_signal(_signal(symbol="QQQ"))
        dedup.clear("SPY")
        assert dedup.stats(now=T0).unique_symbols == 1
        dedup.clear()
        assert dedup.stats(now=T0).total_signals == 0

    def test_cleanup_expired(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        dedup.record_signal(_signal(symbol="QQQ", minutes=60 * 20))
        now = T0 + datetime.timedelta(hours=25)

        assert dedup.cleanup(now=now) == 1
        stats = dedup.stats(now=now)
        assert stats.total_signals == 1
        assert stats.unique_symbols == 1

    def test_cleanup_global_cap(self, dedup: SignalDeduplicator) -> None:
        symbols = [f"SYM{i}" for i in range(MAX_HISTORY_SIZE // 10 + 1)]
        for offset, symbol in enumerate(symbols):
            for i in range(10):
                dedup.record_signal(_signal(symbol=symbol, minutes=offset * 10 + i))
        now = T0 + datetime.timedelta(hours=1)

        assert dedup.cleanup(now=now) == 10
        assert dedup.stats(now=now).total_signals == MAX_HISTORY_SIZE
        assert dedup.recent_signals("SYM0", max_age=datetime.timedelta(days=1), now=now) == []

    def test_stats(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        dedup.record_signal(_signal(symbol="QQQ", minutes=30))
        stats = dedup.stats(now=T0 + datetime.timedelta(minutes=40))
        assert stats.total_signals == 2
        assert stats.unique_symbols == 2
        assert stats.oldest_signal_age == datetime.timedelta(minutes=40)
        assert stats.newest_signal_age == datetime.timedelta(minutes=10)

    def test_empty_stats(self, dedup: SignalDeduplicator) -> None:
        stats = dedup.stats()
        assert stats.total_signals == 0
        assert stats.oldest_signal_age == datetime.timedelta(0)


class TestCheckDeduplication:
    """Checks run in order: duplicate key, cooldown, hourly cap."""

    def test_passes(self, dedup: SignalDeduplicator) -> None:
        result = check_deduplication(_signal(), THRESHOLDS, dedup)
        assert result.passed
        assert result.reason is None

    def test_duplicate_first(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(key="k1"))
        result = check_deduplication(_signal(key="k1"), THRESHOLDS, dedup)
        assert result.reason == SkipReason.DUPLICATE
        assert result.detail == "Duplicate bar time key"

    def test_cooldown(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal())
        result = check_deduplication(_signal(minutes=5), THRESHOLDS, dedup)
        assert result.reason == SkipReason.COOLDOWN
        assert result.detail == "In cooldown (15 minutes)"

    def test_hourly_cap(self, dedup: SignalDeduplicator) -> None:
        dedup.record_signal(_signal(strategy_id="strat-b"))
        dedup.record_signal(_signal(strategy_id="strat-c", minutes=5))
        result = check_deduplication(_signal(minutes=10), THRESHOLDS, dedup)
        assert not result.passed
        assert result.reason == SkipReason.HOURLY_CAP
        assert result.detail == "Max signals per hour exceeded (2)"
