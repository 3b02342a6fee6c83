"""In-memory signal deduplication for a single process.

Tracks recently emitted signals per symbol so a caller without a signal
store (or one wanting a cheap pre-check before hitting it) can enforce
bar-time-key uniqueness, per-strategy cooldown, and the per-symbol hourly
cap. This is not a substitute for the store's unique constraint: state is
lost on restart and invisible to other processes.
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass

from Setup_Radar.analysis.scanner_config import SignalThresholds
from Setup_Radar.models.enums import SkipReason
from Setup_Radar.models.signal import Signal

logger = logging.getLogger(__name__)

MAX_SIGNALS_PER_SYMBOL: int = 100
MAX_HISTORY_SIZE: int = 1000
DEFAULT_RETENTION = datetime.timedelta(hours=24)
HOUR = datetime.timedelta(hours=1)


@dataclass(frozen=True)
class RecentSignal:
    symbol: str
    strategy_id: str
    time: datetime.datetime
    bar_time_key: str


@dataclass(frozen=True)
class DedupStats:
    total_signals: int
    unique_symbols: int
    oldest_signal_age: datetime.timedelta
    newest_signal_age: datetime.timedelta


@dataclass(frozen=True)
class DedupResult:
    """Outcome of :func:`check_deduplication`; ``reason`` is None on pass."""

    passed: bool
    reason: SkipReason | None = None
    detail: str = ""


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class SignalDeduplicator:
    """Recent-signal memory keyed by symbol.

    Times are the signals' snapshot times, so replaying historical bars
    behaves the same as a live scan.
    """

    def __init__(self) -> None:
        self._recent: defaultdict[str, list[RecentSignal]] = defaultdict(list)

    def record_signal(self, signal: Signal) -> None:
        """Remember an emitted signal, keeping the newest per symbol."""
        history = self._recent[signal.symbol]
        history.append(
            RecentSignal(
                symbol=signal.symbol,
                strategy_id=signal.strategy_id,
                time=signal.payload.time,
                bar_time_key=signal.bar_time_key,
            )
        )
        if len(history) > MAX_SIGNALS_PER_SYMBOL:
            del history[0]

    def is_in_cooldown(
        self,
        symbol: str,
        strategy_id: str,
        time: datetime.datetime,
        thresholds: SignalThresholds,
    ) -> bool:
        """True if the strategy's last signal on the symbol is within cooldown."""
        matching = [
            entry for entry in self._recent.get(symbol, []) if entry.strategy_id == strategy_id
        ]
        if not matching:
            return False
        last = max(matching, key=lambda entry: entry.time)
        return time - last.time < datetime.timedelta(minutes=thresholds.cooldown_minutes)

    def exceeds_max_signals_per_hour(
        self,
        symbol: str,
        time: datetime.datetime,
        thresholds: SignalThresholds,
    ) -> bool:
        """True if the symbol already has the maximum signals in the last hour."""
        history = self._recent.get(symbol)
        if not history:
            return False
        since = time - HOUR
        in_window = sum(1 for entry in history if entry.time >= since)
        return in_window >= thresholds.max_signals_per_symbol_per_hour

    def is_duplicate(self, symbol: str, strategy_id: str, bar_time_key: str) -> bool:
        """True if the strategy already signalled this symbol on this bar."""
        return any(
            entry.strategy_id == strategy_id and entry.bar_time_key == bar_time_key
            for entry in self._recent.get(symbol, [])
        )

    def recent_signals(
        self,
        symbol: str | None = None,
        max_age: datetime.timedelta = HOUR,
        now: datetime.datetime | None = None,
    ) -> list[RecentSignal]:
        """Tracked signals newer than ``max_age``, newest first.

        With no symbol, returns signals across every symbol.
        """
        cutoff = (now or _now()) - max_age
        if symbol is not None:
            pool = list(self._recent.get(symbol, []))
        else:
            pool = [entry for history in self._recent.values() for entry in history]
        return sorted(
            (entry for entry in pool if entry.time >= cutoff),
            key=lambda entry: entry.time,
            reverse=True,
        )

    def clear(self, symbol: str | None = None) -> None:
        """Forget one symbol's history, or everything."""
        if symbol is None:
            self._recent.clear()
        else:
            self._recent.pop(symbol, None)

    def cleanup(
        self,
        max_age: datetime.timedelta = DEFAULT_RETENTION,
        now: datetime.datetime | None = None,
    ) -> int:
        """Drop expired entries, then the oldest beyond the history cap.

        Returns:
            The number of entries removed.
        """
        cutoff = (now or _now()) - max_age
        removed = 0
        for symbol in list(self._recent):
            kept = [entry for entry in self._recent[symbol] if entry.time >= cutoff]
            removed += len(self._recent[symbol]) - len(kept)
            if kept:
                self._recent[symbol] = kept
            else:
                del self._recent[symbol]

        everything = sorted(
            (entry for history in self._recent.values() for entry in history),
            key=lambda entry: entry.time,
        )
        overflow = len(everything) - MAX_HISTORY_SIZE
        if overflow > 0:
            for entry in everything[:overflow]:
                history = self._recent[entry.symbol]
                history.remove(entry)
                if not history:
                    del self._recent[entry.symbol]
            removed += overflow

        if removed:
            logger.debug("Deduplicator cleanup removed %d entries", removed)
        return removed

    def stats(self, now: datetime.datetime | None = None) -> DedupStats:
        """Counts and the age span of tracked signals."""
        entries = [entry for history in self._recent.values() for entry in history]
        if not entries:
            zero = datetime.timedelta(0)
            return DedupStats(0, 0, zero, zero)
        current = now or _now()
        times = [entry.time for entry in entries]
        return DedupStats(
            total_signals=len(entries),
            unique_symbols=len(self._recent),
            oldest_signal_age=current - min(times),
            newest_signal_age=current - max(times),
        )


def check_deduplication(
    signal: Signal,
    thresholds: SignalThresholds,
    deduplicator: SignalDeduplicator,
) -> DedupResult:
    """Check a candidate signal: duplicate key, then cooldown, then hourly cap."""
    if deduplicator.is_duplicate(signal.symbol, signal.strategy_id, signal.bar_time_key):
        return DedupResult(False, SkipReason.DUPLICATE, "Duplicate bar time key")

    if deduplicator.is_in_cooldown(
        signal.symbol, signal.strategy_id, signal.payload.time, thresholds
    ):
        return DedupResult(
            False,
            SkipReason.COOLDOWN,
            f"In cooldown ({thresholds.cooldown_minutes:g} minutes)",
        )

    if deduplicator.exceeds_max_signals_per_hour(signal.symbol, signal.payload.time, thresholds):
        return DedupResult(
            False,
            SkipReason.HOURLY_CAP,
            f"Max signals per hour exceeded ({thresholds.max_signals_per_symbol_per_hour})",
        )

    return DedupResult(True)
