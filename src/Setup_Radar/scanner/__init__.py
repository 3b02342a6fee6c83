"""Scan orchestration: gating, deduplication, and signal emission."""

from Setup_Radar.scanner.dedup import DedupResult, SignalDeduplicator, check_deduplication
from Setup_Radar.scanner.orchestrator import (
    STYLE_PROFILES,
    CancelFlag,
    ScanOrchestrator,
    ScanReport,
    SignalStore,
    build_trade_levels,
    make_bar_time_key,
    resolve_atr,
)

__all__ = [
    "STYLE_PROFILES",
    "CancelFlag",
    "DedupResult",
    "ScanOrchestrator",
    "ScanReport",
    "SignalDeduplicator",
    "SignalStore",
    "build_trade_levels",
    "check_deduplication",
    "make_bar_time_key",
    "resolve_atr",
]
