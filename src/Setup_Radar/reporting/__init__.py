"""Reporting module: rich terminal output for scans and diagnostics.

Re-exports all public functions so consumers can import directly:
    from Setup_Radar.reporting import render_scan_report
"""

from Setup_Radar.reporting.terminal import (
    render_confidence,
    render_scan_report,
    render_strategies,
    render_thresholds,
)

__all__ = [
    "render_confidence",
    "render_scan_report",
    "render_strategies",
    "render_thresholds",
]
