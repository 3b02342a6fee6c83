"""Rich-based terminal output for scan reports, strategies, and diagnostics.

Uses ``rich.console.Console`` for all output. Color scheme:
green = long / emitted, red = short / blocked, yellow = caution.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from Setup_Radar.analysis.confidence import get_confidence_level
from Setup_Radar.models.enums import ConfidenceLevel, SkipReason
from Setup_Radar.models.scoring import AdaptiveThresholdResult, ConfidenceResult
from Setup_Radar.models.strategy import StrategyDefinition
from Setup_Radar.scanner.orchestrator import ScanReport

logger = logging.getLogger(__name__)

# Shared console instance for terminal output
console = Console()

# --- Color scheme ---
COLOR_GOOD: str = "green"
COLOR_BAD: str = "red"
COLOR_CAUTION: str = "yellow"
COLOR_HEADER: str = "bold cyan"
COLOR_MUTED: str = "dim"

_LEVEL_COLORS: dict[ConfidenceLevel, str] = {
    ConfidenceLevel.HIGH: COLOR_GOOD,
    ConfidenceLevel.MEDIUM: COLOR_CAUTION,
    ConfidenceLevel.LOW: COLOR_CAUTION,
    ConfidenceLevel.VERY_LOW: COLOR_BAD,
}


def _fmt(value: float | None, spec: str = ".2f") -> str:
    return format(value, spec) if value is not None else "---"


def render_scan_report(report: ScanReport, *, show_skips: bool = False) -> None:
    """Render emitted signals, a skip summary, and optionally every skip."""
    if report.signals:
        table = Table(title="Signals", show_lines=False)
        table.add_column("Symbol", style="bold", width=8)
        table.add_column("Strategy", width=24)
        table.add_column("Conf", justify="right", width=5)
        table.add_column("Ready", width=6)
        table.add_column("Entry", justify="right", width=9)
        table.add_column("Stop", justify="right", width=9)
        table.add_column("T2", justify="right", width=9)
        table.add_column("R:R", justify="right", width=5)
        table.add_column("Window", width=16)
        table.add_column("Bar", style=COLOR_MUTED)

        for signal in report.signals:
            payload = signal.payload
            ready = "[green]yes[/green]" if payload.confidence_ready else "[yellow]no[/yellow]"
            table.add_row(
                signal.symbol,
                signal.strategy_id,
                str(signal.confidence),
                ready,
                _fmt(payload.entry),
                _fmt(payload.stop),
                _fmt(payload.target_t2),
                _fmt(payload.risk_reward, "g"),
                str(payload.time_window or "---"),
                signal.bar_time_key,
            )
        console.print(table)
    else:
        console.print("[yellow]No signals emitted.[/yellow]")

    counts = report.skip_counts()
    if counts:
        summary = Table(title="Skips by reason")
        summary.add_column("Reason")
        summary.add_column("Count", justify="right")
        for reason, count in counts.most_common():
            summary.add_row(str(reason), str(count))
        console.print(summary)

    if show_skips and report.skips:
        detail = Table(title="Skipped pairs", show_lines=False)
        detail.add_column("Symbol", style="bold", width=8)
        detail.add_column("Strategy", width=24)
        detail.add_column("Reason", width=20)
        detail.add_column("Detail", style=COLOR_MUTED)
        for skip in report.skips:
            reason_style = COLOR_MUTED if skip.reason == SkipReason.NOT_DETECTED else COLOR_CAUTION
            detail.add_row(
                skip.symbol,
                skip.strategy_id or "*",
                f"[{reason_style}]{skip.reason}[/{reason_style}]",
                skip.detail,
            )
        console.print(detail)

    status = "[yellow]cancelled[/yellow]" if report.cancelled else "[green]complete[/green]"
    console.print(
        f"\nScan {status}: {len(report.signals)} signals, "
        f"{len(report.skips)} skips, {report.symbols_scanned} symbols"
    )


def render_strategies(definitions: list[StrategyDefinition]) -> None:
    """Render strategy definitions as a table."""
    if not definitions:
        console.print("[yellow]No enabled strategies.[/yellow]")
        return

    table = Table(title="Strategies")
    table.add_column("Slug", style="bold")
    table.add_column("Detector")
    table.add_column("Scope")
    table.add_column("TF", width=4)
    table.add_column("Horizon", width=7)
    table.add_column("Min/Ready", justify="right")
    table.add_column("Cooldown", justify="right")
    table.add_column("Owner", style=COLOR_MUTED)

    for definition in definitions:
        horizon = definition.effective_horizon
        min_value, ready_value = definition.confidence_thresholds.resolve(horizon)
        cooldown = f"{definition.cooldown_minutes:g}m"
        if definition.once_per_session:
            cooldown += " / session"
        table.add_row(
            definition.slug,
            str(definition.detector_type),
            str(definition.underlying_scope),
            str(definition.timeframe),
            str(horizon),
            f"{min_value}/{ready_value}",
            cooldown,
            definition.owner or "core",
        )
    console.print(table)


def render_thresholds(
    result: AdaptiveThresholdResult,
    *,
    regime_allowed: tuple[bool, str | None] | None = None,
) -> None:
    """Render adaptive thresholds with their contribution breakdown."""
    enabled = (
        f"[{COLOR_GOOD}]enabled[/{COLOR_GOOD}]"
        if result.strategy_enabled
        else f"[{COLOR_BAD}]disabled[/{COLOR_BAD}]"
    )
    header = (
        f"{result.time_window_label} | VIX {result.vix_level} | "
        f"Regime {result.market_regime or 'unknown'} | {result.strategy_category} ({enabled})"
    )
    console.print(Panel(header, title="Adaptive Thresholds", style=COLOR_HEADER))

    b = result.breakdown
    table = Table(show_header=True)
    table.add_column("Threshold")
    table.add_column("Final", justify="right", style="bold")
    table.add_column("Time", justify="right")
    table.add_column("VIX", justify="right")
    table.add_column("Regime", justify="right")
    table.add_row(
        "Min base",
        str(result.min_base),
        f"{b.base_from_time:g}",
        f"{b.base_from_vix:+g}",
        (
            f"{b.base_from_regime:g} (+{b.regime_disabled_penalty})"
            if b.base_from_regime is not None
            else "---"
        ),
    )
    table.add_row(
        "Min style",
        str(result.min_style),
        f"{b.style_from_time:g}",
        f"{b.style_from_vix:+g}",
        "---",
    )
    table.add_row(
        "Min R:R",
        f"{result.min_risk_reward:g}",
        f"{b.rr_from_time:g}",
        f"{b.rr_from_vix:+g}",
        f"{b.rr_from_regime:g}" if b.rr_from_regime is not None else "---",
    )
    table.add_row(
        "Size",
        f"{result.size_multiplier:g}x",
        f"{b.size_from_time:g}",
        f"x{b.size_from_vix:g}",
        "---",
    )
    console.print(table)

    console.print(f"[{COLOR_MUTED}]{result.time_window_rationale}[/{COLOR_MUTED}]")
    if result.strategy_notes:
        console.print(f"[{COLOR_MUTED}]{result.strategy_notes}[/{COLOR_MUTED}]")
    for warning in result.warnings:
        console.print(f"[{COLOR_CAUTION}]! {warning}[/{COLOR_CAUTION}]")

    if regime_allowed is not None:
        allowed, reason = regime_allowed
        if allowed:
            console.print(f"[{COLOR_GOOD}]Optimized profile: allowed[/{COLOR_GOOD}]")
        else:
            console.print(f"[{COLOR_BAD}]Optimized profile: {reason}[/{COLOR_BAD}]")


def render_confidence(symbol: str, result: ConfidenceResult) -> None:
    """Render one symbol's data-confidence report."""
    level = get_confidence_level(result.adjusted_confidence)
    color = _LEVEL_COLORS[level]
    console.print(
        f"\n[bold]{symbol}[/bold]  completeness {result.data_completeness_score}%  "
        f"confidence [{color}]{result.adjusted_confidence:.0f}% ({level})[/{color}]"
    )

    table = Table(show_header=True)
    table.add_column("Category")
    table.add_column("Available", justify="right")
    table.add_column("Percent", justify="right")
    for category, scores in result.category_scores.items():
        table.add_row(category, f"{scores.available}/{scores.total}", f"{scores.percent}%")
    console.print(table)

    if result.missing_critical:
        console.print(f"[{COLOR_BAD}]Missing critical: {', '.join(result.missing_critical)}[/]")
    if result.missing_important:
        console.print(
            f"[{COLOR_CAUTION}]Missing important: {', '.join(result.missing_important)}[/]"
        )
    for warning in result.warnings:
        console.print(f"[{COLOR_CAUTION}]! {warning}[/{COLOR_CAUTION}]")
