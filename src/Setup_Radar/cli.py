"""CLI entry point for Setup Radar, the strategy signal scanner.

Provides the ``setup-radar`` command with subcommands for running a scan over
precomputed feature snapshots, managing strategy definitions, and inspecting
adaptive thresholds and data confidence.

This is the ONLY module where console output for commands is produced
directly. All other modules use ``logging``. Async internals are bridged to
typer's synchronous interface via ``asyncio.run()``.
"""

from __future__ import annotations

import asyncio
import datetime
import signal
from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from Setup_Radar.config import (
    SETTINGS_PATH,
    ScannerSettings,
    load_scanner_settings,
    load_strategy_definitions,
)
from Setup_Radar.logging_config import configure_logging
from Setup_Radar.models import (
    FeatureSnapshot,
    MarketRegime,
    OpportunityType,
    OptionsChainData,
    StrategyDefinition,
    VolatilityRegime,
)
from Setup_Radar.scanner import CancelFlag, ScanOrchestrator, ScanReport
from Setup_Radar.utils.exceptions import ConfigurationError, SignalStoreError

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(name="setup-radar", help="Strategy opportunity scanner")

# Rich console for formatted output
console = Console()

DEFAULT_OWNER: str = "local"

_SNAPSHOTS = TypeAdapter(list[FeatureSnapshot])
_OPTIONS = TypeAdapter(dict[str, OptionsChainData])

# ---------------------------------------------------------------------------
# Scan cancellation via Ctrl+C
# ---------------------------------------------------------------------------

_scan_cancel = CancelFlag()


def _handle_sigint(signum: int, frame: object) -> None:
    """Handle SIGINT (Ctrl+C) by setting the cancellation flag.

    Does not call ``sys.exit()``; the orchestrator checks the flag between
    symbols and returns a partial report.
    """
    _scan_cancel.set()
    console.print("\n[yellow]Scan cancellation requested. Finishing current symbol...[/yellow]")


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def _load_settings(path: Path) -> ScannerSettings:
    try:
        return load_scanner_settings(path)
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def _load_snapshots(path: Path) -> dict[str, FeatureSnapshot]:
    """Read a JSON array of feature snapshots keyed by their symbol."""
    try:
        snapshots = _SNAPSHOTS.validate_json(path.read_bytes())
    except OSError as exc:
        console.print(f"[red]Cannot read {path}: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        console.print(f"[red]Invalid feature snapshots in {path}:[/red]\n{exc}")
        raise typer.Exit(code=1) from exc
    return {snapshot.symbol: snapshot for snapshot in snapshots}


def _load_options(path: Path | None) -> dict[str, OptionsChainData]:
    if path is None:
        return {}
    try:
        chains = _OPTIONS.validate_json(path.read_bytes())
    except (OSError, ValidationError) as exc:
        console.print(f"[red]Invalid options data in {path}: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    return {symbol.upper(): chain for symbol, chain in chains.items()}


# ---------------------------------------------------------------------------
# scan command
# ---------------------------------------------------------------------------


@app.command()
def scan(
    features: Annotated[Path, typer.Argument(help="JSON array of feature snapshots")],
    owner: Annotated[str, typer.Option(help="Owner whose strategies to run")] = DEFAULT_OWNER,
    db: Annotated[str | None, typer.Option(help="Signal store path")] = None,
    settings: Annotated[Path, typer.Option(help="Scanner settings JSON")] = SETTINGS_PATH,
    options: Annotated[
        Path | None, typer.Option(help="JSON object of options-chain data by symbol")
    ] = None,
    show_skips: Annotated[bool, typer.Option(help="List every skipped pair")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Suppress info logging")] = False,
) -> None:
    """Scan feature snapshots against enabled strategies and store new signals."""
    configure_logging(verbose=verbose, quiet=quiet)

    scanner_settings = _load_settings(settings)
    snapshots = _load_snapshots(features)
    chains = _load_options(options)

    # Install SIGINT handler for clean abort
    _scan_cancel.clear()
    original_handler = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, _handle_sigint)
    try:
        report = asyncio.run(
            _scan_async(
                owner=owner,
                db_path=db or scanner_settings.db_path,
                settings=scanner_settings,
                snapshots=snapshots,
                chains=chains,
            )
        )
    finally:
        signal.signal(signal.SIGINT, original_handler)

    from Setup_Radar.reporting import render_scan_report

    render_scan_report(report, show_skips=show_skips)


async def _scan_async(
    *,
    owner: str,
    db_path: str,
    settings: ScannerSettings,
    snapshots: dict[str, FeatureSnapshot],
    chains: dict[str, OptionsChainData],
) -> ScanReport:
    """Open the store and run one orchestrator pass."""
    from Setup_Radar.data import Database, Repository

    try:
        config = settings.scanner_config()
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    async with Database(db_path) as database:
        orchestrator = ScanOrchestrator(
            Repository(database),
            config=config,
            min_confidence=settings.min_confidence,
            reject_regime_disabled=settings.reject_regime_disabled,
            use_adaptive_thresholds=settings.use_adaptive_thresholds,
        )
        try:
            return await orchestrator.scan(owner, snapshots, chains, cancel=_scan_cancel)
        except SignalStoreError as exc:
            console.print(f"[red]Scan aborted: {exc}[/red]")
            raise typer.Exit(code=1) from exc


# ---------------------------------------------------------------------------
# strategy commands
# ---------------------------------------------------------------------------


@app.command()
def strategies(
    owner: Annotated[str, typer.Option(help="Owner whose strategies to list")] = DEFAULT_OWNER,
    db: Annotated[str | None, typer.Option(help="Signal store path")] = None,
) -> None:
    """List enabled strategy definitions (owner's plus core library)."""
    db_path = db or _load_settings(SETTINGS_PATH).db_path
    asyncio.run(_strategies_async(owner=owner, db_path=db_path))


async def _strategies_async(*, owner: str, db_path: str) -> None:
    from Setup_Radar.data import Database, Repository
    from Setup_Radar.reporting import render_strategies

    async with Database(db_path) as database:
        definitions = await Repository(database).list_enabled_strategies(owner)
    render_strategies(definitions)


@app.command("load-strategies")
def load_strategies(
    path: Annotated[Path, typer.Argument(help="JSON array of strategy definitions")],
    db: Annotated[str | None, typer.Option(help="Signal store path")] = None,
) -> None:
    """Validate and upsert strategy definitions into the store."""
    try:
        definitions = load_strategy_definitions(path)
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    db_path = db or _load_settings(SETTINGS_PATH).db_path
    asyncio.run(_load_strategies_async(definitions=definitions, db_path=db_path))
    console.print(f"[green]Loaded {len(definitions)} strategy definition(s)[/green]")


async def _load_strategies_async(
    *, definitions: list[StrategyDefinition], db_path: str
) -> None:
    from Setup_Radar.data import Database, Repository

    async with Database(db_path) as database:
        repo = Repository(database)
        for definition in definitions:
            await repo.upsert_strategy(definition)


@app.command()
def signals(
    owner: Annotated[str, typer.Option(help="Owner whose signals to list")] = DEFAULT_OWNER,
    db: Annotated[str | None, typer.Option(help="Signal store path")] = None,
    limit: Annotated[int, typer.Option(help="Maximum rows to show")] = 20,
) -> None:
    """Show the most recent stored signals."""
    db_path = db or _load_settings(SETTINGS_PATH).db_path
    asyncio.run(_signals_async(owner=owner, db_path=db_path, limit=limit))


async def _signals_async(*, owner: str, db_path: str, limit: int) -> None:
    from Setup_Radar.data import Database, Repository

    async with Database(db_path) as database:
        stored = await Repository(database).list_signals(owner, limit=limit)

    if not stored:
        console.print("[yellow]No signals found.[/yellow]")
        return

    table = Table(title=f"Recent signals for {owner}")
    table.add_column("Time", width=20)
    table.add_column("Symbol", style="bold", width=8)
    table.add_column("Strategy", width=24)
    table.add_column("Conf", justify="right", width=5)
    table.add_column("Status", width=10)
    table.add_column("Bar", style="dim")
    for stored_signal in stored:
        table.add_row(
            stored_signal.payload.time.strftime("%Y-%m-%d %H:%M:%S"),
            stored_signal.symbol,
            stored_signal.strategy_id,
            str(stored_signal.confidence),
            str(stored_signal.status),
            stored_signal.bar_time_key,
        )
    console.print(table)


# ---------------------------------------------------------------------------
# diagnostics
# ---------------------------------------------------------------------------


@app.command()
def thresholds(
    opportunity_type: Annotated[
        OpportunityType, typer.Option("--type", help="Opportunity type to evaluate")
    ],
    at: Annotated[
        str | None, typer.Option(help="ISO timestamp (naive = UTC); defaults to now")
    ] = None,
    vix: Annotated[VolatilityRegime, typer.Option(help="VIX regime")] = VolatilityRegime.MEDIUM,
    regime: Annotated[MarketRegime | None, typer.Option(help="Market regime")] = None,
    minutes_since_open: Annotated[
        int | None, typer.Option(help="Also check the optimized-profile suitability")
    ] = None,
    trend_strength: Annotated[float, typer.Option(help="Trend strength for suitability")] = 0.0,
) -> None:
    """Show the adaptive thresholds for a strategy at a moment."""
    from Setup_Radar.analysis import get_adaptive_thresholds, is_strategy_allowed_in_regime
    from Setup_Radar.reporting import render_thresholds

    if at is None:
        timestamp = datetime.datetime.now(datetime.UTC)
    else:
        try:
            timestamp = datetime.datetime.fromisoformat(at)
        except ValueError as exc:
            console.print(f"[red]Invalid timestamp '{at}'[/red]")
            raise typer.Exit(code=1) from exc

    result = get_adaptive_thresholds(timestamp, vix, regime, opportunity_type)
    allowed = None
    if minutes_since_open is not None:
        allowed = is_strategy_allowed_in_regime(
            opportunity_type, vix, minutes_since_open, trend_strength
        )
    render_thresholds(result, regime_allowed=allowed)


@app.command()
def confidence(
    features: Annotated[Path, typer.Argument(help="JSON array of feature snapshots")],
    weekend: Annotated[bool, typer.Option(help="Use the weekend weight table")] = False,
) -> None:
    """Show the data-completeness confidence report per symbol."""
    from Setup_Radar.analysis import calculate_data_confidence, calculate_weekend_confidence
    from Setup_Radar.reporting import render_confidence

    for symbol, snapshot in _load_snapshots(features).items():
        if weekend:
            result = calculate_weekend_confidence(snapshot)
        else:
            result = calculate_data_confidence(snapshot)
        render_confidence(symbol, result)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
