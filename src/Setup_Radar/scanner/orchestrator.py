"""Scan orchestrator: turns feature snapshots into persisted signals.

For each symbol the universal pre-filters run once. Then every enabled
strategy definition walks a fixed sequence of gates: scope, detector
lookup, regime, detection, confidence, base threshold, style threshold,
risk/reward, prior-signal checks, hourly cap, and finally an idempotent
insert. Every rejection is
recorded as a ``ScanSkip`` with a machine-readable reason; none of them is
an exception.

The scan is one sequential async pass. The only await points are store
calls. Duplicate suppression across concurrent scans relies on the store's
unique (owner, strategy, symbol, bar-time-key) constraint, never on
in-process state.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol

from Setup_Radar.analysis.adaptive_thresholds import (
    MARKET_TZ,
    get_adaptive_thresholds,
    is_weekend,
)
from Setup_Radar.analysis.confidence import (
    DEFAULT_MIN_CONFIDENCE,
    apply_confidence_to_score,
    calculate_data_confidence,
    calculate_weekend_confidence,
    round_half_up,
    should_filter_low_confidence,
)
from Setup_Radar.analysis.detector import Detector, get_asset_class, is_spx_or_ndx
from Setup_Radar.analysis.detectors import DETECTORS
from Setup_Radar.analysis.regime_matrix import classify_volatility_regime, should_run_detector
from Setup_Radar.analysis.scanner_config import (
    DEFAULT_SCANNER_CONFIG,
    ScannerConfig,
    get_thresholds_for_signal,
    passes_universal_filters,
)
from Setup_Radar.analysis.style_scoring import calculate_style_scores
from Setup_Radar.models.enums import (
    AssetClass,
    BarTimeframe,
    Direction,
    OpportunityType,
    SkipReason,
    TradeHorizon,
    UnderlyingScope,
    VolatilityRegime,
)
from Setup_Radar.models.features import FeatureSnapshot, OptionsChainData
from Setup_Radar.models.scoring import ConfidenceResult
from Setup_Radar.models.signal import ScanSkip, Signal, SignalPayload
from Setup_Radar.models.strategy import StrategyDefinition
from Setup_Radar.scanner.dedup import SignalDeduplicator, check_deduplication
from Setup_Radar.utils.exceptions import DuplicateSignalError

logger = logging.getLogger(__name__)

FALLBACK_ATR: float = 2.0
HOURLY_WINDOW = datetime.timedelta(hours=1)

_BAR_SECONDS: dict[BarTimeframe, int] = {
    BarTimeframe.ONE_MIN: 60,
    BarTimeframe.FIVE_MIN: 300,
    BarTimeframe.FIFTEEN_MIN: 900,
    BarTimeframe.SIXTY_MIN: 3600,
    BarTimeframe.ONE_DAY: 86400,
}


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class SignalStore(Protocol):
    """Persistence the orchestrator reads from and writes to."""

    async def list_enabled_strategies(self, owner: str) -> list[StrategyDefinition]: ...

    async def get_latest_signal(
        self, owner: str, strategy_id: str, symbol: str
    ) -> Signal | None: ...

    async def count_signals_since(
        self, owner: str, symbol: str, since: datetime.datetime
    ) -> int: ...

    async def insert_signal(self, signal: Signal) -> None: ...


class CancelFlag:
    """Cancellation flag checked between symbols."""

    def __init__(self) -> None:
        self._cancelled: bool = False

    @property
    def is_set(self) -> bool:
        """Return True if cancellation has been requested."""
        return self._cancelled

    def set(self) -> None:
        """Request cancellation."""
        self._cancelled = True

    def clear(self) -> None:
        """Clear the cancellation flag."""
        self._cancelled = False


@dataclass
class ScanReport:
    """Everything one scan invocation produced."""

    signals: list[Signal] = field(default_factory=list)
    skips: list[ScanSkip] = field(default_factory=list)
    symbols_scanned: int = 0
    cancelled: bool = False

    def skip_counts(self) -> Counter[SkipReason]:
        """Number of skips per reason."""
        return Counter(skip.reason for skip in self.skips)


# ---------------------------------------------------------------------------
# Trade levels
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StyleProfile:
    """Stop distance and targets in ATR multiples for a trade horizon."""

    stop_atr: float
    targets_atr: tuple[float, float, float]


STYLE_PROFILES: Mapping[TradeHorizon, StyleProfile] = MappingProxyType(
    {
        TradeHorizon.SCALP: StyleProfile(0.75, (1.0, 1.5, 2.0)),
        TradeHorizon.DAY: StyleProfile(1.0, (1.5, 2.5, 3.5)),
        TradeHorizon.SWING: StyleProfile(1.5, (2.0, 3.0, 4.0)),
        TradeHorizon.LEAP: StyleProfile(1.5, (2.0, 3.0, 4.0)),
    }
)


@dataclass(frozen=True)
class TradeLevels:
    entry: float
    stop: float
    targets: tuple[float, float, float]
    risk_reward: float


def _valid_atr(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def resolve_atr(features: FeatureSnapshot, timeframe: BarTimeframe) -> float:
    """ATR of the strategy timeframe, then the 5m mirror, then a fixed fallback."""
    for key in (timeframe.value, BarTimeframe.FIVE_MIN.value):
        atr = features.atr_for(key)
        if atr is not None and _valid_atr(atr):
            return atr
    return FALLBACK_ATR


def build_trade_levels(
    entry: float, direction: Direction, atr: float, horizon: TradeHorizon
) -> TradeLevels:
    """Stop and three targets from the style profile; R:R is measured to T2."""
    profile = STYLE_PROFILES[horizon]
    sign = 1.0 if direction == Direction.LONG else -1.0
    stop = entry - sign * atr * profile.stop_atr
    targets = tuple(entry + sign * atr * multiple for multiple in profile.targets_atr)
    risk = abs(entry - stop)
    reward = abs(targets[1] - entry)
    risk_reward = round(reward / risk, 2) if risk > 0 else 0.0
    return TradeLevels(
        entry=round(entry, 2),
        stop=round(stop, 2),
        targets=(round(targets[0], 2), round(targets[1], 2), round(targets[2], 2)),
        risk_reward=risk_reward,
    )


# ---------------------------------------------------------------------------
# Keys and scope
# ---------------------------------------------------------------------------


def make_bar_time_key(time: datetime.datetime, timeframe: BarTimeframe) -> str:
    """Deterministic idempotency key: UTC bar time floored to the timeframe.

    A 5m bar at 15:17:42 UTC keys as ``2025-01-15T15:15:00Z|5m``.
    """
    bucket = _BAR_SECONDS[timeframe]
    epoch = int(time.timestamp())
    floored = datetime.datetime.fromtimestamp(epoch - epoch % bucket, tz=datetime.UTC)
    return f"{floored.strftime('%Y-%m-%dT%H:%M:%SZ')}|{timeframe.value}"


def in_scope(scope: UnderlyingScope, symbol: str, asset_class: AssetClass) -> bool:
    """Whether a strategy's underlying scope admits the symbol."""
    if scope == UnderlyingScope.ANY:
        return True
    if scope == UnderlyingScope.SPX_ONLY:
        return is_spx_or_ndx(symbol)
    if scope == UnderlyingScope.INDEXES:
        return asset_class == AssetClass.INDEX
    if scope == UnderlyingScope.ETFS:
        return asset_class == AssetClass.EQUITY_ETF
    return asset_class == AssetClass.STOCK


def volatility_regime_for(features: FeatureSnapshot) -> VolatilityRegime:
    """Raw VIX value when usable, then the VIX label, then medium."""
    vix = features.pattern.vix_value
    if vix is not None and math.isfinite(vix):
        return classify_volatility_regime(vix)
    if features.pattern.vix_level is not None:
        return features.pattern.vix_level
    return VolatilityRegime.MEDIUM


def _uses_weekend_weights(features: FeatureSnapshot) -> bool:
    if is_weekend(features.time):
        return True
    return features.session is not None and features.session.is_regular_hours is False


def _market_date(time: datetime.datetime) -> datetime.date:
    return time.astimezone(MARKET_TZ).date()


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ScanOrchestrator:
    """Evaluates every (symbol, strategy) pair and persists qualifying signals.

    Args:
        store: Strategy and signal persistence.
        config: Static threshold layers and universal pre-filters.
        min_confidence: Adjusted data confidence below which a pair is skipped.
        reject_regime_disabled: Skip strategies the market regime disables
            instead of only raising their threshold.
        use_adaptive_thresholds: Compose time/VIX/regime thresholds into
            the required minimum.
        detectors: Registry of detectors by opportunity type.
        deduplicator: Optional in-process guard checked before insert. It
            applies the resolved preset cooldown and hourly cap; the store
            path applies the strategy definition's own cooldown.
    """

    def __init__(
        self,
        store: SignalStore,
        *,
        config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        reject_regime_disabled: bool = True,
        use_adaptive_thresholds: bool = True,
        detectors: Mapping[OpportunityType, Detector] = DETECTORS,
        deduplicator: SignalDeduplicator | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._min_confidence = min_confidence
        self._reject_regime_disabled = reject_regime_disabled
        self._use_adaptive = use_adaptive_thresholds
        self._detectors = detectors
        self._deduplicator = deduplicator

    async def scan(
        self,
        owner: str,
        features_by_symbol: Mapping[str, FeatureSnapshot],
        options_by_symbol: Mapping[str, OptionsChainData] | None = None,
        cancel: CancelFlag | None = None,
    ) -> ScanReport:
        """Run one scan pass for an owner.

        Raises:
            SignalStoreError: If the owner's strategy definitions cannot be loaded.
        """
        report = ScanReport()
        strategies = [
            definition
            for definition in await self._store.list_enabled_strategies(owner)
            if definition.enabled
        ]
        options_by_symbol = options_by_symbol or {}
        logger.info(
            "Scanning %d symbols against %d strategies for %s",
            len(features_by_symbol),
            len(strategies),
            owner,
        )

        for symbol, features in features_by_symbol.items():
            if cancel is not None and cancel.is_set:
                report.cancelled = True
                logger.info("Scan cancelled after %d symbols", report.symbols_scanned)
                break
            await self._scan_symbol(
                owner, symbol, features, options_by_symbol.get(symbol), strategies, report
            )
            report.symbols_scanned += 1

        logger.info(
            "Scan complete: %d signals, %d skips across %d symbols",
            len(report.signals),
            len(report.skips),
            report.symbols_scanned,
        )
        return report

    async def _scan_symbol(
        self,
        owner: str,
        symbol: str,
        features: FeatureSnapshot,
        options: OptionsChainData | None,
        strategies: list[StrategyDefinition],
        report: ScanReport,
    ) -> None:
        passed, reason = passes_universal_filters(symbol, features, self._config.filters)
        if not passed:
            self._skip(report, symbol, None, SkipReason.FILTERED, reason or "")
            return

        if _uses_weekend_weights(features):
            confidence = calculate_weekend_confidence(features)
        else:
            confidence = calculate_data_confidence(features)

        for definition in strategies:
            signal = await self._evaluate(
                owner, symbol, features, options, definition, confidence, report
            )
            if signal is not None:
                report.signals.append(signal)

    async def _evaluate(
        self,
        owner: str,
        symbol: str,
        features: FeatureSnapshot,
        options: OptionsChainData | None,
        definition: StrategyDefinition,
        confidence: ConfidenceResult,
        report: ScanReport,
    ) -> Signal | None:
        strategy_id = definition.id
        asset_class = get_asset_class(symbol)

        def skip(reason: SkipReason, detail: str = "") -> None:
            self._skip(report, symbol, strategy_id, reason, detail)

        # --- Scope and detector ---
        if not in_scope(definition.underlying_scope, symbol, asset_class):
            skip(SkipReason.OUT_OF_SCOPE, f"{asset_class} not in {definition.underlying_scope}")
            return None

        detector = self._detectors.get(definition.detector_type)
        if detector is None:
            skip(SkipReason.UNKNOWN_DETECTOR, str(definition.detector_type))
            return None
        if not detector.applies_to(asset_class):
            skip(SkipReason.ASSET_CLASS_MISMATCH, f"{detector.type} skips {asset_class}")
            return None
        if detector.requires_options_data and options is None:
            skip(SkipReason.OPTIONS_DATA_MISSING)
            return None

        # --- Regime gate ---
        regime = volatility_regime_for(features)
        flow_bias = features.flow.flow_bias if features.flow is not None else None
        if not should_run_detector(detector.type, regime, flow_bias):
            skip(SkipReason.REGIME_BLOCKED, f"{detector.type} disabled at {regime} volatility")
            return None

        # --- Detection ---
        try:
            detection = detector.detect_with_score(features, options)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Detector %s failed for %s: %s", detector.type, symbol, exc)
            skip(SkipReason.NOT_DETECTED, f"detector error: {exc}")
            return None
        if not detection.detected:
            skip(SkipReason.NOT_DETECTED)
            return None

        # --- Confidence ---
        filtered, reason = should_filter_low_confidence(confidence, self._min_confidence)
        if filtered:
            skip(SkipReason.LOW_CONFIDENCE, reason or "")
            return None

        # --- Thresholds ---
        adjustment = apply_confidence_to_score(detection.base_score, confidence)
        score = adjustment.adjusted_score
        horizon = definition.effective_horizon
        min_confidence, ready_confidence = definition.confidence_thresholds.resolve(horizon)
        static = get_thresholds_for_signal(self._config, asset_class, detector.type)

        required = max(float(min_confidence), static.min_base)
        min_style = static.min_style
        min_risk_reward = static.min_risk_reward
        size_multiplier: float | None = None
        time_window = None
        if self._use_adaptive:
            adaptive = get_adaptive_thresholds(
                features.time,
                regime,
                features.pattern.market_regime,
                detector.type,
            )
            if not adaptive.strategy_enabled and self._reject_regime_disabled:
                skip(
                    SkipReason.STRATEGY_DISABLED,
                    f"{detector.type} disabled in {adaptive.market_regime} market",
                )
                return None
            required = max(required, float(adaptive.min_base))
            min_style = max(min_style, float(adaptive.min_style))
            min_risk_reward = max(min_risk_reward, adaptive.min_risk_reward)
            size_multiplier = adaptive.size_multiplier
            time_window = adaptive.time_window

        if score < required:
            skip(SkipReason.BELOW_THRESHOLD, f"score {score} < required {required:g}")
            return None

        style = calculate_style_scores(detection.base_score, features)
        if style.recommended_score < min_style:
            skip(
                SkipReason.STYLE_SCORE,
                f"{style.recommended_style} style score {style.recommended_score:.1f} "
                f"< required {min_style:g}",
            )
            return None

        # --- Risk/reward ---
        price = features.price.current
        if price is None or not math.isfinite(price) or price <= 0:
            skip(SkipReason.RISK_REWARD, "no usable price for trade levels")
            return None
        atr = resolve_atr(features, definition.timeframe)
        levels = build_trade_levels(price, detector.direction, atr, horizon)
        if levels.risk_reward < min_risk_reward:
            skip(
                SkipReason.RISK_REWARD,
                f"R:R {levels.risk_reward:g} < required {min_risk_reward:g}",
            )
            return None

        # --- Prior signal ---
        try:
            prior = await self._store.get_latest_signal(owner, strategy_id, symbol)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prior-signal lookup failed for %s/%s: %s", symbol, strategy_id, exc)
            skip(SkipReason.LOOKUP_FAILED, str(exc))
            return None
        # The definition's cooldown governs stored signals. The resolved preset
        # cooldown only feeds the optional in-process deduplicator.
        if prior is not None:
            elapsed = features.time - prior.payload.time
            if elapsed < datetime.timedelta(minutes=definition.cooldown_minutes):
                skip(
                    SkipReason.COOLDOWN,
                    f"last signal {elapsed.total_seconds() / 60:.1f} min ago, "
                    f"cooldown {definition.cooldown_minutes:g} min",
                )
                return None
            if definition.once_per_session and _market_date(prior.payload.time) == _market_date(
                features.time
            ):
                skip(SkipReason.ONCE_PER_SESSION, str(_market_date(features.time)))
                return None

        # --- Hourly cap ---
        try:
            recent = await self._store.count_signals_since(
                owner, symbol, features.time - HOURLY_WINDOW
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Hourly count failed for %s: %s", symbol, exc)
            skip(SkipReason.LOOKUP_FAILED, str(exc))
            return None
        if recent >= static.max_signals_per_symbol_per_hour:
            skip(
                SkipReason.HOURLY_CAP,
                f"{recent} signals in the last hour, max {static.max_signals_per_symbol_per_hour}",
            )
            return None

        # --- Emit ---
        signal = Signal(
            symbol=symbol,
            strategy_id=strategy_id,
            owner=owner,
            confidence=score,
            bar_time_key=make_bar_time_key(features.time, definition.timeframe),
            payload=SignalPayload(
                time=features.time,
                price=price,
                confidence=score,
                confidence_ready=score >= ready_confidence,
                base_score=round_half_up(detection.base_score),
                style_score=round_half_up(style.recommended_score),
                recommended_style=style.recommended_style,
                entry=levels.entry,
                stop=levels.stop,
                target_t1=levels.targets[0],
                target_t2=levels.targets[1],
                target_t3=levels.targets[2],
                risk_reward=levels.risk_reward,
                size_multiplier=size_multiplier,
                time_window=time_window,
                volatility_regime=regime,
                missing_critical=list(confidence.missing_critical),
            ),
        )

        if self._deduplicator is not None:
            verdict = check_deduplication(signal, static, self._deduplicator)
            if not verdict.passed and verdict.reason is not None:
                skip(verdict.reason, verdict.detail)
                return None

        try:
            await self._store.insert_signal(signal)
        except DuplicateSignalError:
            skip(SkipReason.DUPLICATE, signal.bar_time_key)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to store signal for %s/%s: %s", symbol, strategy_id, exc)
            skip(SkipReason.STORE_ERROR, str(exc))
            return None

        if self._deduplicator is not None:
            self._deduplicator.record_signal(signal)
        logger.info(
            "Signal %s %s confidence=%d ready=%s key=%s",
            symbol,
            definition.slug,
            score,
            signal.payload.confidence_ready,
            signal.bar_time_key,
        )
        return signal

    @staticmethod
    def _skip(
        report: ScanReport,
        symbol: str,
        strategy_id: str | None,
        reason: SkipReason,
        detail: str = "",
    ) -> None:
        logger.debug("Skip %s/%s: %s %s", symbol, strategy_id or "*", reason, detail)
        report.skips.append(
            ScanSkip(symbol=symbol, strategy_id=strategy_id, reason=reason, detail=detail)
        )
