"""Volatility-regime strategy gating.

Maps a discretized VIX regime to which detector types may run. Deny-lists
always win over allow-lists. At the extreme regime only flow-confirmed
momentum detectors may run, and only when the snapshot carries a flow bias.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from Setup_Radar.models.enums import FlowBias, OpportunityType, VolatilityRegime

logger = logging.getLogger(__name__)

# --- VIX regime boundaries (lower bound inclusive for the higher bucket) ---
VIX_MEDIUM_FLOOR: float = 15.0
VIX_HIGH_FLOOR: float = 25.0
VIX_EXTREME_FLOOR: float = 35.0

FLOW_MOMENTUM_DETECTORS: frozenset[OpportunityType] = frozenset(
    {
        OpportunityType.SWEEP_MOMENTUM_LONG,
        OpportunityType.SWEEP_MOMENTUM_SHORT,
        OpportunityType.INSTITUTIONAL_FLOW_BULLISH,
        OpportunityType.INSTITUTIONAL_FLOW_BEARISH,
    }
)


@dataclass(frozen=True)
class RegimeGate:
    """Which detectors a volatility regime allows.

    ``enabled`` of None means every type not on the deny-list may run.
    """

    enabled: frozenset[OpportunityType] | None
    disabled: frozenset[OpportunityType]
    rationale: str


_BREAKOUT_AND_TREND = frozenset(
    {
        OpportunityType.BREAKOUT_BULLISH,
        OpportunityType.BREAKOUT_BEARISH,
        OpportunityType.KCU_ORB_BREAKOUT,
        OpportunityType.OPENING_DRIVE_BULLISH,
        OpportunityType.OPENING_DRIVE_BEARISH,
        OpportunityType.TREND_CONTINUATION_LONG,
        OpportunityType.TREND_CONTINUATION_SHORT,
    }
)

REGIME_STRATEGY_MATRIX: Mapping[VolatilityRegime, RegimeGate] = MappingProxyType(
    {
        VolatilityRegime.LOW: RegimeGate(
            enabled=None,
            disabled=frozenset(
                {
                    OpportunityType.POWER_HOUR_REVERSAL_BULLISH,
                    OpportunityType.POWER_HOUR_REVERSAL_BEARISH,
                    OpportunityType.GAMMA_FLIP_BULLISH,
                    OpportunityType.GAMMA_FLIP_BEARISH,
                }
            ),
            rationale=(
                "Compressed ranges favor trend and breakout setups; "
                "late-day reversals and gamma flips lack follow-through"
            ),
        ),
        VolatilityRegime.MEDIUM: RegimeGate(
            enabled=None,
            disabled=frozenset(),
            rationale="Normal volatility: every detector is eligible",
        ),
        VolatilityRegime.HIGH: RegimeGate(
            enabled=frozenset(
                {
                    OpportunityType.MEAN_REVERSION_LONG,
                    OpportunityType.MEAN_REVERSION_SHORT,
                    OpportunityType.INDEX_MEAN_REVERSION_LONG,
                    OpportunityType.INDEX_MEAN_REVERSION_SHORT,
                    OpportunityType.GAMMA_SQUEEZE_BULLISH,
                    OpportunityType.GAMMA_SQUEEZE_BEARISH,
                    OpportunityType.GAMMA_FLIP_BULLISH,
                    OpportunityType.GAMMA_FLIP_BEARISH,
                    OpportunityType.POWER_HOUR_REVERSAL_BULLISH,
                    OpportunityType.POWER_HOUR_REVERSAL_BEARISH,
                }
                | FLOW_MOMENTUM_DETECTORS
            ),
            disabled=_BREAKOUT_AND_TREND,
            rationale=(
                "Elevated volatility produces false breakouts; "
                "favor reversion and dealer-positioning setups"
            ),
        ),
        VolatilityRegime.EXTREME: RegimeGate(
            enabled=FLOW_MOMENTUM_DETECTORS,
            disabled=_BREAKOUT_AND_TREND | frozenset({OpportunityType.EOD_PIN_SETUP}),
            rationale="Crisis volatility: only flow-confirmed momentum is tradable",
        ),
    }
)


def classify_volatility_regime(vix: float) -> VolatilityRegime:
    """Bucket a raw VIX value; boundary values belong to the higher bucket."""
    if vix < VIX_MEDIUM_FLOOR:
        return VolatilityRegime.LOW
    if vix < VIX_HIGH_FLOOR:
        return VolatilityRegime.MEDIUM
    if vix < VIX_EXTREME_FLOOR:
        return VolatilityRegime.HIGH
    return VolatilityRegime.EXTREME


def should_run_detector(
    opportunity_type: OpportunityType,
    regime: VolatilityRegime,
    flow_bias: FlowBias | None = None,
) -> bool:
    """Return True if the regime allows this detector to run.

    Args:
        opportunity_type: Detector type to check.
        regime: Current volatility regime.
        flow_bias: Snapshot flow bias; required at the extreme regime.

    Returns:
        Whether the detector may be evaluated.
    """
    gate = REGIME_STRATEGY_MATRIX[regime]

    if opportunity_type in gate.disabled:
        return False
    if gate.enabled is not None and opportunity_type not in gate.enabled:
        return False
    if regime == VolatilityRegime.EXTREME and flow_bias is None:
        logger.debug("%s blocked at extreme regime: no flow bias", opportunity_type)
        return False
    return True


def enabled_detector_types(
    regime: VolatilityRegime,
    flow_bias: FlowBias | None = None,
) -> list[OpportunityType]:
    """All opportunity types the regime lets run, in declaration order."""
    return [
        opportunity_type
        for opportunity_type in OpportunityType
        if should_run_detector(opportunity_type, regime, flow_bias)
    ]
