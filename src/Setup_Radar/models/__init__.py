"""Public model exports for the Setup Radar engine."""

from Setup_Radar.models.enums import (
    AssetClass,
    BarTimeframe,
    ConfidenceLevel,
    Direction,
    FlowAggressiveness,
    FlowBias,
    MarketRegime,
    OpportunityType,
    SignalStatus,
    SkipReason,
    StrategyCategory,
    TimeOfDayWindow,
    TradeHorizon,
    UnderlyingScope,
    VolatilityRegime,
)
from Setup_Radar.models.features import (
    FeatureSnapshot,
    FlowFeatures,
    OptionsChainData,
    PatternFeatures,
    PriceFeatures,
    SessionFeatures,
    TimeframeFeatures,
    VolumeFeatures,
    VwapFeatures,
)
from Setup_Radar.models.scoring import (
    AdaptiveThresholdResult,
    CategoryCompleteness,
    ConfidencePenalties,
    ConfidenceResult,
    DetectionResult,
    ScoreAdjustment,
    StyleScores,
    ThresholdBreakdown,
)
from Setup_Radar.models.signal import ScanSkip, Signal, SignalPayload
from Setup_Radar.models.strategy import (
    ConfidenceBand,
    ConfidenceThresholds,
    StrategyDefinition,
    infer_horizon,
)

__all__ = [
    # Enums
    "AssetClass",
    "BarTimeframe",
    "ConfidenceLevel",
    "Direction",
    "FlowAggressiveness",
    "FlowBias",
    "MarketRegime",
    "OpportunityType",
    "SignalStatus",
    "SkipReason",
    "StrategyCategory",
    "TimeOfDayWindow",
    "TradeHorizon",
    "UnderlyingScope",
    "VolatilityRegime",
    # Features
    "FeatureSnapshot",
    "FlowFeatures",
    "OptionsChainData",
    "PatternFeatures",
    "PriceFeatures",
    "SessionFeatures",
    "TimeframeFeatures",
    "VolumeFeatures",
    "VwapFeatures",
    # Scoring
    "AdaptiveThresholdResult",
    "CategoryCompleteness",
    "ConfidencePenalties",
    "ConfidenceResult",
    "DetectionResult",
    "ScoreAdjustment",
    "StyleScores",
    "ThresholdBreakdown",
    # Signals
    "ScanSkip",
    "Signal",
    "SignalPayload",
    # Strategy
    "ConfidenceBand",
    "ConfidenceThresholds",
    "StrategyDefinition",
    "infer_horizon",
]
