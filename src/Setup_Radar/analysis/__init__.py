"""Detection, confidence, and threshold engine.

Re-exports the public functions so consumers can import directly:
    from Setup_Radar.analysis import DETECTORS, get_adaptive_thresholds
"""

from Setup_Radar.analysis.adaptive_thresholds import (
    categorize_strategy,
    format_adaptive_thresholds,
    get_adaptive_thresholds,
    get_time_window,
    get_weekend_thresholds,
    is_weekend,
    passes_adaptive_thresholds,
)
from Setup_Radar.analysis.confidence import (
    apply_confidence_to_score,
    calculate_data_confidence,
    calculate_weekend_confidence,
    extract_data_availability,
    format_confidence_result,
    get_confidence_level,
    should_filter_low_confidence,
)
from Setup_Radar.analysis.detector import (
    Detector,
    ScoreFactor,
    calculate_composite_score,
    get_asset_class,
    is_spx_or_ndx,
    validate_detector,
)
from Setup_Radar.analysis.detectors import DETECTORS, get_detector, get_expected_frequency
from Setup_Radar.analysis.regime_matrix import (
    classify_volatility_regime,
    enabled_detector_types,
    should_run_detector,
)
from Setup_Radar.analysis.scanner_config import (
    DEFAULT_SCANNER_CONFIG,
    OPTIMIZED_SCANNER_CONFIG,
    SCANNER_PRESETS,
    ScannerConfig,
    get_strategy_tier,
    get_thresholds_for_signal,
    is_strategy_allowed_in_regime,
    passes_universal_filters,
)

__all__ = [
    # Adaptive thresholds
    "categorize_strategy",
    "format_adaptive_thresholds",
    "get_adaptive_thresholds",
    "get_time_window",
    "get_weekend_thresholds",
    "is_weekend",
    "passes_adaptive_thresholds",
    # Confidence
    "apply_confidence_to_score",
    "calculate_data_confidence",
    "calculate_weekend_confidence",
    "extract_data_availability",
    "format_confidence_result",
    "get_confidence_level",
    "should_filter_low_confidence",
    # Detectors
    "DETECTORS",
    "Detector",
    "ScoreFactor",
    "calculate_composite_score",
    "get_asset_class",
    "get_detector",
    "get_expected_frequency",
    "is_spx_or_ndx",
    "validate_detector",
    # Regime matrix
    "classify_volatility_regime",
    "enabled_detector_types",
    "should_run_detector",
    # Scanner configuration
    "DEFAULT_SCANNER_CONFIG",
    "OPTIMIZED_SCANNER_CONFIG",
    "SCANNER_PRESETS",
    "ScannerConfig",
    "get_strategy_tier",
    "get_thresholds_for_signal",
    "is_strategy_allowed_in_regime",
    "passes_universal_filters",
]
