"""Scanner settings with JSON file persistence.

Settings pick a built-in threshold preset and layer optional partial
overrides on top. A missing or unreadable settings file falls back to the
defaults with a warning; a file that parses but fails validation is a
configuration error and raises.
"""

import json
import logging
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from Setup_Radar.analysis.scanner_config import (
    SCANNER_PRESETS,
    ScannerConfig,
    ScannerConfigOverride,
)
from Setup_Radar.models.strategy import StrategyDefinition
from Setup_Radar.utils.exceptions import ConfigurationError, StrategyConfigError

logger = logging.getLogger(__name__)

SETTINGS_PATH: Final[Path] = Path("data/scanner_settings.json")
DEFAULT_DB_PATH: Final[str] = "data/signals.db"


class ScannerSettings(BaseModel):
    """Runtime knobs for a scan invocation.

    Attributes:
        config_preset: Built-in threshold preset ("default" or "optimized").
        min_confidence: Adjusted data confidence below which a signal is dropped.
        reject_regime_disabled: Hard-reject strategies the market regime disables.
        use_adaptive_thresholds: Compose adaptive thresholds into the minimum.
        db_path: SQLite path for the signal store.
        threshold_overrides: Partial config merged over the preset.
    """

    model_config = ConfigDict(frozen=True)

    config_preset: str = "default"
    min_confidence: float = Field(default=40.0, ge=0, le=100)
    reject_regime_disabled: bool = True
    use_adaptive_thresholds: bool = True
    db_path: str = DEFAULT_DB_PATH
    threshold_overrides: ScannerConfigOverride = ScannerConfigOverride()

    def scanner_config(self) -> ScannerConfig:
        """Resolve the preset plus overrides into a ScannerConfig."""
        try:
            preset = SCANNER_PRESETS[self.config_preset]
        except KeyError:
            msg = (
                f"Unknown scanner preset '{self.config_preset}'. "
                f"Choose from: {', '.join(sorted(SCANNER_PRESETS))}"
            )
            raise ConfigurationError(msg) from None
        return preset.merged_with(self.threshold_overrides)


def load_scanner_settings(path: Path = SETTINGS_PATH) -> ScannerSettings:
    """Load settings from a JSON file, falling back to defaults."""
    if not path.exists():
        logger.debug("No settings file at %s, using defaults", path)
        return ScannerSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Failed to read settings file %s, using defaults", path)
        return ScannerSettings()
    try:
        return ScannerSettings.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid scanner settings in {path}: {exc}"
        raise ConfigurationError(msg) from exc


def save_scanner_settings(settings: ScannerSettings, path: Path = SETTINGS_PATH) -> None:
    """Persist settings to JSON, creating parent directories if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Settings saved to %s", path)


def load_strategy_definitions(path: Path) -> list[StrategyDefinition]:
    """Load and validate a JSON array of strategy definitions.

    Raises:
        StrategyConfigError: If the file is unreadable or any definition is invalid.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        msg = f"Cannot read strategy definitions from {path}: {exc}"
        raise StrategyConfigError(msg, strategy=str(path)) from exc

    if not isinstance(raw, list):
        msg = f"Strategy file {path} must contain a JSON array"
        raise StrategyConfigError(msg, strategy=str(path))

    definitions: list[StrategyDefinition] = []
    for index, entry in enumerate(raw):
        try:
            definitions.append(StrategyDefinition.model_validate(entry))
        except ValidationError as exc:
            slug = entry.get("slug", f"#{index}") if isinstance(entry, dict) else f"#{index}"
            msg = f"Invalid strategy definition {slug}: {exc}"
            raise StrategyConfigError(msg, strategy=str(slug)) from exc
    logger.info("Loaded %d strategy definitions from %s", len(definitions), path)
    return definitions
