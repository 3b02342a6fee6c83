"""Strategy definition models.

A strategy definition binds a detector type to the scope, timeframe,
cooldown, and confidence thresholds a scan applies to it. Definitions are
read-only to the engine; malformed ones fail on load.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from Setup_Radar.models.enums import (
    BarTimeframe,
    OpportunityType,
    TradeHorizon,
    UnderlyingScope,
)
from Setup_Radar.utils.exceptions import StrategyConfigError

DEFAULT_MIN_CONFIDENCE: int = 50
DEFAULT_READY_CONFIDENCE: int = 80
DEFAULT_COOLDOWN_MINUTES: int = 5

_HORIZON_BY_TIMEFRAME: dict[BarTimeframe, TradeHorizon] = {
    BarTimeframe.ONE_MIN: TradeHorizon.SCALP,
    BarTimeframe.FIVE_MIN: TradeHorizon.SCALP,
    BarTimeframe.FIFTEEN_MIN: TradeHorizon.DAY,
    BarTimeframe.SIXTY_MIN: TradeHorizon.DAY,
    BarTimeframe.ONE_DAY: TradeHorizon.SWING,
}


def infer_horizon(timeframe: BarTimeframe) -> TradeHorizon:
    """Map a bar timeframe to the trade horizon it implies.

    LEAP is never inferred; it must be set explicitly on the definition.
    """
    return _HORIZON_BY_TIMEFRAME[timeframe]


class ConfidenceBand(BaseModel):
    """Partial min/ready override for one trade horizon."""

    model_config = ConfigDict(frozen=True)

    min: int | None = Field(default=None, ge=0, le=100)
    ready: int | None = Field(default=None, ge=0, le=100)


class ConfidenceThresholds(BaseModel):
    """Gating ("min") and actionable ("ready") confidence thresholds.

    Per-horizon bands override the top-level values field by field.
    """

    model_config = ConfigDict(frozen=True)

    min: int = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0, le=100)
    ready: int = Field(default=DEFAULT_READY_CONFIDENCE, ge=0, le=100)
    scalp: ConfidenceBand | None = None
    day: ConfidenceBand | None = None
    swing: ConfidenceBand | None = None
    leap: ConfidenceBand | None = None

    def resolve(self, horizon: TradeHorizon) -> tuple[int, int]:
        """Return the effective (min, ready) pair for a trade horizon."""
        band: ConfidenceBand | None = getattr(self, horizon.value.lower())
        min_value = self.min
        ready_value = self.ready
        if band is not None:
            if band.min is not None:
                min_value = band.min
            if band.ready is not None:
                ready_value = band.ready
        return min_value, ready_value


class StrategyDefinition(BaseModel):
    """A configured strategy: which detector to run, where, and how often.

    Attributes:
        id: Opaque identifier.
        slug: Human-friendly unique name.
        owner: Owning user, or None for core-library definitions.
        detector_type: The opportunity type whose detector is evaluated.
        underlying_scope: Which asset classes the strategy applies to.
        timeframe: Bar timeframe; drives horizon inference and the bar-time-key.
        horizon: Explicit trade horizon; inferred from timeframe when None.
        cooldown_minutes: Minimum snapshot-time gap between signals.
        once_per_session: Emit at most one signal per market day.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    name: str = ""
    owner: str | None = None
    detector_type: OpportunityType
    underlying_scope: UnderlyingScope = UnderlyingScope.ANY
    timeframe: BarTimeframe = BarTimeframe.FIVE_MIN
    horizon: TradeHorizon | None = None
    cooldown_minutes: float = Field(default=DEFAULT_COOLDOWN_MINUTES, ge=0)
    once_per_session: bool = False
    enabled: bool = True
    is_core_library: bool = False
    confidence_thresholds: ConfidenceThresholds = ConfidenceThresholds()

    @model_validator(mode="after")
    def check_ready_not_below_min(self) -> "StrategyDefinition":
        """Reject threshold blocks where any horizon resolves to ready < min."""
        for horizon in TradeHorizon:
            min_value, ready_value = self.confidence_thresholds.resolve(horizon)
            if ready_value < min_value:
                msg = (
                    f"Strategy '{self.slug}': ready threshold {ready_value} is below "
                    f"min threshold {min_value} for {horizon} horizon"
                )
                raise StrategyConfigError(msg, strategy=self.slug)
        return self

    @property
    def effective_horizon(self) -> TradeHorizon:
        """Explicit horizon if set, otherwise inferred from the timeframe."""
        if self.horizon is not None:
            return self.horizon
        return infer_horizon(self.timeframe)
