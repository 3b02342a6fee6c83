"""Signal models: the records a scan emits and persists."""

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

from Setup_Radar.models.enums import (
    SignalStatus,
    SkipReason,
    TimeOfDayWindow,
    TradeHorizon,
    VolatilityRegime,
)


class SignalPayload(BaseModel):
    """Resolved details carried on an emitted signal.

    ``time`` is the feature snapshot's bar time, which cooldown and
    once-per-session checks compare against.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime.datetime
    price: float | None
    confidence: int
    confidence_ready: bool
    base_score: int | None = None
    style_score: int | None = None
    recommended_style: TradeHorizon | None = None
    entry: float | None = None
    stop: float | None = None
    target_t1: float | None = None
    target_t2: float | None = None
    target_t3: float | None = None
    risk_reward: float | None = None
    size_multiplier: float | None = None
    time_window: TimeOfDayWindow | None = None
    volatility_regime: VolatilityRegime | None = None
    missing_critical: list[str] = []


class Signal(BaseModel):
    """A qualifying trade signal for one (owner, strategy, symbol, bar).

    The engine never mutates a signal after creation; downstream
    consumers own ``status``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC)
    )
    symbol: str
    strategy_id: str
    owner: str
    confidence: int
    payload: SignalPayload
    status: SignalStatus = SignalStatus.ACTIVE
    bar_time_key: str


class ScanSkip(BaseModel):
    """Why a (symbol, strategy) pair produced no signal."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    strategy_id: str | None
    reason: SkipReason
    detail: str = ""
