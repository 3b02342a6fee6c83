"""Shared test fixtures for the Setup Radar test suite.

Provides realistic feature snapshots, strategy definitions, and an in-memory
signal store so tests don't need to inline large construction blocks.
"""

import datetime
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from Setup_Radar.data import Database, Repository
from Setup_Radar.models import (
    BarTimeframe,
    FeatureSnapshot,
    FlowAggressiveness,
    FlowBias,
    FlowFeatures,
    MarketRegime,
    OpportunityType,
    PatternFeatures,
    PriceFeatures,
    SessionFeatures,
    StrategyDefinition,
    TimeframeFeatures,
    VolatilityRegime,
    VolumeFeatures,
    VwapFeatures,
)

# Wednesday 10:15 ET, inside the mid-morning window
SCAN_TIME = datetime.datetime(2025, 1, 15, 15, 15, tzinfo=datetime.UTC)


def _mtf(price: float, atr: float) -> TimeframeFeatures:
    return TimeframeFeatures(price=PriceFeatures(current=price), atr=atr)


@pytest.fixture()
def spy_features() -> FeatureSnapshot:
    """SPY clearing its swing high on 2.6x volume; every field but flow populated."""
    return FeatureSnapshot(
        symbol="SPY",
        time=SCAN_TIME,
        price=PriceFeatures(
            current=589.6,
            open=586.1,
            high=589.9,
            low=585.8,
            prev=589.1,
            prev_close=585.2,
            spread_pct=0.0001,
        ),
        volume=VolumeFeatures(current=2_600_000, avg=1_000_000, relative_to_avg=2.6),
        vwap=VwapFeatures(value=587.49, distance_pct=0.36),
        ema={"9": 589.0, "21": 588.0},
        rsi={"14": 64.0},
        flow=None,
        session=SessionFeatures(minutes_since_open=45, is_regular_hours=True),
        mtf={
            "1m": _mtf(589.6, 0.5),
            "5m": _mtf(589.6, 1.2),
            "15m": _mtf(589.6, 2.0),
            "60m": _mtf(589.6, 3.5),
        },
        pattern=PatternFeatures(
            orb_high=588.0,
            orb_low=585.5,
            swing_high=589.0,
            swing_low=584.0,
            vix_level=VolatilityRegime.MEDIUM,
            vix_value=18.0,
            market_regime=MarketRegime.TRENDING,
            trend_strength=45.0,
        ),
    )


@pytest.fixture()
def spy_features_with_flow(spy_features: FeatureSnapshot) -> FeatureSnapshot:
    """The SPY breakout snapshot with bullish options flow attached."""
    return spy_features.model_copy(
        update={
            "flow": FlowFeatures(
                flow_score=82.0,
                flow_bias=FlowBias.BULLISH,
                sweep_count=6,
                buy_pressure=74.0,
                large_trade_pct=45.0,
                aggressiveness=FlowAggressiveness.AGGRESSIVE,
            )
        }
    )


@pytest.fixture()
def sparse_features() -> FeatureSnapshot:
    """A snapshot with only a symbol and bar time."""
    return FeatureSnapshot(symbol="AAPL", time=SCAN_TIME)


@pytest.fixture()
def breakout_strategy() -> StrategyDefinition:
    """An enabled 5m bullish breakout strategy owned by trader-1."""
    return StrategyDefinition(
        id="strat-breakout",
        slug="spy-breakout",
        name="SPY breakout",
        owner="trader-1",
        detector_type=OpportunityType.BREAKOUT_BULLISH,
        timeframe=BarTimeframe.FIVE_MIN,
        cooldown_minutes=5,
    )


@pytest_asyncio.fixture()
async def db() -> AsyncGenerator[Database]:
    """Connected in-memory Database, closed after the test."""
    database = Database(db_path=":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture()
async def repo(db: Database) -> Repository:
    """Repository over the in-memory database."""
    return Repository(db)
