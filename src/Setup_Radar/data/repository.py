"""Signal store backed by the SQLite Database.

Implements the lookups and inserts the scan orchestrator needs. All queries
are parameterized. Timestamps are stored as UTC ISO-8601 text with fixed
microsecond precision so lexical order matches chronological order.
Driver errors are re-raised as SignalStoreError; a unique-index violation
on insert becomes DuplicateSignalError.
"""

import datetime
import logging
import sqlite3

from Setup_Radar.data.database import Database
from Setup_Radar.models.enums import SignalStatus
from Setup_Radar.models.signal import Signal, SignalPayload
from Setup_Radar.models.strategy import StrategyDefinition
from Setup_Radar.utils.exceptions import DuplicateSignalError, SignalStoreError

logger = logging.getLogger(__name__)

_SIGNAL_COLUMNS = (
    "id, created_at, owner, strategy_id, symbol, confidence, status, bar_time_key, payload"
)


def _to_utc_text(value: datetime.datetime) -> str:
    return value.astimezone(datetime.UTC).isoformat(timespec="microseconds")


class Repository:
    """Query interface for strategy definitions and emitted signals.

    Satisfies the scan orchestrator's ``SignalStore`` protocol.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Strategy definitions
    # ------------------------------------------------------------------

    async def upsert_strategy(self, definition: StrategyDefinition) -> None:
        """Insert or replace a strategy definition by id."""
        conn = self._db.connection
        try:
            await conn.execute(
                "INSERT OR REPLACE INTO strategy_definitions "
                "(id, slug, owner, is_core_library, enabled, definition, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    definition.id,
                    definition.slug,
                    definition.owner,
                    int(definition.is_core_library),
                    int(definition.enabled),
                    definition.model_dump_json(),
                    _to_utc_text(datetime.datetime.now(datetime.UTC)),
                ),
            )
            await conn.commit()
        except sqlite3.Error as exc:
            msg = f"Failed to save strategy '{definition.slug}': {exc}"
            raise SignalStoreError(msg, operation="upsert_strategy") from exc

    async def list_enabled_strategies(self, owner: str) -> list[StrategyDefinition]:
        """Return the owner's enabled definitions plus enabled core-library ones.

        Core-library definitions come first, then by slug.
        """
        conn = self._db.connection
        try:
            cursor = await conn.execute(
                "SELECT definition FROM strategy_definitions "
                "WHERE enabled = 1 AND (owner = ? OR is_core_library = 1) "
                "ORDER BY is_core_library DESC, slug",
                (owner,),
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to list strategies for '{owner}': {exc}"
            raise SignalStoreError(msg, operation="list_enabled_strategies") from exc
        return [StrategyDefinition.model_validate_json(row[0]) for row in rows]

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    async def insert_signal(self, signal: Signal) -> None:
        """Persist a signal.

        Raises:
            DuplicateSignalError: A signal already exists for this
                (owner, strategy, symbol, bar-time-key).
            SignalStoreError: Any other driver failure.
        """
        conn = self._db.connection
        try:
            await conn.execute(
                "INSERT INTO signals "
                "(id, created_at, owner, strategy_id, symbol, confidence, status, "
                "bar_time_key, signal_time, payload) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    signal.id,
                    _to_utc_text(signal.created_at),
                    signal.owner,
                    signal.strategy_id,
                    signal.symbol,
                    signal.confidence,
                    signal.status.value,
                    signal.bar_time_key,
                    _to_utc_text(signal.payload.time),
                    signal.payload.model_dump_json(),
                ),
            )
            await conn.commit()
        except sqlite3.IntegrityError as exc:
            await conn.rollback()
            msg = (
                f"Signal already emitted for {signal.symbol} / {signal.strategy_id} "
                f"at {signal.bar_time_key}"
            )
            raise DuplicateSignalError(msg, bar_time_key=signal.bar_time_key) from exc
        except sqlite3.Error as exc:
            msg = f"Failed to insert signal for {signal.symbol}: {exc}"
            raise SignalStoreError(msg, operation="insert_signal") from exc

    async def get_latest_signal(
        self, owner: str, strategy_id: str, symbol: str
    ) -> Signal | None:
        """Return the most recent signal by snapshot time, or None."""
        conn = self._db.connection
        try:
            cursor = await conn.execute(
                f"SELECT {_SIGNAL_COLUMNS} FROM signals "  # noqa: S608
                "WHERE owner = ? AND strategy_id = ? AND symbol = ? "
                "ORDER BY signal_time DESC LIMIT 1",
                (owner, strategy_id, symbol),
            )
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            msg = f"Failed to look up latest signal for {symbol}: {exc}"
            raise SignalStoreError(msg, operation="get_latest_signal") from exc
        if row is None:
            return None
        return _row_to_signal(row)

    async def count_signals_since(
        self, owner: str, symbol: str, since: datetime.datetime
    ) -> int:
        """Count the owner's signals for a symbol with snapshot time >= since."""
        conn = self._db.connection
        try:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM signals "
                "WHERE owner = ? AND symbol = ? AND signal_time >= ?",
                (owner, symbol, _to_utc_text(since)),
            )
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            msg = f"Failed to count signals for {symbol}: {exc}"
            raise SignalStoreError(msg, operation="count_signals_since") from exc
        return int(row[0]) if row is not None else 0

    async def list_signals(self, owner: str, *, limit: int = 50) -> list[Signal]:
        """Return the owner's most recent signals, newest first."""
        conn = self._db.connection
        try:
            cursor = await conn.execute(
                f"SELECT {_SIGNAL_COLUMNS} FROM signals "  # noqa: S608
                "WHERE owner = ? ORDER BY signal_time DESC LIMIT ?",
                (owner, limit),
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to list signals for '{owner}': {exc}"
            raise SignalStoreError(msg, operation="list_signals") from exc
        return [_row_to_signal(row) for row in rows]


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _row_to_signal(row: sqlite3.Row) -> Signal:
    """Convert a signals row tuple to a Signal model."""
    return Signal(
        id=row[0],
        created_at=datetime.datetime.fromisoformat(row[1]),
        owner=row[2],
        strategy_id=row[3],
        symbol=row[4],
        confidence=row[5],
        status=SignalStatus(row[6]),
        bar_time_key=row[7],
        payload=SignalPayload.model_validate_json(row[8]),
    )
