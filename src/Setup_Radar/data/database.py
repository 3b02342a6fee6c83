"""SQLite connection lifecycle and schema migrations for the signal store.

One aiosqlite connection per Database. WAL mode plus a busy timeout lets
several scan processes share a file; the unique signal index, not process
locking, is what keeps emission idempotent.
"""

import datetime
import logging
from pathlib import Path
from types import TracebackType

import aiosqlite

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = Path(__file__).parent / "migrations"

BUSY_TIMEOUT_MS: int = 5000


def _migration_version(path: Path) -> int:
    """Parse the NNN prefix of a migration file name."""
    prefix = path.name.split("_", 1)[0]
    if not prefix.isdigit():
        msg = f"Migration file '{path.name}' must start with a numeric version"
        raise ValueError(msg)
    return int(prefix)


class Database:
    """Async SQLite database for strategy definitions and signals.

    Usage::

        async with Database("data/signals.db") as db:
            repo = Repository(db)
            ...
    """

    def __init__(self, db_path: str = "data/signals.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> aiosqlite.Connection:
        """Return the live connection or raise if not connected."""
        if self._connection is None:
            msg = "Database is not connected. Call connect() or use 'async with'."
            raise RuntimeError(msg)
        return self._connection

    async def connect(self) -> None:
        """Open the connection, set pragmas, and apply pending migrations."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA foreign_keys=ON")
        await self._connection.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        await self._apply_migrations()
        logger.info("Signal store opened: %s", self._db_path)

    async def close(self) -> None:
        """Close the connection if open."""
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("Signal store closed: %s", self._db_path)

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def schema_version(self) -> int:
        """Highest applied migration version, or 0 for an empty schema."""
        cursor = await self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        return row[0] if row is not None and row[0] is not None else 0

    async def _apply_migrations(self) -> None:
        """Run every NNN_*.sql file not yet recorded in schema_version.

        Safe to call repeatedly. A failed script leaves its version
        unrecorded so it is retried on the next connect.
        """
        conn = self.connection
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        await conn.commit()

        cursor = await conn.execute("SELECT version FROM schema_version")
        applied = {row[0] for row in await cursor.fetchall()}

        pending = sorted(
            (_migration_version(path), path) for path in _MIGRATIONS_DIR.glob("*.sql")
        )
        for version, path in pending:
            if version in applied:
                continue
            logger.info("Applying migration %03d: %s", version, path.name)
            await conn.executescript(path.read_text(encoding="utf-8"))
            await conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, datetime.datetime.now(datetime.UTC).isoformat()),
            )
            await conn.commit()
