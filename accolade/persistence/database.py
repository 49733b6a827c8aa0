"""SQLite database layer for the recognition ledgers.

Manages the SQLite connection, schema creation, and transactions. Uses
aiosqlite for async access with WAL mode. The connection runs in
autocommit mode and is shared by every store, so one per-connection lock
guards it: mutations go through write_transaction() and ledger reads
through read_lock(), which keeps readers out of a writer's open
transaction.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from accolade.schemas.rating import MAX_SCORE, MIN_SCORE, NUM_CRITERIA

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"

# Rating criterion columns c1..c13
CRITERION_COLUMNS: tuple[str, ...] = tuple(f"c{i}" for i in range(1, NUM_CRITERIA + 1))

_CRITERION_DDL = ",\n    ".join(
    f"{col} INTEGER CHECK ({col} IS NULL OR {col} BETWEEN {MIN_SCORE} AND {MAX_SCORE})"
    for col in CRITERION_COLUMNS
)

# SQL schema for the recognition database
_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS users (
    user_id     TEXT PRIMARY KEY,
    role        TEXT NOT NULL DEFAULT 'regular'
                CHECK (role IN ('admin', 'supervisor', 'regular')),
    full_name   TEXT NOT NULL DEFAULT '',
    department  TEXT NOT NULL DEFAULT '',
    position    TEXT NOT NULL DEFAULT '',
    avatar_url  TEXT
);

CREATE TABLE IF NOT EXISTS periods (
    period_id    TEXT PRIMARY KEY,
    year         INTEGER NOT NULL,
    quarter      INTEGER NOT NULL CHECK (quarter BETWEEN 1 AND 4),
    start_date   TEXT NOT NULL,
    end_date     TEXT NOT NULL,
    is_active    INTEGER NOT NULL DEFAULT 0,
    is_completed INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS candidates (
    period_id   TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    position    INTEGER NOT NULL,
    created_at  TEXT NOT NULL,
    PRIMARY KEY (period_id, user_id)
);

CREATE TABLE IF NOT EXISTS votes (
    period_id    TEXT NOT NULL,
    voter_id     TEXT NOT NULL,
    candidate_id TEXT NOT NULL,
    created_at   TEXT NOT NULL,
    PRIMARY KEY (period_id, voter_id, candidate_id),
    FOREIGN KEY (period_id, candidate_id)
        REFERENCES candidates(period_id, user_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS finalists (
    period_id    TEXT NOT NULL,
    candidate_id TEXT NOT NULL,
    position     INTEGER NOT NULL,
    created_at   TEXT NOT NULL,
    PRIMARY KEY (period_id, candidate_id),
    FOREIGN KEY (period_id, candidate_id)
        REFERENCES candidates(period_id, user_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS vote_completion (
    period_id    TEXT NOT NULL,
    voter_id     TEXT NOT NULL,
    completed_at TEXT NOT NULL,
    PRIMARY KEY (period_id, voter_id)
);

CREATE TABLE IF NOT EXISTS ratings (
    period_id    TEXT NOT NULL,
    rater_id     TEXT NOT NULL,
    candidate_id TEXT NOT NULL,
    {_CRITERION_DDL},
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,
    PRIMARY KEY (period_id, rater_id, candidate_id)
);

CREATE TABLE IF NOT EXISTS winners (
    period_id       TEXT PRIMARY KEY,
    winner_id       TEXT NOT NULL,
    total_score     INTEGER NOT NULL DEFAULT 0,
    num_raters      INTEGER NOT NULL DEFAULT 0,
    tied_json       TEXT NOT NULL DEFAULT '[]',
    recorded_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_votes_candidate ON votes(period_id, candidate_id);
CREATE INDEX IF NOT EXISTS idx_ratings_candidate ON ratings(period_id, candidate_id);
CREATE INDEX IF NOT EXISTS idx_candidates_position ON candidates(period_id, position);
"""

_locks: weakref.WeakKeyDictionary[aiosqlite.Connection, asyncio.Lock] = (
    weakref.WeakKeyDictionary()
)


def _lock_for(db: aiosqlite.Connection) -> asyncio.Lock:
    return _locks.setdefault(db, asyncio.Lock())


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Initialize the database connection and create tables if needed.

    Creates parent directories if they don't exist, enables WAL mode
    and foreign keys, then runs the schema DDL.

    Args:
        db_path: Path to the SQLite database file. Supports ~ expansion.
            ``:memory:`` opens a private in-memory database.

    Returns:
        An open aiosqlite connection in autocommit mode with sqlite3.Row rows.
    """
    if db_path == IN_MEMORY:
        target = IN_MEMORY
    else:
        resolved = Path(db_path).expanduser()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        target = str(resolved)

    db = await aiosqlite.connect(target, isolation_level=None)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.execute("PRAGMA busy_timeout=5000")
    await db.executescript(_SCHEMA)

    logger.info("Recognition database initialized at %s", target)
    return db


async def close_db(db: aiosqlite.Connection) -> None:
    """Close the database connection."""
    _locks.pop(db, None)
    await db.close()


@asynccontextmanager
async def read_lock(db: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Hold the connection lock for a read.

    The connection is shared, so a read issued while another coroutine's
    transaction is open would see that transaction's uncommitted rows.
    Never call this inside write_transaction(); the lock is not reentrant.
    """
    async with _lock_for(db):
        yield db


@asynccontextmanager
async def write_transaction(db: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block of writes as one IMMEDIATE transaction.

    Writers and readers sharing a connection are serialized by one
    per-connection lock, so a transaction never interleaves with another
    one and nobody outside it observes its partial state. The block
    commits on normal exit and rolls back on any exception.
    """
    async with _lock_for(db):
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        await db.execute("COMMIT")
