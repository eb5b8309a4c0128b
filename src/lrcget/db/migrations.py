from __future__ import annotations

import logging
import sqlite3
from typing import Callable

from lrcget.core.errors import MigrationFailedError
from lrcget.core.utils import utc_now
from lrcget.db.schema import SCHEMA_V1_STATEMENTS, TIMESTAMPED_TABLES

logger = logging.getLogger(__name__)


def get_db_version(db: sqlite3.Connection) -> int:
    return int(db.execute("PRAGMA user_version").fetchone()[0])


def _run(db: sqlite3.Connection, *statements: str) -> None:
    for statement in statements:
        db.execute(statement)


# v1
def _migrate_v1(db: sqlite3.Connection) -> None:
    _run(db, *SCHEMA_V1_STATEMENTS)


# v2
def _migrate_v2(db: sqlite3.Connection) -> None:
    _run(
        db,
        "ALTER TABLE tracks ADD COLUMN txt_lyrics TEXT",
        "CREATE INDEX idx_tracks_title ON tracks(title)",
        "CREATE INDEX idx_albums_name ON albums(name)",
        "CREATE INDEX idx_artists_name ON artists(name)",
    )


# v3
def _migrate_v3(db: sqlite3.Connection) -> None:
    _run(db, "ALTER TABLE tracks ADD COLUMN instrumental BOOLEAN")


# v4
def _migrate_v4(db: sqlite3.Connection) -> None:
    _run(
        db,
        "ALTER TABLE tracks ADD COLUMN title_lower TEXT",
        "ALTER TABLE albums ADD COLUMN name_lower TEXT",
        "ALTER TABLE artists ADD COLUMN name_lower TEXT",
        "CREATE INDEX idx_tracks_title_lower ON tracks(title_lower)",
        "CREATE INDEX idx_albums_name_lower ON albums(name_lower)",
        "CREATE INDEX idx_artists_name_lower ON artists(name_lower)",
    )


# v5
def _migrate_v5(db: sqlite3.Connection) -> None:
    _run(
        db,
        "ALTER TABLE tracks ADD COLUMN track_number INTEGER",
        "ALTER TABLE albums ADD COLUMN album_artist_name TEXT",
        "ALTER TABLE albums ADD COLUMN album_artist_name_lower TEXT",
        "ALTER TABLE config_data ADD COLUMN theme_mode TEXT DEFAULT 'auto'",
        "ALTER TABLE config_data ADD COLUMN lrclib_instance TEXT DEFAULT 'https://lrclib.net'",
        "CREATE INDEX idx_albums_album_artist_name_lower ON albums(album_artist_name_lower)",
        "CREATE INDEX idx_tracks_track_number ON tracks(track_number)",
    )
    # album grouping changed: rows collected before now are unusable
    _clear_library(db)


# v6
def _migrate_v6(db: sqlite3.Connection) -> None:
    _run(
        db,
        "ALTER TABLE config_data ADD COLUMN skip_tracks_with_synced_lyrics BOOLEAN DEFAULT 0",
        "ALTER TABLE config_data ADD COLUMN skip_tracks_with_plain_lyrics BOOLEAN DEFAULT 0",
        "UPDATE config_data SET skip_tracks_with_synced_lyrics = skip_not_needed_tracks",
    )
    # SQLite can't drop skip_not_needed_tracks; it stays unused.


# v7
def _migrate_v7(db: sqlite3.Connection) -> None:
    _run(db, "ALTER TABLE config_data ADD COLUMN show_line_count BOOLEAN DEFAULT 1")


def _has_column(db: sqlite3.Connection, table: str, column: str) -> bool:
    return any(row[1] == column for row in db.execute(f"PRAGMA table_info({table})"))


def _add_column(db: sqlite3.Connection, table: str, column: str, decl: str) -> None:
    # catalogs written by the Go port already carry some of these columns
    if not _has_column(db, table, column):
        db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")


# v8
def _migrate_v8(db: sqlite3.Connection) -> None:
    _add_column(db, "tracks", "album_name", "TEXT")
    _add_column(db, "tracks", "artist_name", "TEXT")
    _add_column(db, "tracks", "album_artist_name", "TEXT")
    _add_column(db, "tracks", "image_path", "TEXT")
    _add_column(db, "albums", "artist_name", "TEXT")
    for table in TIMESTAMPED_TABLES:
        _add_column(db, table, "created_at", "DATETIME")
        _add_column(db, table, "updated_at", "DATETIME")

    # Denormalized track columns can't be backfilled from file tags here,
    # and old catalogs may hold duplicate artist/album rows that would break
    # the unique indexes below.
    _clear_library(db)
    _run(
        db,
        "DELETE FROM directories WHERE id NOT IN (SELECT MIN(id) FROM directories GROUP BY path)",
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_artists_name_unique ON artists(name)",
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_albums_name_artist_id ON albums(name, artist_id)",
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_directories_path ON directories(path)",
        "CREATE INDEX IF NOT EXISTS idx_tracks_file_path ON tracks(file_path)",
        "CREATE INDEX IF NOT EXISTS idx_tracks_album_id ON tracks(album_id)",
        "CREATE INDEX IF NOT EXISTS idx_tracks_artist_id ON tracks(artist_id)",
    )

    now = utc_now()
    for table in ("directories", "library_data", "config_data"):
        db.execute(
            f"UPDATE {table} SET created_at = ?, updated_at = ? WHERE created_at IS NULL",
            (now, now),
        )


def _clear_library(db: sqlite3.Connection) -> None:
    _run(
        db,
        "DELETE FROM tracks",
        "DELETE FROM albums",
        "DELETE FROM artists",
        "UPDATE library_data SET init = 0",
    )


# Applied strictly in this order; never reorder or renumber a shipped step.
MIGRATIONS: list[tuple[int, Callable[[sqlite3.Connection], None]]] = [
    (1, _migrate_v1),
    (2, _migrate_v2),
    (3, _migrate_v3),
    (4, _migrate_v4),
    (5, _migrate_v5),
    (6, _migrate_v6),
    (7, _migrate_v7),
    (8, _migrate_v8),
]

CURRENT_DB_VERSION = MIGRATIONS[-1][0]


def migrate(db: sqlite3.Connection, log: logging.Logger | None = None) -> int:
    """
    Bring the catalog up to CURRENT_DB_VERSION and return the final version.

    The connection must be in autocommit mode (isolation_level=None); every
    step gets its own transaction. A failing step is rolled back and raised
    as MigrationFailedError, leaving the version at the last good step.
    """
    log = log or logger

    try:
        existing_version = get_db_version(db)
    except sqlite3.Error as e:
        raise MigrationFailedError(CURRENT_DB_VERSION, e) from e

    log.info("Existing database version: %d", existing_version)
    if existing_version >= CURRENT_DB_VERSION:
        return existing_version

    for version, step in MIGRATIONS:
        if version <= existing_version:
            continue

        log.info("Migrate database version %d...", version)
        try:
            if version == 1:
                # journal mode can't change inside a transaction
                db.execute("PRAGMA journal_mode=WAL")
            db.execute("BEGIN IMMEDIATE")
            try:
                step(db)
                db.execute(f"PRAGMA user_version={int(version)}")
                db.execute("COMMIT")
            except BaseException:
                if db.in_transaction:
                    db.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            log.error("Migration to database version %d failed: %s", version, e)
            raise MigrationFailedError(version, e) from e

    return get_db_version(db)
