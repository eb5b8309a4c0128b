from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from lrcget.core.errors import (
    IntegrityViolationError,
    NotFoundError,
    StorageUnavailableError,
)
from lrcget.core.models import FsTrack
from lrcget.core.utils import INSTRUMENTAL_LRC, is_instrumental_lrc, lower_shadow, norm_text, utc_now
from lrcget.db.locking import ReadWriteLock
from lrcget.db.migrations import get_db_version, migrate
from lrcget.db.models import Album, Artist, Config, Track
from lrcget.db.resolver import get_or_create_album, get_or_create_artist

logger = logging.getLogger(__name__)

DATABASE_FILE_NAME = "db.sqlite3"

_TRACK_FIELDS = (
    "id", "file_path", "file_name", "title", "title_lower",
    "album_name", "album_artist_name", "album_id",
    "artist_name", "artist_id", "image_path", "track_number",
    "txt_lyrics", "lrc_lyrics", "duration", "instrumental",
    "created_at", "updated_at",
)


def _track_columns(table: str = "tracks") -> str:
    return ", ".join(f"{table}.{field}" for field in _TRACK_FIELDS)


# artist, then album, then track number; the rest only keeps pages stable
_TRACK_ORDER = (
    "ORDER BY tracks.artist_name, tracks.album_name, tracks.track_number, "
    "tracks.title_lower, tracks.id"
)

_ALBUM_SELECT = """
    SELECT
        albums.id, albums.name, albums.name_lower, albums.image_path,
        albums.artist_name, albums.album_artist_name, albums.album_artist_name_lower,
        albums.created_at, albums.updated_at,
        COUNT(tracks.id) AS tracks_count
    FROM albums
    LEFT JOIN tracks ON tracks.album_id = albums.id
"""

_ARTIST_SELECT = """
    SELECT
        artists.id, artists.name, artists.name_lower,
        artists.created_at, artists.updated_at,
        COUNT(tracks.id) AS tracks_count
    FROM artists
    LEFT JOIN tracks ON tracks.artist_id = artists.id
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Catalog:
    """
    The music catalog: one SQLite connection guarded by a read/write lock.

    Reads share the lock; writes take it exclusively and run all of their
    statements in a single transaction. Open catalogs with Catalog.open()
    (or initialize_database()) so the schema is migrated before any query.
    """

    def __init__(self, db: sqlite3.Connection, path: str, log: logging.Logger | None = None):
        self._db: sqlite3.Connection | None = db
        self._lock = ReadWriteLock()
        self._log = log or logger
        self.path = path

    @classmethod
    def open(cls, path: str, log: logging.Logger | None = None) -> "Catalog":
        log = log or logger
        log.info("Database file path: %s", path)
        try:
            db = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
            db.row_factory = sqlite3.Row
            db.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot open database {path}: {e}") from e

        try:
            migrate(db, log)
        except BaseException:
            db.close()
            raise
        return cls(db, path, log)

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def close(self) -> None:
        with self._lock.write_locked():
            if self._db is not None:
                self._db.close()
                self._db = None

    def _handle(self) -> sqlite3.Connection:
        if self._db is None:
            raise StorageUnavailableError("Catalog is closed")
        return self._db

    @contextmanager
    def _reading(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock.read_locked():
            db = self._handle()
            try:
                yield db
            except sqlite3.Error as e:
                self._log.error("Database error in %s: %s", operation, e)
                raise StorageUnavailableError(f"{operation} failed: {e}") from e

    @contextmanager
    def _writing(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock.write_locked():
            db = self._handle()
            try:
                db.execute("BEGIN IMMEDIATE")
                try:
                    yield db
                    db.execute("COMMIT")
                except BaseException:
                    if db.in_transaction:
                        db.execute("ROLLBACK")
                    raise
            except sqlite3.IntegrityError as e:
                self._log.error("Integrity error in %s: %s", operation, e)
                raise IntegrityViolationError(f"{operation} failed: {e}") from e
            except sqlite3.Error as e:
                self._log.error("Database error in %s: %s", operation, e)
                raise StorageUnavailableError(f"{operation} failed: {e}") from e

    # -------------------------------
    # SCHEMA
    # -------------------------------
    def schema_version(self) -> int:
        with self._reading("schema_version") as db:
            return get_db_version(db)

    def describe_table(self, table: str) -> list[tuple[str, str]]:
        with self._reading("describe_table") as db:
            rows = db.execute(f"PRAGMA table_info({table})").fetchall()
            return [(row["name"], row["type"]) for row in rows]

    # -------------------------------
    # DIRECTORIES
    # -------------------------------
    def get_directories(self) -> List[str]:
        with self._reading("get_directories") as db:
            rows = db.execute("SELECT path FROM directories ORDER BY path").fetchall()
            return [row["path"] for row in rows]

    def set_directories(self, directories: Iterable[str]) -> None:
        paths = list(dict.fromkeys(directories))
        with self._writing("set_directories") as db:
            db.execute("DELETE FROM directories")
            now = utc_now()
            db.executemany(
                "INSERT INTO directories (path, created_at, updated_at) VALUES (?, ?, ?)",
                [(path, now, now) for path in paths],
            )
        self._log.info("Library directories set to %s", paths)

    # -------------------------------
    # LIBRARY INIT
    # -------------------------------
    def get_init(self) -> bool:
        with self._reading("get_init") as db:
            row = db.execute("SELECT init FROM library_data WHERE id = 1").fetchone()
            return bool(row["init"]) if row else False

    def set_init(self, init: bool) -> None:
        with self._writing("set_init") as db:
            now = utc_now()
            cursor = db.execute(
                "UPDATE library_data SET init = ?, updated_at = ? WHERE id = 1",
                (bool(init), now),
            )
            if cursor.rowcount == 0:
                db.execute(
                    "INSERT INTO library_data (id, init, created_at, updated_at) VALUES (1, ?, ?, ?)",
                    (bool(init), now, now),
                )

    def clean_library(self) -> None:
        with self._writing("clean_library") as db:
            db.execute("DELETE FROM tracks")
            db.execute("DELETE FROM albums")
            db.execute("DELETE FROM artists")
        self._log.info("Library cleaned")

    # -------------------------------
    # CONFIG
    # -------------------------------
    def get_config(self) -> Config:
        with self._reading("get_config") as db:
            row = db.execute("""
                SELECT skip_tracks_with_synced_lyrics,
                       skip_tracks_with_plain_lyrics,
                       show_line_count,
                       try_embed_lyrics,
                       theme_mode,
                       lrclib_instance
                FROM config_data
                WHERE id = 1
            """).fetchone()
        return Config.from_row(row) if row else Config()

    def set_config(self, config: Config) -> None:
        values = (
            config.skip_tracks_with_synced_lyrics,
            config.skip_tracks_with_plain_lyrics,
            config.show_line_count,
            config.try_embed_lyrics,
            config.theme_mode,
            config.lrclib_instance,
        )
        with self._writing("set_config") as db:
            now = utc_now()
            cursor = db.execute("""
                UPDATE config_data
                SET skip_tracks_with_synced_lyrics = ?,
                    skip_tracks_with_plain_lyrics = ?,
                    show_line_count = ?,
                    try_embed_lyrics = ?,
                    theme_mode = ?,
                    lrclib_instance = ?,
                    updated_at = ?
                WHERE id = 1
            """, (*values, now))
            if cursor.rowcount == 0:
                db.execute("""
                    INSERT INTO config_data (
                        id, skip_not_needed_tracks,
                        skip_tracks_with_synced_lyrics, skip_tracks_with_plain_lyrics,
                        show_line_count, try_embed_lyrics, theme_mode, lrclib_instance,
                        created_at, updated_at
                    ) VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (config.skip_tracks_with_synced_lyrics, *values, now, now))

    # -------------------------------
    # ARTISTS
    # -------------------------------
    def resolve_artist(self, name: str) -> int:
        with self._writing("resolve_artist") as db:
            return get_or_create_artist(db, name)

    def get_artists(self) -> List[Artist]:
        with self._reading("get_artists") as db:
            rows = db.execute(
                _ARTIST_SELECT + " GROUP BY artists.id ORDER BY artists.name_lower, artists.id"
            ).fetchall()
            return [Artist.from_row(row) for row in rows]

    def get_artist_by_id(self, artist_id: int) -> Artist:
        with self._reading("get_artist_by_id") as db:
            row = db.execute(
                _ARTIST_SELECT + " WHERE artists.id = ? GROUP BY artists.id",
                (int(artist_id),),
            ).fetchone()
        if row is None:
            raise NotFoundError("Artist", artist_id)
        return Artist.from_row(row)

    # -------------------------------
    # ALBUMS
    # -------------------------------
    def resolve_album(
        self,
        name: str,
        album_artist_name: Optional[str],
        image_path: Optional[str],
        artist_id: int,
    ) -> int:
        with self._writing("resolve_album") as db:
            return get_or_create_album(db, name, album_artist_name, image_path, int(artist_id))

    def get_albums(self) -> List[Album]:
        with self._reading("get_albums") as db:
            rows = db.execute(
                _ALBUM_SELECT
                + " GROUP BY albums.id ORDER BY albums.name_lower, albums.artist_name, albums.id"
            ).fetchall()
            return [Album.from_row(row) for row in rows]

    def get_album_by_id(self, album_id: int) -> Album:
        with self._reading("get_album_by_id") as db:
            row = db.execute(
                _ALBUM_SELECT + " WHERE albums.id = ? GROUP BY albums.id",
                (int(album_id),),
            ).fetchone()
        if row is None:
            raise NotFoundError("Album", album_id)
        return Album.from_row(row)

    # -------------------------------
    # TRACKS
    # -------------------------------
    @staticmethod
    def _fetch_track(db: sqlite3.Connection, track_id: int) -> Track:
        row = db.execute(
            f"SELECT {_track_columns()} FROM tracks WHERE tracks.id = ?",
            (int(track_id),),
        ).fetchone()
        if row is None:
            raise NotFoundError("Track", track_id)
        return Track.from_row(row)

    def get_track_by_id(self, track_id: int) -> Track:
        with self._reading("get_track_by_id") as db:
            return self._fetch_track(db, track_id)

    def get_tracks(self, limit: int | None = None, offset: int = 0) -> List[Track]:
        query = f"SELECT {_track_columns()} FROM tracks {_TRACK_ORDER}"
        params: list[object] = []
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params += [int(limit), int(offset)]
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(int(offset))

        with self._reading("get_tracks") as db:
            return [Track.from_row(row) for row in db.execute(query, params).fetchall()]

    def get_album_tracks(self, album_id: int) -> List[Track]:
        with self._reading("get_album_tracks") as db:
            rows = db.execute(
                f"SELECT {_track_columns()} FROM tracks WHERE tracks.album_id = ? {_TRACK_ORDER}",
                (int(album_id),),
            ).fetchall()
            return [Track.from_row(row) for row in rows]

    def get_artist_tracks(self, artist_id: int) -> List[Track]:
        with self._reading("get_artist_tracks") as db:
            rows = db.execute(
                f"SELECT {_track_columns()} FROM tracks WHERE tracks.artist_id = ? {_TRACK_ORDER}",
                (int(artist_id),),
            ).fetchall()
            return [Track.from_row(row) for row in rows]

    def count_tracks(self) -> int:
        with self._reading("count_tracks") as db:
            return int(db.execute("SELECT COUNT(*) FROM tracks").fetchone()[0])

    def search_tracks(self, query: str, limit: int | None = None) -> List[Track]:
        """Case-insensitive substring match on title, artist, album and album artist."""
        needle = lower_shadow((query or "").strip())
        if not needle:
            return []

        like = f"%{_escape_like(needle)}%"
        sql = f"""
            SELECT {_track_columns()}
            FROM tracks
            JOIN artists ON tracks.artist_id = artists.id
            JOIN albums ON tracks.album_id = albums.id
            WHERE tracks.title_lower LIKE ? ESCAPE '\\'
               OR artists.name_lower LIKE ? ESCAPE '\\'
               OR albums.name_lower LIKE ? ESCAPE '\\'
               OR albums.album_artist_name_lower LIKE ? ESCAPE '\\'
            {_TRACK_ORDER}
        """
        params: list[object] = [like, like, like, like]
        if limit:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._reading("search_tracks") as db:
            return [Track.from_row(row) for row in db.execute(sql, params).fetchall()]

    def get_track_ids(
        self,
        synced_lyrics: bool = True,
        plain_lyrics: bool = True,
        instrumental: bool = True,
        no_lyrics: bool = True,
    ) -> List[int]:
        """Ids of the tracks whose lyric state is one of the enabled kinds."""
        conditions: list[str] = []

        if not synced_lyrics:
            conditions.append(f"(lrc_lyrics IS NULL OR lrc_lyrics = '{INSTRUMENTAL_LRC}')")
        if not plain_lyrics:
            conditions.append("(txt_lyrics IS NULL OR lrc_lyrics IS NOT NULL)")
        if not instrumental:
            conditions.append("COALESCE(instrumental, 0) = 0")
        if not no_lyrics:
            conditions.append("(txt_lyrics IS NOT NULL OR lrc_lyrics IS NOT NULL OR instrumental = 1)")

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        with self._reading("get_track_ids") as db:
            rows = db.execute(f"SELECT tracks.id FROM tracks {where_clause} {_TRACK_ORDER}").fetchall()
            return [int(r["id"]) for r in rows]

    def add_track(self, track: FsTrack) -> Track:
        """
        Persist a candidate track, creating its artist and album on first use.

        The lookups, the possible artist/album inserts and the track insert
        share one write lock and one transaction. A file path that is already
        catalogued returns the existing row unchanged.
        """
        with self._writing("add_track") as db:
            row = db.execute(
                f"SELECT {_track_columns()} FROM tracks WHERE tracks.file_path = ? ORDER BY tracks.id LIMIT 1",
                (track.file_path,),
            ).fetchone()
            if row is not None:
                return Track.from_row(row)

            artist_id = get_or_create_artist(db, track.artist)
            album_id = get_or_create_album(
                db, track.album, track.album_artist, track.image_path, artist_id
            )

            now = utc_now()
            cursor = db.execute("""
                INSERT INTO tracks (
                    file_path, file_name, title, title_lower,
                    album_id, artist_id, album_name, artist_name, album_artist_name,
                    image_path, duration, track_number,
                    txt_lyrics, lrc_lyrics, instrumental,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                track.file_path,
                track.file_name,
                track.title,
                track.title_lower,
                album_id,
                artist_id,
                track.album,
                track.artist,
                track.album_artist,
                track.image_path,
                max(float(track.duration or 0.0), 0.0),
                track.track_number,
                track.txt_lyrics,
                track.lrc_lyrics,
                is_instrumental_lrc(track.lrc_lyrics),
                now,
                now,
            ))
            return self._fetch_track(db, cursor.lastrowid)

    # -------------------------------
    # UPDATE TRACK LYRICS
    # -------------------------------
    def _update_lyrics(
        self,
        operation: str,
        track_id: int,
        plain: Optional[str],
        synced: Optional[str],
        instrumental: bool,
    ) -> Track:
        with self._writing(operation) as db:
            cursor = db.execute("""
                UPDATE tracks
                SET txt_lyrics = ?, lrc_lyrics = ?, instrumental = ?, updated_at = ?
                WHERE id = ?
            """, (plain, synced, instrumental, utc_now(), int(track_id)))
            if cursor.rowcount == 0:
                raise NotFoundError("Track", track_id)
            return self._fetch_track(db, track_id)

    def update_track_synced_lyrics(self, track_id: int, synced_lyrics: str, plain_lyrics: str) -> Track:
        return self._update_lyrics(
            "update_track_synced_lyrics",
            track_id,
            norm_text(plain_lyrics),
            norm_text(synced_lyrics),
            False,
        )

    def update_track_plain_lyrics(self, track_id: int, plain_lyrics: str) -> Track:
        return self._update_lyrics(
            "update_track_plain_lyrics", track_id, norm_text(plain_lyrics), None, False
        )

    def update_track_instrumental(self, track_id: int) -> Track:
        return self._update_lyrics(
            "update_track_instrumental", track_id, None, INSTRUMENTAL_LRC, True
        )


def initialize_database(app_data_dir: str, log: logging.Logger | None = None) -> Catalog:
    os.makedirs(app_data_dir, exist_ok=True)
    return Catalog.open(os.path.join(app_data_dir, DATABASE_FILE_NAME), log)
