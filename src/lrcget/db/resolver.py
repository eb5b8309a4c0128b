"""
Get-or-create for artists and albums.

Every function here runs on a connection whose caller already holds the
catalog write lock and an open transaction; the lookup and the insert that
may follow form one critical section. The unique indexes on artists(name)
and albums(name, artist_id) back this up: a conflicting insert is treated as
"already exists" and the row is fetched again.
"""
from __future__ import annotations

import sqlite3
from typing import Optional

from lrcget.core.errors import IntegrityViolationError
from lrcget.core.utils import lower_shadow, utc_now


def find_artist(db: sqlite3.Connection, name: str) -> Optional[int]:
    rows = db.execute("SELECT id FROM artists WHERE name = ? LIMIT 2", (name,)).fetchall()
    if len(rows) > 1:
        raise IntegrityViolationError(f"Artist name is not unique: {name!r}")
    return int(rows[0]["id"]) if rows else None


def add_artist(db: sqlite3.Connection, name: str) -> int:
    now = utc_now()
    cursor = db.execute(
        "INSERT INTO artists (name, name_lower, created_at, updated_at) VALUES (?, ?, ?, ?)",
        (name, lower_shadow(name), now, now),
    )
    return int(cursor.lastrowid)


def get_or_create_artist(db: sqlite3.Connection, name: str) -> int:
    artist_id = find_artist(db, name)
    if artist_id is not None:
        return artist_id

    try:
        return add_artist(db, name)
    except sqlite3.IntegrityError:
        # created by another connection since the lookup
        artist_id = find_artist(db, name)
        if artist_id is None:
            raise IntegrityViolationError(f"Artist {name!r} conflicts but cannot be found")
        return artist_id


def find_album(db: sqlite3.Connection, name: str, artist_id: int) -> Optional[int]:
    rows = db.execute(
        "SELECT id FROM albums WHERE name = ? AND artist_id = ? LIMIT 2",
        (name, artist_id),
    ).fetchall()
    if len(rows) > 1:
        raise IntegrityViolationError(f"Album {name!r} is not unique for artist {artist_id}")
    return int(rows[0]["id"]) if rows else None


def add_album(
    db: sqlite3.Connection,
    name: str,
    album_artist_name: Optional[str],
    image_path: Optional[str],
    artist_id: int,
    artist_name: str,
) -> int:
    now = utc_now()
    cursor = db.execute(
        """
        INSERT INTO albums (
            name, name_lower, artist_id, artist_name,
            album_artist_name, album_artist_name_lower, image_path,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            name,
            lower_shadow(name),
            artist_id,
            artist_name,
            album_artist_name,
            lower_shadow(album_artist_name),
            image_path,
            now,
            now,
        ),
    )
    return int(cursor.lastrowid)


def get_or_create_album(
    db: sqlite3.Connection,
    name: str,
    album_artist_name: Optional[str],
    image_path: Optional[str],
    artist_id: int,
) -> int:
    album_id = find_album(db, name, artist_id)
    if album_id is not None:
        return album_id

    row = db.execute("SELECT name FROM artists WHERE id = ?", (artist_id,)).fetchone()
    if row is None:
        raise IntegrityViolationError(f"Album {name!r} references missing artist {artist_id}")

    try:
        return add_album(db, name, album_artist_name, image_path, artist_id, row["name"])
    except sqlite3.IntegrityError:
        album_id = find_album(db, name, artist_id)
        if album_id is None:
            raise IntegrityViolationError(f"Album {name!r} conflicts but cannot be found")
        return album_id
