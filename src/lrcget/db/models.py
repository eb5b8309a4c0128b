from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import sqlite3

from lrcget.db.schema import DEFAULT_LRCLIB_INSTANCE, DEFAULT_THEME_MODE


def _opt(row: sqlite3.Row, key: str):
    # sqlite3.Row doesn't support .get
    return row[key] if key in row.keys() else None


@dataclass
class Track:
    id: int
    file_path: str
    file_name: str
    title: str
    title_lower: Optional[str]
    album_name: str
    album_artist_name: Optional[str]
    album_id: int
    artist_name: str
    artist_id: int
    image_path: Optional[str]
    track_number: Optional[int]
    plain_lyrics: Optional[str]
    synced_lyrics: Optional[str]
    duration: float
    instrumental: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @staticmethod
    def from_row(row: sqlite3.Row) -> "Track":
        return Track(
            id=row["id"],
            file_path=row["file_path"],
            file_name=row["file_name"],
            title=row["title"],
            title_lower=_opt(row, "title_lower"),
            album_name=row["album_name"],
            album_artist_name=_opt(row, "album_artist_name"),
            album_id=row["album_id"],
            artist_name=row["artist_name"],
            artist_id=row["artist_id"],
            image_path=_opt(row, "image_path"),
            track_number=_opt(row, "track_number"),
            plain_lyrics=_opt(row, "txt_lyrics"),
            synced_lyrics=_opt(row, "lrc_lyrics"),
            duration=float(row["duration"] or 0.0),
            instrumental=bool(row["instrumental"]),
            created_at=_opt(row, "created_at"),
            updated_at=_opt(row, "updated_at"),
        )


@dataclass
class Album:
    id: int
    name: str
    name_lower: Optional[str]
    image_path: Optional[str]
    artist_name: str
    album_artist_name: Optional[str]
    album_artist_name_lower: Optional[str]
    tracks_count: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @staticmethod
    def from_row(row: sqlite3.Row) -> "Album":
        return Album(
            id=row["id"],
            name=row["name"],
            name_lower=_opt(row, "name_lower"),
            image_path=_opt(row, "image_path"),
            artist_name=_opt(row, "artist_name") or "",
            album_artist_name=_opt(row, "album_artist_name"),
            album_artist_name_lower=_opt(row, "album_artist_name_lower"),
            tracks_count=int(_opt(row, "tracks_count") or 0),
            created_at=_opt(row, "created_at"),
            updated_at=_opt(row, "updated_at"),
        )


@dataclass
class Artist:
    id: int
    name: str
    name_lower: Optional[str]
    tracks_count: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @staticmethod
    def from_row(row: sqlite3.Row) -> "Artist":
        return Artist(
            id=row["id"],
            name=row["name"],
            name_lower=_opt(row, "name_lower"),
            tracks_count=int(_opt(row, "tracks_count") or 0),
            created_at=_opt(row, "created_at"),
            updated_at=_opt(row, "updated_at"),
        )


@dataclass
class Config:
    skip_tracks_with_synced_lyrics: bool = True
    skip_tracks_with_plain_lyrics: bool = False
    show_line_count: bool = True
    try_embed_lyrics: bool = False
    theme_mode: str = DEFAULT_THEME_MODE
    lrclib_instance: str = DEFAULT_LRCLIB_INSTANCE

    @staticmethod
    def from_row(row: sqlite3.Row) -> "Config":
        return Config(
            skip_tracks_with_synced_lyrics=bool(row["skip_tracks_with_synced_lyrics"]),
            skip_tracks_with_plain_lyrics=bool(row["skip_tracks_with_plain_lyrics"]),
            show_line_count=bool(row["show_line_count"]),
            try_embed_lyrics=bool(row["try_embed_lyrics"]),
            theme_mode=row["theme_mode"] or DEFAULT_THEME_MODE,
            lrclib_instance=row["lrclib_instance"] or DEFAULT_LRCLIB_INSTANCE,
        )
