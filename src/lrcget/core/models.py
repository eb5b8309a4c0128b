# core/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lrcget.core.utils import lower_shadow, strip_timestamps


@dataclass(frozen=True)
class FsTrack:
    """Candidate track read from disk, not yet bound to artist/album rows."""

    file_path: str      # full path to the audio file
    file_name: str      # basename (song.mp3)
    title: str
    album: str
    artist: str
    album_artist: str
    duration: float
    txt_lyrics: str | None = None
    lrc_lyrics: str | None = None
    track_number: int | None = None
    image_path: str | None = None

    @property
    def title_lower(self) -> str:
        return lower_shadow(self.title)


@dataclass(frozen=True)
class ScanProgress:
    files_scanned: int
    files_count: int | None
    tracks_added: int = 0

    @property
    def progress(self) -> float | None:
        if not self.files_count:
            return None
        return self.files_scanned / self.files_count


class LyricsKind(Enum):
    SYNCED = "synced"
    PLAIN = "plain"
    INSTRUMENTAL = "instrumental"
    NOT_FOUND = "none"


@dataclass(frozen=True)
class LyricsResponse:
    """One of the four answers a lyrics provider can give for a track."""

    kind: LyricsKind
    synced: Optional[str] = None
    plain: Optional[str] = None

    @classmethod
    def synced_lyrics(cls, synced: str, plain: str | None = None) -> "LyricsResponse":
        if not plain:
            plain = strip_timestamps(synced)
        return cls(LyricsKind.SYNCED, synced=synced, plain=plain)

    @classmethod
    def plain_lyrics(cls, plain: str) -> "LyricsResponse":
        return cls(LyricsKind.PLAIN, plain=plain)

    @classmethod
    def instrumental(cls) -> "LyricsResponse":
        return cls(LyricsKind.INSTRUMENTAL)

    @classmethod
    def not_found(cls) -> "LyricsResponse":
        return cls(LyricsKind.NOT_FOUND)
