# library/fs_track.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from mutagen import File as MutagenFile
from mutagen._util import MutagenError
from mutagen.asf import ASF
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.mp4 import MP4
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE

from lrcget.core.embed_lyrics import (
    ID3_SYNCED_DESC,
    MP4_PLAIN_KEY,
    MP4_SYNCED_KEY,
    VORBIS_PLAIN_KEY,
    VORBIS_SYNCED_KEY,
)
from lrcget.core.errors import ExtractionFailedError
from lrcget.core.models import FsTrack
from lrcget.core.utils import norm_text

logger = logging.getLogger(__name__)

UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_ARTIST = "Unknown Artist"

COVER_FILE_NAMES = ("cover.jpg", "folder.jpg", "album.jpg", "front.jpg", "cover.png", "folder.png")

# mutagen has no easy-key mapping for these containers
_WAVE_ID3_FRAMES = {
    "title": "TIT2",
    "artist": "TPE1",
    "album": "TALB",
    "albumartist": "TPE2",
    "tracknumber": "TRCK",
}
_ASF_ATTRIBUTES = {
    "title": "Title",
    "artist": "Author",
    "album": "WM/AlbumTitle",
    "albumartist": "WM/AlbumArtist",
    "tracknumber": "WM/TrackNumber",
}


def _first(easy, key: str) -> str | None:
    v = easy.get(key)
    if not v:
        return None
    if isinstance(v, list):
        return (str(v[0]).strip() if v else None) or None
    s = str(v).strip()
    return s or None


def _parse_track_number(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        number = int(str(raw).split("/")[0].strip())
    except ValueError:
        return None
    return number if number > 0 else None


def easy_tags(audio):
    """
    Easy-style view (lowercase keys, lists of strings) over the tags of a
    mutagen file. WAVE and ASF are translated; other types are returned as is.
    """
    if isinstance(audio, WAVE):
        tags = audio.tags
        if tags is None:
            return {}
        return {
            key: [str(text) for text in tags[frame].text]
            for key, frame in _WAVE_ID3_FRAMES.items()
            if frame in tags
        }
    if isinstance(audio, ASF):
        tags = audio.tags
        if tags is None:
            return {}
        view = {}
        for key, attribute in _ASF_ATTRIBUTES.items():
            values = tags.get(attribute)
            if values:
                view[key] = [str(getattr(v, "value", v)) for v in values]
        return view
    return audio


def _read_text(path: str) -> str | None:
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return norm_text(f.read())
    except OSError as e:
        logger.warning("Cannot read lyrics file %s: %s", path, e)
        return None


def read_sidecar_lyrics(path: str) -> tuple[str | None, str | None]:
    """(plain, synced) from <stem>.txt and <stem>.lrc next to the audio file."""
    base, _ = os.path.splitext(path)
    return _read_text(base + ".txt"), _read_text(base + ".lrc")


def _first_text(values) -> Optional[str]:
    if isinstance(values, (list, tuple)) and values:
        first = values[0]
        if isinstance(first, (bytes, bytearray)):
            return first.decode("utf-8", errors="replace")
        return str(first)
    if isinstance(values, str):
        return values
    return None


def read_embedded_lyrics(path: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Read embedded plain lyrics and synced LRC (if present) from an audio file.
    Returns (plain_lyrics_or_None, synced_lrc_or_None).

      - MP3: ID3 USLT for plain lyrics, TXXX:LYRICS for synced.
      - FLAC/Ogg/Opus: UNSYNCEDLYRICS and LYRICS vorbis comments.
      - MP4/M4A: '\xa9lyr' and the '----:com.lrclib:LYRICS' freeform atom.

    Other formats carry no lyrics we know how to read.
    """
    ext = Path(path).suffix.lower()
    plain: Optional[str] = None
    synced: Optional[str] = None

    try:
        if ext == ".mp3":
            try:
                tags = ID3(path)
            except ID3NoHeaderError:
                tags = ID3()

            uslt_frames = tags.getall("USLT")
            if uslt_frames:
                plain = uslt_frames[0].text or None

            for frame in tags.getall("TXXX"):
                if frame.desc == ID3_SYNCED_DESC:
                    synced = _first_text(frame.text)
                    break

        elif ext in {".flac", ".ogg", ".oga", ".opus"}:
            audio_cls = {".flac": FLAC, ".opus": OggOpus}.get(ext, OggVorbis)
            audio = audio_cls(path)
            plain = _first_text(audio.get(VORBIS_PLAIN_KEY))
            synced = _first_text(audio.get(VORBIS_SYNCED_KEY))

        elif ext in {".m4a", ".mp4"}:
            audio = MP4(path)
            plain = _first_text(audio.get(MP4_PLAIN_KEY))
            synced = _first_text(audio.get(MP4_SYNCED_KEY))

    except (MutagenError, OSError) as e:
        logger.warning("Failed to read embedded lyrics from %s: %s", path, e)

    return norm_text(plain), norm_text(synced)


def find_cover_image(path: str) -> str | None:
    folder = os.path.dirname(path)
    for name in COVER_FILE_NAMES:
        candidate = os.path.join(folder, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def new_fs_track_from_path(path: str) -> FsTrack:
    """
    Build a candidate track from an audio file.

    Raises ExtractionFailedError when mutagen can't open or parse the file.
    """
    try:
        audio = MutagenFile(path, easy=True)
    except (MutagenError, OSError) as e:
        raise ExtractionFailedError(path, str(e)) from e
    if audio is None:
        raise ExtractionFailedError(path, "unsupported or unrecognized audio format")

    file_name = os.path.basename(path)
    tags = easy_tags(audio)

    title = _first(tags, "title") or os.path.splitext(file_name)[0]
    album = _first(tags, "album") or UNKNOWN_ALBUM
    artist = _first(tags, "artist") or UNKNOWN_ARTIST
    album_artist = (
        _first(tags, "albumartist")
        or _first(tags, "album artist")
        or artist
    )

    track_number = _parse_track_number(_first(tags, "tracknumber"))

    duration = 0.0
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if length:
        duration = max(float(length), 0.0)

    # sidecar files win over embedded tags
    txt_sidecar, lrc_sidecar = read_sidecar_lyrics(path)
    txt_lyrics, lrc_lyrics = txt_sidecar, lrc_sidecar
    if txt_lyrics is None or lrc_lyrics is None:
        txt_embedded, lrc_embedded = read_embedded_lyrics(path)
        txt_lyrics = txt_lyrics or txt_embedded
        lrc_lyrics = lrc_lyrics or lrc_embedded

    return FsTrack(
        file_path=path,
        file_name=file_name,
        title=title,
        album=album,
        artist=artist,
        album_artist=album_artist,
        duration=duration,
        txt_lyrics=txt_lyrics,
        lrc_lyrics=lrc_lyrics,
        track_number=track_number,
        image_path=find_cover_image(path),
    )
