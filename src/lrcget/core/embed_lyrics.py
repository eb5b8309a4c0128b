# core/embed_lyrics.py
from __future__ import annotations

import os
from typing import Callable, Optional

from mutagen import File as MutagenFile
from mutagen.flac import FLAC
from mutagen.id3 import ID3, TXXX, USLT, ID3NoHeaderError
from mutagen.mp4 import MP4
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis

from lrcget.core.utils import norm_text, strip_timestamps

# Synced LRC goes into LYRICS, plain text into UNSYNCEDLYRICS.
VORBIS_SYNCED_KEY = "LYRICS"
VORBIS_PLAIN_KEY = "UNSYNCEDLYRICS"

ID3_SYNCED_DESC = "LYRICS"
ID3_PLAIN_DESC = "UNSYNCEDLYRICS"

MP4_PLAIN_KEY = "\xa9lyr"
MP4_SYNCED_KEY = "----:com.lrclib:LYRICS"  # freeform atom; keep stable across versions


def embed_lyrics_for_track(track) -> bool:
    """
    Write the lyrics of a catalog Track into its audio file.

    Instrumental tracks and tracks without lyrics are left alone. Returns
    True when the file was rewritten. mutagen errors propagate.
    """
    if track.instrumental:
        return False

    synced = norm_text(track.synced_lyrics)
    plain = norm_text(track.plain_lyrics)
    if synced and not plain:
        plain = norm_text(strip_timestamps(synced))
    if not plain and not synced:
        return False

    embed_lyrics_in_file(track.file_path, plain, synced)
    return True


def embed_lyrics_in_file(path: str, plain: Optional[str], synced: Optional[str]) -> None:
    ext = os.path.splitext(path)[1].lower()
    embedder = _EMBEDDERS.get(ext)
    if embedder:
        embedder(path, plain, synced)
        return

    # anything else: the easy interface's plain "lyrics" key, when mutagen has one
    audio = MutagenFile(path, easy=True)
    if audio is None:
        return
    try:
        if plain:
            audio["lyrics"] = [plain]
        elif "lyrics" in audio:
            del audio["lyrics"]
    except KeyError:
        return
    audio.save()


def _set_or_delete(audio, key: str, value) -> None:
    if value:
        audio[key] = [value]
    elif key in audio:
        del audio[key]


def _vorbis_embedder(audio_cls) -> Callable[[str, Optional[str], Optional[str]], None]:
    def embed(path: str, plain: Optional[str], synced: Optional[str]) -> None:
        audio = audio_cls(path)
        _set_or_delete(audio, VORBIS_PLAIN_KEY, plain)
        _set_or_delete(audio, VORBIS_SYNCED_KEY, synced)
        audio.save()

    return embed


def _embed_mp3(path: str, plain: Optional[str], synced: Optional[str]) -> None:
    try:
        tags = ID3(path)
    except ID3NoHeaderError:
        tags = ID3()

    tags.delall("USLT")
    tags.delall(f"TXXX:{ID3_SYNCED_DESC}")
    tags.delall(f"TXXX:{ID3_PLAIN_DESC}")

    if plain:
        # "und": undefined language
        tags.add(USLT(encoding=3, lang="und", desc="", text=plain))
        tags.add(TXXX(encoding=3, desc=ID3_PLAIN_DESC, text=plain))
    if synced:
        tags.add(TXXX(encoding=3, desc=ID3_SYNCED_DESC, text=synced))

    tags.save(path)


def _embed_mp4(path: str, plain: Optional[str], synced: Optional[str]) -> None:
    audio = MP4(path)
    _set_or_delete(audio, MP4_PLAIN_KEY, plain)
    _set_or_delete(audio, MP4_SYNCED_KEY, synced.encode("utf-8") if synced else None)
    audio.save()


_EMBEDDERS: dict[str, Callable[[str, Optional[str], Optional[str]], None]] = {
    ".mp3": _embed_mp3,
    ".flac": _vorbis_embedder(FLAC),
    ".ogg": _vorbis_embedder(OggVorbis),
    ".oga": _vorbis_embedder(OggVorbis),
    ".opus": _vorbis_embedder(OggOpus),
    ".m4a": _embed_mp4,
    ".mp4": _embed_mp4,
}
