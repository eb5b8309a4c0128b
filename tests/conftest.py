from __future__ import annotations

import os
import wave
from pathlib import Path
from typing import Dict, List

import pytest
from mutagen import id3
from mutagen._util import MutagenError
from mutagen.wave import WAVE

from lrcget.core.models import FsTrack
from lrcget.db.database import Catalog
from lrcget.library import fs_track


class FakeInfo:
    def __init__(self, length: float | None):
        self.length = length


class FakeEasyAudio(dict):
    """Stands in for the object mutagen.File(..., easy=True) returns."""

    def __init__(self, tags: Dict[str, List[str]], length: float | None = 0.0):
        super().__init__(tags)
        self.info = FakeInfo(length)


class MusicFolder:
    """Writes placeholder audio files and remembers the tags the fake reader returns for them."""

    def __init__(self, root: Path):
        self.root = root
        self.tags: Dict[str, FakeEasyAudio] = {}

    def add(self, rel_path: str, length: float | None = 180.0, **tags: str) -> str:
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"not really audio")
        self.tags[str(path)] = FakeEasyAudio({k: [v] for k, v in tags.items()}, length)
        return str(path)

    def add_corrupt(self, rel_path: str) -> str:
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x00\x01garbage")
        return str(path)

    def write(self, rel_path: str, content: str) -> str:
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)

    def read(self, path: str, easy: bool = True):
        if "corrupt" in os.path.basename(path):
            raise MutagenError(f"cannot parse {path}")
        return self.tags.get(path)


@pytest.fixture
def catalog():
    catalog = Catalog.open(":memory:")
    yield catalog
    catalog.close()


@pytest.fixture
def music(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> MusicFolder:
    folder = MusicFolder(tmp_path / "music")
    folder.root.mkdir()
    monkeypatch.setattr(fs_track, "MutagenFile", folder.read)
    monkeypatch.setattr(fs_track, "read_embedded_lyrics", lambda path: (None, None))
    return folder


def make_fs_track(
    file_path: str = "/music/song.mp3",
    title: str = "Song",
    album: str = "Album",
    artist: str = "Artist",
    album_artist: str | None = None,
    **kwargs,
) -> FsTrack:
    return FsTrack(
        file_path=file_path,
        file_name=os.path.basename(file_path),
        title=title,
        album=album,
        artist=artist,
        album_artist=album_artist or artist,
        duration=kwargs.pop("duration", 200.0),
        **kwargs,
    )


@pytest.fixture
def qapp():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def make_track():
    return make_fs_track


def write_wav(path: Path, seconds: float = 1.0, **frames: str) -> str:
    """Write a silent PCM WAV; keyword arguments become ID3 text frames (TIT2="...")."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(8000)
        w.writeframes(b"\x00\x00" * int(8000 * seconds))

    if frames:
        audio = WAVE(str(path))
        audio.add_tags()
        for frame_id, text in frames.items():
            audio.tags.add(getattr(id3, frame_id)(encoding=3, text=[text]))
        audio.save()
    return str(path)


@pytest.fixture
def make_wav():
    return write_wav
