"""
Tests for lrcget.library.fs_track.

Tag reading goes through the fake mutagen reader from conftest; the sidecar
and cover-art lookups run against real temporary files.
"""

from __future__ import annotations

import pytest
from mutagen.asf import ASF, ASFDWordAttribute, ASFUnicodeAttribute

from lrcget.core.errors import ExtractionFailedError
from lrcget.library import fs_track
from lrcget.library.fs_track import (
    _parse_track_number,
    easy_tags,
    find_cover_image,
    new_fs_track_from_path,
    read_embedded_lyrics,
    read_sidecar_lyrics,
)


class TestTagFallbacks:
    def test_full_tags(self, music) -> None:
        path = music.add(
            "Artist/Album/01 Song.mp3",
            length=201.5,
            title="Song",
            album="Album",
            artist="Artist",
            albumartist="Various",
            tracknumber="3/12",
        )

        track = new_fs_track_from_path(path)

        assert track.file_path == path
        assert track.file_name == "01 Song.mp3"
        assert track.title == "Song"
        assert track.title_lower == "song"
        assert track.album == "Album"
        assert track.artist == "Artist"
        assert track.album_artist == "Various"
        assert track.track_number == 3
        assert track.duration == 201.5

    def test_empty_tags(self, music) -> None:
        path = music.add("loose/My Track.flac", length=None)

        track = new_fs_track_from_path(path)

        assert track.title == "My Track"
        assert track.album == "Unknown Album"
        assert track.artist == "Unknown Artist"
        assert track.album_artist == "Unknown Artist"
        assert track.track_number is None
        assert track.duration == 0.0

    def test_album_artist_defaults_to_artist(self, music) -> None:
        path = music.add("a.mp3", artist="Solo", title="  ")
        track = new_fs_track_from_path(path)

        assert track.album_artist == "Solo"
        assert track.title == "a"

    def test_unreadable_file(self, music) -> None:
        path = music.add_corrupt("corrupt.mp3")
        with pytest.raises(ExtractionFailedError) as exc_info:
            new_fs_track_from_path(path)
        assert exc_info.value.path == path

    def test_unrecognized_file(self, music) -> None:
        # mutagen.File returns None for formats it doesn't know
        path = str(music.root / "unknown.wma")
        (music.root / "unknown.wma").write_bytes(b"????")
        with pytest.raises(ExtractionFailedError):
            new_fs_track_from_path(path)


class TestTrackNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [("3", 3), ("3/12", 3), (" 7 / 9", 7), ("0", None), ("-2", None), ("x", None), ("", None), (None, None)],
    )
    def test_parse(self, raw, expected) -> None:
        assert _parse_track_number(raw) == expected


class TestSidecarLyrics:
    def test_both_sidecars(self, music) -> None:
        path = music.add("a/song.mp3", title="Song")
        music.write("a/song.txt", "plain words\n")
        music.write("a/song.lrc", "[00:01.00] plain words\n")

        track = new_fs_track_from_path(path)

        assert track.txt_lyrics == "plain words\n"
        assert track.lrc_lyrics == "[00:01.00] plain words\n"

    def test_no_sidecars(self, music) -> None:
        path = music.add("a/song.mp3", title="Song")
        assert read_sidecar_lyrics(path) == (None, None)

    def test_blank_sidecar_is_ignored(self, music) -> None:
        path = music.add("a/song.mp3", title="Song")
        music.write("a/song.txt", "   \n")
        assert read_sidecar_lyrics(path) == (None, None)

    def test_sidecar_preferred_over_embedded(self, music, monkeypatch: pytest.MonkeyPatch) -> None:
        path = music.add("a/song.mp3", title="Song")
        music.write("a/song.lrc", "[00:01.00] from file")
        monkeypatch.setattr(fs_track, "read_embedded_lyrics", lambda p: ("embedded plain", "[00:01.00] embedded"))

        track = new_fs_track_from_path(path)

        assert track.lrc_lyrics == "[00:01.00] from file"
        assert track.txt_lyrics == "embedded plain"


class TestEmbeddedLyrics:
    def test_mp3_without_id3_header(self, tmp_path) -> None:
        path = tmp_path / "plain.mp3"
        path.write_bytes(b"\x00" * 64)
        assert read_embedded_lyrics(str(path)) == (None, None)

    def test_broken_flac_is_tolerated(self, tmp_path) -> None:
        path = tmp_path / "broken.flac"
        path.write_bytes(b"not a flac stream")
        assert read_embedded_lyrics(str(path)) == (None, None)

    def test_format_without_lyrics_support(self, tmp_path) -> None:
        path = tmp_path / "sound.wav"
        path.write_bytes(b"RIFF")
        assert read_embedded_lyrics(str(path)) == (None, None)


class TestCoverImage:
    def test_first_known_name_wins(self, music) -> None:
        path = music.add("a/song.mp3", title="Song")
        music.write("a/folder.jpg", "jpg")
        music.write("a/cover.png", "png")

        assert find_cover_image(path) == str(music.root / "a" / "folder.jpg")
        assert new_fs_track_from_path(path).image_path == str(music.root / "a" / "folder.jpg")

    def test_no_cover(self, music) -> None:
        path = music.add("a/song.mp3", title="Song")
        assert find_cover_image(path) is None


class TestContainerTags:
    """WAVE and ASF files have no easy-key mapping in mutagen."""

    def test_tagged_wav(self, tmp_path, make_wav) -> None:
        path = make_wav(
            tmp_path / "song.wav",
            TIT2="Real Title",
            TPE1="Real Artist",
            TALB="Real Album",
            TPE2="Band",
            TRCK="4/10",
        )

        track = new_fs_track_from_path(path)

        assert track.title == "Real Title"
        assert track.artist == "Real Artist"
        assert track.album == "Real Album"
        assert track.album_artist == "Band"
        assert track.track_number == 4
        assert track.duration == pytest.approx(1.0)

    def test_untagged_wav_uses_fallbacks(self, tmp_path, make_wav) -> None:
        path = make_wav(tmp_path / "plain take.wav")

        track = new_fs_track_from_path(path)

        assert track.title == "plain take"
        assert track.artist == "Unknown Artist"
        assert track.album == "Unknown Album"

    def test_asf_attributes(self) -> None:
        audio = ASF.__new__(ASF)
        audio.tags = {
            "Title": [ASFUnicodeAttribute("Win Title")],
            "Author": [ASFUnicodeAttribute("Win Artist")],
            "WM/AlbumTitle": [ASFUnicodeAttribute("Win Album")],
            "WM/TrackNumber": [ASFDWordAttribute(7)],
        }

        assert easy_tags(audio) == {
            "title": ["Win Title"],
            "artist": ["Win Artist"],
            "album": ["Win Album"],
            "tracknumber": ["7"],
        }

    def test_other_types_pass_through(self) -> None:
        tags = {"title": ["x"]}
        assert easy_tags(tags) is tags
