"""
Tests for lrcget.db.database.Catalog.

These tests verify:
- directory, config and library-state singletons
- track persistence, ordering, lookups and lyric updates
- album/artist aggregates and referential integrity
- error kinds for missing rows and closed catalogs
"""

from __future__ import annotations

import pytest

from lrcget.core.errors import NotFoundError, StorageUnavailableError
from lrcget.db.database import DATABASE_FILE_NAME, Catalog, initialize_database
from lrcget.db.models import Config


class TestCatalogLifecycle:
    def test_initialize_database_creates_file(self, tmp_path) -> None:
        data_dir = tmp_path / "app" / "data"
        catalog = initialize_database(str(data_dir))
        try:
            assert (data_dir / DATABASE_FILE_NAME).exists()
            assert catalog.path == str(data_dir / DATABASE_FILE_NAME)
            assert catalog.get_init() is False
        finally:
            catalog.close()

    def test_reopen_keeps_data(self, tmp_path) -> None:
        catalog = initialize_database(str(tmp_path))
        catalog.set_directories(["/music"])
        catalog.close()

        catalog = initialize_database(str(tmp_path))
        try:
            assert catalog.get_directories() == ["/music"]
        finally:
            catalog.close()

    def test_closed_catalog_raises_storage_unavailable(self) -> None:
        catalog = Catalog.open(":memory:")
        catalog.close()

        assert not catalog.is_open
        with pytest.raises(StorageUnavailableError):
            catalog.get_tracks()
        with pytest.raises(StorageUnavailableError):
            catalog.set_init(True)

    def test_close_is_idempotent(self) -> None:
        catalog = Catalog.open(":memory:")
        catalog.close()
        catalog.close()

    def test_describe_table(self, catalog: Catalog) -> None:
        columns = dict(catalog.describe_table("tracks"))
        assert columns["title"] == "TEXT"
        assert "title_lower" in columns


class TestDirectories:
    def test_set_directories_replaces_all(self, catalog: Catalog) -> None:
        catalog.set_directories(["/a", "/b"])
        catalog.set_directories(["/c"])

        assert catalog.get_directories() == ["/c"]

    def test_duplicates_are_collapsed(self, catalog: Catalog) -> None:
        catalog.set_directories(["/b", "/a", "/b"])
        assert catalog.get_directories() == ["/a", "/b"]

    def test_empty_list_clears(self, catalog: Catalog) -> None:
        catalog.set_directories(["/a"])
        catalog.set_directories([])
        assert catalog.get_directories() == []


class TestLibraryState:
    def test_init_flag_round_trip(self, catalog: Catalog) -> None:
        assert catalog.get_init() is False
        catalog.set_init(True)
        assert catalog.get_init() is True
        catalog.set_init(False)
        assert catalog.get_init() is False

    def test_set_init_recreates_missing_row(self, catalog: Catalog) -> None:
        with catalog._writing("test") as db:
            db.execute("DELETE FROM library_data")
        assert catalog.get_init() is False

        catalog.set_init(True)
        assert catalog.get_init() is True

    def test_clean_library(self, catalog: Catalog, make_track) -> None:
        catalog.add_track(make_track())
        catalog.clean_library()

        assert catalog.count_tracks() == 0
        assert catalog.get_albums() == []
        assert catalog.get_artists() == []


class TestConfig:
    def test_defaults(self, catalog: Catalog) -> None:
        assert catalog.get_config() == Config()

    def test_set_config(self, catalog: Catalog) -> None:
        config = Config(
            skip_tracks_with_synced_lyrics=False,
            skip_tracks_with_plain_lyrics=True,
            show_line_count=False,
            try_embed_lyrics=True,
            theme_mode="dark",
            lrclib_instance="https://lrclib.example.org",
        )
        catalog.set_config(config)

        assert catalog.get_config() == config

    def test_missing_row_gives_defaults_and_set_recreates(self, catalog: Catalog) -> None:
        with catalog._writing("test") as db:
            db.execute("DELETE FROM config_data")
        assert catalog.get_config() == Config()

        catalog.set_config(Config(theme_mode="light"))
        assert catalog.get_config().theme_mode == "light"


class TestTracks:
    def test_add_track(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(
            "/music/x/01.mp3", title="Hello World", album="Album Y", artist="Artist X",
            track_number=1, txt_lyrics="la la", image_path="/music/x/cover.jpg",
        ))

        assert track.id > 0
        assert track.title == "Hello World"
        assert track.title_lower == "hello world"
        assert track.album_name == "Album Y"
        assert track.artist_name == "Artist X"
        assert track.album_artist_name == "Artist X"
        assert track.track_number == 1
        assert track.plain_lyrics == "la la"
        assert track.synced_lyrics is None
        assert track.instrumental is False
        assert track.image_path == "/music/x/cover.jpg"
        assert track.created_at is not None

        assert catalog.get_track_by_id(track.id) == track

    def test_add_track_with_instrumental_lrc(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(lrc_lyrics="[au: instrumental]"))
        assert track.instrumental is True

    def test_same_file_path_is_not_added_twice(self, catalog: Catalog, make_track) -> None:
        first = catalog.add_track(make_track("/music/a.mp3", title="A"))
        second = catalog.add_track(make_track("/music/a.mp3", title="Changed"))

        assert second == first
        assert catalog.count_tracks() == 1

    def test_negative_duration_is_clamped(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(duration=-3.0))
        assert track.duration == 0.0

    def test_missing_track_raises_not_found(self, catalog: Catalog) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            catalog.get_track_by_id(404)
        assert exc_info.value.entity == "Track"
        # callers can tell "missing" from "storage failed"
        assert not isinstance(exc_info.value, StorageUnavailableError)

    def test_tracks_ordered_by_artist_album_number(self, catalog: Catalog, make_track) -> None:
        catalog.add_track(make_track("/m/3.mp3", title="Z", album="B", artist="Beta", track_number=1))
        catalog.add_track(make_track("/m/2.mp3", title="Two", album="A", artist="Alpha", track_number=2))
        catalog.add_track(make_track("/m/1.mp3", title="One", album="A", artist="Alpha", track_number=1))
        catalog.add_track(make_track("/m/4.mp3", title="Other", album="C", artist="Alpha", track_number=1))

        assert [t.title for t in catalog.get_tracks()] == ["One", "Two", "Other", "Z"]
        assert [t.title for t in catalog.get_tracks(limit=2, offset=1)] == ["Two", "Other"]
        assert [t.title for t in catalog.get_tracks(offset=3)] == ["Z"]

    def test_album_and_artist_tracks(self, catalog: Catalog, make_track) -> None:
        a = catalog.add_track(make_track("/m/a.mp3", album="Album Y", artist="Artist X"))
        b = catalog.add_track(make_track("/m/b.mp3", album="Album Y", artist="Artist Z"))

        assert [t.id for t in catalog.get_album_tracks(a.album_id)] == [a.id]
        assert [t.id for t in catalog.get_artist_tracks(b.artist_id)] == [b.id]
        assert catalog.get_album_tracks(9999) == []

    def test_search_tracks(self, catalog: Catalog, make_track) -> None:
        catalog.add_track(make_track("/m/a.mp3", title="Yellow Submarine", album="Revolver", artist="The Beatles"))
        catalog.add_track(make_track("/m/b.mp3", title="Paranoid Android", album="OK Computer", artist="Radiohead"))

        assert [t.title for t in catalog.search_tracks("SUBMARINE")] == ["Yellow Submarine"]
        assert [t.title for t in catalog.search_tracks("radio")] == ["Paranoid Android"]
        assert [t.title for t in catalog.search_tracks("ok comp")] == ["Paranoid Android"]
        assert catalog.search_tracks("   ") == []
        assert catalog.search_tracks("100%") == []

    def test_referential_integrity(self, catalog: Catalog, make_track) -> None:
        for i, (artist, album) in enumerate([("A", "X"), ("A", "Y"), ("B", "X")]):
            catalog.add_track(make_track(f"/m/{i}.mp3", artist=artist, album=album))

        artist_ids = {a.id for a in catalog.get_artists()}
        album_ids = {a.id for a in catalog.get_albums()}
        for track in catalog.get_tracks():
            assert track.artist_id in artist_ids
            assert track.album_id in album_ids


class TestAlbumsAndArtists:
    def test_counts_from_aggregate(self, catalog: Catalog, make_track) -> None:
        catalog.add_track(make_track("/m/1.mp3", album="Album Y", artist="Artist X"))
        catalog.add_track(make_track("/m/2.mp3", album="Album Y", artist="Artist X"))
        catalog.add_track(make_track("/m/3.mp3", album="Album Y", artist="Artist Z"))

        albums = catalog.get_albums()
        assert [(a.name, a.artist_name, a.tracks_count) for a in albums] == [
            ("Album Y", "Artist X", 2),
            ("Album Y", "Artist Z", 1),
        ]

        artists = catalog.get_artists()
        assert [(a.name, a.tracks_count) for a in artists] == [("Artist X", 2), ("Artist Z", 1)]

    def test_get_by_id(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(album="Album", artist="Artist", album_artist="Various"))

        album = catalog.get_album_by_id(track.album_id)
        assert album.name_lower == "album"
        assert album.album_artist_name == "Various"
        assert album.album_artist_name_lower == "various"
        assert album.tracks_count == 1

        artist = catalog.get_artist_by_id(track.artist_id)
        assert artist.name == "Artist"
        assert artist.tracks_count == 1

    def test_empty_artist_has_zero_count(self, catalog: Catalog) -> None:
        artist_id = catalog.resolve_artist("Nobody")
        assert catalog.get_artist_by_id(artist_id).tracks_count == 0

    def test_missing_ids(self, catalog: Catalog) -> None:
        with pytest.raises(NotFoundError):
            catalog.get_album_by_id(1)
        with pytest.raises(NotFoundError):
            catalog.get_artist_by_id(1)


class TestLyricUpdates:
    def test_synced_lyrics(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track())
        synced = "[00:01.00] Hello\n[00:02.00] World"
        plain = "Hello\nWorld"

        updated = catalog.update_track_synced_lyrics(track.id, synced, plain)

        fetched = catalog.get_track_by_id(track.id)
        assert fetched == updated
        assert fetched.synced_lyrics == synced
        assert fetched.plain_lyrics == plain
        assert fetched.instrumental is False

    def test_synced_lyrics_clear_instrumental(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track())
        catalog.update_track_instrumental(track.id)

        updated = catalog.update_track_synced_lyrics(track.id, "[00:01.00] Hi", "Hi")
        assert updated.instrumental is False

    def test_plain_lyrics_drop_synced(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(lrc_lyrics="[00:01.00] Old"))

        updated = catalog.update_track_plain_lyrics(track.id, "New words")
        assert updated.plain_lyrics == "New words"
        assert updated.synced_lyrics is None

    def test_instrumental(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track(txt_lyrics="words"))

        updated = catalog.update_track_instrumental(track.id)
        assert updated.instrumental is True
        assert updated.plain_lyrics is None
        assert updated.synced_lyrics == "[au: instrumental]"

    def test_blank_plain_lyrics_stored_as_null(self, catalog: Catalog, make_track) -> None:
        track = catalog.add_track(make_track())
        updated = catalog.update_track_synced_lyrics(track.id, "[00:01.00] Hi", "   ")
        assert updated.plain_lyrics is None

    def test_missing_track(self, catalog: Catalog) -> None:
        with pytest.raises(NotFoundError):
            catalog.update_track_plain_lyrics(12, "words")


class TestTrackIds:
    @pytest.fixture
    def tracks(self, catalog: Catalog, make_track) -> dict[str, int]:
        ids = {
            "synced": catalog.add_track(make_track("/m/s.mp3", lrc_lyrics="[00:01.00] a", txt_lyrics="a")).id,
            "plain": catalog.add_track(make_track("/m/p.mp3", txt_lyrics="a")).id,
            "instrumental": catalog.add_track(make_track("/m/i.mp3", lrc_lyrics="[au: instrumental]")).id,
            "none": catalog.add_track(make_track("/m/n.mp3")).id,
        }
        return ids

    def test_all(self, catalog: Catalog, tracks: dict[str, int]) -> None:
        assert sorted(catalog.get_track_ids()) == sorted(tracks.values())

    @pytest.mark.parametrize("excluded", ["synced", "plain", "instrumental", "none"])
    def test_exclude_one_kind(self, catalog: Catalog, tracks: dict[str, int], excluded: str) -> None:
        flags = {
            "synced_lyrics": excluded != "synced",
            "plain_lyrics": excluded != "plain",
            "instrumental": excluded != "instrumental",
            "no_lyrics": excluded != "none",
        }
        expected = sorted(v for k, v in tracks.items() if k != excluded)
        assert sorted(catalog.get_track_ids(**flags)) == expected
