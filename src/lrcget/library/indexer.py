# library/indexer.py
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional

from mutagen._util import MutagenError

from lrcget.core.embed_lyrics import embed_lyrics_for_track
from lrcget.core.errors import ExtractionFailedError, ScanCancelledError
from lrcget.core.lrclib_client import LrcLibClient
from lrcget.core.models import FsTrack, LyricsKind, LyricsResponse, ScanProgress
from lrcget.db.database import Catalog
from lrcget.db.models import Track
from lrcget.library import scan_library
from lrcget.library.fs_track import new_fs_track_from_path

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

ProgressCallback = Callable[[ScanProgress], None]


class LibraryIndexer:
    """
    Walks the configured directories and fills the catalog.

    Extraction of one batch may run on a thread pool; tracks are always
    persisted one at a time, in traversal order, on the calling thread.
    """

    def __init__(self, catalog: Catalog, log: logging.Logger | None = None, max_workers: int = 1):
        self.catalog = catalog
        self.max_workers = max(1, int(max_workers))
        self._log = log or logger

    # -------------------------------
    # SCANNING
    # -------------------------------
    def count_files(self, directories: Iterable[str]) -> int:
        return scan_library.count_files(directories)

    def _check_cancelled(self, cancel_event: threading.Event | None, files_done: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            self._log.info("Scan cancelled after %d files", files_done)
            raise ScanCancelledError(f"Scan cancelled after {files_done} files")

    def _extract(self, path: str, cancel_event: threading.Event | None = None) -> Optional[FsTrack]:
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError(path)
        try:
            return new_fs_track_from_path(path)
        except ExtractionFailedError as e:
            self._log.warning("Skipping %s: %s", path, e)
            return None

    def _extract_batch(
        self, paths: List[str], cancel_event: threading.Event | None = None
    ) -> List[Optional[FsTrack]]:
        if self.max_workers == 1 or len(paths) == 1:
            return [self._extract(p, cancel_event) for p in paths]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda p: self._extract(p, cancel_event), paths))

    def scan(
        self,
        directories: Iterable[str],
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> List[Track]:
        directories = list(directories)
        start_time = time.time()
        files_count = self.count_files(directories)

        tracks: List[Track] = []
        files_scanned = 0
        batch: List[str] = []

        def flush() -> None:
            nonlocal files_scanned
            try:
                candidates = self._extract_batch(batch, cancel_event)
            except ScanCancelledError:
                self._check_cancelled(cancel_event, files_scanned)
                raise
            for offset, candidate in enumerate(candidates):
                self._check_cancelled(cancel_event, files_scanned + offset)
                if candidate is not None:
                    tracks.append(self.catalog.add_track(candidate))
            files_scanned += len(batch)
            batch.clear()
            if progress:
                progress(ScanProgress(files_scanned, files_count, len(tracks)))

        for path in scan_library.iter_audio_paths(directories):
            self._check_cancelled(cancel_event, files_scanned + len(batch))
            batch.append(path)
            if len(batch) == BATCH_SIZE:
                flush()

        if batch:
            flush()

        self._log.info(
            "==> Scanning %d files took: %dms (%d tracks)",
            files_scanned, int((time.time() - start_time) * 1000), len(tracks),
        )
        return tracks

    def initialize_library(
        self,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> List[Track]:
        directories = self.catalog.get_directories()
        self._log.info("Initializing library from %s", directories)
        tracks = self.scan(directories, progress=progress, cancel_event=cancel_event)
        self.catalog.set_init(True)
        return tracks

    def refresh_library(
        self,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> List[Track]:
        self.catalog.set_init(False)
        self.catalog.clean_library()
        return self.initialize_library(progress=progress, cancel_event=cancel_event)

    # -------------------------------
    # LYRICS
    # -------------------------------
    def apply_lyrics_response(self, track_id: int, response: LyricsResponse) -> Track | None:
        """Store a provider answer on a track; None when there was nothing to store."""
        if response.kind is LyricsKind.SYNCED:
            return self.catalog.update_track_synced_lyrics(track_id, response.synced, response.plain)
        elif response.kind is LyricsKind.PLAIN:
            return self.catalog.update_track_plain_lyrics(track_id, response.plain)
        elif response.kind is LyricsKind.INSTRUMENTAL:
            return self.catalog.update_track_instrumental(track_id)
        elif response.kind is LyricsKind.NOT_FOUND:
            return None
        raise ValueError(f"Unknown lyrics response kind: {response.kind!r}")

    def download_lyrics(self, track_id: int, client: LrcLibClient | None = None) -> Track | None:
        config = self.catalog.get_config()
        track = self.catalog.get_track_by_id(track_id)

        own_client = client is None
        client = client or LrcLibClient(config.lrclib_instance)
        try:
            response = client.get_lyrics_for_track(track)
        finally:
            if own_client:
                client.close()

        updated = self.apply_lyrics_response(track_id, response)
        if updated is not None and config.try_embed_lyrics:
            try:
                embed_lyrics_for_track(updated)
            except (MutagenError, OSError) as e:
                self._log.warning("Could not embed lyrics into %s: %s", updated.file_path, e)
        return updated

    def tracks_needing_lyrics(self) -> List[int]:
        config = self.catalog.get_config()
        return self.catalog.get_track_ids(
            synced_lyrics=not config.skip_tracks_with_synced_lyrics,
            plain_lyrics=not config.skip_tracks_with_plain_lyrics,
            instrumental=False,
            no_lyrics=True,
        )
