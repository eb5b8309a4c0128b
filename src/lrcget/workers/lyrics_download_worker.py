# workers/lyrics_download_worker.py
from __future__ import annotations

import logging

from PySide6.QtCore import QThread, Signal

from lrcget.core.lrclib_client import LrcLibClient
from lrcget.library.indexer import LibraryIndexer

logger = logging.getLogger(__name__)


class LyricsDownloadWorker(QThread):
    progress_signal = Signal(str)
    finished_signal = Signal(bool, str, int)  # ok, msg, track_id

    def __init__(self, indexer: LibraryIndexer, track_id: int, client: LrcLibClient | None = None, parent=None):
        super().__init__(parent)
        self.indexer = indexer
        self.track_id = track_id
        self.client = client

    def run(self):
        try:
            self.progress_signal.emit("Querying LRCLIB...")
            track = self.indexer.download_lyrics(self.track_id, client=self.client)
        except Exception as e:
            logger.exception("Lyrics download for track %s failed", self.track_id)
            self.finished_signal.emit(False, f"Download failed: {e}", self.track_id)
            return

        if track is None:
            self.finished_signal.emit(False, "No lyrics found on LRCLIB for this track.", self.track_id)
        elif track.instrumental:
            self.finished_signal.emit(True, "Marked as instrumental.", self.track_id)
        elif track.synced_lyrics:
            self.finished_signal.emit(True, "Downloaded synced lyrics.", self.track_id)
        else:
            self.finished_signal.emit(True, "Downloaded plain lyrics.", self.track_id)
