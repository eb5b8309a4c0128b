# workers/library_scanner.py
from __future__ import annotations

import logging
import threading

from PySide6.QtCore import QThread, Signal

from lrcget.core.errors import ScanCancelledError
from lrcget.core.models import ScanProgress
from lrcget.library.indexer import LibraryIndexer

logger = logging.getLogger(__name__)


class LibraryScanner(QThread):
    progress_signal = Signal(int, int)     # scanned, total
    finished_signal = Signal(bool, str)    # ok, message

    def __init__(self, indexer: LibraryIndexer, refresh: bool = False, parent=None):
        super().__init__(parent)
        self.indexer = indexer
        self.refresh = refresh
        self.cancel_event = threading.Event()

    def stop(self) -> None:
        self.cancel_event.set()

    def _emit_progress(self, progress: ScanProgress) -> None:
        self.progress_signal.emit(progress.files_scanned, progress.files_count or 0)

    def run(self):
        scan = self.indexer.refresh_library if self.refresh else self.indexer.initialize_library
        try:
            tracks = scan(progress=self._emit_progress, cancel_event=self.cancel_event)
        except ScanCancelledError:
            self.finished_signal.emit(False, "Scan cancelled.")
            return
        except Exception as e:
            # thread boundary: report instead of dying silently
            logger.exception("Library scan failed")
            self.finished_signal.emit(False, f"Scan failed: {e}")
            return

        self.finished_signal.emit(True, f"Library scanning complete! {len(tracks)} tracks indexed.")
