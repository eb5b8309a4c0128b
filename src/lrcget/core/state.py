from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from PySide6.QtCore import QObject, QStandardPaths, Signal, Slot

from lrcget.db.database import Catalog, initialize_database
from lrcget.library.indexer import LibraryIndexer
from lrcget.workers.library_scanner import LibraryScanner


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    data_dir: str
    log_level: str = "INFO"
    max_workers: int = 4
    debug_schema: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        data_dir = env.get("LRCGET_DATA_DIR") or QStandardPaths.writableLocation(
            QStandardPaths.AppDataLocation
        )
        try:
            max_workers = max(1, int(env.get("LRCGET_MAX_WORKERS", "4")))
        except ValueError:
            max_workers = 4

        return cls(
            data_dir=data_dir,
            log_level=(env.get("LRCGET_LOG_LEVEL") or "INFO").upper(),
            max_workers=max_workers,
            debug_schema=_env_flag(env.get("LRCGET_DEBUG_SCHEMA")),
        )


@dataclass(frozen=True)
class Notify:
    message: str
    notify_type: str = "info"   # info/success/warn/error


class AppState(QObject):
    notification = Signal(object)   # emits Notify
    status_changed = Signal(str)
    scan_progress = Signal(int, int)  # current, total

    def __init__(self, settings: Settings, log: logging.Logger | None = None):
        super().__init__()
        self.settings = settings
        self.log = log or logging.getLogger("lrcget")
        self.db: Optional[Catalog] = None
        self.indexer: Optional[LibraryIndexer] = None

    def open_catalog(self) -> Catalog:
        self.db = initialize_database(self.settings.data_dir, self.log)
        self.indexer = LibraryIndexer(self.db, self.log, max_workers=self.settings.max_workers)
        return self.db

    def start_scan(self, refresh: bool = False) -> LibraryScanner:
        """Build a scanner thread whose progress and outcome are relayed by this state."""
        scanner = LibraryScanner(self.indexer, refresh=refresh)
        scanner.progress_signal.connect(self.scan_progress)
        scanner.finished_signal.connect(self._on_scan_finished)
        self.status_changed.emit("Scanning library...")
        return scanner

    @Slot(bool, str)
    def _on_scan_finished(self, ok: bool, message: str) -> None:
        self.status_changed.emit(message)
        self.notify(message, "success" if ok else "error")

    def close(self) -> None:
        if self.db is not None:
            self.db.close()
        self.db = None
        self.indexer = None

    @Slot(str, str)
    def notify(self, message: str, notify_type: str = "info"):
        self.notification.emit(Notify(message=message, notify_type=notify_type))
