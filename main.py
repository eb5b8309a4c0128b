import logging
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from lrcget.core.errors import MigrationFailedError, StorageUnavailableError
from lrcget.core.state import AppState, Settings

logger = logging.getLogger("lrcget")


def debug_print_schema(db) -> None:
    for table in ("tracks", "albums", "artists"):
        print(f"\n[{table} table schema]")
        for name, col_type in db.describe_table(table):
            print(f"- {name} ({col_type})")


def init_app_state(settings: Settings) -> AppState:
    app_state = AppState(settings, logger)
    db = app_state.open_catalog()

    if settings.debug_schema:
        debug_print_schema(db)

    return app_state


def main() -> int:
    qt_app = QCoreApplication(sys.argv)
    qt_app.setApplicationName("pylrcget")

    # AppDataLocation depends on the application name
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        app_state = init_app_state(settings)
    except (MigrationFailedError, StorageUnavailableError) as e:
        logger.critical("Cannot open the library database: %s", e)
        return 1

    if app_state.db.get_init():
        logger.info("Library already initialized: %d tracks", app_state.db.count_tracks())
        app_state.close()
        return 0

    result = {"ok": False}

    def on_progress(scanned: int, total: int) -> None:
        logger.info("Scanned %d/%d files", scanned, total)

    def on_finished(ok: bool, message: str) -> None:
        result["ok"] = ok
        if ok:
            logger.info(message)
        else:
            logger.error(message)

    app_state.scan_progress.connect(on_progress)
    scanner = app_state.start_scan()
    scanner.finished_signal.connect(on_finished)
    # queued to the main thread, so it lands even if the scan ends before exec()
    scanner.finished.connect(qt_app.quit)
    scanner.start()

    qt_app.exec()
    scanner.wait()
    app_state.close()
    return 0 if result["ok"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
