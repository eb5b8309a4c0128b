# library/scan_library.py
from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator

from lrcget.core.errors import DirectoryScanError

logger = logging.getLogger(__name__)

AUDIO_EXTS = {".mp3", ".m4a", ".flac", ".ogg", ".opus", ".wav", ".aac", ".wma"}


def is_audio_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in AUDIO_EXTS


def _raise_scan_error(error: OSError) -> None:
    raise DirectoryScanError(error.filename or "", error.strerror or str(error)) from error


def iter_audio_paths(directories: Iterable[str]) -> Iterator[str]:
    """
    Yield every audio file under the given directories.

    Directory entries are visited in sorted order so two scans of the same
    tree yield the same sequence. A root that doesn't exist, or any folder
    that can't be listed, raises DirectoryScanError.
    """
    for root in directories:
        if not root or not os.path.isdir(root):
            raise DirectoryScanError(root, "not a directory")

        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_scan_error):
            dirnames.sort()
            for fn in sorted(filenames):
                if is_audio_file(fn):
                    yield os.path.join(dirpath, fn)


def count_files(directories: Iterable[str]) -> int:
    files_count = sum(1 for _ in iter_audio_paths(directories))
    logger.info("Files count: %d", files_count)
    return files_count
