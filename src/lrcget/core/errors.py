from __future__ import annotations


class LrcgetError(Exception):
    """Base class for every error raised by the library core."""


class NotFoundError(LrcgetError, KeyError):
    """A get-by-id lookup matched no row."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id

    def __str__(self) -> str:
        # KeyError quotes its message otherwise
        return str(self.args[0])


class StorageUnavailableError(LrcgetError):
    """The catalog could not be read or written (connection, disk, locking)."""


class IntegrityViolationError(StorageUnavailableError):
    """An identity lookup was ambiguous or a referenced row vanished."""


class MigrationFailedError(LrcgetError):
    """A schema migration step failed; the catalog must not be used."""

    def __init__(self, version: int, cause: BaseException):
        super().__init__(f"Migration to database version {version} failed: {cause}")
        self.version = version


class ExtractionFailedError(LrcgetError, ValueError):
    """One audio file could not be opened or its tags could not be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path


class DirectoryScanError(LrcgetError, OSError):
    """A configured directory could not be listed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot list directory {path}: {reason}")
        self.path = path


class ScanCancelledError(LrcgetError):
    """The scan was stopped through its cancel event."""


class LyricsProviderError(LrcgetError):
    """The lyrics service could not be reached or answered garbage."""
