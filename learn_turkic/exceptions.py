"""Exception classes raised by the learning core."""
from typing import Any, Dict, Optional


class TurkicCoreError(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class WordNotFoundError(TurkicCoreError):
    """A word id does not resolve to a dataset entry."""

    def __init__(self, word_id: int):
        super().__init__(f"Word {word_id} not found", {"word_id": word_id})
        self.word_id = word_id


class StorageError(TurkicCoreError):
    """Reading or writing the record/settings store failed."""
    pass


class SettingsError(TurkicCoreError):
    """Invalid change to learner settings."""
    pass


class DatasetError(TurkicCoreError):
    """The bundled word dataset could not be parsed."""
    pass
