# errors.py
from __future__ import annotations


class ShiftError(Exception):
    """Base class for everything the shift engine raises."""


class InvalidInput(ShiftError):
    """Malformed or impossible timestamps/pauses (e.g. end before start)."""


class InvalidTransition(ShiftError):
    """A state change that is not legal from the shift's current status."""


class StorageError(ShiftError):
    """Persistence failures. Reported upward, never retried here."""


class LoadError(StorageError):
    pass


class SaveError(StorageError):
    pass


class DeleteError(StorageError):
    pass


__all__ = [
    "ShiftError",
    "InvalidInput",
    "InvalidTransition",
    "StorageError",
    "LoadError",
    "SaveError",
    "DeleteError",
]
