from __future__ import annotations


class EnnoteError(Exception):
    """Base exception for ennote."""


class StorageError(EnnoteError):
    """Neither the durable store nor the session-only fallback could be opened."""


class StackTransportError(EnnoteError):
    """The stack service could not be reached or answered with an error."""


class InvalidNoteError(EnnoteError, ValueError):
    """Note content is blank."""
