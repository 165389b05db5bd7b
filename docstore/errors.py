"""
Error taxonomy shared by the engine manager, the store and the HTTP layer.
"""

from __future__ import annotations

from typing import List, Sequence


class DocumentStoreError(Exception):
    """Base class for every error raised by the document store."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(DocumentStoreError):
    """Required configuration (e.g. the embedding credential) is missing."""


class EmbeddingError(DocumentStoreError):
    """The remote embedding call failed for at least one text."""


class EngineUnavailableError(DocumentStoreError):
    """No launch strategy produced a healthy vector engine."""

    def __init__(self, message: str = "", reasons: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.reasons: List[str] = list(reasons)


class EngineWriteError(DocumentStoreError):
    """The engine rejected a write (add/delete)."""


class EngineQueryError(DocumentStoreError):
    """The engine rejected a read (get/query/count)."""


class LaunchError(DocumentStoreError):
    """A single launch strategy failed; collected by the process manager."""


__all__ = [
    "DocumentStoreError",
    "ConfigurationError",
    "EmbeddingError",
    "EngineUnavailableError",
    "EngineWriteError",
    "EngineQueryError",
    "LaunchError",
]
