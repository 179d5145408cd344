# ology/errors.py
"""
Exception types raised by ology's internal helpers.

Public operations never let these escape: they are caught at the component
boundary and turned into a result record or a False/None return. They exist
so the boundary can tell what went wrong and report it.
"""

from typing import Optional


class OlogyError(Exception):
    """Base class for all ology errors."""


class DidError(OlogyError, ValueError):
    """A DID or KID string could not be parsed."""


class KeyPairError(OlogyError, ValueError):
    """Key material is malformed, unsupported, or inconsistent."""


class DocumentError(OlogyError, ValueError):
    """A fetched identity document does not have the expected shape."""


class RecordError(OlogyError, ValueError):
    """A stored or received record (article, config, list) is malformed."""


class FetchError(OlogyError, ConnectionError):
    """Fetching a remote document failed."""

    def __init__(self, message: str, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status
