"""
Exceptions raised by the file store and its collaborators.

Every failure that reaches the host is a FileStoreError carrying the path it happened
on. The original exception is always chained as __cause__ and its message preserved, so
nothing about the underlying failure is lost by wrapping it.

Absence (no session, no remote resource, mkdirs reporting false) is never expressed
with these exceptions. It's represented by None, an empty list or FileInfo with
exists=False instead.
"""

from typing import Optional


class FileStoreError(Exception):
    """Base class of all file store failures."""

    def __init__(self, path: Optional[str], message: str):
        """Instantiate with the failing path and a message describing the failure."""
        super().__init__(f"[{path}]: {message}" if path else message)

        self.path = path
        self.message = message


class RemoteIOError(FileStoreError):
    """Transport or protocol failure reported by the remote client."""

    @property
    def not_found(self) -> bool:
        """Return whether the remote store reported the resource as missing."""
        return isinstance(self.__cause__, FileNotFoundError)


class LocalIOError(FileStoreError):
    """Failure to create or access a file in the local mirror."""


class PathResolutionError(FileStoreError):
    """A path could not be expressed relative to another (e.g. different roots)."""


class NotConfiguredError(FileStoreError):
    """An operation that requires a session was used on an unconfigured path."""


class InvalidSegmentError(FileStoreError, ValueError):
    """A name that can't be used as a single path segment."""


class MalformedPathError(FileStoreError, ValueError):
    """A path that can't be parsed, or has no parent."""
