"""Module containing the path model for resources in the remote store."""

from __future__ import annotations

from typing import Any, Tuple
from urllib.parse import urlsplit

from hdfsfs.errors import InvalidSegmentError, MalformedPathError, PathResolutionError


class RemotePath:
    """
    Immutable, normalized URI of a resource in the remote store.

    A path consists of an optional "scheme://authority" prefix and an absolute,
    slash-separated path, like hdfs://namenode:8020/user/alice/data.csv. Empty and "."
    segments are dropped and ".." segments are resolved upon construction, so two paths
    are equal if and only if their string forms are equal.
    """

    __slots__ = ("_prefix", "_segments")

    def __init__(self, prefix: str, segments: Tuple[str, ...] = ()):
        """Instantiate from an already normalized prefix and path segments."""
        self._prefix = prefix
        self._segments = segments

    @staticmethod
    def parse(uri: str) -> RemotePath:
        """Parse and normalize a path from a URI string."""
        parts = urlsplit(uri)

        if parts.query or parts.fragment:
            raise MalformedPathError(uri, "query and fragment are not supported")
        elif bool(parts.scheme) != bool(parts.netloc):
            raise MalformedPathError(uri, "expected both a scheme and an authority")

        path = parts.path or "/"

        if not path.startswith("/"):
            raise MalformedPathError(uri, "expected an absolute path")

        prefix = f"{parts.scheme}://{parts.netloc}" if parts.scheme else ""

        return RemotePath(prefix, RemotePath._normalize(path))

    @staticmethod
    def _normalize(path: str) -> Tuple[str, ...]:
        segments = []

        for segment in path.split("/"):
            if segment in ("", "."):
                continue
            elif segment == "..":
                # Going above the root stays at the root, like POSIX paths
                if segments:
                    segments.pop()
            else:
                segments.append(segment)

        return tuple(segments)

    @property
    def is_root(self) -> bool:
        """Return whether this is the root of the store."""
        return len(self._segments) == 0

    @property
    def store_root(self) -> RemotePath:
        """Return the root of the store that this path belongs to."""
        return RemotePath(self._prefix)

    @property
    def path(self) -> str:
        """Return the path component without the scheme and authority."""
        return "/" + "/".join(self._segments)

    def append(self, name: str) -> RemotePath:
        """Return the path of the child entry with the given name."""
        if not name or name in (".", "..") or "/" in name:
            raise InvalidSegmentError(str(self), f"invalid path segment {name!r}")

        return RemotePath(self._prefix, self._segments + (name,))

    def parent(self) -> RemotePath:
        """Return the path with the last segment removed."""
        if self.is_root:
            raise MalformedPathError(str(self), "root has no parent")

        return RemotePath(self._prefix, self._segments[:-1])

    def last_segment(self) -> str:
        """Return the name of the final path component, or "/" for the root."""
        if self.is_root:
            return "/"

        return self._segments[-1]

    def is_under(self, root: RemotePath) -> bool:
        """Return whether this path is equal to or nested within the given root."""
        return (
            self._prefix == root._prefix
            and self._segments[: len(root._segments)] == root._segments
        )

    def relative_to(self, root: RemotePath) -> str:
        """
        Compute the relative path from the given root to this path.

        The result has no leading slash and is empty for the root itself.
        """
        if not self.is_under(root):
            raise PathResolutionError(str(self), f"not located under {root}")

        return "/".join(self._segments[len(root._segments) :])

    def __str__(self) -> str:
        return self._prefix + self.path

    def __repr__(self) -> str:
        return f"RemotePath({str(self)!r})"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, RemotePath) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))
