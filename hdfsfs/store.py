"""
Module containing the file store, which presents a remote store as a file hierarchy.

A FileStore represents a single file or folder and is cheap to create: the host
framework instantiates one for every path it touches, and any number of them may exist
for the same path. Each one keeps its own copy of the remote metadata for its path,
which is fetched on first use and thrown away by any operation that may change it.

Most operations are forwarded to the remote client, but the workspace descriptor file
(.project) is special. It always lives in the local mirror of the project, even if the
rest of the tree is remote, so that the workspace can be opened without a connection
to the remote store.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import os
from typing import Any, BinaryIO, Iterator, List, Optional

import hdfsfs.constants as constants
from hdfsfs.client import RemoteClient, ResourceInformation
from hdfsfs.errors import (
    FileStoreError,
    LocalIOError,
    MalformedPathError,
    NotConfiguredError,
    RemoteIOError,
)
from hdfsfs.logger import log
from hdfsfs.mirror import LocalMirror
from hdfsfs.path import RemotePath
from hdfsfs.sessions import Session, SessionRegistry


@dataclass
class FileInfo:
    """
    Metadata of a file or folder as reported to the host.

    If the entry doesn't exist, then its length and modification time are always zero.
    """

    name: str
    exists: bool = False
    is_directory: bool = False
    length: int = 0

    # Milliseconds since the epoch
    last_modified: int = 0


class FileStore:
    """A file or folder in the remote store, along with its local mirror."""

    def __init__(
        self,
        path: RemotePath,
        registry: SessionRegistry,
        client: RemoteClient,
        mirror: LocalMirror,
        descriptor_name: str = constants.DESCRIPTOR_NAME,
    ):
        """Instantiate the file store for a path with its collaborators."""
        self._path = path
        self._registry = registry
        self._client = client
        self._mirror = mirror
        self._descriptor_name = descriptor_name

        self._session: Optional[Session] = None
        self._info: Optional[FileInfo] = None
        self._local_file: Optional[str] = None

    @property
    def path(self) -> RemotePath:
        return self._path

    @property
    def session(self) -> Optional[Session]:
        """Return the session this path belongs to, or None if it isn't configured."""
        if self._session is None:
            self._session = self._registry.resolve_session(self.to_uri())

        return self._session

    #
    # Path classification
    #

    def is_descriptor(self) -> bool:
        """Return whether this is the workspace descriptor file."""
        return self.get_name() == self._descriptor_name

    def is_session_root(self) -> bool:
        """Return whether this path is the configured root of its session."""
        session = self.session

        return session is not None and session.root == self._path

    #
    # Navigation
    #

    def _store(self, path: RemotePath) -> FileStore:
        return FileStore(
            path, self._registry, self._client, self._mirror, self._descriptor_name
        )

    def get_child(self, name: str) -> FileStore:
        log.debug(f"[{self._path}]: get_child(): {name}")
        return self._store(self._path.append(name))

    def get_parent(self) -> Optional[FileStore]:
        log.debug(f"[{self._path}]: get_parent()")

        try:
            return self._store(self._path.parent())
        except MalformedPathError as e:
            log.warning(e.message)
            return None

    def get_name(self) -> str:
        return self._path.last_segment()

    def to_uri(self) -> str:
        return str(self._path)

    #
    # Metadata
    #

    @contextmanager
    def _remote_io(self, operation: str) -> Iterator[None]:
        """Wrap transport and protocol failures of the remote client."""
        try:
            yield
        except OSError as e:
            log.error(f"unable to {operation}: {self._path}")
            raise RemoteIOError(self.to_uri(), str(e)) from e

    def child_names(self, progress: Any = None) -> List[str]:
        """
        List the names of the entries in this folder.

        A path that isn't part of any session has no children.
        """
        names: List[str] = []

        if self.session is not None:
            with self._remote_io("list"):
                resources = self._client.list_resources(self.to_uri())

            for resource in resources:
                name = getattr(resource, "name", None)

                if isinstance(name, str) and name and "/" not in name:
                    names.append(name)

        log.debug(f"[{self._path}]: child_names(): {names}")

        return names

    def fetch_info(self, progress: Any = None) -> FileInfo:
        """Retrieve the (cached) metadata of this entry."""
        if self._info is None:
            with self._registry.operation(self.to_uri()):
                self._info = self._load_info()

        log.debug(f"[{self._path}]: fetch_info(): {self._info}")

        return self._info

    def _load_info(self) -> FileInfo:
        info = FileInfo(name=self.get_name())

        if self.session is None:
            # No session, so the entry doesn't exist anywhere
            return info

        if self.is_descriptor():
            local_file = self._require_local_file()

            try:
                st = os.stat(local_file)
            except FileNotFoundError:
                return info
            except OSError as e:
                raise LocalIOError(local_file, str(e)) from e

            info.exists = True
            info.length = st.st_size
            info.last_modified = st.st_mtime_ns // 1_000_000

            return info

        with self._remote_io("fetch info"):
            resource = self._client.get_resource_information(self.to_uri())

        if resource is not None:
            info.name = resource.name
            info.exists = True
            info.is_directory = resource.is_folder
            info.length = resource.size
            info.last_modified = resource.last_modified_time

        return info

    def put_info(self, info: FileInfo, progress: Any = None) -> None:
        """Update the folder flag and modification time of this entry."""
        log.debug(f"[{self._path}]: put_info(): {info}")

        resource = ResourceInformation(
            name="", is_folder=info.is_directory, last_modified_time=info.last_modified
        )

        self.invalidate_cache()

        with self._remote_io("update info"):
            self._client.set_resource_information(self.to_uri(), resource)

    def invalidate_cache(self) -> None:
        """
        Forget the cached metadata.

        Must be called by every operation that may change the entry on the remote store
        (or in the local mirror), so that the next fetch_info() retrieves it again.
        """
        log.debug(f"[{self._path}]: invalidate_cache()")
        self._info = None

    #
    # Local mirror
    #

    def local_file(self) -> Optional[str]:
        """Return the path of the local mirror of this entry, if it has a session."""
        if self._local_file is None:
            session = self.session

            if session is not None:
                self._local_file = self._mirror.resolve(self._path, session)
            else:
                log.error(f"no session associated with uri: {self._path}")

        log.debug(f"[{self._path}]: local_file(): {self._local_file}")

        return self._local_file

    def _require_local_file(self) -> str:
        local_file = self.local_file()

        if local_file is None:
            raise NotConfiguredError(self.to_uri(), "no session for local mirror")

        return local_file

    def is_local_file(self) -> bool:
        """Return whether the local mirror of this entry exists."""
        try:
            local_file = self.local_file()
            return local_file is not None and os.path.exists(local_file)
        except FileStoreError as e:
            log.debug(f"unable to determine if file is local: {e}")

        return False

    #
    # Contents
    #

    def open_input_stream(self, progress: Any = None) -> BinaryIO:
        """Open this file for reading."""
        log.debug(f"[{self._path}]: open_input_stream()")

        if self.is_descriptor():
            local_file = self._require_local_file()

            self._mirror.ensure_file(local_file)
            return self._mirror.open_read(local_file)

        with self._remote_io("open for reading"):
            return self._client.open_input_stream(self.to_uri(), progress)

    def open_output_stream(self, progress: Any = None) -> BinaryIO:
        """
        Open this file for writing, replacing its contents.

        The remote store distinguishes between overwriting an existing file and
        creating a new one, so which of the two happens depends on whether the file
        currently exists.
        """
        log.debug(f"[{self._path}]: open_output_stream()")

        if self.is_descriptor():
            local_file = self._require_local_file()

            self._mirror.ensure_file(local_file)
            self.invalidate_cache()

            return self._mirror.open_write(local_file)

        exists = self.fetch_info(progress).exists
        self.invalidate_cache()

        with self._remote_io("open for writing"):
            if exists:
                return self._client.open_output_stream(self.to_uri(), progress)
            else:
                return self._client.create_output_stream(self.to_uri(), progress)

    #
    # Structure
    #

    def mkdir(self, progress: Any = None) -> Optional[FileStore]:
        """
        Create this folder and any missing parents.

        Returns None if the remote store refused to create the folder.
        """
        log.debug(f"[{self._path}]: mkdir()")

        self.invalidate_cache()

        with self._remote_io("mkdir"):
            created = self._client.mkdirs(self.to_uri(), progress)

        return self if created else None

    def delete(self, progress: Any = None) -> None:
        """
        Delete this entry from the remote store.

        Paths without a session and session roots are never deleted remotely. Deleting
        them only disconnects the project from the remote store.
        """
        log.debug(f"[{self._path}]: delete()")

        if self.session is None:
            log.debug(f"[{self._path}]: no session, disconnecting only")
            return

        if self.is_session_root():
            log.debug(f"[{self._path}]: session root, disconnecting only")
            return

        self.invalidate_cache()

        with self._remote_io("delete"):
            self._client.delete(self.to_uri(), progress)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, FileStore) and self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"FileStore({self.to_uri()!r})"
