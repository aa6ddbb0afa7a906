"""
Module with an RPC service that serves a local directory as a remote store.

Every URI is mapped onto the served directory by its path component, so
hdfs://namenode:8020/user/alice/data.csv refers to <root>/user/alice/data.csv. The
scheme and authority are only meaningful to the clients.
"""

from __future__ import annotations

from dataclasses import dataclass
import errno
import os
import shutil
import stat
from typing import List, Optional

import lz4.frame

import hdfsfs.constants as constants
from hdfsfs.client import ResourceInformation
from hdfsfs.errors import MalformedPathError
from hdfsfs.logger import log
from hdfsfs.path import RemotePath


@dataclass
class Chunk:
    """
    Block of file contents read from the store.

    Contents are compressed with LZ4 for transfer, which is fast enough to reduce
    bandwidth without adding noticeable latency to reads.
    """

    compressed_data: bytes
    size: int

    @staticmethod
    def from_data(data: bytes) -> Chunk:
        """Wrap raw file data into a Chunk object."""
        return Chunk(compressed_data=lz4.frame.compress(data), size=len(data))

    @property
    def data(self) -> bytes:
        """Retrieve and decompress the original file data."""
        return lz4.frame.decompress(self.compressed_data)


class RemoteStoreService:
    """RPC service that exposes the resources in a directory."""

    def __init__(self, root: str):
        """Instantiate the service for the given directory."""
        self._root = os.path.realpath(os.path.expanduser(root))

    @staticmethod
    def get_protocol_version() -> str:
        return constants.PROTOCOL_VERSION

    def _resolve(self, uri: str) -> str:
        """Map a URI to the corresponding path within the served directory."""
        try:
            path = RemotePath.parse(uri).path
        except MalformedPathError as e:
            raise OSError(errno.EINVAL, str(e))

        local_path = os.path.join(self._root, path.lstrip("/"))

        # Don't follow symlinks out of the served directory
        real_path = os.path.realpath(local_path)

        if os.path.commonpath([real_path, self._root]) != self._root:
            raise PermissionError(errno.EACCES, f"{uri} is outside of the store")

        return local_path

    @staticmethod
    def _information(name: str, st: os.stat_result) -> ResourceInformation:
        return ResourceInformation(
            name=name,
            is_folder=stat.S_ISDIR(st.st_mode),
            size=0 if stat.S_ISDIR(st.st_mode) else st.st_size,
            last_modified_time=st.st_mtime_ns // 1_000_000,
        )

    #
    # Metadata
    #

    def list_resources(self, uri: str) -> List[ResourceInformation]:
        resources = []

        with os.scandir(self._resolve(uri)) as it:
            for entry in it:
                try:
                    resources.append(self._information(entry.name, entry.stat()))
                except FileNotFoundError:
                    # Dangling symlink, or the entry was removed while listing
                    log.debug(f"skipping vanished entry {entry.path}")

        return resources

    def get_resource_information(self, uri: str) -> Optional[ResourceInformation]:
        local_path = self._resolve(uri)

        try:
            st = os.stat(local_path)
        except FileNotFoundError:
            return None

        return self._information(RemotePath.parse(uri).last_segment(), st)

    def set_resource_information(self, uri: str, info: ResourceInformation) -> None:
        local_path = self._resolve(uri)
        st = os.stat(local_path)

        if info.is_folder != stat.S_ISDIR(st.st_mode):
            log.warning(f"ignoring request to change folder flag of {uri}")

        if info.last_modified_time > 0:
            mtime_ns = info.last_modified_time * 1_000_000
            os.utime(local_path, ns=(st.st_atime_ns, mtime_ns))

    #
    # File contents
    #

    def open_read(self, uri: str) -> int:
        local_path = self._resolve(uri)

        if os.path.isdir(local_path):
            raise IsADirectoryError(errno.EISDIR, f"{uri} is a folder")

        return os.open(local_path, os.O_RDONLY)

    def open_write(self, uri: str) -> int:
        return os.open(self._resolve(uri), os.O_WRONLY | os.O_TRUNC)

    def create(self, uri: str) -> int:
        local_path = self._resolve(uri)
        os.makedirs(os.path.dirname(local_path), exist_ok=True)

        return os.open(local_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)

    @staticmethod
    def read(fh: int, offset: int, size: int) -> Chunk:
        return Chunk.from_data(os.pread(fh, size, offset))

    @staticmethod
    def write(fh: int, offset: int, data: bytes) -> int:
        return os.pwrite(fh, data, offset)

    @staticmethod
    def release(fh: int) -> None:
        os.close(fh)

    #
    # Structure
    #

    def delete(self, uri: str) -> None:
        local_path = self._resolve(uri)

        if os.path.realpath(local_path) == self._root:
            raise PermissionError(errno.EPERM, "cannot delete the root of the store")

        if os.path.isdir(local_path) and not os.path.islink(local_path):
            shutil.rmtree(local_path)
        else:
            os.unlink(local_path)

    def mkdirs(self, uri: str) -> bool:
        try:
            os.makedirs(self._resolve(uri), exist_ok=True)
        except (FileExistsError, NotADirectoryError):
            # A file is in the way of the folder or one of its parents
            return False

        return True
