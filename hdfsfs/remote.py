"""Module implementing the remote client on top of RemoteStoreService over RPC."""

from contextlib import contextmanager
import errno
import io
from typing import Any, BinaryIO, Iterator, List, Optional

import semver

import hdfsfs.constants as constants
from hdfsfs.client import RemoteClient, ResourceInformation
from hdfsfs.logger import log
import hdfsfs.rpc as rpc
from hdfsfs.service import RemoteStoreService

# Number of bytes transferred per read or write call
CHUNK_SIZE = 1024 * 1024


def _report(progress: Any, size: int) -> None:
    # Progress tokens that aren't callable are opaque to this client
    if callable(progress):
        progress(size)


class RemoteInputStream(io.RawIOBase):
    """Readable stream over a file handle opened by the remote store service."""

    def __init__(self, client: rpc.Client, fh: int, progress: Any = None):
        """Instantiate for an already opened file handle."""
        super().__init__()

        self._client = client
        self._fh = fh
        self._offset = 0
        self._progress = progress

    def readable(self) -> bool:
        return True

    def _read_chunk(self, size: int) -> bytes:
        data = self._client.read(self._fh, self._offset, size).data
        self._offset += len(data)

        _report(self._progress, len(data))

        return data

    def readinto(self, buffer: Any) -> int:
        data = self._read_chunk(len(buffer))
        buffer[: len(data)] = data

        return len(data)

    def readall(self) -> bytes:
        chunks = []

        while True:
            data = self._read_chunk(CHUNK_SIZE)

            if not data:
                break

            chunks.append(data)

        return b"".join(chunks)

    def close(self) -> None:
        if not self.closed:
            try:
                self._client.release(self._fh)
            finally:
                super().close()


class RemoteOutputStream(io.RawIOBase):
    """Writable stream over a file handle opened by the remote store service."""

    def __init__(self, client: rpc.Client, fh: int, progress: Any = None):
        """Instantiate for an already opened file handle."""
        super().__init__()

        self._client = client
        self._fh = fh
        self._offset = 0
        self._progress = progress

    def writable(self) -> bool:
        return True

    def write(self, data: Any) -> int:
        written = self._client.write(self._fh, self._offset, bytes(data))
        self._offset += written

        _report(self._progress, written)

        return written

    def close(self) -> None:
        if not self.closed:
            try:
                self._client.release(self._fh)
            finally:
                super().close()


@contextmanager
def _authenticated() -> Iterator[None]:
    """Report a rejected authentication token as a permission failure."""
    try:
        yield
    except rpc.InvalidTokenError as e:
        raise PermissionError(errno.EACCES, str(e)) from e


class RpcRemoteClient(RemoteClient):
    """
    Remote client that talks to a RemoteStoreService.

    A callable progress token is invoked with the number of bytes transferred after
    every read or write. Any other kind of token is ignored.
    """

    def __init__(
        self, endpoint: str, token: Optional[str] = None, timeout_ms: int = -1
    ):
        """Instantiate a client for the service at the given endpoint."""
        self._client = rpc.Client(RemoteStoreService, endpoint, token, timeout_ms)

    def check_protocol(self) -> None:
        """Verify that the service speaks a compatible protocol version."""
        with _authenticated():
            remote_version = self._client.get_protocol_version()

        remote = semver.VersionInfo.parse(remote_version)
        local = semver.VersionInfo.parse(constants.PROTOCOL_VERSION)

        if remote.major != local.major:
            raise ConnectionError(f"incompatible protocol ({remote} != {local})")

        log.debug(f"remote store speaks protocol {remote}")

    def list_resources(self, uri: str) -> List[Optional[ResourceInformation]]:
        with _authenticated():
            return self._client.list_resources(uri)

    def get_resource_information(self, uri: str) -> Optional[ResourceInformation]:
        with _authenticated():
            return self._client.get_resource_information(uri)

    def set_resource_information(self, uri: str, info: ResourceInformation) -> None:
        with _authenticated():
            self._client.set_resource_information(uri, info)

    def open_input_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        with _authenticated():
            fh = self._client.open_read(uri)

        raw = RemoteInputStream(self._client, fh, progress)

        return io.BufferedReader(raw, buffer_size=CHUNK_SIZE)  # type: ignore

    def open_output_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        with _authenticated():
            fh = self._client.open_write(uri)

        raw = RemoteOutputStream(self._client, fh, progress)

        return io.BufferedWriter(raw, buffer_size=CHUNK_SIZE)  # type: ignore

    def create_output_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        with _authenticated():
            fh = self._client.create(uri)

        raw = RemoteOutputStream(self._client, fh, progress)

        return io.BufferedWriter(raw, buffer_size=CHUNK_SIZE)  # type: ignore

    def delete(self, uri: str, progress: Any = None) -> None:
        with _authenticated():
            self._client.delete(uri)

    def mkdirs(self, uri: str, progress: Any = None) -> bool:
        with _authenticated():
            return self._client.mkdirs(uri)
