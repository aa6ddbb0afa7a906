"""
Module defining the contract of the remote store client.

The file store depends on nothing but this narrow interface. Authentication, transport
and pagination of directory listings are all internal to the client implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, List, Optional


@dataclass
class ResourceInformation:
    """Information about a single file or folder in the remote store."""

    name: str
    is_folder: bool = False
    size: int = 0

    # Milliseconds since the epoch
    last_modified_time: int = 0


class RemoteClient(ABC):
    """
    Client for a remote store that is addressed by URI strings.

    Every operation may raise an OSError (or subclass thereof) for transport and
    protocol failures. The progress argument is an opaque token supplied by the caller
    and may be used by implementations to report progress or check for cancellation.
    """

    @abstractmethod
    def list_resources(self, uri: str) -> List[Optional[ResourceInformation]]:
        """List the direct children of a folder."""

    @abstractmethod
    def get_resource_information(self, uri: str) -> Optional[ResourceInformation]:
        """Retrieve information about a resource, or None if it doesn't exist."""

    @abstractmethod
    def set_resource_information(self, uri: str, info: ResourceInformation) -> None:
        """Update the folder flag and modification time of a resource."""

    @abstractmethod
    def open_input_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        """Open an existing file for reading."""

    @abstractmethod
    def open_output_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        """Open an existing file for writing, replacing its contents."""

    @abstractmethod
    def create_output_stream(self, uri: str, progress: Any = None) -> BinaryIO:
        """Create a new file and open it for writing."""

    @abstractmethod
    def delete(self, uri: str, progress: Any = None) -> None:
        """Delete a file or folder (including its contents)."""

    @abstractmethod
    def mkdirs(self, uri: str, progress: Any = None) -> bool:
        """Create a folder and any missing parents, returning whether it succeeded."""
