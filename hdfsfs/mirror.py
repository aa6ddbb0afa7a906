"""Module that maps remote paths to their mirror in the local workspace."""

import os
from typing import BinaryIO

from hdfsfs.errors import LocalIOError
from hdfsfs.path import RemotePath
from hdfsfs.sessions import Session


class LocalMirror:
    """
    Local copy of selected remote files, rooted at the workspace directory.

    The mirror of a remote path lives at <workspace>/<project>/<relative path>, where
    the project and relative path are derived from the session that owns the path.
    """

    def __init__(self, workspace_root: str):
        """Instantiate the mirror for the given workspace directory."""
        self.workspace_root = os.path.expanduser(workspace_root)

    def resolve(self, path: RemotePath, session: Session) -> str:
        """Compute the local file path that mirrors the given remote path."""
        relative_path = path.relative_to(session.root)

        local_path = os.path.join(self.workspace_root, session.project_name)

        if relative_path:
            local_path = os.path.join(local_path, *relative_path.split("/"))

        return local_path

    @staticmethod
    def ensure_file(local_path: str) -> None:
        """Create an empty file (and its parent directories) if it doesn't exist."""
        try:
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
        except OSError as e:
            raise LocalIOError(local_path, str(e)) from e

        try:
            with open(local_path, "xb"):
                pass
        except FileExistsError:
            pass
        except OSError as e:
            raise LocalIOError(local_path, str(e)) from e

    @staticmethod
    def open_read(local_path: str) -> BinaryIO:
        try:
            return open(local_path, "rb")
        except OSError as e:
            raise LocalIOError(local_path, str(e)) from e

    @staticmethod
    def open_write(local_path: str) -> BinaryIO:
        try:
            return open(local_path, "wb")
        except OSError as e:
            raise LocalIOError(local_path, str(e)) from e
