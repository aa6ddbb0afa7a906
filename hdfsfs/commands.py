"""Module that implements the commands of the command-line interface."""

from abc import ABC
import contextlib
import os
import shutil
import sys
from typing import BinaryIO, Optional
from urllib.parse import urlsplit

from hdfsfs.args import Arguments
from hdfsfs.client import RemoteClient
from hdfsfs.config import Config
from hdfsfs.logger import log
from hdfsfs.mirror import LocalMirror
from hdfsfs.path import RemotePath
from hdfsfs.remote import RpcRemoteClient
import hdfsfs.rpc as rpc
from hdfsfs.service import RemoteStoreService
from hdfsfs.sessions import SessionRegistry
from hdfsfs.store import FileStore


def _default_project(root: RemotePath) -> str:
    """Name a project after its root folder, or after the host for a store root."""
    if root.is_root:
        return urlsplit(str(root)).hostname or "default"

    return root.last_segment()


def _load_sessions(registry: SessionRegistry, filename: str) -> None:
    """Add the saved sessions to the registry, if any were saved."""
    try:
        registry.load(filename)
    except FileNotFoundError:
        log.debug(f"no saved sessions at {filename}")
    except Exception as e:
        log.error(f"failed to load saved sessions: {e}")


class Command(ABC):
    """Base class for the logic of a single command."""

    def __init__(self, args: Arguments, config: Config):
        """Initialize the command based on command-line arguments and config."""
        self._args = args
        self._config = config

    @property
    def _endpoint(self) -> str:
        return self._args.endpoint or self._config.client.endpoint

    @property
    def _token(self) -> Optional[str]:
        return self._args.token or self._config.client.token

    def run(self) -> int:
        """Run the command and clean up properly in case of errors."""
        with contextlib.ExitStack() as stack:
            return self._run(stack)

        # https://github.com/python/mypy/issues/7726
        assert False, "unreachable"

    def _run(self, stack: contextlib.ExitStack) -> int:
        """Run the actual command."""
        raise NotImplementedError()


class ServeCommand(Command):
    """Serve a directory as remote store until the process is interrupted."""

    def _run(self, stack: contextlib.ExitStack) -> int:
        service = RemoteStoreService(self._args.root)
        server = rpc.Server(service, self._token, self._args.workers)

        server.serve(self._endpoint)


class StoreCommand(Command):
    """Run a single file store operation against a remote store URI."""

    def __init__(
        self,
        args: Arguments,
        config: Config,
        client: Optional[RemoteClient] = None,
        output: Optional[BinaryIO] = None,
    ):
        """Initialize the command, optionally with a specific client and output."""
        super().__init__(args, config)

        self._client = client
        self._output = output or sys.stdout.buffer

    def _connect(self) -> RemoteClient:
        timeout = self._args.timeout or self._config.client.timeout

        client = RpcRemoteClient(self._endpoint, self._token, timeout)
        client.check_protocol()

        return client

    def _registry(self, path: RemotePath) -> SessionRegistry:
        """
        Create a session registry from the saved and configured sessions.

        If none of them covers the given path, then an ad-hoc session is added for the
        root of the store with a project named after its host.
        """
        registry = SessionRegistry()

        _load_sessions(registry, self._config.workspace.sessions)

        for session in self._config.sessions:
            registry.add_session(session.uri, session.project)

        uri = str(path)

        if registry.resolve_session(uri) is None:
            root = path.store_root

            log.info(f"no session configured for {uri}, using store root {root}")
            registry.add_session(str(root), _default_project(root))

        return registry

    def _run(self, stack: contextlib.ExitStack) -> int:
        path = RemotePath.parse(self._args.uri)
        client = self._client or self._connect()

        node = FileStore(
            path,
            self._registry(path),
            client,
            LocalMirror(self._config.workspace.root),
            self._config.workspace.descriptor,
        )

        return getattr(self, f"_{self._args.command}")(node, stack)

    def _write_line(self, line: str) -> None:
        self._output.write(f"{line}\n".encode())

    def _ls(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        for name in sorted(node.child_names()):
            self._write_line(name)

        return 0

    def _stat(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        info = node.fetch_info()

        if not info.exists:
            log.error(f"{node.to_uri()} does not exist")
            return 1

        kind = "folder" if info.is_directory else "file"

        self._write_line(f"name: {info.name}")
        self._write_line(f"type: {kind}")
        self._write_line(f"length: {info.length}")
        self._write_line(f"last modified: {info.last_modified}")

        return 0

    def _cat(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        stream = stack.enter_context(node.open_input_stream())
        shutil.copyfileobj(stream, self._output)

        return 0

    def _put(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        source = stack.enter_context(open(self._args.source, "rb"))
        destination = stack.enter_context(node.open_output_stream())

        shutil.copyfileobj(source, destination)

        return 0

    def _mkdir(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        if node.mkdir() is None:
            log.error(f"unable to create folder {node.to_uri()}")
            return 1

        return 0

    def _rm(self, node: FileStore, stack: contextlib.ExitStack) -> int:
        if node.is_session_root():
            log.warning(f"{node.to_uri()} is a session root, not deleting it")

        node.delete()

        return 0


class SessionCommand(Command):
    """Save or forget a session in the sessions file of the workspace."""

    def _run(self, stack: contextlib.ExitStack) -> int:
        filename = self._config.workspace.sessions
        root = RemotePath.parse(self._args.uri)

        registry = SessionRegistry()
        _load_sessions(registry, filename)

        if self._args.command == "connect":
            project = self._args.project or _default_project(root)
            registry.add_session(str(root), project)

            log.info(f"connected {root} to project {project}")
        elif registry.remove_session(str(root)) is None:
            log.error(f"no saved session for {root}")
            return 1

        os.makedirs(os.path.dirname(filename), exist_ok=True)
        registry.save(filename)

        return 0
