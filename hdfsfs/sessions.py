"""
Module that keeps track of the configured connections to remote store roots.

A session binds a remote root, like hdfs://namenode:8020/user/alice, to a project in
the local workspace. Any path nested within that root belongs to the session, and the
project determines where the local mirror for those paths lives.
"""

from __future__ import annotations

import collections
from contextlib import contextmanager
from dataclasses import dataclass
import threading
from typing import Dict, Iterator, List, Optional

import fasteners

from hdfsfs.errors import MalformedPathError
from hdfsfs.logger import log
from hdfsfs.path import RemotePath
import hdfsfs.rpc as rpc


@dataclass
class Session:
    """Configured connection to one remote store root."""

    uri: str
    project_name: str

    @property
    def root(self) -> RemotePath:
        """Return the remote root as a path."""
        return RemotePath.parse(self.uri)


class SessionRegistry:
    """
    Registry that resolves paths to the session they belong to.

    It also keeps an advisory "busy" marker per path that is set while a metadata
    request for that path is in flight. The marker is bookkeeping for diagnostics and
    throttling only. It does not provide mutual exclusion.
    """

    def __init__(self) -> None:
        """Instantiate an empty registry."""
        self._sessions: Dict[RemotePath, Session] = {}
        self._sessions_lock = threading.Lock()

        self._busy: Dict[str, int] = collections.defaultdict(int)
        self._busy_lock = threading.Lock()

        self._encoding = rpc.Encoding(Session)

    #
    # Session management
    #

    def add_session(self, uri: str, project_name: str) -> Session:
        """Register a session for the remote root at the given URI."""
        root = RemotePath.parse(uri)
        session = Session(uri=str(root), project_name=project_name)

        with self._sessions_lock:
            self._sessions[root] = session

        log.debug(f"added session {session}")

        return session

    def remove_session(self, uri: str) -> Optional[Session]:
        """Forget the session for the remote root at the given URI, if any."""
        with self._sessions_lock:
            return self._sessions.pop(RemotePath.parse(uri), None)

    def sessions(self) -> List[Session]:
        """Return all registered sessions."""
        with self._sessions_lock:
            return list(self._sessions.values())

    def resolve_session(self, uri: str) -> Optional[Session]:
        """
        Find the session that the given path belongs to.

        If the roots of multiple sessions contain the path, then the most specific
        (longest) root wins.
        """
        try:
            path = RemotePath.parse(uri)
        except MalformedPathError as e:
            log.debug(f"cannot resolve session for malformed uri: {e}")
            return None

        best: Optional[Session] = None
        best_depth = -1

        with self._sessions_lock:
            for root, session in self._sessions.items():
                depth = len(root.path.rstrip("/"))

                if path.is_under(root) and depth > best_depth:
                    best, best_depth = session, depth

        return best

    #
    # Busy marker
    #

    def begin_operation(self, uri: str) -> None:
        """Mark the given path as having a request in flight."""
        with self._busy_lock:
            self._busy[uri] += 1

    def end_operation(self, uri: str) -> None:
        """Clear one in-flight request marker for the given path."""
        with self._busy_lock:
            if self._busy.get(uri, 0) == 0:
                log.warning(f"unbalanced end of operation for {uri}")
                return

            self._busy[uri] -= 1

            if self._busy[uri] == 0:
                del self._busy[uri]

    @contextmanager
    def operation(self, uri: str) -> Iterator[None]:
        """Mark the given path as busy for the duration of the block."""
        self.begin_operation(uri)

        try:
            yield
        finally:
            self.end_operation(uri)

    def is_busy(self, uri: str) -> bool:
        """Return whether the given path has any request in flight."""
        with self._busy_lock:
            return uri in self._busy

    @property
    def busy_count(self) -> int:
        """Return the total number of requests in flight."""
        with self._busy_lock:
            return sum(self._busy.values())

    #
    # Persistence
    #

    def load(self, filename: str) -> None:
        """Add the sessions stored in the given file."""
        with fasteners.InterProcessLock(f"{filename}.lock"):
            with open(filename, "r") as f:
                sessions: List[Session] = self._encoding.load_json(f)

        for session in sessions:
            self.add_session(session.uri, session.project_name)

    def save(self, filename: str) -> None:
        """Store all registered sessions in the given file."""
        with fasteners.InterProcessLock(f"{filename}.lock"):
            with open(filename, "w") as f:
                self._encoding.dump_json(self.sessions(), f)
