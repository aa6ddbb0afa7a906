"""Module with fixtures that run a remote store service in the background."""

import threading

import pytest

import hdfsfs.rpc as rpc
from hdfsfs.service import RemoteStoreService


def start_server(service, token=None) -> str:
    """Serve the given service on a free local port and return its endpoint."""
    server = rpc.Server(service, token, worker_count=2)
    endpoint = server.bind("tcp://127.0.0.1:*")

    t = threading.Thread(target=server.run, daemon=True)
    t.start()

    return endpoint


@pytest.fixture
def store_root(tmp_path):
    root = tmp_path / "store"
    root.mkdir()

    return root


@pytest.fixture
def store_endpoint(store_root):
    return start_server(RemoteStoreService(str(store_root)))


@pytest.fixture
def serve():
    return start_server
