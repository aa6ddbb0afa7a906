from unittest import mock

import pytest

from hdfsfs.errors import RemoteIOError
from hdfsfs.mirror import LocalMirror
from hdfsfs.path import RemotePath
from hdfsfs.remote import RpcRemoteClient
from hdfsfs.rpc import InvalidTokenError
from hdfsfs.service import RemoteStoreService
from hdfsfs.sessions import SessionRegistry
from hdfsfs.store import FileStore

ROOT = "hdfs://namenode:8020/user/alice"


@pytest.fixture
def client(store_endpoint):
    return RpcRemoteClient(store_endpoint, timeout_ms=5000)


def test_check_protocol(client):
    client.check_protocol()


def test_check_incompatible_protocol(client):
    with mock.patch("hdfsfs.remote.constants", PROTOCOL_VERSION="2.0.0"):
        with pytest.raises(ConnectionError):
            client.check_protocol()


def test_write_and_read(client, store_root):
    with client.create_output_stream(ROOT + "/data.csv") as f:
        f.write(b"a,b\n1,2\n")

    assert (store_root / "user" / "alice" / "data.csv").read_bytes() == b"a,b\n1,2\n"

    with client.open_input_stream(ROOT + "/data.csv") as f:
        assert f.read() == b"a,b\n1,2\n"


def test_overwrite(client, store_root):
    (store_root / "file").write_bytes(b"abcdef")

    with client.open_output_stream("hdfs://namenode:8020/file") as f:
        f.write(b"xyz")

    assert (store_root / "file").read_bytes() == b"xyz"


def test_large_file(client, store_root):
    data = bytes(range(256)) * 16384

    with client.create_output_stream("hdfs://namenode:8020/large") as f:
        f.write(data)

    with client.open_input_stream("hdfs://namenode:8020/large") as f:
        assert f.read() == data


def test_progress(client, store_root):
    (store_root / "file").write_bytes(b"abcdef")
    progress = mock.Mock()

    with client.open_input_stream("hdfs://namenode:8020/file", progress) as f:
        f.read()

    progress.assert_any_call(6)


def test_open_missing(client):
    with pytest.raises(FileNotFoundError):
        client.open_input_stream("hdfs://namenode:8020/missing")


def test_metadata(client, store_root):
    (store_root / "dir").mkdir()
    (store_root / "dir" / "file").write_bytes(b"abc")

    info = client.get_resource_information("hdfs://namenode:8020/dir/file")

    assert info.name == "file"
    assert info.size == 3
    assert [r.name for r in client.list_resources("hdfs://namenode:8020/dir")] == [
        "file"
    ]
    assert client.get_resource_information("hdfs://namenode:8020/missing") is None


def test_structure(client, store_root):
    assert client.mkdirs("hdfs://namenode:8020/a/b")
    assert (store_root / "a" / "b").is_dir()

    client.delete("hdfs://namenode:8020/a")
    assert not (store_root / "a").exists()


def test_file_store(client, store_root, tmp_path):
    registry = SessionRegistry()
    registry.add_session(ROOT, "alice")

    root = FileStore(
        RemotePath.parse(ROOT), registry, client, LocalMirror(str(tmp_path / "ws"))
    )

    assert root.mkdir() is root

    data = root.get_child("data.csv")
    assert not data.fetch_info().exists

    with data.open_output_stream() as f:
        f.write(b"abc")

    assert data.fetch_info().length == 3

    with data.open_output_stream() as f:
        f.write(b"abcdef")

    assert data.fetch_info().length == 6
    assert root.child_names() == ["data.csv"]

    # The workspace descriptor is kept out of the remote store
    with root.get_child(".project").open_output_stream() as f:
        f.write(b"<project/>")

    assert root.child_names() == ["data.csv"]
    assert (tmp_path / "ws" / "alice" / ".project").read_bytes() == b"<project/>"

    data.delete()
    root.delete()

    assert root.child_names() == []
    assert (store_root / "user" / "alice").is_dir()


def test_token_mismatch(serve, store_root):
    endpoint = serve(RemoteStoreService(str(store_root)), token="right")
    client = RpcRemoteClient(endpoint, "wrong", timeout_ms=5000)

    with pytest.raises(PermissionError) as e:
        client.list_resources(ROOT)

    assert isinstance(e.value.__cause__, InvalidTokenError)


def test_file_store_token_mismatch(serve, store_root, tmp_path):
    endpoint = serve(RemoteStoreService(str(store_root)), token="right")

    registry = SessionRegistry()
    registry.add_session(ROOT, "alice")

    node = FileStore(
        RemotePath.parse(ROOT),
        registry,
        RpcRemoteClient(endpoint, "wrong", timeout_ms=5000),
        LocalMirror(str(tmp_path / "ws")),
    )

    with pytest.raises(RemoteIOError):
        node.child_names()

    with pytest.raises(RemoteIOError):
        node.fetch_info()

    assert registry.busy_count == 0
