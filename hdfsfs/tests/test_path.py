import pytest

from hdfsfs.errors import InvalidSegmentError, MalformedPathError, PathResolutionError
from hdfsfs.path import RemotePath


def test_parse_normalizes():
    path = RemotePath.parse("hdfs://namenode:8020//user/./alice/../bob/")

    assert str(path) == "hdfs://namenode:8020/user/bob"
    assert path.path == "/user/bob"


def test_parse_root():
    path = RemotePath.parse("hdfs://namenode:8020")

    assert path.is_root
    assert str(path) == "hdfs://namenode:8020/"


def test_parse_without_scheme():
    assert str(RemotePath.parse("/a/b.txt")) == "/a/b.txt"


def test_parse_malformed():
    with pytest.raises(MalformedPathError):
        RemotePath.parse("relative/path")

    with pytest.raises(MalformedPathError):
        RemotePath.parse("hdfs:/missing/authority")

    with pytest.raises(MalformedPathError):
        RemotePath.parse("hdfs://namenode/a?b=c")


def test_equality():
    a = RemotePath.parse("hdfs://nn/user/alice")
    b = RemotePath.parse("hdfs://nn/user//alice/")

    assert a == b
    assert hash(a) == hash(b)
    assert a != RemotePath.parse("hdfs://other/user/alice")
    assert a != "hdfs://nn/user/alice"


def test_append():
    path = RemotePath.parse("hdfs://nn/user").append("alice")

    assert str(path) == "hdfs://nn/user/alice"


@pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
def test_append_invalid_segment(name):
    with pytest.raises(InvalidSegmentError):
        RemotePath.parse("hdfs://nn/user").append(name)


def test_parent():
    path = RemotePath.parse("hdfs://nn/user/alice")

    assert str(path.parent()) == "hdfs://nn/user"
    assert path.parent().parent().is_root


def test_parent_of_root():
    with pytest.raises(MalformedPathError):
        RemotePath.parse("hdfs://nn/").parent()


def test_last_segment():
    assert RemotePath.parse("/").last_segment() == "/"
    assert RemotePath.parse("/a/b.txt").last_segment() == "b.txt"


def test_parent_child_round_trip():
    path = RemotePath.parse("hdfs://nn/user/alice/data.csv")

    assert path.parent().append(path.last_segment()) == path


def test_is_under():
    root = RemotePath.parse("hdfs://nn/user")

    assert RemotePath.parse("hdfs://nn/user").is_under(root)
    assert RemotePath.parse("hdfs://nn/user/alice").is_under(root)
    assert not RemotePath.parse("hdfs://nn/username").is_under(root)
    assert not RemotePath.parse("hdfs://other/user/alice").is_under(root)


def test_relative_to():
    root = RemotePath.parse("hdfs://nn/user")

    assert RemotePath.parse("hdfs://nn/user/alice/a.txt").relative_to(root) == (
        "alice/a.txt"
    )
    assert root.relative_to(root) == ""


def test_relative_to_unrelated_root():
    root = RemotePath.parse("hdfs://nn/user")

    with pytest.raises(PathResolutionError):
        RemotePath.parse("hdfs://other/user/alice").relative_to(root)

    with pytest.raises(PathResolutionError):
        RemotePath.parse("hdfs://nn/tmp").relative_to(root)


def test_store_root():
    path = RemotePath.parse("hdfs://namenode:8020/user/alice")

    assert str(path.store_root) == "hdfs://namenode:8020/"
    assert str(RemotePath.parse("/a/b").store_root) == "/"
