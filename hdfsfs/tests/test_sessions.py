import logging

import pytest

from hdfsfs.sessions import Session, SessionRegistry


def test_resolve_unconfigured():
    registry = SessionRegistry()

    assert registry.resolve_session("hdfs://nn/user/alice") is None


def test_resolve_longest_prefix():
    registry = SessionRegistry()
    registry.add_session("hdfs://nn/user", "users")
    registry.add_session("hdfs://nn/user/alice", "alice")

    assert registry.resolve_session("hdfs://nn/user/alice/a").project_name == "alice"
    assert registry.resolve_session("hdfs://nn/user/bob/b").project_name == "users"
    assert registry.resolve_session("hdfs://nn/user").project_name == "users"


def test_resolve_is_segment_aware():
    registry = SessionRegistry()
    registry.add_session("hdfs://nn/user", "users")

    assert registry.resolve_session("hdfs://nn/username") is None


def test_resolve_malformed_uri():
    registry = SessionRegistry()
    registry.add_session("hdfs://nn/", "root")

    assert registry.resolve_session("not a uri") is None


def test_add_session_normalizes_uri():
    registry = SessionRegistry()
    session = registry.add_session("hdfs://nn/user//alice/", "alice")

    assert session == Session(uri="hdfs://nn/user/alice", project_name="alice")


def test_remove_session():
    registry = SessionRegistry()
    registry.add_session("hdfs://nn/user", "users")

    assert registry.remove_session("hdfs://nn/user/").project_name == "users"
    assert registry.remove_session("hdfs://nn/user") is None
    assert registry.sessions() == []


def test_busy_marker():
    registry = SessionRegistry()

    registry.begin_operation("hdfs://nn/a")
    registry.begin_operation("hdfs://nn/a")

    assert registry.is_busy("hdfs://nn/a")
    assert registry.busy_count == 2

    registry.end_operation("hdfs://nn/a")
    registry.end_operation("hdfs://nn/a")

    assert not registry.is_busy("hdfs://nn/a")
    assert registry.busy_count == 0


def test_unbalanced_end_operation(caplog):
    caplog.set_level(logging.WARNING, logger="hdfsfs")

    registry = SessionRegistry()
    registry.end_operation("hdfs://nn/a")

    assert registry.busy_count == 0
    assert "unbalanced" in caplog.text


def test_scoped_operation_releases_on_error():
    registry = SessionRegistry()

    with pytest.raises(RuntimeError):
        with registry.operation("hdfs://nn/a"):
            assert registry.is_busy("hdfs://nn/a")
            raise RuntimeError("foo")

    assert registry.busy_count == 0


def test_save_and_load(tmp_path):
    registry = SessionRegistry()
    registry.add_session("hdfs://nn/user/alice", "alice")
    registry.add_session("hdfs://nn/user/bob", "bob")
    registry.save(str(tmp_path / "sessions.json"))

    loaded = SessionRegistry()
    loaded.load(str(tmp_path / "sessions.json"))

    assert sorted(s.project_name for s in loaded.sessions()) == ["alice", "bob"]
    assert loaded.resolve_session("hdfs://nn/user/bob/x").project_name == "bob"


def test_load_nonexistent(tmp_path):
    with pytest.raises(FileNotFoundError):
        SessionRegistry().load(str(tmp_path / "nonexistent.json"))
