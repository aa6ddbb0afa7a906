import os.path

from configparser import ConfigParser

from hdfsfs.config import ClientConfig, Config, SessionConfig, WorkspaceConfig


def test_workspace_config_defaults():
    parser = ConfigParser()
    parser.read_string("[workspace]")

    cfg = WorkspaceConfig.load(parser["workspace"])

    assert cfg.root is not None
    assert cfg.descriptor == ".project"


def test_client_config_load():
    parser = ConfigParser()
    parser.read_string(
        """
        [client]
        endpoint = tcp://store:1234
        token = secret
        timeout = 123
        """
    )

    cfg = ClientConfig.load(parser["client"])

    assert cfg.endpoint == "tcp://store:1234"
    assert cfg.token == "secret"
    assert cfg.timeout == 123


def test_session_config_project_defaults_to_name():
    parser = ConfigParser()
    parser.read_string(
        """
        [session alice]
        uri = hdfs://nn/user/alice
        """
    )

    cfg = SessionConfig.load("alice", parser["session alice"])

    assert cfg == SessionConfig(uri="hdfs://nn/user/alice", project="alice")


def test_config_defaults(tmpdir):
    cfg = Config.load(str(tmpdir / "nonexistent"))

    assert cfg.workspace is not None
    assert cfg.client.token is None
    assert cfg.sessions == []


def test_config_load(tmp_path):
    (tmp_path / "config").write_text(
        """
        [workspace]
        root = ~/test
        descriptor = .workspace
        sessions = ~/sessions.json

        [client]
        timeout = 456

        [session alice]
        uri = hdfs://nn/user/alice
        project = alice-data

        [session bob]
        uri = hdfs://nn/user/bob
        """
    )

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.workspace.root == os.path.expanduser("~/test")
    assert cfg.workspace.descriptor == ".workspace"
    assert cfg.workspace.sessions == os.path.expanduser("~/sessions.json")
    assert cfg.client.timeout == 456
    assert cfg.sessions == [
        SessionConfig(uri="hdfs://nn/user/alice", project="alice-data"),
        SessionConfig(uri="hdfs://nn/user/bob", project="bob"),
    ]


def test_config_load_failure_nonfatal(tmp_path):
    (tmp_path / "config").write_text("blabla")

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.workspace is not None


def test_config_session_without_uri_nonfatal(tmp_path):
    (tmp_path / "config").write_text("[session alice]\nproject = a\n")

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.sessions == []
