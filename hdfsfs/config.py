"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
import os
from typing import List, Optional

import hdfsfs.constants as constants
from hdfsfs.logger import log


@dataclass
class WorkspaceConfig:
    """Configuration variables related to the local workspace and its mirror."""

    root: str = os.path.expanduser("~/hdfsfs-workspace")
    descriptor: str = constants.DESCRIPTOR_NAME
    sessions: str = os.path.expanduser("~/.hdfsfs/sessions.json")

    @staticmethod
    def load(section: SectionProxy) -> WorkspaceConfig:
        """Load overridden variables from a section within a config file."""
        config = WorkspaceConfig()

        config.root = os.path.expanduser(section.get("root", fallback=config.root))
        config.descriptor = section.get("descriptor", fallback=config.descriptor)
        config.sessions = os.path.expanduser(
            section.get("sessions", fallback=config.sessions)
        )

        return config


@dataclass
class ClientConfig:
    """Configuration variables related to the connection with the remote store."""

    endpoint: str = "tcp://localhost:8020"
    token: Optional[str] = None
    timeout: int = 5000  # ms

    @staticmethod
    def load(section: SectionProxy) -> ClientConfig:
        """Load overridden variables from a section within a config file."""
        config = ClientConfig()

        config.endpoint = section.get("endpoint", fallback=config.endpoint)
        config.token = section.get("token", fallback=config.token)
        config.timeout = section.getint("timeout", fallback=config.timeout)

        return config


@dataclass
class SessionConfig:
    """A remote store root that is connected to a project in the workspace."""

    uri: str
    project: str

    @staticmethod
    def load(name: str, section: SectionProxy) -> SessionConfig:
        """Load a session from a [session NAME] section."""
        return SessionConfig(
            uri=section["uri"], project=section.get("project", fallback=name)
        )


@dataclass
class Config:
    """Configuration variables."""

    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    sessions: List[SessionConfig] = field(default_factory=list)

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            if "workspace" in parser:
                config.workspace = WorkspaceConfig.load(parser["workspace"])

            if "client" in parser:
                config.client = ClientConfig.load(parser["client"])

            for section in parser.sections():
                if section.startswith("session "):
                    name = section[len("session ") :].strip()
                    config.sessions.append(SessionConfig.load(name, parser[section]))
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
            config = Config()
        else:
            log.info(f"loaded config: {config}")

        return config
