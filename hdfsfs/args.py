"""Module defining the command-line arguments and providing a parser for them."""

from __future__ import annotations

import argparse
from typing import List, Optional

from hdfsfs.constants import PROTOCOL_VERSION, VERSION


class Arguments(argparse.Namespace):
    """Parsed command-line arguments."""

    command: str

    # Store commands
    uri: str
    source: str

    # Session commands
    project: Optional[str]

    # Serve command
    root: str
    workers: int

    endpoint: Optional[str]
    token: Optional[str]

    config: str
    debug: bool
    timeout: Optional[int]

    @classmethod
    def parse(cls, args: Optional[List[str]] = None) -> Arguments:
        """
        Parse command-line arguments from the given list of strings.

        Defaults to sys.argv if none are specified.
        """
        return cls._get_parser().parse_args(args, namespace=cls())

    @classmethod
    def _get_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Browse and edit a remote store through its file store view.",
            usage="hdfsfs [option...] command [arg...]",
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {VERSION} (protocol {PROTOCOL_VERSION})",
            help="show the program version and protocol version",
        )

        parser.add_argument(
            "--config",
            type=str,
            help="path to config file (default is ~/.hdfsfs/config)",
            default="~/.hdfsfs/config",
        )

        # Remote store connection, defaults to the config file
        parser.add_argument(
            "--endpoint", type=str, help="endpoint of the remote store service"
        )
        parser.add_argument("--token", type=str, help="authentication token")
        parser.add_argument(
            "--timeout",
            type=cls._parse_timeout,
            help="timeout for network communications in milliseconds",
        )

        # Enable debug output for development
        parser.add_argument(
            "--debug", action="store_true", help="enable debug information"
        )

        commands = parser.add_subparsers(dest="command", metavar="command")
        commands.required = True

        serve = commands.add_parser("serve", help="serve a directory as remote store")
        serve.add_argument("root", type=str, help="directory to serve")
        serve.add_argument(
            "--workers", type=int, help="number of service workers", default=4
        )

        for name, description in [
            ("ls", "list the entries of a folder"),
            ("stat", "show the metadata of an entry"),
            ("cat", "write the contents of a file to stdout"),
            ("mkdir", "create a folder and its parents"),
            ("rm", "delete a file or folder"),
        ]:
            command = commands.add_parser(name, help=description)
            command.add_argument("uri", type=str, help="remote store URI")

        put = commands.add_parser("put", help="upload a local file")
        put.add_argument("source", type=str, help="local file to upload")
        put.add_argument("uri", type=str, help="remote store URI")

        connect = commands.add_parser(
            "connect", help="save a session for a remote store root"
        )
        connect.add_argument("uri", type=str, help="remote store root URI")
        connect.add_argument(
            "--project", type=str, help="workspace project (default is root name)"
        )

        disconnect = commands.add_parser(
            "disconnect", help="forget a saved session, keeping its remote data"
        )
        disconnect.add_argument("uri", type=str, help="remote store root URI")

        return parser

    @staticmethod
    def _parse_timeout(arg: str) -> int:
        try:
            val = int(arg)
            assert val > 0
            return val
        except (ValueError, AssertionError):
            raise argparse.ArgumentTypeError("expected number > 0")
