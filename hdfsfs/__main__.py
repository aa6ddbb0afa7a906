"""
Module implementing the command-line interface of hdfsfs.

The serve command exposes a local directory as a remote store over RPC. The other
commands each perform a single file store operation against such a store, which makes
it possible to browse and edit the store without a host IDE.
"""

import logging
import os
import signal
import sys
from typing import List, NoReturn, Optional

import hdfsfs.commands as commands
from hdfsfs.config import Config
import hdfsfs.constants as constants
from hdfsfs.logger import log
from .args import Arguments


def main(arguments: Optional[List[str]] = None) -> NoReturn:
    """
    Run the command with the given arguments.

    Defaults to parsing command-line arguments from sys.argv if none are specified.
    """
    args = Arguments.parse(arguments)

    # Configure debug logging.
    if args.debug:
        log.setLevel(logging.DEBUG)
    else:
        log.setLevel(logging.ERROR)

    config = Config.load(os.path.expanduser(args.config))

    command: commands.Command

    if args.command == "serve":
        command = commands.ServeCommand(args, config)
    elif args.command in ("connect", "disconnect"):
        command = commands.SessionCommand(args, config)
    else:
        command = commands.StoreCommand(args, config)

    try:
        exit_code = command.run()
    except KeyboardInterrupt:
        exit_code = 128 + signal.SIGINT
    except Exception as e:
        log.error(f"failed to run command: {e}")
        exit_code = constants.ERROR_CODE

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
