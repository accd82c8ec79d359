#!/usr/bin/env python3
# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""gitlab-mr - list, comment on and merge GitLab merge requests across profiles"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .commands import (
    CommentCommand,
    ListCommand,
    MergeCommand,
    ProfileCommand,
    ReviewAssignedCommand,
)
from .errors import handle_cli_error
from .interactive.shell import launch_interactive_home
from .logging_utils import setup_logging


class GitLabMRCli:
    """Main CLI class with one handler per subcommand"""

    def __init__(self):
        self.commands = {
            command.name: command
            for command in (
                ListCommand(),
                CommentCommand(),
                MergeCommand(),
                ReviewAssignedCommand(),
                ProfileCommand(),
            )
        }

    def create_parser(self):
        """Create the main argument parser with subcommands"""
        parser = argparse.ArgumentParser(
            prog="gitlab-mr",
            description="GitLab merge request helper - list, comment, merge and review across profiles",
            epilog="Run without arguments in a terminal to start interactive mode.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable debug logging"
        )
        parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

        subparsers = parser.add_subparsers(
            dest="command",
            title="Available commands",
            description="Use `gitlab-mr <command> --help` for command-specific options",
            metavar="<command>",
        )
        for command in self.commands.values():
            command.add_arguments(subparsers)
        return parser

    def route_command(self, args) -> int:
        """Route parsed arguments to the matching command handler"""
        return self.commands[args.command].handle(args)

    def run(self, argv: Optional[List[str]] = None) -> int:
        argv = sys.argv[1:] if argv is None else argv
        parser = self.create_parser()
        args = parser.parse_args(argv)
        setup_logging(verbose=args.verbose)

        if not args.command:
            if launch_interactive_home():
                return 0
            parser.print_help()
            return 0

        return self.route_command(args)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the gitlab-mr CLI"""
    try:
        return GitLabMRCli().run(argv)
    except (Exception, KeyboardInterrupt) as e:
        return handle_cli_error(e)


if __name__ == "__main__":
    sys.exit(main())
