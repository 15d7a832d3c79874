#!/usr/bin/env python3
#
# get - Simple command-line interface to get
# Copyright (C) 2023 The get contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# get is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Simple command-line interface to get.

Every subcommand is a :class:`Command` that parses its own arguments. Errors
raised by get are reported on stderr and turn into exit status 1.
"""

__all__ = [
    "Command",
    "commands",
    "main",
    "signal_int",
    "signal_quit",
]

import argparse
import logging
import os
import signal
import sys
import types
from collections.abc import Sequence

from . import porcelain
from .errors import GetError
from .log_utils import default_logging_config

logger = logging.getLogger(__name__)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting."""
    sys.exit(1)


def signal_quit(signal: int, frame: types.FrameType | None) -> None:
    """Handle quit signal by entering debugger."""
    import pdb

    pdb.set_trace()


class Command:
    """A get subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty repository."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get init")
        parser.add_argument(
            "path", nargs="?", default=os.getcwd(), help="Repository path"
        )
        parsed_args = parser.parse_args(args)
        porcelain.init(parsed_args.path)


class cmd_commit(Command):
    """Record the work directory as a new commit."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get commit")
        parser.add_argument("--message", "-m", help="Commit message")
        parser.add_argument("msg", nargs="?", help="Commit message")
        parsed_args = parser.parse_args(args)
        message = parsed_args.message or parsed_args.msg or porcelain.DEFAULT_MESSAGE
        digest = porcelain.commit(".", message=message)
        sys.stdout.write(digest + "\n")


class cmd_restore(Command):
    """Replace the work directory with a previous commit."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get restore")
        parser.add_argument("digest", help="Digest of the commit to restore")
        parsed_args = parser.parse_args(args)
        c = porcelain.restore(".", parsed_args.digest)
        logger.info("Restored %s", c.digest)


class cmd_log(Command):
    """Show the commit history."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get log")
        parser.add_argument(
            "-n", "--max-count", type=int, help="Limit the number of commits"
        )
        parsed_args = parser.parse_args(args)
        for c in porcelain.log(".", max_entries=parsed_args.max_count):
            porcelain.print_commit(c, sys.stdout)


class cmd_show(Command):
    """Show a commit and its top-level entries."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get show")
        parser.add_argument("digest", nargs="?", help="Commit digest (default: head)")
        parsed_args = parser.parse_args(args)
        digest = parsed_args.digest or porcelain.head(".")
        porcelain.print_commit(porcelain.show(".", digest), sys.stdout, content=True)


class cmd_head(Command):
    """Print the digest of the current commit."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get head")
        parser.parse_args(args)
        sys.stdout.write(porcelain.head(".") + "\n")


class cmd_help(Command):
    """Display help information."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="get help")
        parser.parse_args(args)
        sys.stdout.write("Available commands:\n")
        for name in sorted(commands):
            sys.stdout.write(f"  {name:<10}{commands[name].__doc__}\n")


commands: dict[str, type[Command]] = {
    "commit": cmd_commit,
    "head": cmd_head,
    "help": cmd_help,
    "init": cmd_init,
    "log": cmd_log,
    "restore": cmd_restore,
    "show": cmd_show,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the get CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        commands["help"]().run([])
        return 1

    default_logging_config()

    cmd, cmd_args = argv[0], argv[1:]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logger.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(cmd_args)
    except GetError as e:
        logger.error("%s", e)
        return 1


def _main() -> None:
    if "GET_PDB" in os.environ and getattr(signal, "SIGQUIT", None):
        signal.signal(signal.SIGQUIT, signal_quit)  # type: ignore[attr-defined,unused-ignore]
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
