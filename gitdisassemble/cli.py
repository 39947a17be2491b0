# cli.py -- Command line interface for gitdisassemble
# Copyright (C) 2024 The gitdisassemble developers
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitdisassemble is dual-licensed under the Apache License, Version 2.0 and the
# GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
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

"""Command line interface for gitdisassemble.

Usage::

    gitdisassemble disassemble INPUT_REPO OUTPUT_PATH [ADD_REFS...]
    gitdisassemble assemble INPUT_PATH OUTPUT_REPO
"""

__all__ = [
    "Command",
    "cmd_assemble",
    "cmd_disassemble",
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

from . import __version__
from .assemble import assemble
from .config import RunConfig
from .disassemble import RootSelection, disassemble
from .errors import GitDisassembleError
from .gitcmd import GitCommandObjectStore
from .log_utils import default_logging_config

logger = logging.getLogger(__name__)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


def signal_quit(signal: int, frame: types.FrameType | None) -> None:
    """Handle quit signal by entering debugger."""
    import pdb

    pdb.set_trace()


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
    return number


def _common_options() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-ge",
        "--git-executable",
        help="Path to the git executable (default: git, or $GITDISASSEMBLE_GIT)",
    )
    parser.add_argument(
        "--auto-crlf",
        action="store_true",
        help="Let git normalise line endings. Off by default so that file "
        "contents are preserved exactly.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        help="Number of commits to read concurrently",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output"
    )
    return parser


class Command:
    """A gitdisassemble subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)

    def _setup(
        self, parser: argparse.ArgumentParser, parsed: argparse.Namespace
    ) -> RunConfig:
        default_logging_config(verbose=parsed.verbose)
        try:
            config = RunConfig.from_environ()
        except ValueError as e:
            parser.error(str(e))
        return config.override(
            git_executable=parsed.git_executable,
            auto_crlf=parsed.auto_crlf or None,
            jobs=parsed.jobs,
        )


class cmd_disassemble(Command):
    """Disassemble a repository into one directory per commit."""

    def run(self, args: Sequence[str]) -> int:
        """Execute the disassemble command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(
            prog="gitdisassemble disassemble",
            description=self.__doc__,
            parents=[_common_options()],
        )
        parser.add_argument("input_repo", help="Path to the repository to read")
        parser.add_argument(
            "output_path", help="Directory to write; created if it does not exist"
        )
        parser.add_argument(
            "add_refs",
            nargs="*",
            metavar="ADD_REFS",
            help="Commit ids or full ref names (such as refs/heads/main) whose "
            "history to include",
        )
        parser.add_argument(
            "-ah",
            "--add-heads",
            action="store_true",
            help="Include every head and its history",
        )
        parser.add_argument(
            "-at",
            "--add-tags",
            action="store_true",
            help="Include every tag and its history",
        )
        parser.add_argument(
            "-ac",
            "--add-children",
            action="store_true",
            help="Also include all descendants of included commits. You "
            "probably don't want this; include the interesting heads and "
            "tags instead.",
        )
        parsed = parser.parse_intermixed_args(args)
        config = self._setup(parser, parsed)

        selection = RootSelection(
            names=parsed.add_refs,
            heads=parsed.add_heads,
            tags=parsed.add_tags,
            include_descendants=parsed.add_children,
        )
        if not (selection.names or selection.heads or selection.tags):
            logger.warning(
                "No commits selected; pass commit ids or ref names, "
                "--add-heads or --add-tags"
            )
        store = GitCommandObjectStore(parsed.input_repo, config)
        disassemble(store, parsed.output_path, selection, config)
        return 0


class cmd_assemble(Command):
    """Assemble a repository from one directory per commit."""

    def run(self, args: Sequence[str]) -> int:
        """Execute the assemble command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(
            prog="gitdisassemble assemble",
            description=self.__doc__,
            parents=[_common_options()],
        )
        parser.add_argument("input_path", help="Disassembled directory to read")
        parser.add_argument(
            "output_repo",
            help="Repository to write. If this directory does not exist, a "
            "blank new repository is created automatically.",
        )
        parsed = parser.parse_args(args)
        if not os.path.isdir(parsed.input_path):
            parser.error(f"{parsed.input_path} is not a directory")
        config = self._setup(parser, parsed)

        store = GitCommandObjectStore(parsed.output_repo, config)
        assemble(parsed.input_path, store)
        return 0


commands = {
    "a": cmd_assemble,
    "assemble": cmd_assemble,
    "d": cmd_disassemble,
    "disassemble": cmd_disassemble,
}


def _print_help() -> None:
    print(f"usage: gitdisassemble [--version] COMMAND [ARGS...]\n\n{__doc__.strip()}")
    print()
    print("commands:")
    for name, kls in sorted(commands.items()):
        if len(name) > 1:
            print(f"  {name:<14}{kls.__doc__}")


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the gitdisassemble CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        _print_help()
        return 1
    if argv[0] == "--version":
        print("gitdisassemble {}".format(".".join(map(str, __version__))))
        return 0

    cmd = argv[0]
    cmd_args = argv[1:]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        default_logging_config()
        logger.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(cmd_args)
    except GitDisassembleError as e:
        logger.error("Error: %s", e)
        return 1


def _main() -> None:
    if "GITDISASSEMBLE_PDB" in os.environ and getattr(signal, "SIGQUIT", None):
        signal.signal(signal.SIGQUIT, signal_quit)  # type: ignore[attr-defined,unused-ignore]
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
