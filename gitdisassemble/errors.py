# errors.py -- errors for gitdisassemble
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

"""gitdisassemble exception classes.

Every error that aborts a run derives from :class:`GitDisassembleError` and
names the commit, ref, directory or command that caused it.
"""

__all__ = [
    "GitDisassembleError",
    "MalformedCommit",
    "MissingAuthor",
    "MissingMessage",
    "NameCollision",
    "ParentCycle",
    "StoreError",
    "TimeOutOfRange",
    "UnknownReference",
    "UnknownRootReference",
    "UnparsableCommitTime",
    "UnparsableDirectoryName",
    "UnresolvedParent",
    "UnresolvedParentName",
    "UnresolvedRefTarget",
    "UnsafeRefName",
    "to_display_str",
]

from collections.abc import Hashable, Sequence


def to_display_str(value: object) -> str:
    """Convert an identifier, ref name or path to a display string.

    Args:
        value: The value to convert (bytes, str or anything printable)

    Returns:
        A string suitable for an error message
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


class GitDisassembleError(Exception):
    """Base class for all errors that abort a gitdisassemble run."""


class MalformedCommit(GitDisassembleError):
    """Raw commit content could not be parsed."""

    def __init__(self, sha: bytes | None, reason: str) -> None:
        """Initialize a MalformedCommit exception.

        Args:
            sha: Identifier of the commit that failed to parse, if known.
            reason: What was expected and not found.
        """
        self.sha = sha
        self.reason = reason
        name = to_display_str(sha) if sha is not None else "<unknown>"
        super().__init__(f"Malformed commit {name}: {reason}")


class UnresolvedParent(GitDisassembleError):
    """A commit names a parent that is not part of the commit set.

    This happens legitimately for shallow clones and other partial object
    sets; callers may catch it and report which history is incomplete.
    """

    def __init__(self, key: Hashable, parent: Hashable) -> None:
        self.key = key
        self.parent = parent
        super().__init__(
            f"Commit {to_display_str(key)} has parent "
            f"{to_display_str(parent)}, which is not present"
        )


class UnknownReference(GitDisassembleError):
    """Lookup of a commit or ref name that is not in the graph."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(f"Unknown commit or ref: {to_display_str(key)}")


class UnknownRootReference(GitDisassembleError):
    """A root passed by the user is neither a known commit nor a ref."""

    def __init__(self, name: bytes | str) -> None:
        self.name = name
        super().__init__(
            f"The value {to_display_str(name)} is not a known commit or ref "
            "name. For refs, use full names (such as refs/heads/main)."
        )


class UnparsableDirectoryName(GitDisassembleError):
    """A commit directory name does not start with a timestamp."""

    def __init__(self, dirname: str) -> None:
        self.dirname = dirname
        super().__init__(f"Cannot parse commit directory name: {dirname}")


class MissingAuthor(GitDisassembleError):
    """Neither an author nor a committer file exists for a commit."""

    def __init__(self, dirname: str) -> None:
        self.dirname = dirname
        super().__init__(f"No author for commit {dirname}.")


class MissingMessage(GitDisassembleError):
    """The message file is absent for a commit."""

    def __init__(self, dirname: str) -> None:
        self.dirname = dirname
        super().__init__(f"No commit message for commit {dirname}.")


class UnresolvedParentName(GitDisassembleError):
    """A parent file names a commit directory that does not exist."""

    def __init__(self, dirname: str, index: int, parent: str) -> None:
        self.dirname = dirname
        self.index = index
        self.parent = parent
        super().__init__(
            f"Cannot resolve commit name {parent} used by parent{index} "
            f"of {dirname}."
        )


class UnresolvedRefTarget(GitDisassembleError):
    """A ref file names a commit directory that does not exist."""

    def __init__(self, refname: str, target: str) -> None:
        self.refname = refname
        self.target = target
        super().__init__(f"Cannot resolve commit name {target} used by {refname}.")


class StoreError(GitDisassembleError):
    """An object store operation failed.

    Store operations are not retried; the diagnostic output of the failed
    operation is carried on the exception.
    """

    def __init__(
        self,
        command: Sequence[str] | str,
        returncode: int | None = None,
        stderr: bytes | str = b"",
    ) -> None:
        """Initialize a StoreError.

        Args:
            command: The operation (or command line) that failed.
            returncode: Exit status, for operations backed by a process.
            stderr: Diagnostic output of the failed operation.
        """
        if not isinstance(command, str):
            command = " ".join(command)
        self.command = command
        self.returncode = returncode
        self.stderr = to_display_str(stderr)
        if returncode is None:
            message = f"Object store operation failed: {command}"
        else:
            message = f"Git command exited with status {returncode}: {command}"
        if self.stderr:
            message += "\n" + self.stderr.rstrip("\n")
        super().__init__(message)


class ParentCycle(GitDisassembleError):
    """Parent references form a cycle, so no commit order exists."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(
            f"Commit {to_display_str(key)} is its own ancestor; "
            "parent references form a cycle"
        )


class UnparsableCommitTime(GitDisassembleError):
    """A commit-time file does not contain a valid time."""

    def __init__(self, dirname: str, text: str) -> None:
        self.dirname = dirname
        self.text = text
        super().__init__(f"Cannot parse commit time {text!r} of commit {dirname}.")


class TimeOutOfRange(GitDisassembleError):
    """A commit time cannot be written as a calendar date."""

    def __init__(self, sha: bytes | None, time: int) -> None:
        self.sha = sha
        self.time = time
        name = to_display_str(sha) if sha is not None else "<unknown>"
        super().__init__(
            f"Commit {name} has time {time}, which is outside the range of "
            "representable dates"
        )


class NameCollision(GitDisassembleError):
    """Two commits would be written to the same directory."""

    def __init__(self, name: str, first: Hashable, second: Hashable) -> None:
        self.name = name
        self.first = first
        self.second = second
        super().__init__(
            f"Commits {to_display_str(first)} and {to_display_str(second)} "
            f"would both be named {name}"
        )


class UnsafeRefName(GitDisassembleError):
    """A ref name cannot be mapped to a path inside the output directory."""

    def __init__(self, refname: bytes | str) -> None:
        self.refname = refname
        super().__init__(
            f"Refusing to write unsafe ref name {to_display_str(refname)!r}"
        )
