# objects.py -- Parsing and serialization of raw commit objects
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

"""Parsing and serialization of raw commit objects.

A commit's identifier is the SHA-1 of its serialized bytes, so
:func:`serialize_commit` must reproduce exactly what :func:`parse_commit`
consumed. The accepted grammar is deliberately narrow::

    tree <tree>
    parent <parent>            (zero or more)
    author <name> <time> <tz>
    committer <name> <time> <tz>
    HG:<anything>              (optional foreign-tool line)
    gpgsig -----BEGIN ...      (optional signature block)
    <blank line>
    <message lines>
"""

__all__ = [
    "COMMIT_TYPE",
    "Commit",
    "ObjectID",
    "Ref",
    "TimeEntry",
    "format_timezone",
    "object_id",
    "parse_commit",
    "parse_timezone",
    "report_unsupported",
    "serialize_commit",
    "strip_unsupported",
]

import dataclasses
import hashlib
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

from .errors import MalformedCommit

logger = logging.getLogger(__name__)

ObjectID = bytes
Ref = bytes

COMMIT_TYPE = b"commit"

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"

_FOREIGN_PREFIX = b"HG:"

# Opening line of a signature block -> its closing line
_SIGNATURE_MARKERS = {
    b"gpgsig -----BEGIN PGP SIGNATURE-----": b" -----END PGP SIGNATURE-----",
    b"gpgsig -----BEGIN SSH SIGNATURE-----": b" -----END SSH SIGNATURE-----",
}
_SIGNATURE_TRAILER = b" "

_IDENTITY_RE = re.compile(rb"(?P<name>.*?) (?P<time>\d+) (?P<tz>[+-]\d{4})")
_TIMEZONE_RE = re.compile(rb"[+-]\d{4}")


class TimeEntry(NamedTuple):
    """A point in time as recorded in a commit.

    Attributes:
        time: Seconds since the epoch (UTC)
        offset: Offset from UTC in seconds, as recorded
        negative_utc: Whether a zero offset was written as ``-0000``
    """

    time: int
    offset: int = 0
    negative_utc: bool = False


def parse_timezone(text: bytes) -> tuple[int, bool]:
    """Parse a timezone text fragment (e.g. b'+0100').

    Args:
        text: Text to parse.

    Returns:
        Tuple with timezone as seconds difference to UTC and a boolean
        indicating whether this was a UTC timezone prefixed with a negative
        sign (-0000).

    Raises:
        ValueError: If text is not a sign followed by four digits with a
            minutes part below 60.
    """
    if not _TIMEZONE_RE.fullmatch(text):
        raise ValueError(f"Invalid timezone {text!r}")
    sign = -1 if text[:1] == b"-" else 1
    hours = int(text[1:3])
    minutes = int(text[3:5])
    if minutes >= 60:
        raise ValueError(f"Invalid timezone {text!r}")
    offset = sign * (hours * 3600 + minutes * 60)
    return offset, sign < 0 and offset == 0


def format_timezone(offset: int, negative_utc: bool = False) -> bytes:
    """Format a timezone for git serialization.

    Args:
        offset: Timezone offset as seconds difference to UTC
        negative_utc: Whether to write a zero offset as -0000

    Returns:
        Timezone text such as b'+0100'
    """
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    if offset < 0 or (offset == 0 and negative_utc):
        sign = "-"
        offset = -offset
    else:
        sign = "+"
    return ("%c%02d%02d" % (sign, offset // 3600, (offset // 60) % 60)).encode("ascii")


def object_id(type_name: bytes, raw: bytes) -> ObjectID:
    """Compute the identifier git assigns to an object.

    Args:
        type_name: Object type (e.g. b"commit")
        raw: Serialized object content

    Returns:
        Hex SHA-1 of the object header and content
    """
    sha = hashlib.sha1(type_name + b" %d\0" % len(raw))
    sha.update(raw)
    return sha.hexdigest().encode("ascii")


@dataclass
class Commit:
    """A commit record.

    ``message`` holds the exact lines following the header separator; joining
    them with newlines reproduces the message bytes. ``signature`` and
    ``foreign_header`` are captured verbatim and never interpreted.
    """

    tree: ObjectID
    author: bytes
    author_time: TimeEntry
    committer: bytes
    commit_time: TimeEntry
    parents: list[ObjectID] = field(default_factory=list)
    message: list[bytes] = field(default_factory=list)
    id: ObjectID | None = None
    foreign_header: bytes | None = None
    signature: list[bytes] | None = None

    @classmethod
    def from_raw_string(cls, sha: ObjectID | None, raw: bytes) -> "Commit":
        """Parse raw commit content; see :func:`parse_commit`."""
        return parse_commit(sha, raw)

    def as_raw_string(self) -> bytes:
        """Serialize this commit; see :func:`serialize_commit`."""
        return serialize_commit(self)

    @property
    def has_unsupported(self) -> bool:
        """Whether this commit carries data that cannot be re-created."""
        return self.signature is not None or self.foreign_header is not None

    def __str__(self) -> str:
        sha = (self.id or b"").decode("ascii", "replace")[:8]
        preview = b" ".join(self.message).decode("utf-8", "replace")[:30]
        return f"{sha} - {self.author_time.time} - {preview}"


def _parse_identity(
    sha: ObjectID | None, line: bytes, header: bytes
) -> tuple[bytes, TimeEntry]:
    m = _IDENTITY_RE.fullmatch(line[len(header) + 1 :])
    if m is None:
        raise MalformedCommit(sha, f"Couldn't parse '{header.decode('ascii')}'")
    try:
        offset, negative_utc = parse_timezone(m.group("tz"))
    except ValueError as exc:
        raise MalformedCommit(sha, str(exc)) from exc
    return m.group("name"), TimeEntry(int(m.group("time")), offset, negative_utc)


def _expect(
    sha: ObjectID | None, lines: Sequence[bytes], cur: int, header: bytes
) -> bytes:
    if cur >= len(lines) or not lines[cur].startswith(header + b" "):
        raise MalformedCommit(sha, f"Expected '{header.decode('ascii')}'")
    return lines[cur]


def parse_commit(sha: ObjectID | None, raw: bytes) -> Commit:
    """Parse the raw content of a commit object.

    Args:
        sha: Identifier of the commit, used for error messages and kept on
            the returned record
        raw: Raw (uncompressed, headerless) commit content

    Returns:
        A Commit

    Raises:
        MalformedCommit: If a required line or marker is missing or does not
            match the expected pattern
    """
    lines = raw.split(b"\n")
    cur = 0

    tree = _expect(sha, lines, cur, _TREE_HEADER)[len(_TREE_HEADER) + 1 :]
    cur += 1

    parents = []
    while cur < len(lines) and lines[cur].startswith(_PARENT_HEADER + b" "):
        parents.append(lines[cur][len(_PARENT_HEADER) + 1 :])
        cur += 1

    author, author_time = _parse_identity(
        sha, _expect(sha, lines, cur, _AUTHOR_HEADER), _AUTHOR_HEADER
    )
    cur += 1
    committer, commit_time = _parse_identity(
        sha, _expect(sha, lines, cur, _COMMITTER_HEADER), _COMMITTER_HEADER
    )
    cur += 1

    foreign_header = None
    if cur < len(lines) and lines[cur].startswith(_FOREIGN_PREFIX):
        foreign_header = lines[cur]
        cur += 1

    signature = None
    if cur < len(lines) and lines[cur] in _SIGNATURE_MARKERS:
        end_marker = _SIGNATURE_MARKERS[lines[cur]]
        signature = []
        while True:
            if cur >= len(lines):
                raise MalformedCommit(sha, "Unterminated signature block")
            signature.append(lines[cur])
            cur += 1
            if signature[-1] == end_marker:
                break
        if cur < len(lines) and lines[cur] == _SIGNATURE_TRAILER:
            signature.append(lines[cur])
            cur += 1

    if cur >= len(lines) or lines[cur] != b"":
        raise MalformedCommit(
            sha, "Expected blank line after all known commit properties"
        )
    cur += 1

    return Commit(
        id=sha,
        tree=tree,
        parents=parents,
        author=author,
        author_time=author_time,
        committer=committer,
        commit_time=commit_time,
        foreign_header=foreign_header,
        signature=signature,
        message=lines[cur:],
    )


def _check_header_value(commit: Commit, name: str, value: bytes) -> None:
    if b"\n" in value:
        raise MalformedCommit(commit.id, f"newline in {name}: {value!r}")


def _format_identity(header: bytes, name: bytes, when: TimeEntry) -> bytes:
    return b"%s %s %d %s" % (
        header,
        name,
        when.time,
        format_timezone(when.offset, when.negative_utc),
    )


def serialize_commit(commit: Commit) -> bytes:
    """Serialize a commit to the exact bytes git hashes.

    Lines are joined with a bare newline. A captured signature block or
    foreign header is written back verbatim; use :func:`strip_unsupported`
    to deliberately leave them out.

    Args:
        commit: The commit to serialize

    Returns:
        Raw commit content
    """
    _check_header_value(commit, "tree", commit.tree)
    lines = [_TREE_HEADER + b" " + commit.tree]
    for parent in commit.parents:
        _check_header_value(commit, "parent", parent)
        lines.append(_PARENT_HEADER + b" " + parent)
    _check_header_value(commit, "author", commit.author)
    lines.append(_format_identity(_AUTHOR_HEADER, commit.author, commit.author_time))
    _check_header_value(commit, "committer", commit.committer)
    lines.append(
        _format_identity(_COMMITTER_HEADER, commit.committer, commit.commit_time)
    )
    if commit.foreign_header is not None:
        lines.append(commit.foreign_header)
    if commit.signature is not None:
        lines.extend(commit.signature)
    lines.append(b"")
    lines.extend(commit.message)
    return b"\n".join(lines)


def report_unsupported(commit: Commit) -> bool:
    """Log a warning for each part of a commit that cannot be re-created.

    Returns: Whether the commit carries a signature or foreign header
    """
    if not commit.has_unsupported:
        return False
    sha = (commit.id or b"<new>").decode("ascii", "replace")
    if commit.signature is not None:
        logger.warning(
            "Commit %s carries a signature; it is not preserved and the "
            "reassembled commit will not have it.",
            sha,
        )
    if commit.foreign_header is not None:
        logger.warning(
            "Commit %s carries a foreign %r line; it is not preserved.",
            sha,
            commit.foreign_header.decode("utf-8", "replace"),
        )
    return True


def strip_unsupported(commit: Commit) -> Commit:
    """Return a copy of a commit without its signature and foreign header.

    This is lossy: the stripped commit serializes to different bytes and so
    gets a different identifier. The loss is logged.
    """
    if not report_unsupported(commit):
        return commit
    return dataclasses.replace(commit, id=None, signature=None, foreign_header=None)
