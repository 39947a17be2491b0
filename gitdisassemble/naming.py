# naming.py -- Human-readable names for disassembled commits
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

"""Human-readable names for disassembled commits.

A commit directory is named
``<author time>--<first 8 chars of id>--<message preview>``, for example
``2021.03.04--05.06.07+01.00--1a2b3c4d--Fix.the.frobnicator``.

Times are written as the wall-clock time in the offset recorded in the
commit, followed by that offset, so the text converts back to exactly the
recorded (time, offset) pair.
"""

__all__ = [
    "ID_PREFIX_LENGTH",
    "PREVIEW_LENGTH",
    "assign_name",
    "assign_names",
    "format_commit_time",
    "format_time_entry",
    "message_preview",
    "parse_dirname_time",
    "parse_time_entry",
]

import re
import string
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from .errors import NameCollision, TimeOutOfRange, UnparsableDirectoryName
from .graph import CommitNode
from .objects import Commit, ObjectID, TimeEntry

ID_PREFIX_LENGTH = 8
PREVIEW_LENGTH = 20
NAME_SEPARATOR = "--"

_EPOCH = datetime(1970, 1, 1)
_PREVIEW_CHARS = frozenset(string.ascii_letters + string.digits)

_TIME_PATTERN = (
    r"(?P<year>\d{4})\.(?P<month>\d{2})\.(?P<day>\d{2})"
    r"--(?P<hour>\d{2})\.(?P<minute>\d{2})\.(?P<second>\d{2})"
    r"(?P<sign>[+-])(?P<tzhours>\d{2})\.(?P<tzminutes>\d{2})"
)
_TIME_RE = re.compile(_TIME_PATTERN)
_DIRNAME_RE = re.compile(
    r"(?P<time>\d{4}\.\d{2}\.\d{2}--\d{2}\.\d{2}\.\d{2}[+-]\d{2}\.\d{2})--"
)


def format_time_entry(when: TimeEntry) -> str:
    """Format a time as ``YYYY.MM.DD--HH.MM.SS+HH.MM``.

    Args:
      when: Time and recorded offset

    Returns: Local time in the recorded offset, followed by the offset
    Raises:
      ValueError: If the time is past the last representable date
    """
    try:
        local = _EPOCH + timedelta(seconds=when.time + when.offset)
    except OverflowError as exc:
        raise ValueError(f"Time {when.time} is out of range") from exc
    offset = when.offset
    if offset < 0 or (offset == 0 and when.negative_utc):
        sign = "-"
        offset = -offset
    else:
        sign = "+"
    return (
        f"{local.year:04d}.{local.month:02d}.{local.day:02d}"
        f"--{local.hour:02d}.{local.minute:02d}.{local.second:02d}"
        f"{sign}{offset // 3600:02d}.{(offset // 60) % 60:02d}"
    )


def parse_time_entry(text: str) -> TimeEntry:
    """Parse a time written by :func:`format_time_entry`.

    Raises:
      ValueError: If text does not match the format or names an invalid date
    """
    m = _TIME_RE.fullmatch(text)
    if m is None:
        raise ValueError(f"Invalid time {text!r}")
    local = datetime(
        int(m.group("year")),
        int(m.group("month")),
        int(m.group("day")),
        int(m.group("hour")),
        int(m.group("minute")),
        int(m.group("second")),
    )
    tzminutes = int(m.group("tzminutes"))
    if tzminutes >= 60:
        raise ValueError(f"Invalid offset in time {text!r}")
    offset = int(m.group("tzhours")) * 3600 + tzminutes * 60
    negative = m.group("sign") == "-"
    if negative:
        offset = -offset
    seconds = (local - _EPOCH) // timedelta(seconds=1)
    return TimeEntry(seconds - offset, offset, negative and offset == 0)


def parse_dirname_time(dirname: str) -> TimeEntry:
    """Parse the leading author time of a commit directory name.

    Raises:
      UnparsableDirectoryName: If the name does not start with a valid time
    """
    m = _DIRNAME_RE.match(dirname)
    if m is None:
        raise UnparsableDirectoryName(dirname)
    try:
        return parse_time_entry(m.group("time"))
    except ValueError as exc:
        raise UnparsableDirectoryName(dirname) from exc


def message_preview(message: Sequence[bytes]) -> str:
    """Produce a short filesystem-safe preview of a commit message.

    Lines are joined with spaces, every character other than an ASCII
    letter or digit becomes ``.``, runs of dots are collapsed, and the
    result is cut to 20 characters with leading and trailing dots removed.
    The result may be empty.
    """
    text = b" ".join(message).decode("ascii", "replace")
    preview = "".join(c if c in _PREVIEW_CHARS else "." for c in text)
    while ".." in preview:
        preview = preview.replace("..", ".")
    return preview[:PREVIEW_LENGTH].strip(".")


def format_commit_time(sha: ObjectID | None, when: TimeEntry) -> str:
    """Format one of the times of a commit.

    Raises:
      TimeOutOfRange: If the time cannot be written as a date
    """
    try:
        return format_time_entry(when)
    except ValueError as exc:
        raise TimeOutOfRange(sha, when.time) from exc


def assign_name(commit: Commit) -> str:
    """Compute the directory name of a commit."""
    if commit.id is None:
        raise ValueError("Cannot name a commit without an identifier")
    return NAME_SEPARATOR.join(
        [
            format_commit_time(commit.id, commit.author_time),
            commit.id.decode("ascii")[:ID_PREFIX_LENGTH],
            message_preview(commit.message),
        ]
    )


def assign_names(nodes: Iterable[CommitNode]) -> dict[CommitNode, str]:
    """Assign a directory name to each node's commit.

    Raises:
      NameCollision: If two commits would get the same name
    """
    names: dict[CommitNode, str] = {}
    owners: dict[str, CommitNode] = {}
    for node in nodes:
        name = assign_name(node.payload)
        other = owners.setdefault(name, node)
        if other is not node:
            raise NameCollision(name, other.key, node.key)
        names[node] = name
    return names
