# layout.py -- On-disk layout of a disassembled repository
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

"""On-disk layout of a disassembled repository.

::

    <root>/
      refs/heads/main                  contains a commit directory name
      <commit directory name>/
        tree/                          snapshot of the commit's files
        message.txt                    exact message bytes
        author.txt
        committer.txt                  only if different from the author
        parent0.txt, parent1.txt, ...  commit directory names, in order
        commit-time.txt                only if different from author time

Every file except message.txt and the tree contents is whitespace-trimmed
when read.
"""

__all__ = [
    "AUTHOR_FILENAME",
    "COMMITTER_FILENAME",
    "COMMIT_TIME_FILENAME",
    "MESSAGE_FILENAME",
    "REFS_DIRNAME",
    "TREE_DIRNAME",
    "iter_ref_files",
    "parent_filename",
    "read_exact",
    "read_trimmed",
    "ref_path",
    "write_file",
]

import os
from collections.abc import Iterator

from .errors import UnsafeRefName
from .objects import Ref

REFS_DIRNAME = "refs"
TREE_DIRNAME = "tree"
MESSAGE_FILENAME = "message.txt"
AUTHOR_FILENAME = "author.txt"
COMMITTER_FILENAME = "committer.txt"
COMMIT_TIME_FILENAME = "commit-time.txt"


def parent_filename(index: int) -> str:
    """Name of the file holding the parent at the given position."""
    return f"parent{index}.txt"


def read_exact(path: str) -> bytes | None:
    """Read a file's bytes, or None if it does not exist."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


def read_trimmed(path: str) -> bytes | None:
    """Read a file with surrounding whitespace removed, or None if absent."""
    contents = read_exact(path)
    if contents is None:
        return None
    return contents.strip()


def write_file(path: str, contents: bytes) -> None:
    """Write bytes to a file, replacing any existing file."""
    with open(path, "wb") as f:
        f.write(contents)


def ref_path(root: str, refname: Ref) -> str:
    """Path of the file describing a ref.

    Args:
      root: Root of the disassembled repository
      refname: Full ref name, e.g. b"refs/heads/main"
    Raises:
      UnsafeRefName: If a component of the name is empty, "." or ".."
    """
    parts = os.fsdecode(refname).split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise UnsafeRefName(refname)
    return os.path.join(root, *parts)


def iter_ref_files(root: str) -> Iterator[tuple[Ref, str]]:
    """Iterate over ref files below the refs directory, sorted by name.

    Args:
      root: Root of the disassembled repository

    Returns: Iterator over (full ref name, file path) tuples
    """
    refs_root = os.path.join(root, REFS_DIRNAME)
    if not os.path.isdir(refs_root):
        return
    for dirpath, dirnames, filenames in os.walk(refs_root):
        dirnames.sort()
        relative = os.path.relpath(dirpath, root)
        prefix = "/".join(relative.split(os.sep))
        for filename in sorted(filenames):
            yield os.fsencode(f"{prefix}/{filename}"), os.path.join(dirpath, filename)
