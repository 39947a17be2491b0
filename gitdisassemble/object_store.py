# object_store.py -- Object store interface and in-memory implementation
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

"""Object store interface and an in-memory implementation.

Disassembly and assembly only talk to a repository through the handful of
primitive operations on :class:`BaseObjectStore`. Object identifiers are hex
SHA-1 strings (as bytes).
"""

__all__ = [
    "BLOB_TYPE",
    "EMPTY_TREE_ID",
    "TREE_TYPE",
    "BaseObjectStore",
    "MemoryObjectStore",
    "parse_tree",
    "serialize_tree",
]

import binascii
import os
import stat
from collections.abc import Iterable, Iterator, Mapping

from .errors import StoreError, to_display_str
from .objects import COMMIT_TYPE, ObjectID, Ref, object_id, parse_commit

BLOB_TYPE = b"blob"
TREE_TYPE = b"tree"

EMPTY_TREE_ID = b"4b825dc642cb6eb9a060e54bf8d69288fbee4904"

S_IFGITLINK = 0o160000
_FILE_MODE = 0o100644
_EXECUTABLE_MODE = 0o100755
_SYMLINK_MODE = 0o120000
_TREE_MODE = 0o040000


class BaseObjectStore:
    """Primitive repository operations used by disassembly and assembly."""

    def ensure_repository(self) -> None:
        """Create the repository if it does not exist yet."""
        raise NotImplementedError(self.ensure_repository)

    def list_refs(self) -> list[tuple[Ref, ObjectID]]:
        """List all refs as (full ref name, target identifier) pairs."""
        raise NotImplementedError(self.list_refs)

    def list_all_objects(self) -> list[tuple[ObjectID, bytes]]:
        """List every object, referenced or not, as (identifier, type) pairs."""
        raise NotImplementedError(self.list_all_objects)

    def read_object(self, sha: ObjectID) -> bytes:
        """Read the raw content of a commit object."""
        raise NotImplementedError(self.read_object)

    def materialize_tree(self, sha: ObjectID, path: str) -> None:
        """Write the file tree of a commit into a directory.

        The directory contains exactly the commit's files and no
        repository bookkeeping.
        """
        raise NotImplementedError(self.materialize_tree)

    def stage_tree(self, path: str) -> ObjectID:
        """Store the contents of a directory as a tree and return its id.

        A path that does not exist is stored as the empty tree.
        """
        raise NotImplementedError(self.stage_tree)

    def write_commit_object(self, raw: bytes) -> ObjectID:
        """Store pre-serialized commit content and return its identifier."""
        raise NotImplementedError(self.write_commit_object)

    def update_ref(self, name: Ref, sha: ObjectID) -> None:
        """Point a ref at a commit, creating the ref if necessary."""
        raise NotImplementedError(self.update_ref)


def serialize_tree(entries: Iterable[tuple[bytes, int, ObjectID]]) -> bytes:
    """Serialize tree entries in git's canonical order.

    Args:
      entries: Iterable of (name, mode, hex sha) tuples, in any order
    Returns: Raw tree content
    """

    def key(entry: tuple[bytes, int, ObjectID]) -> bytes:
        name, mode, _ = entry
        return name + b"/" if stat.S_ISDIR(mode) else name

    return b"".join(
        b"%o %s\0%s" % (mode, name, binascii.unhexlify(sha))
        for name, mode, sha in sorted(entries, key=key)
    )


def parse_tree(raw: bytes) -> Iterator[tuple[bytes, int, ObjectID]]:
    """Parse raw tree content.

    Returns: Iterator over (name, mode, hex sha) tuples
    """
    pos = 0
    while pos < len(raw):
        mode_end = raw.index(b" ", pos)
        mode = int(raw[pos:mode_end], 8)
        name_end = raw.index(b"\0", mode_end)
        name = raw[mode_end + 1 : name_end]
        pos = name_end + 21
        yield name, mode, binascii.hexlify(raw[name_end + 1 : pos])


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects and refs in memory.

    Objects are hashed the way git hashes them, so identifiers computed here
    match the ones a real repository would assign to the same content.
    """

    def __init__(self) -> None:
        self._objects: dict[ObjectID, tuple[bytes, bytes]] = {}
        self._refs: dict[Ref, ObjectID] = {}

    def ensure_repository(self) -> None:
        pass

    def add_object(self, type_name: bytes, raw: bytes) -> ObjectID:
        """Add an object of any type and return its identifier."""
        sha = object_id(type_name, raw)
        self._objects[sha] = (type_name, raw)
        return sha

    def get_raw(self, sha: ObjectID) -> tuple[bytes, bytes]:
        """Obtain the type and raw content of an object.

        Raises:
          KeyError: If the object is not present
        """
        return self._objects[sha]

    def __contains__(self, sha: object) -> bool:
        return sha in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    @property
    def refs(self) -> dict[Ref, ObjectID]:
        """Copy of the current refs."""
        return dict(self._refs)

    def list_refs(self) -> list[tuple[Ref, ObjectID]]:
        return sorted(self._refs.items())

    def list_all_objects(self) -> list[tuple[ObjectID, bytes]]:
        return [(sha, type_name) for sha, (type_name, _) in self._objects.items()]

    def _get(self, sha: ObjectID, type_name: bytes, operation: str) -> bytes:
        try:
            actual, raw = self._objects[sha]
        except KeyError as exc:
            raise StoreError(
                f"{operation} {to_display_str(sha)}", stderr="object not found"
            ) from exc
        if actual != type_name:
            raise StoreError(
                f"{operation} {to_display_str(sha)}",
                stderr=f"expected {to_display_str(type_name)}, "
                f"got {to_display_str(actual)}",
            )
        return raw

    def read_object(self, sha: ObjectID) -> bytes:
        return self._get(sha, COMMIT_TYPE, "read_object")

    def write_commit_object(self, raw: bytes) -> ObjectID:
        return self.add_object(COMMIT_TYPE, raw)

    def update_ref(self, name: Ref, sha: ObjectID) -> None:
        if sha not in self._objects:
            raise StoreError(
                f"update_ref {to_display_str(name)} {to_display_str(sha)}",
                stderr="object not found",
            )
        self._refs[name] = sha

    def add_files(self, files: Mapping[str, bytes]) -> ObjectID:
        """Store a tree built from a mapping of slash-separated paths to content.

        Returns: Identifier of the root tree
        """
        root: dict = {}
        for path, contents in files.items():
            *dirs, basename = path.split("/")
            current = root
            for d in dirs:
                current = current.setdefault(os.fsencode(d), {})
            current[os.fsencode(basename)] = contents
        return self._add_nested(root)

    def _add_nested(self, nested: dict) -> ObjectID:
        entries = []
        for name, value in nested.items():
            if isinstance(value, dict):
                entries.append((name, _TREE_MODE, self._add_nested(value)))
            else:
                entries.append((name, _FILE_MODE, self.add_object(BLOB_TYPE, value)))
        return self.add_object(TREE_TYPE, serialize_tree(entries))

    def _add_directory(self, path: str) -> ObjectID | None:
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                name = os.fsencode(entry.name)
                if entry.is_symlink():
                    target = os.fsencode(os.readlink(entry.path))
                    entries.append(
                        (name, _SYMLINK_MODE, self.add_object(BLOB_TYPE, target))
                    )
                elif entry.is_dir():
                    subtree = self._add_directory(entry.path)
                    # Like git, do not record empty directories.
                    if subtree is not None:
                        entries.append((name, _TREE_MODE, subtree))
                else:
                    with open(entry.path, "rb") as f:
                        blob = self.add_object(BLOB_TYPE, f.read())
                    executable = entry.stat().st_mode & stat.S_IXUSR
                    mode = _EXECUTABLE_MODE if executable else _FILE_MODE
                    entries.append((name, mode, blob))
        if not entries:
            return None
        return self.add_object(TREE_TYPE, serialize_tree(entries))

    def stage_tree(self, path: str) -> ObjectID:
        if not os.path.isdir(path):
            return self.add_object(TREE_TYPE, b"")
        sha = self._add_directory(path)
        if sha is None:
            return self.add_object(TREE_TYPE, b"")
        return sha

    def iter_tree(
        self, sha: ObjectID, prefix: bytes = b""
    ) -> Iterator[tuple[bytes, int, bytes]]:
        """Iterate over the files of a tree, recursively.

        Returns: Iterator over (path, mode, content) tuples
        """
        for name, mode, child in parse_tree(self._get(sha, TREE_TYPE, "iter_tree")):
            path = prefix + name
            if stat.S_ISDIR(mode):
                yield from self.iter_tree(child, path + b"/")
            elif mode != S_IFGITLINK:
                yield path, mode, self._get(child, BLOB_TYPE, "iter_tree")

    def materialize_tree(self, sha: ObjectID, path: str) -> None:
        commit = parse_commit(sha, self.read_object(sha))
        os.makedirs(path, exist_ok=True)
        for relpath, mode, contents in self.iter_tree(commit.tree):
            target = os.path.join(path, *os.fsdecode(relpath).split("/"))
            os.makedirs(os.path.dirname(target), exist_ok=True)
            if mode == _SYMLINK_MODE:
                os.symlink(os.fsdecode(contents), target)
                continue
            with open(target, "wb") as f:
                f.write(contents)
            if mode == _EXECUTABLE_MODE:
                os.chmod(target, 0o755)
