# assemble.py -- Rebuild a repository from a disassembled directory tree
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

"""Rebuild a repository from a disassembled directory tree.

Assembly happens in two phases. :func:`read_disassembly` reads and validates
the whole input and orders the commits; it touches no repository. Only then
does :func:`rebuild` write trees, commits and refs, so malformed input leaves
the target repository unchanged.
"""

__all__ = [
    "AssemblyPlan",
    "AssemblyResult",
    "CommitRecord",
    "assemble",
    "list_commit_dirnames",
    "read_commit_record",
    "read_disassembly",
    "read_refs",
    "rebuild",
]

import logging
import os
from collections.abc import Collection
from dataclasses import dataclass, field

from .errors import (
    MissingAuthor,
    MissingMessage,
    UnparsableCommitTime,
    UnresolvedParentName,
    UnresolvedRefTarget,
)
from .graph import CommitGraph, CommitNode, topological_sort
from .layout import (
    AUTHOR_FILENAME,
    COMMIT_TIME_FILENAME,
    COMMITTER_FILENAME,
    MESSAGE_FILENAME,
    REFS_DIRNAME,
    TREE_DIRNAME,
    iter_ref_files,
    parent_filename,
    read_exact,
    read_trimmed,
)
from .naming import parse_dirname_time, parse_time_entry
from .object_store import BaseObjectStore
from .objects import Commit, ObjectID, Ref, TimeEntry, serialize_commit

logger = logging.getLogger(__name__)


@dataclass
class CommitRecord:
    """A commit as described by one commit directory."""

    name: str
    author: bytes
    author_time: TimeEntry
    committer: bytes
    commit_time: TimeEntry
    parents: list[str]
    message: list[bytes]
    tree_path: str


@dataclass
class AssemblyPlan:
    """Validated input, ready to be written.

    Attributes:
        graph: Commit records keyed by directory name
        order: Every node, parents before children
        refs: (ref name, directory name) pairs
    """

    graph: CommitGraph
    order: list[CommitNode]
    refs: list[tuple[Ref, str]]


@dataclass
class AssemblyResult:
    """Outcome of an assembly.

    Attributes:
        ids: New commit identifier per directory name
        refs: New target per updated ref
    """

    ids: dict[str, ObjectID] = field(default_factory=dict)
    refs: dict[Ref, ObjectID] = field(default_factory=dict)


def list_commit_dirnames(input_path: str) -> list[str]:
    """List the commit directory names of a disassembly, sorted."""
    with os.scandir(input_path) as it:
        return sorted(
            entry.name
            for entry in it
            if entry.is_dir() and entry.name != REFS_DIRNAME
        )


def read_commit_record(
    input_path: str, dirname: str, known: Collection[str]
) -> CommitRecord:
    """Read the description of one commit.

    Args:
      input_path: Root of the disassembly
      dirname: Name of the commit directory
      known: All commit directory names, used to check parent references
    Returns: A CommitRecord
    Raises:
      UnparsableDirectoryName: If dirname does not start with a time
      MissingAuthor: If neither an author nor a committer file exists
      UnresolvedParentName: If a parent file names an unknown directory
      UnparsableCommitTime: If the commit time file is not a valid time
      MissingMessage: If the message file does not exist
    """
    path = os.path.join(input_path, dirname)
    author_time = parse_dirname_time(dirname)

    author = read_trimmed(os.path.join(path, AUTHOR_FILENAME))
    committer = read_trimmed(os.path.join(path, COMMITTER_FILENAME))
    if committer is None:
        committer = author
    if author is None:
        author = committer
    if author is None or committer is None:
        raise MissingAuthor(dirname)

    parents = []
    i = 0
    while True:
        contents = read_trimmed(os.path.join(path, parent_filename(i)))
        if contents is None:
            break
        parent = os.fsdecode(contents)
        if parent not in known:
            raise UnresolvedParentName(dirname, i, parent)
        parents.append(parent)
        i += 1

    commit_time = author_time
    contents = read_trimmed(os.path.join(path, COMMIT_TIME_FILENAME))
    if contents is not None:
        text = contents.decode("ascii", "replace")
        try:
            commit_time = parse_time_entry(text)
        except ValueError as exc:
            raise UnparsableCommitTime(dirname, text) from exc

    message = read_exact(os.path.join(path, MESSAGE_FILENAME))
    if message is None:
        raise MissingMessage(dirname)

    return CommitRecord(
        name=dirname,
        author=author,
        author_time=author_time,
        committer=committer,
        commit_time=commit_time,
        parents=parents,
        message=message.split(b"\n"),
        tree_path=os.path.join(path, TREE_DIRNAME),
    )


def read_refs(input_path: str, known: Collection[str]) -> list[tuple[Ref, str]]:
    """Read the refs of a disassembly.

    Raises:
      UnresolvedRefTarget: If a ref names an unknown commit directory
    """
    refs = []
    for refname, path in iter_ref_files(input_path):
        contents = read_trimmed(path)
        target = os.fsdecode(contents or b"")
        if target not in known:
            raise UnresolvedRefTarget(os.fsdecode(refname), target)
        refs.append((refname, target))
    return refs


def read_disassembly(input_path: str) -> AssemblyPlan:
    """Read and validate a complete disassembly.

    Nothing is written; every error in the input is raised from here.
    """
    dirnames = list_commit_dirnames(input_path)
    known = frozenset(dirnames)
    records = [read_commit_record(input_path, d, known) for d in dirnames]
    refs = read_refs(input_path, known)
    graph = CommitGraph.build((r.name, r.parents, r) for r in records)
    order = topological_sort(graph)
    return AssemblyPlan(graph=graph, order=order, refs=refs)


def rebuild(store: BaseObjectStore, plan: AssemblyPlan) -> AssemblyResult:
    """Write the commits and refs of a plan to a store.

    Commits are written in the plan's order, so the new identifier of every
    parent is known by the time a child is serialized.
    """
    result = AssemblyResult()
    for node in plan.order:
        record: CommitRecord = node.payload
        if not os.path.isdir(record.tree_path):
            logger.warning(
                "Commit %s has no %s directory; using an empty tree",
                record.name,
                TREE_DIRNAME,
            )
        tree = store.stage_tree(record.tree_path)
        parents = [result.ids[parent.key] for parent in node.parents]
        commit = Commit(
            tree=tree,
            parents=parents,
            author=record.author,
            author_time=record.author_time,
            committer=record.committer,
            commit_time=record.commit_time,
            message=record.message,
        )
        new_id = store.write_commit_object(serialize_commit(commit))
        node.new_id = result.ids[record.name] = new_id
        logger.info("Writing commit %s... %s", record.name, new_id[:8].decode("ascii"))

    logger.info("Writing refs...")
    for refname, target in plan.refs:
        sha = result.ids[target]
        logger.info("    %s -> %s", os.fsdecode(refname), sha[:8].decode("ascii"))
        store.update_ref(refname, sha)
        result.refs[refname] = sha
    return result


def assemble(input_path: str, store: BaseObjectStore) -> AssemblyResult:
    """Assemble a repository from a disassembly.

    The target repository is created if it does not exist yet.

    Args:
      input_path: Root of the disassembly
      store: Store of the target repository
    Returns: An AssemblyResult
    """
    plan = read_disassembly(input_path)
    store.ensure_repository()
    return rebuild(store, plan)
