# disassemble.py -- Turn a repository's history into a directory tree
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

"""Turn a repository's commit history into an editable directory tree."""

__all__ = [
    "DisassemblyResult",
    "DisassemblyWriter",
    "RootSelection",
    "disassemble",
    "read_commits",
    "resolve_roots",
]

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .config import RunConfig
from .errors import UnknownRootReference
from .graph import CommitGraph, CommitNode, discover
from .layout import (
    AUTHOR_FILENAME,
    COMMIT_TIME_FILENAME,
    COMMITTER_FILENAME,
    MESSAGE_FILENAME,
    TREE_DIRNAME,
    parent_filename,
    ref_path,
    write_file,
)
from .naming import assign_names, format_commit_time
from .object_store import BaseObjectStore
from .objects import (
    COMMIT_TYPE,
    Commit,
    ObjectID,
    Ref,
    parse_commit,
    report_unsupported,
)

logger = logging.getLogger(__name__)

HEADS_PREFIX = b"refs/heads/"
TAGS_PREFIX = b"refs/tags/"

# Number of ref names listed when reporting refs
_REF_REPORT_LIMIT = 4


@dataclass(frozen=True)
class RootSelection:
    """Which commits to start discovery from.

    Attributes:
        names: Full commit identifiers or full ref names
        heads: Add every ref under refs/heads/
        tags: Add every ref under refs/tags/
        include_descendants: Also follow child edges during discovery
    """

    names: Sequence[bytes | str] = ()
    heads: bool = False
    tags: bool = False
    include_descendants: bool = False


@dataclass
class DisassemblyResult:
    """Outcome of a disassembly.

    Attributes:
        names: Assigned directory name per original commit identifier
        refs: Assigned directory name per ref that was written
        skipped_refs: Refs not written because their target was not included
    """

    names: dict[ObjectID, str] = field(default_factory=dict)
    refs: dict[Ref, str] = field(default_factory=dict)
    skipped_refs: list[Ref] = field(default_factory=list)


def _format_ref_list(names: Sequence[Ref]) -> str:
    if not names:
        return ""
    shown = [os.fsdecode(name) for name in names[:_REF_REPORT_LIMIT]]
    if len(names) > _REF_REPORT_LIMIT:
        shown.append("etc")
    return ": " + ", ".join(shown)


def _report_refs(refs: Sequence[tuple[Ref, ObjectID]]) -> None:
    heads = [name for name, _ in refs if name.startswith(HEADS_PREFIX)]
    tags = [name for name, _ in refs if name.startswith(TAGS_PREFIX)]
    others = [
        name
        for name, _ in refs
        if not name.startswith(HEADS_PREFIX) and not name.startswith(TAGS_PREFIX)
    ]
    logger.info("Found %d heads%s", len(heads), _format_ref_list(heads))
    logger.info("Found %d tags%s", len(tags), _format_ref_list(tags))
    if others:
        logger.info("Found %d other refs%s", len(others), _format_ref_list(others))


def read_commits(
    store: BaseObjectStore, commit_ids: Iterable[ObjectID], jobs: int
) -> list[Commit]:
    """Read and parse commits concurrently.

    Args:
      store: Store to read from
      commit_ids: Identifiers of the commits to read
      jobs: Maximum number of concurrent reads
    Returns: Parsed commits, in the order of commit_ids
    Raises:
      MalformedCommit: If any commit fails to parse
      StoreError: If any read fails
    """

    def read(sha: ObjectID) -> Commit:
        return parse_commit(sha, store.read_object(sha))

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(read, commit_ids))


def resolve_roots(
    graph: CommitGraph, refs: Mapping[Ref, ObjectID], selection: RootSelection
) -> list[CommitNode]:
    """Resolve a root selection to graph nodes.

    Raises:
      UnknownRootReference: If an explicitly named root is neither a commit
        in the graph nor a ref pointing at one
    """
    roots = []
    for name in selection.names:
        key = os.fsencode(name) if isinstance(name, str) else name
        if key in graph:
            roots.append(graph[key])
        elif key in refs and refs[key] in graph:
            roots.append(graph.lookup_ref(refs, key))
        else:
            raise UnknownRootReference(name)
    prefixes = []
    if selection.heads:
        prefixes.append(HEADS_PREFIX)
    if selection.tags:
        prefixes.append(TAGS_PREFIX)
    for prefix in prefixes:
        for refname, target in sorted(refs.items()):
            if not refname.startswith(prefix):
                continue
            if target not in graph:
                logger.warning(
                    "Skipping %s: it does not point at a commit",
                    os.fsdecode(refname),
                )
                continue
            roots.append(graph[target])
    return roots


class DisassemblyWriter:
    """Writes commits and refs into a disassembly directory."""

    def __init__(self, store: BaseObjectStore, output_path: str) -> None:
        self.store = store
        self.output_path = output_path

    def write_refs(
        self,
        refs: Iterable[tuple[Ref, ObjectID]],
        graph: CommitGraph,
        names: Mapping[CommitNode, str],
    ) -> tuple[dict[Ref, str], list[Ref]]:
        """Write a file for every ref whose target was discovered.

        Returns: Tuple of (written refs with their targets' names, skipped refs)
        """
        written: dict[Ref, str] = {}
        skipped: list[Ref] = []
        for refname, target in refs:
            if target not in graph or graph[target] not in names:
                logger.debug("Not writing %s", os.fsdecode(refname))
                skipped.append(refname)
                continue
            name = names[graph[target]]
            path = ref_path(self.output_path, refname)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            write_file(path, name.encode("ascii"))
            written[refname] = name
        return written, skipped

    def write_commit(self, node: CommitNode, names: Mapping[CommitNode, str]) -> str:
        """Write the directory of one commit.

        Returns: Path of the commit directory
        """
        commit: Commit = node.payload
        name = names[node]
        logger.info("Writing %s", name)
        path = os.path.join(self.output_path, name)
        os.makedirs(path, exist_ok=True)
        self.store.materialize_tree(commit.id, os.path.join(path, TREE_DIRNAME))
        report_unsupported(commit)
        write_file(os.path.join(path, MESSAGE_FILENAME), b"\n".join(commit.message))
        for i, parent in enumerate(node.parents):
            write_file(
                os.path.join(path, parent_filename(i)), names[parent].encode("ascii")
            )
        write_file(os.path.join(path, AUTHOR_FILENAME), commit.author)
        if commit.committer != commit.author:
            write_file(os.path.join(path, COMMITTER_FILENAME), commit.committer)
        if commit.commit_time != commit.author_time:
            write_file(
                os.path.join(path, COMMIT_TIME_FILENAME),
                format_commit_time(commit.id, commit.commit_time).encode("ascii"),
            )
        return path


def disassemble(
    store: BaseObjectStore,
    output_path: str,
    selection: RootSelection,
    config: RunConfig | None = None,
) -> DisassemblyResult:
    """Disassemble the history of a repository into a directory.

    Args:
      store: Store of the repository to read
      output_path: Directory to write to; created if missing
      selection: Roots to start commit discovery from
      config: Run configuration
    Returns: A DisassemblyResult
    """
    if config is None:
        config = RunConfig()
    refs = store.list_refs()
    _report_refs(refs)

    # Objects present in more than one pack may be listed twice.
    commit_ids = list(
        dict.fromkeys(
            sha for sha, kind in store.list_all_objects() if kind == COMMIT_TYPE
        )
    )
    logger.info("Found %d commit objects", len(commit_ids))
    logger.info("Reading every commit...")
    graph = CommitGraph.from_commits(read_commits(store, commit_ids, config.jobs))

    roots = resolve_roots(graph, dict(refs), selection)
    discovered = discover(roots, include_descendants=selection.include_descendants)
    names = assign_names(discovered)

    os.makedirs(output_path, exist_ok=True)
    writer = DisassemblyWriter(store, output_path)
    written, skipped = writer.write_refs(refs, graph, names)
    logger.info("Writing %d commits...", len(discovered))
    for node in discovered:
        writer.write_commit(node, names)
    return DisassemblyResult(
        names={node.key: name for node, name in names.items()},
        refs=written,
        skipped_refs=skipped,
    )
