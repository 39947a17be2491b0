# graph.py -- In-memory commit graph, reachability and ordering
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

"""In-memory commit graph, reachability discovery and topological ordering.

Parent edges are the only authoritative edges. Child edges are derived from
them in one pass whenever parents are (re)assigned. Traversals use explicit
stacks so that very deep histories do not exhaust the interpreter stack.
"""

__all__ = [
    "CommitGraph",
    "CommitNode",
    "discover",
    "topological_sort",
]

from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from typing import Any

from .errors import ParentCycle, UnknownReference, UnresolvedParent
from .objects import Commit


class CommitNode:
    """A commit in a CommitGraph, with resolved parent and child nodes.

    Attributes:
        key: Key of this node in its graph (a commit id, or an assigned name)
        payload: The record this node wraps
        parents: Parent nodes, in parent order
        children: Child nodes, derived from the parents of other nodes
        new_id: Identifier obtained when the commit is written to a store
    """

    __slots__ = ("children", "key", "new_id", "parents", "payload")

    def __init__(self, key: Hashable, payload: Any) -> None:
        self.key = key
        self.payload = payload
        self.parents: list[CommitNode] = []
        self.children: list[CommitNode] = []
        self.new_id: bytes | None = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.key!r}>"


class CommitGraph:
    """Commits indexed by key, with parent/child linkage."""

    def __init__(self) -> None:
        self._nodes: dict[Hashable, CommitNode] = {}

    @classmethod
    def build(
        cls, entries: Iterable[tuple[Hashable, Sequence[Hashable], Any]]
    ) -> "CommitGraph":
        """Build a graph.

        Args:
          entries: Iterable of (key, parent keys, payload) tuples

        Returns: A new CommitGraph

        Raises:
          UnresolvedParent: If a parent key is not among the entries
          ValueError: If a key occurs twice
        """
        graph = cls()
        parent_keys: dict[Hashable, list[Hashable]] = {}
        for key, parents, payload in entries:
            if key in graph._nodes:
                raise ValueError(f"Duplicate commit {key!r}")
            graph._nodes[key] = CommitNode(key, payload)
            parent_keys[key] = list(parents)
        for key, parents in parent_keys.items():
            graph._nodes[key].parents = graph._resolve(key, parents)
        graph._derive_children()
        return graph

    @classmethod
    def from_commits(cls, commits: Iterable[Commit]) -> "CommitGraph":
        """Build a graph of commits keyed by their identifiers."""
        return cls.build((c.id, c.parents, c) for c in commits)

    def _resolve(self, key: Hashable, parents: Sequence[Hashable]) -> list[CommitNode]:
        resolved = []
        for parent in parents:
            try:
                resolved.append(self._nodes[parent])
            except KeyError as exc:
                raise UnresolvedParent(key, parent) from exc
        return resolved

    def _derive_children(self) -> None:
        for node in self._nodes.values():
            node.children = []
        for node in self._nodes.values():
            for parent in node.parents:
                parent.children.append(node)

    def set_parents(self, key: Hashable, parents: Sequence[Hashable]) -> None:
        """Replace the parents of a node and re-derive all child edges."""
        self.lookup(key).parents = self._resolve(key, parents)
        self._derive_children()

    def lookup(self, key: Hashable) -> CommitNode:
        """Look up a node by key.

        Raises:
          UnknownReference: If there is no such node
        """
        try:
            return self._nodes[key]
        except KeyError as exc:
            raise UnknownReference(key) from exc

    __getitem__ = lookup

    def lookup_ref(self, refs: Mapping[bytes, bytes], name: bytes) -> CommitNode:
        """Look up the node a ref points at.

        Args:
          refs: Mapping of ref name to target key
          name: Full ref name

        Raises:
          UnknownReference: If the ref does not exist or its target is not
            in the graph
        """
        try:
            target = refs[name]
        except KeyError as exc:
            raise UnknownReference(name) from exc
        return self.lookup(target)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __iter__(self) -> Iterator[CommitNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def keys(self) -> Iterator[Hashable]:
        """Iterate over node keys, in insertion order."""
        return iter(self._nodes)


def discover(
    roots: Iterable[CommitNode], include_descendants: bool = False
) -> list[CommitNode]:
    """Find the nodes reachable from a set of roots.

    Ancestors are always followed. Descendants are followed from every
    discovered node when include_descendants is set, which can pull in
    history far outside the given roots.

    Args:
      roots: Nodes to start from; duplicates are harmless
      include_descendants: Whether to also follow child edges

    Returns: Discovered nodes in depth-first discovery order, each once
    """
    discovered: list[CommitNode] = []
    seen: set[CommitNode] = set()
    todo = list(roots)
    todo.reverse()
    while todo:
        node = todo.pop()
        if node in seen:
            continue
        seen.add(node)
        discovered.append(node)
        following = list(node.parents)
        if include_descendants:
            following.extend(node.children)
        # Reversed so the first parent is visited first.
        todo.extend(reversed(following))
    return discovered


def topological_sort(nodes: Iterable[CommitNode]) -> list[CommitNode]:
    """Order nodes so that every parent precedes its children.

    This is a depth-first postorder over parent edges; the order of the
    input breaks ties.

    Raises:
      ParentCycle: If the parent edges contain a cycle
    """
    done: set[CommitNode] = set()
    result: list[CommitNode] = []
    for start in nodes:
        if start in done:
            continue
        stack: list[tuple[CommitNode, Iterator[CommitNode]]] = [
            (start, iter(start.parents))
        ]
        active = {start}
        while stack:
            node, parents = stack[-1]
            for parent in parents:
                if parent in done:
                    continue
                if parent in active:
                    raise ParentCycle(parent.key)
                stack.append((parent, iter(parent.parents)))
                active.add(parent)
                break
            else:
                stack.pop()
                active.discard(node)
                done.add(node)
                result.append(node)
    return result
