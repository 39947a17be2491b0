# utils.py -- Test utilities for gitdisassemble
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

"""Utility functions common to gitdisassemble tests."""

import os
from collections.abc import Mapping, Sequence

from gitdisassemble.object_store import EMPTY_TREE_ID, MemoryObjectStore
from gitdisassemble.objects import (
    COMMIT_TYPE,
    Commit,
    TimeEntry,
    object_id,
    serialize_commit,
)

# 2010-01-01 00:00:00 UTC
DEFAULT_TIME = 1262304000


def make_commit(**attrs) -> Commit:
    """Make a Commit with a default set of members.

    Args:
      attrs: dict of attributes to overwrite from the default values.
    Returns: A new Commit; its id is computed unless given.
    """
    all_attrs = {
        "author": b"Test Author <test@nodomain.com>",
        "author_time": TimeEntry(DEFAULT_TIME),
        "committer": b"Test Committer <test@nodomain.com>",
        "commit_time": TimeEntry(DEFAULT_TIME),
        "message": [b"Test message.", b""],
        "parents": [],
        "tree": EMPTY_TREE_ID,
    }
    all_attrs.update(attrs)
    commit = Commit(**all_attrs)
    if commit.id is None:
        commit.id = object_id(COMMIT_TYPE, serialize_commit(commit))
    return commit


def build_commit_graph(
    store: MemoryObjectStore,
    commit_spec: Sequence[Sequence[int]],
    trees: Mapping[int, Mapping[str, bytes]] | None = None,
    attrs: Mapping[int, Mapping] | None = None,
) -> list[Commit]:
    """Build a commit graph in a store from a compact specification.

    The specification is a list of commits, each a list of integers: the
    commit number followed by the numbers of its parents, in order.
    Parents must be listed before their children. For example,
    [[1], [2, 1], [3, 1, 2]] is a root 1, a child 2 and a merge 3.

    Args:
      store: MemoryObjectStore to add the commits to
      commit_spec: List of commit specifications
      trees: Optional dict of commit number -> {path: contents}
      attrs: Optional dict of commit number -> dict of commit attributes
    Returns: The commits, in the order of the specification
    """
    if trees is None:
        trees = {}
    if attrs is None:
        attrs = {}
    nums: dict[int, Commit] = {}
    commits = []
    for commit in commit_spec:
        commit_num = commit[0]
        parents = [nums[pn].id for pn in commit[1:]]
        commit_attrs = {
            "message": [b"Commit %d" % commit_num, b""],
            "parents": parents,
            "tree": store.add_files(trees.get(commit_num, {})),
            "author_time": TimeEntry(DEFAULT_TIME + 60 * commit_num),
            "commit_time": TimeEntry(DEFAULT_TIME + 60 * commit_num),
        }
        commit_attrs.update(attrs.get(commit_num, {}))
        commit_obj = make_commit(**commit_attrs)
        commit_obj.id = store.write_commit_object(serialize_commit(commit_obj))
        nums[commit_num] = commit_obj
        commits.append(commit_obj)
    return commits


def read_tree_files(path: str) -> dict[str, bytes]:
    """Read all files below a directory into a {relative path: contents} dict."""
    files = {}
    for dirpath, _, filenames in os.walk(path):
        for filename in filenames:
            full = os.path.join(dirpath, filename)
            relpath = os.path.relpath(full, path).replace(os.sep, "/")
            with open(full, "rb") as f:
                files[relpath] = f.read()
    return files
