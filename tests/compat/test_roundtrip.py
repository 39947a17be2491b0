# test_roundtrip.py -- Disassemble and reassemble real repositories
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

"""Round trip tests against repositories created by git itself."""

import os
import stat

from gitdisassemble.assemble import assemble, list_commit_dirnames
from gitdisassemble.disassemble import RootSelection, disassemble
from gitdisassemble.errors import StoreError
from gitdisassemble.gitcmd import GitCommandObjectStore

from ..utils import read_tree_files
from .utils import CompatTestCase

# 2021-03-04 04:06:07 UTC
BASE_TIME = 1614830767


class RoundTripTests(CompatTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmp = self.make_temp_dir()
        self.repo = os.path.join(self.tmp, "repo")
        os.mkdir(self.repo)
        self.git(self.repo, "init", "--quiet")
        self.git(self.repo, "symbolic-ref", "HEAD", "refs/heads/main")

    def write(self, relpath: str, contents: bytes, mode: int | None = None) -> None:
        path = os.path.join(self.repo, relpath)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(contents)
        if mode is not None:
            os.chmod(path, mode)

    def commit(self, message: str, when: int) -> None:
        self.git(self.repo, "add", "--all")
        self.git(self.repo, "commit", "--quiet", "--allow-empty", "-m", message, when=when)

    def make_history(self) -> None:
        self.write("README", b"hello\n")
        self.write("dos.txt", b"line one\r\nline two\r\n")
        self.commit("Initial commit", BASE_TIME)
        self.git(self.repo, "checkout", "--quiet", "-b", "feature")
        self.write("bin/run.sh", b"#!/bin/sh\necho hi\n", 0o755)
        self.commit("Add a script", BASE_TIME + 60)
        self.git(self.repo, "checkout", "--quiet", "main")
        self.write("README", b"hello world\n")
        self.commit("Expand README", BASE_TIME + 120)
        self.git(
            self.repo,
            "merge",
            "--quiet",
            "--no-ff",
            "-m",
            "Merge feature",
            "feature",
            when=BASE_TIME + 180,
        )
        self.git(self.repo, "tag", "light", "HEAD~1")
        self.git(self.repo, "tag", "-a", "-m", "Version 1", "v1", when=BASE_TIME + 240)

    def test_roundtrip(self) -> None:
        self.make_history()
        output = os.path.join(self.tmp, "disassembled")
        rebuilt = os.path.join(self.tmp, "rebuilt")

        with self.assertLogs("gitdisassemble.disassemble", "WARNING") as cm:
            result = disassemble(
                GitCommandObjectStore(self.repo),
                output,
                RootSelection(heads=True, tags=True),
            )
        self.assertIn("refs/tags/v1", cm.output[0])
        self.assertEqual(4, len(result.names))
        self.assertEqual(
            {b"refs/heads/feature", b"refs/heads/main", b"refs/tags/light"},
            set(result.refs),
        )

        assembled = assemble(output, GitCommandObjectStore(rebuilt))

        for ref in ("refs/heads/main", "refs/heads/feature", "refs/tags/light"):
            self.assertEqual(
                self.rev_parse(self.repo, ref), self.rev_parse(rebuilt, ref)
            )
        self.assertEqual(
            set(result.names),
            set(assembled.ids.values()),
        )
        self.git(rebuilt, "fsck", "--no-dangling")

    def test_tree_contents(self) -> None:
        self.make_history()
        output = os.path.join(self.tmp, "disassembled")
        result = disassemble(
            GitCommandObjectStore(self.repo),
            output,
            RootSelection(names=["refs/heads/main"]),
        )
        head = self.rev_parse(self.repo, "refs/heads/main")
        tree = os.path.join(output, result.names[head], "tree")
        self.assertEqual(
            {
                "README": b"hello world\n",
                "dos.txt": b"line one\r\nline two\r\n",
                "bin/run.sh": b"#!/bin/sh\necho hi\n",
            },
            read_tree_files(tree),
        )
        self.assertFalse(os.path.exists(os.path.join(tree, ".git")))
        mode = os.stat(os.path.join(tree, "bin", "run.sh")).st_mode
        self.assertTrue(mode & stat.S_IXUSR)
        with open(os.path.join(output, result.names[head], "committer.txt"), "rb") as f:
            self.assertEqual(b"C O Mitter <committer@example.com>", f.read())

    def test_edit_and_reassemble(self) -> None:
        self.make_history()
        output = os.path.join(self.tmp, "disassembled")
        rebuilt = os.path.join(self.tmp, "rebuilt")
        disassemble(
            GitCommandObjectStore(self.repo),
            output,
            RootSelection(names=["refs/heads/main"]),
        )
        first = list_commit_dirnames(output)[0]
        with open(os.path.join(output, first, "tree", "README"), "wb") as f:
            f.write(b"rewritten history\n")

        assemble(output, GitCommandObjectStore(rebuilt))

        root = self.git(rebuilt, "rev-list", "--max-parents=0", "refs/heads/main")
        self.assertEqual(
            b"rewritten history\n",
            self.git(rebuilt, "show", root.strip().decode("ascii") + ":README"),
        )
        self.assertNotEqual(
            self.rev_parse(self.repo, "refs/heads/main"),
            self.rev_parse(rebuilt, "refs/heads/main"),
        )

    def test_target_inside_other_repository(self) -> None:
        self.make_history()
        output = os.path.join(self.tmp, "disassembled")
        disassemble(
            GitCommandObjectStore(self.repo),
            output,
            RootSelection(names=["refs/heads/main"]),
        )
        target = os.path.join(self.repo, "target")
        os.mkdir(target)
        with open(os.path.join(target, "junk"), "wb") as f:
            f.write(b"not a repository\n")
        refs_before = self.git(self.repo, "for-each-ref")

        with self.assertRaises(StoreError) as cm:
            assemble(output, GitCommandObjectStore(target))

        self.assertIn(target, str(cm.exception))
        self.assertEqual(refs_before, self.git(self.repo, "for-each-ref"))
        self.assertFalse(os.path.exists(os.path.join(target, ".git")))

    def test_input_inside_other_repository(self) -> None:
        self.make_history()
        with self.assertRaises(StoreError):
            disassemble(
                GitCommandObjectStore(os.path.join(self.repo, "bin")),
                os.path.join(self.tmp, "disassembled"),
                RootSelection(heads=True),
            )

    def test_missing_repository(self) -> None:
        store = GitCommandObjectStore(os.path.join(self.tmp, "nonexistent"))
        with self.assertRaises(StoreError):
            store.list_refs()

    def test_existing_empty_directory(self) -> None:
        output = os.path.join(self.tmp, "disassembled")
        os.mkdir(output)
        rebuilt = os.path.join(self.tmp, "rebuilt")
        os.mkdir(rebuilt)
        assemble(output, GitCommandObjectStore(rebuilt))
        self.assertTrue(os.path.isdir(os.path.join(rebuilt, ".git")))
