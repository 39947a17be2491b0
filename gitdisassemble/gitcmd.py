# gitcmd.py -- Object store backed by the git executable
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

"""Object store backed by the git executable.

Every operation runs one git process. Tree materialisation and staging use a
throwaway index file, so the repository's own index and working tree are
never touched.
"""

__all__ = [
    "GitCommandObjectStore",
    "run_git",
]

import logging
import os
import subprocess
import tempfile
from collections.abc import Mapping, Sequence

from .config import RunConfig
from .errors import StoreError
from .object_store import BaseObjectStore
from .objects import ObjectID, Ref

logger = logging.getLogger(__name__)


def run_git(
    config: RunConfig,
    args: Sequence[str],
    *,
    cwd: str | None = None,
    input: bytes | None = None,
    env: Mapping[str, str] | None = None,
    check_crlf: bool = True,
) -> bytes:
    """Run a git command and return its standard output.

    Args:
      config: Run configuration (git executable, line ending handling)
      args: Arguments to git, without the executable
      cwd: Directory to run in
      input: Data to send to standard input
      env: Extra environment variables
      check_crlf: Reject output containing CRLF line endings
    Returns: Standard output of the command
    Raises:
      StoreError: If git could not be run, exited with a non-zero status
        or produced CRLF output where it was not expected
    """
    autocrlf = "true" if config.auto_crlf else "false"
    cmd = [config.git_executable, "-c", f"core.autocrlf={autocrlf}", *args]
    full_env = None
    if env:
        full_env = {**os.environ, **env}
    logger.debug("Running %s", " ".join(cmd))
    try:
        p = subprocess.run(
            cmd,
            cwd=cwd,
            input=input,
            env=full_env,
            capture_output=True,
        )
    except OSError as e:
        raise StoreError(cmd, stderr=str(e)) from e
    if p.returncode != 0:
        raise StoreError(cmd, p.returncode, p.stderr)
    if check_crlf and b"\r\n" in p.stdout:
        raise StoreError(cmd, stderr="Unexpected CRLF line endings in git output")
    return p.stdout


class GitCommandObjectStore(BaseObjectStore):
    """Object store for a repository on disk, driven through git commands."""

    def __init__(self, path: str, config: RunConfig | None = None) -> None:
        """Create a store for a repository.

        Args:
          path: Path of the repository (working tree or bare)
          config: Run configuration; defaults to :class:`RunConfig` defaults
        """
        self.path = os.path.abspath(path)
        self.config = config or RunConfig()
        self._git_dir: str | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def _run(self, args: Sequence[str], **kwargs) -> bytes:
        kwargs.setdefault("cwd", self.path)
        # Keep git from using a repository that encloses self.path.
        ceiling = os.path.dirname(os.path.realpath(self.path))
        env = {"GIT_CEILING_DIRECTORIES": ceiling}
        env.update(kwargs.pop("env", None) or {})
        return run_git(self.config, args, env=env, **kwargs)

    @property
    def git_dir(self) -> str:
        """Absolute path of the repository's git directory."""
        if self._git_dir is None:
            out = self._run(["rev-parse", "--absolute-git-dir"])
            self._git_dir = os.fsdecode(out.strip())
        return self._git_dir

    def ensure_repository(self) -> None:
        if os.path.isdir(self.path) and os.listdir(self.path):
            try:
                git_dir = self.git_dir
            except StoreError as e:
                raise StoreError(
                    e.command,
                    e.returncode,
                    f"{self.path} is not empty and is not a git repository\n"
                    + e.stderr,
                ) from e
            logger.debug("Using existing repository %s", git_dir)
            return
        logger.info("Creating repository at %s", self.path)
        run_git(self.config, ["init", "--quiet", self.path])

    def list_refs(self) -> list[tuple[Ref, ObjectID]]:
        out = self._run(["for-each-ref", "--format=%(objectname) %(refname)"])
        refs = []
        for line in out.splitlines():
            sha, name = line.split(b" ", 1)
            refs.append((name, sha))
        return refs

    def list_all_objects(self) -> list[tuple[ObjectID, bytes]]:
        out = self._run(
            ["cat-file", "--batch-check", "--batch-all-objects", "--unordered"]
        )
        objects = []
        for line in out.splitlines():
            sha, kind, _ = line.split(b" ", 2)
            objects.append((sha, kind))
        return objects

    def read_object(self, sha: ObjectID) -> bytes:
        return self._run(["cat-file", "commit", os.fsdecode(sha)], check_crlf=False)

    def materialize_tree(self, sha: ObjectID, path: str) -> None:
        path = os.path.abspath(path)
        os.makedirs(path, exist_ok=True)
        with tempfile.TemporaryDirectory() as tmp:
            env = {"GIT_INDEX_FILE": os.path.join(tmp, "index")}
            self._run(["read-tree", os.fsdecode(sha)], env=env)
            self._run(
                [
                    f"--git-dir={self.git_dir}",
                    f"--work-tree={path}",
                    "checkout-index",
                    "--all",
                    "--force",
                ],
                cwd=path,
                env=env,
            )

    def stage_tree(self, path: str) -> ObjectID:
        if not os.path.isdir(path):
            return self._run(["mktree"], input=b"").strip()
        path = os.path.abspath(path)
        with tempfile.TemporaryDirectory() as tmp:
            env = {"GIT_INDEX_FILE": os.path.join(tmp, "index")}
            self._run(
                [
                    f"--git-dir={self.git_dir}",
                    f"--work-tree={path}",
                    "add",
                    "--all",
                    "--force",
                    ".",
                ],
                cwd=path,
                env=env,
            )
            return self._run(["write-tree"], env=env).strip()

    def write_commit_object(self, raw: bytes) -> ObjectID:
        # --literally keeps git from rejecting unusual but valid-to-hash input.
        out = self._run(
            ["hash-object", "-t", "commit", "-w", "--stdin", "--literally"],
            input=raw,
        )
        return out.strip()

    def update_ref(self, name: Ref, sha: ObjectID) -> None:
        self._run(["update-ref", os.fsdecode(name), os.fsdecode(sha)])
