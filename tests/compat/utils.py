# utils.py -- Utilities for running git in compatibility tests
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

"""Utilities for interacting with git in compatibility tests."""

import os
import subprocess

from .. import SkipTest, TestCase

_DEFAULT_GIT = "git"

# Fixed identity, so commits made in tests have reproducible identifiers.
AUTHOR_ENV = {
    "GIT_AUTHOR_NAME": "A U Thor",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "C O Mitter",
    "GIT_COMMITTER_EMAIL": "committer@example.com",
}


def git_version(git_path: str = _DEFAULT_GIT) -> tuple[int, ...] | None:
    """Attempt to determine the version of git currently installed.

    Args:
      git_path: Path to the git executable; defaults to the version in
        the system path.
    Returns: A tuple of ints of the form (major, minor, point), or None if no
      git installation was found.
    """
    try:
        output = subprocess.run(
            [git_path, "--version"], capture_output=True, check=True
        ).stdout
    except (OSError, subprocess.CalledProcessError):
        return None
    version_prefix = b"git version "
    if not output.startswith(version_prefix):
        return None
    parts = output[len(version_prefix) :].split(b".")
    nums = []
    for part in parts[:3]:
        try:
            nums.append(int(part))
        except ValueError:
            break
    while len(nums) < 3:
        nums.append(0)
    return tuple(nums)


def require_git_version(
    required_version: tuple[int, ...], git_path: str = _DEFAULT_GIT
) -> None:
    """Require git version >= version, or skip the calling test."""
    found_version = git_version(git_path=git_path)
    if found_version is None:
        raise SkipTest(f"Test requires git >= {required_version}, but git not found")
    if found_version < required_version:
        required = ".".join(map(str, required_version))
        found = ".".join(map(str, found_version))
        raise SkipTest(f"Test requires git >= {required}, found {found}")


def run_git_or_fail(
    args: list[str],
    cwd: str | None = None,
    input: bytes | None = None,
    env: dict[str, str] | None = None,
    git_path: str = _DEFAULT_GIT,
) -> bytes:
    """Run a git command, and fail with its output if it exits non-zero.

    Returns: Standard output of the command
    """
    full_env = dict(os.environ)
    if env:
        full_env.update(env)
    p = subprocess.run(
        [git_path, *args],
        cwd=cwd,
        input=input,
        env=full_env,
        capture_output=True,
    )
    if p.returncode != 0:
        raise AssertionError(
            f"git {' '.join(args)} failed with status {p.returncode}:\n"
            + p.stderr.decode("utf-8", "replace")
        )
    return p.stdout


class CompatTestCase(TestCase):
    """Test case that requires git for compatibility checks.

    Subclasses can change the git version required by overriding
    min_git_version.
    """

    # --batch-all-objects and --absolute-git-dir
    min_git_version: tuple[int, ...] = (2, 13, 0)

    def setUp(self) -> None:
        super().setUp()
        require_git_version(self.min_git_version)

    def git(self, repo: str, *args: str, when: int | None = None) -> bytes:
        """Run git in a repository with a fixed identity.

        Args:
          repo: Repository to run in
          args: Arguments to git
          when: Author and committer time, as seconds since the epoch; the
            offset is always +0100
        """
        env = dict(AUTHOR_ENV)
        if when is not None:
            env["GIT_AUTHOR_DATE"] = env["GIT_COMMITTER_DATE"] = f"@{when} +0100"
        return run_git_or_fail(list(args), cwd=repo, env=env)

    def rev_parse(self, repo: str, name: str) -> bytes:
        return self.git(repo, "rev-parse", "--verify", name).strip()
