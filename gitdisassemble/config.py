# config.py -- Run configuration for gitdisassemble
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

"""Run configuration.

A :class:`RunConfig` is created once per run (by the command line or by a
library caller) and passed explicitly to every component that needs it.
"""

__all__ = [
    "DEFAULT_GIT_EXECUTABLE",
    "DEFAULT_JOBS",
    "RunConfig",
]

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

DEFAULT_GIT_EXECUTABLE = "git"

# Reading commits spawns one git process per object; keep the pool small.
DEFAULT_JOBS = 10

GIT_EXECUTABLE_ENV = "GITDISASSEMBLE_GIT"
JOBS_ENV = "GITDISASSEMBLE_JOBS"


@dataclass(frozen=True)
class RunConfig:
    """Settings shared by all components of one run.

    Attributes:
        git_executable: Path or name of the git executable
        auto_crlf: Enable git line ending normalisation (off by default so
            file content is preserved as-is)
        jobs: Maximum number of concurrent object reads
    """

    git_executable: str = DEFAULT_GIT_EXECUTABLE
    auto_crlf: bool = False
    jobs: int = DEFAULT_JOBS

    def __post_init__(self) -> None:
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")

    @classmethod
    def from_environ(cls, env: Mapping[str, str] | None = None) -> "RunConfig":
        """Create a configuration with defaults taken from the environment.

        Args:
            env: Environment to inspect (defaults to os.environ)

        Returns:
            A new RunConfig
        """
        if env is None:
            env = os.environ
        kwargs: dict[str, object] = {}
        git = env.get(GIT_EXECUTABLE_ENV, "").strip()
        if git:
            kwargs["git_executable"] = git
        jobs = env.get(JOBS_ENV, "").strip()
        if jobs:
            try:
                kwargs["jobs"] = int(jobs)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {JOBS_ENV}: {jobs!r}") from exc
        return cls(**kwargs)  # type: ignore[arg-type]

    def override(self, **changes: object) -> "RunConfig":
        """Return a copy with the given non-None settings replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
