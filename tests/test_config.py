# test_config.py -- Tests for config.py
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

"""Tests for gitdisassemble.config."""

from gitdisassemble.config import DEFAULT_JOBS, RunConfig

from . import TestCase


class RunConfigTests(TestCase):
    def test_defaults(self) -> None:
        config = RunConfig()
        self.assertEqual("git", config.git_executable)
        self.assertFalse(config.auto_crlf)
        self.assertEqual(DEFAULT_JOBS, config.jobs)

    def test_invalid_jobs(self) -> None:
        self.assertRaises(ValueError, RunConfig, jobs=0)

    def test_from_environ_empty(self) -> None:
        self.assertEqual(RunConfig(), RunConfig.from_environ({}))

    def test_from_environ(self) -> None:
        config = RunConfig.from_environ(
            {"GITDISASSEMBLE_GIT": "/usr/local/bin/git", "GITDISASSEMBLE_JOBS": "4"}
        )
        self.assertEqual("/usr/local/bin/git", config.git_executable)
        self.assertEqual(4, config.jobs)

    def test_from_environ_blank(self) -> None:
        config = RunConfig.from_environ(
            {"GITDISASSEMBLE_GIT": " ", "GITDISASSEMBLE_JOBS": ""}
        )
        self.assertEqual(RunConfig(), config)

    def test_from_environ_invalid_jobs(self) -> None:
        for value in ["many", "0", "-2"]:
            with self.subTest(value=value):
                self.assertRaises(
                    ValueError,
                    RunConfig.from_environ,
                    {"GITDISASSEMBLE_JOBS": value},
                )

    def test_from_os_environ(self) -> None:
        self.overrideEnv("GITDISASSEMBLE_JOBS", "2")
        self.assertEqual(2, RunConfig.from_environ().jobs)

    def test_override(self) -> None:
        config = RunConfig(jobs=3).override(
            git_executable=None, auto_crlf=True, jobs=None
        )
        self.assertEqual(RunConfig(auto_crlf=True, jobs=3), config)

    def test_frozen(self) -> None:
        config = RunConfig()
        with self.assertRaises(AttributeError):
            config.jobs = 5  # type: ignore[misc]
