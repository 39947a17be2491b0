# log_utils.py -- Logging utilities for gitdisassemble
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

"""Logging utilities for gitdisassemble.

gitdisassemble is usable as a library, so the package logger carries a
no-op handler until an application configures logging. The command line
calls :func:`default_logging_config`, which also honours the ``GIT_TRACE``
environment variable the same way git does for its own trace output.
"""

__all__ = [
    "default_logging_config",
    "get_trace_target",
    "getLogger",
    "remove_null_handler",
]

import logging
import os
import sys
from collections.abc import Mapping

getLogger = logging.getLogger

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
CONSOLE_FORMAT = "%(message)s"

_NULL_HANDLER = logging.NullHandler()
_PACKAGE_LOGGER = getLogger("gitdisassemble")
_PACKAGE_LOGGER.addHandler(_NULL_HANDLER)


def get_trace_target(env: Mapping[str, str] | None = None) -> str | int | None:
    """Get the trace target from the GIT_TRACE environment variable.

    Args:
        env: Environment to inspect (defaults to os.environ)

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - int (3-9) for a file descriptor
        - str for an absolute file or directory path
    """
    if env is None:
        env = os.environ
    value = env.get("GIT_TRACE", "")
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if value.isdigit() and 3 <= int(value) <= 9:
        return int(value)
    if os.path.isabs(value):
        return value
    return None


def _configure_trace(target: str | int) -> bool:
    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True
    try:
        if isinstance(target, int):
            stream = os.fdopen(target, "w", buffering=1)
            logging.basicConfig(level=logging.DEBUG, stream=stream, format=TRACE_FORMAT)
        else:
            if os.path.isdir(target):
                target = os.path.join(target, f"trace.{os.getpid()}")
            logging.basicConfig(
                level=logging.DEBUG, filename=target, filemode="a", format=TRACE_FORMAT
            )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open GIT_TRACE target {target}: {e}\n")
        return False
    return True


def default_logging_config(
    verbose: bool = False, env: Mapping[str, str] | None = None
) -> None:
    """Set up logging for command line use.

    Progress messages go to stderr as plain lines. When GIT_TRACE names a
    usable target, debug output with timestamps goes there instead.

    Args:
        verbose: Also show debug messages on the console
        env: Environment to inspect for GIT_TRACE (defaults to os.environ)
    """
    remove_null_handler()
    target = get_trace_target(env)
    if target is not None and _configure_trace(target):
        return
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=sys.stderr,
        format=CONSOLE_FORMAT,
    )


def remove_null_handler() -> None:
    """Remove the null handler from the gitdisassemble logger."""
    _PACKAGE_LOGGER.removeHandler(_NULL_HANDLER)
