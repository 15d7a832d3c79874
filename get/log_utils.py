# log_utils.py -- Logging utilities for get
# Copyright (C) 2023 The get contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# get is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
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

"""Logging utilities for get.

get is usable as a library, so the ``get`` logger carries a null handler
and stays silent until an application configures logging. The command line
interface calls :func:`default_logging_config`.

Debug tracing is enabled through the ``GET_TRACE`` environment variable:

* ``1``, ``2`` or ``true`` -- trace to stderr
* an integer from 3 to 9 -- trace to that file descriptor
* an absolute path -- append to that file, or to ``trace.<pid>`` inside it
  if it is a directory

Any other value, including ``0`` and ``false``, disables tracing.
"""

__all__ = [
    "TRACE_ENV",
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
]

import logging
import os
import sys

getLogger = logging.getLogger

TRACE_ENV = "GET_TRACE"

_TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_NULL_HANDLER = logging.NullHandler()
_GET_LOGGER = getLogger("get")
_GET_LOGGER.addHandler(_NULL_HANDLER)


def _get_trace_target() -> str | int | None:
    """Get the trace target from the GET_TRACE environment variable.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output
        - int (3-9) for a file descriptor
        - str for an absolute file or directory path
    """
    value = os.environ.get(TRACE_ENV, "")
    if value.lower() in ("1", "2", "true"):
        return 2
    if value.isdigit() and 3 <= int(value) <= 9:
        return int(value)
    if os.path.isabs(value):
        return value
    return None


def _configure_logging_from_trace() -> bool:
    """Configure debug logging from GET_TRACE.

    Returns: Whether tracing was configured
    """
    target = _get_trace_target()
    if target is None:
        return False

    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=_TRACE_FORMAT)
        return True

    try:
        if isinstance(target, int):
            stream = os.fdopen(target, "w", buffering=1)
            logging.basicConfig(level=logging.DEBUG, stream=stream, format=_TRACE_FORMAT)
        else:
            if os.path.isdir(target):
                target = os.path.join(target, f"trace.{os.getpid()}")
            logging.basicConfig(
                level=logging.DEBUG, filename=target, filemode="a", format=_TRACE_FORMAT
            )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open {TRACE_ENV} target {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up logging for the command line interface.

    Honors GET_TRACE; without it, messages of level INFO and up are written
    to stderr.
    """
    remove_null_handler()
    if not _configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(levelname)s: %(message)s",
        )


def remove_null_handler() -> None:
    """Remove the null handler from the get logger."""
    _GET_LOGGER.removeHandler(_NULL_HANDLER)
