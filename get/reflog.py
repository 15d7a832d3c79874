# reflog.py -- Reading and appending the repository log
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

"""Utilities for reading and appending to ``.get/LOG``.

Every commit and restore appends one line::

    <old digest> <new digest> <author> <timestamp>\\t<action>: <summary>
"""

__all__ = [
    "Entry",
    "append_log",
    "format_log_line",
    "iter_log",
    "parse_log_line",
    "read_log",
]

import collections
import os
from collections.abc import Iterable, Iterator
from typing import IO

from .errors import UnexpectedFormat, io_errors
from .hash import valid_hexdigest
from .repo import check_repo, log_path

Entry = collections.namedtuple(
    "Entry", ["old_digest", "new_digest", "author", "timestamp", "message"]
)


def _summary(message: str) -> str:
    lines = message.splitlines()
    return lines[0] if lines else ""


def format_log_line(
    old_digest: str,
    new_digest: str,
    author: str,
    timestamp: int,
    action: str,
    message: str,
) -> str:
    """Generate a single log line, without terminator.

    Args:
      old_digest: Head before the operation
      new_digest: Head after the operation
      author: Who performed the operation
      timestamp: Seconds since the epoch
      action: Operation name, e.g. "commit"
      message: Message; only its first line is kept
    """
    author = " ".join(author.split())
    return f"{old_digest} {new_digest} {author} {int(timestamp)}\t{action}: {_summary(message)}"


def parse_log_line(line: str) -> Entry:
    """Parse a log line.

    Returns: Entry with the message as "<action>: <summary>"
    Raises:
      UnexpectedFormat: if the line is malformed
    """
    try:
        begin, message = line.split("\t", 1)
        old_digest, new_digest, rest = begin.split(" ", 2)
        author, timestamp = rest.rsplit(" ", 1)
        ts = int(timestamp)
    except ValueError as exc:
        raise UnexpectedFormat(f"malformed log line: {line!r}") from exc
    if not (valid_hexdigest(old_digest) and valid_hexdigest(new_digest)):
        raise UnexpectedFormat(f"malformed log line: {line!r}")
    return Entry(old_digest, new_digest, author, ts, message)


def iter_log(f: IO[bytes]) -> Iterator[Entry]:
    """Read log entries from a file-like object."""
    for raw in f:
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise UnexpectedFormat(f"log line is not valid utf-8: {raw!r}") from exc
        line = line.rstrip("\n")
        if line:
            yield parse_log_line(line)


def read_log(root: str | os.PathLike[str]) -> list[Entry]:
    """Read every entry of a repository's log, oldest first.

    Raises:
      NotARepo: if root does not hold a repository
      UnexpectedFormat: on malformed lines
    """
    root = os.fspath(root)
    check_repo(root)
    with io_errors():
        try:
            f = open(log_path(root), "rb")
        except FileNotFoundError:
            return []
    with io_errors(), f:
        return list(iter_log(f))


def append_log(root: str | os.PathLike[str], lines: Iterable[str]) -> None:
    """Append lines to a repository's log."""
    root = os.fspath(root)
    data = "".join(line + "\n" for line in lines).encode("utf-8")
    with io_errors(), open(log_path(root), "ab") as f:
        f.write(data)
